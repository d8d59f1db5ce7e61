# clinic_dashboard/scorecard/composer.py
"""
Dashboard Metrics Composition

Builds the company-wide snapshot shown on the manager dashboard:
- Company totals from a fresh pass over the month's daily submissions,
  with estimates where no daily data exists
- Per-division performance with a three-tier revenue fallback
- Six-month productivity trend per division
- Employee, scheduling, hormone unit and submission statistics

Everything is recomputed on each call. Callers that want caching key it
on (month, year, division_filter).
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from .aggregator import daily_metrics
from .constants import (
    ALL_DIVISIONS,
    DEFAULT_DIVISIONS,
    DIVISION_COLORS,
    DEFAULT_DIVISION_COLOR,
    HORMONE_DIVISION,
    SERVICE_REVENUE_SHARE,
    RETAIL_SALES_SHARE,
    CONSULTS_PER_NEW_CLIENT,
    CONSULT_CONVERSION_ESTIMATE,
    DEFAULT_SERVICE_SALES_PER_HOUR,
    TREND_MONTHS,
    TREND_JITTER,
    TOP_PERFORMERS_LIMIT,
    RECENT_SUBMISSIONS_LIMIT,
)
from .helpers import round_half_up, rate_percent, normalize_month, shift_month, month_label, in_month
from .models import (
    DailySubmission,
    DashboardMetrics,
    Division,
    Employee,
    EmployeeKPIData,
    HormoneUnit,
    KPIData,
)
from .store import scheduled_hours_key

logger = logging.getLogger(__name__)


def division_color(division_id: str) -> str:
    return DIVISION_COLORS.get(division_id, DEFAULT_DIVISION_COLOR)


def _records(items: Optional[Iterable], model) -> List:
    """Coerce stored dicts to records, dropping the ones that do not parse."""
    records = []
    for item in items or ():
        if isinstance(item, model):
            records.append(item)
            continue
        try:
            records.append(model.from_dict(item))
        except ValueError as e:
            logger.warning(f"Skipping malformed {model.__name__}: {e}")
    return records


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0


class DashboardComposer:
    """
    Dashboard statistics over one snapshot of the stored collections.

    Usage:
        composer = DashboardComposer(kpi_data, employee_kpi_data, submissions, employees)
        metrics = composer.compose('01', 2025, 'all')
        top = composer.employee_stats('01', 2025)['top_performers']
    """

    def __init__(
        self,
        kpi_data: Iterable = (),
        employee_kpi_data: Iterable = (),
        daily_submissions: Iterable = (),
        employees: Iterable = (),
        divisions: Iterable = None,
        scheduled_hours: Dict[str, float] = None,
        hormone_units: Iterable = (),
        rng: Any = None
    ):
        """
        Initialize with data.

        Args:
            kpi_data: Division KPIData records
            employee_kpi_data: EmployeeKPIData records
            daily_submissions: DailySubmission records
            employees: Employee directory
            divisions: Division list (defaults to the standard divisions)
            scheduled_hours: '<employeeId>-<month>-<year>' -> hours
            hormone_units: HormoneUnit records
            rng: Object with random() used for the trend fallback
        """
        self.kpi_data = _records(kpi_data, KPIData)
        self.employee_kpi_data = _records(employee_kpi_data, EmployeeKPIData)
        self.daily_submissions = _records(daily_submissions, DailySubmission)
        self.employees = _records(employees, Employee)
        self.divisions = _records(divisions if divisions else DEFAULT_DIVISIONS, Division)
        self.scheduled_hours = dict(scheduled_hours or {})
        self.hormone_units = _records(hormone_units, HormoneUnit)
        self.rng = rng if rng is not None else np.random.default_rng()

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def _kpi_for(self, division_id: str, month: str, year: int) -> Optional[KPIData]:
        for record in self.kpi_data:
            if record.division_id == division_id and record.month == month and record.year == year:
                return record
        return None

    def _employee_kpi_for(self, month: str, year: int) -> List[EmployeeKPIData]:
        return [r for r in self.employee_kpi_data if r.month == month and r.year == year]

    def _active_employees(self, division_filter: str = None) -> List[Employee]:
        active = [e for e in self.employees if e.is_active]
        if division_filter and division_filter != ALL_DIVISIONS:
            active = [e for e in active if e.division_id == division_filter]
        return active

    # =========================================================================
    # EMPLOYEE STATS
    # =========================================================================

    def employee_stats(self, month, year: int, division_filter: str = ALL_DIVISIONS) -> Dict:
        """
        Headcount, averages and top performers for the period.

        Performer score = round((productivity + retail% + happiness x 10 + attendance) / 4)
        """
        month = normalize_month(month)
        year = int(year)
        active = {e.id: e for e in self._active_employees(division_filter)}

        period = [r for r in self._employee_kpi_for(month, year) if r.employee_id in active]

        avg_productivity = round_half_up(_mean([r.productivity_rate for r in period])) if period else 0
        avg_happiness = round_half_up(_mean([r.happiness_score for r in period]) * 10) / 10 if period else 0

        performers = []
        for record in period:
            score = round_half_up((
                record.productivity_rate
                + record.retail_percentage
                + record.happiness_score * 10
                + record.attendance_rate
            ) / 4)
            performers.append({
                'employee': active[record.employee_id],
                'score': score,
                'kpi': record,
            })
        performers.sort(key=lambda p: p['score'], reverse=True)

        return {
            'total_employees': len(self.employees),
            'active_employees': len(active),
            'avg_productivity': avg_productivity,
            'avg_happiness': avg_happiness,
            'top_performers': performers[:TOP_PERFORMERS_LIMIT],
        }

    # =========================================================================
    # SCHEDULING STATS
    # =========================================================================

    def scheduling_stats(self, month, year: int, division_filter: str = ALL_DIVISIONS) -> Dict:
        """Scheduled vs booked hours per active employee."""
        month = normalize_month(month)
        year = int(year)
        period = {r.employee_id: r for r in reversed(self._employee_kpi_for(month, year))}

        total_scheduled = 0
        total_booked = 0
        utilization = []

        for employee in self._active_employees(division_filter):
            scheduled = self.scheduled_hours.get(scheduled_hours_key(employee.id, month, year), 0) or 0
            record = period.get(employee.id)
            booked = record.hours_sold if record else 0

            total_scheduled += scheduled
            total_booked += booked
            utilization.append({
                'employee_id': employee.id,
                'employee_name': employee.name,
                'scheduled_hours': scheduled,
                'booked_hours': booked,
                'utilization_rate': round_half_up(booked / scheduled * 100) if scheduled > 0 else 0,
            })

        utilization.sort(key=lambda u: u['utilization_rate'], reverse=True)

        return {
            'total_scheduled_hours': total_scheduled,
            'total_booked_hours': total_booked,
            'utilization_rate': round_half_up(total_booked / total_scheduled * 100) if total_scheduled > 0 else 0,
            'revenue_from_scheduling': total_booked * DEFAULT_SERVICE_SALES_PER_HOUR,
            'employee_utilization': utilization,
        }

    # =========================================================================
    # HORMONE UNITS
    # =========================================================================

    def hormone_unit_metrics(self, month, year: int) -> Dict:
        """Unit staffing with revenue shared evenly from the hormone division KPI."""
        month = normalize_month(month)
        year = int(year)
        hormone_kpi = self._kpi_for(HORMONE_DIVISION, month, year)
        units = self.hormone_units

        total_revenue = hormone_kpi.average_ticket * hormone_kpi.new_clients if hormone_kpi else 0
        productivity = (hormone_kpi.productivity_rate if hormone_kpi else 0) or 85

        unit_performance = [
            {
                'unit': unit,
                'staff_count': unit.staff_count,
                'productivity': productivity,
                'revenue': total_revenue / len(units) if hormone_kpi else 0,
            }
            for unit in units
        ]

        return {
            'total_units': len(units),
            'total_staff': sum(unit.staff_count for unit in units),
            'avg_productivity': hormone_kpi.productivity_rate if hormone_kpi else 0,
            'total_revenue': total_revenue,
            'unit_performance': unit_performance,
        }

    # =========================================================================
    # DIVISION PERFORMANCE
    # =========================================================================

    @staticmethod
    def division_revenue(kpi: Optional[KPIData]) -> float:
        """
        Revenue of a division month: serviceRevenue + retailSales when
        nonzero, else averageTicket x newClients, else 0.
        """
        if kpi is None:
            return 0
        explicit = (kpi.service_revenue or 0) + (kpi.retail_sales or 0)
        return explicit or (kpi.average_ticket * kpi.new_clients)

    def division_performance(self, month, year: int, division_filter: str = ALL_DIVISIONS) -> List[Dict]:
        month = normalize_month(month)
        year = int(year)

        divisions = self.divisions
        if division_filter and division_filter != ALL_DIVISIONS:
            divisions = [d for d in divisions if d.id == division_filter]

        performance = []
        for division in divisions:
            kpi = self._kpi_for(division.id, month, year)
            team = [e for e in self.employees if e.division_id == division.id and e.is_active]
            performance.append({
                'division_id': division.id,
                'division_name': division.name,
                'team_size': len(team),
                'total_revenue': self.division_revenue(kpi),
                'productivity': kpi.productivity_rate if kpi else 0,
                'new_clients': kpi.new_clients if kpi else 0,
                'retail_percentage': kpi.retail_percentage if kpi else 0,
                'happiness_score': kpi.happiness_score if kpi else 0,
                'kpi': kpi if kpi else KPIData.zero(division.id, month, year),
            })
        return performance

    # =========================================================================
    # DAILY SUBMISSIONS
    # =========================================================================

    def daily_submission_stats(self, month, year: int, division_filter: str = ALL_DIVISIONS) -> Dict:
        """Completion rate and the most recent submissions of the period."""
        names = {d.id: d.name for d in self.divisions}

        submissions = [
            s for s in self.daily_submissions
            if in_month(s.date, month, year)
            and (not division_filter or division_filter == ALL_DIVISIONS or s.division_id == division_filter)
        ]
        completed = [s for s in submissions if s.is_complete]

        recent = sorted(submissions, key=lambda s: s.date, reverse=True)[:RECENT_SUBMISSIONS_LIMIT]

        return {
            'total_submissions': len(submissions),
            'completed_submissions': len(completed),
            'completion_rate': rate_percent(len(completed), len(submissions)),
            'recent_submissions': [
                {
                    'division_id': s.division_id,
                    'division_name': names.get(s.division_id, 'Unknown'),
                    'date': s.date,
                    'is_complete': s.is_complete,
                    'entry_count': len(s.entries),
                }
                for s in recent
            ],
        }

    # =========================================================================
    # TREND
    # =========================================================================

    def _division_members(self, division_id: str) -> set:
        return {e.id for e in self.employees if e.division_id == division_id}

    def productivity_trend(self, month, year: int, performance: List[Dict]) -> List[Dict]:
        """
        Productivity per division for the six months ending at (month, year).

        Each point uses the month's KPIData, else the mean of the month's
        employee scorecards in that division, else a jitter of up to
        TREND_JITTER points around the division's current productivity.
        """
        trend = []
        for offset in range(TREND_MONTHS - 1, -1, -1):
            point_month, point_year = shift_month(month, year, -offset)
            point_month = normalize_month(point_month)
            point = {'month': month_label(point_month, point_year)}
            month_employee_kpi = self._employee_kpi_for(point_month, point_year)

            for division in performance:
                division_id = division['division_id']
                kpi = self._kpi_for(division_id, point_month, point_year)
                if kpi is not None:
                    value = kpi.productivity_rate
                else:
                    members = self._division_members(division_id)
                    rates = [r.productivity_rate for r in month_employee_kpi if r.employee_id in members]
                    if rates:
                        value = round_half_up(_mean(rates))
                    else:
                        variation = (self.rng.random() - 0.5) * 2 * TREND_JITTER
                        value = max(0, round_half_up(division['productivity'] + variation))
                point[division['division_name']] = value

            trend.append(point)
        return trend

    # =========================================================================
    # COMPOSITION
    # =========================================================================

    def compose(self, month, year: int, division_filter: str = ALL_DIVISIONS) -> DashboardMetrics:
        """Build the dashboard snapshot. Raises on bad input; see compose_dashboard."""
        month = normalize_month(month)
        year = int(year)

        performance = self.division_performance(month, year, division_filter)
        scheduling = self.scheduling_stats(month, year, division_filter)
        daily = daily_metrics(self.daily_submissions, month, year)

        daily_revenue = daily['service_revenue'] + daily['retail_sales']
        company_sales = daily_revenue if daily_revenue > 0 else sum(d['total_revenue'] for d in performance)
        company_productivity = (
            round_half_up(_mean([d['productivity'] for d in performance])) if performance else 0
        )

        service_revenue = (
            daily['service_revenue'] if daily['service_revenue'] > 0
            else round_half_up(company_sales * SERVICE_REVENUE_SHARE)
        )
        retail_sales = (
            daily['retail_sales'] if daily['retail_sales'] > 0
            else round_half_up(company_sales * RETAIL_SALES_SHARE)
        )
        new_clients = sum(d['new_clients'] for d in performance)

        consults = (
            daily['consults'] if daily['consults'] > 0
            else round_half_up(new_clients * CONSULTS_PER_NEW_CLIENT)
        )
        consult_converted = (
            daily['consult_converted'] if daily['consult_converted'] > 0
            else round_half_up(consults * CONSULT_CONVERSION_ESTIMATE)
        )

        metrics = DashboardMetrics(
            company_sales=company_sales,
            company_productivity=company_productivity,
            hours_worked=daily['hours_worked'] if daily['hours_worked'] > 0 else scheduling['total_scheduled_hours'],
            hours_booked=daily['hours_booked'] if daily['hours_booked'] > 0 else scheduling['total_booked_hours'],
            service_revenue=service_revenue,
            retail_sales=retail_sales,
            new_clients=new_clients,
            consults=consults,
            consult_converted=consult_converted,
            divisions=[
                {
                    'id': d['division_id'],
                    'name': d['division_name'],
                    'color': division_color(d['division_id']),
                    'team_members': d['team_size'],
                    'sales': d['total_revenue'],
                    'productivity': d['productivity'],
                    'new_clients': d['new_clients'],
                }
                for d in performance
            ],
            trend_data=self.productivity_trend(month, year, performance),
        )

        logger.debug(
            f"Composed dashboard {month}/{year} ({division_filter}): "
            f"sales {company_sales}, productivity {company_productivity}%"
        )
        return metrics


def compose_dashboard(
    month,
    year: int,
    division_filter: str,
    kpi_data: Iterable,
    employee_kpi_data: Iterable,
    daily_submissions: Iterable,
    employees: Iterable,
    divisions: Iterable = None,
    scheduled_hours: Dict[str, float] = None,
    hormone_units: Iterable = (),
    rng: Any = None
) -> DashboardMetrics:
    """
    Company-wide dashboard snapshot for a month.

    Never raises: any failure is logged and a zeroed, degraded snapshot
    (DashboardMetrics.empty()) is returned instead.
    """
    try:
        composer = DashboardComposer(
            kpi_data=kpi_data,
            employee_kpi_data=employee_kpi_data,
            daily_submissions=daily_submissions,
            employees=employees,
            divisions=divisions,
            scheduled_hours=scheduled_hours,
            hormone_units=hormone_units,
            rng=rng,
        )
        return composer.compose(month, year, division_filter)
    except Exception as e:
        logger.error(f"Dashboard composition failed for {month}/{year}: {e}", exc_info=True)
        return DashboardMetrics.empty()
