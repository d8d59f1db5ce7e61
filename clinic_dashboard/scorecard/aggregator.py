# clinic_dashboard/scorecard/aggregator.py
"""
KPI Aggregation for the Clinic Scorecard

Turns daily submissions into monthly scorecards:
- entries_frame / daily_metrics: flatten and sum active, submitted entries
- aggregate_division: one KPIData per (division, month, year)
- aggregate_employees: EmployeeKPIData per employee, order dependent
- aggregate_month: both passes for every division with submissions

Every function is a pure transform; reading and writing the store is the
caller's job.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .constants import (
    DEFAULT_HAPPINESS_SCORE,
    REPEAT_RETENTION_OFFSET,
    NET_CASH_RATIO,
    DEFAULT_ATTENDANCE_RATE,
    DEFAULT_TRAINING_HOURS,
    DEFAULT_CUSTOMER_SATISFACTION,
    CLIENTS_RETAIL_PLACEHOLDER,
)
from .helpers import round_half_up, rate_percent, safe_divide, normalize_month, in_month
from .models import (
    DailySubmission,
    DailyEntry,
    Division,
    Employee,
    EmployeeKPIData,
    KPIData,
    ENTRY_SUM_FIELDS,
)

logger = logging.getLogger(__name__)

FRAME_COLUMNS = [
    'division_id',
    'submission_date',
    'employee_id',
    'date',
    'status',
    'is_submitted',
    *ENTRY_SUM_FIELDS,
]


def _plain(value):
    """numpy scalar -> int when integral, float otherwise."""
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _as_submissions(submissions: Iterable) -> List[DailySubmission]:
    return [s if isinstance(s, DailySubmission) else DailySubmission.from_dict(s) for s in submissions]


def _month_submissions(submissions: Iterable, month, year: int) -> List[DailySubmission]:
    return [s for s in _as_submissions(submissions) if in_month(s.date, month, year)]


# =============================================================================
# FLATTENING
# =============================================================================

def entries_frame(submissions: Iterable) -> pd.DataFrame:
    """
    One row per daily entry, in submission order then entry order.

    Args:
        submissions: DailySubmission records or their stored dicts

    Returns:
        DataFrame with FRAME_COLUMNS (empty when there are no entries)
    """
    rows = []
    for submission in _as_submissions(submissions):
        for entry in submission.entries:
            row = {
                'division_id': submission.division_id,
                'submission_date': submission.date,
                'employee_id': entry.employee_id,
                'date': entry.date,
                'status': entry.status,
                'is_submitted': entry.is_submitted,
            }
            for name in ENTRY_SUM_FIELDS:
                row[name] = getattr(entry, name)
            rows.append(row)

    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def _counted(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        return df
    mask = (df['status'] == 'active') & (df['is_submitted'].astype(bool))
    return df[mask]


def daily_metrics(
    submissions: Iterable,
    month,
    year: int,
    division_id: Optional[str] = None
) -> Dict[str, Union[int, float]]:
    """
    Sum active, submitted entries of submissions dated in (month, year).

    Args:
        submissions: All daily submissions
        month: Month ("01".."12" or int)
        year: Year
        division_id: Restrict to one division (optional)

    Returns:
        Dict of summed fields plus 'entry_count'
    """
    selected = _month_submissions(submissions, month, year)
    if division_id is not None:
        selected = [s for s in selected if s.division_id == division_id]

    df = _counted(entries_frame(selected))

    totals = {name: _plain(df[name].sum()) if not df.empty else 0 for name in ENTRY_SUM_FIELDS}
    totals['entry_count'] = int(len(df))
    return totals


# =============================================================================
# DIVISION AGGREGATION
# =============================================================================

def _find_kpi(existing_kpi: Iterable, division_id: str, month: str, year: int) -> Optional[KPIData]:
    for record in existing_kpi or ():
        if not isinstance(record, KPIData):
            try:
                record = KPIData.from_dict(record)
            except ValueError:
                continue
        if record.division_id == division_id and record.month == month and record.year == year:
            return record
    return None


def kpi_from_totals(division_id: str, month, year: int, totals: Dict) -> KPIData:
    """Derive the twelve scorecard metrics from summed monthly totals."""
    hours_worked = totals['hours_worked']
    hours_booked = totals['hours_booked']
    service_revenue = totals['service_revenue']
    retail_sales = totals['retail_sales']
    new_clients = totals['new_clients']
    total_revenue = service_revenue + retail_sales

    conversion = rate_percent(totals['consult_converted'], totals['consults'])
    retail_share = rate_percent(retail_sales, total_revenue)

    return KPIData(
        division_id=division_id,
        month=month,
        year=year,
        productivity_rate=rate_percent(hours_booked, hours_worked),
        prebook_rate=rate_percent(totals['prebooks'], totals['total_clients']),
        # Consult conversion stands in for retention
        first_time_retention_rate=conversion,
        repeat_retention_rate=min(conversion + REPEAT_RETENTION_OFFSET, 100),
        retail_percentage=retail_share,
        new_clients=new_clients,
        average_ticket=round_half_up(safe_divide(total_revenue, new_clients)),
        service_sales_per_hour=round_half_up(safe_divide(service_revenue, hours_booked)),
        clients_retail_percentage=retail_share,
        hours_sold=hours_booked,
        happiness_score=DEFAULT_HAPPINESS_SCORE,
        net_cash_percentage=round_half_up(total_revenue * NET_CASH_RATIO),
        hours_worked=hours_worked,
        hours_booked=hours_booked,
        service_revenue=service_revenue,
        retail_sales=retail_sales,
        consults=totals['consults'],
        consult_converted=totals['consult_converted'],
        total_clients=totals['total_clients'],
        prebooks=totals['prebooks'],
    )


def aggregate_division(
    submissions: Iterable,
    division_id: str,
    month,
    year: int,
    existing_kpi: Iterable = ()
) -> KPIData:
    """
    Build the monthly KPIData of one division.

    When the division has no submission dated in the month, the stored
    record for that key is returned unchanged, else a zero record.

    Args:
        submissions: All daily submissions
        division_id: Division to aggregate
        month: Month ("01".."12" or int)
        year: Year
        existing_kpi: Stored KPIData collection used for the fallback

    Returns:
        KPIData for (division_id, month, year)
    """
    month = normalize_month(month)
    year = int(year)

    selected = [
        s for s in _month_submissions(submissions, month, year)
        if s.division_id == division_id
    ]

    if not selected:
        existing = _find_kpi(existing_kpi, division_id, month, year)
        if existing is not None:
            logger.debug(f"No submissions for {division_id} {month}/{year}; keeping stored KPI")
            return existing
        return KPIData.zero(division_id, month, year)

    totals = daily_metrics(selected, month, year)
    kpi = kpi_from_totals(division_id, month, year, totals)
    logger.debug(
        f"Aggregated {division_id} {month}/{year}: {totals['entry_count']} entries, "
        f"productivity {kpi.productivity_rate}%"
    )
    return kpi


# =============================================================================
# EMPLOYEE AGGREGATION
# =============================================================================

def _entry_retail_share(entry: DailyEntry) -> int:
    return rate_percent(entry.retail_sales, entry.total_revenue)


def _new_employee_kpi(entry: DailyEntry, employee: Employee, month: str, year: int) -> EmployeeKPIData:
    conversion = entry.consult_conversion_percentage
    return EmployeeKPIData(
        employee_id=entry.employee_id,
        division_id=employee.division_id,
        month=month,
        year=year,
        productivity_rate=entry.productivity_percentage,
        prebook_rate=entry.prebook_percentage,
        first_time_retention_rate=conversion,
        repeat_retention_rate=min(conversion + REPEAT_RETENTION_OFFSET, 100),
        retail_percentage=_entry_retail_share(entry),
        new_clients=entry.new_clients,
        average_ticket=round_half_up(safe_divide(entry.total_revenue, entry.new_clients)),
        service_sales_per_hour=round_half_up(safe_divide(entry.service_revenue, entry.hours_booked)),
        clients_retail_percentage=CLIENTS_RETAIL_PLACEHOLDER if entry.retail_sales > 0 else 0,
        hours_sold=entry.hours_booked,
        happiness_score=DEFAULT_HAPPINESS_SCORE,
        net_cash_percentage=round_half_up(entry.total_revenue * NET_CASH_RATIO),
        attendance_rate=DEFAULT_ATTENDANCE_RATE,
        training_hours=DEFAULT_TRAINING_HOURS,
        customer_satisfaction_score=DEFAULT_CUSTOMER_SATISFACTION,
    )


def _blend_employee_kpi(record: EmployeeKPIData, entry: DailyEntry) -> None:
    """
    Fold a later entry into an employee record.

    hoursSold and newClients accumulate. The hourly rate is blended after
    hoursSold already includes this entry. Productivity, retail share and
    average ticket come from this entry alone (last write wins).
    """
    record.hours_sold += entry.hours_booked
    record.new_clients += entry.new_clients

    if record.hours_sold > 0:
        record.service_sales_per_hour = round_half_up(
            (record.service_sales_per_hour * record.hours_sold + entry.service_revenue)
            / (record.hours_sold + entry.hours_booked)
        )
    else:
        record.service_sales_per_hour = entry.service_revenue / max(entry.hours_booked, 1)

    record.productivity_rate = entry.productivity_percentage
    record.retail_percentage = _entry_retail_share(entry)
    record.average_ticket = round_half_up(safe_divide(entry.total_revenue, record.new_clients))


def _directory(employees: Iterable) -> Dict[str, Employee]:
    directory = {}
    for employee in employees or ():
        if not isinstance(employee, Employee):
            try:
                employee = Employee.from_dict(employee)
            except ValueError as e:
                logger.warning(f"Skipping malformed employee record: {e}")
                continue
        directory.setdefault(employee.id, employee)
    return directory


def aggregate_employees(
    submissions: Iterable,
    employee_directory: Iterable,
    month,
    year: int
) -> List[EmployeeKPIData]:
    """
    Build per-employee monthly scorecards.

    Entries are processed in submission order then entry order; the first
    entry of an employee seeds the record and later ones are blended in.
    Entries of employees missing from the directory, or inactive there,
    are skipped.

    Args:
        submissions: All daily submissions
        employee_directory: Employee records
        month: Month ("01".."12" or int)
        year: Year

    Returns:
        EmployeeKPIData list in first-seen order
    """
    month = normalize_month(month)
    year = int(year)
    directory = _directory(employee_directory)

    records: Dict[str, EmployeeKPIData] = {}
    skipped = 0

    for submission in _month_submissions(submissions, month, year):
        for entry in submission.entries:
            if not entry.is_counted:
                continue

            employee = directory.get(entry.employee_id)
            if employee is None or not employee.is_active:
                skipped += 1
                continue

            existing = records.get(entry.employee_id)
            if existing is None:
                records[entry.employee_id] = _new_employee_kpi(entry, employee, month, year)
            else:
                _blend_employee_kpi(existing, entry)

    if skipped:
        logger.info(f"Skipped {skipped} entries without an active employee for {month}/{year}")

    return list(records.values())


# =============================================================================
# MONTHLY PASS
# =============================================================================

def aggregate_month(
    submissions: Iterable,
    divisions: Iterable,
    employees: Iterable,
    month,
    year: int,
    existing_kpi: Iterable = ()
) -> Tuple[List[KPIData], List[EmployeeKPIData]]:
    """
    Re-derive a month: KPIData for each division with submissions in the
    month, plus every employee scorecard.

    Divisions without submissions are left out so stored rows survive.
    """
    month = normalize_month(month)
    year = int(year)
    submissions = _month_submissions(submissions, month, year)
    active_divisions = {s.division_id for s in submissions}

    division_ids = []
    for division in divisions or ():
        division_id = division.id if isinstance(division, Division) else division.get('id')
        if division_id in active_divisions and division_id not in division_ids:
            division_ids.append(division_id)

    unknown = active_divisions.difference(division_ids)
    if unknown:
        logger.warning(f"Submissions for unknown divisions ignored: {sorted(unknown)}")

    division_kpi = [
        aggregate_division(submissions, division_id, month, year, existing_kpi)
        for division_id in division_ids
    ]
    employee_kpi = aggregate_employees(submissions, employees, month, year)

    logger.info(
        f"Aggregated {month}/{year}: {len(division_kpi)} divisions, "
        f"{len(employee_kpi)} employees"
    )
    return division_kpi, employee_kpi
