# clinic_dashboard/scorecard/service.py
"""
Dashboard Service

Glue between the store and the pure aggregation functions. The service
subscribes to the store; whenever daily submissions change it re-derives
the affected months and writes the scorecards back.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .aggregator import aggregate_month
from .composer import compose_dashboard
from .constants import (
    ALL_DIVISIONS,
    DEFAULT_DIVISIONS,
    DAILY_SUBMISSIONS,
    DIVISIONS,
    EMPLOYEES,
    EMPLOYEE_KPI_DATA,
    EMPLOYEE_TARGETS,
    HORMONE_UNITS,
    KPI_DATA,
    KPI_TARGETS,
    REVENUE_PROJECTIONS,
    SCHEDULED_HOURS,
)
from .models import DailySubmission, DashboardMetrics
from .store import KPIStore

logger = logging.getLogger(__name__)


class DashboardService:
    """
    Keeps derived scorecards in step with daily submissions.

    Usage:
        service = DashboardService(store)
        service.submit_daily(submission)      # re-aggregates that month
        metrics = service.dashboard('01', 2025)
    """

    def __init__(self, store: KPIStore, divisions: Iterable = None, rng: Any = None):
        self.store = store
        self._divisions = list(divisions) if divisions is not None else None
        self.rng = rng
        self._known_periods = self._submission_periods()
        self._busy = False
        self._unsubscribe = store.subscribe(self._on_change)

    def close(self):
        """Stop listening to the store."""
        self._unsubscribe()

    # =========================================================================
    # RE-AGGREGATION
    # =========================================================================

    @property
    def divisions(self) -> List:
        if self._divisions is not None:
            return self._divisions
        return self.store.get(DIVISIONS) or list(DEFAULT_DIVISIONS)

    def _submission_periods(self) -> Dict[Tuple[str, int], List[DailySubmission]]:
        """Submissions grouped by (month, year), in stored order."""
        periods = {}
        for submission in self.store.get(DAILY_SUBMISSIONS):
            if submission.date is not None:
                period = (f"{submission.date.month:02d}", submission.date.year)
                periods.setdefault(period, []).append(submission)
        return periods

    def _on_change(self, key: str):
        if key != DAILY_SUBMISSIONS or self._busy:
            return

        current = self._submission_periods()
        # Months whose submissions were added, replaced or removed
        affected = [
            period for period in set(current) | set(self._known_periods)
            if current.get(period) != self._known_periods.get(period)
        ]
        self._known_periods = current

        for month, year in sorted(affected, key=lambda p: (p[1], p[0])):
            self.reaggregate(month, year)

    def reaggregate(self, month, year: int) -> None:
        """Re-derive one month and write the division and employee scorecards."""
        self._busy = True
        try:
            division_kpi, employee_kpi = aggregate_month(
                self.store.get(DAILY_SUBMISSIONS),
                self.divisions,
                self.store.get(EMPLOYEES),
                month,
                year,
                existing_kpi=self.store.get(KPI_DATA),
            )
            for record in division_kpi:
                self.store.upsert(KPI_DATA, record)
            self.store.replace_period(EMPLOYEE_KPI_DATA, employee_kpi, month, year)
        finally:
            self._busy = False

    # =========================================================================
    # WRITES
    # =========================================================================

    def submit_daily(self, submission) -> bool:
        """Store a division's daily bundle, replacing any for the same date."""
        if not isinstance(submission, DailySubmission):
            submission = DailySubmission.from_dict(submission)
        logger.info(
            f"Daily submission {submission.division_id} {submission.date}: "
            f"{len(submission.entries)} entries"
        )
        return self.store.upsert(DAILY_SUBMISSIONS, submission)

    def update_target(self, target) -> bool:
        return self.store.upsert(KPI_TARGETS, target)

    def update_employee_target(self, target) -> bool:
        return self.store.upsert(EMPLOYEE_TARGETS, target)

    def update_employee(self, employee) -> bool:
        return self.store.upsert(EMPLOYEES, employee)

    def update_hormone_unit(self, unit) -> bool:
        return self.store.upsert(HORMONE_UNITS, unit)

    def update_projection(self, projection) -> bool:
        return self.store.upsert(REVENUE_PROJECTIONS, projection)

    def set_scheduled_hours(self, employee_id: str, month, year: int, hours: float) -> bool:
        return self.store.set_scheduled_hours(employee_id, month, year, hours)

    # =========================================================================
    # READS
    # =========================================================================

    def dashboard(self, month, year: int, division_filter: str = ALL_DIVISIONS) -> DashboardMetrics:
        return compose_dashboard(
            month,
            year,
            division_filter,
            kpi_data=self.store.get(KPI_DATA),
            employee_kpi_data=self.store.get(EMPLOYEE_KPI_DATA),
            daily_submissions=self.store.get(DAILY_SUBMISSIONS),
            employees=self.store.get(EMPLOYEES),
            divisions=self.divisions,
            scheduled_hours=self.store.get(SCHEDULED_HOURS),
            hormone_units=self.store.get(HORMONE_UNITS),
            rng=self.rng,
        )

    def targets_for(self, month, year: int) -> List:
        """Division targets that apply to a month, dated targets first."""
        targets = [t for t in self.store.get(KPI_TARGETS) if t.applies_to(month, year)]
        return sorted(targets, key=lambda t: t.month is None)

    def target_for(self, division_id: str, month, year: int) -> Optional[Any]:
        for target in self.targets_for(month, year):
            if target.division_id == division_id:
                return target
        return None
