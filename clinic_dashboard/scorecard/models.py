# clinic_dashboard/scorecard/models.py
"""
Record Types for the Clinic Scorecard

Every persisted record is a dataclass that:
- serializes to the camelCase dict layout used by the stored collections
  (to_dict), dropping unset optional fields
- rebuilds from that layout (from_dict), keeping unknown keys in `extras`
  so a whole-record replacement never loses data written by other screens

Derived values (daily entry percentages) are properties: they are written
out for readers of the stored JSON but always recomputed on read.
"""

import logging
from dataclasses import dataclass, field, fields
import datetime as dt
from typing import Any, Dict, List, Mapping, Optional

from .constants import (
    STATUS_ACTIVE,
    ENTRY_STATUSES,
    DEFAULT_DIVISION_COLOR,
)
from .codec import to_utc
from .helpers import normalize_month, parse_calendar_date, rate_percent

logger = logging.getLogger(__name__)


def to_camel(name: str) -> str:
    head, *tail = name.split('_')
    return head + ''.join(part.title() for part in tail)


def _number(value: Any, field_name: str):
    """Coerce a stored figure to int when integral, float otherwise."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got {value!r}")
    number = float(value)
    return int(number) if number.is_integer() else number


def _export(value: Any) -> Any:
    if isinstance(value, Record):
        return value.to_dict()
    if isinstance(value, list):
        return [_export(item) for item in value]
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return value.isoformat()
    return value


class Record:
    """Shared (de)serialization for scorecard records."""

    _derived_fields = ()

    def to_dict(self) -> Dict[str, Any]:
        data = dict(getattr(self, 'extras', {}) or {})
        for f in fields(self):
            if f.name == 'extras':
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            data[to_camel(f.name)] = _export(value)
        for name in self._derived_fields:
            data[to_camel(name)] = getattr(self, name)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            raise ValueError(f"{cls.__name__} expects a mapping, got {type(data).__name__}")

        by_key = {}
        for f in fields(cls):
            if f.name == 'extras':
                continue
            by_key[to_camel(f.name)] = f.name
            by_key[f.name] = f.name
        derived = {to_camel(name) for name in cls._derived_fields} | set(cls._derived_fields)

        kwargs = {}
        extras = {}
        for key, value in data.items():
            if key in by_key:
                kwargs[by_key[key]] = value
            elif key in derived:
                continue
            else:
                extras[key] = value

        if any(f.name == 'extras' for f in fields(cls)):
            kwargs['extras'] = extras

        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ValueError(f"Incomplete {cls.__name__} record: {e}") from e

    def _normalize_timestamps(self, *names):
        for name in names:
            setattr(self, name, to_utc(getattr(self, name)))


# =============================================================================
# DAILY INPUT
# =============================================================================

ENTRY_FLOAT_FIELDS = ('hours_worked', 'hours_booked', 'service_revenue', 'retail_sales')
ENTRY_COUNT_FIELDS = ('new_clients', 'consults', 'consult_converted', 'total_clients', 'prebooks')
ENTRY_SUM_FIELDS = ENTRY_FLOAT_FIELDS + ENTRY_COUNT_FIELDS


@dataclass
class DailyEntry(Record):
    """One employee's activity for one calendar day."""

    employee_id: str
    date: Optional[dt.date] = None
    status: str = STATUS_ACTIVE
    hours_worked: float = 0
    hours_booked: float = 0
    service_revenue: float = 0
    retail_sales: float = 0
    new_clients: int = 0
    consults: int = 0
    consult_converted: int = 0
    total_clients: int = 0
    prebooks: int = 0
    is_submitted: bool = False
    extras: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    _derived_fields = (
        'productivity_percentage',
        'consult_conversion_percentage',
        'prebook_percentage',
    )

    def __post_init__(self):
        if not self.employee_id:
            raise ValueError("DailyEntry requires an employee_id")
        if self.status not in ENTRY_STATUSES:
            raise ValueError(f"Unknown entry status: {self.status!r}")
        self.date = parse_calendar_date(self.date)
        for name in ENTRY_SUM_FIELDS:
            value = _number(getattr(self, name), name)
            if value < 0:
                raise ValueError(f"{name} cannot be negative (got {value})")
            setattr(self, name, value)
        self.is_submitted = bool(self.is_submitted)

    @property
    def productivity_percentage(self) -> int:
        return rate_percent(self.hours_booked, self.hours_worked)

    @property
    def consult_conversion_percentage(self) -> int:
        return rate_percent(self.consult_converted, self.consults)

    @property
    def prebook_percentage(self) -> int:
        return rate_percent(self.prebooks, self.total_clients)

    @property
    def total_revenue(self) -> float:
        return self.service_revenue + self.retail_sales

    @property
    def is_counted(self) -> bool:
        """Only active, submitted entries contribute to any aggregation."""
        return self.status == STATUS_ACTIVE and self.is_submitted


@dataclass
class DailySubmission(Record):
    """All entries of one division for one date. Identity: (division_id, date)."""

    division_id: str
    date: dt.date
    is_complete: bool = False
    entries: List[DailyEntry] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        self.date = parse_calendar_date(self.date)
        entries = []
        for entry in self.entries or []:
            if not isinstance(entry, DailyEntry):
                entry = DailyEntry.from_dict(entry)
            if entry.date is None:
                entry.date = self.date
            entries.append(entry)
        self.entries = entries


# =============================================================================
# MONTHLY SCORECARDS
# =============================================================================

METRIC_FIELDS = (
    'productivity_rate',
    'prebook_rate',
    'first_time_retention_rate',
    'repeat_retention_rate',
    'retail_percentage',
    'new_clients',
    'average_ticket',
    'service_sales_per_hour',
    'clients_retail_percentage',
    'hours_sold',
    'happiness_score',
    'net_cash_percentage',
)


class PeriodRecord(Record):
    """Records keyed by a (month, year) period."""

    def _normalize_period(self):
        self.month = normalize_month(self.month)
        self.year = int(self.year)


@dataclass
class KPIData(PeriodRecord):
    """One division's monthly scorecard. Identity: (division_id, month, year)."""

    division_id: str
    month: str
    year: int
    productivity_rate: float = 0
    prebook_rate: float = 0
    first_time_retention_rate: float = 0
    repeat_retention_rate: float = 0
    retail_percentage: float = 0
    new_clients: float = 0
    average_ticket: float = 0
    service_sales_per_hour: float = 0
    clients_retail_percentage: float = 0
    hours_sold: float = 0
    happiness_score: float = 0
    # Currency amount (70% of revenue) despite the name
    net_cash_percentage: float = 0
    # Raw monthly totals, present when produced from daily submissions
    hours_worked: Optional[float] = None
    hours_booked: Optional[float] = None
    service_revenue: Optional[float] = None
    retail_sales: Optional[float] = None
    consults: Optional[float] = None
    consult_converted: Optional[float] = None
    total_clients: Optional[float] = None
    prebooks: Optional[float] = None
    extras: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        self._normalize_period()

    @classmethod
    def zero(cls, division_id: str, month, year: int) -> 'KPIData':
        return cls(division_id=division_id, month=month, year=year)


@dataclass
class EmployeeKPIData(PeriodRecord):
    """One employee's monthly scorecard. Identity: (employee_id, month, year)."""

    employee_id: str
    division_id: str
    month: str
    year: int
    productivity_rate: float = 0
    prebook_rate: float = 0
    first_time_retention_rate: float = 0
    repeat_retention_rate: float = 0
    retail_percentage: float = 0
    new_clients: float = 0
    average_ticket: float = 0
    service_sales_per_hour: float = 0
    clients_retail_percentage: float = 0
    hours_sold: float = 0
    happiness_score: float = 0
    net_cash_percentage: float = 0
    attendance_rate: float = 0
    training_hours: float = 0
    customer_satisfaction_score: float = 0
    location_id: Optional[str] = None
    entered_by: Optional[str] = None
    entered_at: Optional[dt.datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[dt.datetime] = None
    notes: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        self._normalize_period()
        self._normalize_timestamps('entered_at', 'approved_at')


# =============================================================================
# TARGETS
# =============================================================================

@dataclass
class KPITarget(PeriodRecord):
    """Division targets. Identity: (division_id, month, year); period optional."""

    division_id: str
    month: Optional[str] = None
    year: Optional[int] = None
    productivity_rate: float = 0
    prebook_rate: float = 0
    first_time_retention_rate: float = 0
    repeat_retention_rate: float = 0
    retail_percentage: float = 0
    new_clients: float = 0
    average_ticket: float = 0
    service_sales_per_hour: float = 0
    clients_retail_percentage: float = 0
    hours_sold: float = 0
    happiness_score: float = 0
    net_cash_percentage: float = 0
    extras: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        if self.month is not None:
            self.month = normalize_month(self.month)
        if self.year is not None:
            self.year = int(self.year)

    def applies_to(self, month, year: int) -> bool:
        """A target without a period is a standing target for every month."""
        if self.month is None or self.year is None:
            return True
        return self.month == normalize_month(month) and self.year == int(year)


@dataclass
class EmployeeTarget(PeriodRecord):
    """Employee targets. Identity: (employee_id, month, year)."""

    employee_id: str
    division_id: str
    month: str
    year: int
    scheduled_hours: float = 0
    productivity_rate: float = 0
    service_sales: float = 0
    retail_sales: float = 0
    service_sales_per_hour: float = 0
    prebook_rate: float = 0
    first_time_retention_rate: float = 0
    repeat_retention_rate: float = 0
    retail_percentage: float = 0
    new_clients: float = 0
    average_ticket: float = 0
    clients_retail_percentage: float = 0
    hours_sold: float = 0
    happiness_score: float = 0
    net_cash_percentage: float = 0
    attendance_rate: float = 0
    training_hours: float = 0
    customer_satisfaction_score: float = 0
    location_id: Optional[str] = None
    set_by: Optional[str] = None
    set_at: Optional[dt.datetime] = None
    extras: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        self._normalize_period()
        self._normalize_timestamps('set_at')


# =============================================================================
# DIRECTORY
# =============================================================================

@dataclass
class Employee(Record):
    id: str
    name: str = ''
    division_id: str = ''
    position: str = ''
    email: str = ''
    hire_date: Optional[dt.datetime] = None
    is_active: bool = True
    category: Optional[str] = None
    primary_location: Optional[str] = None
    locations: List[str] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        self._normalize_timestamps('hire_date')


@dataclass
class Division(Record):
    id: str
    name: str = ''
    color: str = DEFAULT_DIVISION_COLOR
    extras: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass
class HormoneUnit(Record):
    unit_id: str
    unit_name: str = ''
    np_ids: List[str] = field(default_factory=list)
    specialist_ids: List[str] = field(default_factory=list)
    patient_care_specialist_id: Optional[str] = None
    admin_team_member_id: Optional[str] = None
    guest_care_id: Optional[str] = None
    location: str = ''
    custom_staff_members: List[str] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def staff_count(self) -> int:
        single_seats = [
            self.patient_care_specialist_id,
            self.admin_team_member_id,
            self.guest_care_id,
        ]
        return len(self.np_ids) + len(self.specialist_ids) + sum(1 for seat in single_seats if seat)


@dataclass
class RevenueProjection(PeriodRecord):
    """Monthly revenue goal for an employee or a hormone unit."""

    month: str
    year: int
    employee_id: Optional[str] = None
    unit_id: Optional[str] = None
    scheduled_hours: float = 0
    estimated_productivity: float = 0
    service_sales_per_hour: float = 0
    retail_percentage: float = 0
    effective_hours: float = 0
    projected_service_revenue: float = 0
    projected_retail_revenue: float = 0
    total_revenue_goal: float = 0
    is_submitted: bool = False
    submitted_at: Optional[dt.datetime] = None
    submitted_by: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        self._normalize_period()
        self._normalize_timestamps('submitted_at')


# =============================================================================
# DASHBOARD OUTPUT
# =============================================================================

@dataclass
class DashboardMetrics(Record):
    """Company-wide snapshot plus the six-month productivity trend."""

    company_sales: float = 0
    company_productivity: int = 0
    hours_worked: float = 0
    hours_booked: float = 0
    service_revenue: float = 0
    retail_sales: float = 0
    new_clients: float = 0
    consults: float = 0
    consult_converted: float = 0
    divisions: List[Dict[str, Any]] = field(default_factory=list)
    trend_data: List[Dict[str, Any]] = field(default_factory=list)
    is_degraded: bool = False

    @classmethod
    def empty(cls) -> 'DashboardMetrics':
        """Zeroed snapshot shown when composition fails."""
        return cls(is_degraded=True)
