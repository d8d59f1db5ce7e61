# clinic_dashboard/scorecard/upsert.py
"""
Replace-by-key collection updates.

Every "set/update X" operation of the dashboard goes through `upsert`:
remove whatever shares the new record's natural key, append the new record.
Collections are never mutated in place; each call returns a new list.
"""

import logging
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

from .constants import (
    EMPLOYEES,
    EMPLOYEE_KPI_DATA,
    KPI_DATA,
    KPI_TARGETS,
    EMPLOYEE_TARGETS,
    HORMONE_UNITS,
    DAILY_SUBMISSIONS,
    REVENUE_PROJECTIONS,
    DIVISIONS,
)
from .helpers import normalize_month, parse_calendar_date

logger = logging.getLogger(__name__)

KeyFn = Callable[[Any], Tuple]


class MissingKeyError(ValueError):
    """Raised when a record lacks the fields that make up its natural key."""


# =============================================================================
# KEY FUNCTIONS
# =============================================================================

def _field(record: Any, *names: str) -> Any:
    """Read the first present attribute/key among names (snake_case or camelCase)."""
    for name in names:
        if isinstance(record, dict):
            if name in record:
                return record[name]
        elif hasattr(record, name):
            return getattr(record, name)
    return None


def _require(record: Any, label: str, *names: str) -> Any:
    value = _field(record, *names)
    if value is None or value == '':
        raise MissingKeyError(f"Record is missing key field '{label}': {record!r}")
    return value


def _month(record: Any) -> str:
    value = _require(record, 'month', 'month')
    try:
        return normalize_month(value)
    except ValueError as e:
        raise MissingKeyError(str(e)) from e


def _year(record: Any) -> int:
    value = _require(record, 'year', 'year')
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise MissingKeyError(f"Invalid year: {value!r}") from e


def kpi_key(record) -> Tuple:
    return (_require(record, 'divisionId', 'division_id', 'divisionId'), _month(record), _year(record))


def employee_kpi_key(record) -> Tuple:
    return (_require(record, 'employeeId', 'employee_id', 'employeeId'), _month(record), _year(record))


def employee_target_key(record) -> Tuple:
    return (_require(record, 'employeeId', 'employee_id', 'employeeId'), _month(record), _year(record))


def kpi_target_key(record) -> Tuple:
    """Division target key; a target without month/year is the standing target."""
    division_id = _require(record, 'divisionId', 'division_id', 'divisionId')
    month = _field(record, 'month')
    year = _field(record, 'year')
    if month in (None, '') or year in (None, ''):
        return (division_id, None, None)
    return (division_id, _month(record), _year(record))


def submission_key(record) -> Tuple:
    division_id = _require(record, 'divisionId', 'division_id', 'divisionId')
    try:
        day = parse_calendar_date(_require(record, 'date', 'date'))
    except ValueError as e:
        raise MissingKeyError(f"Invalid submission date: {e}") from e
    return (division_id, day)


def employee_key(record) -> Tuple:
    return (_require(record, 'id', 'id'),)


def division_key(record) -> Tuple:
    return (_require(record, 'id', 'id'),)


def hormone_unit_key(record) -> Tuple:
    return (_require(record, 'unitId', 'unit_id', 'unitId'),)


def projection_key(record) -> Tuple:
    """Projection for an employee or a hormone unit in one month."""
    owner = _field(record, 'employee_id', 'employeeId')
    kind = 'employee'
    if owner in (None, ''):
        owner = _require(record, 'employeeId|unitId', 'unit_id', 'unitId')
        kind = 'unit'
    return (kind, owner, _month(record), _year(record))


KEY_FUNCTIONS: Dict[str, KeyFn] = {
    KPI_DATA: kpi_key,
    EMPLOYEE_KPI_DATA: employee_kpi_key,
    DAILY_SUBMISSIONS: submission_key,
    EMPLOYEE_TARGETS: employee_target_key,
    KPI_TARGETS: kpi_target_key,
    EMPLOYEES: employee_key,
    DIVISIONS: division_key,
    HORMONE_UNITS: hormone_unit_key,
    REVENUE_PROJECTIONS: projection_key,
}


def _safe_key(record, key_fn: KeyFn) -> Optional[Hashable]:
    """Key of an existing element; None when the element itself is unkeyed."""
    try:
        return key_fn(record)
    except MissingKeyError:
        return None


# =============================================================================
# COLLECTION OPERATIONS
# =============================================================================

def upsert(collection: Sequence, record, key_fn: KeyFn) -> List:
    """
    Insert record, replacing every element with the same key.

    Args:
        collection: Current records (not modified)
        record: Record to write
        key_fn: Natural key function for this collection

    Returns:
        New list with at most one element per key; record is last.

    Raises:
        MissingKeyError: record has no usable key; nothing is written.
    """
    key = key_fn(record)
    kept = [item for item in collection if _safe_key(item, key_fn) != key]
    replaced = len(collection) - len(kept)
    if replaced:
        logger.debug(f"Upsert {key}: replaced {replaced} record(s)")
    kept.append(record)
    return kept


def upsert_many(collection: Sequence, records: Iterable, key_fn: KeyFn) -> List:
    """Upsert each record in order. All keys are checked before any write."""
    records = list(records)
    for record in records:
        key_fn(record)
    result = list(collection)
    for record in records:
        result = upsert(result, record, key_fn)
    return result


def find_record(collection: Iterable, key: Tuple, key_fn: KeyFn):
    """Return the element with the given key, or None."""
    for item in collection:
        if _safe_key(item, key_fn) == key:
            return item
    return None


def remove_record(collection: Sequence, key: Tuple, key_fn: KeyFn) -> List:
    return [item for item in collection if _safe_key(item, key_fn) != key]


def replace_period(collection: Sequence, records: Iterable, month, year: int) -> List:
    """
    Drop every record of (month, year) and append the new ones.

    Used to refresh re-derived employee scorecards for a month in one step.
    """
    month = normalize_month(month)
    year = int(year)
    records = list(records)

    def _in_period(item) -> bool:
        item_month = _field(item, 'month')
        item_year = _field(item, 'year')
        if item_month in (None, '') or item_year in (None, ''):
            return False
        try:
            return normalize_month(item_month) == month and int(item_year) == year
        except (TypeError, ValueError):
            return False

    kept = [item for item in collection if not _in_period(item)]
    logger.debug(
        f"Replacing period {month}/{year}: dropped {len(collection) - len(kept)}, "
        f"added {len(records)}"
    )
    return kept + records
