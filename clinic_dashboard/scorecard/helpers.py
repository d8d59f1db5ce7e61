# clinic_dashboard/scorecard/helpers.py
"""
Small numeric and calendar helpers shared by the aggregator,
composer and scoring utilities.
"""

import math
from datetime import date, datetime
from typing import Optional, Tuple, Union

from .constants import MONTH_MAPPING


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity (Math.round)."""
    return int(math.floor(value + 0.5))


def safe_divide(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0 when the denominator is not positive."""
    if not denominator or denominator <= 0:
        return 0
    return numerator / denominator


def rate_percent(numerator: float, denominator: float) -> int:
    """Whole-number percentage of two totals, clamped to 0-100."""
    if not denominator or denominator <= 0:
        return 0
    return min(max(round_half_up(100 * numerator / denominator), 0), 100)


def normalize_month(month: Union[int, str]) -> str:
    """Return month as a two-digit string "01".."12"."""
    try:
        number = int(month)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid month: {month!r}")
    if not 1 <= number <= 12:
        raise ValueError(f"Month out of range: {month!r}")
    return f"{number:02d}"


def parse_calendar_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Parse a calendar day from 'YYYY-MM-DD', an ISO timestamp or a date object."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    return date.fromisoformat(text[:10])


def in_month(day: Optional[date], month: Union[int, str], year: int) -> bool:
    if day is None:
        return False
    return day.month == int(month) and day.year == int(year)


def shift_month(month: Union[int, str], year: int, offset: int) -> Tuple[int, int]:
    """Move (month, year) by offset months; returns (month, year) as ints."""
    index = int(year) * 12 + (int(month) - 1) + offset
    return index % 12 + 1, index // 12


def month_label(month: Union[int, str], year: int) -> str:
    """Short label such as 'Jan 2025'."""
    return f"{MONTH_MAPPING[int(month)]} {int(year)}"
