# clinic_dashboard/scorecard/scoring.py
"""
Scoring and Formatting Utilities

Pure helpers used by scorecards, reports and dashboard cards:
- score_level / score_color / score_percentage: actual vs target
- format_currency / format_percentage / format_number: display strings
"""

import logging
import math
from typing import Dict, Optional, Union

from .constants import SCORE_THRESHOLDS, LOWEST_SCORE_LEVEL, SCORE_COLORS
from .helpers import round_half_up

logger = logging.getLogger(__name__)

Number = Union[int, float]


def _is_missing(value) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def score_percentage(value: Number, target: Number) -> int:
    """
    Actual as a whole-number percentage of target.

    Not capped above 100. A missing or non-positive target scores 0.
    """
    if _is_missing(value) or _is_missing(target) or target <= 0:
        return 0
    return round_half_up(value / target * 100)


def score_level(value: Number, target: Number) -> str:
    """
    Qualitative level for actual vs target.

    >= 95% excellent, >= 80% good, >= 60% warning, otherwise poor.
    """
    if _is_missing(value) or _is_missing(target) or target <= 0:
        return LOWEST_SCORE_LEVEL

    percentage = value / target * 100
    for level, threshold in SCORE_THRESHOLDS:
        if percentage >= threshold:
            return level
    return LOWEST_SCORE_LEVEL


def score_color(level: str) -> str:
    """Hex color token for a score level."""
    try:
        return SCORE_COLORS[level]
    except KeyError:
        raise ValueError(f"Unknown score level: {level!r}")


def score_summary(value: Number, target: Number) -> Dict:
    """Level, color and percentage of target in one dict."""
    level = score_level(value, target)
    return {
        'level': level,
        'color': score_color(level),
        'percentage': score_percentage(value, target),
    }


def format_currency(amount: Optional[Number]) -> str:
    """
    Format amount as whole US dollars, e.g. 1234.5 -> '$1,235'.

    Halves round away from zero; missing values render as '-'.
    """
    if _is_missing(amount):
        return "-"
    try:
        whole = round_half_up(abs(float(amount)))
    except (TypeError, ValueError):
        return "-"
    sign = "-" if amount < 0 and whole else ""
    return f"{sign}${whole:,}"


def format_percentage(value: Optional[Number], decimals: int = 1) -> str:
    """Format a 0-100 percentage value, e.g. 83 -> '83.0%'."""
    if _is_missing(value):
        return "-"
    try:
        return f"{float(value):.{decimals}f}%"
    except (TypeError, ValueError):
        return "-"


def format_number(value: Optional[Number], decimals: int = 0) -> str:
    """Format number with thousand separators."""
    if _is_missing(value):
        return "-"
    try:
        if decimals == 0:
            return f"{round_half_up(float(value)):,}"
        return f"{float(value):,.{decimals}f}"
    except (TypeError, ValueError):
        return "-"
