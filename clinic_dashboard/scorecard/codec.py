# clinic_dashboard/scorecard/codec.py
"""
JSON codec for persisted collections.

Timestamps are written the way browsers write them
(`YYYY-MM-DDTHH:MM:SS.sssZ`, UTC) and revived to aware datetimes on read;
calendar dates are plain `YYYY-MM-DD` strings and stay strings until a
record type parses them.
"""

import json
from datetime import date, datetime, timezone
from typing import Any, Optional

from .constants import ISO_DATETIME_PATTERN


def format_timestamp(value: datetime) -> str:
    """UTC timestamp with millisecond precision; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(text: str) -> datetime:
    if text.endswith('Z'):
        text = text[:-1]
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_utc(value: Any) -> Optional[datetime]:
    """
    Bring a record timestamp to its persisted form: aware UTC at millisecond
    precision. Naive values are taken as UTC; strings and plain dates are parsed.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = parse_timestamp(value)
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    elif not isinstance(value, datetime):
        raise ValueError(f"Expected a timestamp, got {value!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def _default(value: Any):
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    # numpy scalars
    if hasattr(value, 'item'):
        return value.item()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def revive_dates(value: Any) -> Any:
    """Walk decoded JSON and turn timestamp strings back into datetimes."""
    if isinstance(value, str):
        if ISO_DATETIME_PATTERN.match(value):
            try:
                return parse_timestamp(value)
            except ValueError:
                return value
        return value
    if isinstance(value, list):
        return [revive_dates(item) for item in value]
    if isinstance(value, dict):
        return {key: revive_dates(item) for key, item in value.items()}
    return value


def dumps(value: Any) -> str:
    return json.dumps(value, default=_default)


def loads(text: str) -> Any:
    return revive_dates(json.loads(text))
