# clinic_dashboard/scorecard/store.py
"""
Persisted Collections for the Clinic Scorecard

KPIStore holds every collection in memory as record objects and writes
them through a pluggable StorageBackend as JSON text, one key per
collection. It is passed explicitly to whoever needs it; there is no
module-level instance.

Reads never fail: missing keys, undecodable text and malformed records
fall back to empty values with a warning. Writes are best effort and
report success as a bool.

Usage:
    store = KPIStore(SQLBackend(get_db_engine()))
    store.load()
    unsubscribe = store.subscribe(lambda key: print(key, "changed"))
    store.upsert(KPI_DATA, kpi)
"""

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import Column, DateTime, MetaData, String, Table, Text, select, delete, insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..db import get_transaction, get_connection
from . import codec
from .constants import (
    EMPLOYEES,
    EMPLOYEE_KPI_DATA,
    KPI_DATA,
    KPI_TARGETS,
    EMPLOYEE_TARGETS,
    HORMONE_UNITS,
    DAILY_SUBMISSIONS,
    SCHEDULED_HOURS,
    REVENUE_PROJECTIONS,
    DIVISIONS,
    COLLECTION_KEYS,
    MAP_KEYS,
    VERSION_KEY,
)
from .helpers import normalize_month
from .models import (
    DailySubmission,
    Division,
    Employee,
    EmployeeKPIData,
    EmployeeTarget,
    HormoneUnit,
    KPIData,
    KPITarget,
    RevenueProjection,
)
from .upsert import KEY_FUNCTIONS, upsert as upsert_record, replace_period as replace_period_records

logger = logging.getLogger(__name__)

# Collections with a record type; the rest are kept as plain dicts
COLLECTION_MODELS = {
    EMPLOYEES: Employee,
    EMPLOYEE_KPI_DATA: EmployeeKPIData,
    KPI_DATA: KPIData,
    KPI_TARGETS: KPITarget,
    EMPLOYEE_TARGETS: EmployeeTarget,
    HORMONE_UNITS: HormoneUnit,
    DAILY_SUBMISSIONS: DailySubmission,
    REVENUE_PROJECTIONS: RevenueProjection,
    DIVISIONS: Division,
}

Listener = Callable[[str], None]


def scheduled_hours_key(employee_id: str, month, year: int) -> str:
    """Map key '<employeeId>-<month>-<year>' of the scheduled hours map."""
    return f"{employee_id}-{normalize_month(month)}-{int(year)}"


# =============================================================================
# BACKENDS
# =============================================================================

class StorageBackend:
    """Key -> text storage. Subclasses raise on I/O failure; KPIStore handles it."""

    def read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def write(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError


class MemoryBackend(StorageBackend):
    """Dict-backed storage for tests and throwaway sessions."""

    def __init__(self, initial: Dict[str, str] = None):
        self._items = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def write(self, key: str, value: str) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items)


class SQLBackend(StorageBackend):
    """
    SQLAlchemy-backed storage: one `kv_store` row per collection.

    Writes replace the row (delete + insert) inside one transaction.
    """

    def __init__(self, engine: Engine, table_name: str = 'kv_store'):
        self.engine = engine
        self.metadata = MetaData()
        self.table = Table(
            table_name,
            self.metadata,
            Column('key', String(128), primary_key=True),
            Column('value', Text, nullable=False),
            Column('updated_at', DateTime, nullable=False),
        )
        self.metadata.create_all(engine)

    def read(self, key: str) -> Optional[str]:
        with get_connection(self.engine) as conn:
            row = conn.execute(
                select(self.table.c.value).where(self.table.c.key == key)
            ).first()
        return row[0] if row else None

    def write(self, key: str, value: str) -> None:
        with get_transaction(self.engine) as conn:
            conn.execute(delete(self.table).where(self.table.c.key == key))
            conn.execute(
                insert(self.table).values(
                    key=key,
                    value=value,
                    updated_at=datetime.now(timezone.utc).replace(tzinfo=None),
                )
            )

    def delete(self, key: str) -> None:
        with get_transaction(self.engine) as conn:
            conn.execute(delete(self.table).where(self.table.c.key == key))

    def keys(self) -> List[str]:
        with get_connection(self.engine) as conn:
            return [row[0] for row in conn.execute(select(self.table.c.key))]


# =============================================================================
# STORE
# =============================================================================

class KPIStore:
    """
    In-memory collections with write-through persistence and change
    notifications.

    Collections in COLLECTION_MODELS hold record objects; other array
    collections hold plain dicts; scheduledHours is a dict of hours.
    """

    def __init__(self, backend: StorageBackend = None):
        self.backend = backend if backend is not None else MemoryBackend()
        self._data: Dict[str, Any] = {key: [] for key in COLLECTION_KEYS}
        self._data[SCHEDULED_HOURS] = {}
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load(self) -> 'KPIStore':
        """Read every collection from the backend, replacing memory state."""
        with self._lock:
            for key in COLLECTION_KEYS + MAP_KEYS:
                self._data[key] = self._read_key(key)

        logger.info(
            f"Store loaded: "
            + ", ".join(f"{key}={len(self._data[key])}" for key in COLLECTION_KEYS + MAP_KEYS)
        )
        return self

    def _read_key(self, key: str):
        is_map = key in MAP_KEYS
        empty = {} if is_map else []

        try:
            text = self.backend.read(key)
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"Could not read '{key}' from store: {e}")
            return empty

        if text is None or text == '':
            return empty

        try:
            value = codec.loads(text)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning(f"Stored '{key}' is not valid JSON, using empty default: {e}")
            return empty

        value = self._unwrap(value)

        if is_map:
            if not isinstance(value, dict):
                logger.warning(f"Stored '{key}' is not an object, using empty default")
                return empty
            return self._parse_hours(key, value)

        if not isinstance(value, list):
            logger.warning(f"Stored '{key}' is not an array, using empty default")
            return empty
        return self._parse_records(key, value)

    @staticmethod
    def _unwrap(value: Any) -> Any:
        """Strip the {_version, data, timestamp} envelope when present."""
        if isinstance(value, dict) and VERSION_KEY in value and 'data' in value:
            return value['data']
        return value

    @staticmethod
    def _parse_hours(key: str, value: Dict) -> Dict[str, float]:
        hours = {}
        for name, amount in value.items():
            if isinstance(amount, bool) or not isinstance(amount, (int, float)):
                logger.warning(f"Skipping non-numeric {key} entry {name!r}: {amount!r}")
                continue
            hours[name] = amount
        return hours

    @staticmethod
    def _parse_records(key: str, items: Iterable) -> List:
        model = COLLECTION_MODELS.get(key)
        records = []
        skipped = 0

        for item in items:
            if model is None:
                if isinstance(item, dict):
                    records.append(item)
                else:
                    skipped += 1
                continue
            try:
                records.append(model.from_dict(item))
            except (ValueError, TypeError) as e:
                skipped += 1
                logger.debug(f"Malformed {key} record: {e}")

        if skipped:
            logger.warning(f"Skipped {skipped} malformed record(s) in '{key}'")
        return records

    # -------------------------------------------------------------------------
    # Saving
    # -------------------------------------------------------------------------

    def _serialize(self, key: str) -> str:
        value = self._data[key]
        if key in MAP_KEYS:
            return codec.dumps(value)
        return codec.dumps([item.to_dict() if hasattr(item, 'to_dict') else item for item in value])

    def save(self, key: str = None) -> bool:
        """
        Write one collection (or all of them) to the backend.

        Returns:
            True if every write succeeded
        """
        keys = [key] if key else COLLECTION_KEYS + MAP_KEYS
        ok = True

        with self._lock:
            for name in keys:
                try:
                    self.backend.write(name, self._serialize(name))
                except (SQLAlchemyError, OSError, TypeError, ValueError) as e:
                    logger.error(f"Failed to save '{name}': {e}")
                    ok = False

        return ok

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def _check_key(self, key: str):
        if key not in self._data:
            raise KeyError(f"Unknown collection: {key}")

    def _coerce(self, key: str, record):
        model = COLLECTION_MODELS.get(key)
        if model is None or isinstance(record, model):
            return record
        return model.from_dict(record)

    def get(self, key: str) -> List:
        """Copy of a collection (or of the scheduled hours map)."""
        self._check_key(key)
        with self._lock:
            value = self._data[key]
            return dict(value) if key in MAP_KEYS else list(value)

    def set(self, key: str, records) -> bool:
        """Replace a whole collection, persist it and notify listeners."""
        self._check_key(key)
        if key in MAP_KEYS:
            value = dict(records or {})
        else:
            value = [self._coerce(key, record) for record in records or []]

        with self._lock:
            self._data[key] = value
            saved = self.save(key)

        self._notify(key)
        return saved

    def upsert(self, key: str, record) -> bool:
        """
        Replace-by-key write of one record.

        Raises:
            MissingKeyError: record has no usable key; nothing changes.
        """
        self._check_key(key)
        key_fn = KEY_FUNCTIONS[key]
        # checked on the raw record so dict input fails with the same error
        key_fn(record)
        record = self._coerce(key, record)
        with self._lock:
            updated = upsert_record(self._data[key], record, key_fn)
        return self.set(key, updated)

    def replace_period(self, key: str, records: Iterable, month, year: int) -> bool:
        """Swap every record of (month, year) in a collection for records."""
        self._check_key(key)
        records = [self._coerce(key, record) for record in records]
        with self._lock:
            updated = replace_period_records(self._data[key], records, month, year)
        return self.set(key, updated)

    # -------------------------------------------------------------------------
    # Scheduled hours
    # -------------------------------------------------------------------------

    def scheduled_hours(self) -> Dict[str, float]:
        return self.get(SCHEDULED_HOURS)

    def get_scheduled_hours(self, employee_id: str, month, year: int) -> float:
        with self._lock:
            return self._data[SCHEDULED_HOURS].get(scheduled_hours_key(employee_id, month, year), 0)

    def set_scheduled_hours(self, employee_id: str, month, year: int, hours: float) -> bool:
        if hours is None or hours < 0:
            raise ValueError(f"Scheduled hours must be non-negative, got {hours!r}")
        with self._lock:
            updated = dict(self._data[SCHEDULED_HOURS])
        updated[scheduled_hours_key(employee_id, month, year)] = hours
        return self.set(SCHEDULED_HOURS, updated)

    # -------------------------------------------------------------------------
    # Change notifications
    # -------------------------------------------------------------------------

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """
        Call callback(key) after every change to a collection.

        Returns:
            Function that removes the subscription
        """
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, key: str):
        for listener in list(self._listeners):
            try:
                listener(key)
            except Exception as e:
                logger.error(f"Store listener failed for '{key}': {e}", exc_info=True)
