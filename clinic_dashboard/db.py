# clinic_dashboard/db.py
"""
Database Connection Management

Version: 1.0.0
Features:
- Singleton engine with thread-safe double-checked locking
- SQLite (file or in-memory) and server databases from one URL
- Health check utilities
- Connection and transaction context managers
"""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.exc import OperationalError
import logging
import threading
from typing import Tuple, Optional
from contextlib import contextmanager

from .config import config

logger = logging.getLogger(__name__)

# ==================== SINGLETON ENGINE ====================

_engine = None
_engine_lock = threading.Lock()


def get_db_engine() -> Engine:
    """
    Get SQLAlchemy database engine (singleton pattern)

    Thread-safe implementation using double-checked locking.
    Streamlit reruns share the same engine across sessions.

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = create_store_engine(config.get_store_config()["url"])

    return _engine


def create_store_engine(url: str, pool_size: int = None, pool_recycle: int = None) -> Engine:
    """
    Create a new engine for the given URL.

    In-memory SQLite gets a StaticPool so every connection sees the
    same database; file SQLite and server URLs use the default pool.
    """
    store_config = config.get_store_config()
    pool_size = pool_size or store_config["pool_size"]
    pool_recycle = pool_recycle or store_config["pool_recycle"]

    safe_url = url.split("@")[-1] if "@" in url else url
    logger.info(f"🔌 Creating store engine: {safe_url}")

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)

    engine = create_engine(
        url,
        pool_size=pool_size,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,  # Auto-reconnect on stale connections
        echo=False
    )

    logger.info(f"✅ Store engine created (pool_size={pool_size}, recycle={pool_recycle}s)")

    return engine


# ==================== CONNECTION MANAGEMENT ====================

def check_db_connection(engine: Engine = None) -> Tuple[bool, Optional[str]]:
    """
    Check if database connection is healthy

    Returns:
        Tuple of (is_connected: bool, error_message: str or None)
    """
    try:
        engine = engine or get_db_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, None
    except OperationalError as e:
        logger.error(f"❌ Store connection failed: {e}")
        return False, "Cannot open the data store. Please check STORE_URL."
    except Exception as e:
        logger.error(f"❌ Store error: {e}")
        return False, f"Store error: {str(e)}"


def reset_db_engine():
    """
    Reset the database engine (force new connection)

    Call this after persistent connection errors or
    when you need to reconnect with different settings.
    """
    global _engine

    with _engine_lock:
        if _engine is not None:
            try:
                _engine.dispose()
                logger.info("🔄 Store engine disposed")
            except Exception as e:
                logger.error(f"Error disposing engine: {e}")
            _engine = None

    logger.info("🔄 Store engine reset - will reconnect on next query")


# ==================== CONTEXT MANAGERS ====================

@contextmanager
def get_connection(engine: Engine = None):
    """
    Context manager for database connections

    Usage:
        with get_connection() as conn:
            result = conn.execute(text("SELECT * FROM table"))
    """
    engine = engine or get_db_engine()
    conn = engine.connect()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def get_transaction(engine: Engine = None):
    """
    Context manager for database transactions

    Usage:
        with get_transaction() as conn:
            conn.execute(text("DELETE FROM ..."))
            conn.execute(text("INSERT INTO ..."))
            # Auto-commit on success, auto-rollback on exception
    """
    engine = engine or get_db_engine()
    conn = engine.connect()
    trans = conn.begin()
    try:
        yield conn
        trans.commit()
    except Exception:
        trans.rollback()
        raise
    finally:
        conn.close()


# ==================== EXPORTS ====================

__all__ = [
    'get_db_engine',
    'create_store_engine',
    'check_db_connection',
    'reset_db_engine',
    'get_connection',
    'get_transaction',
]
