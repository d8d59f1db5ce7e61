# clinic_dashboard/__init__.py
"""
Shared Package for the Clinic Dashboard

This package contains common utilities shared across all pages:
- config: Configuration management (local + Streamlit Cloud)
- db: Store engine management with pooling
- scorecard: KPI aggregation, persistence and dashboard composition

Usage:
    from clinic_dashboard.config import config
    from clinic_dashboard.db import get_db_engine, check_db_connection
    from clinic_dashboard.scorecard import KPIStore, SQLBackend, DashboardService

    # Or import commonly used items directly
    from clinic_dashboard import config, get_db_engine
"""

# Configuration
from .config import (
    config,
    Config,
    StoreConfig,
    IS_RUNNING_ON_CLOUD,
    STORE_CONFIG,
    APP_CONFIG,
)

# Database
from .db import (
    get_db_engine,
    create_store_engine,
    check_db_connection,
    reset_db_engine,
    get_connection,
    get_transaction,
)

__all__ = [
    # Config
    'config',
    'Config',
    'StoreConfig',
    'IS_RUNNING_ON_CLOUD',
    'STORE_CONFIG',
    'APP_CONFIG',

    # Database
    'get_db_engine',
    'create_store_engine',
    'check_db_connection',
    'reset_db_engine',
    'get_connection',
    'get_transaction',
]

__version__ = '1.0.0'
