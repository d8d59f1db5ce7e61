# clinic_dashboard/scorecard/__init__.py
"""
Clinic Scorecard Module

Monthly KPI scorecards derived from daily activity entries.

Components:
- models: Record types (daily entries, scorecards, targets, directory)
- aggregator: Daily submissions -> division / employee scorecards
- upsert: Replace-by-key collection updates
- store: Persisted collections with change notifications
- composer: Company dashboard snapshot and trend
- service: Keeps scorecards in step with submissions
- scoring: Score levels, colors and display formatting
- charts: Altair visualizations
- export: Formatted Excel report generation

Usage:
    from clinic_dashboard.scorecard import (
        KPIStore,
        SQLBackend,
        DashboardService,
        aggregate_division,
        aggregate_employees,
        compose_dashboard,
    )
"""

from .models import (
    DailyEntry,
    DailySubmission,
    KPIData,
    EmployeeKPIData,
    KPITarget,
    EmployeeTarget,
    Employee,
    Division,
    HormoneUnit,
    RevenueProjection,
    DashboardMetrics,
)
from .aggregator import (
    entries_frame,
    daily_metrics,
    aggregate_division,
    aggregate_employees,
    aggregate_month,
)
from .upsert import (
    MissingKeyError,
    upsert,
    upsert_many,
    find_record,
    remove_record,
    replace_period,
    KEY_FUNCTIONS,
)
from .store import KPIStore, StorageBackend, MemoryBackend, SQLBackend
from .composer import DashboardComposer, compose_dashboard
from .service import DashboardService
from .scoring import (
    score_level,
    score_color,
    score_percentage,
    score_summary,
    format_currency,
    format_percentage,
    format_number,
)
from .charts import ScorecardCharts
from .export import ScorecardExport

# Constants
from .constants import (
    ALL_DIVISIONS,
    DEFAULT_DIVISIONS,
    KPI_FIELDS,
    SCORE_COLORS,
    MONTH_ORDER,
)

__all__ = [
    # Records
    'DailyEntry',
    'DailySubmission',
    'KPIData',
    'EmployeeKPIData',
    'KPITarget',
    'EmployeeTarget',
    'Employee',
    'Division',
    'HormoneUnit',
    'RevenueProjection',
    'DashboardMetrics',

    # Aggregation
    'entries_frame',
    'daily_metrics',
    'aggregate_division',
    'aggregate_employees',
    'aggregate_month',

    # Upsert
    'MissingKeyError',
    'upsert',
    'upsert_many',
    'find_record',
    'remove_record',
    'replace_period',
    'KEY_FUNCTIONS',

    # Classes
    'KPIStore',
    'StorageBackend',
    'MemoryBackend',
    'SQLBackend',
    'DashboardComposer',
    'compose_dashboard',
    'DashboardService',
    'ScorecardCharts',
    'ScorecardExport',

    # Scoring
    'score_level',
    'score_color',
    'score_percentage',
    'score_summary',
    'format_currency',
    'format_percentage',
    'format_number',

    # Constants
    'ALL_DIVISIONS',
    'DEFAULT_DIVISIONS',
    'KPI_FIELDS',
    'SCORE_COLORS',
    'MONTH_ORDER',
]

__version__ = '1.0.0'
