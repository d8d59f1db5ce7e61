# clinic_dashboard/scorecard/constants.py
"""
Constants for the Clinic Scorecard Module

Centralized configuration for:
- Storage keys of persisted collections
- Divisions, color schemes and score thresholds
- Aggregation heuristics (fixed estimates used where no signal is captured)
- Chart and export settings
"""

import re

# =====================================================================
# STORAGE KEYS
# =====================================================================

EMPLOYEES = 'employees'
EMPLOYEE_KPI_DATA = 'employeeKPIData'
KPI_DATA = 'kpiData'
KPI_TARGETS = 'kpiTargets'
EMPLOYEE_TARGETS = 'employeeTargets'
HORMONE_UNITS = 'hormoneUnits'
DAILY_SUBMISSIONS = 'dailySubmissions'
SCHEDULED_HOURS = 'scheduledHours'
REVENUE_PROJECTIONS = 'revenueProjections'
PAYROLL_ENTRIES = 'payrollEntries'
DIVISIONS = 'divisions'
ALERTS = 'alerts'

# All array-valued collections; scheduledHours is a map
COLLECTION_KEYS = [
    EMPLOYEES,
    EMPLOYEE_KPI_DATA,
    KPI_DATA,
    KPI_TARGETS,
    EMPLOYEE_TARGETS,
    HORMONE_UNITS,
    DAILY_SUBMISSIONS,
    REVENUE_PROJECTIONS,
    PAYROLL_ENTRIES,
    DIVISIONS,
    ALERTS,
]

MAP_KEYS = [SCHEDULED_HOURS]

# Envelope written by the versioned state manager
VERSION_KEY = '_version'

# ISO-8601 timestamp as produced by JSON.stringify(new Date())
ISO_DATETIME_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{3})?Z?$')

# =====================================================================
# DAILY ENTRY STATUS
# =====================================================================

STATUS_ACTIVE = 'active'
ENTRY_STATUSES = ['active', 'away', 'sick', 'not-booked']

# =====================================================================
# DIVISIONS
# =====================================================================

ALL_DIVISIONS = 'all'

DIVISION_COLORS = {
    'new-patient': '#e6b813',
    'hormone': '#5c6f75',
    'nutrition': '#bfb6d9',
    'iv-therapy': '#91c4ba',
    'laser': '#ff9680',
    'injectables': '#ff6a76',
    'guest-care': '#e6b813',
    'feminine': '#a47d9b',
}

DEFAULT_DIVISION_COLOR = '#f4647d'

DEFAULT_DIVISIONS = [
    {'id': 'new-patient', 'name': 'New Patient', 'color': '#e6b813'},
    {'id': 'hormone', 'name': 'Hormone', 'color': '#5c6f75'},
    {'id': 'nutrition', 'name': 'Nutrition', 'color': '#bfb6d9'},
    {'id': 'iv-therapy', 'name': 'IV Therapy', 'color': '#91c4ba'},
    {'id': 'laser', 'name': 'Laser', 'color': '#ff9680'},
    {'id': 'injectables', 'name': 'Injectables', 'color': '#ff6a76'},
    {'id': 'guest-care', 'name': 'Guest Care', 'color': '#e6b813'},
    {'id': 'feminine', 'name': 'Feminine Health', 'color': '#a47d9b'},
]

HORMONE_DIVISION = 'hormone'

MUTED_TEXT_COLOR = '#6b7280'

# =====================================================================
# SCORING
# =====================================================================

# Minimum percent-of-target for each level, checked in order
SCORE_THRESHOLDS = [
    ('excellent', 95),
    ('good', 80),
    ('warning', 60),
]
LOWEST_SCORE_LEVEL = 'poor'

SCORE_COLORS = {
    'excellent': '#16a34a',
    'good': '#84cc16',
    'warning': '#d97706',
    'poor': '#dc2626',
}

# =====================================================================
# AGGREGATION HEURISTICS
# =====================================================================

# No happiness survey is captured yet
DEFAULT_HAPPINESS_SCORE = 8.5

# Repeat retention estimated from consult conversion
REPEAT_RETENTION_OFFSET = 10

# "netCashPercentage" holds a currency amount: 70% of total revenue
NET_CASH_RATIO = 0.7

# Employee scorecard placeholders
DEFAULT_ATTENDANCE_RATE = 95
DEFAULT_TRAINING_HOURS = 8
DEFAULT_CUSTOMER_SATISFACTION = 9.0
CLIENTS_RETAIL_PLACEHOLDER = 50

# Company-wide fallbacks when no daily data exists
SERVICE_REVENUE_SHARE = 0.7
RETAIL_SALES_SHARE = 0.3
CONSULTS_PER_NEW_CLIENT = 1.5
CONSULT_CONVERSION_ESTIMATE = 0.75

# Scheduling revenue estimate per booked hour
DEFAULT_SERVICE_SALES_PER_HOUR = 150

# =====================================================================
# DASHBOARD
# =====================================================================

TREND_MONTHS = 6
TREND_JITTER = 5
TOP_PERFORMERS_LIMIT = 5
RECENT_SUBMISSIONS_LIMIT = 10

MONTH_ORDER = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"
]

MONTH_MAPPING = {i + 1: name for i, name in enumerate(MONTH_ORDER)}

# =====================================================================
# KPI DEFINITIONS
# =====================================================================

# (field, display name, unit)
KPI_FIELDS = [
    ('productivity_rate', 'Productivity', '%'),
    ('prebook_rate', 'Prebook Rate', '%'),
    ('first_time_retention_rate', 'First-Time Retention', '%'),
    ('repeat_retention_rate', 'Repeat Retention', '%'),
    ('retail_percentage', 'Retail %', '%'),
    ('new_clients', 'New Clients', 'count'),
    ('average_ticket', 'Average Ticket', 'USD'),
    ('service_sales_per_hour', 'Service Sales / Hour', 'USD'),
    ('clients_retail_percentage', 'Clients Buying Retail', '%'),
    ('hours_sold', 'Hours Sold', 'hours'),
    ('happiness_score', 'Happiness', 'score'),
    ('net_cash_percentage', 'Net Cash', 'USD'),
]

DEFAULT_DIVISION_TARGET = {
    'productivity_rate': 85,
    'prebook_rate': 75,
    'first_time_retention_rate': 80,
    'repeat_retention_rate': 90,
    'retail_percentage': 25,
    'new_clients': 50,
    'average_ticket': 250,
    'service_sales_per_hour': 150,
    'clients_retail_percentage': 60,
    'hours_sold': 160,
    'happiness_score': 8.5,
    'net_cash_percentage': 70,
}

# =====================================================================
# CHART DIMENSIONS
# =====================================================================

CHART_WIDTH = 800
CHART_HEIGHT = 400

# =====================================================================
# EXPORT SETTINGS
# =====================================================================

EXCEL_STYLES = {
    "header_fill_color": "F4647D",
    "header_font_color": "FFFFFF",
    "currency_format": '"$"#,##0',
    "number_format": '#,##0',
    "percent_format": '0"%"',
}
