# crm/dashboard/constants.py
"""
Constants for the CRM Dashboard Module

Centralized configuration for:
- Role definitions
- Record status / priority vocabularies
- Color schemes
- Chart settings
- Table and cache settings
"""

# =====================================================================
# ROLE DEFINITIONS
# =====================================================================

ROLE_MANAGER = 'manager'
ROLE_TEAM_LEADER = 'team_leader'
ROLE_SALESMAN = 'salesman'

ALL_ROLES = [ROLE_MANAGER, ROLE_TEAM_LEADER, ROLE_SALESMAN]

# Full access: sees every record
FULL_ACCESS_ROLES = [ROLE_MANAGER]

# Team access: own records + managed team
TEAM_ACCESS_ROLES = [ROLE_TEAM_LEADER]

# Self access: own records only
SELF_ACCESS_ROLES = [ROLE_SALESMAN]

ROLE_LABELS = {
    ROLE_MANAGER: "Manager",
    ROLE_TEAM_LEADER: "Team Leader",
    ROLE_SALESMAN: "Salesman",
}

# =====================================================================
# RECORD VOCABULARIES
# =====================================================================

DEAL_STATUSES = ['pending', 'active', 'completed', 'cancelled']

CALLBACK_STATUSES = ['pending', 'contacted', 'completed', 'cancelled']

PRIORITIES = ['low', 'medium', 'high', 'urgent']

DATA_TYPES = ['general', 'file', 'announcement', 'training', 'policy']

DATA_ENTRY_STATUSES = ['active', 'archived', 'deleted']

FEEDBACK_TYPES = ['general', 'question', 'suggestion', 'concern', 'acknowledgment']

FEEDBACK_STATUSES = ['pending', 'in_progress', 'resolved', 'closed']

RATING_RANGE = (1, 5)

# Labels used when a grouping key is missing
UNKNOWN_LABEL = "Unknown"

# Sentinel for dates that could not be parsed
INVALID_DATE = "Invalid Date"

# =====================================================================
# COLOR SCHEME
# =====================================================================

COLORS = {
    # Primary metrics
    "revenue": "#3B82F6",              # Blue
    "deals": "#10B981",                # Green
    "avg_deal": "#8B5CF6",             # Purple

    # Callbacks
    "callbacks": "#F59E0B",            # Amber
    "completed": "#10B981",            # Green
    "pending": "#F59E0B",              # Amber
    "cancelled": "#EF4444",            # Red
    "contacted": "#3B82F6",            # Blue
    "active": "#6366F1",               # Indigo
    "conversion": "#82CA9D",

    # Misc
    "text_dark": "#333333",
    "text_light": "#666666",
    "grid": "#e0e0e0",
}

STATUS_COLORS = {
    'pending': COLORS['pending'],
    'active': COLORS['active'],
    'contacted': COLORS['contacted'],
    'completed': COLORS['completed'],
    'cancelled': COLORS['cancelled'],
}

PRIORITY_ICONS = {
    'low': "🟢",
    'medium': "🟡",
    'high': "🟠",
    'urgent': "🔴",
}

# =====================================================================
# PERIOD DEFINITIONS
# =====================================================================

DATE_RANGE_OPTIONS = {
    "Last 7 days": 7,
    "Last 30 days": 30,
    "Last 90 days": 90,
    "Last 12 months": 365,
}

# =====================================================================
# CHART SETTINGS
# =====================================================================

CHART_WIDTH = 800
CHART_HEIGHT = 350

PIE_CHART_WIDTH = 400
PIE_CHART_HEIGHT = 300

TOP_N_AGENTS = 10
TOP_N_CUSTOMERS = 10
TREND_MAX_DAYS = 30
MONTHLY_MAX_MONTHS = 12

# =====================================================================
# TABLE SETTINGS
# =====================================================================

PAGE_SIZE_OPTIONS = [10, 25, 50, 100]

SORT_ASC = 'asc'
SORT_DESC = 'desc'

# =====================================================================
# CACHE / SESSION KEYS
# =====================================================================

CACHE_TTL_SECONDS = 300  # 5 minutes

SESSION_KEY_SEQUENCER = "crm_request_sequencer"
SESSION_KEY_FILTERS = "crm_applied_filters"
TABLE_STATE_SUFFIX = "_table_state"
SESSION_KEY_FEEDBACK = "crm_feedback_by_entry"

# =====================================================================
# EXPORT SETTINGS
# =====================================================================

EXCEL_STYLES = {
    "header_fill_color": "3B82F6",
    "header_font_color": "FFFFFF",
    "currency_format": '#,##0.00',
    "percent_format": '0.0%',
    "date_format": 'YYYY-MM-DD',
}
