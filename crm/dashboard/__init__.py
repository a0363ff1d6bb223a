# crm/dashboard/__init__.py
"""
CRM Dashboard Module

Deals, callbacks, analytics and data center for the sales CRM pages.

Components:
- models / normalizers: canonical records from any backend payload shape
- access_control: Role-based visibility (manager / team_leader / salesman)
- fetcher: Backend reads with stale-response guard
- aggregator / metrics: Group-by folds and KPI calculations
- table: Sorting, pagination and search
- workflow / validators / services: Write path
- filters / charts / fragments / export: Streamlit presentation

Usage:
    from crm.dashboard import (
        AccessControl,
        RecordFetcher,
        DashboardMetrics,
        DashboardFilters,
        CRMCharts,
        DealsExport,
    )
"""

from .access_control import AccessControl, filter_visible
from .aggregator import build_chart_data, group_by
from .charts import CRMCharts
from .export import DealsExport
from .fetcher import RecordFetcher, RequestSequencer
from .filters import DashboardFilters, apply_filters
from .metrics import DashboardMetrics, merge_backend_stats
from .models import Callback, DataCenterEntry, Deal, FetchResult, Feedback, Identity
from .services import CRMService
from .table import paginate, search_records, sort_records
from .validators import RecordValidator
from .workflow import InvalidTransitionError, allowed_transitions, transition

# Constants
from .constants import (
    ALL_ROLES,
    ROLE_MANAGER,
    ROLE_TEAM_LEADER,
    ROLE_SALESMAN,
    ROLE_LABELS,
    COLORS,
    DATE_RANGE_OPTIONS,
    INVALID_DATE,
)

__all__ = [
    # Classes
    'AccessControl',
    'RecordFetcher',
    'RequestSequencer',
    'DashboardMetrics',
    'DashboardFilters',
    'CRMCharts',
    'DealsExport',
    'CRMService',
    'RecordValidator',
    'InvalidTransitionError',

    # Models
    'Identity',
    'Deal',
    'Callback',
    'DataCenterEntry',
    'Feedback',
    'FetchResult',

    # Functions
    'filter_visible',
    'group_by',
    'build_chart_data',
    'merge_backend_stats',
    'apply_filters',
    'sort_records',
    'paginate',
    'search_records',
    'allowed_transitions',
    'transition',

    # Constants
    'ALL_ROLES',
    'ROLE_MANAGER',
    'ROLE_TEAM_LEADER',
    'ROLE_SALESMAN',
    'ROLE_LABELS',
    'COLORS',
    'DATE_RANGE_OPTIONS',
    'INVALID_DATE',
]

__version__ = '1.0.0'
