# crm/dashboard/filters.py
"""
Sidebar Filter Components for the CRM Dashboard

Renders filter UI elements:
- Date range selector (7 / 30 / 90 / 365 days)
- Team and service tier multiselects with an "Excl" toggle
- Free-text search over customer / agent fields

The apply_* functions are pure and work on lists of canonical records,
so the same filtering runs in tests without Streamlit.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import streamlit as st

from .access_control import AccessControl
from .constants import DATE_RANGE_OPTIONS, SESSION_KEY_FILTERS
from .table import search_records

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ['customer_name', 'sales_agent_name', 'closing_agent_name', 'deal_id', 'callback_id',
                 'phone_number', 'email']


# =============================================================================
# MULTISELECT FILTER WITH EXCLUDED OPTION
# =============================================================================

@dataclass
class FilterResult:
    """
    Result from a multiselect filter with excluded option.

    Attributes:
        selected: List of selected values (empty if nothing selected)
        excluded: True if "Excl" checkbox is ticked
        is_active: True if filter should be applied
    """
    selected: List[Any] = field(default_factory=list)
    excluded: bool = False
    is_active: bool = False

    def __repr__(self) -> str:
        mode = "EXCLUDE" if self.excluded else "INCLUDE"
        return f"FilterResult({len(self.selected)} items, {mode}, active={self.is_active})"


def render_multiselect_filter(
    label: str,
    options: List[Any],
    key: str,
    default_excluded: bool = False,
    placeholder: str = "Select...",
    help_text: str = None,
    container=None
) -> FilterResult:
    """
    Render a multiselect filter with an "Excl" (Excluded) checkbox.

    Layout:
    ```
    Label                    ☐ Excl
    [Multiselect dropdown with tags    ]
    ```
    """
    ctx = container if container else st

    col_label, col_excl = ctx.columns([4, 1])

    with col_label:
        ctx.markdown(f"**{label}**")

    with col_excl:
        excluded = ctx.checkbox(
            "Excl",
            value=default_excluded,
            key=f"{key}_excl",
            help="Tick to EXCLUDE selected items instead of filtering to them"
        )

    selected = ctx.multiselect(
        label=label,
        options=options,
        default=[],
        key=f"{key}_select",
        placeholder=placeholder,
        help=help_text,
        label_visibility="collapsed"
    )

    return FilterResult(selected=selected, excluded=excluded, is_active=len(selected) > 0)


def apply_multiselect_filter(records: List[Any], field_name: str, filter_result: FilterResult) -> List[Any]:
    """
    Keep (or, in exclude mode, drop) records whose field is in the selection.

    Example:
        >>> team_filter = render_multiselect_filter("Team", teams, "team")
        >>> deals = apply_multiselect_filter(deals, 'team', team_filter)
    """
    if not records or not filter_result.is_active:
        return list(records)

    selected = set(filter_result.selected)
    if filter_result.excluded:
        return [r for r in records if getattr(r, field_name, None) not in selected]
    return [r for r in records if getattr(r, field_name, None) in selected]


def get_active_filter_summary(filter_results: Dict[str, FilterResult]) -> str:
    """
    Human-readable summary of active filters.

    Returns:
        Summary string like "Team: Alpha, Beta (excl) | Service Tier: Gold"
    """
    parts = []

    for column, result in filter_results.items():
        if result.is_active:
            label = column.replace('_', ' ').title()
            values = ', '.join(str(v) for v in result.selected[:3])
            if len(result.selected) > 3:
                values += f" +{len(result.selected) - 3} more"

            mode = " (excl)" if result.excluded else ""
            parts.append(f"{label}: {values}{mode}")

    return " | ".join(parts) if parts else "No filters applied"


# =============================================================================
# DATE WINDOW
# =============================================================================

def filter_by_date_range(records: List[Any], days: Optional[int], now: datetime = None,
                         field_name: str = 'created_at') -> List[Any]:
    """
    Keep records created within the last `days` days (inclusive of today).

    Records with an unparseable date cannot be placed in a window and are
    dropped whenever a window is active. days=None keeps everything.
    """
    if not days:
        return list(records)

    now = now or datetime.now(timezone.utc).replace(tzinfo=None)
    start = datetime.combine((now - timedelta(days=days)).date(), datetime.min.time())

    kept = []
    for record in records:
        created = getattr(record, field_name, None)
        if isinstance(created, datetime) and start <= created <= now:
            kept.append(record)
    return kept


def apply_filters(records: List[Any], filter_values: Dict, now: datetime = None) -> List[Any]:
    """Date window, then multiselects, then search."""
    filtered = filter_by_date_range(records, filter_values.get('date_range_days'), now)
    filtered = apply_multiselect_filter(filtered, 'team', filter_values.get('teams') or FilterResult())
    filtered = apply_multiselect_filter(filtered, 'service_tier', filter_values.get('services') or FilterResult())
    return search_records(filtered, filter_values.get('search', ''), SEARCH_FIELDS)


# =============================================================================
# SIDEBAR
# =============================================================================

class DashboardFilters:
    """
    Sidebar filter components with role-based access control.

    Usage:
        access = AccessControl(identity)
        filters = DashboardFilters(access)

        filter_values = filters.render_sidebar(teams, services)
        deals = apply_filters(deals, filter_values)
    """

    def __init__(self, access_control: AccessControl):
        self.access = access_control

    def render_sidebar(self, teams: List[str], services: Optional[List[str]] = None, default_days: int = 30,
                       key_prefix: str = "crm") -> Dict:
        """
        Render all sidebar filters and return selected values.

        Returns:
            {
                'date_range_days': int,
                'date_range_label': str,
                'teams': FilterResult,
                'services': FilterResult,
                'search': str,
            }
        """
        with st.sidebar:
            st.header("🎛️ Filters")

            labels = list(DATE_RANGE_OPTIONS.keys())
            default_index = next(
                (i for i, label in enumerate(labels) if DATE_RANGE_OPTIONS[label] == default_days), 1
            )
            date_label = st.selectbox(
                "📅 Date Range",
                options=labels,
                index=default_index,
                key=f"{key_prefix}_date_range",
            )

            st.divider()

            # A salesman only ever sees their own team; no team picker
            if self.access.get_access_level() == 'self':
                team_result = FilterResult()
            else:
                team_result = render_multiselect_filter("👥 Team", teams, key=f"{key_prefix}_team")

            if services is None:
                service_result = FilterResult()
            else:
                service_result = render_multiselect_filter("🏷️ Service Tier", services, key=f"{key_prefix}_service")

            st.divider()

            search = st.text_input(
                "🔍 Search",
                key=f"{key_prefix}_search",
                placeholder="Customer, agent, phone...",
            )

            st.divider()
            st.caption(self.access.get_access_label())

        filter_values = {
            'date_range_days': DATE_RANGE_OPTIONS[date_label],
            'date_range_label': date_label,
            'teams': team_result,
            'services': service_result,
            'search': search or '',
        }
        st.session_state[SESSION_KEY_FILTERS] = filter_values
        logger.debug(f"Filters applied: {get_active_filter_summary({'team': team_result, 'service_tier': service_result})}")
        return filter_values

    @staticmethod
    def get_filter_summary(filter_values: Dict) -> str:
        parts = [filter_values.get('date_range_label', '')]
        multiselects = {
            'team': filter_values.get('teams') or FilterResult(),
            'service_tier': filter_values.get('services') or FilterResult(),
        }
        summary = get_active_filter_summary(multiselects)
        if summary != "No filters applied":
            parts.append(summary)
        if filter_values.get('search'):
            parts.append(f"Search: \"{filter_values['search']}\"")
        return " | ".join(p for p in parts if p)


__all__ = [
    'FilterResult',
    'render_multiselect_filter',
    'apply_multiselect_filter',
    'get_active_filter_summary',
    'filter_by_date_range',
    'apply_filters',
    'DashboardFilters',
    'SEARCH_FIELDS',
]
