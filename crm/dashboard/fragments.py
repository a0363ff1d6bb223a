# crm/dashboard/fragments.py
"""
Streamlit Fragments for the CRM Dashboard

Uses @st.fragment to enable partial reruns for table-heavy sections.
Each fragment only reruns when its internal widgets change (sorting,
paging, row actions), NOT when sidebar filters or other sections change.

- deals_table_fragment: sortable / paginated deals with export and delete
- callbacks_table_fragment: callbacks with workflow buttons and delete
- data_center_fragment: entries list with a lazily loaded feedback panel
- feedback_review_fragment: all feedback with manager status controls
- live_overview: overview cards re-fetched on a fixed timer
"""

import logging
from typing import Any, Callable, Dict, List, MutableMapping, Optional

import pandas as pd
import streamlit as st

from .access_control import AccessControl
from .charts import CRMCharts
from .constants import (
    PAGE_SIZE_OPTIONS,
    PRIORITY_ICONS,
    SORT_ASC,
    SORT_DESC,
    FEEDBACK_STATUSES,
    FEEDBACK_TYPES,
    SESSION_KEY_FEEDBACK,
    TABLE_STATE_SUFFIX,
)
from .export import DealsExport
from .fetcher import RecordFetcher
from .metrics import DashboardMetrics
from .models import FetchResult
from .normalizers import format_currency, format_date
from .services import CRMService
from .table import SortState, sort_and_page, toggle_sort
from .workflow import TRANSITION_LABELS, allowed_transitions

logger = logging.getLogger(__name__)

DEAL_TABLE_FIELDS = {
    'created_at': "Created",
    'customer_name': "Customer",
    'amount': "Amount",
    'sales_agent_name': "Sales Agent",
    'closing_agent_name': "Closing Agent",
    'team': "Team",
    'service_tier': "Service",
    'status': "Status",
}

CALLBACK_TABLE_FIELDS = {
    'created_at': "Created",
    'customer_name': "Customer",
    'phone_number': "Phone",
    'sales_agent_name': "Agent",
    'priority': "Priority",
    'status': "Status",
    'scheduled_date': "Scheduled",
}


# =============================================================================
# TABLE STATE
# =============================================================================

def _table_state(key: str, default_field: str = 'created_at') -> Dict[str, Any]:
    """Sort state and page for one table, kept across reruns."""
    state_key = f"{key}{TABLE_STATE_SUFFIX}"
    if state_key not in st.session_state:
        st.session_state[state_key] = {
            'sort': SortState(field=default_field, direction=SORT_DESC),
            'page': 1,
        }
    return st.session_state[state_key]


def _render_table_controls(key: str, fields: Dict[str, str], state: Dict[str, Any]) -> int:
    """Sort column / direction / page size controls. Returns the page size."""
    col_sort, col_dir, col_size = st.columns([3, 1, 1])

    labels = list(fields.values())
    current = state['sort'].field if state['sort'].field in fields else list(fields)[0]

    with col_sort:
        chosen_label = st.selectbox(
            "Sort by",
            options=labels,
            index=labels.index(fields[current]),
            key=f"{key}_sort_field",
        )
    chosen_field = next(f for f, label in fields.items() if label == chosen_label)
    if chosen_field != state['sort'].field:
        state['sort'] = toggle_sort(state['sort'], chosen_field)
        state['page'] = 1

    with col_dir:
        arrow = "⬆️ Asc" if state['sort'].direction == SORT_ASC else "⬇️ Desc"
        if st.button(arrow, key=f"{key}_sort_dir", use_container_width=True):
            state['sort'] = toggle_sort(state['sort'], state['sort'].field)
            st.rerun(scope="fragment")

    with col_size:
        page_size = st.selectbox("Rows", options=PAGE_SIZE_OPTIONS, key=f"{key}_page_size")

    return page_size


def _render_pager(key: str, page, state: Dict[str, Any]):
    col_prev, col_info, col_next = st.columns([1, 3, 1])
    with col_prev:
        if st.button("◀ Prev", key=f"{key}_prev", disabled=not page.has_prev, use_container_width=True):
            state['page'] = page.page - 1
            st.rerun(scope="fragment")
    with col_info:
        st.caption(
            f"Showing {page.start_index}-{page.end_index} of {page.total} "
            f"| Page {page.page} of {page.total_pages}"
        )
    with col_next:
        if st.button("Next ▶", key=f"{key}_next", disabled=not page.has_next, use_container_width=True):
            state['page'] = page.page + 1
            st.rerun(scope="fragment")


def _records_frame(records: List[Any], fields: Dict[str, str]) -> pd.DataFrame:
    rows = []
    for record in records:
        row = {}
        for name, label in fields.items():
            value = getattr(record, name, None)
            if name == 'amount':
                value = format_currency(value)
            elif name in ('created_at', 'scheduled_date'):
                value = format_date(value)
            elif name == 'priority':
                value = f"{PRIORITY_ICONS.get(value, '')} {value}"
            row[label] = value
        rows.append(row)
    return pd.DataFrame(rows, columns=list(fields.values()))


# =============================================================================
# FRAGMENT: DEALS TABLE
# =============================================================================

@st.fragment
def deals_table_fragment(
    deals: List[Any],
    access: AccessControl,
    service: CRMService,
    overview: Dict = None,
    filter_values: Dict = None,
    fragment_key: str = "deals"
):
    """Sortable, paginated deal list with export and delete actions."""
    col_header, col_export = st.columns([5, 1])
    with col_header:
        st.subheader(f"📋 Deals ({len(deals):,})")

    with col_export:
        if access.can('can_export') and deals:
            excel = DealsExport().create_report(
                deals=deals,
                overview=overview or DashboardMetrics(deals).calculate_overview(),
                filters=filter_values,
                leaderboard=DashboardMetrics(deals).agent_leaderboard(),
                generated_by=access.identity.name,
            )
            st.download_button(
                label="📥 Export",
                data=excel,
                file_name="crm_deals.xlsx",
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                key=f"{fragment_key}_export",
                use_container_width=True,
            )

    if not deals:
        st.info("📭 No deals match the current filters")
        return

    state = _table_state(fragment_key)
    page_size = _render_table_controls(fragment_key, DEAL_TABLE_FIELDS, state)

    page = sort_and_page(deals, state['sort'].field, state['sort'].direction, state['page'], page_size)
    state['page'] = page.page

    st.dataframe(_records_frame(page.items, DEAL_TABLE_FIELDS), hide_index=True, use_container_width=True)
    _render_pager(fragment_key, page, state)

    deletable = [d for d in page.items if access.can_delete(d)]
    if deletable and service.validator.check_permission(service.role, 'delete_deal'):
        with st.expander("🗑️ Delete a deal"):
            options = {f"{d.customer_name} | {format_currency(d.amount)} | {d.deal_id}": d for d in deletable}
            choice = st.selectbox("Deal", options=list(options), key=f"{fragment_key}_delete_choice")
            if st.button("Delete", key=f"{fragment_key}_delete_btn", type="primary"):
                deal = options[choice]
                ok, message = service.delete_deal(deal.deal_id, record=deal)
                if ok:
                    st.toast(f"✅ {message}")
                    st.rerun()
                else:
                    st.error(message)


# =============================================================================
# FRAGMENT: CALLBACKS TABLE
# =============================================================================

@st.fragment
def callbacks_table_fragment(
    callbacks: List[Any],
    access: AccessControl,
    service: CRMService,
    fragment_key: str = "callbacks"
):
    """Callback list with status workflow buttons per row."""
    st.subheader(f"📞 Callbacks ({len(callbacks):,})")

    if not callbacks:
        st.info("📭 No callbacks match the current filters")
        return

    state = _table_state(fragment_key)
    page_size = _render_table_controls(fragment_key, CALLBACK_TABLE_FIELDS, state)

    page = sort_and_page(callbacks, state['sort'].field, state['sort'].direction, state['page'], page_size)
    state['page'] = page.page

    st.dataframe(_records_frame(page.items, CALLBACK_TABLE_FIELDS), hide_index=True, use_container_width=True)
    _render_pager(fragment_key, page, state)

    st.markdown("##### ⚡ Actions")
    for callback in page.items:
        next_statuses = allowed_transitions(callback.status)
        if not next_statuses or not access.can_edit(callback):
            continue

        cols = st.columns([3] + [1] * len(next_statuses))
        with cols[0]:
            st.markdown(
                f"{PRIORITY_ICONS.get(callback.priority, '')} **{callback.customer_name or '-'}** "
                f"· {callback.phone_number or '-'} · _{callback.status}_"
            )
        for col, status in zip(cols[1:], next_statuses):
            with col:
                if st.button(TRANSITION_LABELS[status], key=f"{fragment_key}_{callback.callback_id}_{status}",
                             use_container_width=True):
                    ok, message = service.update_callback_status(callback, status)
                    if ok:
                        st.toast(f"✅ {message}")
                        st.rerun()
                    else:
                        st.error(message)

    deletable = [c for c in page.items if access.can_delete(c)]
    if deletable:
        with st.expander("🗑️ Delete a callback"):
            options = {f"{c.customer_name} | {c.phone_number} | {c.callback_id}": c for c in deletable}
            choice = st.selectbox("Callback", options=list(options), key=f"{fragment_key}_delete_choice")
            if st.button("Delete", key=f"{fragment_key}_delete_btn", type="primary"):
                callback = options[choice]
                ok, message = service.delete_callback(callback.callback_id, record=callback)
                if ok:
                    st.toast(f"✅ {message}")
                    st.rerun()
                else:
                    st.error(message)


# =============================================================================
# FRAGMENT: DATA CENTER
# =============================================================================

def load_entry_feedback(
    fetcher: RecordFetcher,
    entry_id: str,
    is_open: bool,
    cache: MutableMapping[str, FetchResult]
) -> Optional[FetchResult]:
    """
    Feedback for one entry, fetched only while its panel is open.

    Successful loads are kept in `cache` so fragment reruns reuse them;
    failures are not cached and retry on the next rerun.
    """
    if not is_open:
        return None
    if entry_id in cache:
        return cache[entry_id]

    result = fetcher.get_feedback(entry_id)
    if result.success:
        cache[entry_id] = result
    return result


@st.fragment
def data_center_fragment(
    entries: List[Any],
    fetcher: RecordFetcher,
    service: CRMService,
    fragment_key: str = "data_center"
):
    """Entries addressed to the user, each with its feedback thread."""
    access = fetcher.access
    cache = st.session_state.setdefault(SESSION_KEY_FEEDBACK, {})

    if not entries:
        st.info("📭 Nothing in the data center yet")
        return

    for entry in entries:
        icon = PRIORITY_ICONS.get(entry.priority, '')
        title = f"{icon} {entry.title} · {entry.data_type} · {entry.audience}"
        with st.expander(title):
            st.caption(
                f"Sent by {entry.sent_by_name or entry.sent_by_id or '-'} on {format_date(entry.created_at)}"
                f" · {entry.feedback_count} feedback"
            )
            st.markdown(entry.description)
            if entry.content:
                st.text(entry.content)

            is_open = st.toggle(f"💬 Feedback ({entry.feedback_count})", key=f"{fragment_key}_fb_open_{entry.id}")
            feedback = load_entry_feedback(fetcher, entry.id, is_open, cache)
            if feedback is not None and not feedback.success:
                st.warning("⚠️ Could not load feedback")
            for item in feedback.records if feedback is not None else []:
                rating = f" · {'⭐' * item.rating}" if item.rating else ""
                st.markdown(
                    f"**{item.user_name or item.user_id}** ({item.feedback_type}{rating}, _{item.status}_): "
                    f"{item.feedback_text}"
                )
                if access.can_edit_feedback(item):
                    if st.button("Delete", key=f"{fragment_key}_fb_del_{item.id}"):
                        ok, message = service.delete_feedback(item)
                        if ok:
                            cache.pop(entry.id, None)
                            st.toast(f"✅ {message}")
                            st.rerun(scope="fragment")
                        else:
                            st.error(message)

            if access.can('can_submit_feedback'):
                with st.form(f"{fragment_key}_fb_form_{entry.id}", clear_on_submit=True):
                    text = st.text_area("Your feedback", key=f"{fragment_key}_fb_text_{entry.id}")
                    col_type, col_rating = st.columns(2)
                    with col_type:
                        feedback_type = st.selectbox("Type", FEEDBACK_TYPES, key=f"{fragment_key}_fb_type_{entry.id}")
                    with col_rating:
                        rating = st.select_slider("Rating", options=[None, 1, 2, 3, 4, 5],
                                                  format_func=lambda r: "-" if r is None else "⭐" * r,
                                                  key=f"{fragment_key}_fb_rating_{entry.id}")
                    if st.form_submit_button("Send feedback"):
                        ok, message = service.submit_feedback(entry.id, {
                            'feedback_text': text,
                            'feedback_type': feedback_type,
                            'rating': rating,
                        })
                        if ok:
                            cache.pop(entry.id, None)
                            st.toast(f"✅ {message}")
                        else:
                            st.error(message)

            if access.can('can_delete_data_entries'):
                if st.button("🗑️ Delete entry", key=f"{fragment_key}_del_{entry.id}"):
                    ok, message = service.delete_data_entry(entry.id)
                    if ok:
                        st.toast(f"✅ {message}")
                        st.rerun()
                    else:
                        st.error(message)


# =============================================================================
# FRAGMENT: FEEDBACK REVIEW (managers)
# =============================================================================

@st.fragment
def feedback_review_fragment(
    feedback: List[Any],
    service: CRMService,
    fragment_key: str = "feedback_review"
):
    """All feedback, paged, with a status control per row for managers."""
    if not feedback:
        st.info("📭 No feedback yet")
        return

    state = _table_state(fragment_key)
    page = sort_and_page(feedback, state['sort'].field, state['sort'].direction, state['page'], 10)
    state['page'] = page.page

    can_respond = service.access.can('can_respond_to_feedback')
    for item in page.items:
        col_text, col_status, col_save = st.columns([5, 2, 1])
        with col_text:
            rating = f" · {'⭐' * item.rating}" if item.rating else ""
            st.markdown(
                f"**{item.data_title or item.data_id}** · {item.user_name or item.user_id} "
                f"({item.user_role}, {item.feedback_type}{rating}) · {format_date(item.created_at)}"
            )
            st.caption(item.feedback_text)
        if not can_respond:
            with col_status:
                st.markdown(f"_{item.status}_")
            continue

        current = item.status if item.status in FEEDBACK_STATUSES else FEEDBACK_STATUSES[0]
        with col_status:
            new_status = st.selectbox(
                "Status",
                FEEDBACK_STATUSES,
                index=FEEDBACK_STATUSES.index(current),
                key=f"{fragment_key}_status_{item.id}",
                label_visibility="collapsed",
            )
        with col_save:
            if st.button("Save", key=f"{fragment_key}_save_{item.id}", disabled=new_status == current,
                         use_container_width=True):
                ok, message = service.update_feedback_status(item, new_status)
                if ok:
                    item.status = new_status
                    st.toast(f"✅ {message}")
                    st.rerun(scope="fragment")
                else:
                    st.error(message)

    _render_pager(fragment_key, page, state)


# =============================================================================
# AUTO-REFRESH
# =============================================================================

def live_overview(load_fn: Callable[[], Dict], run_every: int):
    """
    Render overview cards, re-running only this block every `run_every` seconds.

    Args:
        load_fn: Returns an overview dict (fetches fresh data on each call)
        run_every: Refresh interval in seconds (0 disables the timer)
    """
    @st.fragment(run_every=run_every or None)
    def _overview():
        overview = load_fn()
        CRMCharts.render_kpi_cards(overview)
        if run_every:
            st.caption(f"🔄 Auto-refreshes every {run_every}s")

    _overview()


__all__ = [
    'deals_table_fragment',
    'callbacks_table_fragment',
    'data_center_fragment',
    'feedback_review_fragment',
    'load_entry_feedback',
    'live_overview',
    'DEAL_TABLE_FIELDS',
    'CALLBACK_TABLE_FIELDS',
]
