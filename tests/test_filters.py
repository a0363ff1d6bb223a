# tests/test_filters.py
from datetime import datetime

from crm.dashboard.filters import (
    DashboardFilters,
    FilterResult,
    apply_filters,
    apply_multiselect_filter,
    filter_by_date_range,
    get_active_filter_summary,
)
from crm.dashboard.models import Deal


def test_date_window_drops_old_and_undated(deals, now):
    kept = filter_by_date_range(deals, 7, now=now)
    assert [d.deal_id for d in kept] == ["D1", "D2"]


def test_date_window_starts_at_midnight(now):
    edge = Deal(deal_id="edge", created_at=datetime(2026, 3, 5, 0, 0))
    assert filter_by_date_range([edge], 7, now=now) == [edge]


def test_no_window_keeps_everything(deals, now):
    assert filter_by_date_range(deals, None, now=now) == deals


def test_include_and_exclude(deals):
    include = FilterResult(selected=["Alpha"], excluded=False, is_active=True)
    exclude = FilterResult(selected=["Alpha"], excluded=True, is_active=True)

    assert [d.deal_id for d in apply_multiselect_filter(deals, 'team', include)] == ["D1", "D3"]
    assert [d.deal_id for d in apply_multiselect_filter(deals, 'team', exclude)] == ["D2", "D4"]
    assert apply_multiselect_filter(deals, 'team', FilterResult()) == deals


def test_apply_filters_combines_everything(deals, now):
    values = {
        'date_range_days': 90,
        'teams': FilterResult(selected=["Alpha"], is_active=True),
        'services': FilterResult(selected=["Gold"], is_active=True),
        'search': "init",
    }
    assert [d.deal_id for d in apply_filters(deals, values, now=now)] == ["D3"]


def test_apply_filters_on_callbacks_ignores_service_filter(callbacks, now):
    values = {'date_range_days': 30, 'teams': None, 'services': None, 'search': ''}
    assert apply_filters(callbacks, values, now=now) == callbacks


def test_summaries():
    summary = get_active_filter_summary({
        'team': FilterResult(selected=["A", "B", "C", "D"], excluded=True, is_active=True),
        'service_tier': FilterResult(),
    })
    assert summary == "Team: A, B, C +1 more (excl)"
    assert get_active_filter_summary({}) == "No filters applied"

    text = DashboardFilters.get_filter_summary({'date_range_label': "Last 7 days", 'search': "acme"})
    assert text == 'Last 7 days | Search: "acme"'
