# tests/test_aggregator.py
from datetime import datetime

import pytest

from crm.dashboard.aggregator import (
    KEY_FUNCTIONS,
    build_chart_data,
    by_day,
    callback_performance,
    chronological,
    group_by,
    groups_to_frame,
    monthly_revenue,
    rows_to_frame,
    sales_by_agent,
    sales_trend,
    status_distribution,
    top_groups,
    total_of,
)
from crm.dashboard.constants import INVALID_DATE, UNKNOWN_LABEL
from crm.dashboard.models import Deal


@pytest.mark.parametrize("key", sorted(KEY_FUNCTIONS))
def test_group_sums_conserve_total_revenue(deals, key):
    groups = group_by(deals, KEY_FUNCTIONS[key])

    assert total_of(groups) == pytest.approx(sum(d.amount for d in deals))
    assert sum(g.count for g in groups.values()) == len(deals)


def test_group_by_empty():
    assert group_by([], by_day) == {}


def test_missing_keys_fall_into_unknown(deals):
    groups = group_by(deals, KEY_FUNCTIONS['service_tier'])
    assert groups[UNKNOWN_LABEL].count == 1


def test_day_buckets_ignore_time_of_day():
    records = [
        Deal(deal_id="a", amount=1, created_at=datetime(2026, 3, 1, 0, 5)),
        Deal(deal_id="b", amount=2, created_at=datetime(2026, 3, 1, 23, 55)),
    ]
    groups = group_by(records, by_day)
    assert list(groups) == ["2026-03-01"]
    assert groups["2026-03-01"].sum == 3


def test_invalid_date_bucket_sorts_last(deals):
    ordered = chronological(group_by(deals, by_day))

    assert ordered[-1].key == INVALID_DATE
    dated = [g.key for g in ordered[:-1]]
    assert dated == sorted(dated)


def test_sales_trend_is_chronological_with_invalid_last(deals):
    trend = sales_trend(deals)
    assert [row['date'] for row in trend] == ["2026-02-01", "2026-03-10", "2026-03-12", INVALID_DATE]


def test_sales_trend_keeps_latest_days_only():
    records = [Deal(deal_id=str(i), amount=1, created_at=datetime(2026, 1, i + 1)) for i in range(10)]
    trend = sales_trend(records, max_days=3)
    assert [row['date'] for row in trend] == ["2026-01-08", "2026-01-09", "2026-01-10"]


def test_top_groups_orders_by_revenue(deals):
    ranked = top_groups(group_by(deals, KEY_FUNCTIONS['agent']), 2)
    assert [g.key for g in ranked] == ["Sam Seller", "Stan Seller"]


def test_sales_by_agent_rows(deals):
    rows = sales_by_agent(deals)
    assert rows[0] == {'agent': "Sam Seller", 'deals': 1, 'revenue': 1000.0, 'avg_deal_size': 1000.0}


def test_status_distribution_percentages(deals):
    rows = status_distribution(deals)
    assert {r['status'] for r in rows} == {"active", "completed", "pending", "cancelled"}
    assert all(r['percentage'] == 25 for r in rows)
    assert status_distribution([]) == []


def test_monthly_revenue_drops_undated(deals):
    rows = monthly_revenue(deals)
    assert rows == [
        {'month': "2026-02", 'deals': 1, 'revenue': 400.0},
        {'month': "2026-03", 'deals': 2, 'revenue': 1250.5},
    ]


def test_callback_performance(callbacks):
    rows = callback_performance(callbacks)

    assert [r['date'] for r in rows] == ["2026-03-11", "2026-03-12"]
    first = rows[0]
    assert (first['total'], first['completed'], first['pending']) == (2, 1, 1)
    assert first['conversion_rate'] == pytest.approx(50.0)


def test_build_chart_data_keys(deals, callbacks):
    data = build_chart_data(deals, callbacks)
    assert set(data) == {
        'salesTrend', 'salesByAgent', 'salesByTeam', 'serviceTier',
        'dealStatus', 'callbackPerformance', 'monthlyRevenue', 'topCustomers',
    }
    assert build_chart_data([])['callbackPerformance'] == []


def test_rows_to_frame_empty_keeps_columns():
    frame = rows_to_frame([], ['date', 'revenue'])
    assert frame.empty
    assert list(frame.columns) == ['date', 'revenue']


def test_group_by_agent_example():
    records = [
        Deal(deal_id="1", amount=100, sales_agent_name="A"),
        Deal(deal_id="2", amount=200, sales_agent_name="B"),
        Deal(deal_id="3", amount=50, sales_agent_name="A"),
    ]
    groups = group_by(records, KEY_FUNCTIONS['agent'])

    assert (groups["A"].count, groups["A"].sum) == (2, 150)
    assert (groups["B"].count, groups["B"].sum) == (1, 200)
    assert [g.key for g in top_groups(groups)] == ["B", "A"]


def test_groups_to_frame(deals):
    frame = groups_to_frame(top_groups(group_by(deals, KEY_FUNCTIONS['team'])), label='team')

    assert list(frame.columns) == ['team', 'count', 'revenue', 'avg']
    assert frame.iloc[0]['team'] == "Alpha"
    assert frame.iloc[0]['revenue'] == 1400.0
    assert groups_to_frame([]).empty
