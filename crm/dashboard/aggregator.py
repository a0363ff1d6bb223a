# crm/dashboard/aggregator.py
"""
Group-by Aggregation for Deals and Callbacks

One shared implementation of the "fold records into per-key totals"
pattern used by every dashboard screen:
- group_by(): generic fold, each group tracks count / sum / items
- Key functions: agent, team, service tier, status, day and month buckets
- Ordering helpers: top-N by revenue, chronological for trends
- Chart summaries shaped like the /api/charts payload

Total revenue is conserved: the sum of group sums always equals the sum
of the input amounts, whatever the key function.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional

import pandas as pd

from .constants import (
    INVALID_DATE,
    UNKNOWN_LABEL,
    TOP_N_AGENTS,
    TOP_N_CUSTOMERS,
    TREND_MAX_DAYS,
    MONTHLY_MAX_MONTHS,
)

logger = logging.getLogger(__name__)

KeyFn = Callable[[Any], Hashable]


@dataclass
class Group:
    """Running totals for one grouping key."""
    key: Hashable
    count: int = 0
    sum: float = 0.0
    items: List[Any] = field(default_factory=list)

    @property
    def average(self) -> float:
        return self.sum / max(1, self.count)

    def add(self, record: Any):
        self.count += 1
        self.sum += record_amount(record)
        self.items.append(record)


# =============================================================================
# CORE FOLD
# =============================================================================

def record_amount(record: Any) -> float:
    if isinstance(record, dict):
        value = record.get('amount', 0)
    else:
        value = getattr(record, 'amount', 0)
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def group_by(records: Iterable[Any], key_fn: KeyFn) -> Dict[Hashable, Group]:
    """
    Fold records into {key: Group(count, sum, items)}.

    Insertion order follows first appearance and carries no meaning;
    use top_groups() / chronological() to order for display.
    """
    groups: Dict[Hashable, Group] = {}
    for record in records:
        key = key_fn(record)
        group = groups.get(key)
        if group is None:
            group = Group(key=key)
            groups[key] = group
        group.add(record)
    return groups


# =============================================================================
# KEY FUNCTIONS
# =============================================================================

def _attr(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def _label(value: Any) -> str:
    text = "" if value is None else str(value).strip()
    return text or UNKNOWN_LABEL


def by_agent_id(record: Any) -> str:
    return _label(_attr(record, 'sales_agent_id'))


def by_agent_name(record: Any) -> str:
    return _label(_attr(record, 'sales_agent_name') or _attr(record, 'sales_agent_id'))


def by_team(record: Any) -> str:
    return _label(_attr(record, 'team'))


def by_service_tier(record: Any) -> str:
    return _label(_attr(record, 'service_tier'))


def by_status(record: Any) -> str:
    return _label(_attr(record, 'status'))


def by_customer(record: Any) -> str:
    return _label(_attr(record, 'customer_name'))


def by_day(record: Any) -> str:
    """Calendar-date bucket (YYYY-MM-DD), time of day ignored."""
    created = _attr(record, 'created_at')
    if isinstance(created, datetime):
        return created.date().isoformat()
    return INVALID_DATE


def by_month(record: Any) -> str:
    created = _attr(record, 'created_at')
    if isinstance(created, datetime):
        return created.strftime('%Y-%m')
    return INVALID_DATE


KEY_FUNCTIONS: Dict[str, KeyFn] = {
    'agent': by_agent_name,
    'agent_id': by_agent_id,
    'team': by_team,
    'service_tier': by_service_tier,
    'status': by_status,
    'customer': by_customer,
    'day': by_day,
    'month': by_month,
}


# =============================================================================
# ORDERING
# =============================================================================

def top_groups(groups: Dict[Hashable, Group], n: Optional[int] = None) -> List[Group]:
    """Groups ordered by sum descending (stable on ties)."""
    ranked = sorted(groups.values(), key=lambda g: g.sum, reverse=True)
    return ranked[:n] if n is not None else ranked


def chronological(groups: Dict[Hashable, Group]) -> List[Group]:
    """Date buckets in ascending order; the Invalid Date bucket goes last."""
    valid = [g for g in groups.values() if g.key != INVALID_DATE]
    invalid = [g for g in groups.values() if g.key == INVALID_DATE]
    return sorted(valid, key=lambda g: str(g.key)) + invalid


def total_of(groups: Dict[Hashable, Group]) -> float:
    return sum(g.sum for g in groups.values())


# =============================================================================
# CHART SUMMARIES
# =============================================================================

def sales_trend(deals: Iterable[Any], max_days: int = TREND_MAX_DAYS) -> List[Dict]:
    """Daily deals/revenue, oldest first, limited to the latest max_days buckets."""
    ordered = chronological(group_by(deals, by_day))
    dated = [g for g in ordered if g.key != INVALID_DATE][-max_days:]
    undated = [g for g in ordered if g.key == INVALID_DATE]
    return [{'date': g.key, 'deals': g.count, 'revenue': g.sum} for g in dated + undated]


def sales_by_agent(deals: Iterable[Any], top_n: int = TOP_N_AGENTS) -> List[Dict]:
    return [
        {'agent': g.key, 'deals': g.count, 'revenue': g.sum, 'avg_deal_size': g.average}
        for g in top_groups(group_by(deals, by_agent_name), top_n)
    ]


def sales_by_team(deals: Iterable[Any]) -> List[Dict]:
    return [
        {'team': g.key, 'deals': g.count, 'revenue': g.sum}
        for g in top_groups(group_by(deals, by_team))
    ]


def service_tiers(deals: Iterable[Any]) -> List[Dict]:
    return [
        {'service': g.key, 'deals': g.count, 'revenue': g.sum}
        for g in top_groups(group_by(deals, by_service_tier))
    ]


def top_customers(deals: Iterable[Any], top_n: int = TOP_N_CUSTOMERS) -> List[Dict]:
    return [
        {'customer': g.key, 'deals': g.count, 'revenue': g.sum}
        for g in top_groups(group_by(deals, by_customer), top_n)
    ]


def monthly_revenue(deals: Iterable[Any], max_months: int = MONTHLY_MAX_MONTHS) -> List[Dict]:
    ordered = [g for g in chronological(group_by(deals, by_month)) if g.key != INVALID_DATE]
    return [{'month': g.key, 'deals': g.count, 'revenue': g.sum} for g in ordered[-max_months:]]


def status_distribution(records: Iterable[Any]) -> List[Dict]:
    """Count per status with whole-number percentages of the total."""
    groups = group_by(records, by_status)
    total = sum(g.count for g in groups.values())
    rows = [
        {
            'status': g.key,
            'count': g.count,
            'percentage': round(g.count / total * 100) if total > 0 else 0,
        }
        for g in groups.values()
    ]
    return sorted(rows, key=lambda r: r['count'], reverse=True)


def callback_performance(callbacks: Iterable[Any], max_days: int = TREND_MAX_DAYS) -> List[Dict]:
    """Per-day total / completed / pending callbacks with conversion rate (%)."""
    rows = []
    for g in chronological(group_by(callbacks, by_day)):
        completed = sum(1 for c in g.items if _attr(c, 'status') == 'completed')
        pending = sum(1 for c in g.items if _attr(c, 'status') == 'pending')
        rows.append({
            'date': g.key,
            'total': g.count,
            'completed': completed,
            'pending': pending,
            'conversion_rate': completed / g.count * 100 if g.count else 0.0,
        })
    dated = [r for r in rows if r['date'] != INVALID_DATE][-max_days:]
    return dated + [r for r in rows if r['date'] == INVALID_DATE]


def build_chart_data(deals: List[Any], callbacks: List[Any] = None) -> Dict[str, List[Dict]]:
    """All chart series at once, keyed like the /api/charts payload."""
    callbacks = callbacks or []
    return {
        'salesTrend': sales_trend(deals),
        'salesByAgent': sales_by_agent(deals),
        'salesByTeam': sales_by_team(deals),
        'serviceTier': service_tiers(deals),
        'dealStatus': status_distribution(deals),
        'callbackPerformance': callback_performance(callbacks),
        'monthlyRevenue': monthly_revenue(deals),
        'topCustomers': top_customers(deals),
    }


# =============================================================================
# DATAFRAME CONVERSION
# =============================================================================

def groups_to_frame(groups: Iterable[Group], label: str = 'key') -> pd.DataFrame:
    """Groups -> DataFrame(label, count, revenue, avg) for charts/tables."""
    rows = [
        {label: g.key, 'count': g.count, 'revenue': g.sum, 'avg': g.average}
        for g in groups
    ]
    return pd.DataFrame(rows, columns=[label, 'count', 'revenue', 'avg'])


def rows_to_frame(rows: List[Dict], columns: List[str] = None) -> pd.DataFrame:
    """Chart rows (list of dicts) -> DataFrame, empty-safe."""
    if not rows:
        return pd.DataFrame(columns=columns or [])
    return pd.DataFrame(rows)


__all__ = [
    'Group',
    'record_amount',
    'group_by',
    'by_agent_id',
    'by_agent_name',
    'by_team',
    'by_service_tier',
    'by_status',
    'by_customer',
    'by_day',
    'by_month',
    'KEY_FUNCTIONS',
    'top_groups',
    'chronological',
    'total_of',
    'sales_trend',
    'sales_by_agent',
    'sales_by_team',
    'service_tiers',
    'top_customers',
    'monthly_revenue',
    'status_distribution',
    'callback_performance',
    'build_chart_data',
    'groups_to_frame',
    'rows_to_frame',
]
