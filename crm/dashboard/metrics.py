# crm/dashboard/metrics.py
"""
KPI Calculations for the CRM Dashboard

Handles all metric calculations:
- Revenue totals and average deal size
- Callback conversion rate (always a percentage in [0, 100])
- Today / this-week windows
- Per-agent callback KPIs
- Mapping of backend-precomputed stats onto the same keys

Conversion rates have a single representation: a percentage number.
Backend values that may arrive as a 0-1 fraction are converted exactly
once, in to_percentage().
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from .aggregator import Group, by_agent_name, group_by, record_amount, top_groups
from .constants import CALLBACK_STATUSES, DEAL_STATUSES
from .normalizers import parse_money

logger = logging.getLogger(__name__)


# =============================================================================
# PURE METRICS
# =============================================================================

def _status(record: Any) -> str:
    value = record.get('status') if isinstance(record, dict) else getattr(record, 'status', '')
    return (value or '').lower()


def total_revenue(records: Iterable[Any]) -> float:
    return sum(record_amount(r) for r in records)


def average_deal_size(records: Iterable[Any]) -> float:
    """Revenue / count, 0 for an empty list."""
    records = list(records)
    return total_revenue(records) / max(1, len(records))


def count_by_status(records: Iterable[Any], statuses: List[str]) -> Dict[str, int]:
    counts = {status: 0 for status in statuses}
    for record in records:
        status = _status(record)
        counts[status] = counts.get(status, 0) + 1
    return counts


def conversion_rate(callbacks: Iterable[Any]) -> float:
    """completed / total * 100, 0 for an empty list."""
    callbacks = list(callbacks)
    completed = sum(1 for c in callbacks if _status(c) == 'completed')
    return completed / max(1, len(callbacks)) * 100


def to_percentage(value: Any) -> float:
    """
    Normalize a rate coming from outside into a percentage in [0, 100].

    Values in [0, 1] are treated as fractions, larger values as already
    being percentages. Unreadable input gives 0.
    """
    number = parse_money(value.rstrip('%') if isinstance(value, str) else value)
    if number is None or number < 0:
        return 0.0
    if number <= 1:
        number *= 100
    return min(number, 100.0)


# =============================================================================
# DASHBOARD METRICS
# =============================================================================

class DashboardMetrics:
    """
    KPI calculations over canonical deal / callback lists.

    Usage:
        metrics = DashboardMetrics(deals, callbacks)

        overview = metrics.calculate_overview()
        callback_kpis = metrics.calculate_callback_kpis()
    """

    def __init__(self, deals: List[Any] = None, callbacks: List[Any] = None, now: datetime = None):
        """
        Args:
            deals: Role-filtered canonical deals
            callbacks: Role-filtered canonical callbacks
            now: Reference time for today / this-week windows (defaults to now, UTC)
        """
        self.deals = list(deals or [])
        self.callbacks = list(callbacks or [])
        self.now = now or datetime.now(timezone.utc).replace(tzinfo=None)

    # =========================================================================
    # OVERVIEW METRICS
    # =========================================================================

    def calculate_overview(self) -> Dict:
        """Overview KPIs for the metric cards."""
        if not self.deals:
            overview = self._get_empty_overview()
            overview['conversion_rate'] = conversion_rate(self.callbacks)
            overview['total_callbacks'] = len(self.callbacks)
            return overview

        revenue = total_revenue(self.deals)
        status_counts = count_by_status(self.deals, DEAL_STATUSES)

        today = self.now.date()
        week_start = today - timedelta(days=today.weekday())

        today_deals = [d for d in self.deals if self._created_on_or_after(d, today, exact=True)]
        week_deals = [d for d in self.deals if self._created_on_or_after(d, week_start)]

        return {
            'total_revenue': revenue,
            'total_deals': len(self.deals),
            'avg_deal_size': average_deal_size(self.deals),
            'completed_deals': status_counts.get('completed', 0),
            'active_deals': status_counts.get('active', 0),
            'pending_deals': status_counts.get('pending', 0),
            'cancelled_deals': status_counts.get('cancelled', 0),
            'today_deals': len(today_deals),
            'today_revenue': total_revenue(today_deals),
            'week_deals': len(week_deals),
            'week_revenue': total_revenue(week_deals),
            'unique_agents': len(group_by(self.deals, by_agent_name)),
            'total_callbacks': len(self.callbacks),
            'conversion_rate': conversion_rate(self.callbacks),
        }

    def _created_on_or_after(self, record: Any, day, exact: bool = False) -> bool:
        created = getattr(record, 'created_at', None)
        if not isinstance(created, datetime):
            return False
        if exact:
            return created.date() == day
        return day <= created.date() <= self.now.date()

    @staticmethod
    def _get_empty_overview() -> Dict:
        return {
            'total_revenue': 0.0,
            'total_deals': 0,
            'avg_deal_size': 0.0,
            'completed_deals': 0,
            'active_deals': 0,
            'pending_deals': 0,
            'cancelled_deals': 0,
            'today_deals': 0,
            'today_revenue': 0.0,
            'week_deals': 0,
            'week_revenue': 0.0,
            'unique_agents': 0,
            'total_callbacks': 0,
            'conversion_rate': 0.0,
        }

    # =========================================================================
    # CALLBACK KPIs
    # =========================================================================

    def calculate_callback_kpis(self, top_n: int = 5) -> Dict:
        """Counts per status, conversion rate and per-agent breakdown."""
        counts = count_by_status(self.callbacks, CALLBACK_STATUSES)

        by_agent = []
        for group in group_by(self.callbacks, by_agent_name).values():
            conversions = sum(1 for c in group.items if _status(c) == 'completed')
            by_agent.append({
                'agent': group.key,
                'count': group.count,
                'conversions': conversions,
                'conversion_rate': conversion_rate(group.items),
            })
        by_agent.sort(key=lambda row: row['count'], reverse=True)

        top_agents = sorted(by_agent, key=lambda row: row['conversion_rate'], reverse=True)[:top_n]

        return {
            'total_callbacks': len(self.callbacks),
            'pending_callbacks': counts.get('pending', 0),
            'contacted_callbacks': counts.get('contacted', 0),
            'completed_callbacks': counts.get('completed', 0),
            'cancelled_callbacks': counts.get('cancelled', 0),
            'conversion_rate': conversion_rate(self.callbacks),
            'callbacks_by_agent': by_agent,
            'top_agents': top_agents,
        }

    # =========================================================================
    # AGENT LEADERBOARD
    # =========================================================================

    def agent_leaderboard(self, top_n: Optional[int] = 10) -> List[Dict]:
        """Agents by revenue with deal count and average deal size."""
        return [self._group_row(g) for g in top_groups(group_by(self.deals, by_agent_name), top_n)]

    @staticmethod
    def _group_row(group: Group) -> Dict:
        return {
            'agent': group.key,
            'deals': group.count,
            'revenue': group.sum,
            'avg_deal_size': group.average,
        }


# =============================================================================
# BACKEND STATS
# =============================================================================

def merge_backend_stats(stats: Dict[str, Any]) -> Dict:
    """
    Map a /api/dashboard-stats payload onto overview keys.

    The backend may send numbers as strings and the conversion rate as a
    fraction or a percentage; both are normalized here.
    """
    stats = stats or {}

    def _num(*keys: str) -> float:
        for key in keys:
            if key in stats:
                parsed = parse_money(stats[key])
                if parsed is not None:
                    return parsed
        return 0.0

    total_deals = int(_num('total_deals', 'totalDeals'))
    revenue = _num('total_revenue', 'totalRevenue')
    avg = _num('avg_deal_size', 'averageDealSize')
    if not avg and total_deals:
        avg = revenue / total_deals

    rate_raw = stats.get('conversion_rate', stats.get('conversionRate'))

    return {
        'total_revenue': revenue,
        'total_deals': total_deals,
        'avg_deal_size': avg,
        'today_deals': int(_num('today_deals', 'todayDeals')),
        'today_revenue': _num('today_revenue', 'todayRevenue'),
        'total_callbacks': int(_num('total_callbacks', 'totalCallbacks')),
        'conversion_rate': to_percentage(rate_raw) if rate_raw is not None else 0.0,
    }


__all__ = [
    'total_revenue',
    'average_deal_size',
    'count_by_status',
    'conversion_rate',
    'to_percentage',
    'DashboardMetrics',
    'merge_backend_stats',
]
