# crm/dashboard/fetcher.py
"""
Data Loading for the CRM Dashboard

Handles all backend reads:
- Deals and callbacks (role-scoped query parameters)
- Precomputed dashboard stats and chart payloads
- Data center entries and feedback
- Sidebar lookup lists (teams, service tiers, agents), cached with st.cache_data

Every read returns a FetchResult. A failed call is logged and comes back
as success=False with empty records; reads never raise.

Responses are tagged with a RequestSequencer token so that a slow
response for superseded filters can be dropped by the caller.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

import streamlit as st

from crm.api_client import APIError, CRMApiClient, get_api_client
from crm.config import config
from .access_control import AccessControl
from .constants import CACHE_TTL_SECONDS, ROLE_TEAM_LEADER
from .models import FetchResult, Identity
from .normalizers import (
    normalize_callback,
    normalize_data_entry,
    normalize_deal,
    normalize_feedback,
    normalize_many,
)

logger = logging.getLogger(__name__)


# =============================================================================
# STALE-RESPONSE GUARD
# =============================================================================

class RequestSequencer:
    """
    Monotonic request tokens per view key.

    Usage:
        token = sequencer.next_token('deals')
        result = fetcher.get_deals(token=token)
        if sequencer.accept('deals', result.token):
            render(result)
    """

    def __init__(self):
        self._latest: Dict[str, int] = {}
        self._counter = 0
        self._lock = threading.Lock()

    def next_token(self, key: str) -> int:
        with self._lock:
            self._counter += 1
            self._latest[key] = self._counter
            return self._counter

    def is_current(self, key: str, token: Optional[int]) -> bool:
        with self._lock:
            return token is not None and self._latest.get(key) == token

    def accept(self, key: str, token: Optional[int]) -> bool:
        """True if the response is for the latest request; logs discards."""
        if self.is_current(key, token):
            return True
        logger.debug(f"Discarding stale response for '{key}' (token={token})")
        return False

    def invalidate(self, key: str = None):
        """Drop everything in flight (for one key, or all keys)."""
        with self._lock:
            self._counter += 1
            if key is None:
                self._latest = {k: self._counter for k in self._latest}
            else:
                self._latest[key] = self._counter


def _total(payload: Dict, fallback: int) -> int:
    total = payload.get('total')
    if isinstance(total, bool) or not isinstance(total, (int, float)):
        return fallback
    return int(total)


# =============================================================================
# RECORD FETCHER
# =============================================================================

class RecordFetcher:
    """
    Backend reads for one identity.

    Usage:
        fetcher = RecordFetcher(get_api_client(), identity)

        deals = fetcher.get_deals(date_range=30)
        if deals.success:
            ...
    """

    def __init__(self, api: Optional[CRMApiClient], identity: Identity):
        """
        Args:
            api: API client (None -> shared client, resolved lazily)
            identity: Logged-in user; drives role parameters and filtering
        """
        self._api = api
        self.identity = identity
        self.access = AccessControl(identity)

    @property
    def api(self) -> CRMApiClient:
        """Lazy load the shared client."""
        if self._api is None:
            self._api = get_api_client()
        return self._api

    # =========================================================================
    # PARAMETERS
    # =========================================================================

    def build_params(self, date_range: Any = None, **extra) -> Dict[str, Any]:
        """Role parameters sent with every scoped read."""
        params = {
            'userRole': self.identity.role,
            'userId': self.identity.id,
        }
        if self.identity.role == ROLE_TEAM_LEADER and self.identity.managed_team:
            params['managedTeam'] = self.identity.managed_team
        if date_range not in (None, ''):
            params['dateRange'] = str(date_range)
        for key, value in extra.items():
            if value is not None:
                params[key] = value
        return params

    def _call(self, label: str, endpoint: str, params: Dict) -> Optional[Dict]:
        try:
            return self.api.get(endpoint, params=params)
        except APIError as e:
            logger.error(f"❌ Error loading {label}: {e}")
            return None

    # =========================================================================
    # DEALS / CALLBACKS
    # =========================================================================

    def get_deals(self, date_range: Any = None, limit: int = None, page: int = None,
                  token: int = None) -> FetchResult:
        """
        Load deals visible to the identity.

        The backend scopes by role already; the client-side filter runs again
        on the normalized records so a misconfigured backend cannot widen
        visibility.
        """
        limit = limit or config.get_app_setting('FETCH_LIMIT', 1000)
        params = self.build_params(date_range, limit=limit, page=page)
        payload = self._call("deals", '/api/deals', params)
        if payload is None:
            return FetchResult.failed("Failed to load deals", token)

        deals = normalize_many(payload.get('deals', payload.get('data')), normalize_deal)
        visible = self.access.filter_records(deals)
        logger.info(f"Loaded {len(visible)} deals for {self.identity.role}:{self.identity.id}")
        return FetchResult(
            success=True,
            records=visible,
            total=_total(payload, len(visible)),
            token=token,
        )

    def get_callbacks(self, date_range: Any = None, limit: int = None, page: int = None,
                      token: int = None) -> FetchResult:
        limit = limit or config.get_app_setting('FETCH_LIMIT', 1000)
        params = self.build_params(date_range, limit=limit, page=page)
        payload = self._call("callbacks", '/api/callbacks', params)
        if payload is None:
            return FetchResult.failed("Failed to load callbacks", token)

        callbacks = normalize_many(payload.get('callbacks', payload.get('data')), normalize_callback)
        visible = self.access.filter_records(callbacks)
        logger.info(f"Loaded {len(visible)} callbacks for {self.identity.role}:{self.identity.id}")
        return FetchResult(
            success=True,
            records=visible,
            total=_total(payload, len(visible)),
            token=token,
        )

    # =========================================================================
    # PRECOMPUTED STATS
    # =========================================================================

    def get_dashboard_stats(self, date_range: Any = None, token: int = None) -> FetchResult:
        payload = self._call("dashboard stats", '/api/dashboard-stats', self.build_params(date_range))
        if payload is None:
            return FetchResult.failed("Failed to load dashboard stats", token)

        data = payload.get('data')
        return FetchResult(success=True, stats=data if isinstance(data, dict) else {}, token=token)

    def get_charts(self, date_range: Any = None, chart_type: str = 'all', token: int = None) -> FetchResult:
        params = self.build_params(date_range, chartType=chart_type)
        payload = self._call("chart data", '/api/charts', params)
        if payload is None:
            return FetchResult.failed("Failed to load chart data", token)

        data = payload.get('data')
        return FetchResult(success=True, stats=data if isinstance(data, dict) else {}, token=token)

    # =========================================================================
    # DATA CENTER
    # =========================================================================

    def get_data_entries(self, token: int = None) -> FetchResult:
        params = {'user_id': self.identity.id, 'user_role': self.identity.role}
        payload = self._call("data center", '/api/data-center', params)
        if payload is None:
            return FetchResult.failed("Failed to load data center", token)

        entries = normalize_many(payload.get('data'), normalize_data_entry)
        visible = self.access.filter_entries(entries)
        return FetchResult(success=True, records=visible, total=len(visible), token=token)

    def get_feedback(self, data_id: str, token: int = None) -> FetchResult:
        params = {'data_id': data_id, 'user_id': self.identity.id, 'user_role': self.identity.role}
        payload = self._call("feedback", '/api/data-feedback', params)
        if payload is None:
            return FetchResult.failed("Failed to load feedback", token)

        feedback = normalize_many(payload.get('data'), normalize_feedback)
        return FetchResult(success=True, records=feedback, total=len(feedback), token=token)

    def get_all_feedback(self, token: int = None) -> FetchResult:
        """Every feedback item across entries (managers only)."""
        if not self.access.can('can_respond_to_feedback'):
            logger.warning(f"Role {self.identity.role} requested all feedback; returning none")
            return FetchResult(success=True, token=token)

        params = {'user_id': self.identity.id, 'user_role': self.identity.role}
        payload = self._call("all feedback", '/api/data-feedback-all', params)
        if payload is None:
            return FetchResult.failed("Failed to load feedback", token)

        feedback = normalize_many(payload.get('data'), normalize_feedback)
        return FetchResult(success=True, records=feedback, total=len(feedback), token=token)

    # =========================================================================
    # LOOKUP LISTS
    # =========================================================================

    def get_filter_options(self, date_range: Any = None, fallback: List[Any] = None) -> Dict[str, List[str]]:
        """
        Teams / service tiers / agents for the sidebar pickers.

        Served from st.cache_data; if the backend is unreachable the options
        are derived from `fallback` (records the page already holds).
        """
        try:
            return _get_filter_options_cached(
                self.identity.role,
                str(self.identity.id),
                self.identity.managed_team or '',
                '' if date_range is None else str(date_range),
            )
        except APIError as e:
            logger.warning(f"Filter options unavailable, using loaded records: {e}")
            return filter_options(fallback or [])

    # =========================================================================
    # PARALLEL LOADING
    # =========================================================================

    def fetch_many(
        self,
        calls: Dict[str, Callable[..., FetchResult]],
        sequencer: RequestSequencer = None,
        max_workers: int = None,
    ) -> Dict[str, FetchResult]:
        """
        Run independent reads concurrently.

        Each call receives its sequencer token; results whose token has been
        superseded by the time they arrive are replaced with a failed result.

        Example:
            results = fetcher.fetch_many({
                'deals': lambda token: fetcher.get_deals(30, token=token),
                'callbacks': lambda token: fetcher.get_callbacks(30, token=token),
            }, sequencer)
        """
        if not calls:
            return {}

        sequencer = sequencer or RequestSequencer()
        max_workers = max_workers or config.get_app_setting('MAX_PARALLEL_REQUESTS', 4)
        tokens = {key: sequencer.next_token(key) for key in calls}

        results: Dict[str, FetchResult] = {}
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {key: executor.submit(fn, tokens[key]) for key, fn in calls.items()}
            for key, future in futures.items():
                result = future.result()
                if sequencer.accept(key, result.token):
                    results[key] = result
                else:
                    results[key] = FetchResult.failed("Superseded by a newer request", result.token)

        return results


def available_teams(deals: List[Any]) -> List[str]:
    """Distinct non-empty team names, sorted, for filter options."""
    return sorted({d.team for d in deals if getattr(d, 'team', '')})


def available_service_tiers(deals: List[Any]) -> List[str]:
    return sorted({d.service_tier for d in deals if getattr(d, 'service_tier', '')})


def available_agents(records: List[Any]) -> List[str]:
    return sorted({r.sales_agent_name for r in records if getattr(r, 'sales_agent_name', '')})


def filter_options(deals: List[Any]) -> Dict[str, List[str]]:
    return {
        'teams': available_teams(deals),
        'services': available_service_tiers(deals),
        'agents': available_agents(deals),
    }


# =============================================================================
# CACHED LOOKUPS (Module-level for st.cache_data)
# =============================================================================

@st.cache_data(ttl=CACHE_TTL_SECONDS, show_spinner=False)
def _get_filter_options_cached(
    user_role: str,
    user_id: str,
    managed_team: str,
    date_range: str
) -> Dict[str, List[str]]:
    """
    Cached lookup lists for one identity and date window.
    Note: Uses plain strings for cache key compatibility.

    Raises APIError on a failed load so the empty result is not cached.
    """
    identity = Identity(id=user_id, role=user_role, managed_team=managed_team)
    result = RecordFetcher(None, identity).get_deals(date_range or None)
    if not result.success:
        raise APIError(result.error or "Failed to load filter options")
    return filter_options(result.records)


__all__ = [
    'RequestSequencer',
    'RecordFetcher',
    'available_teams',
    'available_service_tiers',
    'available_agents',
    'filter_options',
]
