# crm/api_client.py
"""
Backend API Connection Management

Version: 1.0.0
Features:
- Singleton client with thread-safe double-checked locking
- Shared requests.Session (connection reuse, JSON headers)
- Uniform {success, error} envelope handling
- Health check utilities
"""

import json
import logging
import threading
from typing import Any, Dict, Optional, Tuple

import requests

from .config import config

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Raised when a backend call fails (transport, HTTP status or success=false)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CRMApiClient:
    """
    Thin JSON client for the CRM backend.

    Usage:
        client = get_api_client()
        payload = client.get('/api/deals', params={'userRole': 'manager', 'userId': '1'})
        client.post('/api/sales', json=deal_dict)
    """

    def __init__(self, base_url: str, timeout: float = 15, api_key: str = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        })
        if api_key:
            self.session.headers['Authorization'] = f"Bearer {api_key}"

    def _make_request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """
        Make an HTTP request and return the decoded JSON body.

        Raises:
            APIError: on timeout, connection error, non-2xx status,
                      invalid JSON or a body with success == false
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        kwargs.setdefault('timeout', self.timeout)

        try:
            response = self.session.request(method=method, url=url, **kwargs)
        except requests.exceptions.Timeout:
            raise APIError(f"Request timed out after {self.timeout} seconds")
        except requests.exceptions.ConnectionError:
            raise APIError(f"Could not connect to API server at {self.base_url}")
        except requests.exceptions.RequestException as e:
            raise APIError(f"Request failed: {e}")

        if not response.ok:
            detail = self._extract_error(response)
            raise APIError(f"HTTP {response.status_code}: {detail}", status_code=response.status_code)

        try:
            payload = response.json()
        except (ValueError, json.JSONDecodeError):
            raise APIError("Invalid JSON response from server", status_code=response.status_code)

        if isinstance(payload, dict) and payload.get('success') is False:
            raise APIError(
                payload.get('error') or payload.get('message') or 'Request was not successful',
                status_code=response.status_code,
            )

        return payload

    @staticmethod
    def _extract_error(response) -> str:
        try:
            body = response.json()
            if isinstance(body, dict):
                return body.get('error') or body.get('message') or response.reason
        except ValueError:
            pass
        return response.reason or 'Unknown error'

    # ==================== VERBS ====================

    def get(self, endpoint: str, params: Dict = None) -> Dict[str, Any]:
        return self._make_request('GET', endpoint, params=params or {})

    def post(self, endpoint: str, json: Dict = None, params: Dict = None) -> Dict[str, Any]:
        return self._make_request('POST', endpoint, json=json or {}, params=params or {})

    def put(self, endpoint: str, json: Dict = None, params: Dict = None) -> Dict[str, Any]:
        return self._make_request('PUT', endpoint, json=json or {}, params=params or {})

    def delete(self, endpoint: str, params: Dict = None) -> Dict[str, Any]:
        return self._make_request('DELETE', endpoint, params=params or {})

    def close(self):
        self.session.close()


# ==================== SINGLETON CLIENT ====================

_client = None
_client_lock = threading.Lock()


def get_api_client() -> CRMApiClient:
    """
    Get the shared API client (singleton pattern)

    Thread-safe implementation using double-checked locking.
    """
    global _client

    if _client is None:
        with _client_lock:
            if _client is None:
                _client = _create_client()

    return _client


def _create_client() -> CRMApiClient:
    api_config = config.get_api_config()
    client = CRMApiClient(
        base_url=api_config['base_url'],
        timeout=api_config['timeout_seconds'],
        api_key=api_config.get('api_key'),
    )
    logger.info(f"🔌 API client created: {client.base_url} (timeout={client.timeout}s)")
    return client


def reset_api_client():
    """
    Reset the shared client (force a new session on next call)
    """
    global _client

    with _client_lock:
        if _client is not None:
            try:
                _client.close()
                logger.info("🔄 API session closed")
            except Exception as e:
                logger.error(f"Error closing API session: {e}")
            _client = None


def check_api_connection() -> Tuple[bool, Optional[str]]:
    """
    Check if the backend is reachable

    Returns:
        Tuple of (is_connected: bool, error_message: str or None)
    """
    try:
        get_api_client().get('/api/health')
        return True, None
    except APIError as e:
        logger.error(f"❌ Backend health check failed: {e}")
        if e.status_code is None:
            return False, "Cannot reach the CRM backend. Please check your network connection."
        return False, f"Backend error: {e}"


__all__ = [
    'APIError',
    'CRMApiClient',
    'get_api_client',
    'reset_api_client',
    'check_api_connection',
]
