# crm/auth.py
"""
Authentication Manager for the CRM Dashboard

Version: 1.0.0
Features:
- Credentials checked by the backend (POST /api/auth)
- Role-based page guards (manager / team_leader / salesman)
- Session management with timeout
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Tuple

import streamlit as st

from .api_client import APIError, get_api_client
from .config import config
from .dashboard.constants import (
    ALL_ROLES,
    ROLE_LABELS,
    SESSION_KEY_FEEDBACK,
    SESSION_KEY_FILTERS,
    SESSION_KEY_SEQUENCER,
    TABLE_STATE_SUFFIX,
)
from .dashboard.models import Identity
from .dashboard.normalizers import normalize_identity

logger = logging.getLogger(__name__)

AUTH_KEYS = [
    'authenticated', 'user_id', 'username', 'user_email', 'user_role',
    'user_fullname', 'user_team', 'managed_team', 'auth_token', 'login_time',
    'debug_mode',
]

# Per-user UI state kept alongside the identity
USER_STATE_KEYS = [SESSION_KEY_FILTERS, SESSION_KEY_SEQUENCER, SESSION_KEY_FEEDBACK]


class AuthManager:
    """Authentication manager for Streamlit apps"""

    def __init__(self):
        self.session_timeout = timedelta(
            hours=config.get_app_setting("SESSION_TIMEOUT_HOURS", 8)
        )

    # ==================== AUTHENTICATION ====================

    def authenticate(self, username: str, password: str) -> Tuple[bool, Dict]:
        """
        Authenticate user against the backend

        Returns:
            Tuple of (success: bool, user_info: dict or error: dict)
        """
        if not username or not password:
            return False, {"error": "Username and password are required"}

        try:
            payload = get_api_client().post('/api/auth', json={'username': username, 'password': password})
        except APIError as e:
            if e.status_code in (400, 401, 403):
                logger.warning(f"Rejected login for user: {username}")
                return False, {"error": "Invalid username or password"}
            logger.error(f"Authentication error: {e}")
            return False, {"error": "Authentication failed. Please try again."}

        user = payload.get('user') or {}
        if user.get('is_active') is False:
            logger.warning(f"Login attempt for inactive user: {username}")
            return False, {"error": "Account is inactive. Please contact administrator."}

        identity = normalize_identity(user)
        if not identity.id or identity.role not in ALL_ROLES:
            logger.error(f"Backend returned unusable user for {username}: role={identity.role!r}")
            return False, {"error": "Your account has no dashboard role. Please contact administrator."}

        logger.info(f"User {username} authenticated successfully")

        return True, {
            'id': identity.id,
            'username': user.get('username') or username,
            'email': user.get('email', ''),
            'role': identity.role,
            'full_name': identity.name or username,
            'team': identity.team,
            'managed_team': identity.managed_team,
            'token': payload.get('token'),
            'login_time': datetime.now(),
        }

    # ==================== SESSION MANAGEMENT ====================

    def check_session(self) -> bool:
        """Check if user session is valid and not expired"""
        if not st.session_state.get('authenticated'):
            return False

        login_time = st.session_state.get('login_time')
        if login_time:
            elapsed = datetime.now() - login_time
            if elapsed > self.session_timeout:
                logger.info(f"Session expired for user: {st.session_state.get('username')}")
                self.logout()
                return False

        return True

    def login(self, user_info: Dict):
        """Initialize user session after successful authentication"""
        st.session_state.authenticated = True
        st.session_state.user_id = user_info['id']
        st.session_state.username = user_info['username']
        st.session_state.user_email = user_info['email']
        st.session_state.user_role = user_info['role']
        st.session_state.user_fullname = user_info['full_name']
        st.session_state.user_team = user_info.get('team', '')
        st.session_state.managed_team = user_info.get('managed_team', '')
        st.session_state.auth_token = user_info.get('token')
        st.session_state.login_time = user_info['login_time']

        st.session_state.debug_mode = config.is_feature_enabled('DEBUG_MODE')

        logger.info(f"User {user_info['username']} ({user_info['role']}) logged in successfully")

    def logout(self):
        """
        Clear this user's session: identity, filters, table state.

        The shared API client and st.cache_data are process-wide (cached
        lookups are keyed by identity), so other sessions keep theirs.
        """
        username = st.session_state.get('username', 'Unknown')

        for key in list(st.session_state.keys()):
            if key in AUTH_KEYS or key in USER_STATE_KEYS or str(key).endswith(TABLE_STATE_SUFFIX):
                del st.session_state[key]

        logger.info(f"User {username} logged out")

    # ==================== ACCESS CONTROL ====================

    def require_auth(self) -> bool:
        """
        Require authentication to access a page
        Use at the beginning of each protected page
        """
        if not self.check_session():
            st.warning("⚠️ Please login to access this page")
            st.stop()
            return False
        return True

    def require_role(self, allowed_roles: List[str]) -> bool:
        """
        Require specific role(s) to access a page

        Usage:
            auth.require_role(['manager', 'team_leader'])
        """
        if not self.require_auth():
            return False

        current_role = st.session_state.get('user_role', '')

        if current_role not in allowed_roles:
            labels = ', '.join(ROLE_LABELS.get(r, r) for r in allowed_roles)
            st.error(f"🚫 Access denied. Required role: {labels}")
            st.stop()
            return False

        return True

    # ==================== USER INFO HELPERS ====================

    def get_user_display_name(self) -> str:
        if st.session_state.get('user_fullname'):
            return st.session_state.user_fullname
        return st.session_state.get('username', 'User')

    def get_identity(self) -> Identity:
        """The logged-in user as an Identity (empty id when logged out)."""
        return Identity(
            id=str(st.session_state.get('user_id') or ''),
            name=st.session_state.get('user_fullname') or st.session_state.get('username', ''),
            role=st.session_state.get('user_role', ''),
            team=st.session_state.get('user_team', ''),
            managed_team=st.session_state.get('managed_team', ''),
        )



__all__ = [
    'AuthManager',
]
