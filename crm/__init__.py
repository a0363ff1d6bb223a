# crm/__init__.py
"""
Shared Utilities Package for the Sales CRM Dashboard

This package contains common utilities shared across all pages:
- auth: Authentication and session management
- config: Configuration management (local + Streamlit Cloud)
- api_client: Backend REST client

Usage:
    from crm.auth import AuthManager
    from crm.api_client import get_api_client, check_api_connection
    from crm.config import config

    # Or import commonly used items directly
    from crm import AuthManager, get_api_client, config
"""

# Configuration
from .config import (
    config,
    Config,
    IS_RUNNING_ON_CLOUD,
    API_CONFIG,
    APP_CONFIG,
)

# Backend API
from .api_client import (
    APIError,
    CRMApiClient,
    get_api_client,
    reset_api_client,
    check_api_connection,
)

# Authentication
from .auth import AuthManager

__all__ = [
    # Config
    'config',
    'Config',
    'IS_RUNNING_ON_CLOUD',
    'API_CONFIG',
    'APP_CONFIG',

    # API
    'APIError',
    'CRMApiClient',
    'get_api_client',
    'reset_api_client',
    'check_api_connection',

    # Auth
    'AuthManager',
]

__version__ = '1.0.0'
