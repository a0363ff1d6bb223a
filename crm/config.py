# crm/config.py
"""
Centralized Configuration Management

Version: 1.0.0
Features:
- Support both local (.env) and Streamlit Cloud (secrets.toml)
- Singleton pattern for efficiency
- Type-safe getters with defaults
- Environment detection
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Dict, Any
from dataclasses import dataclass

# Initialize logger
logger = logging.getLogger(__name__)


def is_running_on_streamlit_cloud() -> bool:
    """Detect if running on Streamlit Cloud"""
    try:
        import streamlit as st
        return hasattr(st, 'secrets') and len(st.secrets) > 0
    except Exception:
        return False


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class ApiConfig:
    """Backend API configuration container"""
    base_url: str = "http://localhost:3000"
    timeout_seconds: int = 15
    api_key: str = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'base_url': self.base_url,
            'timeout_seconds': self.timeout_seconds,
            'api_key': self.api_key,
        }

    def is_configured(self) -> bool:
        return bool(self.base_url)


class Config:
    """
    Centralized configuration management

    Usage:
        from crm.config import config

        # Get backend API config
        api_config = config.get_api_config()

        # Get app settings
        page_size = config.get_app_setting("DEFAULT_PAGE_SIZE", 10)

        # Check feature flags
        if config.is_feature_enabled("EXPORT"):
            ...
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.is_cloud = is_running_on_streamlit_cloud()
        self._load_config()
        self._initialized = True

    def _load_config(self):
        """Load configuration based on environment"""
        if self.is_cloud:
            self._load_cloud_config()
        else:
            self._load_local_config()

        self._load_app_config()
        self._log_config_status()

    def _load_cloud_config(self):
        """Load configuration from Streamlit Cloud secrets"""
        import streamlit as st

        api_secrets = st.secrets.get("API", {})
        self._api_config = ApiConfig(
            base_url=str(api_secrets.get("BASE_URL", "http://localhost:3000")).rstrip('/'),
            timeout_seconds=int(api_secrets.get("TIMEOUT_SECONDS", 15)),
            api_key=api_secrets.get("API_KEY"),
        )

        # App settings from secrets are pushed into the environment so
        # _load_app_config reads a single source
        for key, value in dict(st.secrets.get("APP", {})).items():
            os.environ.setdefault(key, str(value))

        logger.info("☁️ Running in STREAMLIT CLOUD")

    def _load_local_config(self):
        """Load configuration from local .env file"""
        env_paths = [
            Path.cwd() / ".env",
            Path(__file__).parent.parent / ".env",
        ]

        for env_path in env_paths:
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded .env from: {env_path}")
                break

        self._api_config = ApiConfig(
            base_url=os.getenv("API_BASE_URL", "http://localhost:3000").rstrip('/'),
            timeout_seconds=int(os.getenv("REQUEST_TIMEOUT_SECONDS", "15")),
            api_key=os.getenv("API_KEY"),
        )

        if not self._api_config.is_configured():
            logger.warning("API_BASE_URL is empty, backend calls will fail")

        logger.info("💻 Running in LOCAL environment")

    def _load_app_config(self):
        """Load application-specific settings"""
        self._app_config = {
            # Session
            "SESSION_TIMEOUT_HOURS": int(os.getenv("SESSION_TIMEOUT_HOURS", "8")),

            # Data loading
            "AUTO_REFRESH_SECONDS": int(os.getenv("AUTO_REFRESH_SECONDS", "120")),
            "DEFAULT_DATE_RANGE_DAYS": int(os.getenv("DEFAULT_DATE_RANGE_DAYS", "30")),
            "FETCH_LIMIT": int(os.getenv("FETCH_LIMIT", "1000")),
            "MAX_PARALLEL_REQUESTS": int(os.getenv("MAX_PARALLEL_REQUESTS", "4")),

            # Tables
            "DEFAULT_PAGE_SIZE": int(os.getenv("DEFAULT_PAGE_SIZE", "10")),

            # Cache
            "CACHE_TTL_SECONDS": int(os.getenv("CACHE_TTL_SECONDS", "300")),

            # Feature flags
            "ENABLE_EXPORT": _as_bool(os.getenv("ENABLE_EXPORT"), True),
            "ENABLE_AUTO_REFRESH": _as_bool(os.getenv("ENABLE_AUTO_REFRESH"), True),
            "ENABLE_DEBUG_MODE": _as_bool(os.getenv("ENABLE_DEBUG_MODE"), False),
        }

    def _log_config_status(self):
        """Log configuration status"""
        logger.info(f"✅ Backend API: {self._api_config.base_url}")
        logger.info(f"✅ Request timeout: {self._api_config.timeout_seconds}s")
        logger.info(f"✅ API key: {'Configured' if self._api_config.api_key else 'Not configured'}")

    # ==================== PUBLIC GETTERS ====================

    def get_api_config(self) -> Dict[str, Any]:
        """Get backend API configuration as dictionary"""
        return self._api_config.to_dict()

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        """Get application setting with default"""
        return self._app_config.get(key, default)

    def is_feature_enabled(self, feature: str) -> bool:
        """Check if feature is enabled"""
        key = f"ENABLE_{feature.upper()}"
        return self._app_config.get(key, True)

    # ==================== PROPERTIES ====================

    @property
    def api_config(self) -> Dict[str, Any]:
        return self.get_api_config()

    @property
    def app_config(self) -> Dict[str, Any]:
        return self._app_config.copy()


# ==================== SINGLETON INSTANCE ====================

config = Config()

IS_RUNNING_ON_CLOUD = config.is_cloud
API_CONFIG = config.api_config
APP_CONFIG = config.app_config

__all__ = [
    'config',
    'Config',
    'IS_RUNNING_ON_CLOUD',
    'API_CONFIG',
    'APP_CONFIG',
]
