# clinic_dashboard/config.py
"""
Centralized Configuration Management

Version: 1.0.0
Features:
- Support both local (.env) and Streamlit Cloud (secrets.toml)
- Singleton pattern for efficiency
- Type-safe getters with defaults
- Never raises on missing settings: every value has a default
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Dict, Any, Optional
from dataclasses import dataclass

# Initialize logger
logger = logging.getLogger(__name__)

DEFAULT_STORE_URL = "sqlite:///clinic_dashboard.db"


def is_running_on_streamlit_cloud() -> bool:
    """Detect if running on Streamlit Cloud"""
    try:
        import streamlit as st
        return hasattr(st, 'secrets') and len(st.secrets) > 0
    except Exception:
        return False


def _parse_optional_int(value: Any) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-integer setting value: {value!r}")
        return None


@dataclass
class StoreConfig:
    """Persistent store configuration container"""
    url: str = DEFAULT_STORE_URL
    pool_size: int = 5
    pool_recycle: int = 3600

    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def is_in_memory(self) -> bool:
        return self.url in ("sqlite://", "sqlite:///:memory:")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'pool_size': self.pool_size,
            'pool_recycle': self.pool_recycle,
        }


class Config:
    """
    Centralized configuration management

    Usage:
        from clinic_dashboard.config import config

        # Get store config
        store_config = config.get_store_config()

        # Get app settings
        ttl = config.get_app_setting("CACHE_TTL_SECONDS", 300)

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

        store_secrets = st.secrets.get("STORE", {})
        self._store_config = StoreConfig(
            url=store_secrets.get("URL", DEFAULT_STORE_URL),
            pool_size=_parse_optional_int(store_secrets.get("POOL_SIZE")) or 5,
            pool_recycle=_parse_optional_int(store_secrets.get("POOL_RECYCLE")) or 3600,
        )

        logger.info("☁️ Running in STREAMLIT CLOUD")

    def _load_local_config(self):
        """Load configuration from local .env file"""
        # Find and load .env file
        env_paths = [
            Path.cwd() / ".env",
            Path(__file__).parent.parent / ".env",
        ]

        for env_path in env_paths:
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded .env from: {env_path}")
                break

        self._store_config = StoreConfig(
            url=os.getenv("STORE_URL", DEFAULT_STORE_URL),
            pool_size=_parse_optional_int(os.getenv("DB_POOL_SIZE")) or 5,
            pool_recycle=_parse_optional_int(os.getenv("DB_POOL_RECYCLE")) or 3600,
        )

        logger.info("💻 Running in LOCAL environment")

    def _load_app_config(self):
        """Load application-specific settings"""
        self._app_config = {
            # Logging
            "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),

            # Cache
            "CACHE_TTL_SECONDS": _parse_optional_int(os.getenv("CACHE_TTL_SECONDS")) or 300,

            # Trend chart fallback jitter; unset means non-deterministic
            "TREND_RANDOM_SEED": _parse_optional_int(os.getenv("TREND_RANDOM_SEED")),

            # Localization
            "TIMEZONE": os.getenv("TIMEZONE", "America/Edmonton"),

            # Feature flags
            "ENABLE_EXPORT": os.getenv("ENABLE_EXPORT", "true").lower() == "true",
            "ENABLE_DEBUG_MODE": os.getenv("ENABLE_DEBUG_MODE", "false").lower() == "true",
        }

    def _log_config_status(self):
        """Log configuration status"""
        kind = "SQLite" if self._store_config.is_sqlite() else "SQL"
        logger.info(f"✅ Store: {kind} ({'in-memory' if self._store_config.is_in_memory() else 'file/server'})")
        seed = self._app_config.get("TREND_RANDOM_SEED")
        logger.info(f"✅ Trend seed: {seed if seed is not None else 'random'}")

    # ==================== PUBLIC GETTERS ====================

    def get_store_config(self) -> Dict[str, Any]:
        """Get store configuration as dictionary"""
        return self._store_config.to_dict()

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        """Get application setting with default"""
        value = self._app_config.get(key)
        return default if value is None else value

    def is_feature_enabled(self, feature: str) -> bool:
        """Check if feature is enabled"""
        key = f"ENABLE_{feature.upper()}"
        return self._app_config.get(key, True)

    # ==================== PROPERTIES ====================

    @property
    def store_config(self) -> StoreConfig:
        return self._store_config

    @property
    def app_config(self) -> Dict[str, Any]:
        return self._app_config.copy()


# ==================== SINGLETON INSTANCE ====================

config = Config()

IS_RUNNING_ON_CLOUD = config.is_cloud
STORE_CONFIG = config.get_store_config()
APP_CONFIG = config.app_config

__all__ = [
    'config',
    'Config',
    'StoreConfig',
    'IS_RUNNING_ON_CLOUD',
    'STORE_CONFIG',
    'APP_CONFIG',
]
