# kam_hub/config.py
"""
Centralized Configuration Management

Features:
- Support both local (.env) and Streamlit Cloud (secrets.toml)
- Singleton pattern for efficiency
- Type-safe getters with defaults
- Database URL validated lazily (on first engine creation)
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from urllib.parse import quote_plus

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
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def _as_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip().lower() for v in value if str(v).strip()]
    return [v.strip().lower() for v in str(value).split(',') if v.strip()]


@dataclass
class DatabaseConfig:
    """Database configuration container"""
    url: Optional[str] = None
    host: str = ""
    port: int = 5432
    user: str = ""
    password: str = ""
    database: str = "postgres"
    driver: str = "postgresql+psycopg2"

    def is_configured(self) -> bool:
        return bool(self.url or (self.host and self.user and self.password))

    def build_url(self) -> str:
        """Full SQLAlchemy URL; DATABASE_URL wins over the individual parts"""
        if self.url:
            return self.url
        password = quote_plus(str(self.password))
        return f"{self.driver}://{self.user}:{password}@{self.host}:{self.port}/{self.database}"

    def masked_url(self) -> str:
        """URL safe for log output"""
        if self.url:
            head, sep, tail = self.url.rpartition('@')
            return f"{head.split('://')[0]}://***@{tail}" if sep else self.url
        return f"{self.driver}://{self.user}:***@{self.host}:{self.port}/{self.database}"


@dataclass
class AuthConfig:
    """Who may sign in to the dashboard"""
    allowed_domain: str = "zomato.com"
    restrict_domain: bool = False
    test_emails: List[str] = field(default_factory=list)


class Config:
    """
    Centralized configuration management

    Usage:
        from kam_hub.config import config

        db_url = config.get_db_url()
        auth_config = config.get_auth_config()
        ttl = config.get_app_setting("CACHE_TTL_SECONDS", 300)
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

        self._log_config_status()

    def _load_cloud_config(self):
        """Load configuration from Streamlit Cloud secrets"""
        import streamlit as st

        # Database
        db_secrets = st.secrets.get("DB_CONFIG", {})
        self._db_config = DatabaseConfig(
            url=db_secrets.get("url") or st.secrets.get("DATABASE_URL"),
            host=db_secrets.get("host", ""),
            port=int(db_secrets.get("port", 5432)),
            user=db_secrets.get("user", ""),
            password=db_secrets.get("password", ""),
            database=db_secrets.get("database", "postgres")
        )

        # Auth
        auth_secrets = st.secrets.get("AUTH", {})
        self._auth_config = AuthConfig(
            allowed_domain=auth_secrets.get("ALLOWED_EMAIL_DOMAIN", "zomato.com").lower(),
            restrict_domain=_as_bool(auth_secrets.get("RESTRICT_DOMAIN"), False),
            test_emails=_as_list(auth_secrets.get("ALLOWED_TEST_EMAILS"))
        )

        self._load_app_config(dict(st.secrets.get("APP", {})))

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

        # Database
        self._db_config = DatabaseConfig(
            url=os.getenv("DATABASE_URL"),
            host=os.getenv("DB_HOST", ""),
            port=int(os.getenv("DB_PORT", "5432")),
            user=os.getenv("DB_USER", ""),
            password=os.getenv("DB_PASSWORD", ""),
            database=os.getenv("DB_NAME", "postgres")
        )

        # Auth
        self._auth_config = AuthConfig(
            allowed_domain=os.getenv("ALLOWED_EMAIL_DOMAIN", "zomato.com").lower(),
            restrict_domain=_as_bool(os.getenv("RESTRICT_DOMAIN"), False),
            test_emails=_as_list(os.getenv("ALLOWED_TEST_EMAILS"))
        )

        self._load_app_config(os.environ)

        logger.info("💻 Running in LOCAL environment")

    def _load_app_config(self, source):
        """Load application-specific settings"""
        self._app_config = {
            # Session
            "SESSION_TIMEOUT_HOURS": int(source.get("SESSION_TIMEOUT_HOURS", "8")),

            # Database pool
            "DB_POOL_SIZE": int(source.get("DB_POOL_SIZE", "5")),
            "DB_POOL_RECYCLE": int(source.get("DB_POOL_RECYCLE", "3600")),

            # Cache
            "CACHE_TTL_SECONDS": int(source.get("CACHE_TTL_SECONDS", "300")),

            # Notes
            "NOTES_DIR": source.get("NOTES_DIR", ".notes"),

            # Business logic
            "MUTATION_ATOMIC": _as_bool(source.get("MUTATION_ATOMIC"), False),

            # Feature flags
            "ENABLE_DEBUG_MODE": _as_bool(source.get("ENABLE_DEBUG_MODE"), False),
            "ENABLE_EXPORT": _as_bool(source.get("ENABLE_EXPORT"), True),
        }

    def _log_config_status(self):
        """Log configuration status"""
        if self._db_config.is_configured():
            logger.info(f"✅ Database: {self._db_config.masked_url()}")
        else:
            logger.warning("⚠️ Database: not configured")
        mode = "restricted" if self._auth_config.restrict_domain else "domain + test emails"
        logger.info(f"✅ Auth: @{self._auth_config.allowed_domain} ({mode})")

    # ==================== PUBLIC GETTERS ====================

    def get_db_url(self) -> str:
        """Get SQLAlchemy database URL"""
        if not self._db_config.is_configured():
            logger.error("Missing required database configuration")
            raise ValueError(
                "Missing required database configuration. "
                "Set DATABASE_URL or DB_HOST/DB_USER/DB_PASSWORD in .env."
            )
        return self._db_config.build_url()

    def get_masked_db_url(self) -> str:
        return self._db_config.masked_url()

    def get_auth_config(self) -> AuthConfig:
        return self._auth_config

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        """Get application setting with default"""
        return self._app_config.get(key, default)

    def is_feature_enabled(self, feature: str) -> bool:
        """Check if feature is enabled"""
        key = f"ENABLE_{feature.upper()}"
        return self._app_config.get(key, True)

    @property
    def app_config(self) -> Dict[str, Any]:
        return self._app_config.copy()


# ==================== SINGLETON INSTANCE ====================

config = Config()

__all__ = [
    'config',
    'Config',
    'DatabaseConfig',
    'AuthConfig',
]
