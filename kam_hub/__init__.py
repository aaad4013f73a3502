"""
Shared Package for the KAM Hub Streamlit App

This package contains common utilities shared across all pages:
- auth: Authentication and session management
- config: Configuration management (local + Streamlit Cloud)
- db: Database connection management with pooling
- portfolio: Restaurant / drive data access and mutations

Usage:
    from kam_hub.auth import AuthManager
    from kam_hub.db import get_db_engine, get_connection
    from kam_hub.config import config
"""

# Authentication
from .auth import (
    AuthManager,
    is_authorized_email,
)

# Configuration
from .config import (
    config,
    Config,
)

# Database
from .db import (
    get_db_engine,
    set_db_engine,
    check_db_connection,
    reset_db_engine,
    get_connection,
    get_transaction,
    get_connection_pool_status,
)

__all__ = [
    # Auth
    'AuthManager',
    'is_authorized_email',

    # Config
    'config',
    'Config',

    # Database
    'get_db_engine',
    'set_db_engine',
    'check_db_connection',
    'reset_db_engine',
    'get_connection',
    'get_transaction',
    'get_connection_pool_status',
]

__version__ = '1.0.0'
