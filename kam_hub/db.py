# kam_hub/db.py
"""
Database Connection Management

Features:
- Singleton engine with thread-safe double-checked locking
- Connection pooling with auto-reconnect
- Health check utilities
- Commit/rollback context managers
"""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool
from sqlalchemy.exc import OperationalError
import logging
import threading
from typing import Tuple, Optional, Dict, Any
from contextlib import contextmanager

from .config import config

logger = logging.getLogger(__name__)

# ==================== SINGLETON ENGINE ====================

_engine = None
_engine_lock = threading.Lock()


def get_db_engine() -> Engine:
    """
    Get SQLAlchemy database engine (singleton pattern)

    Reuses the same engine across all Streamlit sessions to prevent
    connection pool exhaustion.
    """
    global _engine

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = _create_engine()

    return _engine


def _create_engine() -> Engine:
    """Create new database engine with configured settings"""
    url = config.get_db_url()

    logger.info(f"🔌 Creating database engine: {config.get_masked_db_url()}")

    pool_size = config.get_app_setting("DB_POOL_SIZE", 5)
    pool_recycle = config.get_app_setting("DB_POOL_RECYCLE", 3600)

    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,  # Auto-reconnect on stale connections
        echo=False
    )

    logger.info(f"✅ Database engine created (pool_size={pool_size}, recycle={pool_recycle}s)")

    return engine


def set_db_engine(engine: Optional[Engine]):
    """Install an externally built engine (e.g. a local sqlite store)"""
    global _engine

    with _engine_lock:
        _engine = engine


# ==================== CONNECTION MANAGEMENT ====================

def check_db_connection(engine: Engine = None) -> Tuple[bool, Optional[str]]:
    """
    Check if database connection is healthy

    Returns:
        Tuple of (is_connected: bool, error_message: str or None)
    """
    try:
        engine = engine or get_db_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, None
    except ValueError as e:
        logger.error(f"❌ Database not configured: {e}")
        return False, str(e)
    except OperationalError as e:
        logger.error(f"❌ Database connection failed: {e}")
        return False, "Cannot connect to database. Please check your network connection."
    except Exception as e:
        logger.error(f"❌ Database error: {e}")
        return False, f"Database error: {str(e)}"


def reset_db_engine():
    """
    Reset the database engine (force new connection)

    Call this after persistent connection errors.
    """
    global _engine

    with _engine_lock:
        if _engine is not None:
            try:
                _engine.dispose()
                logger.info("🔄 Database engine disposed")
            except Exception as e:
                logger.error(f"Error disposing engine: {e}")
            _engine = None

    logger.info("🔄 Database engine reset - will reconnect on next query")


def get_connection_pool_status() -> Dict[str, Any]:
    """Get connection pool statistics for monitoring"""
    if _engine is None:
        return {"status": "not_initialized"}

    try:
        pool = _engine.pool
        return {
            "status": "active",
            "pool_size": pool.size(),
            "checked_in": pool.checkedin(),
            "checked_out": pool.checkedout(),
            "overflow": pool.overflow(),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}


# ==================== CONTEXT MANAGERS ====================

@contextmanager
def get_connection(engine: Engine = None):
    """
    Context manager for database connections

    Usage:
        with get_connection() as conn:
            conn.execute(text("UPDATE ..."))
    """
    engine = engine or get_db_engine()
    conn = engine.connect()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def get_transaction(engine: Engine = None):
    """
    Context manager for database transactions

    Usage:
        with get_transaction() as conn:
            conn.execute(text("UPDATE ..."))
            conn.execute(text("INSERT INTO ..."))
            # Auto-commit on success, auto-rollback on exception
    """
    engine = engine or get_db_engine()
    conn = engine.connect()
    trans = conn.begin()
    try:
        yield conn
        trans.commit()
    except Exception:
        trans.rollback()
        raise
    finally:
        conn.close()


# ==================== EXPORTS ====================

__all__ = [
    'get_db_engine',
    'set_db_engine',
    'check_db_connection',
    'reset_db_engine',
    'get_connection_pool_status',
    'get_connection',
    'get_transaction',
]
