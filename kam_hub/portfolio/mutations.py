"""
Drive Data Mutations

State transitions for a (restaurant, drive) pair:

    NOT_APPROACHED -> APPROACHED -> CONVERTED

- mark_approached: sets approached (idempotent)
- mark_converted: sets converted_stepper AND approached

Each transition is two writes: update the drive_data row, then append a
conversion_tracking entry. The audit insert only runs after the update
succeeded. By default the writes commit separately, so a failed insert
leaves the update in place; with MUTATION_ATOMIC enabled both run in one
transaction. On success the cached restaurant reads are invalidated.

Writes are scoped like reads: the update only matches restaurants the
caller's AccessControl can see, and the audit row is written under the
caller's own email. An out-of-scope pair updates nothing and is reported
as NotFoundError.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..config import config
from ..db import get_db_engine, get_connection, get_transaction
from .access_control import AccessControl
from .cache import QueryCache, get_query_cache
from .constants import (
    ACTION_APPROACHED,
    ACTION_CONVERTED,
    CACHE_KEY_RESTAURANTS,
    CACHE_KEY_RESTAURANT,
    CACHE_KEY_HISTORY,
)
from .exceptions import NotFoundError, PreconditionError, StoreError
from .models import ConversionTrackingEntry

logger = logging.getLogger(__name__)

_UPDATE_APPROACHED = """
    UPDATE drive_data
    SET approached = :approached,
        last_updated = :last_updated
    WHERE res_id = :res_id
      AND drive_id = :drive_id
      AND res_id IN (SELECT r.res_id FROM restaurants r WHERE 1 = 1{scope})
"""

_UPDATE_CONVERTED = """
    UPDATE drive_data
    SET converted_stepper = :converted_stepper,
        approached = :approached,
        last_updated = :last_updated
    WHERE res_id = :res_id
      AND drive_id = :drive_id
      AND res_id IN (SELECT r.res_id FROM restaurants r WHERE 1 = 1{scope})
"""

_INSERT_TRACKING = """
    INSERT INTO conversion_tracking
        (res_id, drive_id, kam_email, action_type, action_date, notes)
    VALUES
        (:res_id, :drive_id, :kam_email, :action_type, :action_date, :notes)
    RETURNING id
"""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PortfolioMutations:
    """
    Service for approach/conversion transitions.

    Usage:
        mutations = PortfolioMutations(auth.get_access_control())
        entry = mutations.mark_approached("R1", 5)
    """

    def __init__(self, access_control: AccessControl, cache: QueryCache = None,
                 engine: Engine = None, atomic: Optional[bool] = None, clock=_utc_now):
        self.access = access_control
        self.cache = cache if cache is not None else get_query_cache()
        self._engine = engine
        self.atomic = (
            config.get_app_setting('MUTATION_ATOMIC', False) if atomic is None else atomic
        )
        self._clock = clock

    @property
    def engine(self) -> Engine:
        """Lazy load database engine."""
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    # ==================== PUBLIC OPERATIONS ====================

    def mark_approached(self, res_id: str, drive_id: int, kam_email: str = None,
                        notes: str = None) -> ConversionTrackingEntry:
        """Mark the restaurant as approached for a drive."""
        return self._transition(
            ACTION_APPROACHED, _UPDATE_APPROACHED,
            {'approached': True},
            res_id, drive_id, kam_email, notes
        )

    def mark_converted(self, res_id: str, drive_id: int, kam_email: str = None,
                       notes: str = None) -> ConversionTrackingEntry:
        """Mark the restaurant as converted for a drive (implies approached)."""
        return self._transition(
            ACTION_CONVERTED, _UPDATE_CONVERTED,
            {'converted_stepper': True, 'approached': True},
            res_id, drive_id, kam_email, notes
        )

    # ==================== TRANSITION ====================

    def _transition(self, action_type: str, update_sql: str, flags: Dict[str, bool],
                    res_id: str, drive_id: int, kam_email: Optional[str],
                    notes: Optional[str]) -> ConversionTrackingEntry:
        res_id, drive_id, kam_email = self._validate(res_id, drive_id, kam_email)

        scope, scope_params = self.access.build_restaurant_filter('r')
        now = self._clock()
        update_params = {
            **flags,
            **scope_params,
            'last_updated': now.isoformat(),
            'res_id': res_id,
            'drive_id': drive_id,
        }
        tracking_params = {
            'res_id': res_id,
            'drive_id': drive_id,
            'kam_email': kam_email,
            'action_type': action_type,
            'action_date': now.isoformat(),
            'notes': notes,
        }
        update_sql = update_sql.format(scope=scope)

        try:
            if self.atomic:
                with get_transaction(self.engine) as conn:
                    self._update(conn, update_sql, update_params)
                    entry_id = self._insert_tracking(conn, tracking_params)
            else:
                with get_connection(self.engine) as conn:
                    self._update(conn, update_sql, update_params)
                with get_connection(self.engine) as conn:
                    entry_id = self._insert_tracking(conn, tracking_params)
        except SQLAlchemyError as e:
            logger.error(f"❌ {action_type} failed for {res_id}/drive {drive_id} by {kam_email}: {e}")
            raise StoreError(str(e), operation=f"mark_{action_type}") from e

        self._invalidate(res_id)

        logger.info(f"User {kam_email} marked {res_id} as {action_type} for drive {drive_id}")

        return ConversionTrackingEntry(
            id=entry_id,
            res_id=res_id,
            drive_id=drive_id,
            kam_email=kam_email,
            action_type=action_type,
            action_date=now,
            notes=notes,
        )

    def _update(self, conn: Connection, update_sql: str, params: Dict):
        result = conn.execute(text(update_sql), params)
        if result.rowcount == 0:
            logger.warning(
                f"No drive_data row for {params['res_id']}/drive {params['drive_id']} "
                f"visible to {self.access.user_email}"
            )
            raise NotFoundError("DriveData", (params['res_id'], params['drive_id']))

    def _insert_tracking(self, conn: Connection, params: Dict) -> Optional[int]:
        return conn.execute(text(_INSERT_TRACKING), params).scalar()

    def _invalidate(self, res_id: str):
        self.cache.invalidate((CACHE_KEY_RESTAURANTS,))
        self.cache.invalidate((CACHE_KEY_RESTAURANT, res_id))
        self.cache.invalidate((CACHE_KEY_HISTORY, res_id))

    # ==================== VALIDATION ====================

    def _validate(self, res_id, drive_id, kam_email):
        actor = self.access.user_email
        if not actor:
            raise PreconditionError("a signed-in user is required")
        if not res_id or not str(res_id).strip():
            raise PreconditionError("res_id is required")
        if kam_email is not None and str(kam_email).strip().lower() != actor:
            raise PreconditionError(f"cannot record actions as {kam_email}")
        try:
            drive_id = int(drive_id)
        except (TypeError, ValueError):
            raise PreconditionError(f"drive_id must be an integer, got {drive_id!r}")
        if drive_id <= 0:
            raise PreconditionError(f"drive_id must be positive, got {drive_id}")

        return str(res_id).strip(), drive_id, actor


__all__ = ['PortfolioMutations']
