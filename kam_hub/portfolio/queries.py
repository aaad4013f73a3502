"""
SQL Queries and Data Loading for the Restaurant Portfolio

Handles all read interactions with the store:
- Restaurants visible to the caller, with drive data and drive metadata
- Single restaurant detail
- Active drives / single drive
- Conversion tracking history

All restaurant queries respect access control filtering.
Results go through the shared QueryCache; mutations invalidate it.
"""

import logging
from typing import Callable, Dict, List

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..db import get_db_engine
from .access_control import AccessControl
from .cache import QueryCache, get_query_cache
from .constants import (
    DRIVE_STATUS_ACTIVE,
    CACHE_KEY_RESTAURANTS,
    CACHE_KEY_RESTAURANT,
    CACHE_KEY_DRIVES,
    CACHE_KEY_DRIVE,
    CACHE_KEY_HISTORY,
)
from .exceptions import NotFoundError, PreconditionError, StoreError
from .models import (
    Drive,
    DriveData,
    Restaurant,
    ConversionTrackingEntry,
    RESTAURANT_FIELDS,
    DRIVE_FIELDS,
    DRIVE_DATA_FIELDS,
    CONVERSION_TRACKING_FIELDS,
)

logger = logging.getLogger(__name__)

DRIVE_PREFIX = 'drive__'

_RESTAURANT_SELECT = ", ".join(f"r.{col}" for col in RESTAURANT_FIELDS)
_DRIVE_DATA_SELECT = ", ".join(
    [f"dd.{col}" for col in DRIVE_DATA_FIELDS]
    + [f"d.{col} AS {DRIVE_PREFIX}{col}" for col in DRIVE_FIELDS]
)
_DRIVE_SELECT = ", ".join(DRIVE_FIELDS)


class PortfolioQueries:
    """
    Data loading class for the restaurant portfolio.

    Usage:
        access = AccessControl(user_role, user_email)
        queries = PortfolioQueries(access)

        restaurants = queries.list_restaurants()
        restaurant = queries.get_restaurant("R1")
        drives = queries.list_active_drives()
    """

    def __init__(self, access_control: AccessControl, engine: Engine = None,
                 cache: QueryCache = None):
        """
        Initialize with access control.

        Args:
            access_control: AccessControl instance for filtering
            engine: Optional engine (defaults to the shared one)
            cache: Optional cache (defaults to the process-wide one)
        """
        self.access = access_control
        self._engine = engine
        self.cache = cache if cache is not None else get_query_cache()

    @property
    def engine(self) -> Engine:
        """Lazy load database engine."""
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    # =========================================================================
    # RESTAURANTS
    # =========================================================================

    def list_restaurants(self) -> List[Restaurant]:
        """
        Restaurants visible to the caller, ordered by name.

        Each restaurant carries its drive_data rows, each row its drive.
        No visible rows gives an empty list.
        """
        key = (CACHE_KEY_RESTAURANTS, self.access.cache_scope)
        return self.cache.get_or_load(key, self._load_restaurants)

    def get_restaurant(self, res_id: str) -> Restaurant:
        """
        Single restaurant with nested drive data.

        Raises:
            PreconditionError: res_id is empty
            NotFoundError: no visible restaurant has this id
            StoreError: the store failed
        """
        if not res_id:
            raise PreconditionError("res_id is required")

        key = (CACHE_KEY_RESTAURANT, res_id, self.access.cache_scope)
        return self.cache.get_or_load(key, lambda: self._load_restaurant(res_id))

    def _load_restaurants(self) -> List[Restaurant]:
        clause, params = self.access.build_restaurant_filter('r')

        restaurant_query = f"""
            SELECT {_RESTAURANT_SELECT}
            FROM restaurants r
            WHERE 1 = 1{clause}
            ORDER BY r.res_name ASC
        """

        drive_data_query = f"""
            SELECT {_DRIVE_DATA_SELECT}
            FROM drive_data dd
            JOIN restaurants r ON r.res_id = dd.res_id
            LEFT JOIN drives d ON d.id = dd.drive_id
            WHERE 1 = 1{clause}
            ORDER BY dd.res_id, dd.id
        """

        def load(conn):
            restaurant_rows = conn.execute(text(restaurant_query), params).fetchall()
            drive_data_rows = conn.execute(text(drive_data_query), params).fetchall()
            return restaurant_rows, drive_data_rows

        restaurant_rows, drive_data_rows = self._run("list_restaurants", load)

        restaurants = [Restaurant.from_row(row._mapping) for row in restaurant_rows]
        self._attach_drive_data(restaurants, drive_data_rows)

        logger.info(
            f"Loaded {len(restaurants)} restaurants with {len(drive_data_rows)} drive rows "
            f"(access={self.access.get_access_level()})"
        )
        return restaurants

    def _load_restaurant(self, res_id: str) -> Restaurant:
        clause, params = self.access.build_restaurant_filter('r')
        params = {**params, 'res_id': res_id}

        restaurant_query = f"""
            SELECT {_RESTAURANT_SELECT}
            FROM restaurants r
            WHERE r.res_id = :res_id{clause}
        """

        drive_data_query = f"""
            SELECT {_DRIVE_DATA_SELECT}
            FROM drive_data dd
            LEFT JOIN drives d ON d.id = dd.drive_id
            WHERE dd.res_id = :res_id
            ORDER BY dd.id
        """

        def load(conn):
            row = conn.execute(text(restaurant_query), params).fetchone()
            if row is None:
                return None, []
            drive_data_rows = conn.execute(text(drive_data_query), {'res_id': res_id}).fetchall()
            return row, drive_data_rows

        row, drive_data_rows = self._run("get_restaurant", load)

        if row is None:
            logger.warning(f"Restaurant {res_id} not found or not visible to {self.access.user_email}")
            raise NotFoundError("Restaurant", res_id)

        restaurant = Restaurant.from_row(row._mapping)
        self._attach_drive_data([restaurant], drive_data_rows)
        return restaurant

    def _attach_drive_data(self, restaurants: List[Restaurant], drive_data_rows) -> None:
        by_id: Dict[str, Restaurant] = {r.res_id: r for r in restaurants}

        for row in drive_data_rows:
            mapping = row._mapping
            drive = None
            if mapping.get(f"{DRIVE_PREFIX}id") is not None:
                drive = Drive.from_row(mapping, prefix=DRIVE_PREFIX)
            else:
                logger.warning(
                    f"drive_data {mapping['id']} for {mapping['res_id']} "
                    f"references missing drive {mapping.get('drive_id')}"
                )

            owner = by_id.get(mapping['res_id'])
            if owner is not None:
                owner.drive_data.append(DriveData.from_row(mapping, drive=drive))

    # =========================================================================
    # DRIVES
    # =========================================================================

    def list_active_drives(self) -> List[Drive]:
        """Active drives, most recent start date first."""
        key = (CACHE_KEY_DRIVES, DRIVE_STATUS_ACTIVE)
        return self.cache.get_or_load(key, self._load_active_drives)

    def get_drive(self, drive_id: int) -> Drive:
        """
        Single drive by id.

        Raises:
            PreconditionError: drive_id is missing or not positive
            NotFoundError: no drive has this id
            StoreError: the store failed
        """
        try:
            drive_id = int(drive_id)
        except (TypeError, ValueError):
            raise PreconditionError(f"drive_id must be an integer, got {drive_id!r}")
        if drive_id <= 0:
            raise PreconditionError("drive_id is required")

        key = (CACHE_KEY_DRIVE, drive_id)
        return self.cache.get_or_load(key, lambda: self._load_drive(drive_id))

    def _load_active_drives(self) -> List[Drive]:
        query = f"""
            SELECT {_DRIVE_SELECT}
            FROM drives
            WHERE status = :status
            ORDER BY start_date DESC, id
        """

        rows = self._run(
            "list_active_drives",
            lambda conn: conn.execute(text(query), {'status': DRIVE_STATUS_ACTIVE}).fetchall()
        )
        drives = [Drive.from_row(row._mapping) for row in rows]
        logger.info(f"Loaded {len(drives)} active drives")
        return drives

    def _load_drive(self, drive_id: int) -> Drive:
        query = f"""
            SELECT {_DRIVE_SELECT}
            FROM drives
            WHERE id = :drive_id
        """

        row = self._run(
            "get_drive",
            lambda conn: conn.execute(text(query), {'drive_id': drive_id}).fetchone()
        )
        if row is None:
            raise NotFoundError("Drive", drive_id)
        return Drive.from_row(row._mapping)

    # =========================================================================
    # CONVERSION HISTORY
    # =========================================================================

    def list_conversion_history(self, res_id: str) -> List[ConversionTrackingEntry]:
        """
        Audit entries for a visible restaurant, newest first.

        Raises:
            PreconditionError: res_id is empty
            NotFoundError: restaurant not visible to the caller
        """
        if not res_id:
            raise PreconditionError("res_id is required")

        key = (CACHE_KEY_HISTORY, res_id, self.access.cache_scope)
        return self.cache.get_or_load(key, lambda: self._load_history(res_id))

    def _load_history(self, res_id: str) -> List[ConversionTrackingEntry]:
        clause, params = self.access.build_restaurant_filter('r')
        params = {**params, 'res_id': res_id}

        visible_query = f"""
            SELECT r.res_id
            FROM restaurants r
            WHERE r.res_id = :res_id{clause}
        """

        columns = ", ".join(f"ct.{col}" for col in CONVERSION_TRACKING_FIELDS)
        history_query = f"""
            SELECT {columns}
            FROM conversion_tracking ct
            WHERE ct.res_id = :res_id
            ORDER BY ct.id DESC
        """

        def load(conn):
            if conn.execute(text(visible_query), params).fetchone() is None:
                return None
            return conn.execute(text(history_query), {'res_id': res_id}).fetchall()

        rows = self._run("list_conversion_history", load)
        if rows is None:
            raise NotFoundError("Restaurant", res_id)
        return [ConversionTrackingEntry.from_row(row._mapping) for row in rows]

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _run(self, operation: str, fn: Callable):
        """Run fn(conn) on a fresh connection; store failures become StoreError."""
        try:
            with self.engine.connect() as conn:
                return fn(conn)
        except SQLAlchemyError as e:
            logger.error(f"❌ {operation} failed: {e}")
            raise StoreError(str(e), operation=operation) from e


__all__ = ['PortfolioQueries']
