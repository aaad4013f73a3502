"""
Restaurant Portfolio Module

Data access and mutations for restaurants, drives and drive data.

Components:
- access_control: Role-based visibility (admin/zonal_head, team_lead, kam)
- queries: Reads with nested drive data, served through the query cache
- mutations: Mark approached / converted with audit trail
- cache: Keyed query cache with explicit invalidation
- metrics: Portfolio and drive funnel calculations
- filters: Table search and sort
- export: CSV and formatted Excel export
- notes: Per-user restaurant notes

Usage:
    from kam_hub.portfolio import (
        AccessControl,
        PortfolioQueries,
        PortfolioMutations,
    )
"""

from .access_control import AccessControl
from .cache import QueryCache, get_query_cache
from .queries import PortfolioQueries
from .mutations import PortfolioMutations
from .metrics import PortfolioMetrics
from .export import PortfolioExport
from .notes import RestaurantNotes
from .filters import filter_portfolio, sort_portfolio, next_sort_state
from .models import Restaurant, Drive, DriveData, ConversionTrackingEntry
from .exceptions import PortfolioError, NotFoundError, StoreError, PreconditionError

from .constants import (
    FULL_ACCESS_ROLES,
    TEAM_ACCESS_ROLES,
    SELF_ACCESS_ROLES,
    ACTION_APPROACHED,
    ACTION_CONVERTED,
    DRIVE_DESCRIPTIONS,
    PORTFOLIO_COLUMNS,
)

__all__ = [
    # Classes
    'AccessControl',
    'QueryCache',
    'get_query_cache',
    'PortfolioQueries',
    'PortfolioMutations',
    'PortfolioMetrics',
    'PortfolioExport',
    'RestaurantNotes',

    # Table helpers
    'filter_portfolio',
    'sort_portfolio',
    'next_sort_state',

    # Records
    'Restaurant',
    'Drive',
    'DriveData',
    'ConversionTrackingEntry',

    # Errors
    'PortfolioError',
    'NotFoundError',
    'StoreError',
    'PreconditionError',

    # Constants
    'FULL_ACCESS_ROLES',
    'TEAM_ACCESS_ROLES',
    'SELF_ACCESS_ROLES',
    'ACTION_APPROACHED',
    'ACTION_CONVERTED',
    'DRIVE_DESCRIPTIONS',
    'PORTFOLIO_COLUMNS',
]
