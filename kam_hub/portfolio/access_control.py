"""
Role-based Access Control for the Restaurant Portfolio

Handles data access permissions based on user role:
- admin/zonal_head: Full access to all restaurants
- team_lead: Restaurants where the user is team lead or assigned KAM
- kam: Restaurants assigned to the user only

The hosted store used to scope rows by caller identity on its own; here the
caller's email is passed explicitly and turned into a SQL filter that every
restaurant query appends.
"""

import logging
from typing import Dict, Optional, Tuple

from .constants import FULL_ACCESS_ROLES, TEAM_ACCESS_ROLES

logger = logging.getLogger(__name__)


class AccessControl:
    """
    Manage restaurant visibility based on user role and email.

    Usage:
        access = AccessControl(
            user_role=st.session_state.user_role,
            user_email=st.session_state.user_email
        )

        level = access.get_access_level()  # 'full', 'team', or 'self'
        clause, params = access.build_restaurant_filter('r')
    """

    def __init__(self, user_role: str, user_email: str):
        """
        Initialize access control.

        Args:
            user_role: User's role from session (e.g., 'admin', 'team_lead', 'kam')
            user_email: User's login email
        """
        self.user_role = user_role.lower() if user_role else ''
        self.user_email = user_email.strip().lower() if user_email else ''

        logger.info(f"AccessControl initialized: role={self.user_role}, email={self.user_email}")

    # =========================================================================
    # ACCESS LEVEL DETERMINATION
    # =========================================================================

    def get_access_level(self) -> str:
        """
        Determine access level based on role.

        Returns:
            'full' - Can view all restaurants
            'team' - Can view restaurants of the team
            'self' - Can view own portfolio only
        """
        if self.user_role in [r.lower() for r in FULL_ACCESS_ROLES]:
            return 'full'
        elif self.user_role in [r.lower() for r in TEAM_ACCESS_ROLES]:
            return 'team'
        else:
            return 'self'

    def can_view_all(self) -> bool:
        """Check if user has full access to all data."""
        return self.get_access_level() == 'full'

    @property
    def cache_scope(self) -> str:
        """Identity that cached query results are keyed by"""
        if self.can_view_all():
            return '*'
        return self.user_email

    # =========================================================================
    # QUERY FILTERING
    # =========================================================================

    def build_restaurant_filter(self, alias: str = 'r') -> Tuple[str, Dict[str, str]]:
        """
        Build the WHERE fragment restricting restaurants to the caller's scope.

        Returns:
            Tuple of (" AND ..." clause or "", bind params)
        """
        level = self.get_access_level()

        if level == 'full':
            return "", {}

        if not self.user_email:
            # No identity: nothing is visible
            logger.warning("No user email for scoped access, filtering out all rows")
            return " AND 1 = 0", {}

        if level == 'team':
            clause = (
                f" AND (LOWER({alias}.tl_email) = :viewer_email"
                f" OR LOWER({alias}.kam_email) = :viewer_email)"
            )
        else:
            clause = f" AND LOWER({alias}.kam_email) = :viewer_email"

        return clause, {'viewer_email': self.user_email}

    def can_view_restaurant(self, kam_email: Optional[str], tl_email: Optional[str]) -> bool:
        """Same rule as build_restaurant_filter, applied to an in-memory row."""
        level = self.get_access_level()
        if level == 'full':
            return True
        if not self.user_email:
            return False

        kam = (kam_email or '').lower()
        tl = (tl_email or '').lower()
        if level == 'team':
            return self.user_email in (kam, tl)
        return self.user_email == kam
