# kam_hub/auth.py
"""
Authentication Manager for the KAM Hub

Features:
- Email authorization (company domain, plus whitelisted test emails
  unless RESTRICT_DOMAIN is on)
- SHA256 password hashing
- Session management with timeout
- Access control derived from the signed-in user
"""

import streamlit as st
import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple
import logging
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .db import get_db_engine
from .config import config, AuthConfig
from .portfolio.access_control import AccessControl
from .portfolio.cache import get_query_cache

logger = logging.getLogger(__name__)

SESSION_KEYS = [
    'authenticated', 'user_id', 'user_email', 'user_role',
    'user_fullname', 'login_time', 'debug_mode',
]


def is_authorized_email(email: str, auth_config: AuthConfig = None) -> bool:
    """
    Check whether an email may use the dashboard.

    Restricted mode: only @<allowed_domain> addresses.
    Otherwise: the domain OR a whitelisted test address.
    """
    if not email:
        return False

    auth_config = auth_config or config.get_auth_config()
    email = email.strip().lower()
    is_domain_email = email.endswith(f"@{auth_config.allowed_domain}")

    if auth_config.restrict_domain:
        return is_domain_email

    return is_domain_email or email in auth_config.test_emails


class AuthManager:
    """Authentication manager for Streamlit apps"""

    def __init__(self, engine: Engine = None, auth_config: AuthConfig = None):
        self.session_timeout = timedelta(
            hours=config.get_app_setting("SESSION_TIMEOUT_HOURS", 8)
        )
        self.auth_config = auth_config or config.get_auth_config()
        self._engine = engine

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    # ==================== PASSWORD HASHING ====================

    def hash_password(self, password: str, salt: str = None) -> Tuple[str, str]:
        """
        Hash password with SHA256 + salt

        Returns:
            Tuple of (hash, salt)
        """
        if not salt:
            salt = secrets.token_hex(32)

        pwd_hash = hashlib.sha256((password + salt).encode()).hexdigest()
        return pwd_hash, salt

    def verify_password(self, password: str, stored_hash: str, salt: str) -> bool:
        """Verify password against stored hash"""
        pwd_hash, _ = self.hash_password(password, salt)
        return secrets.compare_digest(pwd_hash, stored_hash or '')

    # ==================== AUTHENTICATION ====================

    def is_authorized_email(self, email: str) -> bool:
        return is_authorized_email(email, self.auth_config)

    def authenticate(self, email: str, password: str) -> Tuple[bool, Dict]:
        """
        Authenticate user against the kam_users table

        Returns:
            Tuple of (success: bool, user_info: dict or error: dict)
        """
        email = (email or '').strip().lower()

        if not self.is_authorized_email(email):
            logger.warning(f"Login attempt with unauthorized email: {email}")
            return False, {
                "error": f"Your email is not authorized to access this dashboard. "
                         f"Only @{self.auth_config.allowed_domain} emails are allowed."
            }

        try:
            query = text("""
                SELECT
                    id,
                    email,
                    full_name,
                    role,
                    password_hash,
                    password_salt,
                    is_active
                FROM kam_users
                WHERE LOWER(email) = :email
            """)

            with self.engine.connect() as conn:
                result = conn.execute(query, {'email': email}).fetchone()

        except SQLAlchemyError as e:
            logger.error(f"Authentication error: {e}")
            return False, {"error": "Authentication failed. Please try again."}

        if not result:
            logger.warning(f"Login attempt for non-existent user: {email}")
            return False, {"error": "Invalid email or password"}

        user = dict(result._mapping)

        if not user['is_active']:
            logger.warning(f"Login attempt for inactive user: {email}")
            return False, {"error": "Account is inactive. Please contact administrator."}

        if not self.verify_password(password, user['password_hash'], user['password_salt']):
            logger.warning(f"Invalid password for user: {email}")
            return False, {"error": "Invalid email or password"}

        self._update_last_login(user['id'])

        logger.info(f"User {email} authenticated successfully")

        return True, {
            'id': user['id'],
            'email': user['email'].lower(),
            'role': user['role'],
            'full_name': user['full_name'] or user['email'],
            'login_time': datetime.now()
        }

    def _update_last_login(self, user_id: int):
        """Update user's last login timestamp"""
        try:
            query = text("UPDATE kam_users SET last_login = :now WHERE id = :user_id")

            with self.engine.connect() as conn:
                conn.execute(query, {
                    'user_id': user_id,
                    'now': datetime.now(timezone.utc).isoformat()
                })
                conn.commit()
        except SQLAlchemyError as e:
            logger.warning(f"Could not update last_login: {e}")

    # ==================== SESSION MANAGEMENT ====================

    def check_session(self) -> bool:
        """Check if user session is valid and not expired"""
        if not st.session_state.get('authenticated'):
            return False

        # Re-check the address in case the whitelist changed mid-session
        if not self.is_authorized_email(st.session_state.get('user_email', '')):
            logger.warning(f"Session email no longer authorized: {st.session_state.get('user_email')}")
            self.logout()
            return False

        login_time = st.session_state.get('login_time')
        if login_time:
            elapsed = datetime.now() - login_time
            if elapsed > self.session_timeout:
                logger.info(f"Session expired for user: {st.session_state.get('user_email')}")
                self.logout()
                return False

        return True

    def login(self, user_info: Dict):
        """Initialize user session after successful authentication"""
        st.session_state.authenticated = True
        st.session_state.user_id = user_info['id']
        st.session_state.user_email = user_info['email']
        st.session_state.user_role = user_info['role']
        st.session_state.user_fullname = user_info['full_name']
        st.session_state.login_time = user_info['login_time']
        st.session_state.debug_mode = config.get_app_setting("ENABLE_DEBUG_MODE", False)

        logger.info(f"User {user_info['email']} ({user_info['role']}) logged in successfully")

    def logout(self):
        """Clear user session and cached query results"""
        email = st.session_state.get('user_email', 'Unknown')

        for key in SESSION_KEYS:
            if key in st.session_state:
                del st.session_state[key]

        get_query_cache().clear()

        logger.info(f"User {email} logged out")

    # ==================== ACCESS CONTROL ====================

    def require_auth(self) -> bool:
        """
        Require authentication to access a page
        Use at the beginning of each protected page
        """
        if not self.check_session():
            st.warning("⚠️ Please login to access this page")
            st.stop()
            return False
        return True

    def get_access_control(self) -> AccessControl:
        """AccessControl for the signed-in user"""
        return AccessControl(
            user_role=st.session_state.get('user_role', ''),
            user_email=st.session_state.get('user_email', '')
        )

    def is_admin(self) -> bool:
        return st.session_state.get('user_role', '') == 'admin'

    # ==================== USER INFO HELPERS ====================

    def get_user_display_name(self) -> str:
        if st.session_state.get('user_fullname'):
            return st.session_state.user_fullname
        return st.session_state.get('user_email', 'User')

    def get_user_email(self) -> Optional[str]:
        return st.session_state.get('user_email')


__all__ = [
    'AuthManager',
    'is_authorized_email',
]
