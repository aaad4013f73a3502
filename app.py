# app.py
"""
KAM Hub - Main Entry Point
"""

import streamlit as st
from kam_hub.auth import AuthManager
from kam_hub.config import config
from kam_hub.db import check_db_connection, reset_db_engine
from kam_hub.portfolio.cache import get_query_cache
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ==================== PAGE CONFIGURATION ====================

APP_NAME = "KAM Hub"
APP_ICON = "🍽️"
APP_VERSION = "1.0.0"

st.set_page_config(
    page_title=APP_NAME,
    page_icon=APP_ICON,
    layout="wide",
    initial_sidebar_state="expanded"
)

# ==================== CUSTOM CSS ====================

st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        margin-bottom: 0.5rem;
        color: #e23744;
    }

    .sub-header {
        font-size: 1.1rem;
        color: #666;
        margin-bottom: 2rem;
    }

    .info-card {
        background: #f8f9fa;
        padding: 1.5rem;
        border-radius: 0.5rem;
        border-left: 4px solid #e23744;
        margin-bottom: 1rem;
    }
</style>
""", unsafe_allow_html=True)

# ==================== INITIALIZATION ====================

auth = AuthManager()

# ==================== HELPER FUNCTIONS ====================

def show_login_page():
    """Display the login page"""
    st.markdown(f'<p class="main-header">{APP_ICON} {APP_NAME}</p>', unsafe_allow_html=True)
    st.markdown('<p class="sub-header">Restaurant portfolio & drive tracking for KAMs</p>', unsafe_allow_html=True)

    db_ok, db_error = check_db_connection()
    if not db_ok:
        st.error(f"⚠️ {db_error}")
        st.info("Please check your network connection or contact support.")
        if st.button("🔄 Retry connection"):
            reset_db_engine()
            st.rerun()
        return

    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        with st.form("login_form", clear_on_submit=False):
            st.markdown("#### 🔐 Login")

            email = st.text_input("Email", placeholder="you@zomato.com", key="login_email")
            password = st.text_input("Password", type="password", key="login_password")

            submit = st.form_submit_button("🔑 Login", type="primary", use_container_width=True)

            if submit:
                if not email or not password:
                    st.warning("Please enter both email and password")
                else:
                    with st.spinner("Authenticating..."):
                        success, result = auth.authenticate(email, password)

                    if success:
                        auth.login(result)
                        st.success("✅ Login successful!")
                        st.rerun()
                    else:
                        st.error(result.get("error", "Authentication failed"))


def show_main_app():
    """Display the main application after login"""
    access = auth.get_access_control()

    with st.sidebar:
        st.markdown(f"### 👤 {auth.get_user_display_name()}")

        level = access.get_access_level()
        if level == 'full':
            st.success("🔓 All restaurants")
        elif level == 'team':
            st.info("👥 Team portfolio")
        else:
            st.warning("👤 My portfolio")

        st.caption(f"Role: {st.session_state.get('user_role', 'kam')}")
        st.markdown("---")

        if st.button("🚪 Logout", use_container_width=True):
            auth.logout()
            st.rerun()

    st.markdown(f"## Welcome, {auth.get_user_display_name()}! 👋")
    st.caption("Select a page from the sidebar menu to get started.")

    st.markdown("""
    <div class="info-card">
        <strong>🏪 Restaurant Portfolio</strong><br>
        <span style="color: #666;">Your restaurants, drive funnel and exports.</span>
    </div>
    <div class="info-card">
        <strong>🍽️ Restaurant Detail</strong><br>
        <span style="color: #666;">Drive data, mark approached / converted, activity and notes.</span>
    </div>
    """, unsafe_allow_html=True)

    if auth.is_admin():
        st.markdown("---")
        with st.expander("🔧 System Status (Admin Only)"):
            from kam_hub.db import get_connection_pool_status
            pool_status = get_connection_pool_status()

            col1, col2, col3 = st.columns(3)
            with col1:
                st.metric("DB Status", pool_status.get("status", "OK"))
            with col2:
                st.metric("Connections Used", pool_status.get("checked_out", 0))
            with col3:
                st.metric("Available", pool_status.get("checked_in", 0))

            if st.button("🔄 Reset DB connection"):
                reset_db_engine()
                st.rerun()

    if st.session_state.get('debug_mode'):
        with st.expander("🐞 Debug"):
            st.json(config.app_config)
            st.write("Cached queries:", [str(k) for k in get_query_cache().keys()])

    st.caption(f"{APP_NAME} v{APP_VERSION}")


# ==================== MAIN ====================

def main():
    """Main application entry point"""
    if not auth.check_session():
        show_login_page()
    else:
        show_main_app()


if __name__ == "__main__":
    main()
