# app.py
"""
Sales CRM Dashboard - Main Entry Point

Version: 1.0.0
"""

import streamlit as st
from crm.auth import AuthManager
from crm.api_client import check_api_connection
from crm.config import config
from crm.dashboard import AccessControl, ROLE_LABELS, ROLE_MANAGER
import logging

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.get_app_setting("ENABLE_DEBUG_MODE", False) else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ==================== PAGE CONFIGURATION ====================

APP_NAME = "Sales CRM"
APP_ICON = "💼"
APP_VERSION = "1.0.0"

st.set_page_config(
    page_title=f"{APP_NAME} Dashboard",
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
        color: #3B82F6;
    }

    .sub-header {
        font-size: 1.1rem;
        color: #666;
        margin-bottom: 2rem;
    }

    .welcome-box {
        background: linear-gradient(135deg, #3B82F6 0%, #6366F1 100%);
        color: white;
        padding: 2rem;
        border-radius: 0.75rem;
        margin-bottom: 2rem;
    }

    .welcome-title {
        font-size: 1.75rem;
        font-weight: 600;
        margin-bottom: 0.5rem;
    }

    .info-card {
        background: #f8f9fa;
        padding: 1.5rem;
        border-radius: 0.5rem;
        border-left: 4px solid #3B82F6;
        margin-bottom: 1rem;
    }

    .footer {
        text-align: center;
        color: #888;
        padding: 1rem;
        margin-top: 3rem;
        border-top: 1px solid #eee;
        font-size: 0.9rem;
    }
</style>
""", unsafe_allow_html=True)

# ==================== INITIALIZATION ====================

auth = AuthManager()

DASHBOARDS = [
    ("💼 Deals", "Browse, sort and export the deals you can see. Add new sales."),
    ("📞 Callbacks", "Schedule callbacks and move them through pending → contacted → completed."),
    ("📊 Analytics", "Revenue trend, agent and team leaderboards, service tiers and deal status."),
    ("🗂️ Data Center", "Announcements, training and policy documents with feedback."),
]

# ==================== HELPER FUNCTIONS ====================

def show_login_page():
    """Display the login page"""
    st.markdown(f'<p class="main-header">{APP_ICON} {APP_NAME}</p>', unsafe_allow_html=True)
    st.markdown('<p class="sub-header">Deals, callbacks and team performance in one place</p>', unsafe_allow_html=True)

    api_ok, api_error = check_api_connection()
    if not api_ok:
        st.error(f"⚠️ {api_error}")
        st.info("Please check your network connection or contact IT support.")
        return

    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        with st.form("login_form", clear_on_submit=False):
            st.markdown("#### 🔐 Login")

            username = st.text_input(
                "Username",
                placeholder="Username or email",
                key="login_username"
            )
            password = st.text_input(
                "Password",
                type="password",
                placeholder="Enter your password",
                key="login_password"
            )

            submit = st.form_submit_button(
                "🔑 Login",
                type="primary",
                use_container_width=True
            )

            if submit:
                if not username or not password:
                    st.warning("Please enter both username and password")
                else:
                    with st.spinner("Authenticating..."):
                        success, result = auth.authenticate(username, password)

                    if success:
                        auth.login(result)
                        st.success("✅ Login successful!")
                        st.rerun()
                    else:
                        st.error(result.get("error", "Authentication failed"))

        with st.expander("ℹ️ Need Help?"):
            hours = config.get_app_setting("SESSION_TIMEOUT_HOURS", 8)
            st.info(f"""
            - Log in with your CRM username or email
            - Ask your manager if you forgot your password
            - Session expires after {hours} hours
            """)


def show_main_app():
    """Display the main application after login"""
    identity = auth.get_identity()
    access = AccessControl(identity)

    with st.sidebar:
        st.markdown(f"### 👤 {auth.get_user_display_name()}")
        st.caption(access.get_access_label())
        st.caption(f"Role: {ROLE_LABELS.get(identity.role, identity.role)}")
        if identity.team:
            st.caption(f"Team: {identity.team}")
        st.markdown("---")

        if st.button("🚪 Logout", use_container_width=True):
            auth.logout()
            st.rerun()

    st.markdown(f"""
    <div class="welcome-box">
        <div class="welcome-title">Welcome, {auth.get_user_display_name()}! 👋</div>
        <div>Select a page from the sidebar menu to get started.</div>
    </div>
    """, unsafe_allow_html=True)

    st.markdown("### 📊 Pages")

    for title, description in DASHBOARDS:
        st.markdown(f"""
        <div class="info-card">
            <strong>{title}</strong><br>
            <span style="color: #666;">{description}</span>
        </div>
        """, unsafe_allow_html=True)

    if identity.role == ROLE_MANAGER:
        st.markdown("---")
        with st.expander("🔧 System Status (Manager Only)"):
            api_ok, api_error = check_api_connection()
            api_config = config.get_api_config()
            col1, col2, col3 = st.columns(3)
            with col1:
                st.metric("Backend", "OK" if api_ok else "DOWN")
            with col2:
                st.metric("Timeout", f"{api_config['timeout_seconds']}s")
            with col3:
                st.metric("Auto Refresh", f"{config.get_app_setting('AUTO_REFRESH_SECONDS', 120)}s")
            if api_error:
                st.caption(api_error)

    st.markdown(f"""
    <div class="footer">
        <strong>{APP_NAME}</strong> v{APP_VERSION}
    </div>
    """, unsafe_allow_html=True)


# ==================== MAIN ====================

def main():
    """Main application entry point"""
    if not auth.check_session():
        show_login_page()
    else:
        show_main_app()


if __name__ == "__main__":
    main()
