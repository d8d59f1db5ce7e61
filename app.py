# app.py
"""
Clinic Dashboard - Main Entry Point

Version: 1.0.0
"""

import logging

import streamlit as st

from clinic_dashboard.config import config
from clinic_dashboard.db import check_db_connection

# Configure logging
logging.basicConfig(
    level=config.get_app_setting("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ==================== PAGE CONFIGURATION ====================

APP_NAME = "Clinic Dashboard"
APP_ICON = "📊"
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
        color: #f4647d;
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
        border-left: 4px solid #f4647d;
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


# ==================== MAIN ====================

def main():
    """Main application entry point"""
    st.markdown(f'<p class="main-header">{APP_ICON} {APP_NAME}</p>', unsafe_allow_html=True)
    st.markdown('<p class="sub-header">Monthly scorecards from daily team entries</p>', unsafe_allow_html=True)

    db_ok, db_error = check_db_connection()
    if not db_ok:
        st.error(f"⚠️ {db_error}")
        st.info("Set STORE_URL in .env (or STORE.URL in secrets) and reload.")
        return

    st.markdown("### 📊 Available Dashboards")

    st.markdown("""
    <div class="info-card">
        <strong>📊 Manager Dashboard</strong><br>
        <span style="color: #666;">Company sales and productivity, division scorecards vs targets, six-month trend and Excel export.</span>
    </div>
    """, unsafe_allow_html=True)

    if config.is_feature_enabled("DEBUG_MODE"):
        with st.expander("🔧 Configuration"):
            st.json(config.app_config)

    st.markdown(f"""
    <div class="footer">
        <strong>{APP_NAME}</strong> v{APP_VERSION}
    </div>
    """, unsafe_allow_html=True)


if __name__ == "__main__":
    main()
