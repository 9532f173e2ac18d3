# clinic_dashboard/ui/pages/09_Profile.py
"""
Profile page

Personal details, avatar, password change and signing out of every device.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
from typing import Any, Dict

from clinic_dashboard.utils.logging_config import get_logger, setup_logging
from clinic_dashboard.utils.config import (
    ERROR_MESSAGES,
    LABELS,
    get_streamlit_config,
    is_debug_mode,
)
from clinic_dashboard.core.records import format_datetime, full_name, initials, role_label
from clinic_dashboard.core.validators.validation import validate_change_password, validate_profile
from clinic_dashboard.infrastructure.api import queries
from clinic_dashboard.infrastructure.api.client import ApiClient
from clinic_dashboard.infrastructure.auth.session_auth import logout_user, require_login
from clinic_dashboard.ui.components import PAGE_PATHS, render_page_chrome, show_result

# Initialize logging
setup_logging()
logger = get_logger(__name__)

MAX_AVATAR_SIZE_MB = 5


# =============================================================================
# APP CONFIGURATION
# =============================================================================


def setup_profile_app() -> None:
    """Configure Streamlit app for the profile page"""
    logger.info("Setting up profile page...")

    try:
        config = get_streamlit_config()
        config["page_title"] = "Profile"
        st.set_page_config(**config)

    except Exception as e:
        logger.error(f"Failed to setup profile page: {str(e)}")
        st.error(f"❌ Profile page setup failed: {str(e)}")
        st.stop()


# =============================================================================
# PROFILE
# =============================================================================


def render_profile_header(user: Dict[str, Any]) -> None:
    with st.container(border=True):
        col1, col2 = st.columns([1, 4])
        with col1:
            if user.get("avatar"):
                st.image(user["avatar"], width=96)
            else:
                st.markdown(f"## {initials(user) or '?'}")
        with col2:
            st.subheader(full_name(user) or user.get("email", ""))
            st.caption(f"{role_label(user.get('role'))} · {user.get('email', '')}")
            last_login = format_datetime(user.get("lastLoginAt"))
            if last_login:
                st.caption(f"Last sign-in: {last_login}")


def render_profile_form(client: ApiClient, user: Dict[str, Any]) -> None:
    st.subheader("👤 Personal Details")

    with st.form("profile_form"):
        col1, col2 = st.columns(2)
        with col1:
            first_name = st.text_input("First name", value=user.get("firstName", ""))
            phone = st.text_input("Phone", value=user.get("phone") or "")
        with col2:
            last_name = st.text_input("Last name", value=user.get("lastName", ""))
            st.text_input("Email", value=user.get("email", ""), disabled=True)
        submitted = st.form_submit_button(LABELS["save"], type="primary")

    if not submitted:
        return

    data = {
        "firstName": first_name.strip(),
        "lastName": last_name.strip(),
        "phone": phone.strip() or None,
    }
    is_valid, errors = validate_profile(data)
    if not is_valid:
        for error in errors:
            st.error(error)
        return

    success, message = queries.update_profile(client, user["id"], data)
    if success:
        st.session_state.user = {**user, **data}
    show_result(success, message)


def render_avatar_upload(client: ApiClient, user: Dict[str, Any]) -> None:
    with st.expander("🖼️ Change photo"):
        uploaded = st.file_uploader(
            f"Image (max {MAX_AVATAR_SIZE_MB} MB)", type=["png", "jpg", "jpeg", "webp"]
        )
        if uploaded is None or not st.button("⬆️ Upload photo"):
            return

        if uploaded.size > MAX_AVATAR_SIZE_MB * 1024 * 1024:
            st.error(f"⚠️ Images larger than {MAX_AVATAR_SIZE_MB} MB are not accepted")
            return

        show_result(
            *queries.upload_avatar(
                client, user["id"], uploaded.name, uploaded.getvalue(), uploaded.type or "image/png"
            )
        )


# =============================================================================
# SECURITY
# =============================================================================


def render_change_password(client: ApiClient) -> None:
    st.subheader("🔑 Change Password")

    with st.form("change_password_form", clear_on_submit=True):
        current = st.text_input("Current password", type="password")
        new = st.text_input("New password", type="password")
        confirm = st.text_input("Confirm new password", type="password")
        submitted = st.form_submit_button("Change password", type="primary")

    if not submitted:
        return

    is_valid, errors = validate_change_password(
        {"currentPassword": current, "newPassword": new, "confirmPassword": confirm}
    )
    if not is_valid:
        for error in errors:
            st.error(error)
        return

    success, message = queries.change_password(client, current, new)
    if success:
        st.success(message)
    else:
        st.error(message)


def render_sessions() -> None:
    st.subheader("📱 Sessions")
    st.caption("Sign out of the dashboard on every browser and device.")
    if st.button("🚪 Sign out everywhere"):
        logout_user(all_devices=True)
        st.switch_page(PAGE_PATHS["dashboard"])


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Main profile page entry point"""
    logger.info("Starting profile page...")

    try:
        setup_profile_app()
        client, user = require_login()
        render_page_chrome(client)

        st.title("👤 Profile")
        render_profile_header(user)

        details_tab, security_tab = st.tabs(["Details", "Security"])
        with details_tab:
            render_profile_form(client, user)
            render_avatar_upload(client, user)
        with security_tab:
            render_change_password(client)
            st.divider()
            render_sessions()

    except Exception as e:
        logger.error(f"Critical error in profile page: {str(e)}")
        st.error(ERROR_MESSAGES["load_failed"])

        if is_debug_mode():
            st.exception(e)


if __name__ == "__main__":
    main()
