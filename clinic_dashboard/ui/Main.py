# clinic_dashboard/ui/Main.py
"""
Psychology Clinic Dashboard - main application

Sign-in, password recovery and clinic onboarding for visitors; the
dashboard overview (stats, usage, charts) once signed in.
"""

import sys
import os
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
import plotly.express as px
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

try:
    from clinic_dashboard.utils.logging_config import get_logger, setup_logging
    from clinic_dashboard.utils.config import (
        APP_ICON,
        APP_TITLE,
        ERROR_MESSAGES,
        INFO_MESSAGES,
        LABELS,
        LOG_LEVEL,
        LOG_TO_FILE,
        SUCCESS_MESSAGES,
        get_streamlit_config,
        is_debug_mode,
        validate_environment,
    )
    from clinic_dashboard.core.analytics import (
        appointments_by_psychologist,
        appointments_by_status,
        appointments_by_weekday,
        dashboard_stats,
    )
    from clinic_dashboard.core.records import (
        appointment_status_label,
        format_datetime,
        full_name,
        sort_appointments,
        week_bounds,
    )
    from clinic_dashboard.core.subscription.guards import is_feature_available
    from clinic_dashboard.core.subscription.models import Subscription, UsageMetrics
    from clinic_dashboard.core.validators.validation import (
        validate_forgot_password,
        validate_login,
        validate_onboarding_admin,
        validate_onboarding_tenant,
        validate_reset_password,
    )
    from clinic_dashboard.infrastructure.api import endpoints
    from clinic_dashboard.infrastructure.api.client import ApiError
    from clinic_dashboard.infrastructure.api.queries import fetch_dashboard_data
    from clinic_dashboard.infrastructure.auth.session_auth import (
        AuthenticationError,
        get_client,
        initialize_session_state,
        is_logged_in,
        login_user,
        test_and_display_connection,
    )
    from clinic_dashboard.ui.components import (
        handle_api_error,
        render_feature_gate,
        render_page_chrome,
        render_usage_card,
    )
except ImportError as e:
    print(f"Import error: {e}")
    print("Please ensure you're running from the project root directory")
    print("Current working directory:", os.getcwd())
    print("Project root should be:", project_root)
    sys.exit(1)

# Initialize logging
setup_logging(log_level=LOG_LEVEL, log_to_file=LOG_TO_FILE)
logger = get_logger(__name__)

AUTH_VIEWS = {
    "login": "🔐 Sign in",
    "forgot": "🔑 Forgot password",
    "reset": "🔁 Reset password",
    "onboarding": "🏥 Create clinic",
}


# =============================================================================
# APPLICATION INITIALIZATION
# =============================================================================


def setup_streamlit_app() -> None:
    """Configure Streamlit app with proper settings"""
    logger.info("Setting up Streamlit application...")

    try:
        st.set_page_config(**get_streamlit_config())

        if not validate_environment():
            st.error("❌ Invalid configuration. Check the logs for details.")
            st.stop()

        initialize_session_state()
        logger.info("Streamlit configuration applied successfully")

    except Exception as e:
        logger.error(f"Failed to setup Streamlit app: {str(e)}")
        st.error(f"❌ Application setup failed: {str(e)}")
        st.stop()


def render_application_header() -> None:
    """Render the main application header with connection status"""
    st.title(f"{APP_ICON} {APP_TITLE}")

    col1, col2, col3 = st.columns([3, 1, 1])
    with col2:
        if st.button("🔄 Test Connection", use_container_width=True):
            test_and_display_connection()
    with col3:
        if "connection_status" in st.session_state:
            if st.session_state.connection_status:
                st.success("✅ Connected")
            else:
                st.error("❌ Disconnected")
        else:
            st.info("❓ Not Tested")

    if is_debug_mode():
        with st.expander("🔧 Debug Information", expanded=False):
            render_debug_info()


def render_debug_info() -> None:
    """Render debug information for development"""
    client = get_client()
    st.json(
        {
            "session": {
                "authenticated": st.session_state.get("authenticated"),
                "user_id": (st.session_state.get("user") or {}).get("id"),
                "tenant_id": client.tenant_id,
            },
            "api": {"base_url": client.base_url, "timeout": client.timeout},
            "system_info": {
                "project_root": str(project_root),
                "current_working_directory": os.getcwd(),
            },
        }
    )


# =============================================================================
# VISITOR VIEWS
# =============================================================================


def render_login_form() -> None:
    """Email and password sign-in"""
    with st.container(border=True):
        with st.form("login_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button(LABELS["login"], type="primary")

        if not submitted:
            return

        is_valid, errors = validate_login({"email": email, "password": password})
        if not is_valid:
            for error in errors:
                st.error(error)
            return

        with st.spinner("Signing in..."):
            try:
                login_user(email.strip(), password)
            except AuthenticationError as e:
                st.error(str(e))
                return

        st.toast(SUCCESS_MESSAGES["logged_in"])
        st.rerun()


def render_forgot_password_form() -> None:
    with st.container(border=True):
        with st.form("forgot_password_form"):
            email = st.text_input("Email")
            submitted = st.form_submit_button("Send reset link", type="primary")

        if not submitted:
            return

        is_valid, errors = validate_forgot_password({"email": email})
        if not is_valid:
            for error in errors:
                st.error(error)
            return

        try:
            endpoints.forgot_password(get_client(), email.strip())
            st.success(SUCCESS_MESSAGES["password_reset_requested"])
        except ApiError as e:
            handle_api_error(e, "forgot password")


def render_reset_password_form() -> None:
    """Reset with the token from the email link (?token=... or pasted)"""
    with st.container(border=True):
        with st.form("reset_password_form"):
            token = st.text_input("Reset token", value=st.query_params.get("token", ""))
            password = st.text_input("New password", type="password")
            confirm = st.text_input("Confirm password", type="password")
            submitted = st.form_submit_button("Reset password", type="primary")

        if not submitted:
            return

        data = {"password": password, "confirmPassword": confirm}
        is_valid, errors = validate_reset_password(data)
        if not token.strip():
            is_valid = False
            errors.append("Reset token is required")
        if not is_valid:
            for error in errors:
                st.error(error)
            return

        try:
            endpoints.reset_password(get_client(), token.strip(), password)
            st.success(SUCCESS_MESSAGES["password_reset"])
        except ApiError as e:
            handle_api_error(e, "reset password")


def render_onboarding_form() -> None:
    """Create a clinic together with its administrator account"""
    with st.container(border=True):
        with st.form("onboarding_form"):
            st.write("**Clinic**")
            col1, col2 = st.columns(2)
            with col1:
                clinic_name = st.text_input("Clinic name")
                contact_email = st.text_input("Contact email")
            with col2:
                slug = st.text_input("Slug", help="Lowercase letters, numbers and hyphens")
                contact_phone = st.text_input("Phone (optional)")

            st.write("**Administrator**")
            col1, col2 = st.columns(2)
            with col1:
                first_name = st.text_input("First name")
                email = st.text_input("Admin email")
                password = st.text_input("Password", type="password")
            with col2:
                last_name = st.text_input("Last name")
                st.write("")
                st.write("")
                confirm = st.text_input("Confirm password", type="password")

            submitted = st.form_submit_button("🏥 Create clinic", type="primary")

        if not submitted:
            return

        data = {
            "clinicName": clinic_name,
            "slug": slug,
            "contactEmail": contact_email,
            "contactPhone": contact_phone or None,
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
            "confirmPassword": confirm,
        }
        tenant_ok, tenant_errors = validate_onboarding_tenant(data)
        admin_ok, admin_errors = validate_onboarding_admin(data)
        if not (tenant_ok and admin_ok):
            for error in tenant_errors + admin_errors:
                st.error(error)
            return

        with st.spinner("Creating clinic..."):
            try:
                endpoints.create_tenant(get_client(), data)
            except ApiError as e:
                handle_api_error(e, "create tenant")
                return

        st.success(SUCCESS_MESSAGES["tenant_created"])


def render_visitor_page() -> None:
    st.info(INFO_MESSAGES["login_required"])
    default_view = "reset" if st.query_params.get("token") else "login"

    view = st.radio(
        "Account",
        options=list(AUTH_VIEWS),
        format_func=AUTH_VIEWS.get,
        index=list(AUTH_VIEWS).index(default_view),
        horizontal=True,
        label_visibility="collapsed",
    )

    if view == "login":
        render_login_form()
    elif view == "forgot":
        render_forgot_password_form()
    elif view == "reset":
        render_reset_password_form()
    else:
        render_onboarding_form()


# =============================================================================
# DASHBOARD
# =============================================================================


def load_dashboard_data() -> Optional[Dict[str, List[Dict[str, Any]]]]:
    """Appointments of the current week, open tasks and active patients"""
    client = get_client()
    user = st.session_state.user or {}
    week_start, week_end = week_bounds()

    try:
        return fetch_dashboard_data(
            client, user.get("id", ""), week_start.isoformat(), week_end.isoformat()
        )
    except ApiError as e:
        handle_api_error(e, "load dashboard data")
        return None


def render_key_metrics(data: Dict[str, List[Dict[str, Any]]]) -> None:
    stats = dashboard_stats(data["appointments"], data["tasks"], data["patients"])

    st.subheader("📈 This Week")
    with st.container(border=True):
        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("Today's Appointments", stats["today_appointments"])
        with col2:
            st.metric("Upcoming This Week", stats["upcoming_this_week"])
            st.caption(f"{stats['completed_this_week']} completed")
        with col3:
            st.metric("Overdue Tasks", stats["overdue_tasks"])
        with col4:
            st.metric("Active Patients", stats["active_patients"])


def render_usage_overview(
    subscription: Optional[Subscription], usage: Optional[UsageMetrics]
) -> None:
    if subscription is None or usage is None:
        return

    limits = subscription.plan.limits
    st.subheader("📊 Plan Usage")
    col1, col2, col3 = st.columns(3)
    with col1:
        render_usage_card(
            "Psychologists", usage.psychologists.active, limits.max_psychologists, key="seats"
        )
    with col2:
        render_usage_card("Patients", usage.patients.active, limits.max_patients, key="patients")
    with col3:
        render_usage_card(
            "Storage", round(usage.storage.used_gb, 2), limits.storage_gb, "GB", key="storage"
        )


def render_upcoming_appointments(appointments: List[Dict[str, Any]]) -> None:
    now = datetime.now(timezone.utc).isoformat()
    upcoming = [a for a in sort_appointments(appointments) if (a.get("startTime") or "") >= now]

    st.subheader("📅 Upcoming Appointments")
    with st.container(border=True):
        if not upcoming:
            st.info(INFO_MESSAGES["no_appointments"])
            return

        st.dataframe(
            [
                {
                    "Start": format_datetime(a.get("startTime")),
                    "Patient": full_name(a.get("patient")),
                    "Psychologist": full_name(a.get("psychologist")),
                    "Status": appointment_status_label(a.get("status")),
                }
                for a in upcoming[:10]
            ],
            use_container_width=True,
            hide_index=True,
        )


def render_charts(
    subscription: Optional[Subscription], appointments: List[Dict[str, Any]]
) -> None:
    st.subheader("📊 Appointment Trends")
    with st.container(border=True):
        left_col, right_col = st.columns(2)

        with left_col:
            by_weekday = appointments_by_weekday(appointments)
            fig = px.bar(by_weekday, x="weekday", y="count", title="By day of week")
            st.plotly_chart(fig, use_container_width=True)

        with right_col:
            by_status = appointments_by_status(appointments)
            if by_status.empty:
                st.info(INFO_MESSAGES["no_appointments"])
            else:
                fig = px.pie(by_status, names="label", values="count", title="By status")
                st.plotly_chart(fig, use_container_width=True)

    if is_feature_available("advanced_analytics", subscription):
        st.write("**Workload by psychologist**")
        st.dataframe(
            appointments_by_psychologist(appointments),
            use_container_width=True,
            hide_index=True,
        )
    else:
        with st.expander("🔒 Advanced analytics"):
            render_feature_gate(subscription, "advanced_analytics", "dashboard_analytics")


def render_dashboard() -> None:
    client = get_client()
    subscription, usage = render_page_chrome(client)

    user = st.session_state.user or {}
    st.write(f"Welcome back, **{user.get('firstName') or user.get('email', '')}**")

    data = load_dashboard_data()
    if data is None:
        return

    render_key_metrics(data)
    render_usage_overview(subscription, usage)
    render_upcoming_appointments(data["appointments"])
    render_charts(subscription, data["appointments"])


# =============================================================================
# MAIN APPLICATION
# =============================================================================


def main() -> None:
    """Main application entry point"""
    logger.info("Starting Clinic Dashboard...")

    try:
        setup_streamlit_app()
        render_application_header()

        if is_logged_in():
            render_dashboard()
        else:
            render_visitor_page()

    except Exception as e:
        logger.error(f"Critical error in main application: {str(e)}")
        st.error(ERROR_MESSAGES["load_failed"])

        if is_debug_mode():
            st.exception(e)


if __name__ == "__main__":
    main()
