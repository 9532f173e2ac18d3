# clinic_dashboard/ui/pages/07_Settings.py
"""
Settings page

Clinic settings for administrators: working hours per weekday, default
session duration, timezone, locale and appointment reminders. Plans with
audit logs also get the activity log.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
import pandas as pd
from datetime import time
from typing import Any, Dict, List

from clinic_dashboard.utils.logging_config import get_logger, setup_logging
from clinic_dashboard.utils.config import (
    ERROR_MESSAGES,
    LABELS,
    MAX_SESSION_DURATION_MINUTES,
    MIN_SESSION_DURATION_MINUTES,
    WEEKDAYS,
    get_streamlit_config,
    is_debug_mode,
)
from clinic_dashboard.core.normalizers import format_reminder_rule
from clinic_dashboard.core.records import format_datetime, full_name
from clinic_dashboard.core.subscription.guards import can_manage_users
from clinic_dashboard.core.validators.validation import validate_tenant_settings
from clinic_dashboard.infrastructure.api import queries
from clinic_dashboard.infrastructure.api.client import ApiClient, ApiError
from clinic_dashboard.infrastructure.auth.session_auth import require_login
from clinic_dashboard.ui.components import (
    handle_api_error,
    render_feature_gate,
    render_page_chrome,
    show_result,
)

# Initialize logging
setup_logging()
logger = get_logger(__name__)

TIMEZONES = [
    "America/Mexico_City",
    "America/Bogota",
    "America/Lima",
    "America/Santiago",
    "America/Argentina/Buenos_Aires",
    "America/New_York",
    "Europe/Madrid",
    "UTC",
]

LOCALES = ["es-MX", "es-ES", "es-AR", "es-CO", "en-US"]

REMINDER_OPTIONS = [15, 30, 60, 120, 24 * 60, 48 * 60]


# =============================================================================
# APP CONFIGURATION
# =============================================================================


def setup_settings_app() -> None:
    """Configure Streamlit app for the settings page"""
    logger.info("Setting up settings page...")

    try:
        config = get_streamlit_config()
        config["page_title"] = "Settings"
        st.set_page_config(**config)

    except Exception as e:
        logger.error(f"Failed to setup settings page: {str(e)}")
        st.error(f"❌ Settings page setup failed: {str(e)}")
        st.stop()


def _parse_time(value: str) -> time:
    hours, minutes = (value or "09:00").split(":")[:2]
    return time(int(hours), int(minutes))


def _with_default(options: List[str], value: str) -> List[str]:
    return options if value in options else [value] + options


# =============================================================================
# CLINIC SETTINGS
# =============================================================================


def render_working_hours(working_hours: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """
    One row per weekday with an enabled toggle and start/end times.

    Returns:
        Working hours in the normalised settings shape
    """
    st.write("**Working hours**")
    result = {}
    for day in WEEKDAYS:
        schedule = working_hours.get(day) or {}
        col1, col2, col3 = st.columns([2, 2, 2])
        with col1:
            enabled = st.checkbox(day.title(), value=bool(schedule.get("enabled")), key=f"day_{day}")
        with col2:
            start = st.time_input(
                "Start",
                value=_parse_time(schedule.get("start_time")),
                key=f"start_{day}",
                step=1800,
                label_visibility="collapsed",
            )
        with col3:
            end = st.time_input(
                "End",
                value=_parse_time(schedule.get("end_time") or "18:00"),
                key=f"end_{day}",
                step=1800,
                label_visibility="collapsed",
            )
        result[day] = {
            "enabled": enabled,
            "start_time": start.strftime("%H:%M"),
            "end_time": end.strftime("%H:%M"),
        }
    return result


def render_reminders(rules: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    st.write("**Appointment reminders**")
    enabled = st.checkbox(
        "Send reminders before appointments",
        value=any(rule.get("enabled") for rule in rules),
    )
    current = [int(rule.get("minutes_before") or 0) for rule in rules]
    options = sorted(set(REMINDER_OPTIONS + current))
    selected = st.multiselect(
        "Send a reminder",
        options=options,
        default=[m for m in current if m > 0],
        format_func=lambda m: f"{format_reminder_rule(m)} before",
    )
    return [
        {"id": str(i + 1), "type": "PUSH", "minutes_before": minutes, "enabled": enabled}
        for i, minutes in enumerate(sorted(selected))
    ]


def render_settings_form(client: ApiClient, settings: Dict[str, Any]) -> None:
    st.subheader("🏥 Clinic Settings")

    with st.form("tenant_settings_form"):
        col1, col2, col3 = st.columns(3)
        with col1:
            duration = st.number_input(
                "Default session duration (min)",
                min_value=MIN_SESSION_DURATION_MINUTES,
                max_value=MAX_SESSION_DURATION_MINUTES,
                value=int(settings.get("default_session_duration") or 60),
                step=5,
            )
        with col2:
            timezones = _with_default(TIMEZONES, settings["timezone"])
            timezone_name = st.selectbox(
                "Timezone", options=timezones, index=timezones.index(settings["timezone"])
            )
        with col3:
            locales = _with_default(LOCALES, settings["locale"])
            locale = st.selectbox("Locale", options=locales, index=locales.index(settings["locale"]))

        st.divider()
        working_hours = render_working_hours(settings.get("working_hours") or {})
        st.divider()
        reminder_rules = render_reminders(settings.get("reminder_rules") or [])

        submitted = st.form_submit_button(LABELS["save"], type="primary")

    if not submitted:
        return

    updated = {
        "working_hours": working_hours,
        "default_session_duration": int(duration),
        "timezone": timezone_name,
        "locale": locale,
        "reminder_rules": reminder_rules,
    }
    is_valid, errors = validate_tenant_settings(updated)
    if not is_valid:
        for error in errors:
            st.error(error)
        return

    show_result(*queries.update_tenant_settings(client, updated))


# =============================================================================
# AUDIT LOG
# =============================================================================


def render_audit_log(client: ApiClient) -> None:
    st.subheader("📜 Activity Log")

    try:
        logs = queries.fetch_audit_logs(client, client.tenant_id)
    except ApiError as e:
        handle_api_error(e, "load audit logs")
        return

    if not logs:
        st.info("No activity recorded yet.")
        return

    df = pd.DataFrame(
        [
            {
                "When": format_datetime(entry.get("createdAt")),
                "User": full_name(entry.get("user")) or entry.get("userId", ""),
                "Action": entry.get("action", ""),
                "Entity": entry.get("entity", ""),
                "Entity ID": entry.get("entityId", ""),
            }
            for entry in logs
        ]
    )
    st.dataframe(df, use_container_width=True, hide_index=True)


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Main settings page entry point"""
    logger.info("Starting settings page...")

    try:
        setup_settings_app()
        client, user = require_login()
        subscription, _ = render_page_chrome(client)

        st.title("⚙️ Settings")
        if not can_manage_users(user):
            st.warning(ERROR_MESSAGES["permission_denied"])
            return

        try:
            settings = queries.fetch_tenant_settings(client, client.tenant_id)
        except ApiError as e:
            handle_api_error(e, "load settings")
            return

        settings_tab, audit_tab = st.tabs(["🏥 Clinic", "📜 Activity"])
        with settings_tab:
            render_settings_form(client, settings)
        with audit_tab:
            if render_feature_gate(subscription, "audit_logs", "audit_gate"):
                render_audit_log(client)

    except Exception as e:
        logger.error(f"Critical error in settings page: {str(e)}")
        st.error(ERROR_MESSAGES["load_failed"])

        if is_debug_mode():
            st.exception(e)


if __name__ == "__main__":
    main()
