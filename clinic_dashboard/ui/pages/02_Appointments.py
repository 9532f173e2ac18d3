# clinic_dashboard/ui/pages/02_Appointments.py
"""
Appointments page

Weekly appointment list with booking, status changes and cancellation.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
import plotly.express as px
from datetime import date, timedelta
from typing import Any, Dict, Optional, Tuple

from clinic_dashboard.utils.logging_config import get_logger, setup_logging
from clinic_dashboard.utils.config import (
    DEFAULT_SESSION_DURATION,
    ERROR_MESSAGES,
    INFO_MESSAGES,
    LABELS,
    MAX_SESSION_DURATION_MINUTES,
    MIN_SESSION_DURATION_MINUTES,
    get_streamlit_config,
    get_time_slots,
    is_debug_mode,
)
from clinic_dashboard.core.analytics import appointments_per_day
from clinic_dashboard.core.records import (
    appointment_end,
    appointment_status_label,
    appointments_in_range,
    build_start_time,
    format_datetime,
    full_name,
    options_by_id,
    users_with_role,
    week_bounds,
)
from clinic_dashboard.core.subscription.guards import (
    can_create_records,
    can_edit_appointment,
    is_active_appointment,
    is_feature_available,
)
from clinic_dashboard.core.subscription.models import AppointmentStatus, Subscription, UserRole
from clinic_dashboard.core.validators.validation import validate_appointment
from clinic_dashboard.infrastructure.api import queries
from clinic_dashboard.infrastructure.api.client import ApiClient, ApiError
from clinic_dashboard.infrastructure.auth.session_auth import require_login
from clinic_dashboard.ui.components import handle_api_error, render_page_chrome, show_result

# Initialize logging
setup_logging()
logger = get_logger(__name__)

WEEK_OFFSET_KEY = "appointments_week_offset"

# Status changes offered for an active appointment
STATUS_ACTIONS = [
    AppointmentStatus.CONFIRMED.value,
    AppointmentStatus.COMPLETED.value,
    AppointmentStatus.NO_SHOW.value,
]


# =============================================================================
# APP CONFIGURATION
# =============================================================================


def setup_appointments_app() -> None:
    """Configure Streamlit app for the appointments page"""
    logger.info("Setting up appointments page...")

    try:
        config = get_streamlit_config()
        config["page_title"] = "Appointments"
        st.set_page_config(**config)

        if WEEK_OFFSET_KEY not in st.session_state:
            st.session_state[WEEK_OFFSET_KEY] = 0

    except Exception as e:
        logger.error(f"Failed to setup appointments page: {str(e)}")
        st.error(f"❌ Appointments page setup failed: {str(e)}")
        st.stop()


# =============================================================================
# WEEK VIEW
# =============================================================================


def render_week_navigation() -> Tuple[date, date]:
    """
    Previous/next week buttons.

    Returns:
        Tuple of (week_start, week_end) for the selected week
    """
    col1, col2, col3, col4 = st.columns([1, 3, 1, 1])

    with col1:
        if st.button("⬅️ Previous", use_container_width=True):
            st.session_state[WEEK_OFFSET_KEY] -= 1
    with col3:
        if st.button("Today", use_container_width=True):
            st.session_state[WEEK_OFFSET_KEY] = 0
    with col4:
        if st.button("Next ➡️", use_container_width=True):
            st.session_state[WEEK_OFFSET_KEY] += 1

    reference = date.today() + timedelta(weeks=st.session_state[WEEK_OFFSET_KEY])
    week_start, week_end = week_bounds(reference)

    with col2:
        st.markdown(
            f"#### {week_start.strftime('%d %b')} - {week_end.strftime('%d %b %Y')}"
        )
    return week_start, week_end


def render_appointment_row(client: ApiClient, appointment: Dict[str, Any]) -> None:
    end = appointment_end(appointment)
    status = appointment.get("status")

    with st.container(border=True):
        col1, col2, col3 = st.columns([3, 2, 2])
        with col1:
            st.write(f"**{appointment.get('title') or 'Session'}**")
            st.caption(
                f"{format_datetime(appointment.get('startTime'))}"
                f"{' - ' + end.strftime('%H:%M') if end else ''}"
            )
        with col2:
            st.write(f"👤 {full_name(appointment.get('patient'))}")
            st.caption(f"🧠 {full_name(appointment.get('psychologist'))}")
            if appointment.get("isOnline") and appointment.get("meetingUrl"):
                st.link_button("🎥 Join", appointment["meetingUrl"])
        with col3:
            st.write(appointment_status_label(status))

            if not (is_active_appointment(status) and can_edit_appointment(st.session_state.user)):
                return

            new_status = st.selectbox(
                "Set status",
                options=[None] + STATUS_ACTIONS,
                format_func=lambda s: "Change status..." if s is None else appointment_status_label(s),
                key=f"status_{appointment['id']}",
                label_visibility="collapsed",
            )
            if new_status and new_status != status:
                show_result(
                    *queries.update_appointment(client, appointment["id"], {"status": new_status})
                )
            if st.button(LABELS["cancel_appointment"], key=f"cancel_{appointment['id']}"):
                show_result(*queries.cancel_appointment(client, appointment["id"]))


def render_week(client: ApiClient, week_start: date, week_end: date) -> None:
    try:
        appointments = queries.fetch_appointments(
            client, client.tenant_id, week_start.isoformat(), week_end.isoformat()
        )
    except ApiError as e:
        handle_api_error(e, "load appointments")
        return

    appointments = appointments_in_range(appointments, week_start, week_end)

    per_day = appointments_per_day(appointments, week_start, week_end)
    fig = px.bar(per_day, x="date", y="count", title="Appointments per day")
    fig.update_layout(height=250)
    st.plotly_chart(fig, use_container_width=True)

    if not appointments:
        st.info(INFO_MESSAGES["no_appointments"])
        return

    for appointment in appointments:
        render_appointment_row(client, appointment)


# =============================================================================
# BOOKING
# =============================================================================


def render_booking_form(client: ApiClient, subscription: Optional[Subscription]) -> None:
    with st.expander(LABELS["new_appointment"]):
        if subscription is not None and not can_create_records(subscription):
            st.warning(ERROR_MESSAGES["read_only"])
            return
        if not can_edit_appointment(st.session_state.user):
            st.warning(ERROR_MESSAGES["permission_denied"])
            return

        try:
            patients = queries.fetch_patients(client, client.tenant_id, True)
            users = queries.fetch_users(client, client.tenant_id)
        except ApiError as e:
            handle_api_error(e, "load booking options")
            return

        patient_names = options_by_id(patients)
        psychologist_names = options_by_id(users_with_role(users, UserRole.PSYCHOLOGIST.value))
        if not patient_names or not psychologist_names:
            st.info("Add at least one active patient and one psychologist to book appointments.")
            return

        with st.form("create_appointment_form"):
            col1, col2 = st.columns(2)
            with col1:
                patient_id = st.selectbox(
                    "Patient", options=list(patient_names), format_func=patient_names.get
                )
                day = st.date_input("Date", value=date.today(), min_value=date.today())
                duration = st.number_input(
                    "Duration (min)",
                    min_value=MIN_SESSION_DURATION_MINUTES,
                    max_value=MAX_SESSION_DURATION_MINUTES,
                    value=DEFAULT_SESSION_DURATION,
                    step=5,
                )
            with col2:
                psychologist_id = st.selectbox(
                    "Psychologist", options=list(psychologist_names), format_func=psychologist_names.get
                )
                slot = st.selectbox("Time", options=get_time_slots())
                title = st.text_input("Title", value="Therapy session")

            is_online = st.checkbox("Online session")
            meeting_url = ""
            if is_feature_available("video_integration", subscription):
                meeting_url = st.text_input("Meeting URL (optional)")
            description = st.text_area("Description (optional)")
            submitted = st.form_submit_button(LABELS["save"], type="primary")

        if not submitted:
            return

        data = {
            "patientId": patient_id,
            "psychologistId": psychologist_id,
            "title": title.strip(),
            "description": description.strip() or None,
            "startTime": build_start_time(day, slot),
            "duration": int(duration),
            "isOnline": is_online,
            "meetingUrl": meeting_url.strip() or None,
        }
        is_valid, errors = validate_appointment(data)
        if not is_valid:
            for error in errors:
                st.error(error)
            return

        show_result(*queries.create_appointment(client, data))


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Main appointments page entry point"""
    logger.info("Starting appointments page...")

    try:
        setup_appointments_app()
        client, _ = require_login()
        subscription, _ = render_page_chrome(client)

        st.title("📅 Appointments")
        render_booking_form(client, subscription)

        week_start, week_end = render_week_navigation()
        render_week(client, week_start, week_end)

    except Exception as e:
        logger.error(f"Critical error in appointments page: {str(e)}")
        st.error(ERROR_MESSAGES["load_failed"])

        if is_debug_mode():
            st.exception(e)


if __name__ == "__main__":
    main()
