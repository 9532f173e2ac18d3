# clinic_dashboard/ui/pages/01_Patients.py
"""
Patients page

Patient list with search, patient creation gated by the plan's patient
limit, and a detail view with clinical notes, the next-session plan and
attachments.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
from datetime import date
from typing import Any, Dict, List, Optional

from clinic_dashboard.utils.logging_config import get_logger, setup_logging
from clinic_dashboard.utils.config import (
    ERROR_MESSAGES,
    INFO_MESSAGES,
    LABELS,
    MAX_ATTACHMENT_SIZE_MB,
    get_streamlit_config,
    is_debug_mode,
)
from clinic_dashboard.core.records import (
    appointment_status_label,
    filter_patients,
    format_datetime,
    full_name,
    options_by_id,
    sort_appointments,
    sort_patients,
    users_with_role,
)
from clinic_dashboard.core.storage import format_file_size
from clinic_dashboard.core.subscription.gating import check_create_patient, check_upload_file
from clinic_dashboard.core.subscription.guards import (
    can_access_clinical_notes,
    can_delete_patient,
)
from clinic_dashboard.core.subscription.models import (
    FileCategory,
    Gender,
    Subscription,
    UsageMetrics,
    UserRole,
)
from clinic_dashboard.core.validators.validation import validate_clinical_note, validate_patient
from clinic_dashboard.infrastructure.api import queries
from clinic_dashboard.infrastructure.api.client import ApiClient, ApiError
from clinic_dashboard.infrastructure.auth.session_auth import require_login
from clinic_dashboard.ui.components import (
    handle_api_error,
    render_blocked,
    render_feature_gate,
    render_page_chrome,
    show_result,
)

# Initialize logging
setup_logging()
logger = get_logger(__name__)

GENDER_LABELS = {
    "": "Not specified",
    Gender.MALE.value: "Male",
    Gender.FEMALE.value: "Female",
    Gender.NON_BINARY.value: "Non-binary",
    Gender.PREFER_NOT_TO_SAY.value: "Prefer not to say",
}

SELECTED_PATIENT_KEY = "selected_patient_id"


# =============================================================================
# APP CONFIGURATION
# =============================================================================


def setup_patients_app() -> None:
    """Configure Streamlit app for the patients page"""
    logger.info("Setting up patients page...")

    try:
        config = get_streamlit_config()
        config["page_title"] = "Patients"
        st.set_page_config(**config)

    except Exception as e:
        logger.error(f"Failed to setup patients page: {str(e)}")
        st.error(f"❌ Patients page setup failed: {str(e)}")
        st.stop()


# =============================================================================
# PATIENT LIST
# =============================================================================


def render_patient_list(client: ApiClient) -> None:
    try:
        patients = queries.fetch_patients(client, client.tenant_id)
    except ApiError as e:
        handle_api_error(e, "load patients")
        return

    search = st.text_input("🔍 Search", placeholder="Name, email or phone")
    visible = sort_patients(filter_patients(patients, search))

    with st.container(border=True):
        if not visible:
            st.info(INFO_MESSAGES["no_patients"])
            return

        st.dataframe(
            [
                {
                    "Name": full_name(p),
                    "Email": p.get("email") or "",
                    "Phone": p.get("phone") or "",
                    "Psychologist": full_name(p.get("assignedPsychologist")),
                    "Active": "✅" if p.get("isActive", True) else "—",
                }
                for p in visible
            ],
            use_container_width=True,
            hide_index=True,
        )

        names = options_by_id(visible)
        selected = st.selectbox(
            "Open patient",
            options=[None] + list(names),
            format_func=lambda pid: "Select a patient..." if pid is None else names[pid],
        )
        if selected and st.button(LABELS["view_details"], type="primary"):
            st.session_state[SELECTED_PATIENT_KEY] = selected
            st.rerun()


def patient_form_fields(
    patient: Dict[str, Any], psychologists: List[Dict[str, Any]], key: str
) -> Dict[str, Any]:
    """Render the patient fields and return the entered data"""
    col1, col2 = st.columns(2)
    with col1:
        first_name = st.text_input("First name", value=patient.get("firstName", ""), key=f"{key}_first")
        email = st.text_input("Email (optional)", value=patient.get("email") or "", key=f"{key}_email")
        dob_value = (patient.get("dateOfBirth") or "")[:10]
        date_of_birth = st.date_input(
            "Date of birth",
            value=date.fromisoformat(dob_value) if dob_value else None,
            min_value=date(1900, 1, 1),
            key=f"{key}_dob",
        )
    with col2:
        last_name = st.text_input("Last name", value=patient.get("lastName", ""), key=f"{key}_last")
        phone = st.text_input("Phone (optional)", value=patient.get("phone") or "", key=f"{key}_phone")
        genders = list(GENDER_LABELS)
        gender = st.selectbox(
            "Gender",
            options=genders,
            index=genders.index(patient.get("gender")) if patient.get("gender") in genders else 0,
            format_func=GENDER_LABELS.get,
            key=f"{key}_gender",
        )

    psychologist_names = options_by_id(psychologists)
    psychologist_ids = [None] + list(psychologist_names)
    current = patient.get("assignedPsychologistId")
    assigned = st.selectbox(
        "Assigned psychologist",
        options=psychologist_ids,
        index=psychologist_ids.index(current) if current in psychologist_ids else 0,
        format_func=lambda uid: "Unassigned" if uid is None else psychologist_names[uid],
        key=f"{key}_psychologist",
    )
    notes = st.text_area("Notes", value=patient.get("notes") or "", key=f"{key}_notes")

    return {
        "firstName": first_name.strip(),
        "lastName": last_name.strip(),
        "email": email.strip() or None,
        "phone": phone.strip() or None,
        "dateOfBirth": date_of_birth.isoformat() if date_of_birth else None,
        "gender": gender or None,
        "assignedPsychologistId": assigned,
        "notes": notes.strip() or None,
    }


def render_create_patient(
    client: ApiClient,
    subscription: Optional[Subscription],
    usage: Optional[UsageMetrics],
    psychologists: List[Dict[str, Any]],
) -> None:
    with st.expander(LABELS["new_patient"]):
        check = check_create_patient(subscription, usage)
        if not check.allowed:
            render_blocked(check, "patient_limit")
            return

        st.caption(f"{check.remaining} patient slots left on your plan")
        with st.form("create_patient_form"):
            data = patient_form_fields({}, psychologists, "new_patient")
            submitted = st.form_submit_button(LABELS["save"], type="primary")

        if submitted:
            is_valid, errors = validate_patient(data)
            if not is_valid:
                for error in errors:
                    st.error(error)
                return
            show_result(*queries.create_patient(client, data))


# =============================================================================
# PATIENT DETAIL
# =============================================================================


def render_patient_info(
    client: ApiClient, patient: Dict[str, Any], psychologists: List[Dict[str, Any]]
) -> None:
    user = st.session_state.user
    with st.form("edit_patient_form"):
        data = patient_form_fields(patient, psychologists, "edit_patient")
        data["isActive"] = st.checkbox("Active", value=patient.get("isActive", True))
        submitted = st.form_submit_button(LABELS["save"], type="primary")

    if submitted:
        is_valid, errors = validate_patient(data)
        if not is_valid:
            for error in errors:
                st.error(error)
        else:
            show_result(*queries.update_patient(client, patient["id"], data))

    if can_delete_patient(user):
        confirm = st.checkbox("I understand this permanently deletes the patient")
        if st.button(LABELS["delete"], disabled=not confirm):
            success, message = queries.delete_patient(client, patient["id"])
            if success:
                st.session_state.pop(SELECTED_PATIENT_KEY, None)
            show_result(success, message)


def render_patient_appointments(client: ApiClient, patient_id: str) -> None:
    try:
        appointments = queries.fetch_appointments(client, client.tenant_id, patient_id=patient_id)
    except ApiError as e:
        handle_api_error(e, "load patient appointments")
        return

    if not appointments:
        st.info(INFO_MESSAGES["no_appointments"])
        return

    st.dataframe(
        [
            {
                "Date": format_datetime(a.get("startTime")),
                "Title": a.get("title"),
                "Psychologist": full_name(a.get("psychologist")),
                "Status": appointment_status_label(a.get("status")),
            }
            for a in sort_appointments(appointments, descending=True)
        ],
        use_container_width=True,
        hide_index=True,
    )


def render_clinical_notes(
    client: ApiClient, subscription: Optional[Subscription], patient_id: str
) -> None:
    if not can_access_clinical_notes(st.session_state.user):
        st.warning(ERROR_MESSAGES["permission_denied"])
        return
    if not render_feature_gate(subscription, "clinical_notes", "notes_gate"):
        return

    with st.expander("➕ New note"):
        with st.form("create_note_form", clear_on_submit=True):
            content = st.text_area("Content")
            col1, col2 = st.columns(2)
            with col1:
                diagnosis = st.text_input("Diagnosis (optional)")
            with col2:
                duration = st.number_input("Session duration (min)", min_value=0, max_value=240, value=50)
            treatment = st.text_area("Treatment (optional)")
            submitted = st.form_submit_button(LABELS["save"], type="primary")

        if submitted:
            data = {
                "patientId": patient_id,
                "content": content.strip(),
                "diagnosis": diagnosis.strip() or None,
                "treatment": treatment.strip() or None,
                "sessionDuration": int(duration) or None,
            }
            is_valid, errors = validate_clinical_note(data)
            if not is_valid:
                for error in errors:
                    st.error(error)
            else:
                show_result(*queries.create_clinical_note(client, data))

    try:
        notes = queries.fetch_clinical_notes(client, client.tenant_id, patient_id)
    except ApiError as e:
        handle_api_error(e, "load clinical notes")
        return

    if not notes:
        st.info(INFO_MESSAGES["no_notes"])
        return

    for note in sorted(notes, key=lambda n: n.get("createdAt") or "", reverse=True):
        with st.container(border=True):
            st.caption(
                f"{format_datetime(note.get('sessionDate') or note.get('createdAt'))} · "
                f"{full_name(note.get('psychologist'))}"
            )
            st.write(note.get("content"))
            if note.get("diagnosis"):
                st.write(f"**Diagnosis:** {note['diagnosis']}")
            if note.get("treatment"):
                st.write(f"**Treatment:** {note['treatment']}")
            if st.button(LABELS["delete"], key=f"delete_note_{note['id']}"):
                show_result(*queries.delete_clinical_note(client, note["id"]))


def _plan_text(value: Any) -> str:
    # Objectives may come back as a list
    if isinstance(value, list):
        return "\n".join(str(v) for v in value)
    return value or ""


def render_session_plan(
    client: ApiClient, subscription: Optional[Subscription], patient_id: str
) -> None:
    if not render_feature_gate(subscription, "session_plans", "session_plan_gate"):
        return

    try:
        plan = queries.fetch_session_plan(client, client.tenant_id, patient_id)
    except ApiError as e:
        handle_api_error(e, "load session plan")
        return

    plan = plan or {}
    with st.form("session_plan_form"):
        objectives = st.text_area("Objectives", value=_plan_text(plan.get("objectives")))
        techniques = st.text_area("Techniques", value=plan.get("techniques") or "")
        homework = st.text_area("Homework", value=plan.get("homework") or "")
        notes = st.text_area("Notes", value=plan.get("notes") or "")
        submitted = st.form_submit_button(LABELS["save"], type="primary")

    if submitted:
        data = {
            "objectives": objectives.strip() or None,
            "techniques": techniques.strip() or None,
            "homework": homework.strip() or None,
            "notes": notes.strip() or None,
        }
        show_result(*queries.save_session_plan(client, patient_id, data, exists=bool(plan)))

    if plan and st.button("🗑️ Delete plan"):
        show_result(*queries.delete_session_plan(client, patient_id))


def render_attachments(
    client: ApiClient,
    subscription: Optional[Subscription],
    usage: Optional[UsageMetrics],
    patient_id: str,
) -> None:
    if not render_feature_gate(subscription, "attachments", "attachments_gate"):
        return

    uploaded = st.file_uploader(f"Attach a file (max {MAX_ATTACHMENT_SIZE_MB} MB)")
    if uploaded is not None and st.button(LABELS["upload_file"], type="primary"):
        if uploaded.size > MAX_ATTACHMENT_SIZE_MB * 1024 * 1024:
            st.error(f"⚠️ Files larger than {MAX_ATTACHMENT_SIZE_MB} MB are not accepted")
            return

        check = check_upload_file(subscription, usage, uploaded.name, uploaded.size)
        if not check.allowed:
            render_blocked(check, "attachment_storage")
            return

        show_result(
            *queries.upload_file(
                client,
                uploaded.name,
                uploaded.getvalue(),
                uploaded.type or "application/octet-stream",
                FileCategory.ATTACHMENT.value,
                related_to=patient_id,
            )
        )

    try:
        files = queries.fetch_storage_files(client, client.tenant_id, FileCategory.ATTACHMENT.value)
    except ApiError as e:
        if e.status_code == 404:
            st.info(INFO_MESSAGES["storage_unavailable"])
        else:
            handle_api_error(e, "load attachments")
        return

    attachments = [f for f in files if f.get("relatedTo") == patient_id]
    if not attachments:
        st.info(INFO_MESSAGES["no_files"])
        return

    st.dataframe(
        [
            {
                "File": f.get("fileName"),
                "Size": format_file_size(f.get("fileSize")),
                "Uploaded": format_datetime(f.get("createdAt")),
            }
            for f in attachments
        ],
        use_container_width=True,
        hide_index=True,
    )


def render_patient_detail(
    client: ApiClient,
    subscription: Optional[Subscription],
    usage: Optional[UsageMetrics],
    patient_id: str,
    psychologists: List[Dict[str, Any]],
) -> None:
    try:
        patient = queries.fetch_patient(client, client.tenant_id, patient_id)
    except ApiError as e:
        handle_api_error(e, "load patient")
        return

    if st.button("⬅️ Back to patients"):
        st.session_state.pop(SELECTED_PATIENT_KEY, None)
        st.rerun()

    st.subheader(f"👤 {full_name(patient)}")

    info_tab, appointments_tab, notes_tab, plan_tab, files_tab = st.tabs(
        ["Details", "Appointments", "Clinical notes", "Session plan", "Attachments"]
    )
    with info_tab:
        render_patient_info(client, patient, psychologists)
    with appointments_tab:
        render_patient_appointments(client, patient_id)
    with notes_tab:
        render_clinical_notes(client, subscription, patient_id)
    with plan_tab:
        render_session_plan(client, subscription, patient_id)
    with files_tab:
        render_attachments(client, subscription, usage, patient_id)


# =============================================================================
# MAIN
# =============================================================================


def load_psychologists(client: ApiClient) -> List[Dict[str, Any]]:
    try:
        users = queries.fetch_users(client, client.tenant_id)
    except ApiError as e:
        logger.warning(f"Could not load psychologists: {e!r}")
        return []
    return users_with_role(users, UserRole.PSYCHOLOGIST.value)


def main() -> None:
    """Main patients page entry point"""
    logger.info("Starting patients page...")

    try:
        setup_patients_app()
        client, _ = require_login()
        subscription, usage = render_page_chrome(client)

        st.title("👥 Patients")
        psychologists = load_psychologists(client)

        patient_id = st.session_state.get(SELECTED_PATIENT_KEY)
        if patient_id:
            render_patient_detail(client, subscription, usage, patient_id, psychologists)
        else:
            render_create_patient(client, subscription, usage, psychologists)
            render_patient_list(client)

    except Exception as e:
        logger.error(f"Critical error in patients page: {str(e)}")
        st.error(ERROR_MESSAGES["load_failed"])

        if is_debug_mode():
            st.exception(e)


if __name__ == "__main__":
    main()
