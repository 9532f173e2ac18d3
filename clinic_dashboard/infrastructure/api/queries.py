# clinic_dashboard/infrastructure/api/queries.py
"""
Cached reads and cache-invalidating mutations used by the pages.

Reads are wrapped in st.cache_data keyed by tenant id and filters (the
client argument is not hashed). Reads whose result depends on the caller
(tasks, notifications) are also keyed by user id. Mutations return (success, message) for
display and clear the reads they make stale.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

import streamlit as st

from clinic_dashboard.core.subscription.models import Subscription, UsageMetrics
from clinic_dashboard.infrastructure.api import endpoints
from clinic_dashboard.infrastructure.api.client import ApiClient, ApiError
from clinic_dashboard.utils.config import (
    ERROR_MESSAGES,
    LIST_CACHE_TTL,
    STORAGE_CACHE_TTL,
    SUBSCRIPTION_CACHE_TTL,
    SUCCESS_MESSAGES,
    USAGE_CACHE_TTL,
)
from clinic_dashboard.utils.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# CACHED READS
# =============================================================================


@st.cache_data(ttl=SUBSCRIPTION_CACHE_TTL, show_spinner=False)
def fetch_subscription(_client: ApiClient, tenant_id: str) -> Subscription:
    logger.info(f"Fetching subscription for tenant {tenant_id}")
    return endpoints.get_subscription(_client)


@st.cache_data(ttl=USAGE_CACHE_TTL, show_spinner=False)
def fetch_usage(_client: ApiClient, tenant_id: str) -> UsageMetrics:
    logger.info(f"Fetching usage for tenant {tenant_id}")
    return endpoints.get_usage(_client)


@st.cache_data(ttl=SUBSCRIPTION_CACHE_TTL, show_spinner=False)
def fetch_tenant(_client: ApiClient, tenant_id: str) -> Dict[str, Any]:
    return endpoints.get_tenant(_client, tenant_id)


@st.cache_data(ttl=SUBSCRIPTION_CACHE_TTL, show_spinner=False)
def fetch_tenant_settings(_client: ApiClient, tenant_id: str) -> Dict[str, Any]:
    return endpoints.get_tenant_settings(_client)


@st.cache_data(ttl=SUBSCRIPTION_CACHE_TTL, show_spinner=False)
def fetch_user(_client: ApiClient, tenant_id: str, user_id: str) -> Dict[str, Any]:
    return endpoints.get_user(_client, user_id)


@st.cache_data(ttl=LIST_CACHE_TTL, show_spinner=False)
def fetch_users(_client: ApiClient, tenant_id: str) -> List[Dict[str, Any]]:
    return endpoints.list_users(_client)


@st.cache_data(ttl=LIST_CACHE_TTL, show_spinner=False)
def fetch_patients(
    _client: ApiClient, tenant_id: str, active_only: bool = False
) -> List[Dict[str, Any]]:
    params = {"isActive": "true"} if active_only else {}
    return endpoints.list_patients(_client, **params)


@st.cache_data(ttl=LIST_CACHE_TTL, show_spinner=False)
def fetch_patient(_client: ApiClient, tenant_id: str, patient_id: str) -> Dict[str, Any]:
    return endpoints.get_patient(_client, patient_id)


@st.cache_data(ttl=LIST_CACHE_TTL, show_spinner=False)
def fetch_appointments(
    _client: ApiClient,
    tenant_id: str,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    patient_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    return endpoints.list_appointments(
        _client, from_=date_from, to=date_to, patientId=patient_id
    )


@st.cache_data(ttl=LIST_CACHE_TTL, show_spinner=False)
def fetch_clinical_notes(
    _client: ApiClient, tenant_id: str, patient_id: str
) -> List[Dict[str, Any]]:
    return endpoints.list_clinical_notes(_client, patientId=patient_id)


@st.cache_data(ttl=LIST_CACHE_TTL, show_spinner=False)
def fetch_session_plan(
    _client: ApiClient, tenant_id: str, patient_id: str
) -> Optional[Dict[str, Any]]:
    return endpoints.get_session_plan(_client, patient_id)


@st.cache_data(ttl=LIST_CACHE_TTL, show_spinner=False)
def fetch_tasks(
    _client: ApiClient, tenant_id: str, user_id: str, status: Optional[str] = None
) -> List[Dict[str, Any]]:
    return endpoints.list_tasks(_client, status=status)


@st.cache_data(ttl=LIST_CACHE_TTL, show_spinner=False)
def fetch_notifications(
    _client: ApiClient, tenant_id: str, user_id: str
) -> List[Dict[str, Any]]:
    return endpoints.list_notifications(_client)


@st.cache_data(ttl=STORAGE_CACHE_TTL, show_spinner=False)
def fetch_storage_files(
    _client: ApiClient, tenant_id: str, category: Optional[str] = None
) -> List[Dict[str, Any]]:
    return endpoints.list_storage_files(_client, category=category)


@st.cache_data(ttl=STORAGE_CACHE_TTL, show_spinner=False)
def fetch_storage_breakdown(_client: ApiClient, tenant_id: str) -> Dict[str, float]:
    return endpoints.get_storage_breakdown(_client)


@st.cache_data(ttl=LIST_CACHE_TTL, show_spinner=False)
def fetch_audit_logs(_client: ApiClient, tenant_id: str) -> List[Dict[str, Any]]:
    return endpoints.list_audit_logs(_client)


def fetch_dashboard_data(
    client: ApiClient, user_id: str, week_start: str, week_end: str
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Load this week's appointments, every task of the user and the active
    patients. Tasks are not filtered by status.

    Raises:
        ApiError: If any dataset cannot be loaded
    """
    return {
        "appointments": fetch_appointments(client, client.tenant_id, week_start, week_end),
        "tasks": fetch_tasks(client, client.tenant_id, user_id),
        "patients": fetch_patients(client, client.tenant_id, True),
    }


def clear_all_caches() -> None:
    """Drop every cached read (sign out, tenant switch)."""
    logger.info("Clearing all cached queries")
    st.cache_data.clear()


# =============================================================================
# MUTATIONS
# =============================================================================


def _run_mutation(
    action: str,
    operation: Callable[[], Any],
    success_message: str,
    invalidates: Tuple[Any, ...] = (),
) -> Tuple[bool, str]:
    """
    Run a mutation, clear the given caches on success and report the outcome.

    Args:
        action: Description used in log lines
        operation: Zero-argument callable performing the API call
        success_message: Message returned on success
        invalidates: Cached fetchers to clear on success

    Returns:
        Tuple of (success, message)
    """
    logger.info(f"Mutation: {action}")
    try:
        operation()
    except ApiError as e:
        logger.error(f"{action} failed: {e!r}")
        if e.is_network_error:
            return False, ERROR_MESSAGES["network_error"]
        if e.is_unauthorized:
            return False, ERROR_MESSAGES["session_expired"]
        return False, f"❌ {e.message}"

    for fetcher in invalidates:
        fetcher.clear()

    logger.info(f"{action} succeeded")
    return True, success_message


def upgrade_subscription(client: ApiClient, request: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        "upgrade subscription",
        lambda: endpoints.upgrade_subscription(client, request),
        SUCCESS_MESSAGES["subscription_upgraded"],
        (fetch_subscription, fetch_usage, fetch_tenant),
    )


def downgrade_subscription(client: ApiClient, request: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        "downgrade subscription",
        lambda: endpoints.downgrade_subscription(client, request),
        SUCCESS_MESSAGES["subscription_downgraded"],
        (fetch_subscription, fetch_usage, fetch_tenant),
    )


def create_patient(client: ApiClient, data: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        "create patient",
        lambda: endpoints.create_patient(client, data),
        SUCCESS_MESSAGES["patient_created"],
        (fetch_patients, fetch_usage),
    )


def update_patient(client: ApiClient, patient_id: str, data: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        f"update patient {patient_id}",
        lambda: endpoints.update_patient(client, patient_id, data),
        SUCCESS_MESSAGES["patient_updated"],
        (fetch_patients, fetch_patient),
    )


def delete_patient(client: ApiClient, patient_id: str) -> Tuple[bool, str]:
    return _run_mutation(
        f"delete patient {patient_id}",
        lambda: endpoints.delete_patient(client, patient_id),
        SUCCESS_MESSAGES["patient_deleted"],
        (fetch_patients, fetch_patient, fetch_usage),
    )


def create_appointment(client: ApiClient, data: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        "create appointment",
        lambda: endpoints.create_appointment(client, data),
        SUCCESS_MESSAGES["appointment_created"],
        (fetch_appointments,),
    )


def update_appointment(
    client: ApiClient, appointment_id: str, data: Dict[str, Any]
) -> Tuple[bool, str]:
    return _run_mutation(
        f"update appointment {appointment_id}",
        lambda: endpoints.update_appointment(client, appointment_id, data),
        SUCCESS_MESSAGES["appointment_updated"],
        (fetch_appointments,),
    )


def cancel_appointment(
    client: ApiClient, appointment_id: str, reason: Optional[str] = None
) -> Tuple[bool, str]:
    return _run_mutation(
        f"cancel appointment {appointment_id}",
        lambda: endpoints.cancel_appointment(client, appointment_id, reason),
        SUCCESS_MESSAGES["appointment_cancelled"],
        (fetch_appointments,),
    )


def create_clinical_note(client: ApiClient, data: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        "create clinical note",
        lambda: endpoints.create_clinical_note(client, data),
        SUCCESS_MESSAGES["note_created"],
        (fetch_clinical_notes,),
    )


def update_clinical_note(client: ApiClient, note_id: str, data: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        f"update clinical note {note_id}",
        lambda: endpoints.update_clinical_note(client, note_id, data),
        SUCCESS_MESSAGES["note_updated"],
        (fetch_clinical_notes,),
    )


def delete_clinical_note(client: ApiClient, note_id: str) -> Tuple[bool, str]:
    return _run_mutation(
        f"delete clinical note {note_id}",
        lambda: endpoints.delete_clinical_note(client, note_id),
        SUCCESS_MESSAGES["note_deleted"],
        (fetch_clinical_notes,),
    )


def save_session_plan(
    client: ApiClient, patient_id: str, data: Dict[str, Any], exists: bool
) -> Tuple[bool, str]:
    return _run_mutation(
        f"save session plan for patient {patient_id}",
        lambda: endpoints.save_session_plan(client, patient_id, data, exists),
        SUCCESS_MESSAGES["session_plan_saved"],
        (fetch_session_plan,),
    )


def delete_session_plan(client: ApiClient, patient_id: str) -> Tuple[bool, str]:
    return _run_mutation(
        f"delete session plan for patient {patient_id}",
        lambda: endpoints.delete_session_plan(client, patient_id),
        SUCCESS_MESSAGES["session_plan_deleted"],
        (fetch_session_plan,),
    )


def create_task(client: ApiClient, data: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        "create task",
        lambda: endpoints.create_task(client, data),
        SUCCESS_MESSAGES["task_created"],
        (fetch_tasks,),
    )


def update_task(client: ApiClient, task_id: str, data: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        f"update task {task_id}",
        lambda: endpoints.update_task(client, task_id, data),
        SUCCESS_MESSAGES["task_updated"],
        (fetch_tasks,),
    )


def complete_task(client: ApiClient, task_id: str) -> Tuple[bool, str]:
    return _run_mutation(
        f"complete task {task_id}",
        lambda: endpoints.complete_task(client, task_id),
        SUCCESS_MESSAGES["task_completed"],
        (fetch_tasks,),
    )


def delete_task(client: ApiClient, task_id: str) -> Tuple[bool, str]:
    return _run_mutation(
        f"delete task {task_id}",
        lambda: endpoints.delete_task(client, task_id),
        SUCCESS_MESSAGES["task_deleted"],
        (fetch_tasks,),
    )


def invite_user(client: ApiClient, data: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        f"invite user {data.get('email')}",
        lambda: endpoints.invite_user(client, data),
        SUCCESS_MESSAGES["user_invited"],
        (fetch_users, fetch_usage),
    )


def update_user(client: ApiClient, user_id: str, data: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        f"update user {user_id}",
        lambda: endpoints.update_user(client, user_id, data),
        SUCCESS_MESSAGES["user_updated"],
        (fetch_users, fetch_user, fetch_usage),
    )


def delete_user(client: ApiClient, user_id: str) -> Tuple[bool, str]:
    return _run_mutation(
        f"delete user {user_id}",
        lambda: endpoints.delete_user(client, user_id),
        SUCCESS_MESSAGES["user_deleted"],
        (fetch_users, fetch_usage),
    )


def activate_user(client: ApiClient, user_id: str) -> Tuple[bool, str]:
    return _run_mutation(
        f"activate user {user_id}",
        lambda: endpoints.activate_user(client, user_id),
        SUCCESS_MESSAGES["user_activated"],
        (fetch_users, fetch_usage),
    )


def update_profile(client: ApiClient, user_id: str, data: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        "update profile",
        lambda: endpoints.update_user(client, user_id, data),
        SUCCESS_MESSAGES["profile_updated"],
        (fetch_user, fetch_users),
    )


def change_password(
    client: ApiClient, current_password: str, new_password: str
) -> Tuple[bool, str]:
    return _run_mutation(
        "change password",
        lambda: endpoints.change_password(client, current_password, new_password),
        SUCCESS_MESSAGES["password_changed"],
    )


def upload_avatar(
    client: ApiClient, user_id: str, file_name: str, content: bytes, content_type: str
) -> Tuple[bool, str]:
    return _run_mutation(
        "upload avatar",
        lambda: endpoints.upload_avatar(client, user_id, file_name, content, content_type),
        SUCCESS_MESSAGES["profile_updated"],
        (fetch_user, fetch_users, fetch_storage_files, fetch_storage_breakdown, fetch_usage),
    )


def update_tenant_settings(client: ApiClient, settings: Dict[str, Any]) -> Tuple[bool, str]:
    return _run_mutation(
        "update tenant settings",
        lambda: endpoints.update_tenant_settings(client, settings),
        SUCCESS_MESSAGES["settings_saved"],
        (fetch_tenant_settings, fetch_tenant),
    )


def mark_notification_read(client: ApiClient, notification_id: str) -> Tuple[bool, str]:
    return _run_mutation(
        f"mark notification {notification_id} read",
        lambda: endpoints.mark_notification_read(client, notification_id),
        "",
        (fetch_notifications,),
    )


def mark_all_notifications_read(client: ApiClient) -> Tuple[bool, str]:
    return _run_mutation(
        "mark all notifications read",
        lambda: endpoints.mark_all_notifications_read(client),
        SUCCESS_MESSAGES["notifications_read"],
        (fetch_notifications,),
    )


def upload_file(
    client: ApiClient,
    file_name: str,
    content: bytes,
    content_type: str,
    category: str,
    related_to: Optional[str] = None,
) -> Tuple[bool, str]:
    return _run_mutation(
        f"upload file {file_name}",
        lambda: endpoints.upload_file(client, file_name, content, content_type, category, related_to),
        SUCCESS_MESSAGES["file_uploaded"],
        (fetch_storage_files, fetch_storage_breakdown, fetch_usage),
    )


def delete_file(client: ApiClient, file_id: str) -> Tuple[bool, str]:
    return _run_mutation(
        f"delete file {file_id}",
        lambda: endpoints.delete_file(client, file_id),
        SUCCESS_MESSAGES["file_deleted"],
        (fetch_storage_files, fetch_storage_breakdown, fetch_usage),
    )
