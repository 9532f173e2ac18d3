# clinic_dashboard/infrastructure/api/endpoints.py
"""
Backend endpoint paths and one function per API operation.

Tenant-scoped operations read the tenant id from the client and normalise
responses into the shapes used by the dashboard.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from clinic_dashboard.core.normalizers import (
    build_tenant_create_payload,
    build_tenant_settings_payload,
    extract_array,
    normalize_subscription,
    normalize_tenant,
    normalize_tenant_settings,
    normalize_usage,
    normalize_user,
)
from clinic_dashboard.core.subscription.models import Subscription, TaskStatus, UsageMetrics
from clinic_dashboard.core.subscription.plans import downgrade_payload, upgrade_payload
from clinic_dashboard.infrastructure.api.client import ApiClient, ApiError
from clinic_dashboard.utils.config import ERROR_MESSAGES
from clinic_dashboard.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CANCEL_REASON = "Cancelled by user"
STORAGE_LIMIT_MESSAGE = "Storage limit reached"


# =============================================================================
# ENDPOINT PATHS
# =============================================================================


class ApiEndpoints:
    """Endpoint paths; tenant-scoped paths are built from the tenant id"""

    # Auth (public, no tenant)
    LOGIN = "/auth/login"
    REFRESH = "/auth/refresh"
    LOGOUT = "/auth/logout"
    LOGOUT_ALL = "/auth/logout-all"
    FORGOT_PASSWORD = "/auth/forgot-password"
    RESET_PASSWORD = "/auth/reset-password"
    TENANT_CREATE = "/tenants"

    @staticmethod
    def tenant(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}"

    @staticmethod
    def tenant_complete_onboarding(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/complete-onboarding"

    @staticmethod
    def tenant_settings(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/settings"

    @staticmethod
    def users(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/users"

    @staticmethod
    def user_invite(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/users/invite"

    @staticmethod
    def user_detail(tenant_id: str, user_id: str) -> str:
        return f"/tenants/{tenant_id}/users/{user_id}"

    @staticmethod
    def user_activate(tenant_id: str, user_id: str) -> str:
        return f"/tenants/{tenant_id}/users/{user_id}/activate"

    @staticmethod
    def user_avatar(tenant_id: str, user_id: str) -> str:
        return f"/tenants/{tenant_id}/users/{user_id}/avatar"

    @staticmethod
    def change_password(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/users/me/change-password"

    @staticmethod
    def patients(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/patients"

    @staticmethod
    def patient_detail(tenant_id: str, patient_id: str) -> str:
        return f"/tenants/{tenant_id}/patients/{patient_id}"

    @staticmethod
    def appointments(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/appointments"

    @staticmethod
    def appointment_detail(tenant_id: str, appointment_id: str) -> str:
        return f"/tenants/{tenant_id}/appointments/{appointment_id}"

    @staticmethod
    def appointment_cancel(tenant_id: str, appointment_id: str) -> str:
        return f"/tenants/{tenant_id}/appointments/{appointment_id}/cancel"

    @staticmethod
    def clinical_notes(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/clinical-notes"

    @staticmethod
    def clinical_note_detail(tenant_id: str, note_id: str) -> str:
        return f"/tenants/{tenant_id}/clinical-notes/{note_id}"

    @staticmethod
    def session_plans(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/next-session-plans"

    @staticmethod
    def session_plan_by_patient(tenant_id: str, patient_id: str) -> str:
        return f"/tenants/{tenant_id}/next-session-plans/patient/{patient_id}"

    @staticmethod
    def tasks(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/tasks"

    @staticmethod
    def task_detail(tenant_id: str, task_id: str) -> str:
        return f"/tenants/{tenant_id}/tasks/{task_id}"

    @staticmethod
    def notifications(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/notifications"

    @staticmethod
    def notification_read(tenant_id: str, notification_id: str) -> str:
        return f"/tenants/{tenant_id}/notifications/{notification_id}/read"

    @staticmethod
    def notifications_read_all(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/notifications/read-all"

    @staticmethod
    def subscription(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/subscription"

    @staticmethod
    def subscription_usage(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/subscription/usage"

    @staticmethod
    def subscription_upgrade(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/subscription/upgrade"

    @staticmethod
    def subscription_downgrade(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/subscription/downgrade"

    @staticmethod
    def storage_files(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/storage/files"

    @staticmethod
    def storage_file(tenant_id: str, file_id: str) -> str:
        return f"/tenants/{tenant_id}/storage/files/{file_id}"

    @staticmethod
    def storage_breakdown(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/storage/breakdown"

    @staticmethod
    def storage_upload(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/storage/upload"

    @staticmethod
    def audit_logs(tenant_id: str) -> str:
        return f"/tenants/{tenant_id}/audit-logs"

    @staticmethod
    def audit_log_entity(tenant_id: str, entity: str, entity_id: str) -> str:
        return f"/tenants/{tenant_id}/audit-logs/{entity}/{entity_id}"


def get_tenant_id(client: ApiClient) -> str:
    """
    Tenant id of the signed-in user.

    Raises:
        ApiError: If no tenant is set on the client
    """
    if not client.tenant_id:
        logger.error("Tenant-scoped call without a tenant id")
        raise ApiError(ERROR_MESSAGES["no_tenant"], code="NO_TENANT")
    return client.tenant_id


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# AUTH
# =============================================================================


def login(client: ApiClient, email: str, password: str) -> Dict[str, Any]:
    """
    Sign in and store the tokens on the client.

    Returns:
        Dict with accessToken, refreshToken and the normalised user
    """
    logger.info(f"Signing in {email}")
    raw = client.post(ApiEndpoints.LOGIN, {"email": email, "password": password}) or {}
    client.set_tokens(raw.get("accessToken"), raw.get("refreshToken"))

    user = normalize_user(raw.get("user"))
    client.set_tenant(user.get("tenantId"))
    return {**raw, "user": user}


def logout(client: ApiClient) -> None:
    try:
        if client.refresh_token:
            client.post(ApiEndpoints.LOGOUT, {"refreshToken": client.refresh_token})
    finally:
        client.clear_auth_data()


def logout_all(client: ApiClient) -> None:
    try:
        client.post(ApiEndpoints.LOGOUT_ALL)
    finally:
        client.clear_auth_data()


def forgot_password(client: ApiClient, email: str) -> None:
    client.post(ApiEndpoints.FORGOT_PASSWORD, {"email": email})


def reset_password(client: ApiClient, token: str, password: str) -> None:
    client.post(ApiEndpoints.RESET_PASSWORD, {"token": token, "password": password})


def change_password(client: ApiClient, current_password: str, new_password: str) -> None:
    client.post(
        ApiEndpoints.change_password(get_tenant_id(client)),
        {"currentPassword": current_password, "newPassword": new_password},
    )


# =============================================================================
# TENANTS & SETTINGS
# =============================================================================


def create_tenant(client: ApiClient, data: Dict[str, Any]) -> Dict[str, Any]:
    """Create a clinic together with its admin user (public endpoint)."""
    logger.info(f"Creating tenant {data.get('slug')}")
    return client.post(ApiEndpoints.TENANT_CREATE, build_tenant_create_payload(data)) or {}


def get_tenant(client: ApiClient, tenant_id: Optional[str] = None) -> Dict[str, Any]:
    raw = client.get(ApiEndpoints.tenant(tenant_id or get_tenant_id(client)))
    return normalize_tenant(raw or {})


def update_tenant(client: ApiClient, data: Dict[str, Any]) -> Dict[str, Any]:
    raw = client.patch(ApiEndpoints.tenant(get_tenant_id(client)), data)
    return normalize_tenant(raw or {})


def complete_onboarding(client: ApiClient, tenant_id: Optional[str] = None) -> None:
    client.post(ApiEndpoints.tenant_complete_onboarding(tenant_id or get_tenant_id(client)))


def get_tenant_settings(client: ApiClient) -> Dict[str, Any]:
    return normalize_tenant_settings(client.get(ApiEndpoints.tenant_settings(get_tenant_id(client))))


def update_tenant_settings(client: ApiClient, settings: Dict[str, Any]) -> Dict[str, Any]:
    payload = build_tenant_settings_payload(settings)
    logger.info(f"Updating tenant settings: {sorted(payload)}")
    raw = client.patch(ApiEndpoints.tenant_settings(get_tenant_id(client)), payload)
    return normalize_tenant_settings(raw)


# =============================================================================
# USERS
# =============================================================================


def list_users(client: ApiClient, **params: Any) -> List[Dict[str, Any]]:
    raw = client.get(ApiEndpoints.users(get_tenant_id(client)), params=params)
    return [normalize_user(u) for u in extract_array(raw)]


def get_user(client: ApiClient, user_id: str) -> Dict[str, Any]:
    return normalize_user(client.get(ApiEndpoints.user_detail(get_tenant_id(client), user_id)))


def create_user(client: ApiClient, data: Dict[str, Any]) -> Dict[str, Any]:
    return normalize_user(client.post(ApiEndpoints.users(get_tenant_id(client)), data))


def invite_user(client: ApiClient, data: Dict[str, Any]) -> Dict[str, Any]:
    logger.info(f"Inviting {data.get('email')} as {data.get('role')}")
    return normalize_user(client.post(ApiEndpoints.user_invite(get_tenant_id(client)), data))


def update_user(client: ApiClient, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return normalize_user(
        client.patch(ApiEndpoints.user_detail(get_tenant_id(client), user_id), data)
    )


def delete_user(client: ApiClient, user_id: str) -> None:
    client.delete(ApiEndpoints.user_detail(get_tenant_id(client), user_id))


def activate_user(client: ApiClient, user_id: str) -> None:
    client.post(ApiEndpoints.user_activate(get_tenant_id(client), user_id))


def upload_avatar(
    client: ApiClient, user_id: str, file_name: str, content: bytes, content_type: str
) -> Dict[str, Any]:
    raw = client.upload(
        ApiEndpoints.user_avatar(get_tenant_id(client), user_id),
        file_name,
        content,
        content_type,
    )
    return normalize_user(raw)


# =============================================================================
# PATIENTS
# =============================================================================


def list_patients(client: ApiClient, **params: Any) -> List[Dict[str, Any]]:
    return extract_array(client.get(ApiEndpoints.patients(get_tenant_id(client)), params=params))


def get_patient(client: ApiClient, patient_id: str) -> Dict[str, Any]:
    return client.get(ApiEndpoints.patient_detail(get_tenant_id(client), patient_id)) or {}


def create_patient(client: ApiClient, data: Dict[str, Any]) -> Dict[str, Any]:
    return client.post(ApiEndpoints.patients(get_tenant_id(client)), data) or {}


def update_patient(client: ApiClient, patient_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return client.patch(ApiEndpoints.patient_detail(get_tenant_id(client), patient_id), data) or {}


def delete_patient(client: ApiClient, patient_id: str) -> None:
    client.delete(ApiEndpoints.patient_detail(get_tenant_id(client), patient_id))


# =============================================================================
# APPOINTMENTS
# =============================================================================


def list_appointments(client: ApiClient, **params: Any) -> List[Dict[str, Any]]:
    """List appointments; ``from``/``to`` filters are passed as from_/to."""
    if "from_" in params:
        params["from"] = params.pop("from_")
    raw = client.get(ApiEndpoints.appointments(get_tenant_id(client)), params=params)
    return extract_array(raw)


def get_appointment(client: ApiClient, appointment_id: str) -> Dict[str, Any]:
    return client.get(ApiEndpoints.appointment_detail(get_tenant_id(client), appointment_id)) or {}


def create_appointment(client: ApiClient, data: Dict[str, Any]) -> Dict[str, Any]:
    return client.post(ApiEndpoints.appointments(get_tenant_id(client)), data) or {}


def update_appointment(
    client: ApiClient, appointment_id: str, data: Dict[str, Any]
) -> Dict[str, Any]:
    path = ApiEndpoints.appointment_detail(get_tenant_id(client), appointment_id)
    return client.patch(path, data) or {}


def cancel_appointment(
    client: ApiClient, appointment_id: str, reason: Optional[str] = None
) -> Dict[str, Any]:
    path = ApiEndpoints.appointment_cancel(get_tenant_id(client), appointment_id)
    return client.post(path, {"reason": reason or DEFAULT_CANCEL_REASON}) or {}


# =============================================================================
# CLINICAL NOTES & SESSION PLANS
# =============================================================================


def list_clinical_notes(client: ApiClient, **params: Any) -> List[Dict[str, Any]]:
    raw = client.get(ApiEndpoints.clinical_notes(get_tenant_id(client)), params=params)
    return extract_array(raw)


def create_clinical_note(client: ApiClient, data: Dict[str, Any]) -> Dict[str, Any]:
    return client.post(ApiEndpoints.clinical_notes(get_tenant_id(client)), data) or {}


def update_clinical_note(client: ApiClient, note_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    path = ApiEndpoints.clinical_note_detail(get_tenant_id(client), note_id)
    return client.patch(path, data) or {}


def delete_clinical_note(client: ApiClient, note_id: str) -> None:
    client.delete(ApiEndpoints.clinical_note_detail(get_tenant_id(client), note_id))


def get_session_plan(client: ApiClient, patient_id: str) -> Optional[Dict[str, Any]]:
    """Session plan of a patient, None when the patient has none yet."""
    try:
        return client.get(ApiEndpoints.session_plan_by_patient(get_tenant_id(client), patient_id))
    except ApiError as e:
        if e.status_code == 404:
            return None
        raise


def save_session_plan(
    client: ApiClient, patient_id: str, data: Dict[str, Any], exists: bool
) -> Dict[str, Any]:
    """Create the plan, or update it when the patient already has one."""
    tenant_id = get_tenant_id(client)
    if exists:
        return client.patch(ApiEndpoints.session_plan_by_patient(tenant_id, patient_id), data) or {}
    return client.post(ApiEndpoints.session_plans(tenant_id), {**data, "patientId": patient_id}) or {}


def delete_session_plan(client: ApiClient, patient_id: str) -> None:
    client.delete(ApiEndpoints.session_plan_by_patient(get_tenant_id(client), patient_id))


# =============================================================================
# TASKS
# =============================================================================


def list_tasks(client: ApiClient, **params: Any) -> List[Dict[str, Any]]:
    return extract_array(client.get(ApiEndpoints.tasks(get_tenant_id(client)), params=params))


def create_task(client: ApiClient, data: Dict[str, Any]) -> Dict[str, Any]:
    return client.post(ApiEndpoints.tasks(get_tenant_id(client)), data) or {}


def update_task(client: ApiClient, task_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return client.patch(ApiEndpoints.task_detail(get_tenant_id(client), task_id), data) or {}


def complete_task(client: ApiClient, task_id: str) -> Dict[str, Any]:
    return update_task(
        client,
        task_id,
        {"status": TaskStatus.COMPLETED.value, "completedAt": _utc_now_iso()},
    )


def delete_task(client: ApiClient, task_id: str) -> None:
    client.delete(ApiEndpoints.task_detail(get_tenant_id(client), task_id))


# =============================================================================
# NOTIFICATIONS
# =============================================================================


def list_notifications(client: ApiClient, unread_only: bool = False) -> List[Dict[str, Any]]:
    params = {"unreadOnly": "true"} if unread_only else None
    raw = client.get(ApiEndpoints.notifications(get_tenant_id(client)), params=params)
    return extract_array(raw)


def mark_notification_read(client: ApiClient, notification_id: str) -> None:
    client.post(ApiEndpoints.notification_read(get_tenant_id(client), notification_id))


def mark_all_notifications_read(client: ApiClient) -> None:
    client.post(ApiEndpoints.notifications_read_all(get_tenant_id(client)))


# =============================================================================
# SUBSCRIPTION
# =============================================================================


def get_subscription(client: ApiClient) -> Subscription:
    """Current subscription; the backend may wrap it as {subscription, tenant}."""
    raw = client.get(ApiEndpoints.subscription(get_tenant_id(client))) or {}
    if isinstance(raw, dict) and raw.get("subscription"):
        raw = raw["subscription"]
    return normalize_subscription(raw)


def get_usage(client: ApiClient, period: Optional[str] = None) -> UsageMetrics:
    tenant_id = get_tenant_id(client)
    params = {"period": period} if period else None
    raw = client.get(ApiEndpoints.subscription_usage(tenant_id), params=params)
    return normalize_usage(raw, tenant_id)


def upgrade_subscription(client: ApiClient, request: Dict[str, Any]) -> Dict[str, Any]:
    logger.info(f"Upgrading subscription: {request}")
    path = ApiEndpoints.subscription_upgrade(get_tenant_id(client))
    return client.post(path, upgrade_payload(request)) or {}


def downgrade_subscription(client: ApiClient, request: Dict[str, Any]) -> Dict[str, Any]:
    logger.info(f"Downgrading subscription: {request}")
    path = ApiEndpoints.subscription_downgrade(get_tenant_id(client))
    return client.post(path, downgrade_payload(request)) or {}


# =============================================================================
# STORAGE
# =============================================================================


def list_storage_files(client: ApiClient, **params: Any) -> List[Dict[str, Any]]:
    raw = client.get(ApiEndpoints.storage_files(get_tenant_id(client)), params=params)
    return extract_array(raw)


def get_storage_breakdown(client: ApiClient) -> Dict[str, float]:
    raw = client.get(ApiEndpoints.storage_breakdown(get_tenant_id(client))) or {}
    return {key: raw.get(key, 0) for key in ("total", "attachments", "avatars", "exports")}


def upload_file(
    client: ApiClient,
    file_name: str,
    content: bytes,
    content_type: str,
    category: str,
    related_to: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Upload a file to tenant storage.

    Raises:
        ApiError: With a storage limit message when the backend answers 413
    """
    try:
        return client.upload(
            ApiEndpoints.storage_upload(get_tenant_id(client)),
            file_name,
            content,
            content_type,
            metadata={"category": category, "relatedTo": related_to},
        )
    except ApiError as e:
        if e.status_code == 413:
            raise ApiError(
                STORAGE_LIMIT_MESSAGE,
                code=e.code or "STORAGE_LIMIT_REACHED",
                details=e.details,
                status_code=413,
            ) from e
        raise


def delete_file(client: ApiClient, file_id: str) -> None:
    client.delete(ApiEndpoints.storage_file(get_tenant_id(client), file_id))


# =============================================================================
# AUDIT LOGS
# =============================================================================


def list_audit_logs(client: ApiClient, **params: Any) -> List[Dict[str, Any]]:
    if "from_" in params:
        params["from"] = params.pop("from_")
    raw = client.get(ApiEndpoints.audit_logs(get_tenant_id(client)), params=params)
    return extract_array(raw)


def get_entity_audit_logs(client: ApiClient, entity: str, entity_id: str) -> List[Dict[str, Any]]:
    raw = client.get(ApiEndpoints.audit_log_entity(get_tenant_id(client), entity, entity_id))
    return extract_array(raw)
