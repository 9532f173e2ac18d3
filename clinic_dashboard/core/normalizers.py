# clinic_dashboard/core/normalizers.py
"""
Normalisation of backend payloads into the shapes the dashboard works with.

The backend sends flat records (``planType``, ``featureX`` booleans, working
days lists, reminder strings such as ``"24h"``). The helpers here map them to
the typed subscription records and the settings dict used by the pages, and
build the reverse payload for settings updates.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from clinic_dashboard.core.subscription.models import (
    AppointmentActivity,
    CounterUsage,
    FeatureFlags,
    PatientUsage,
    Plan,
    PlanTier,
    ResourceLimits,
    SeatUsage,
    StorageUsage,
    Subscription,
    SubscriptionStatus,
    UsageMetrics,
)
from clinic_dashboard.utils.config import (
    DEFAULT_LOCALE,
    DEFAULT_REMINDER_MINUTES,
    DEFAULT_TIMEZONE,
    DEFAULT_WORKING_HOURS_END,
    DEFAULT_WORKING_HOURS_START,
    ERROR_MESSAGES,
    WEEKDAYS,
)
from clinic_dashboard.utils.logging_config import get_logger

logger = get_logger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# SUBSCRIPTION
# =============================================================================

_PLAN_TYPE_MAP = {
    "PRO": PlanTier.PROFESSIONAL,
    "CUSTOM": PlanTier.ENTERPRISE,
    "BASIC": PlanTier.BASIC,
}

_STATUS_MAP = {
    "TRIALING": SubscriptionStatus.TRIAL,
    "ACTIVE": SubscriptionStatus.ACTIVE,
    "PAST_DUE": SubscriptionStatus.PAST_DUE,
    "CANCELED": SubscriptionStatus.CANCELED,
    "INCOMPLETE": SubscriptionStatus.SUSPENDED,
    "UNPAID": SubscriptionStatus.SUSPENDED,
}

# Attribute -> backend flat flag that switches it on
_FLAT_FEATURE_SOURCES = {
    "clinical_notes": ("featureClinicalNotes", "clinicalNotes"),
    "tasks": ("featureTasks", "tasks"),
    "attachments": ("featureAttachments", "attachments"),
    "session_plans": ("featureTasks", "sessionPlans"),
    "web_push": ("featureWebPush", "webPush"),
    "sms_notifications": ("featureWhatsAppIntegration", "smsNotifications"),
    "advanced_analytics": ("featureAdvancedAnalytics", "advancedAnalytics"),
    "custom_reports": ("featureCustomReports", "customReports"),
    "data_export": ("featureCustomReports", "dataExport"),
    "google_calendar_sync": ("featureCalendarSync", "googleCalendarSync"),
    "video_integration": ("featureVideoConsultation", "videoIntegration"),
    "webhooks": ("featureAPIAccess", "webhooks"),
    "mfa": ("featureSSO", "mfa"),
    "sso": ("featureSSO", "sso"),
    "audit_logs": ("featureAdvancedAnalytics", "auditLogs"),
    "custom_branding": ("featureWhatsAppIntegration", "customBranding"),
}


def map_plan_type(api_plan: Optional[str]) -> PlanTier:
    """Map the backend plan code (PRO, CUSTOM, BASIC, ...) to a plan tier."""
    return _PLAN_TYPE_MAP.get(api_plan, PlanTier.TRIAL)


def map_subscription_status(api_status: Optional[str]) -> SubscriptionStatus:
    """Map the billing-provider status to a subscription status."""
    return _STATUS_MAP.get(api_status, SubscriptionStatus.ARCHIVED)


def default_feature_flags() -> FeatureFlags:
    return FeatureFlags()


def _flat_features(raw: Dict[str, Any]) -> FeatureFlags:
    nested = raw.get("features") or {}
    flags = default_feature_flags()

    for attr, (flat_key, nested_key) in _FLAT_FEATURE_SOURCES.items():
        setattr(flags, attr, bool(raw.get(flat_key)) or bool(nested.get(nested_key)))

    has_api = raw.get("featureAPIAccess") or nested.get("apiAccess")
    flags.api_access = "full" if has_api else "none"
    return flags


def normalize_subscription(raw: Optional[Dict[str, Any]]) -> Subscription:
    """
    Build a Subscription from either the dashboard shape or the backend's flat shape.

    Args:
        raw: Subscription payload

    Returns:
        Subscription record

    Raises:
        ValueError: If the payload is empty
    """
    if not raw:
        raise ValueError(ERROR_MESSAGES["subscription_missing"])

    # Already in dashboard shape
    if isinstance(raw.get("plan"), dict) and raw["plan"].get("limits"):
        return Subscription.from_dict(raw)

    plan_type = map_plan_type(raw.get("planType"))
    notifications_limit = raw.get("monthlyNotificationsLimit") or 0

    limits = ResourceLimits(
        max_psychologists=_value_or(raw.get("seatsPsychologistsMax"), 1),
        max_assistants=None,
        max_patients=_value_or(raw.get("maxActivePatients"), 10),
        storage_gb=_value_or(raw.get("storageGB"), 0),
        max_emails_per_month=notifications_limit,
        max_push_per_month=notifications_limit,
        max_sms_per_month=notifications_limit,
        max_api_requests_per_hour=None,
    )

    price_per_seat = float(raw.get("pricePerSeat") or 0)
    plan = Plan(
        id=f"plan-{plan_type.value.lower()}",
        plan_type=plan_type,
        name=plan_type.value,
        description=f"{plan_type.value} plan",
        base_price=round(float(raw.get("basePrice") or 0) * 100),
        currency="EUR",
        billing_interval="MONTHLY",
        limits=limits,
        features=_flat_features(raw),
        price_per_seat_monthly=round(price_per_seat * 100),
        price_per_seat_yearly=round(price_per_seat * 100 * 12),
    )

    now = _now_iso()
    return Subscription(
        id=raw.get("id", ""),
        tenant_id=raw.get("tenantId", ""),
        plan=plan,
        status=map_subscription_status(raw.get("status")),
        trial_ends_at=raw.get("trialEndsAt"),
        current_period_start=raw.get("currentPeriodStart") or raw.get("startDate") or now,
        current_period_end=raw.get("currentPeriodEnd") or raw.get("endDate") or now,
        canceled_at=raw.get("canceledAt"),
        cancel_at_period_end=bool(raw.get("cancelAt")),
        created_at=raw.get("createdAt") or now,
        updated_at=raw.get("updatedAt") or now,
    )


def _value_or(value: Any, default: Any) -> Any:
    return default if value is None else value


# =============================================================================
# USAGE
# =============================================================================


def normalize_usage(raw: Optional[Dict[str, Any]], tenant_id: str) -> UsageMetrics:
    """
    Build UsageMetrics from the usage endpoint payload.

    The endpoint answers ``{period, usage: {seats, patients, storage,
    notifications}, activity}``; a payload that already carries ``users``,
    ``patients`` and ``storage`` is read as the dashboard shape.
    """
    raw = raw or {}
    if raw.get("users") and raw.get("patients") and raw.get("storage"):
        return UsageMetrics.from_dict(raw)

    usage = raw.get("usage") or {}
    seats = usage.get("seats") or {}
    patients = usage.get("patients") or {}
    storage = usage.get("storage") or {}
    notifications = usage.get("notifications") or {}
    period = raw.get("period") or {}
    activity = raw.get("activity") or {}
    now = _now_iso()

    sent = notifications.get("sentThisMonth", 0)
    notif_limit = notifications.get("limit", 0)
    notif_pct = notifications.get("percentage", 0)

    return UsageMetrics(
        tenant_id=tenant_id,
        period_start=period.get("start", now),
        period_end=period.get("end", now),
        psychologists=SeatUsage(
            total=seats.get("used", 0),
            active=seats.get("used", 0),
            inactive=0,
            limit=seats.get("limit", 0),
            percent_used=seats.get("percentage", 0),
        ),
        patients=PatientUsage(
            total=patients.get("active", 0),
            active=patients.get("active", 0),
            archived=0,
            limit=patients.get("limit", 0),
            percent_used=patients.get("percentage", 0),
        ),
        storage=StorageUsage(
            used_gb=storage.get("usedGB", 0),
            limit_gb=storage.get("limitGB", 0),
            percent_used=storage.get("percentage", 0),
        ),
        email=CounterUsage(sent=sent, limit=notif_limit, percent_used=notif_pct),
        push=CounterUsage(sent=sent, limit=notif_limit, percent_used=notif_pct),
        sms=CounterUsage(sent=0, limit=notif_limit, percent_used=0),
        appointments=AppointmentActivity(total=activity.get("appointmentsThisMonth", 0)),
    )


# =============================================================================
# TENANT SETTINGS
# =============================================================================


def normalize_working_hours(raw: Optional[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Expand ``workingDays`` + start/end into a per-weekday schedule."""
    raw = raw or {}
    enabled_days = set(raw.get("workingDays") or [])
    start = raw.get("workingHoursStart") or DEFAULT_WORKING_HOURS_START
    end = raw.get("workingHoursEnd") or DEFAULT_WORKING_HOURS_END

    return {
        day: {
            "enabled": day.upper() in enabled_days,
            "start_time": start,
            "end_time": end,
        }
        for day in WEEKDAYS
    }


def parse_reminder_rule(value: Any) -> int:
    """
    Convert a reminder string such as ``"24h"`` or ``"30m"`` to minutes.

    Unrecognised values fall back to the default reminder offset.
    """
    text = str(value).strip().lower()
    try:
        if text.endswith("h"):
            return int(text[:-1]) * 60
        if text.endswith("m"):
            return int(text[:-1])
    except ValueError:
        logger.warning(f"Unparseable reminder rule: {value!r}")
    return DEFAULT_REMINDER_MINUTES


def format_reminder_rule(minutes_before: int) -> str:
    if minutes_before % 60 == 0:
        return f"{minutes_before // 60}h"
    return f"{minutes_before}m"


def _from_frontend_settings(raw: Dict[str, Any]) -> Dict[str, Any]:
    hours = raw.get("workingHours") or {}
    return {
        "working_hours": {
            day: {
                "enabled": bool(hours.get(day, {}).get("enabled")),
                "start_time": hours.get(day, {}).get("startTime", DEFAULT_WORKING_HOURS_START),
                "end_time": hours.get(day, {}).get("endTime", DEFAULT_WORKING_HOURS_END),
            }
            for day in WEEKDAYS
        },
        "default_session_duration": raw.get("defaultSessionDuration", 60),
        "reminder_rules": [
            {
                "id": rule.get("id", str(i + 1)),
                "type": rule.get("type", "PUSH"),
                "minutes_before": rule.get("minutesBefore", DEFAULT_REMINDER_MINUTES),
                "enabled": bool(rule.get("enabled")),
            }
            for i, rule in enumerate(raw.get("reminderRules") or [])
        ],
        "timezone": raw.get("timezone", DEFAULT_TIMEZONE),
        "locale": raw.get("locale", DEFAULT_LOCALE),
    }


def normalize_tenant_settings(raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Build the tenant settings dict used by the settings page.

    Returns:
        Dict with working_hours, default_session_duration, reminder_rules,
        timezone and locale
    """
    if not raw:
        return {
            "working_hours": normalize_working_hours(None),
            "default_session_duration": 60,
            "reminder_rules": [],
            "timezone": DEFAULT_TIMEZONE,
            "locale": DEFAULT_LOCALE,
        }

    if "workingHours" in raw:
        return _from_frontend_settings(raw)

    reminder_enabled = bool(raw.get("reminderEnabled"))
    reminder_rules = [
        {
            "id": str(i + 1),
            "type": "PUSH",
            "minutes_before": parse_reminder_rule(rule),
            "enabled": reminder_enabled,
        }
        for i, rule in enumerate(raw.get("reminderRules") or [])
    ]

    return {
        "working_hours": normalize_working_hours(raw),
        "default_session_duration": raw.get("defaultAppointmentDuration") or 60,
        "reminder_rules": reminder_rules,
        "timezone": raw.get("timezone") or DEFAULT_TIMEZONE,
        "locale": raw.get("locale") or DEFAULT_LOCALE,
    }


def build_tenant_settings_payload(settings: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build the PATCH body for tenant settings from a (partial) settings dict.

    The backend stores a single start/end pair, taken from the first enabled
    weekday (Monday first; Sunday when none is enabled).

    Args:
        settings: Partial settings dict in the shape of normalize_tenant_settings()

    Returns:
        Backend payload; keys for absent settings are omitted
    """
    payload: Dict[str, Any] = {}

    for key, api_key in (
        ("timezone", "timezone"),
        ("locale", "locale"),
        ("default_session_duration", "defaultAppointmentDuration"),
    ):
        if settings.get(key) is not None:
            payload[api_key] = settings[key]

    rules = settings.get("reminder_rules")
    if rules is not None:
        payload["reminderEnabled"] = any(rule.get("enabled") for rule in rules)
        payload["reminderRules"] = [
            format_reminder_rule(int(rule["minutes_before"])) for rule in rules
        ]

    working_hours = settings.get("working_hours")
    if working_hours:
        enabled = [day for day in WEEKDAYS if working_hours.get(day, {}).get("enabled")]
        first = working_hours.get(enabled[0] if enabled else "sunday") or {}
        payload["workingHoursStart"] = first.get("start_time") or DEFAULT_WORKING_HOURS_START
        payload["workingHoursEnd"] = first.get("end_time") or DEFAULT_WORKING_HOURS_END
        payload["workingDays"] = [day.upper() for day in enabled]

    return payload


# =============================================================================
# TENANTS, USERS, LISTS
# =============================================================================


def normalize_user(raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Fill user flags the backend may omit."""
    user = dict(raw or {})
    now = _now_iso()
    user.setdefault("isActive", True)
    user.setdefault("emailVerified", True)
    user.setdefault("createdAt", now)
    user.setdefault("updatedAt", now)
    return user


def normalize_tenant(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalise a tenant record.

    ``settings`` becomes the settings dict and ``subscription`` a Subscription
    (None when the tenant payload carries none).
    """
    tenant = dict(raw)
    tenant["settings"] = normalize_tenant_settings(raw.get("settings"))
    tenant["subscription"] = (
        normalize_subscription(raw["subscription"]) if raw.get("subscription") else None
    )
    return tenant


def build_tenant_create_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map the onboarding form (clinic + admin) to the tenant creation body."""
    return {
        "name": data.get("clinicName") or data.get("name"),
        "slug": data.get("slug"),
        "email": data.get("contactEmail") or data.get("email"),
        "phone": data.get("contactPhone") or data.get("phone"),
        "address": data.get("address"),
        "adminFirstName": data.get("firstName"),
        "adminLastName": data.get("lastName"),
        "adminEmail": data.get("email"),
        "adminPassword": data.get("password"),
    }


def extract_array(response: Any) -> List[Dict[str, Any]]:
    """
    Return the records of a list response.

    Args:
        response: Either a bare list or a paginated ``{"data": [...]}`` dict

    Returns:
        List of records (empty when nothing usable was returned)
    """
    if isinstance(response, list):
        return response
    if isinstance(response, dict):
        return response.get("data") or []
    return []
