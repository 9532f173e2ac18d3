# clinic_dashboard/core/subscription/guards.py
"""
Role, subscription and limit guards.

Pure predicates over users, subscriptions and usage metrics. Pages call these
before rendering an action; the gating module combines them into upgrade
prompts.
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from clinic_dashboard.core.subscription.models import (
    AppointmentStatus,
    PlanTier,
    Subscription,
    SubscriptionStatus,
    TaskStatus,
    UsageMetrics,
    UserRole,
)
from clinic_dashboard.utils.config import USAGE_WARNING_THRESHOLD

TIER_ORDER = {
    PlanTier.TRIAL: 0,
    PlanTier.BASIC: 1,
    PlanTier.PROFESSIONAL: 2,
    PlanTier.ENTERPRISE: 3,
}

PLAN_DISPLAY_NAMES = {
    PlanTier.TRIAL: "Trial",
    PlanTier.BASIC: "Basic",
    PlanTier.PROFESSIONAL: "Professional",
    PlanTier.ENTERPRISE: "Enterprise",
}

STATUS_DISPLAY_NAMES = {
    SubscriptionStatus.TRIAL: "Trial",
    SubscriptionStatus.ACTIVE: "Active",
    SubscriptionStatus.PAST_DUE: "Payment Pending",
    SubscriptionStatus.SUSPENDED: "Suspended",
    SubscriptionStatus.CANCELED: "Canceled",
    SubscriptionStatus.ARCHIVED: "Archived",
    SubscriptionStatus.DELETED: "Deleted",
}

_CREATE_ALLOWED = (SubscriptionStatus.TRIAL, SubscriptionStatus.ACTIVE)
_DEGRADED = (SubscriptionStatus.PAST_DUE, SubscriptionStatus.SUSPENDED)


# =============================================================================
# ROLE GUARDS
# =============================================================================


def _role(user: Optional[Dict[str, Any]]) -> Optional[str]:
    if not user:
        return None
    role = user.get("role")
    return role.value if isinstance(role, UserRole) else role


def is_user_role(value: str) -> bool:
    return value in {role.value for role in UserRole}


def can_access_clinical_notes(user: Optional[Dict[str, Any]]) -> bool:
    return _role(user) in (UserRole.TENANT_ADMIN.value, UserRole.PSYCHOLOGIST.value)


def can_manage_users(user: Optional[Dict[str, Any]]) -> bool:
    return _role(user) == UserRole.TENANT_ADMIN.value


def can_manage_subscription(user: Optional[Dict[str, Any]]) -> bool:
    return _role(user) == UserRole.TENANT_ADMIN.value


def can_delete_patient(user: Optional[Dict[str, Any]]) -> bool:
    return _role(user) == UserRole.TENANT_ADMIN.value


def can_edit_appointment(user: Optional[Dict[str, Any]]) -> bool:
    """Everyone except assistants may edit appointments."""
    role = _role(user)
    return role is not None and role != UserRole.ASSISTANT.value


# =============================================================================
# RECORD GUARDS
# =============================================================================


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime.

    Naive values are taken as UTC. Returns None for empty or invalid input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_active_appointment(status: str) -> bool:
    return status in (AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value)


def is_overdue_task(task: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    """
    Check whether a task is past its due date and not completed.

    Args:
        task: Task dict with ``dueDate`` and ``status``
        now: Reference time (defaults to current UTC time)

    Returns:
        True if overdue
    """
    due = parse_datetime(task.get("dueDate"))
    if due is None or task.get("status") == TaskStatus.COMPLETED.value:
        return False
    now = now or datetime.now(timezone.utc)
    return due < now


# =============================================================================
# SUBSCRIPTION & FEATURE FLAGS
# =============================================================================


def is_feature_available(feature: str, subscription: Optional[Subscription]) -> bool:
    """
    Check a plan feature flag.

    Boolean flags must be exactly True; ``api_access`` counts as available
    only at the "full" level.
    """
    if subscription is None:
        return False
    value = getattr(subscription.plan.features, feature, None)
    return value is True or value == "full"


def is_subscription_active(subscription: Subscription) -> bool:
    return subscription.status in _CREATE_ALLOWED


def is_subscription_degraded(subscription: Subscription) -> bool:
    return subscription.status in _DEGRADED


def can_create_records(subscription: Subscription) -> bool:
    """Records can be created while in trial or active; never once degraded or closed."""
    return subscription.status in _CREATE_ALLOWED


def subscription_status_flags(subscription: Optional[Subscription]) -> Dict[str, bool]:
    """Convenience flags for pages that branch on the subscription state."""
    if subscription is None:
        return {
            "is_active": False,
            "is_trial": False,
            "is_past_due": False,
            "is_suspended": False,
            "is_canceled": False,
            "can_create_records": False,
        }

    status = subscription.status
    return {
        "is_active": status == SubscriptionStatus.ACTIVE,
        "is_trial": status == SubscriptionStatus.TRIAL,
        "is_past_due": status == SubscriptionStatus.PAST_DUE,
        "is_suspended": status == SubscriptionStatus.SUSPENDED,
        "is_canceled": status == SubscriptionStatus.CANCELED,
        "can_create_records": can_create_records(subscription),
    }


# =============================================================================
# LIMIT CHECKERS
# =============================================================================


def can_add_psychologist(usage: UsageMetrics) -> bool:
    seats = usage.psychologists
    if seats.limit is None:
        return True
    return seats.active < seats.limit


def can_add_patient(usage: UsageMetrics) -> bool:
    return usage.patients.active < usage.patients.limit


def can_upload_file(usage: UsageMetrics, file_size_bytes: int) -> bool:
    """Storage quotas are decimal GB (1e9 bytes)."""
    new_usage_gb = usage.storage.used_gb + (file_size_bytes / 1e9)
    return new_usage_gb <= usage.storage.limit_gb


def is_approaching_limit(
    used: float, limit: float, threshold: float = USAGE_WARNING_THRESHOLD
) -> bool:
    """
    Check whether usage has reached ``threshold`` percent of the limit.

    A zero limit counts as approaching as soon as anything is used.
    """
    if limit <= 0:
        return used > 0
    return (used / limit) * 100 >= threshold


def has_exceeded_limit(used: float, limit: float) -> bool:
    return used >= limit


def get_remaining_seats(usage: UsageMetrics) -> float:
    if usage.psychologists.limit is None:
        return math.inf
    return max(0, usage.psychologists.limit - usage.psychologists.active)


def get_remaining_patients(usage: UsageMetrics) -> int:
    return max(0, usage.patients.limit - usage.patients.active)


def get_remaining_storage_gb(usage: UsageMetrics) -> float:
    return max(0.0, usage.storage.limit_gb - usage.storage.used_gb)


# =============================================================================
# PLAN COMPARISON
# =============================================================================


def can_upgrade_to(current_tier: PlanTier, target_tier: PlanTier) -> bool:
    return TIER_ORDER[PlanTier(target_tier)] > TIER_ORDER[PlanTier(current_tier)]


def can_downgrade_to(current_tier: PlanTier, target_tier: PlanTier) -> bool:
    return TIER_ORDER[PlanTier(target_tier)] < TIER_ORDER[PlanTier(current_tier)]


def can_upgrade(subscription: Optional[Subscription]) -> bool:
    """Any tier below Enterprise can upgrade."""
    if subscription is None:
        return False
    return subscription.tier in (PlanTier.TRIAL, PlanTier.BASIC, PlanTier.PROFESSIONAL)


def can_add_seats(subscription: Optional[Subscription], usage: Optional[UsageMetrics]) -> bool:
    """Extra psychologist seats are only sold on the Professional plan."""
    if subscription is None or usage is None:
        return False
    if subscription.tier != PlanTier.PROFESSIONAL:
        return False
    return usage.psychologists.active < subscription.plan.limits.max_psychologists


def get_plan_display_name(tier: PlanTier) -> str:
    return PLAN_DISPLAY_NAMES[PlanTier(tier)]


def get_status_display_name(status: SubscriptionStatus) -> str:
    return STATUS_DISPLAY_NAMES[SubscriptionStatus(status)]


def get_status_color(status: Any) -> str:
    """Badge colour for a subscription status: success, warning, destructive or secondary."""
    try:
        status = SubscriptionStatus(status)
    except ValueError:
        return "secondary"

    if status in (SubscriptionStatus.TRIAL, SubscriptionStatus.ACTIVE):
        return "success"
    if status == SubscriptionStatus.PAST_DUE:
        return "warning"
    return "destructive"
