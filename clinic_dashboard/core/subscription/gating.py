# clinic_dashboard/core/subscription/gating.py
"""
Tier gating for guarded actions.

Each ``check_*`` function answers whether an action may proceed and, when it
may not, carries the upgrade prompt the page should show instead. The pages
render prompts with ``ui.components.render_upgrade_prompt``.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from clinic_dashboard.core.subscription.guards import (
    can_add_patient,
    can_add_psychologist,
    can_create_records,
    can_upload_file,
    get_plan_display_name,
    get_remaining_patients,
    get_remaining_seats,
    get_remaining_storage_gb,
    is_feature_available,
)
from clinic_dashboard.core.subscription.models import (
    PlanTier,
    Subscription,
    UsageMetrics,
    UserRole,
)
from clinic_dashboard.utils.config import ERROR_MESSAGES
from clinic_dashboard.utils.logging_config import get_logger

logger = get_logger(__name__)

# Upgrade reasons passed to the subscription page
REASON_SEATS = "seats"
REASON_PATIENTS = "patients"
REASON_STORAGE = "storage"
REASON_FEATURE = "feature"

PRO_HIGHLIGHTS = [
    "Up to 15 psychologists",
    "500 patients",
    "50 GB storage",
    "Web push notifications",
    "Advanced analytics",
]

PRO_STARTING_PRICE = "€79/month"

FEATURE_BENEFITS = {
    "clinical_notes": [
        "Record sessions securely",
        "Role-based restricted access",
        "Complete treatment history",
        "HIPAA-compliant storage",
    ],
    "tasks": [
        "Assign tasks to psychologists",
        "Due dates and reminders",
        "Progress tracking",
        "Prioritised to-do lists",
    ],
    "attachments": [
        "Attach documents to patients",
        "Tests and evaluations",
        "Reports and certificates",
        "Up to 25 MB per file",
    ],
}

DEFAULT_FEATURE_BENEFITS = [
    "Advanced professional tools",
    "Better team efficiency",
    "Standards compliance",
    "Priority support",
]

FEATURE_NAMES = {
    "clinical_notes": "Clinical Notes",
    "tasks": "Tasks",
    "attachments": "Attachments",
    "session_plans": "Session Plans",
    "advanced_analytics": "Advanced Analytics",
    "custom_reports": "Custom Reports",
    "data_export": "Data Export",
    "web_push": "Web Push",
    "video_integration": "Video Consultations",
    "google_calendar_sync": "Calendar Sync",
    "audit_logs": "Audit Logs",
    "api_access": "API Access",
    "custom_branding": "Custom Branding",
    "sso": "Single Sign-On",
    "mfa": "Multi-Factor Authentication",
}


@dataclass
class PromptAction:
    """A button on an upgrade prompt. ``target`` is a page key, None closes the prompt."""

    label: str
    target: Optional[str] = None
    reason: Optional[str] = None
    primary: bool = False


@dataclass
class UpgradePrompt:
    title: str
    message: str
    reason: str
    severity: str = "warning"
    benefits: List[str] = field(default_factory=list)
    extra_title: Optional[str] = None
    extras: List[str] = field(default_factory=list)
    price_note: Optional[str] = None
    actions: List[PromptAction] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LimitCheck:
    """
    Outcome of a guarded-action check.

    Attributes:
        allowed: Whether the action may proceed
        reason: Short machine-readable reason when blocked
        remaining: Remaining capacity (seats, patients or GB)
        prompt: Upgrade prompt to show when blocked
    """

    allowed: bool
    reason: Optional[str] = None
    remaining: float = 0
    prompt: Optional[UpgradePrompt] = None


def _current_tier(subscription: Optional[Subscription]) -> PlanTier:
    return subscription.tier if subscription else PlanTier.BASIC


def _read_only_check() -> LimitCheck:
    return LimitCheck(
        allowed=False,
        reason="read_only",
        prompt=UpgradePrompt(
            title="Subscription inactive",
            message=ERROR_MESSAGES["read_only"],
            reason="status",
            severity="error",
            actions=[
                PromptAction("Close"),
                PromptAction("Manage Subscription", target="subscription", primary=True),
            ],
        ),
    )


# =============================================================================
# PROMPTS
# =============================================================================


def seat_limit_prompt(subscription: Optional[Subscription]) -> UpgradePrompt:
    tier = _current_tier(subscription)
    limit = (subscription.plan.limits.max_psychologists if subscription else 0) or 1
    plural = "s" if limit > 1 else ""

    prompt = UpgradePrompt(
        title="Psychologist Limit Reached",
        message=(
            f"You have reached the limit of your {get_plan_display_name(tier)} plan: "
            f"{limit} psychologist{plural}."
        ),
        reason=REASON_SEATS,
        actions=[PromptAction("Cancel")],
        details={"limit": limit},
    )

    if tier == PlanTier.BASIC:
        prompt.message += " Upgrade to the PRO plan to invite more psychologists."
        prompt.extra_title = "PRO plan includes:"
        prompt.extras = [
            "Up to 15 psychologists",
            "Unlimited clinical notes",
            "Task management",
            "500 patients",
            "50 GB storage",
        ]
        prompt.price_note = "€79/month for 2 psychologists (+€40/month per additional psychologist)"
        prompt.actions += [
            PromptAction("View Plans", target="subscription"),
            PromptAction("Upgrade to PRO", target="subscription", reason=REASON_SEATS, primary=True),
        ]
    elif tier == PlanTier.PROFESSIONAL:
        prompt.message += (
            " To add more psychologists, contact our team for a custom plan."
        )
        prompt.actions.append(
            PromptAction("Contact Sales", target="contact", primary=True)
        )

    return prompt


def patient_limit_prompt(
    subscription: Optional[Subscription], usage: Optional[UsageMetrics]
) -> UpgradePrompt:
    tier = _current_tier(subscription)
    limit = (usage.patients.limit if usage else 0) or 50
    active = usage.patients.active if usage else 0

    prompt = UpgradePrompt(
        title="Patient Limit Reached",
        message=(
            f"You have reached the limit of {limit} active patients "
            f"on your {get_plan_display_name(tier)} plan."
        ),
        reason=REASON_PATIENTS,
        severity="error",
        benefits=["Archive inactive patients to free up space"],
        actions=[
            PromptAction("Cancel"),
            PromptAction("Manage Patients", target="patients"),
        ],
        details={"limit": limit, "active": active},
    )

    if tier == PlanTier.BASIC:
        prompt.extra_title = "Upgrade to PRO: raise your limit to 500 patients"
        prompt.extras = ["Unlimited clinical notes", "50 GB storage", "Task management"]
        prompt.price_note = f"From {PRO_STARTING_PRICE}"
        prompt.actions.append(
            PromptAction("Upgrade to PRO", target="subscription", reason=REASON_PATIENTS, primary=True)
        )
    elif tier == PlanTier.PROFESSIONAL:
        prompt.extra_title = "Custom plan: unlimited patients and enterprise features"
        prompt.actions.append(PromptAction("Contact Sales", target="contact", primary=True))

    return prompt


def storage_limit_prompt(
    subscription: Optional[Subscription],
    usage: Optional[UsageMetrics],
    file_name: Optional[str] = None,
    file_size_bytes: Optional[int] = None,
) -> UpgradePrompt:
    tier = _current_tier(subscription)
    used_gb = (usage.storage.used_gb if usage else 0) or 0
    limit_gb = (usage.storage.limit_gb if usage else 0) or 2
    remaining_gb = max(0.0, limit_gb - used_gb)

    message = f"{used_gb:.2f} GB of {limit_gb} GB used. Available: {remaining_gb:.2f} GB."
    if file_name:
        size_note = ""
        if file_size_bytes:
            size_note = f" ({file_size_bytes / (1024 * 1024):.1f} MB)"
        message = f'Cannot upload "{file_name}"{size_note}. ' + message

    prompt = UpgradePrompt(
        title="Storage Limit Exceeded",
        message=message,
        reason=REASON_STORAGE,
        benefits=["Review and delete files you no longer need"],
        actions=[
            PromptAction("Cancel"),
            PromptAction("Manage Files", target="storage"),
        ],
        details={
            "used_gb": used_gb,
            "limit_gb": limit_gb,
            "remaining_gb": remaining_gb,
            "percent": min(used_gb / limit_gb * 100, 100) if limit_gb else 0,
            "file_name": file_name,
            "file_size": file_size_bytes,
        },
    )

    if tier == PlanTier.BASIC:
        prompt.extra_title = "Upgrade to PRO: increase your storage to 50 GB"
        prompt.extras = ["25x more space"]
        prompt.actions.append(
            PromptAction("Upgrade to PRO", target="subscription", reason=REASON_STORAGE, primary=True)
        )
    elif tier == PlanTier.PROFESSIONAL:
        prompt.extra_title = "Custom plan: storage sized to your clinic"
        prompt.actions.append(PromptAction("Contact Sales", target="contact", primary=True))

    return prompt


def feature_locked_prompt(
    subscription: Optional[Subscription],
    feature: str,
    description: Optional[str] = None,
    benefits: Optional[List[str]] = None,
) -> UpgradePrompt:
    """
    Build the prompt for a feature the current plan does not include.

    Args:
        subscription: Current subscription (None is treated as Basic)
        feature: FeatureFlags attribute name
        description: Optional override of the default message
        benefits: Optional override of the default benefit list
    """
    name = FEATURE_NAMES.get(feature, feature.replace("_", " ").title())
    prompt = UpgradePrompt(
        title=f"PRO Feature: {name}",
        message=description or f"{name} is available on our PRO plan.",
        reason=REASON_FEATURE,
        severity="info",
        benefits=benefits or FEATURE_BENEFITS.get(feature, DEFAULT_FEATURE_BENEFITS),
        actions=[
            PromptAction("Later"),
            PromptAction("View Plans", target="subscription"),
            PromptAction("Upgrade Now", target="subscription", reason=REASON_FEATURE, primary=True),
        ],
        details={"feature": feature, "feature_name": name},
    )

    if _current_tier(subscription) == PlanTier.BASIC:
        prompt.extra_title = "The PRO plan also includes:"
        prompt.extras = list(PRO_HIGHLIGHTS)
        prompt.price_note = f"From {PRO_STARTING_PRICE}"

    return prompt


# =============================================================================
# CHECKS
# =============================================================================


def check_invite_user(
    subscription: Optional[Subscription],
    usage: Optional[UsageMetrics],
    role: str = UserRole.PSYCHOLOGIST.value,
) -> LimitCheck:
    """
    Check whether a user with the given role can be invited.

    Every invitation needs a subscription in trial or active. Only
    psychologists take a billable seat, so the seat limit applies to them alone.
    """
    if subscription is None or usage is None:
        logger.debug("Invite check without subscription/usage data")
        return LimitCheck(allowed=False, reason="unavailable", prompt=seat_limit_prompt(subscription))

    if not can_create_records(subscription):
        return _read_only_check()

    remaining = get_remaining_seats(usage)
    if role != UserRole.PSYCHOLOGIST.value or can_add_psychologist(usage):
        return LimitCheck(allowed=True, remaining=remaining)

    logger.info(f"Seat limit reached ({usage.psychologists.active}/{usage.psychologists.limit})")
    return LimitCheck(
        allowed=False, reason=REASON_SEATS, remaining=remaining, prompt=seat_limit_prompt(subscription)
    )


def check_create_patient(
    subscription: Optional[Subscription], usage: Optional[UsageMetrics]
) -> LimitCheck:
    """Check whether another active patient can be created."""
    if subscription is None or usage is None:
        logger.debug("Patient check without subscription/usage data")
        return LimitCheck(
            allowed=False, reason="unavailable", prompt=patient_limit_prompt(subscription, usage)
        )

    if not can_create_records(subscription):
        return _read_only_check()

    remaining = get_remaining_patients(usage)
    if can_add_patient(usage):
        return LimitCheck(allowed=True, remaining=remaining)

    logger.info(f"Patient limit reached ({usage.patients.active}/{usage.patients.limit})")
    return LimitCheck(
        allowed=False,
        reason=REASON_PATIENTS,
        remaining=remaining,
        prompt=patient_limit_prompt(subscription, usage),
    )


def check_upload_file(
    subscription: Optional[Subscription],
    usage: Optional[UsageMetrics],
    file_name: str,
    file_size_bytes: int,
) -> LimitCheck:
    """
    Check whether a file fits in the remaining storage quota.

    Without subscription or usage data the upload is refused silently
    (no prompt), since there is nothing meaningful to show.
    """
    if subscription is None or usage is None:
        return LimitCheck(allowed=False, reason="unavailable")

    if not can_create_records(subscription):
        return _read_only_check()

    remaining = get_remaining_storage_gb(usage)
    # Size in GiB, scaled to the 1e9-byte units the guard expects
    size_gb = file_size_bytes / (1024 ** 3)
    if can_upload_file(usage, size_gb * 1e9):
        return LimitCheck(allowed=True, remaining=remaining)

    logger.info(f"Upload of {file_name} ({file_size_bytes} bytes) exceeds storage quota")
    return LimitCheck(
        allowed=False,
        reason=REASON_STORAGE,
        remaining=remaining,
        prompt=storage_limit_prompt(subscription, usage, file_name, file_size_bytes),
    )


def check_feature(subscription: Optional[Subscription], feature: str) -> LimitCheck:
    """Check whether the current plan includes ``feature``."""
    if is_feature_available(feature, subscription):
        return LimitCheck(allowed=True)
    return LimitCheck(
        allowed=False, reason=REASON_FEATURE, prompt=feature_locked_prompt(subscription, feature)
    )


def check_and_proceed(
    check: LimitCheck,
    on_success: Callable[[], Any],
    on_blocked: Optional[Callable[[Optional[UpgradePrompt]], Any]] = None,
) -> bool:
    """
    Run ``on_success`` when the check allows the action, otherwise ``on_blocked``.

    Returns:
        True if the action ran
    """
    if check.allowed:
        on_success()
        return True

    if on_blocked is not None and check.prompt is not None:
        on_blocked(check.prompt)
    return False
