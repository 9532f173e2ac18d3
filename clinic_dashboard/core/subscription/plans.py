# clinic_dashboard/core/subscription/plans.py
"""
Plan catalog and plan-change requests.

The catalog drives the comparison cards on the subscription page; the request
builders produce the bodies for the upgrade and downgrade endpoints.
"""

from typing import Any, Dict, List, Optional, Tuple

from clinic_dashboard.core.subscription.guards import can_upgrade_to
from clinic_dashboard.core.subscription.models import FeatureFlags, PlanTier
from clinic_dashboard.utils.config import ERROR_MESSAGES

CUSTOM_PRICE = "Custom"

# Comparison rows, in display order
PLAN_FEATURE_ROWS = [
    "Patient management",
    "Scheduling and calendar",
    "Basic statistics",
    "Clinical notes",
    "Advanced analytics",
    "Video integrations",
    "Push notifications",
    "Custom branding",
    "API access",
    "SSO / MFA",
]


def _included(count: int) -> Dict[str, bool]:
    return {row: i < count for i, row in enumerate(PLAN_FEATURE_ROWS)}


PLAN_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "plan_type": PlanTier.BASIC,
        "name": "Basic",
        "description": "For individual practices getting started.",
        "price_monthly": "$299",
        "price_yearly": "$249",
        "highlighted": False,
        "limits": {"psychologists": "1", "patients": "50", "storage": "2 GB"},
        "features": _included(3),
    },
    {
        "plan_type": PlanTier.PROFESSIONAL,
        "name": "Professional",
        "description": "For growing clinics with a team of psychologists.",
        "price_monthly": "$799",
        "price_yearly": "$649",
        "highlighted": True,
        "limits": {"psychologists": "Up to 15", "patients": "500", "storage": "50 GB"},
        "features": _included(7),
    },
    {
        "plan_type": PlanTier.ENTERPRISE,
        "name": "Enterprise",
        "description": "For large organisations with advanced needs.",
        "price_monthly": CUSTOM_PRICE,
        "price_yearly": CUSTOM_PRICE,
        "highlighted": False,
        "limits": {"psychologists": "Unlimited", "patients": "Unlimited", "storage": "500 GB"},
        "features": _included(len(PLAN_FEATURE_ROWS)),
    },
]

# Labels for the "included in your plan" list
INCLUDED_FEATURE_LABELS = [
    ("dashboard", "Dashboard"),
    ("calendar", "Calendar"),
    ("patients", "Patients"),
    ("appointments", "Appointments"),
    ("clinical_notes", "Clinical notes"),
    ("tasks", "Tasks"),
    ("attachments", "Attachments"),
    ("session_plans", "Session plans"),
    ("email_notifications", "Email"),
    ("web_push", "Push"),
    ("advanced_analytics", "Analytics"),
    ("data_export", "Data export"),
    ("video_integration", "Video"),
    ("custom_branding", "Custom branding"),
    ("api_access", "API"),
    ("mfa", "MFA"),
    ("sso", "SSO"),
    ("audit_logs", "Audit logs"),
]

# Plan tier -> backend plan code
UPGRADE_TARGETS = {PlanTier.PROFESSIONAL: "PRO", PlanTier.ENTERPRISE: "CUSTOM"}


def get_plan_definition(plan_type: PlanTier) -> Optional[Dict[str, Any]]:
    for plan in PLAN_DEFINITIONS:
        if plan["plan_type"] == plan_type:
            return plan
    return None


def plan_price(plan: Dict[str, Any], annual: bool) -> str:
    price = plan["price_yearly"] if annual else plan["price_monthly"]
    if price == CUSTOM_PRICE:
        return price
    return f"{price}/month"


def plan_card_action(plan_type: PlanTier, current_plan_type: PlanTier) -> Tuple[str, str]:
    """
    Call-to-action of a plan card.

    Returns:
        Tuple of (action, label): current, contact_sales, upgrade or change
    """
    if plan_type == current_plan_type:
        return "current", "Current Plan"
    if plan_type == PlanTier.ENTERPRISE:
        return "contact_sales", "Contact Sales"
    if can_upgrade_to(current_plan_type, plan_type):
        return "upgrade", "Upgrade Plan"
    return "change", "Change Plan"


def included_features(features: FeatureFlags) -> List[str]:
    """Labels of the features enabled on a plan; API counts at any access level."""
    labels = []
    for attr, label in INCLUDED_FEATURE_LABELS:
        value = getattr(features, attr)
        if value is True or value in ("full", "read"):
            labels.append(label)
    return labels


def build_upgrade_request(target: PlanTier, annual: bool = False) -> Dict[str, Any]:
    """
    Build the upgrade request for a target plan tier.

    Anything other than Professional is requested as a custom plan.
    """
    return {
        "target_tier": UPGRADE_TARGETS.get(PlanTier(target), "CUSTOM"),
        "billing_interval": "ANNUAL" if annual else "MONTHLY",
    }


def upgrade_payload(request: Dict[str, Any]) -> Dict[str, str]:
    """Body for the upgrade endpoint."""
    return {"newPlan": "CUSTOM" if request.get("target_tier") == "CUSTOM" else "PRO"}


def build_downgrade_request(
    target: PlanTier,
    data_loss_ack: bool,
    feature_loss_ack: bool,
    scheduled_for: str = "end_of_period",
) -> Tuple[bool, List[str], Dict[str, Any]]:
    """
    Build a downgrade request.

    Args:
        target: Target plan tier (Basic, otherwise the trial plan)
        data_loss_ack: User acknowledged possible data loss
        feature_loss_ack: User acknowledged losing features
        scheduled_for: "immediate" or "end_of_period"

    Returns:
        Tuple of (is_valid, errors, request)
    """
    errors = []
    if not (data_loss_ack and feature_loss_ack):
        errors.append(ERROR_MESSAGES["downgrade_acknowledgment"])
    if scheduled_for not in ("immediate", "end_of_period"):
        errors.append(f"Invalid downgrade schedule: {scheduled_for}")

    request = {
        "target_tier": "BASIC" if PlanTier(target) == PlanTier.BASIC else "TRIAL",
        "scheduled_for": scheduled_for,
        "acknowledgments": {"data_loss": data_loss_ack, "feature_loss": feature_loss_ack},
    }
    return len(errors) == 0, errors, request


def downgrade_payload(request: Dict[str, Any]) -> Dict[str, str]:
    """Body for the downgrade endpoint."""
    return {"newPlan": "BASIC" if request.get("target_tier") == "BASIC" else "TRIAL"}
