# clinic_dashboard/core/subscription/usage.py
"""
Usage gauges: percentages, colour levels and warnings for quota cards.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from clinic_dashboard.core.subscription.guards import (
    get_remaining_patients,
    get_remaining_seats,
    get_remaining_storage_gb,
)
from clinic_dashboard.core.subscription.models import Subscription, UsageMetrics
from clinic_dashboard.utils.config import (
    STORAGE_CRITICAL_THRESHOLD,
    STORAGE_NEAR_LIMIT_THRESHOLD,
    USAGE_RED_THRESHOLD,
    USAGE_WARNING_THRESHOLD,
    USAGE_YELLOW_THRESHOLD,
)

LEVEL_COLORS = {
    "green": "#22c55e",
    "yellow": "#eab308",
    "orange": "#f97316",
    "red": "#ef4444",
}


@dataclass
class UsageGauge:
    """
    Display state of one quota card.

    Attributes:
        percentage: Usage in percent, capped at 100
        remaining: Capacity left, never negative
        level: green, yellow or red
        show_warning: Whether the warning box (and upgrade button) is shown
        headline: Warning headline, None when no warning
    """

    current: float
    limit: float
    percentage: float
    remaining: float
    level: str
    show_warning: bool
    headline: Optional[str]
    show_upgrade: bool
    upgrade_primary: bool

    @property
    def at_limit(self) -> bool:
        return self.percentage >= 100

    @property
    def color(self) -> str:
        return LEVEL_COLORS[self.level]


def usage_level(percentage: float) -> str:
    if percentage >= USAGE_RED_THRESHOLD:
        return "red"
    if percentage >= USAGE_YELLOW_THRESHOLD:
        return "yellow"
    return "green"


def gauge_level(percentage: float) -> str:
    """Colour band for the subscription page gauges (orange instead of yellow)."""
    if percentage >= USAGE_RED_THRESHOLD:
        return "red"
    if percentage >= USAGE_YELLOW_THRESHOLD:
        return "orange"
    return "green"


def usage_headline(percentage: float) -> Optional[str]:
    if percentage >= 100:
        return "Limit reached!"
    if percentage >= USAGE_RED_THRESHOLD:
        return "Near the limit!"
    if percentage >= USAGE_WARNING_THRESHOLD:
        return "High usage detected"
    return None


def usage_gauge(current: float, limit: float) -> UsageGauge:
    """
    Compute the display state of a quota card.

    Args:
        current: Amount in use
        limit: Plan limit; zero or negative means no meaningful limit

    Returns:
        UsageGauge
    """
    percentage = min(current / limit * 100, 100) if limit > 0 else 0
    show_warning = percentage >= USAGE_WARNING_THRESHOLD

    return UsageGauge(
        current=current,
        limit=limit,
        percentage=percentage,
        remaining=max(limit - current, 0),
        level=usage_level(percentage),
        show_warning=show_warning,
        headline=usage_headline(percentage),
        show_upgrade=show_warning,
        upgrade_primary=percentage >= USAGE_RED_THRESHOLD,
    )


def usage_detail(gauge: UsageGauge, unit: str = "") -> str:
    """Second sentence of the warning box."""
    if gauge.at_limit:
        return "You cannot add more items."
    suffix = f" {unit}" if unit else ""
    return f"Only {gauge.remaining:g}{suffix} left."


def storage_level(percentage: float) -> str:
    """Storage overview band: normal, near_limit or critical."""
    if percentage >= STORAGE_CRITICAL_THRESHOLD:
        return "critical"
    if percentage >= STORAGE_NEAR_LIMIT_THRESHOLD:
        return "near_limit"
    return "normal"


def format_gb(gb: float) -> str:
    """Show sub-gigabyte values in MB."""
    if gb < 1:
        return f"{gb * 1024:.0f} MB"
    return f"{gb:.1f} GB"


def _percent(current: float, limit: float) -> float:
    # Raw ratio, not capped; a zero limit reads as fully used
    if not limit:
        return 100.0 if current else 0.0
    return current / limit * 100


def usage_stats(
    subscription: Optional[Subscription], usage: Optional[UsageMetrics]
) -> Optional[Dict[str, Dict[str, Any]]]:
    """
    Current usage against the plan limits for seats, patients and storage.

    Returns:
        Dict keyed by psychologists, patients and storage, or None when either
        input is missing
    """
    if subscription is None or usage is None:
        return None

    limits = subscription.plan.limits
    return {
        "psychologists": {
            "current": usage.psychologists.active,
            "limit": limits.max_psychologists,
            "remaining": get_remaining_seats(usage),
            "percentage": _percent(usage.psychologists.active, limits.max_psychologists),
        },
        "patients": {
            "current": usage.patients.active,
            "limit": limits.max_patients,
            "remaining": get_remaining_patients(usage),
            "percentage": _percent(usage.patients.active, limits.max_patients),
        },
        "storage": {
            "current": usage.storage.used_gb,
            "limit": limits.storage_gb,
            "remaining": get_remaining_storage_gb(usage),
            "percentage": _percent(usage.storage.used_gb, limits.storage_gb),
        },
    }
