# clinic_dashboard/core/subscription/banners.py
"""
Subscription banners shown across the dashboard and on the subscription page.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from clinic_dashboard.core.subscription.guards import parse_datetime
from clinic_dashboard.core.subscription.models import Subscription, SubscriptionStatus
from clinic_dashboard.utils.config import LABELS, TRIAL_WARNING_DAYS

SECONDS_PER_DAY = 60 * 60 * 24


@dataclass
class Banner:
    """
    A banner to render at the top of a page.

    Attributes:
        variant: default, warning, destructive or info
        action_label: Main button label (None for no button)
        action: Page action key passed to the subscription page
        show_details: Whether a "View Details" link is offered
    """

    title: str
    description: str
    variant: str = "default"
    action_label: Optional[str] = None
    action: Optional[str] = None
    show_details: bool = True


def format_date(value: Optional[str], fmt: str = "%d/%m/%Y") -> Optional[str]:
    parsed = parse_datetime(value)
    return parsed.strftime(fmt) if parsed else None


def days_until(value: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days until ``value``, rounded up. Negative once the date has passed."""
    target = parse_datetime(value)
    if target is None:
        return None
    now = now or datetime.now(timezone.utc)
    return math.ceil((target - now).total_seconds() / SECONDS_PER_DAY)


def status_banner(subscription: Optional[Subscription]) -> Optional[Banner]:
    """
    Banner for subscriptions that are not in good standing.

    Trial and active subscriptions get no banner.
    """
    if subscription is None:
        return None

    status = subscription.status
    period_end = format_date(subscription.current_period_end)

    if status == SubscriptionStatus.PAST_DUE:
        deadline = period_end or "the end of the grace period"
        return Banner(
            title="Payment Pending",
            description=(
                "There is a problem with your payment method. Update it before "
                f"{deadline} to avoid service suspension."
            ),
            variant="warning",
            action_label=LABELS["update_payment"],
            action="update-payment",
        )

    if status == SubscriptionStatus.SUSPENDED:
        return Banner(
            title="Account Suspended",
            description=(
                "Your account has been suspended for non-payment. Update your "
                "payment method to restore full access."
            ),
            variant="destructive",
            action_label=LABELS["update_payment"],
            action="update-payment",
        )

    if status == SubscriptionStatus.CANCELED:
        if period_end:
            description = (
                f"Your subscription will end on {period_end}. "
                "After this date access will be limited."
            )
        else:
            description = "Your subscription has been canceled. You can reactivate it at any time."
        return Banner(
            title="Subscription Canceled",
            description=description,
            variant="default",
            action_label=LABELS["reactivate"],
            action="reactivate",
        )

    if status == SubscriptionStatus.ARCHIVED:
        return Banner(
            title="Account Archived",
            description=(
                "Your account has been archived after a long period of inactivity. "
                "Contact support to reactivate it."
            ),
            variant="default",
            action_label=LABELS["contact_support"],
            action="contact-support",
        )

    if status == SubscriptionStatus.DELETED:
        return Banner(
            title="Account Deleted",
            description=(
                "This account has been marked for deletion. "
                "Please contact support if you need help."
            ),
            variant="destructive",
            action_label=LABELS["contact_support"],
            action="contact-support",
            show_details=False,
        )

    return None


def trial_banner(
    subscription: Optional[Subscription], now: Optional[datetime] = None
) -> Optional[Banner]:
    """Trial expiry reminder, shown in the last few days of a trial."""
    if subscription is None or subscription.status != SubscriptionStatus.TRIAL:
        return None

    days_remaining = days_until(subscription.trial_ends_at, now)
    if days_remaining is None or days_remaining > TRIAL_WARNING_DAYS:
        return None

    if days_remaining <= 0:
        title = "Last day of your trial!"
    else:
        plural = "s" if days_remaining > 1 else ""
        title = f"Your trial ends in {days_remaining} day{plural}"

    return Banner(
        title=title,
        description="Upgrade now to keep every feature and avoid losing access.",
        variant="info",
        action_label="View Plans",
        action="upgrade",
        show_details=False,
    )


def subscription_status_bar(
    subscription: Optional[Subscription], now: Optional[datetime] = None
) -> Optional[Banner]:
    """
    Status alert on the subscription page.

    Checked in order: trial countdown, scheduled cancellation, past due,
    suspended.
    """
    if subscription is None:
        return None

    status = subscription.status

    if status == SubscriptionStatus.TRIAL and subscription.trial_ends_at:
        days_left = max(0, days_until(subscription.trial_ends_at, now) or 0)
        return Banner(
            title=f"Trial period: {days_left} days left",
            description=(
                f"Your trial ends on {format_date(subscription.trial_ends_at)}. "
                "Choose a plan to continue without interruption."
            ),
            variant="destructive" if days_left <= TRIAL_WARNING_DAYS else "warning",
            show_details=False,
        )

    if subscription.cancel_at_period_end:
        period_end = format_date(subscription.current_period_end)
        when = f" ({period_end})" if period_end else ""
        return Banner(
            title="Subscription scheduled for cancellation",
            description=(
                f"Your subscription will be canceled at the end of the current period{when}. "
                "You can reactivate at any time."
            ),
            variant="warning",
            show_details=False,
        )

    if status == SubscriptionStatus.PAST_DUE:
        return Banner(
            title="Payment pending",
            description=(
                "We could not process your last payment. Update your payment "
                "method to avoid account suspension."
            ),
            variant="destructive",
            show_details=False,
        )

    if status == SubscriptionStatus.SUSPENDED:
        return Banner(
            title="Account suspended",
            description=(
                "Your account is suspended for non-payment. Update your payment "
                "method to restore full access."
            ),
            variant="destructive",
            show_details=False,
        )

    return None
