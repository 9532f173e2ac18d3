# clinic_dashboard/ui/components.py
"""
Reusable Streamlit components shared by the dashboard pages.

Banners, upgrade prompts and usage cards render the objects produced by
core.subscription; nothing here decides whether an action is allowed.
"""

from typing import Optional, Tuple

import plotly.graph_objects as go
import streamlit as st

from clinic_dashboard.core.records import full_name, role_label
from clinic_dashboard.core.subscription.banners import Banner, status_banner, trial_banner
from clinic_dashboard.core.subscription.gating import LimitCheck, UpgradePrompt, check_feature
from clinic_dashboard.core.subscription.guards import get_plan_display_name
from clinic_dashboard.core.subscription.models import Subscription, UsageMetrics
from clinic_dashboard.core.subscription.usage import usage_detail, usage_gauge
from clinic_dashboard.infrastructure.api.client import ApiClient, ApiError
from clinic_dashboard.infrastructure.api.queries import fetch_subscription, fetch_usage
from clinic_dashboard.infrastructure.auth.session_auth import logout_user
from clinic_dashboard.utils.config import (
    ERROR_MESSAGES,
    LABELS,
    SUPPORT_EMAIL,
    is_debug_mode,
)
from clinic_dashboard.utils.logging_config import get_logger, log_error_with_context

logger = get_logger(__name__)

# Prompt/banner action targets -> page scripts (relative to Main.py)
PAGE_PATHS = {
    "dashboard": "Main.py",
    "patients": "pages/01_Patients.py",
    "appointments": "pages/02_Appointments.py",
    "tasks": "pages/03_Tasks.py",
    "team": "pages/04_Team.py",
    "subscription": "pages/05_Subscription.py",
    "storage": "pages/06_Storage.py",
    "settings": "pages/07_Settings.py",
    "notifications": "pages/08_Notifications.py",
    "profile": "pages/09_Profile.py",
    "export": "pages/10_Export.py",
}

UPGRADE_REASON_KEY = "upgrade_reason"
BANNER_ACTION_KEY = "subscription_action"

_BANNER_RENDERERS = {
    "warning": st.warning,
    "destructive": st.error,
    "info": st.info,
    "default": st.info,
}


# =============================================================================
# DATA HELPERS
# =============================================================================


def load_subscription_context(
    client: ApiClient,
) -> Tuple[Optional[Subscription], Optional[UsageMetrics]]:
    """
    Load the subscription and usage used by the gating checks.

    Either value is None when it could not be loaded; the checks treat missing
    data as "not allowed".
    """
    subscription = None
    usage = None
    try:
        subscription = fetch_subscription(client, client.tenant_id)
    except ApiError as e:
        logger.error(f"Error loading subscription: {e!r}")

    try:
        usage = fetch_usage(client, client.tenant_id)
    except ApiError as e:
        logger.error(f"Error loading usage: {e!r}")

    return subscription, usage


def go_to(target: Optional[str], reason: Optional[str] = None) -> None:
    """Switch to the page behind an action target."""
    if reason:
        st.session_state[UPGRADE_REASON_KEY] = reason
    path = PAGE_PATHS.get(target or "")
    if path:
        logger.debug(f"Navigating to {path}")
        st.switch_page(path)


# =============================================================================
# ERRORS
# =============================================================================


def handle_api_error(error: Exception, context: str) -> None:
    """
    Log an API failure and tell the user what happened.

    Args:
        error: Exception raised by the data layer
        context: What the page was doing, for the log line
    """
    if isinstance(error, ApiError):
        logger.error(f"{context}: {str(error)}")

        if error.is_network_error:
            st.error(ERROR_MESSAGES["network_error"])
        elif error.is_unauthorized:
            st.warning(ERROR_MESSAGES["session_expired"])
        elif error.is_limit_error:
            st.warning(f"⚠️ {error.message}")
            if st.button(LABELS["upgrade_plan"], key=f"limit_upgrade_{context}"):
                go_to("subscription")
        else:
            st.error(f"❌ {error.message}")
    else:
        log_error_with_context(logger, error, context)
        st.error(ERROR_MESSAGES["load_failed"])

    if is_debug_mode():
        st.exception(error)


def show_result(success: bool, message: str) -> None:
    """Toast a mutation result and rerun on success."""
    if success:
        st.toast(message)
        st.rerun()
    else:
        st.error(message)


# =============================================================================
# BANNERS
# =============================================================================


def render_banner(banner: Banner, key: str) -> None:
    """Render one subscription banner with its action button."""
    render = _BANNER_RENDERERS.get(banner.variant, st.info)

    with st.container(border=True):
        col1, col2 = st.columns([4, 1])
        with col1:
            render(f"**{banner.title}**\n\n{banner.description}")
        with col2:
            if banner.action_label and st.button(
                banner.action_label, key=f"{key}_action", type="primary", use_container_width=True
            ):
                if banner.action == "contact-support":
                    st.info(f"📧 {SUPPORT_EMAIL}")
                else:
                    st.session_state[BANNER_ACTION_KEY] = banner.action
                    go_to("subscription")
            if banner.show_details and st.button(
                LABELS["view_details"], key=f"{key}_details", use_container_width=True
            ):
                go_to("subscription")


def render_subscription_banners(subscription: Optional[Subscription]) -> None:
    """Status and trial banners shown at the top of every page."""
    banner = status_banner(subscription)
    if banner:
        render_banner(banner, "status_banner")

    trial = trial_banner(subscription)
    if trial:
        render_banner(trial, "trial_banner")


# =============================================================================
# UPGRADE PROMPTS
# =============================================================================


def render_upgrade_prompt(prompt: UpgradePrompt, key: str) -> None:
    """
    Render an upgrade prompt in place of a blocked action.

    Args:
        prompt: Prompt produced by a gating check
        key: Unique widget key prefix
    """
    logger.debug(f"Rendering upgrade prompt: {prompt.reason}")

    with st.container(border=True):
        st.subheader(f"🔒 {prompt.title}")

        if prompt.severity == "error":
            st.error(prompt.message)
        elif prompt.severity == "info":
            st.info(prompt.message)
        else:
            st.warning(prompt.message)

        if "percent" in prompt.details:
            st.progress(min(int(prompt.details["percent"]), 100) / 100)

        for benefit in prompt.benefits:
            st.write(f"✓ {benefit}")

        if prompt.extra_title:
            st.write(f"**{prompt.extra_title}**")
            for extra in prompt.extras:
                st.write(f"• {extra}")

        if prompt.price_note:
            st.caption(prompt.price_note)

        actions = [a for a in prompt.actions if a.target]
        if actions:
            cols = st.columns(len(actions))
            for col, action in zip(cols, actions):
                with col:
                    clicked = st.button(
                        action.label,
                        key=f"{key}_{action.label}",
                        type="primary" if action.primary else "secondary",
                        use_container_width=True,
                    )
                    if clicked:
                        if action.target == "contact":
                            st.info(f"📧 {SUPPORT_EMAIL}")
                        else:
                            go_to(action.target, action.reason)


def render_blocked(check: LimitCheck, key: str) -> None:
    """Show why a check failed; silent refusals get a generic message."""
    if check.prompt is not None:
        render_upgrade_prompt(check.prompt, key)
    else:
        st.warning(ERROR_MESSAGES["subscription_missing"])


def render_feature_gate(subscription: Optional[Subscription], feature: str, key: str) -> bool:
    """
    Show the locked-feature prompt when the plan lacks ``feature``.

    Returns:
        True if the feature is available and the caller should render it
    """
    check = check_feature(subscription, feature)
    if not check.allowed:
        render_upgrade_prompt(check.prompt, key)
    return check.allowed


# =============================================================================
# USAGE
# =============================================================================


def gauge_figure(title: str, percentage: float, color: str) -> go.Figure:
    fig = go.Figure(
        go.Indicator(
            mode="gauge+number",
            value=round(percentage, 1),
            number={"suffix": "%"},
            title={"text": title},
            gauge={"axis": {"range": [0, 100]}, "bar": {"color": color}},
        )
    )
    fig.update_layout(height=200, margin=dict(l=20, r=20, t=50, b=10))
    return fig


def render_usage_card(
    title: str, current: float, limit: float, unit: str = "", key: str = ""
) -> None:
    """
    Quota card with a gauge and, near the limit, a warning and upgrade button.
    """
    gauge = usage_gauge(current, limit)

    with st.container(border=True):
        st.plotly_chart(
            gauge_figure(title, gauge.percentage, gauge.color),
            use_container_width=True,
            key=f"gauge_{key or title}",
        )
        suffix = f" {unit}" if unit else ""
        st.caption(f"{current:g}{suffix} of {limit:g}{suffix} used")

        if gauge.show_warning:
            text = f"**{gauge.headline}** {usage_detail(gauge, unit)}"
            if gauge.level == "red":
                st.error(text)
            else:
                st.warning(text)

        if gauge.show_upgrade and st.button(
            LABELS["upgrade_plan"],
            key=f"usage_upgrade_{key or title}",
            type="primary" if gauge.upgrade_primary else "secondary",
            use_container_width=True,
        ):
            go_to("subscription", key or None)


# =============================================================================
# SIDEBAR
# =============================================================================


def render_sidebar_account(subscription: Optional[Subscription]) -> bool:
    """
    Signed-in user, tenant and plan in the sidebar.

    Returns:
        True if the sign-out button was pressed
    """
    user = st.session_state.get("user") or {}
    tenant = st.session_state.get("tenant") or {}

    with st.sidebar:
        st.write(f"**{full_name(user) or user.get('email', '')}**")
        st.caption(role_label(user.get("role")))
        if tenant.get("name"):
            st.caption(f"🏥 {tenant['name']}")
        if subscription is not None:
            st.caption(f"Plan: {get_plan_display_name(subscription.tier)}")
        return st.button(LABELS["logout"], use_container_width=True)


def render_page_chrome(
    client: ApiClient,
) -> Tuple[Optional[Subscription], Optional[UsageMetrics]]:
    """
    Sidebar, sign-out and subscription banners common to every signed-in page.

    Returns:
        Tuple of (subscription, usage) for the page's gating checks
    """
    subscription, usage = load_subscription_context(client)

    if render_sidebar_account(subscription):
        logout_user()
        st.switch_page(PAGE_PATHS["dashboard"])

    render_subscription_banners(subscription)
    return subscription, usage
