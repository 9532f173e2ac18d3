# clinic_dashboard/ui/pages/05_Subscription.py
"""
Subscription page

Current plan and status, usage against plan limits, plan comparison and
plan changes (upgrade, or downgrade with acknowledgments).
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
import pandas as pd
from typing import Any, Dict, Optional

from clinic_dashboard.utils.logging_config import get_logger, setup_logging
from clinic_dashboard.utils.config import (
    ERROR_MESSAGES,
    SUPPORT_EMAIL,
    get_streamlit_config,
    is_debug_mode,
)
from clinic_dashboard.core.subscription.banners import format_date, subscription_status_bar
from clinic_dashboard.core.subscription.gating import (
    REASON_FEATURE,
    REASON_PATIENTS,
    REASON_SEATS,
    REASON_STORAGE,
)
from clinic_dashboard.core.subscription.guards import (
    can_downgrade_to,
    can_manage_subscription,
    can_upgrade,
    get_plan_display_name,
    get_status_color,
    get_status_display_name,
)
from clinic_dashboard.core.subscription.models import PlanTier, Subscription, UsageMetrics
from clinic_dashboard.core.subscription.plans import (
    PLAN_DEFINITIONS,
    PLAN_FEATURE_ROWS,
    build_downgrade_request,
    build_upgrade_request,
    included_features,
    plan_card_action,
    plan_price,
)
from clinic_dashboard.core.subscription.usage import LEVEL_COLORS, format_gb, gauge_level, usage_stats
from clinic_dashboard.infrastructure.api import queries
from clinic_dashboard.infrastructure.api.client import ApiClient
from clinic_dashboard.infrastructure.auth.session_auth import require_login
from clinic_dashboard.ui.components import (
    BANNER_ACTION_KEY,
    UPGRADE_REASON_KEY,
    gauge_figure,
    render_page_chrome,
    show_result,
)

# Initialize logging
setup_logging()
logger = get_logger(__name__)

REASON_MESSAGES = {
    REASON_SEATS: "You reached the psychologist limit of your plan.",
    REASON_PATIENTS: "You reached the active patient limit of your plan.",
    REASON_STORAGE: "You are out of storage space.",
    REASON_FEATURE: "The feature you tried to use needs a higher plan.",
}

STATUS_BADGES = {
    "success": "🟢",
    "warning": "🟠",
    "destructive": "🔴",
    "secondary": "⚪",
}

DOWNGRADE_KEY = "downgrade_target"


# =============================================================================
# APP CONFIGURATION
# =============================================================================


def setup_subscription_app() -> None:
    """Configure Streamlit app for the subscription page"""
    logger.info("Setting up subscription page...")

    try:
        config = get_streamlit_config()
        config["page_title"] = "Subscription"
        st.set_page_config(**config)

    except Exception as e:
        logger.error(f"Failed to setup subscription page: {str(e)}")
        st.error(f"❌ Subscription page setup failed: {str(e)}")
        st.stop()


def render_context_hints() -> None:
    """Explain why the user landed here (upgrade prompt or banner action)"""
    reason = st.session_state.pop(UPGRADE_REASON_KEY, None)
    if reason in REASON_MESSAGES:
        st.info(f"💡 {REASON_MESSAGES[reason]} Compare the plans below.")

    action = st.session_state.pop(BANNER_ACTION_KEY, None)
    if action in ("update-payment", "reactivate"):
        st.info(f"💳 Billing changes are handled by our team: {SUPPORT_EMAIL}")


# =============================================================================
# CURRENT PLAN
# =============================================================================


def render_status_bar(subscription: Subscription) -> None:
    banner = subscription_status_bar(subscription)
    if banner is None:
        return

    text = f"**{banner.title}**\n\n{banner.description}"
    if banner.variant == "destructive":
        st.error(text)
    else:
        st.warning(text)


def render_current_plan(subscription: Subscription) -> None:
    plan = subscription.plan
    badge = STATUS_BADGES[get_status_color(subscription.status)]

    st.subheader("📋 Current Plan")
    with st.container(border=True):
        col1, col2, col3 = st.columns(3)
        with col1:
            st.metric("Plan", get_plan_display_name(subscription.tier))
        with col2:
            st.metric("Status", f"{badge} {get_status_display_name(subscription.status)}")
        with col3:
            st.metric("Renews", format_date(subscription.current_period_end) or "—")

        if plan.base_price:
            interval = "year" if plan.billing_interval == "ANNUAL" else "month"
            st.caption(f"{plan.base_price / 100:,.2f} {plan.currency} / {interval}")

        features = included_features(plan.features)
        if features:
            st.write("**Included:** " + " · ".join(features))

        if can_upgrade(subscription):
            st.caption("⬆️ Higher plans with more capacity are listed below.")


def render_usage_gauges(
    subscription: Subscription, usage: Optional[UsageMetrics]
) -> None:
    stats = usage_stats(subscription, usage)
    if stats is None:
        st.info("Usage data is not available right now.")
        return

    st.subheader("📊 Usage")
    titles = {"psychologists": "Psychologists", "patients": "Patients", "storage": "Storage"}
    cols = st.columns(3)
    for col, (key, stat) in zip(cols, stats.items()):
        level = gauge_level(stat["percentage"])
        with col:
            with st.container(border=True):
                st.plotly_chart(
                    gauge_figure(titles[key], min(stat["percentage"], 100), LEVEL_COLORS[level]),
                    use_container_width=True,
                    key=f"subscription_gauge_{key}",
                )
                if key == "storage":
                    st.caption(f"{format_gb(stat['current'])} of {format_gb(stat['limit'])}")
                else:
                    st.caption(f"{stat['current']} of {stat['limit']} · {stat['remaining']} left")


# =============================================================================
# PLAN COMPARISON
# =============================================================================


def render_plan_card(
    client: ApiClient, plan: Dict[str, Any], current: PlanTier, annual: bool, can_act: bool
) -> None:
    action, label = plan_card_action(plan["plan_type"], current)

    with st.container(border=True):
        title = f"⭐ {plan['name']}" if plan["highlighted"] else plan["name"]
        st.subheader(title)
        st.caption(plan["description"])
        st.markdown(f"### {plan_price(plan, annual)}")

        for name, value in plan["limits"].items():
            st.write(f"• **{value}** {name}")

        if action == "current":
            st.button(label, disabled=True, key=f"plan_{plan['name']}", use_container_width=True)
        elif action == "contact_sales":
            st.link_button(label, f"mailto:{SUPPORT_EMAIL}", use_container_width=True)
        elif st.button(
            label,
            key=f"plan_{plan['name']}",
            type="primary" if action == "upgrade" else "secondary",
            disabled=not can_act,
            use_container_width=True,
        ):
            if action == "upgrade":
                request = build_upgrade_request(plan["plan_type"], annual)
                with st.spinner("Upgrading..."):
                    show_result(*queries.upgrade_subscription(client, request))
            else:
                st.session_state[DOWNGRADE_KEY] = plan["plan_type"]
                st.rerun()


def render_plan_comparison(client: ApiClient, subscription: Subscription, can_act: bool) -> None:
    st.subheader("💼 Plans")
    annual = st.toggle("Annual billing (save up to 20%)")

    cols = st.columns(len(PLAN_DEFINITIONS))
    for col, plan in zip(cols, PLAN_DEFINITIONS):
        with col:
            render_plan_card(client, plan, subscription.tier, annual, can_act)

    with st.expander("Compare features"):
        table = pd.DataFrame(
            {
                plan["name"]: ["✅" if plan["features"][row] else "—" for row in PLAN_FEATURE_ROWS]
                for plan in PLAN_DEFINITIONS
            },
            index=PLAN_FEATURE_ROWS,
        )
        st.dataframe(table, use_container_width=True)


def render_downgrade_form(client: ApiClient, subscription: Subscription) -> None:
    target = st.session_state.get(DOWNGRADE_KEY)
    if target is None:
        return
    if not can_downgrade_to(subscription.tier, target):
        st.session_state.pop(DOWNGRADE_KEY, None)
        return

    st.subheader(f"⬇️ Downgrade to {get_plan_display_name(target)}")
    with st.container(border=True):
        st.warning(
            "Lower plans have smaller limits. Records above the new limits become "
            "read-only and features outside the plan are switched off."
        )
        with st.form("downgrade_form"):
            schedule = st.radio(
                "When",
                options=["end_of_period", "immediate"],
                format_func=lambda s: "At the end of the billing period" if s == "end_of_period" else "Immediately",
            )
            data_loss = st.checkbox("I understand data above the new limits may become inaccessible")
            feature_loss = st.checkbox("I understand I will lose features not included in the new plan")
            col1, col2 = st.columns(2)
            with col1:
                submitted = st.form_submit_button("Confirm downgrade", type="primary")
            with col2:
                cancelled = st.form_submit_button("Cancel")

        if cancelled:
            st.session_state.pop(DOWNGRADE_KEY, None)
            st.rerun()

        if submitted:
            is_valid, errors, request = build_downgrade_request(
                target, data_loss, feature_loss, schedule
            )
            if not is_valid:
                for error in errors:
                    st.error(error)
                return

            success, message = queries.downgrade_subscription(client, request)
            if success:
                st.session_state.pop(DOWNGRADE_KEY, None)
            show_result(success, message)


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Main subscription page entry point"""
    logger.info("Starting subscription page...")

    try:
        setup_subscription_app()
        client, user = require_login()
        subscription, usage = render_page_chrome(client)

        st.title("💳 Subscription")
        if subscription is None:
            st.error(ERROR_MESSAGES["subscription_missing"])
            return

        can_act = can_manage_subscription(user)
        if not can_act:
            st.info("Only clinic administrators can change the subscription.")

        render_context_hints()
        render_status_bar(subscription)
        render_current_plan(subscription)
        render_usage_gauges(subscription, usage)

        render_plan_comparison(client, subscription, can_act)
        if can_act:
            render_downgrade_form(client, subscription)

    except Exception as e:
        logger.error(f"Critical error in subscription page: {str(e)}")
        st.error(ERROR_MESSAGES["load_failed"])

        if is_debug_mode():
            st.exception(e)


if __name__ == "__main__":
    main()
