# clinic_dashboard/ui/pages/04_Team.py
"""
Team page

Clinic members with their roles. Administrators invite new members (gated
by the plan's psychologist seats), change roles and deactivate accounts.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
from typing import Any, Dict, List, Optional

from clinic_dashboard.utils.logging_config import get_logger, setup_logging
from clinic_dashboard.utils.config import (
    ERROR_MESSAGES,
    LABELS,
    ROLE_LABELS,
    get_streamlit_config,
    is_debug_mode,
)
from clinic_dashboard.core.records import format_datetime, full_name, role_label
from clinic_dashboard.core.subscription.gating import check_invite_user
from clinic_dashboard.core.subscription.guards import can_add_seats, can_manage_users
from clinic_dashboard.core.subscription.models import Subscription, UsageMetrics, UserRole
from clinic_dashboard.core.validators.validation import validate_user_invite
from clinic_dashboard.infrastructure.api import queries
from clinic_dashboard.infrastructure.api.client import ApiClient, ApiError
from clinic_dashboard.infrastructure.auth.session_auth import require_login
from clinic_dashboard.ui.components import (
    handle_api_error,
    render_blocked,
    render_page_chrome,
    render_usage_card,
    show_result,
)

# Initialize logging
setup_logging()
logger = get_logger(__name__)


# =============================================================================
# APP CONFIGURATION
# =============================================================================


def setup_team_app() -> None:
    """Configure Streamlit app for the team page"""
    logger.info("Setting up team page...")

    try:
        config = get_streamlit_config()
        config["page_title"] = "Team"
        st.set_page_config(**config)

    except Exception as e:
        logger.error(f"Failed to setup team page: {str(e)}")
        st.error(f"❌ Team page setup failed: {str(e)}")
        st.stop()


# =============================================================================
# SEATS & INVITES
# =============================================================================


def render_seat_usage(
    subscription: Optional[Subscription], usage: Optional[UsageMetrics]
) -> None:
    if subscription is None or usage is None:
        return

    col1, col2 = st.columns([1, 2])
    with col1:
        render_usage_card(
            "Psychologist seats",
            usage.psychologists.active,
            subscription.plan.limits.max_psychologists,
            key="seats",
        )
    with col2:
        with st.container(border=True):
            st.metric("Assistants", usage.assistants.active)
            st.metric("Administrators", usage.admins.active)
            if can_add_seats(subscription, usage):
                st.caption("Extra psychologist seats can be added to your Professional plan.")


def render_invite_form(
    client: ApiClient,
    subscription: Optional[Subscription],
    usage: Optional[UsageMetrics],
) -> None:
    with st.expander(LABELS["invite_user"]):
        with st.form("invite_user_form", clear_on_submit=True):
            col1, col2 = st.columns(2)
            with col1:
                first_name = st.text_input("First name")
                email = st.text_input("Email")
            with col2:
                last_name = st.text_input("Last name")
                role = st.selectbox(
                    "Role", options=list(ROLE_LABELS), index=1, format_func=ROLE_LABELS.get
                )
            submitted = st.form_submit_button("✉️ Send invitation", type="primary")

        if not submitted:
            return

        data = {
            "firstName": first_name.strip(),
            "lastName": last_name.strip(),
            "email": email.strip(),
            "role": role,
        }
        is_valid, errors = validate_user_invite(data)
        if not is_valid:
            for error in errors:
                st.error(error)
            return

        check = check_invite_user(subscription, usage, role)
        if not check.allowed:
            render_blocked(check, "seat_limit")
            return

        show_result(*queries.invite_user(client, data))


# =============================================================================
# MEMBERS
# =============================================================================


def render_member(client: ApiClient, member: Dict[str, Any], is_admin: bool, me: str) -> None:
    active = member.get("isActive", True)

    with st.container(border=True):
        col1, col2, col3 = st.columns([3, 2, 2])
        with col1:
            st.write(f"**{full_name(member) or member.get('email')}**")
            st.caption(member.get("email", ""))
        with col2:
            st.write(role_label(member.get("role")))
            last_login = format_datetime(member.get("lastLoginAt"))
            st.caption(f"Last sign-in: {last_login or 'never'}")
        with col3:
            st.write("🟢 Active" if active else "⚪ Inactive")

            if not is_admin or member.get("id") == me:
                return

            roles = list(ROLE_LABELS)
            new_role = st.selectbox(
                "Role",
                options=roles,
                index=roles.index(member.get("role")) if member.get("role") in roles else 0,
                format_func=ROLE_LABELS.get,
                key=f"role_{member['id']}",
                label_visibility="collapsed",
            )
            if new_role != member.get("role"):
                show_result(*queries.update_user(client, member["id"], {"role": new_role}))

            if active:
                if st.button("⏸️ Deactivate", key=f"deactivate_{member['id']}"):
                    show_result(*queries.update_user(client, member["id"], {"isActive": False}))
            elif st.button("▶️ Activate", key=f"activate_{member['id']}"):
                show_result(*queries.activate_user(client, member["id"]))

            if st.button(LABELS["delete"], key=f"delete_{member['id']}"):
                show_result(*queries.delete_user(client, member["id"]))


def render_members(client: ApiClient, users: List[Dict[str, Any]], is_admin: bool, me: str) -> None:
    st.subheader(f"👥 Members ({len(users)})")
    order = {role.value: i for i, role in enumerate(UserRole)}
    for member in sorted(users, key=lambda u: (order.get(u.get("role"), 9), full_name(u))):
        render_member(client, member, is_admin, me)


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Main team page entry point"""
    logger.info("Starting team page...")

    try:
        setup_team_app()
        client, user = require_login()
        subscription, usage = render_page_chrome(client)

        st.title("🧑‍⚕️ Team")
        is_admin = can_manage_users(user)

        render_seat_usage(subscription, usage)
        if is_admin:
            render_invite_form(client, subscription, usage)

        try:
            users = queries.fetch_users(client, client.tenant_id)
        except ApiError as e:
            handle_api_error(e, "load team")
            return

        render_members(client, users, is_admin, user.get("id"))

    except Exception as e:
        logger.error(f"Critical error in team page: {str(e)}")
        st.error(ERROR_MESSAGES["load_failed"])

        if is_debug_mode():
            st.exception(e)


if __name__ == "__main__":
    main()
