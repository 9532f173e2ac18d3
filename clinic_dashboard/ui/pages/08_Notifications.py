# clinic_dashboard/ui/pages/08_Notifications.py
"""
Notifications page

In-app notifications, newest first, with mark-as-read actions.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
from typing import Any, Dict, List

from clinic_dashboard.utils.logging_config import get_logger, setup_logging
from clinic_dashboard.utils.config import (
    ERROR_MESSAGES,
    INFO_MESSAGES,
    LABELS,
    get_streamlit_config,
    is_debug_mode,
)
from clinic_dashboard.core.records import format_datetime, sort_notifications, unread_count
from clinic_dashboard.infrastructure.api import queries
from clinic_dashboard.infrastructure.api.client import ApiClient, ApiError
from clinic_dashboard.infrastructure.auth.session_auth import require_login
from clinic_dashboard.ui.components import handle_api_error, render_page_chrome, show_result

# Initialize logging
setup_logging()
logger = get_logger(__name__)

TYPE_ICONS = {
    "APPOINTMENT_REMINDER": "⏰",
    "APPOINTMENT_CANCELLED": "❌",
    "APPOINTMENT_RESCHEDULED": "🔁",
    "TASK_ASSIGNED": "📌",
    "TASK_DUE": "⌛",
    "USER_INVITED": "✉️",
    "SUBSCRIPTION_UPDATED": "💳",
    "SYSTEM": "ℹ️",
}


# =============================================================================
# APP CONFIGURATION
# =============================================================================


def setup_notifications_app() -> None:
    """Configure Streamlit app for the notifications page"""
    logger.info("Setting up notifications page...")

    try:
        config = get_streamlit_config()
        config["page_title"] = "Notifications"
        st.set_page_config(**config)

    except Exception as e:
        logger.error(f"Failed to setup notifications page: {str(e)}")
        st.error(f"❌ Notifications page setup failed: {str(e)}")
        st.stop()


# =============================================================================
# NOTIFICATION LIST
# =============================================================================


def render_notification(client: ApiClient, notification: Dict[str, Any]) -> None:
    is_read = notification.get("isRead", False)
    icon = TYPE_ICONS.get(notification.get("type"), "🔔")

    with st.container(border=True):
        col1, col2 = st.columns([5, 1])
        with col1:
            title = notification.get("title") or "Notification"
            st.write(f"{icon} {title}" if is_read else f"{icon} **{title}** 🔵")
            if notification.get("message"):
                st.caption(notification["message"])
            st.caption(format_datetime(notification.get("createdAt")))
        with col2:
            if not is_read and st.button("✔️", key=f"read_{notification['id']}", help="Mark as read"):
                success, message = queries.mark_notification_read(client, notification["id"])
                if success:
                    st.rerun()
                else:
                    st.error(message)


def render_notifications(client: ApiClient, notifications: List[Dict[str, Any]]) -> None:
    unread = unread_count(notifications)

    col1, col2 = st.columns([3, 1])
    with col1:
        st.metric("Unread", unread)
    with col2:
        if unread and st.button(LABELS["mark_all_read"], use_container_width=True):
            show_result(*queries.mark_all_notifications_read(client))

    only_unread = st.toggle("Show unread only")
    visible = [n for n in notifications if not (only_unread and n.get("isRead"))]

    if not visible:
        st.info(INFO_MESSAGES["no_notifications"])
        return

    for notification in sort_notifications(visible):
        render_notification(client, notification)


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Main notifications page entry point"""
    logger.info("Starting notifications page...")

    try:
        setup_notifications_app()
        client, user = require_login()
        render_page_chrome(client)

        st.title("🔔 Notifications")

        try:
            notifications = queries.fetch_notifications(
                client, client.tenant_id, user["id"]
            )
        except ApiError as e:
            handle_api_error(e, "load notifications")
            return

        render_notifications(client, notifications)

    except Exception as e:
        logger.error(f"Critical error in notifications page: {str(e)}")
        st.error(ERROR_MESSAGES["load_failed"])

        if is_debug_mode():
            st.exception(e)


if __name__ == "__main__":
    main()
