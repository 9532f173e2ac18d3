# clinic_dashboard/ui/pages/03_Tasks.py
"""
Tasks page

Task list with filters, grouped by state, plus creation, completion and
deletion. Only available on plans that include task management.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from clinic_dashboard.utils.logging_config import get_logger, setup_logging
from clinic_dashboard.utils.config import (
    ERROR_MESSAGES,
    INFO_MESSAGES,
    LABELS,
    TASK_PRIORITY_LABELS,
    TASK_STATUS_LABELS,
    get_streamlit_config,
    is_debug_mode,
)
from clinic_dashboard.core.records import (
    ALL,
    filter_tasks,
    format_datetime,
    full_name,
    group_tasks,
    options_by_id,
    sort_tasks,
    task_priority_label,
)
from clinic_dashboard.core.subscription.guards import can_create_records, is_overdue_task
from clinic_dashboard.core.subscription.models import Subscription, TaskPriority, TaskStatus
from clinic_dashboard.core.validators.validation import validate_task
from clinic_dashboard.infrastructure.api import queries
from clinic_dashboard.infrastructure.api.client import ApiClient, ApiError
from clinic_dashboard.infrastructure.auth.session_auth import require_login
from clinic_dashboard.ui.components import (
    handle_api_error,
    render_feature_gate,
    render_page_chrome,
    show_result,
)

# Initialize logging
setup_logging()
logger = get_logger(__name__)

PRIORITY_ICONS = {"URGENT": "🔴", "HIGH": "🟠", "MEDIUM": "🟡", "LOW": "🟢"}


# =============================================================================
# APP CONFIGURATION
# =============================================================================


def setup_tasks_app() -> None:
    """Configure Streamlit app for the tasks page"""
    logger.info("Setting up tasks page...")

    try:
        config = get_streamlit_config()
        config["page_title"] = "Tasks"
        st.set_page_config(**config)

    except Exception as e:
        logger.error(f"Failed to setup tasks page: {str(e)}")
        st.error(f"❌ Tasks page setup failed: {str(e)}")
        st.stop()


# =============================================================================
# FILTERS
# =============================================================================


def render_filters() -> Dict[str, Any]:
    """
    Render the filter bar.

    Returns:
        Dict with search, status, priority and mine_only
    """
    with st.container(border=True):
        col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
        with col1:
            search = st.text_input("🔍 Search", placeholder="Title, description or patient")
        with col2:
            status = st.selectbox(
                "Status",
                options=[ALL] + list(TASK_STATUS_LABELS),
                format_func=lambda s: "All" if s == ALL else TASK_STATUS_LABELS[s],
            )
        with col3:
            priority = st.selectbox(
                "Priority",
                options=[ALL] + list(TASK_PRIORITY_LABELS),
                format_func=lambda p: "All" if p == ALL else TASK_PRIORITY_LABELS[p],
            )
        with col4:
            st.write("")
            mine_only = st.checkbox("Mine")

    return {"search": search, "status": status, "priority": priority, "mine_only": mine_only}


# =============================================================================
# TASK LIST
# =============================================================================


def render_task(client: ApiClient, task: Dict[str, Any], now: datetime) -> None:
    overdue = is_overdue_task(task, now)
    priority = task.get("priority")

    with st.container(border=True):
        col1, col2, col3 = st.columns([4, 2, 2])
        with col1:
            st.write(f"{PRIORITY_ICONS.get(priority, '⚪')} **{task.get('title')}**")
            if task.get("description"):
                st.caption(task["description"])
        with col2:
            st.write(f"👤 {full_name(task.get('patient'))}")
            st.caption(f"Assigned to {full_name(task.get('assignedTo')) or '—'}")
        with col3:
            due = format_datetime(task.get("dueDate"), "%d/%m/%Y")
            if overdue:
                st.error(f"⏰ Overdue since {due}")
            elif due:
                st.caption(f"Due {due}")
            st.caption(task_priority_label(priority))

            if task.get("status") in (TaskStatus.PENDING.value, TaskStatus.IN_PROGRESS.value):
                if st.button("✅ Complete", key=f"complete_{task['id']}", use_container_width=True):
                    show_result(*queries.complete_task(client, task["id"]))
                if task.get("status") == TaskStatus.PENDING.value and st.button(
                    "▶️ Start", key=f"start_{task['id']}", use_container_width=True
                ):
                    show_result(
                        *queries.update_task(
                            client, task["id"], {"status": TaskStatus.IN_PROGRESS.value}
                        )
                    )
            if st.button(LABELS["delete"], key=f"delete_{task['id']}", use_container_width=True):
                show_result(*queries.delete_task(client, task["id"]))


def render_task_groups(client: ApiClient, tasks: List[Dict[str, Any]]) -> None:
    groups = group_tasks(sort_tasks(tasks))
    now = datetime.now(timezone.utc)

    pending_tab, completed_tab, cancelled_tab = st.tabs(
        [
            f"Pending ({len(groups['pending'])})",
            f"Completed ({len(groups['completed'])})",
            f"Cancelled ({len(groups['cancelled'])})",
        ]
    )
    for tab, key in (
        (pending_tab, "pending"),
        (completed_tab, "completed"),
        (cancelled_tab, "cancelled"),
    ):
        with tab:
            if not groups[key]:
                st.info(INFO_MESSAGES["no_tasks"])
            for task in groups[key]:
                render_task(client, task, now)


# =============================================================================
# CREATE TASK
# =============================================================================


def render_create_task(client: ApiClient, subscription: Optional[Subscription]) -> None:
    with st.expander(LABELS["new_task"]):
        if subscription is not None and not can_create_records(subscription):
            st.warning(ERROR_MESSAGES["read_only"])
            return

        try:
            patients = queries.fetch_patients(client, client.tenant_id, True)
            users = queries.fetch_users(client, client.tenant_id)
        except ApiError as e:
            handle_api_error(e, "load task options")
            return

        patient_names = options_by_id(patients)
        user_names = options_by_id([u for u in users if u.get("isActive", True)])

        with st.form("create_task_form", clear_on_submit=True):
            title = st.text_input("Title")
            description = st.text_area("Description (optional)")
            col1, col2 = st.columns(2)
            with col1:
                patient_id = st.selectbox(
                    "Patient",
                    options=[None] + list(patient_names),
                    format_func=lambda pid: "Select..." if pid is None else patient_names[pid],
                )
                priority = st.selectbox(
                    "Priority",
                    options=[p.value for p in TaskPriority],
                    index=1,
                    format_func=task_priority_label,
                )
            with col2:
                assigned_to = st.selectbox(
                    "Assign to",
                    options=[None] + list(user_names),
                    format_func=lambda uid: "Select..." if uid is None else user_names[uid],
                )
                due_date: Optional[date] = st.date_input("Due date (optional)", value=None)
            submitted = st.form_submit_button(LABELS["save"], type="primary")

        if not submitted:
            return

        data = {
            "title": title.strip(),
            "description": description.strip() or None,
            "patientId": patient_id,
            "assignedToId": assigned_to,
            "priority": priority,
            "dueDate": (
                datetime.combine(due_date, time(23, 59), tzinfo=timezone.utc).isoformat()
                if due_date
                else None
            ),
        }
        is_valid, errors = validate_task(data)
        if not is_valid:
            for error in errors:
                st.error(error)
            return

        show_result(*queries.create_task(client, data))


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Main tasks page entry point"""
    logger.info("Starting tasks page...")

    try:
        setup_tasks_app()
        client, user = require_login()
        subscription, _ = render_page_chrome(client)

        st.title("✅ Tasks")
        if not render_feature_gate(subscription, "tasks", "tasks_gate"):
            return

        render_create_task(client, subscription)
        filters = render_filters()

        try:
            tasks = queries.fetch_tasks(client, client.tenant_id, user["id"])
        except ApiError as e:
            handle_api_error(e, "load tasks")
            return

        visible = filter_tasks(
            tasks,
            search=filters["search"],
            status=filters["status"],
            priority=filters["priority"],
            assignee_id=user.get("id") if filters["mine_only"] else None,
        )
        render_task_groups(client, visible)

    except Exception as e:
        logger.error(f"Critical error in tasks page: {str(e)}")
        st.error(ERROR_MESSAGES["load_failed"])

        if is_debug_mode():
            st.exception(e)


if __name__ == "__main__":
    main()
