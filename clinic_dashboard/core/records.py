# clinic_dashboard/core/records.py
"""
Helpers over the record dictionaries returned by the backend
(patients, appointments, tasks, users, notifications).
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from clinic_dashboard.core.subscription.guards import is_overdue_task, parse_datetime
from clinic_dashboard.core.subscription.models import TaskStatus
from clinic_dashboard.utils.config import (
    APPOINTMENT_STATUS_LABELS,
    ROLE_LABELS,
    TASK_PRIORITY_LABELS,
    TASK_STATUS_LABELS,
)
from clinic_dashboard.utils.logging_config import get_logger

logger = get_logger(__name__)

ALL = "ALL"

# Sort rank, most urgent first
PRIORITY_RANK = {"URGENT": 0, "HIGH": 1, "MEDIUM": 2, "LOW": 3}


# =============================================================================
# DISPLAY HELPERS
# =============================================================================


def full_name(record: Optional[Dict[str, Any]]) -> str:
    """First and last name of a patient or user, empty string when missing."""
    if not record:
        return ""
    first = record.get("firstName") or ""
    last = record.get("lastName") or ""
    return f"{first} {last}".strip()


def initials(record: Optional[Dict[str, Any]]) -> str:
    if not record:
        return "?"
    first = (record.get("firstName") or " ")[0]
    last = (record.get("lastName") or " ")[0]
    return f"{first}{last}".strip().upper() or "?"


def role_label(role: Optional[str]) -> str:
    return ROLE_LABELS.get(role or "", role or "")


def appointment_status_label(status: Optional[str]) -> str:
    return APPOINTMENT_STATUS_LABELS.get(status or "", status or "")


def task_status_label(status: Optional[str]) -> str:
    return TASK_STATUS_LABELS.get(status or "", status or "")


def task_priority_label(priority: Optional[str]) -> str:
    return TASK_PRIORITY_LABELS.get(priority or "", priority or "")


def format_datetime(value: Any, fmt: str = "%d/%m/%Y %H:%M") -> str:
    parsed = parse_datetime(value)
    return parsed.strftime(fmt) if parsed else ""


def options_by_id(records: List[Dict[str, Any]]) -> Dict[str, str]:
    """Map record id -> display name, for select boxes."""
    return {r["id"]: full_name(r) or r.get("email", r["id"]) for r in records if r.get("id")}


# =============================================================================
# TASKS
# =============================================================================


def _task_matches_search(task: Dict[str, Any], term: str) -> bool:
    patient = task.get("patient") or {}
    haystack = [
        task.get("title"),
        task.get("description"),
        patient.get("firstName"),
        patient.get("lastName"),
    ]
    return any(term in value.lower() for value in haystack if value)


def filter_tasks(
    tasks: List[Dict[str, Any]],
    search: str = "",
    status: str = ALL,
    priority: str = ALL,
    assignee_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Filter tasks by free text, status, priority and assignee.

    Args:
        tasks: Task dictionaries
        search: Case-insensitive text matched against title, description and
            patient name
        status: TaskStatus value or "ALL"
        priority: TaskPriority value or "ALL"
        assignee_id: Only tasks assigned to this user (None for all)

    Returns:
        Filtered list in the original order
    """
    term = (search or "").strip().lower()
    filtered = []

    for task in tasks:
        if term and not _task_matches_search(task, term):
            continue
        if status != ALL and task.get("status") != status:
            continue
        if priority != ALL and task.get("priority") != priority:
            continue
        if assignee_id and task.get("assignedToId") != assignee_id:
            continue
        filtered.append(task)

    logger.debug(f"Filtered tasks: {len(filtered)} of {len(tasks)}")
    return filtered


def group_tasks(tasks: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Split tasks into pending (incl. in progress), completed and cancelled."""
    groups: Dict[str, List[Dict[str, Any]]] = {"pending": [], "completed": [], "cancelled": []}
    for task in tasks:
        status = task.get("status")
        if status == TaskStatus.COMPLETED.value:
            groups["completed"].append(task)
        elif status == TaskStatus.CANCELLED.value:
            groups["cancelled"].append(task)
        else:
            groups["pending"].append(task)
    return groups


def overdue_tasks(
    tasks: List[Dict[str, Any]], now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    return [t for t in tasks if is_overdue_task(t, now)]


def sort_tasks(tasks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort by due date (tasks without one last), then by priority."""
    far_future = datetime.max.replace(tzinfo=timezone.utc)

    def key(task: Dict[str, Any]) -> Tuple[datetime, int]:
        due = parse_datetime(task.get("dueDate")) or far_future
        return due, PRIORITY_RANK.get(task.get("priority"), len(PRIORITY_RANK))

    return sorted(tasks, key=key)


# =============================================================================
# APPOINTMENTS
# =============================================================================


def week_bounds(day: Optional[date] = None) -> Tuple[date, date]:
    """Monday and Sunday of the week containing ``day``."""
    day = day or date.today()
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


def appointments_in_range(
    appointments: List[Dict[str, Any]], start: date, end: date
) -> List[Dict[str, Any]]:
    """Appointments whose start date falls within ``start``..``end`` inclusive."""
    selected = []
    for appointment in appointments:
        starts_at = parse_datetime(appointment.get("startTime"))
        if starts_at and start <= starts_at.date() <= end:
            selected.append(appointment)
    return sort_appointments(selected)


def sort_appointments(
    appointments: List[Dict[str, Any]], descending: bool = False
) -> List[Dict[str, Any]]:
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(
        appointments,
        key=lambda a: parse_datetime(a.get("startTime")) or epoch,
        reverse=descending,
    )


def appointment_end(appointment: Dict[str, Any]) -> Optional[datetime]:
    """End time, taken from endTime or computed from the duration in minutes."""
    end = parse_datetime(appointment.get("endTime"))
    if end:
        return end
    start = parse_datetime(appointment.get("startTime"))
    if start is None:
        return None
    return start + timedelta(minutes=int(appointment.get("duration") or 0))


def build_start_time(day: date, slot: str) -> str:
    """Combine a date and an HH:MM slot into an ISO timestamp."""
    hours, minutes = (int(part) for part in slot.split(":"))
    return datetime(day.year, day.month, day.day, hours, minutes).isoformat()


# =============================================================================
# NOTIFICATIONS & USERS
# =============================================================================


def unread_count(notifications: List[Dict[str, Any]]) -> int:
    return sum(1 for n in notifications if not n.get("isRead"))


def sort_notifications(notifications: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Newest first."""
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(
        notifications,
        key=lambda n: parse_datetime(n.get("createdAt")) or epoch,
        reverse=True,
    )


def users_with_role(users: List[Dict[str, Any]], role: str) -> List[Dict[str, Any]]:
    return [u for u in users if u.get("role") == role and u.get("isActive", True)]


def sort_patients(patients: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(patients, key=lambda p: (p.get("lastName") or "").lower())


def filter_patients(patients: List[Dict[str, Any]], search: str = "") -> List[Dict[str, Any]]:
    """Search patients by name, email or phone."""
    term = (search or "").strip().lower()
    if not term:
        return patients
    fields = ("firstName", "lastName", "email", "phone")
    return [
        p for p in patients
        if any(term in str(p.get(field) or "").lower() for field in fields)
        or term in full_name(p).lower()
    ]
