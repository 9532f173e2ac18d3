# clinic_dashboard/core/analytics.py
"""
Dashboard statistics and appointment breakdowns.

Uses pandas for the aggregations shown on the dashboard cards and charts.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import pandas as pd

from clinic_dashboard.core.records import full_name, overdue_tasks, week_bounds
from clinic_dashboard.core.subscription.models import AppointmentStatus
from clinic_dashboard.utils.config import APPOINTMENT_STATUS_LABELS
from clinic_dashboard.utils.logging_config import get_logger

logger = get_logger(__name__)

WEEKDAY_ORDER = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]


def appointments_frame(appointments: List[Dict[str, Any]]) -> pd.DataFrame:
    """
    Convert appointment dicts to a DataFrame with parsed UTC start times.

    Rows whose start time cannot be parsed are dropped.
    """
    columns = ["id", "status", "start", "psychologist", "patient", "duration"]
    if not appointments:
        return pd.DataFrame(columns=columns)

    rows = []
    for appointment in appointments:
        rows.append(
            {
                "id": appointment.get("id"),
                "status": appointment.get("status"),
                "start": appointment.get("startTime"),
                "psychologist": full_name(appointment.get("psychologist"))
                or appointment.get("psychologistId")
                or "Unassigned",
                "patient": full_name(appointment.get("patient")),
                "duration": appointment.get("duration") or 0,
            }
        )

    df = pd.DataFrame(rows, columns=columns)
    df["start"] = pd.to_datetime(df["start"], errors="coerce", utc=True)
    return df.dropna(subset=["start"])


def dashboard_stats(
    appointments: List[Dict[str, Any]],
    tasks: List[Dict[str, Any]],
    active_patients: List[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Calculate the four dashboard cards.

    Args:
        appointments: Appointments of the current week
        tasks: Tasks in any status (completed ones are never overdue)
        active_patients: Active patients
        now: Reference time (defaults to current UTC time)

    Returns:
        Dict with today_appointments, upcoming_this_week, completed_this_week,
        overdue_tasks and active_patients
    """
    now = now or datetime.now(timezone.utc)
    logger.info(f"Calculating dashboard stats from {len(appointments)} appointments")

    stats = {
        "today_appointments": 0,
        "upcoming_this_week": 0,
        "completed_this_week": 0,
        "overdue_tasks": len(overdue_tasks(tasks, now)),
        "active_patients": len(active_patients),
    }

    df = appointments_frame(appointments)
    if df.empty:
        return stats

    week_start, week_end = week_bounds(now.date())
    in_week = (df["start"].dt.date >= week_start) & (df["start"].dt.date <= week_end)
    week = df[in_week]
    now_ts = pd.Timestamp(now)

    stats["today_appointments"] = int((df["start"].dt.date == now.date()).sum())
    stats["upcoming_this_week"] = int(
        ((week["start"] > now_ts) & (week["status"] != AppointmentStatus.CANCELLED.value)).sum()
    )
    stats["completed_this_week"] = int(
        (week["status"] == AppointmentStatus.COMPLETED.value).sum()
    )

    logger.debug(f"Dashboard stats: {stats}")
    return stats


def appointments_by_status(appointments: List[Dict[str, Any]]) -> pd.DataFrame:
    """Count per status, with display labels, for a pie or bar chart."""
    df = appointments_frame(appointments)
    if df.empty:
        return pd.DataFrame(columns=["status", "label", "count"])

    counts = df.groupby("status").size().reset_index(name="count")
    counts["label"] = counts["status"].map(lambda s: APPOINTMENT_STATUS_LABELS.get(s, s))
    return counts[["status", "label", "count"]].sort_values("count", ascending=False)


def appointments_by_psychologist(appointments: List[Dict[str, Any]]) -> pd.DataFrame:
    """
    Sessions and booked hours per psychologist, cancelled appointments excluded.
    """
    df = appointments_frame(appointments)
    df = df[df["status"] != AppointmentStatus.CANCELLED.value]
    if df.empty:
        return pd.DataFrame(columns=["psychologist", "sessions", "hours"])

    breakdown = (
        df.groupby("psychologist")
        .agg(sessions=("id", "count"), minutes=("duration", "sum"))
        .reset_index()
    )
    breakdown["hours"] = (breakdown["minutes"] / 60).round(1)
    return breakdown[["psychologist", "sessions", "hours"]].sort_values(
        "sessions", ascending=False
    )


def appointments_by_weekday(appointments: List[Dict[str, Any]]) -> pd.DataFrame:
    """Appointment count for every weekday, Monday first, zero-filled."""
    df = appointments_frame(appointments)
    counts = df["start"].dt.day_name().value_counts() if not df.empty else pd.Series(dtype=int)
    return pd.DataFrame(
        {
            "weekday": WEEKDAY_ORDER,
            "count": [int(counts.get(day, 0)) for day in WEEKDAY_ORDER],
        }
    )


def appointments_per_day(
    appointments: List[Dict[str, Any]], start: date, end: date
) -> pd.DataFrame:
    """Daily appointment counts between two dates, days without any included."""
    all_days = pd.date_range(start, end, freq="D").date
    df = appointments_frame(appointments)
    counts = df.groupby(df["start"].dt.date).size() if not df.empty else pd.Series(dtype=int)
    return pd.DataFrame(
        {"date": all_days, "count": [int(counts.get(day, 0)) for day in all_days]}
    )
