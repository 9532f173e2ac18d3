"""
Unit tests for record helpers (tasks, appointments, notifications, users).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from clinic_dashboard.core.records import (
    appointment_end,
    appointments_in_range,
    build_start_time,
    filter_patients,
    filter_tasks,
    full_name,
    group_tasks,
    initials,
    options_by_id,
    overdue_tasks,
    sort_notifications,
    sort_tasks,
    unread_count,
    users_with_role,
    week_bounds,
)

TASKS = [
    {
        "id": "t1",
        "title": "Send intake form",
        "status": "PENDING",
        "priority": "LOW",
        "assignedToId": "u1",
        "dueDate": "2026-03-10T09:00:00Z",
        "patient": {"firstName": "Eva", "lastName": "Gil"},
    },
    {
        "id": "t2",
        "title": "Review homework",
        "status": "IN_PROGRESS",
        "priority": "URGENT",
        "assignedToId": "u2",
        "dueDate": "2026-03-10T09:00:00Z",
    },
    {
        "id": "t3",
        "title": "Book follow-up",
        "status": "COMPLETED",
        "priority": "HIGH",
        "assignedToId": "u1",
        "dueDate": "2026-03-01T09:00:00Z",
    },
    {"id": "t4", "title": "Archive file", "status": "CANCELLED", "priority": "MEDIUM"},
]


class TestDisplayHelpers:
    def test_full_name(self) -> None:
        assert full_name({"firstName": "Eva", "lastName": "Gil"}) == "Eva Gil"
        assert full_name({"firstName": "Eva"}) == "Eva"
        assert full_name(None) == ""

    def test_initials(self) -> None:
        assert initials({"firstName": "eva", "lastName": "gil"}) == "EG"
        assert initials({}) == "?"
        assert initials(None) == "?"

    def test_options_by_id_falls_back_to_email(self) -> None:
        options = options_by_id([{"id": "u1", "email": "x@y.z"}, {"firstName": "No id"}])
        assert options == {"u1": "x@y.z"}


class TestTasks:
    def test_filter_by_search_matches_patient(self) -> None:
        assert [t["id"] for t in filter_tasks(TASKS, search="gil")] == ["t1"]

    def test_filter_by_status_priority_assignee(self) -> None:
        assert [t["id"] for t in filter_tasks(TASKS, status="COMPLETED")] == ["t3"]
        assert [t["id"] for t in filter_tasks(TASKS, priority="URGENT")] == ["t2"]
        assert [t["id"] for t in filter_tasks(TASKS, assignee_id="u1")] == ["t1", "t3"]

    def test_group_tasks(self) -> None:
        groups = group_tasks(TASKS)
        assert [t["id"] for t in groups["pending"]] == ["t1", "t2"]
        assert [t["id"] for t in groups["completed"]] == ["t3"]
        assert [t["id"] for t in groups["cancelled"]] == ["t4"]

    def test_overdue_skips_completed(self, now) -> None:
        assert [t["id"] for t in overdue_tasks(TASKS, now)] == ["t1", "t2"]

    def test_sort_by_due_date_then_priority(self) -> None:
        assert [t["id"] for t in sort_tasks(TASKS)] == ["t3", "t2", "t1", "t4"]


class TestAppointments:
    def test_week_bounds(self) -> None:
        assert week_bounds(date(2026, 3, 11)) == (date(2026, 3, 9), date(2026, 3, 15))

    def test_appointments_in_range_sorted(self) -> None:
        appointments = [
            {"id": "late", "startTime": "2026-03-13T16:00:00Z"},
            {"id": "early", "startTime": "2026-03-09T08:00:00Z"},
            {"id": "next-week", "startTime": "2026-03-16T08:00:00Z"},
            {"id": "no-date"},
        ]
        selected = appointments_in_range(appointments, date(2026, 3, 9), date(2026, 3, 15))
        assert [a["id"] for a in selected] == ["early", "late"]

    def test_appointment_end(self) -> None:
        assert appointment_end({"startTime": "2026-03-11T10:00:00Z", "duration": 50}) == datetime(
            2026, 3, 11, 10, 50, tzinfo=timezone.utc
        )
        explicit = {"startTime": "2026-03-11T10:00:00Z", "endTime": "2026-03-11T11:30:00Z"}
        assert appointment_end(explicit).hour == 11
        assert appointment_end({}) is None

    def test_build_start_time(self) -> None:
        assert build_start_time(date(2026, 3, 11), "09:30") == "2026-03-11T09:30:00"


class TestNotificationsAndUsers:
    def test_unread_and_sort(self, now) -> None:
        notifications = [
            {"id": "old", "isRead": True, "createdAt": (now - timedelta(days=2)).isoformat()},
            {"id": "new", "isRead": False, "createdAt": now.isoformat()},
        ]
        assert unread_count(notifications) == 1
        assert [n["id"] for n in sort_notifications(notifications)] == ["new", "old"]

    def test_users_with_role_skips_inactive(self) -> None:
        users = [
            {"id": "u1", "role": "PSYCHOLOGIST"},
            {"id": "u2", "role": "PSYCHOLOGIST", "isActive": False},
            {"id": "u3", "role": "ASSISTANT"},
        ]
        assert [u["id"] for u in users_with_role(users, "PSYCHOLOGIST")] == ["u1"]

    def test_filter_patients(self) -> None:
        patients = [
            {"firstName": "Eva", "lastName": "Gil", "phone": "600111222"},
            {"firstName": "Leo", "lastName": "Paz", "email": "leo@mail.test"},
        ]
        assert filter_patients(patients, "") == patients
        assert len(filter_patients(patients, "eva gil")) == 1
        assert len(filter_patients(patients, "600")) == 1
        assert filter_patients(patients, "LEO@")[0]["lastName"] == "Paz"
