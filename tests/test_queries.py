"""
Unit tests for cached reads and mutations. The endpoint module is patched,
Streamlit's cache runs without a script context.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import streamlit as st

from clinic_dashboard.core.analytics import dashboard_stats
from clinic_dashboard.infrastructure.api import queries
from clinic_dashboard.infrastructure.api.client import NETWORK_ERROR, ApiClient, ApiError
from clinic_dashboard.utils.config import ERROR_MESSAGES, SUCCESS_MESSAGES


@pytest.fixture(autouse=True)
def clear_cache():
    st.cache_data.clear()
    yield
    st.cache_data.clear()


@pytest.fixture
def api():
    with patch.object(queries, "endpoints") as mocked:
        yield mocked


class TestCachedReads:
    def test_results_cached_per_tenant(self, api, fake_client) -> None:
        api.list_patients.return_value = [{"id": "p1"}]

        first = queries.fetch_patients(fake_client, "tenant-1")
        second = queries.fetch_patients(fake_client, "tenant-1")
        queries.fetch_patients(fake_client, "tenant-2")

        assert first == second == [{"id": "p1"}]
        assert api.list_patients.call_count == 2

    def test_active_filter(self, api, fake_client) -> None:
        api.list_patients.return_value = []
        queries.fetch_patients(fake_client, "tenant-1", active_only=True)
        api.list_patients.assert_called_once_with(fake_client, isActive="true")

    def test_appointment_range(self, api, fake_client) -> None:
        api.list_appointments.return_value = []
        queries.fetch_appointments(fake_client, "tenant-1", "2026-03-09", "2026-03-15")
        api.list_appointments.assert_called_once_with(
            fake_client, from_="2026-03-09", to="2026-03-15", patientId=None
        )

    def test_errors_are_not_cached(self, api, fake_client) -> None:
        api.list_tasks.side_effect = [ApiError("down", code=NETWORK_ERROR), [{"id": "t1"}]]

        with pytest.raises(ApiError):
            queries.fetch_tasks(fake_client, "tenant-1", "u1")
        assert queries.fetch_tasks(fake_client, "tenant-1", "u1") == [{"id": "t1"}]

    def test_notifications_cached_per_user(self, api) -> None:
        alice = MagicMock(spec=ApiClient)
        alice.access_token = "alice-token"
        bob = MagicMock(spec=ApiClient)
        bob.access_token = "bob-token"
        api.list_notifications.side_effect = lambda c: [{"userId": c.access_token}]

        seen_by_alice = queries.fetch_notifications(alice, "tenant-1", "alice")
        seen_by_bob = queries.fetch_notifications(bob, "tenant-1", "bob")

        assert seen_by_alice == [{"userId": "alice-token"}]
        assert seen_by_bob == [{"userId": "bob-token"}]
        assert api.list_notifications.call_count == 2

    def test_tasks_cached_per_user(self, api, fake_client) -> None:
        api.list_tasks.return_value = []
        queries.fetch_tasks(fake_client, "tenant-1", "alice")
        queries.fetch_tasks(fake_client, "tenant-1", "bob")
        queries.fetch_tasks(fake_client, "tenant-1", "bob")
        assert api.list_tasks.call_count == 2

    def test_dashboard_counts_open_tasks_in_any_status(self, api, fake_client, now) -> None:
        api.list_appointments.return_value = []
        api.list_patients.return_value = []
        api.list_tasks.return_value = [
            {"status": "IN_PROGRESS", "dueDate": "2026-03-10T00:00:00Z"},
            {"status": "PENDING", "dueDate": "2026-03-09T00:00:00Z"},
        ]

        data = queries.fetch_dashboard_data(fake_client, "u1", "2026-03-09", "2026-03-15")

        api.list_tasks.assert_called_once_with(fake_client, status=None)
        assert dashboard_stats(data["appointments"], data["tasks"], [], now)["overdue_tasks"] == 2


class TestMutations:
    def test_success_message_and_invalidation(self, api, fake_client) -> None:
        api.list_patients.return_value = [{"id": "p1"}]
        queries.fetch_patients(fake_client, "tenant-1")

        ok, message = queries.create_patient(fake_client, {"firstName": "Eva"})

        assert ok
        assert message == SUCCESS_MESSAGES["patient_created"]
        api.create_patient.assert_called_once_with(fake_client, {"firstName": "Eva"})

        queries.fetch_patients(fake_client, "tenant-1")
        assert api.list_patients.call_count == 2

    def test_network_error_message(self, api, fake_client) -> None:
        api.create_task.side_effect = ApiError("down", code=NETWORK_ERROR)
        assert queries.create_task(fake_client, {}) == (False, ERROR_MESSAGES["network_error"])

    def test_unauthorized_message(self, api, fake_client) -> None:
        api.delete_file.side_effect = ApiError("Expired", status_code=401)
        assert queries.delete_file(fake_client, "f1") == (
            False,
            ERROR_MESSAGES["session_expired"],
        )

    def test_server_message_passed_through(self, api, fake_client) -> None:
        api.invite_user.side_effect = ApiError(
            "Seat limit reached", code="SEAT_LIMIT_REACHED", status_code=403
        )
        ok, message = queries.invite_user(fake_client, {"email": "x@y.z"})
        assert not ok
        assert "Seat limit reached" in message

    def test_failed_mutation_keeps_cache(self, api, fake_client) -> None:
        api.list_users.return_value = [{"id": "u1"}]
        queries.fetch_users(fake_client, "tenant-1")
        api.delete_user.side_effect = ApiError("Nope", status_code=400)

        queries.delete_user(fake_client, "u1")
        queries.fetch_users(fake_client, "tenant-1")

        assert api.list_users.call_count == 1
