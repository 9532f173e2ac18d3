"""
Unit tests for endpoint functions: path building, tenant scoping and
response normalisation. The client is a MagicMock (see ``fake_client``).
"""

from __future__ import annotations

import pytest

from clinic_dashboard.core.subscription.models import PlanTier
from clinic_dashboard.infrastructure.api import endpoints
from clinic_dashboard.infrastructure.api.client import ApiError
from clinic_dashboard.infrastructure.api.endpoints import ApiEndpoints


class TestPaths:
    def test_tenant_scoped_paths(self) -> None:
        assert ApiEndpoints.patients("t1") == "/tenants/t1/patients"
        assert ApiEndpoints.subscription_usage("t1") == "/tenants/t1/subscription/usage"
        assert (
            ApiEndpoints.session_plan_by_patient("t1", "p1")
            == "/tenants/t1/next-session-plans/patient/p1"
        )
        assert ApiEndpoints.change_password("t1") == "/tenants/t1/users/me/change-password"

    def test_missing_tenant_raises(self, fake_client) -> None:
        fake_client.tenant_id = None
        with pytest.raises(ApiError) as exc_info:
            endpoints.list_patients(fake_client)
        assert exc_info.value.code == "NO_TENANT"
        fake_client.get.assert_not_called()


class TestAuth:
    def test_login_stores_tokens_and_tenant(self, fake_client) -> None:
        fake_client.post.return_value = {
            "accessToken": "a",
            "refreshToken": "r",
            "user": {"id": "u1", "tenantId": "t9"},
        }

        result = endpoints.login(fake_client, "ana@calm.test", "Secret123")

        fake_client.post.assert_called_once_with(
            "/auth/login", {"email": "ana@calm.test", "password": "Secret123"}
        )
        fake_client.set_tokens.assert_called_once_with("a", "r")
        fake_client.set_tenant.assert_called_once_with("t9")
        assert result["user"]["isActive"] is True

    def test_logout_clears_even_on_error(self, fake_client) -> None:
        fake_client.post.side_effect = ApiError("down", code="NETWORK_ERROR")
        with pytest.raises(ApiError):
            endpoints.logout(fake_client)
        fake_client.clear_auth_data.assert_called_once()

    def test_logout_without_refresh_token(self, fake_client) -> None:
        fake_client.refresh_token = None
        endpoints.logout(fake_client)
        fake_client.post.assert_not_called()
        fake_client.clear_auth_data.assert_called_once()

    def test_logout_all(self, fake_client) -> None:
        endpoints.logout_all(fake_client)
        fake_client.post.assert_called_once_with("/auth/logout-all")
        fake_client.clear_auth_data.assert_called_once()


class TestListsAndRecords:
    def test_list_users_normalised(self, fake_client) -> None:
        fake_client.get.return_value = {"data": [{"id": "u1"}], "total": 1}
        users = endpoints.list_users(fake_client, role="PSYCHOLOGIST")
        fake_client.get.assert_called_once_with(
            "/tenants/tenant-1/users", params={"role": "PSYCHOLOGIST"}
        )
        assert users[0]["emailVerified"] is True

    def test_list_appointments_from_param(self, fake_client) -> None:
        fake_client.get.return_value = []
        endpoints.list_appointments(fake_client, from_="2026-03-09", to="2026-03-15")
        assert fake_client.get.call_args.kwargs["params"] == {
            "from": "2026-03-09",
            "to": "2026-03-15",
        }

    def test_cancel_appointment_default_reason(self, fake_client) -> None:
        fake_client.post.return_value = None
        assert endpoints.cancel_appointment(fake_client, "a1") == {}
        fake_client.post.assert_called_once_with(
            "/tenants/tenant-1/appointments/a1/cancel", {"reason": "Cancelled by user"}
        )

    def test_complete_task(self, fake_client) -> None:
        fake_client.patch.return_value = {"id": "t1", "status": "COMPLETED"}
        endpoints.complete_task(fake_client, "t1")
        path, body = fake_client.patch.call_args.args
        assert path == "/tenants/tenant-1/tasks/t1"
        assert body["status"] == "COMPLETED"
        assert "completedAt" in body

    def test_unread_notifications_param(self, fake_client) -> None:
        fake_client.get.return_value = []
        endpoints.list_notifications(fake_client, unread_only=True)
        assert fake_client.get.call_args.kwargs["params"] == {"unreadOnly": "true"}


class TestSessionPlans:
    def test_missing_plan_is_none(self, fake_client) -> None:
        fake_client.get.side_effect = ApiError("Not found", status_code=404)
        assert endpoints.get_session_plan(fake_client, "p1") is None

    def test_other_errors_propagate(self, fake_client) -> None:
        fake_client.get.side_effect = ApiError("Boom", status_code=500)
        with pytest.raises(ApiError):
            endpoints.get_session_plan(fake_client, "p1")

    def test_save_creates_or_updates(self, fake_client) -> None:
        endpoints.save_session_plan(fake_client, "p1", {"objectives": "x"}, exists=False)
        fake_client.post.assert_called_once_with(
            "/tenants/tenant-1/next-session-plans", {"objectives": "x", "patientId": "p1"}
        )

        endpoints.save_session_plan(fake_client, "p1", {"objectives": "y"}, exists=True)
        fake_client.patch.assert_called_once_with(
            "/tenants/tenant-1/next-session-plans/patient/p1", {"objectives": "y"}
        )


class TestSubscription:
    def test_get_subscription_unwraps(self, fake_client, backend_subscription) -> None:
        fake_client.get.return_value = {"subscription": backend_subscription, "tenant": {}}
        assert endpoints.get_subscription(fake_client).tier == PlanTier.PROFESSIONAL

    def test_get_usage(self, fake_client, backend_usage) -> None:
        fake_client.get.return_value = backend_usage
        usage = endpoints.get_usage(fake_client)
        assert usage.tenant_id == "tenant-1"
        assert usage.patients.active == 120

    def test_upgrade_payload(self, fake_client) -> None:
        endpoints.upgrade_subscription(
            fake_client, {"target_tier": "PRO", "billing_interval": "ANNUAL"}
        )
        fake_client.post.assert_called_once_with(
            "/tenants/tenant-1/subscription/upgrade", {"newPlan": "PRO"}
        )

    def test_downgrade_payload(self, fake_client) -> None:
        endpoints.downgrade_subscription(fake_client, {"target_tier": "BASIC"})
        fake_client.post.assert_called_once_with(
            "/tenants/tenant-1/subscription/downgrade", {"newPlan": "BASIC"}
        )


class TestStorage:
    def test_breakdown_fills_missing_keys(self, fake_client) -> None:
        fake_client.get.return_value = {"total": 1.5, "attachments": 1.2}
        assert endpoints.get_storage_breakdown(fake_client) == {
            "total": 1.5,
            "attachments": 1.2,
            "avatars": 0,
            "exports": 0,
        }

    def test_upload_metadata(self, fake_client) -> None:
        fake_client.upload.return_value = {"id": "f1"}
        endpoints.upload_file(fake_client, "a.pdf", b"x", "application/pdf", "attachment")
        fake_client.upload.assert_called_once_with(
            "/tenants/tenant-1/storage/upload",
            "a.pdf",
            b"x",
            "application/pdf",
            metadata={"category": "attachment", "relatedTo": None},
        )

    def test_upload_quota_error(self, fake_client) -> None:
        fake_client.upload.side_effect = ApiError("Payload Too Large", status_code=413)
        with pytest.raises(ApiError) as exc_info:
            endpoints.upload_file(fake_client, "a.pdf", b"x", "application/pdf", "attachment")
        assert exc_info.value.message == "Storage limit reached"
        assert exc_info.value.code == "STORAGE_LIMIT_REACHED"
        assert exc_info.value.is_limit_error


class TestTenantAndAdmin:
    def test_update_tenant(self, fake_client) -> None:
        fake_client.patch.return_value = {"id": "tenant-1", "name": "Calm Mind"}
        tenant = endpoints.update_tenant(fake_client, {"name": "Calm Mind"})
        fake_client.patch.assert_called_once_with("/tenants/tenant-1", {"name": "Calm Mind"})
        assert tenant["subscription"] is None
        assert isinstance(tenant["settings"], dict)

    def test_complete_onboarding(self, fake_client) -> None:
        endpoints.complete_onboarding(fake_client)
        fake_client.post.assert_called_once_with("/tenants/tenant-1/complete-onboarding")

    def test_complete_onboarding_for_other_tenant(self, fake_client) -> None:
        endpoints.complete_onboarding(fake_client, "t2")
        fake_client.post.assert_called_once_with("/tenants/t2/complete-onboarding")

    def test_create_user(self, fake_client) -> None:
        fake_client.post.return_value = {"id": "u5", "isActive": False}
        user = endpoints.create_user(fake_client, {"email": "new@calm.test"})
        fake_client.post.assert_called_once_with(
            "/tenants/tenant-1/users", {"email": "new@calm.test"}
        )
        assert user["isActive"] is False
        assert user["emailVerified"] is True

    def test_get_appointment(self, fake_client) -> None:
        fake_client.get.return_value = None
        assert endpoints.get_appointment(fake_client, "a1") == {}
        fake_client.get.assert_called_once_with("/tenants/tenant-1/appointments/a1")

    def test_entity_audit_logs(self, fake_client) -> None:
        fake_client.get.return_value = {"data": [{"action": "UPDATE"}]}
        logs = endpoints.get_entity_audit_logs(fake_client, "patient", "p1")
        fake_client.get.assert_called_once_with("/tenants/tenant-1/audit-logs/patient/p1")
        assert logs == [{"action": "UPDATE"}]
