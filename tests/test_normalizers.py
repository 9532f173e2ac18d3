"""
Unit tests for backend payload normalisation.
"""

from __future__ import annotations

import pytest

from clinic_dashboard.core.normalizers import (
    build_tenant_create_payload,
    build_tenant_settings_payload,
    extract_array,
    format_reminder_rule,
    map_plan_type,
    map_subscription_status,
    normalize_subscription,
    normalize_tenant,
    normalize_tenant_settings,
    normalize_usage,
    normalize_user,
    normalize_working_hours,
    parse_reminder_rule,
)
from clinic_dashboard.core.subscription.models import PlanTier, SubscriptionStatus
from clinic_dashboard.utils.config import (
    DEFAULT_LOCALE,
    DEFAULT_REMINDER_MINUTES,
    DEFAULT_TIMEZONE,
    ERROR_MESSAGES,
)


class TestSubscriptionMapping:
    @pytest.mark.parametrize(
        "code, tier",
        [
            ("PRO", PlanTier.PROFESSIONAL),
            ("CUSTOM", PlanTier.ENTERPRISE),
            ("BASIC", PlanTier.BASIC),
            ("FREE", PlanTier.TRIAL),
            (None, PlanTier.TRIAL),
        ],
    )
    def test_plan_type(self, code, tier) -> None:
        assert map_plan_type(code) == tier

    @pytest.mark.parametrize(
        "code, status",
        [
            ("TRIALING", SubscriptionStatus.TRIAL),
            ("ACTIVE", SubscriptionStatus.ACTIVE),
            ("INCOMPLETE", SubscriptionStatus.SUSPENDED),
            ("UNPAID", SubscriptionStatus.SUSPENDED),
            ("SOMETHING", SubscriptionStatus.ARCHIVED),
        ],
    )
    def test_status(self, code, status) -> None:
        assert map_subscription_status(code) == status


class TestNormalizeSubscription:
    def test_flat_backend_payload(self, backend_subscription) -> None:
        subscription = normalize_subscription(backend_subscription)

        assert subscription.tier == PlanTier.PROFESSIONAL
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.plan.limits.max_psychologists == 15
        assert subscription.plan.limits.max_patients == 500
        assert subscription.plan.limits.storage_gb == 50
        assert subscription.plan.base_price == 7900
        assert subscription.plan.price_per_seat_yearly == 48000
        assert not subscription.cancel_at_period_end

    def test_flat_feature_flags(self, backend_subscription) -> None:
        features = normalize_subscription(backend_subscription).plan.features

        assert features.clinical_notes
        assert features.tasks
        assert features.session_plans
        assert features.advanced_analytics
        assert features.audit_logs
        assert not features.data_export
        assert features.api_access == "none"

    def test_missing_limits_get_defaults(self) -> None:
        subscription = normalize_subscription({"planType": "BASIC", "status": "ACTIVE"})
        assert subscription.plan.limits.max_psychologists == 1
        assert subscription.plan.limits.max_patients == 10

    def test_zero_limit_kept(self) -> None:
        subscription = normalize_subscription({"planType": "BASIC", "maxActivePatients": 0})
        assert subscription.plan.limits.max_patients == 0

    def test_dashboard_shape_passthrough(self) -> None:
        raw = {
            "id": "sub-1",
            "tenantId": "t1",
            "status": "PAST_DUE",
            "plan": {
                "planType": "BASIC",
                "limits": {"maxPsychologists": 1, "maxPatients": 50, "storageGB": 2},
                "features": {"clinicalNotes": True},
            },
        }
        subscription = normalize_subscription(raw)
        assert subscription.status == SubscriptionStatus.PAST_DUE
        assert subscription.plan.features.clinical_notes

    def test_empty_payload_raises(self) -> None:
        with pytest.raises(ValueError, match=ERROR_MESSAGES["subscription_missing"]):
            normalize_subscription(None)


class TestNormalizeUsage:
    def test_endpoint_payload(self, backend_usage) -> None:
        usage = normalize_usage(backend_usage, "tenant-1")

        assert usage.tenant_id == "tenant-1"
        assert usage.psychologists.active == 3
        assert usage.psychologists.limit == 15
        assert usage.patients.active == 120
        assert usage.storage.used_gb == 4.5
        assert usage.email.sent == 300
        assert usage.appointments.total == 87

    def test_dashboard_shape(self) -> None:
        raw = {
            "tenantId": "t1",
            "users": {"psychologists": {"active": 2, "limit": 15}},
            "patients": {"active": 30, "limit": 500},
            "storage": {"usedGB": 1.2, "limitGB": 50, "breakdown": {"attachments": 1.0}},
        }
        usage = normalize_usage(raw, "ignored")
        assert usage.tenant_id == "t1"
        assert usage.storage.attachments_gb == 1.0

    def test_empty_payload(self) -> None:
        usage = normalize_usage(None, "tenant-1")
        assert usage.patients.limit == 0
        assert usage.storage.used_gb == 0


class TestTenantSettings:
    def test_backend_shape(self) -> None:
        settings = normalize_tenant_settings(
            {
                "workingDays": ["MONDAY", "WEDNESDAY"],
                "workingHoursStart": "08:00",
                "workingHoursEnd": "16:00",
                "defaultAppointmentDuration": 45,
                "reminderEnabled": True,
                "reminderRules": ["24h", "30m"],
                "timezone": "Europe/Madrid",
            }
        )

        assert settings["working_hours"]["monday"] == {
            "enabled": True,
            "start_time": "08:00",
            "end_time": "16:00",
        }
        assert not settings["working_hours"]["tuesday"]["enabled"]
        assert settings["default_session_duration"] == 45
        assert [r["minutes_before"] for r in settings["reminder_rules"]] == [1440, 30]
        assert settings["locale"] == DEFAULT_LOCALE

    def test_frontend_shape(self) -> None:
        settings = normalize_tenant_settings(
            {
                "workingHours": {"friday": {"enabled": True, "startTime": "10:00"}},
                "reminderRules": [{"minutesBefore": 15, "enabled": True}],
            }
        )
        assert settings["working_hours"]["friday"]["start_time"] == "10:00"
        assert settings["reminder_rules"][0]["minutes_before"] == 15

    def test_empty_settings_defaults(self) -> None:
        settings = normalize_tenant_settings(None)
        assert settings["timezone"] == DEFAULT_TIMEZONE
        assert settings["reminder_rules"] == []
        assert not any(day["enabled"] for day in settings["working_hours"].values())

    def test_reminder_rules(self) -> None:
        assert parse_reminder_rule("2h") == 120
        assert parse_reminder_rule("45m") == 45
        assert parse_reminder_rule("soon") == DEFAULT_REMINDER_MINUTES
        assert format_reminder_rule(1440) == "24h"
        assert format_reminder_rule(45) == "45m"

    def test_settings_payload(self) -> None:
        working_hours = normalize_working_hours(
            {"workingDays": ["TUESDAY", "THURSDAY"], "workingHoursStart": "07:30"}
        )
        payload = build_tenant_settings_payload(
            {
                "working_hours": working_hours,
                "default_session_duration": 50,
                "timezone": "UTC",
                "reminder_rules": [
                    {"minutes_before": 60, "enabled": False},
                    {"minutes_before": 1440, "enabled": True},
                ],
            }
        )

        assert payload["workingDays"] == ["TUESDAY", "THURSDAY"]
        assert payload["workingHoursStart"] == "07:30"
        assert payload["defaultAppointmentDuration"] == 50
        assert payload["reminderEnabled"] is True
        assert payload["reminderRules"] == ["1h", "24h"]
        assert "locale" not in payload

    def test_payload_without_enabled_days(self) -> None:
        payload = build_tenant_settings_payload({"working_hours": normalize_working_hours(None)})
        assert payload["workingDays"] == []


class TestTenantsAndUsers:
    def test_normalize_user_defaults(self) -> None:
        user = normalize_user({"id": "u1"})
        assert user["isActive"] is True
        assert user["emailVerified"] is True
        assert "createdAt" in user

    def test_normalize_user_keeps_values(self) -> None:
        assert normalize_user({"isActive": False})["isActive"] is False

    def test_tenant_without_subscription(self) -> None:
        tenant = normalize_tenant({"id": "t1", "name": "Clinic"})
        assert tenant["subscription"] is None
        assert tenant["settings"]["timezone"] == DEFAULT_TIMEZONE

    def test_tenant_with_subscription(self, backend_subscription) -> None:
        tenant = normalize_tenant({"id": "t1", "subscription": backend_subscription})
        assert tenant["subscription"].tier == PlanTier.PROFESSIONAL

    def test_tenant_create_payload(self) -> None:
        payload = build_tenant_create_payload(
            {
                "clinicName": "Calm Mind",
                "slug": "calm-mind",
                "contactEmail": "info@calm.test",
                "firstName": "Ana",
                "lastName": "Ruiz",
                "email": "ana@calm.test",
                "password": "Secret123",
            }
        )
        assert payload["name"] == "Calm Mind"
        assert payload["email"] == "info@calm.test"
        assert payload["adminEmail"] == "ana@calm.test"
        assert payload["adminPassword"] == "Secret123"

    def test_extract_array(self) -> None:
        assert extract_array([{"id": 1}]) == [{"id": 1}]
        assert extract_array({"data": [{"id": 2}], "total": 1}) == [{"id": 2}]
        assert extract_array({"data": None}) == []
        assert extract_array(None) == []
