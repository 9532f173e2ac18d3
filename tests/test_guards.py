"""
Unit tests for role, subscription and limit guards.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest

from clinic_dashboard.core.subscription.guards import (
    can_access_clinical_notes,
    can_add_patient,
    can_add_psychologist,
    can_add_seats,
    can_create_records,
    can_delete_patient,
    can_downgrade_to,
    can_edit_appointment,
    can_manage_subscription,
    can_manage_users,
    can_upgrade,
    can_upgrade_to,
    can_upload_file,
    get_plan_display_name,
    get_remaining_patients,
    get_remaining_seats,
    get_remaining_storage_gb,
    get_status_color,
    get_status_display_name,
    has_exceeded_limit,
    is_active_appointment,
    is_approaching_limit,
    is_feature_available,
    is_overdue_task,
    is_subscription_active,
    is_subscription_degraded,
    is_user_role,
    parse_datetime,
    subscription_status_flags,
)
from clinic_dashboard.core.subscription.models import PlanTier, SubscriptionStatus, UserRole

ADMIN = {"id": "u1", "role": "TENANT_ADMIN"}
PSYCHOLOGIST = {"id": "u2", "role": "PSYCHOLOGIST"}
ASSISTANT = {"id": "u3", "role": "ASSISTANT"}


class TestRoleGuards:
    def test_clinical_notes_exclude_assistants(self) -> None:
        assert can_access_clinical_notes(ADMIN)
        assert can_access_clinical_notes(PSYCHOLOGIST)
        assert not can_access_clinical_notes(ASSISTANT)

    def test_admin_only_actions(self) -> None:
        for guard in (can_manage_users, can_manage_subscription, can_delete_patient):
            assert guard(ADMIN)
            assert not guard(PSYCHOLOGIST)
            assert not guard(ASSISTANT)

    def test_edit_appointment_everyone_but_assistants(self) -> None:
        assert can_edit_appointment(ADMIN)
        assert can_edit_appointment(PSYCHOLOGIST)
        assert not can_edit_appointment(ASSISTANT)

    def test_missing_user_is_denied(self) -> None:
        assert not can_manage_users(None)
        assert not can_edit_appointment(None)
        assert not can_access_clinical_notes({})

    def test_enum_roles_accepted(self) -> None:
        assert can_manage_users({"role": UserRole.TENANT_ADMIN})

    def test_is_user_role(self) -> None:
        assert is_user_role("PSYCHOLOGIST")
        assert not is_user_role("SUPERADMIN")


class TestRecordGuards:
    def test_parse_datetime_with_z_suffix(self) -> None:
        parsed = parse_datetime("2026-03-11T10:00:00Z")
        assert parsed == datetime(2026, 3, 11, 10, 0, tzinfo=timezone.utc)

    def test_parse_datetime_naive_is_utc(self) -> None:
        assert parse_datetime("2026-03-11T10:00:00").tzinfo == timezone.utc

    def test_parse_datetime_invalid(self) -> None:
        assert parse_datetime("not a date") is None
        assert parse_datetime(None) is None

    def test_active_appointment_statuses(self) -> None:
        assert is_active_appointment("SCHEDULED")
        assert is_active_appointment("CONFIRMED")
        assert not is_active_appointment("CANCELLED")
        assert not is_active_appointment("COMPLETED")

    def test_overdue_task(self, now) -> None:
        assert is_overdue_task({"dueDate": "2026-03-10T00:00:00Z", "status": "PENDING"}, now)
        assert not is_overdue_task({"dueDate": "2026-03-12T00:00:00Z", "status": "PENDING"}, now)

    def test_completed_or_undated_task_never_overdue(self, now) -> None:
        assert not is_overdue_task({"dueDate": "2026-03-01T00:00:00Z", "status": "COMPLETED"}, now)
        assert not is_overdue_task({"status": "PENDING"}, now)


class TestFeatureFlags:
    def test_enabled_feature(self, pro_subscription) -> None:
        assert is_feature_available("clinical_notes", pro_subscription)

    def test_disabled_feature(self, basic_subscription) -> None:
        assert not is_feature_available("clinical_notes", basic_subscription)

    def test_missing_subscription(self) -> None:
        assert not is_feature_available("dashboard", None)

    def test_unknown_feature(self, pro_subscription) -> None:
        assert not is_feature_available("time_travel", pro_subscription)

    def test_api_access_requires_full_level(self, make_subscription) -> None:
        assert not is_feature_available("api_access", make_subscription(api_access="read"))
        assert is_feature_available("api_access", make_subscription(api_access="full"))


class TestSubscriptionStatus:
    @pytest.mark.parametrize(
        "status, allowed",
        [
            (SubscriptionStatus.TRIAL, True),
            (SubscriptionStatus.ACTIVE, True),
            (SubscriptionStatus.PAST_DUE, False),
            (SubscriptionStatus.SUSPENDED, False),
            (SubscriptionStatus.CANCELED, False),
            (SubscriptionStatus.ARCHIVED, False),
        ],
    )
    def test_can_create_records(self, make_subscription, status, allowed) -> None:
        assert can_create_records(make_subscription(status=status)) is allowed
        assert is_subscription_active(make_subscription(status=status)) is allowed

    @pytest.mark.parametrize(
        "status, degraded",
        [
            (SubscriptionStatus.ACTIVE, False),
            (SubscriptionStatus.PAST_DUE, True),
            (SubscriptionStatus.SUSPENDED, True),
            (SubscriptionStatus.CANCELED, False),
        ],
    )
    def test_degraded(self, make_subscription, status, degraded) -> None:
        assert is_subscription_degraded(make_subscription(status=status)) is degraded

    def test_status_flags(self, make_subscription) -> None:
        flags = subscription_status_flags(make_subscription(status=SubscriptionStatus.PAST_DUE))
        assert flags["is_past_due"]
        assert not flags["can_create_records"]

    def test_status_flags_without_subscription(self) -> None:
        assert not any(subscription_status_flags(None).values())


class TestLimitCheckers:
    def test_seat_available(self, make_usage) -> None:
        assert can_add_psychologist(make_usage(psychologists=0, seat_limit=1))
        assert not can_add_psychologist(make_usage(psychologists=1, seat_limit=1))

    def test_unlimited_seats(self, make_usage) -> None:
        usage = make_usage(psychologists=40, seat_limit=None)
        assert can_add_psychologist(usage)
        assert get_remaining_seats(usage) == math.inf

    def test_patient_limit(self, make_usage) -> None:
        assert can_add_patient(make_usage(patients=49, patient_limit=50))
        assert not can_add_patient(make_usage(patients=50, patient_limit=50))

    def test_upload_uses_decimal_gigabytes(self, make_usage) -> None:
        usage = make_usage(used_gb=1.5, limit_gb=2.0)
        assert can_upload_file(usage, 500_000_000)
        assert not can_upload_file(usage, 500_000_001)

    def test_remaining_never_negative(self, make_usage) -> None:
        usage = make_usage(psychologists=3, seat_limit=1, patients=60, used_gb=3.0)
        assert get_remaining_seats(usage) == 0
        assert get_remaining_patients(usage) == 0
        assert get_remaining_storage_gb(usage) == 0.0

    def test_approaching_limit(self) -> None:
        assert is_approaching_limit(80, 100)
        assert not is_approaching_limit(79, 100)
        assert is_approaching_limit(5, 10, threshold=50)

    def test_zero_limit_approaching_once_used(self) -> None:
        assert is_approaching_limit(1, 0)
        assert not is_approaching_limit(0, 0)

    def test_exceeded_limit(self) -> None:
        assert has_exceeded_limit(10, 10)
        assert not has_exceeded_limit(9, 10)


class TestPlanComparison:
    def test_tier_order(self) -> None:
        assert can_upgrade_to(PlanTier.BASIC, PlanTier.PROFESSIONAL)
        assert not can_upgrade_to(PlanTier.PROFESSIONAL, PlanTier.BASIC)
        assert can_downgrade_to(PlanTier.ENTERPRISE, PlanTier.TRIAL)
        assert not can_downgrade_to(PlanTier.BASIC, PlanTier.BASIC)

    def test_can_upgrade_below_enterprise(self, make_subscription) -> None:
        assert can_upgrade(make_subscription(PlanTier.TRIAL))
        assert can_upgrade(make_subscription(PlanTier.PROFESSIONAL))
        assert not can_upgrade(make_subscription(PlanTier.ENTERPRISE))
        assert not can_upgrade(None)

    def test_extra_seats_only_on_professional(
        self, basic_subscription, pro_subscription, make_usage
    ) -> None:
        usage = make_usage(psychologists=3, seat_limit=15)
        assert can_add_seats(pro_subscription, usage)
        assert not can_add_seats(basic_subscription, usage)
        assert not can_add_seats(pro_subscription, make_usage(psychologists=15, seat_limit=15))

    def test_display_names(self) -> None:
        assert get_plan_display_name(PlanTier.PROFESSIONAL) == "Professional"
        assert get_status_display_name(SubscriptionStatus.PAST_DUE) == "Payment Pending"

    def test_status_colors(self) -> None:
        assert get_status_color("ACTIVE") == "success"
        assert get_status_color(SubscriptionStatus.PAST_DUE) == "warning"
        assert get_status_color("SUSPENDED") == "destructive"
        assert get_status_color("SOMETHING_ELSE") == "secondary"
