"""Shared pytest fixtures for the test suite.

Fixture overview
----------------
make_subscription   — factory for a normalised Subscription (tier, status,
                      limits and feature overrides)
make_usage          — factory for UsageMetrics (seats, patients, storage)
basic_subscription  — active Basic plan: 1 psychologist, 50 patients, 2 GB
pro_subscription    — active Professional plan with clinical features on
backend_subscription — flat subscription payload as the backend sends it
backend_usage       — usage endpoint payload ({period, usage, activity})
fake_client         — MagicMock standing in for ApiClient (tenant "tenant-1")
now                 — fixed reference time, Wednesday 2026-03-11 10:00 UTC
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from unittest.mock import MagicMock

import pytest

os.environ.setdefault("LOG_TO_FILE", "false")

from clinic_dashboard.core.subscription.models import (  # noqa: E402
    FeatureFlags,
    PatientUsage,
    Plan,
    PlanTier,
    ResourceLimits,
    SeatUsage,
    StorageUsage,
    Subscription,
    SubscriptionStatus,
    UsageMetrics,
)
from clinic_dashboard.infrastructure.api.client import ApiClient  # noqa: E402

TIER_LIMITS = {
    PlanTier.TRIAL: ResourceLimits(max_psychologists=1, max_patients=10, storage_gb=1),
    PlanTier.BASIC: ResourceLimits(max_psychologists=1, max_patients=50, storage_gb=2),
    PlanTier.PROFESSIONAL: ResourceLimits(max_psychologists=15, max_patients=500, storage_gb=50),
    PlanTier.ENTERPRISE: ResourceLimits(max_psychologists=100, max_patients=10000, storage_gb=500),
}


# ── Subscription records ─────────────────────────────────────────────────────


@pytest.fixture
def make_subscription() -> Callable[..., Subscription]:
    def factory(
        tier: PlanTier = PlanTier.BASIC,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        limits: Optional[ResourceLimits] = None,
        trial_ends_at: Optional[str] = None,
        cancel_at_period_end: bool = False,
        current_period_end: str = "2026-04-01T00:00:00Z",
        **features: Any,
    ) -> Subscription:
        flags = FeatureFlags()
        for name, value in features.items():
            setattr(flags, name, value)
        plan = Plan(
            id=f"plan-{tier.value.lower()}",
            plan_type=tier,
            name=tier.value,
            limits=limits or TIER_LIMITS[tier],
            features=flags,
        )
        return Subscription(
            id="sub-1",
            tenant_id="tenant-1",
            plan=plan,
            status=status,
            current_period_start="2026-03-01T00:00:00Z",
            current_period_end=current_period_end,
            trial_ends_at=trial_ends_at,
            cancel_at_period_end=cancel_at_period_end,
        )

    return factory


@pytest.fixture
def basic_subscription(make_subscription) -> Subscription:
    return make_subscription(PlanTier.BASIC)


@pytest.fixture
def pro_subscription(make_subscription) -> Subscription:
    return make_subscription(
        PlanTier.PROFESSIONAL,
        clinical_notes=True,
        tasks=True,
        attachments=True,
        session_plans=True,
        advanced_analytics=True,
        data_export=True,
    )


@pytest.fixture
def make_usage() -> Callable[..., UsageMetrics]:
    def factory(
        psychologists: int = 0,
        seat_limit: Optional[int] = 1,
        patients: int = 0,
        patient_limit: int = 50,
        used_gb: float = 0.0,
        limit_gb: float = 2.0,
    ) -> UsageMetrics:
        return UsageMetrics(
            tenant_id="tenant-1",
            period_start="2026-03-01T00:00:00Z",
            period_end="2026-03-31T23:59:59Z",
            psychologists=SeatUsage(
                total=psychologists, active=psychologists, limit=seat_limit
            ),
            patients=PatientUsage(total=patients, active=patients, limit=patient_limit),
            storage=StorageUsage(used_gb=used_gb, limit_gb=limit_gb),
        )

    return factory


# ── Raw backend payloads ─────────────────────────────────────────────────────


@pytest.fixture
def backend_subscription() -> Dict[str, Any]:
    """Flat subscription record as stored by the backend (PRO plan)."""
    return {
        "id": "sub-42",
        "tenantId": "tenant-1",
        "planType": "PRO",
        "status": "ACTIVE",
        "seatsPsychologistsMax": 15,
        "maxActivePatients": 500,
        "storageGB": 50,
        "monthlyNotificationsLimit": 2000,
        "basePrice": "79.00",
        "pricePerSeat": "40.00",
        "featureClinicalNotes": True,
        "featureTasks": True,
        "featureAttachments": True,
        "featureAdvancedAnalytics": True,
        "featureWebPush": True,
        "featureCustomReports": False,
        "featureAPIAccess": False,
        "currentPeriodStart": "2026-03-01T00:00:00Z",
        "currentPeriodEnd": "2026-04-01T00:00:00Z",
        "cancelAt": None,
    }


@pytest.fixture
def backend_usage() -> Dict[str, Any]:
    return {
        "period": {"start": "2026-03-01T00:00:00Z", "end": "2026-03-31T23:59:59Z"},
        "usage": {
            "seats": {"used": 3, "limit": 15, "percentage": 20},
            "patients": {"active": 120, "limit": 500, "percentage": 24},
            "storage": {"usedGB": 4.5, "limitGB": 50, "percentage": 9},
            "notifications": {"sentThisMonth": 300, "limit": 2000, "percentage": 15},
        },
        "activity": {"appointmentsThisMonth": 87},
    }


# ── API client ───────────────────────────────────────────────────────────────


@pytest.fixture
def fake_client() -> MagicMock:
    client = MagicMock(spec=ApiClient)
    client.tenant_id = "tenant-1"
    client.refresh_token = "refresh-token"
    return client


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 11, 10, 0, tzinfo=timezone.utc)
