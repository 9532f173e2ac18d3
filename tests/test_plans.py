"""
Unit tests for the plan catalog and plan-change requests.
"""

from __future__ import annotations

import pytest

from clinic_dashboard.core.subscription.models import FeatureFlags, PlanTier
from clinic_dashboard.core.subscription.plans import (
    PLAN_DEFINITIONS,
    PLAN_FEATURE_ROWS,
    build_downgrade_request,
    build_upgrade_request,
    downgrade_payload,
    get_plan_definition,
    included_features,
    plan_card_action,
    plan_price,
    upgrade_payload,
)
from clinic_dashboard.utils.config import ERROR_MESSAGES


class TestCatalog:
    def test_three_public_plans(self) -> None:
        tiers = [plan["plan_type"] for plan in PLAN_DEFINITIONS]
        assert tiers == [PlanTier.BASIC, PlanTier.PROFESSIONAL, PlanTier.ENTERPRISE]

    def test_enterprise_includes_every_row(self) -> None:
        enterprise = get_plan_definition(PlanTier.ENTERPRISE)
        assert all(enterprise["features"][row] for row in PLAN_FEATURE_ROWS)

    def test_trial_is_not_listed(self) -> None:
        assert get_plan_definition(PlanTier.TRIAL) is None

    def test_plan_price(self) -> None:
        pro = get_plan_definition(PlanTier.PROFESSIONAL)
        assert plan_price(pro, annual=False) == "$799/month"
        assert plan_price(pro, annual=True) == "$649/month"
        assert plan_price(get_plan_definition(PlanTier.ENTERPRISE), annual=True) == "Custom"


class TestCardAction:
    @pytest.mark.parametrize(
        "plan_type, current, action",
        [
            (PlanTier.BASIC, PlanTier.BASIC, "current"),
            (PlanTier.ENTERPRISE, PlanTier.BASIC, "contact_sales"),
            (PlanTier.PROFESSIONAL, PlanTier.BASIC, "upgrade"),
            (PlanTier.PROFESSIONAL, PlanTier.TRIAL, "upgrade"),
            (PlanTier.BASIC, PlanTier.PROFESSIONAL, "change"),
        ],
    )
    def test_actions(self, plan_type, current, action) -> None:
        assert plan_card_action(plan_type, current)[0] == action


class TestIncludedFeatures:
    def test_default_flags(self) -> None:
        labels = included_features(FeatureFlags())
        assert "Dashboard" in labels
        assert "Clinical notes" not in labels

    def test_api_counts_at_read_level(self) -> None:
        flags = FeatureFlags()
        flags.api_access = "read"
        assert "API" in included_features(flags)


class TestUpgradeRequest:
    def test_professional_maps_to_pro(self) -> None:
        request = build_upgrade_request(PlanTier.PROFESSIONAL, annual=True)
        assert request == {"target_tier": "PRO", "billing_interval": "ANNUAL"}
        assert upgrade_payload(request) == {"newPlan": "PRO"}

    def test_enterprise_maps_to_custom(self) -> None:
        request = build_upgrade_request(PlanTier.ENTERPRISE)
        assert request["billing_interval"] == "MONTHLY"
        assert upgrade_payload(request) == {"newPlan": "CUSTOM"}


class TestDowngradeRequest:
    def test_valid_request(self) -> None:
        is_valid, errors, request = build_downgrade_request(PlanTier.BASIC, True, True)
        assert is_valid
        assert errors == []
        assert request["scheduled_for"] == "end_of_period"
        assert downgrade_payload(request) == {"newPlan": "BASIC"}

    def test_acknowledgments_required(self) -> None:
        is_valid, errors, _ = build_downgrade_request(PlanTier.BASIC, True, False)
        assert not is_valid
        assert errors == [ERROR_MESSAGES["downgrade_acknowledgment"]]

    def test_invalid_schedule(self) -> None:
        is_valid, errors, _ = build_downgrade_request(PlanTier.BASIC, True, True, "tomorrow")
        assert not is_valid
        assert "Invalid downgrade schedule" in errors[0]

    def test_other_targets_become_trial(self) -> None:
        _, _, request = build_downgrade_request(PlanTier.TRIAL, True, True, "immediate")
        assert request["target_tier"] == "TRIAL"
        assert downgrade_payload(request) == {"newPlan": "TRIAL"}
