"""
Unit tests for usage gauges and usage statistics.
"""

from __future__ import annotations

import math

import pytest

from clinic_dashboard.core.subscription.models import PlanTier, ResourceLimits
from clinic_dashboard.core.subscription.usage import (
    LEVEL_COLORS,
    format_gb,
    gauge_level,
    storage_level,
    usage_detail,
    usage_gauge,
    usage_headline,
    usage_level,
    usage_stats,
)


class TestUsageGauge:
    def test_low_usage_is_green_without_warning(self) -> None:
        gauge = usage_gauge(3, 10)
        assert gauge.percentage == pytest.approx(30)
        assert gauge.level == "green"
        assert not gauge.show_warning
        assert gauge.headline is None
        assert gauge.color == LEVEL_COLORS["green"]

    def test_warning_from_eighty_percent(self) -> None:
        gauge = usage_gauge(8, 10)
        assert gauge.level == "yellow"
        assert gauge.show_warning
        assert gauge.show_upgrade
        assert not gauge.upgrade_primary
        assert gauge.headline == "High usage detected"

    def test_near_limit_is_red_with_primary_upgrade(self) -> None:
        gauge = usage_gauge(9, 10)
        assert gauge.level == "red"
        assert gauge.upgrade_primary
        assert gauge.headline == "Near the limit!"

    def test_over_limit_is_capped(self) -> None:
        gauge = usage_gauge(12, 10)
        assert gauge.percentage == 100
        assert gauge.remaining == 0
        assert gauge.at_limit
        assert gauge.headline == "Limit reached!"

    def test_zero_limit_reads_as_empty(self) -> None:
        gauge = usage_gauge(5, 0)
        assert gauge.percentage == 0
        assert not gauge.show_warning


class TestLevels:
    @pytest.mark.parametrize(
        "percentage, level", [(0, "green"), (69.9, "green"), (70, "yellow"), (90, "red")]
    )
    def test_usage_level(self, percentage, level) -> None:
        assert usage_level(percentage) == level

    def test_gauge_level_uses_orange(self) -> None:
        assert gauge_level(75) == "orange"
        assert gauge_level(95) == "red"

    def test_storage_level(self) -> None:
        assert storage_level(50) == "normal"
        assert storage_level(80) == "near_limit"
        assert storage_level(95) == "critical"

    def test_headline_thresholds(self) -> None:
        assert usage_headline(79) is None
        assert usage_headline(100) == "Limit reached!"


class TestFormatting:
    def test_usage_detail_remaining(self) -> None:
        assert usage_detail(usage_gauge(8, 10), "patients") == "Only 2 patients left."

    def test_usage_detail_at_limit(self) -> None:
        assert usage_detail(usage_gauge(10, 10)) == "You cannot add more items."

    def test_format_gb(self) -> None:
        assert format_gb(0.5) == "512 MB"
        assert format_gb(12.34) == "12.3 GB"


class TestUsageStats:
    def test_missing_inputs(self, basic_subscription, make_usage) -> None:
        assert usage_stats(None, make_usage()) is None
        assert usage_stats(basic_subscription, None) is None

    def test_against_plan_limits(self, basic_subscription, make_usage) -> None:
        stats = usage_stats(basic_subscription, make_usage(patients=25, used_gb=1.0))
        assert stats["patients"] == {
            "current": 25,
            "limit": 50,
            "remaining": 25,
            "percentage": 50.0,
        }
        assert stats["storage"]["percentage"] == pytest.approx(50.0)

    def test_percentages_not_capped(self, basic_subscription, make_usage) -> None:
        stats = usage_stats(basic_subscription, make_usage(psychologists=2))
        assert stats["psychologists"]["percentage"] == 200.0

    def test_zero_limit_with_usage_is_full(self, make_subscription, make_usage) -> None:
        subscription = make_subscription(
            PlanTier.TRIAL, limits=ResourceLimits(max_psychologists=0, storage_gb=0)
        )
        stats = usage_stats(subscription, make_usage(psychologists=1, seat_limit=None))
        assert stats["psychologists"]["percentage"] == 100.0
        assert stats["storage"]["percentage"] == 0.0
        assert math.isinf(stats["psychologists"]["remaining"])
