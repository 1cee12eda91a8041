"""
Tests for level ROI schedule.

Tests cover:
- Band selection by direct referral count
- Level bands 1, 2-5, 6-50 and levels outside every band
"""

from decimal import Decimal

import pytest

from compensation.config.compensation_config import LevelBand, LevelSchedule
from compensation.services.referral.level_schedule import ZERO_LEVEL_ROI, level_roi


AMOUNT = Decimal("1000")


class TestBelowThreshold:
    """Referring user with fewer than 5 direct referrals."""

    @pytest.mark.parametrize(
        "level,expected",
        [(1, "50"), (2, "20"), (5, "20"), (6, "5"), (50, "5")],
    )
    def test_bands(self, level, expected):
        assert level_roi(level, 4, AMOUNT).value == Decimal(expected)


class TestQualified:
    """Referring user with 5 or more direct referrals."""

    @pytest.mark.parametrize(
        "level,expected",
        [(1, "100"), (2, "50"), (5, "50"), (6, "20"), (50, "20")],
    )
    def test_bands(self, level, expected):
        assert level_roi(level, 5, AMOUNT).value == Decimal(expected)

    def test_percentage_reported(self):
        assert level_roi(3, 12, AMOUNT).percentage == Decimal("0.05")


class TestOutsideBands:
    """Levels and amounts that pay nothing."""

    @pytest.mark.parametrize("level", [0, -1, 51])
    def test_level_outside(self, level):
        assert level_roi(level, 5, AMOUNT) == ZERO_LEVEL_ROI

    def test_zero_amount(self):
        assert level_roi(1, 5, Decimal("0")) == ZERO_LEVEL_ROI


class TestCustomSchedule:
    """Injected schedules replace the defaults."""

    def test_custom_bands(self):
        schedule = LevelSchedule(
            qualifying_directs=2,
            below_threshold=[LevelBand(level_from=1, level_to=1, percentage=Decimal("0.01"))],
            qualified=[LevelBand(level_from=1, level_to=3, percentage=Decimal("0.03"))],
        )

        assert level_roi(1, 1, AMOUNT, schedule).value == Decimal("10")
        assert level_roi(3, 2, AMOUNT, schedule).value == Decimal("30")
        assert level_roi(4, 2, AMOUNT, schedule) == ZERO_LEVEL_ROI
