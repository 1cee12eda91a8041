"""
Tests for configuration.

Tests cover:
- Settings validation (database URL, log level, production rules)
- CompensationConfig table validation
- Error categories used by the batch orchestrator
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import OperationalError

from compensation.config.compensation_config import (
    CompensationConfig,
    LevelBand,
    LevelSchedule,
    RateTable,
)
from compensation.config.settings import Settings
from compensation.models import PackageType, Rank
from compensation.utils.exceptions import (
    CapExceededError,
    IntegrityError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
    is_transient,
    skips_user,
)


class TestSettings:
    """Test environment settings."""

    def test_rejects_unknown_database(self):
        with pytest.raises(PydanticValidationError):
            Settings(database_url="mysql://user@localhost/db")

    def test_log_level_normalized(self):
        assert Settings(environment="test", log_level="debug").log_level == "DEBUG"

    def test_rejects_unknown_log_level(self):
        with pytest.raises(PydanticValidationError):
            Settings(environment="test", log_level="verbose")

    def test_debug_forbidden_in_production(self):
        with pytest.raises(PydanticValidationError):
            Settings(environment="production", debug=True)

    def test_batch_concurrency_bounds(self):
        with pytest.raises(PydanticValidationError):
            Settings(environment="test", batch_concurrency=0)


class TestCompensationConfig:
    """Test compensation tables."""

    def test_defaults(self, config):
        assert config.daily_cap[PackageType.YIELD] == Decimal("50000")
        assert config.active_investment_cap[PackageType.PRINCIPAL] == Decimal("10000")
        assert config.rank_required_connections[Rank.TMC_AMBASSADOR] == 8
        assert len(config.plus_stages) == 3

    def test_frozen(self, config):
        with pytest.raises(PydanticValidationError):
            config.direct_bonus_rate = Decimal("0.5")

    def test_package_table_must_be_complete(self):
        with pytest.raises(PydanticValidationError):
            CompensationConfig(daily_cap={PackageType.PRINCIPAL: Decimal("1")})

    def test_bounds_ordered(self):
        with pytest.raises(PydanticValidationError):
            CompensationConfig(min_investment=Decimal("500"), max_investment=Decimal("100"))

    def test_rate_table_must_cover_ranks(self):
        with pytest.raises(PydanticValidationError):
            RateTable(rates={Rank.REGULAR: Decimal("0.01")})

    def test_overlapping_bands_rejected(self):
        with pytest.raises(PydanticValidationError):
            LevelSchedule(
                below_threshold=[
                    LevelBand(level_from=1, level_to=3, percentage=Decimal("0.05")),
                    LevelBand(level_from=3, level_to=5, percentage=Decimal("0.02")),
                ]
            )

    def test_band_range_ordered(self):
        with pytest.raises(PydanticValidationError):
            LevelBand(level_from=5, level_to=2, percentage=Decimal("0.01"))


class TestErrorCategories:
    """Test error categories."""

    def test_transient(self):
        assert is_transient(TransientStoreError("x"))
        assert is_transient(OperationalError("SELECT 1", {}, Exception("gone")))
        assert not is_transient(ValidationError("x"))

    def test_skips_user(self):
        assert skips_user(IntegrityError("x"))
        assert skips_user(NotFoundError("x"))
        assert not skips_user(TransientStoreError("x"))

    def test_context_kept(self):
        error = CapExceededError("over", user_id=7)
        assert error.message == "over"
        assert error.context == {"user_id": 7}
