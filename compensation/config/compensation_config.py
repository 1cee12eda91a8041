"""Pydantic models for compensation configuration.

The engines take a CompensationConfig at construction time instead of
reading module constants, so tests and deployments can swap tables.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from compensation.config import business_constants as bc
from compensation.models.enums import RANK_ORDER, PackageType, Rank


class RateTable(BaseModel):
    """Daily ROI rate per rank."""

    model_config = ConfigDict(frozen=True)

    rates: dict[Rank, Decimal] = Field(
        default_factory=lambda: dict(bc.DAILY_RATE_BY_RANK),
        description="Daily rate (fraction) by rank",
    )

    @model_validator(mode="after")
    def check_all_ranks(self) -> "RateTable":
        """Every rank must have a non-negative rate."""
        missing = [rank.value for rank in RANK_ORDER if rank not in self.rates]
        if missing:
            raise ValueError(f"Rate table missing ranks: {', '.join(missing)}")
        if any(rate < 0 for rate in self.rates.values()):
            raise ValueError("Rates must be non-negative")
        return self

    def rate_for(self, rank: Rank) -> Decimal:
        """Daily rate for a rank."""
        return self.rates[rank]


class LevelBand(BaseModel):
    """Inclusive range of referral levels paying one percentage."""

    model_config = ConfigDict(frozen=True)

    level_from: int = Field(..., ge=1)
    level_to: int = Field(..., ge=1)
    percentage: Decimal = Field(..., ge=0, le=1)

    @model_validator(mode="after")
    def check_range(self) -> "LevelBand":
        """Band bounds must be ordered."""
        if self.level_to < self.level_from:
            raise ValueError(
                f"level_to ({self.level_to}) < level_from ({self.level_from})"
            )
        return self

    def covers(self, level: int) -> bool:
        """Check if level falls in this band."""
        return self.level_from <= level <= self.level_to


def _bands(rows: list[tuple[int, int, Decimal]]) -> list[LevelBand]:
    return [
        LevelBand(level_from=start, level_to=end, percentage=pct)
        for start, end, pct in rows
    ]


class LevelSchedule(BaseModel):
    """
    Level ROI schedule.

    Two ordered band lists, selected by the direct-referral count of the
    referring user.
    """

    model_config = ConfigDict(frozen=True)

    qualifying_directs: int = Field(default=bc.LEVEL_ROI_QUALIFYING_DIRECTS, ge=1)
    below_threshold: list[LevelBand] = Field(
        default_factory=lambda: _bands(bc.LEVEL_ROI_BELOW_THRESHOLD)
    )
    qualified: list[LevelBand] = Field(
        default_factory=lambda: _bands(bc.LEVEL_ROI_QUALIFIED)
    )

    @model_validator(mode="after")
    def check_ordered(self) -> "LevelSchedule":
        """Bands must be sorted and must not overlap."""
        for name, bands in (
            ("below_threshold", self.below_threshold),
            ("qualified", self.qualified),
        ):
            for previous, current in zip(bands, bands[1:]):
                if current.level_from <= previous.level_to:
                    raise ValueError(f"{name} bands overlap or are unordered")
        return self

    def bands_for(self, direct_referral_count: int) -> list[LevelBand]:
        """Band list for the given direct-referral count."""
        if direct_referral_count >= self.qualifying_directs:
            return self.qualified
        return self.below_threshold


class PlusStage(BaseModel):
    """One staged window of the REGULAR -> TMC_PLUS transition."""

    model_config = ConfigDict(frozen=True)

    tenure_from_days: int = Field(..., ge=0)
    tenure_to_days: int = Field(..., ge=0)
    required_directs: int = Field(..., ge=1)
    referral_max_tenure_days: int = Field(..., ge=0)

    def contains(self, tenure_days: int) -> bool:
        """Check if the evaluated user's tenure is inside the window."""
        return self.tenure_from_days <= tenure_days <= self.tenure_to_days


class CompensationConfig(BaseModel):
    """Complete configuration injected into every engine."""

    model_config = ConfigDict(frozen=True)

    # ROI accrual
    rate_table: RateTable = Field(default_factory=RateTable)
    daily_cap: dict[PackageType, Decimal] = Field(
        default_factory=lambda: dict(bc.DAILY_CAP)
    )
    tax_threshold: dict[PackageType, Decimal] = Field(
        default_factory=lambda: dict(bc.TAX_THRESHOLD)
    )
    tax_retained: Decimal = Field(default=bc.TAX_RETAINED, gt=0, le=1)

    # Investments
    min_investment: Decimal = Field(default=bc.MIN_INVESTMENT, gt=0)
    max_investment: Decimal = Field(default=bc.MAX_INVESTMENT, gt=0)
    yield_min_investment: Decimal = Field(default=bc.YIELD_MIN_INVESTMENT, gt=0)
    active_investment_cap: dict[PackageType, Decimal] = Field(
        default_factory=lambda: dict(bc.ACTIVE_INVESTMENT_CAP)
    )
    default_investment_cap: Decimal = Field(default=bc.DEFAULT_INVESTMENT_CAP, ge=0)
    liquidity_fee_rate: Decimal = Field(default=bc.LIQUIDITY_FEE_RATE, ge=0, lt=1)

    # Referral bonuses
    direct_bonus_rate: Decimal = Field(default=bc.DIRECT_BONUS_RATE, ge=0, le=1)
    signup_bonus: Decimal = Field(default=bc.SIGNUP_BONUS, ge=0)
    level_schedule: LevelSchedule = Field(default_factory=LevelSchedule)
    max_depth: int = Field(default=bc.MAX_TRAVERSAL_DEPTH, ge=1, le=1000)

    # Ranks
    plus_stages: list[PlusStage] = Field(
        default_factory=lambda: [
            PlusStage(
                tenure_from_days=start,
                tenure_to_days=end,
                required_directs=required,
                referral_max_tenure_days=max_tenure,
            )
            for start, end, required, max_tenure in bc.PLUS_STAGES
        ]
    )
    rank_required_connections: dict[Rank, int] = Field(
        default_factory=lambda: dict(bc.RANK_REQUIRED_CONNECTIONS)
    )

    # Rank rewards
    entry_rewards: dict[Rank, Decimal] = Field(
        default_factory=lambda: dict(bc.ENTRY_REWARDS)
    )
    monthly_rewards: dict[Rank, Decimal] = Field(
        default_factory=lambda: dict(bc.MONTHLY_REWARDS)
    )
    month_length_days: int = Field(default=bc.MONTH_LENGTH_DAYS, ge=1)
    monthly_catch_up_per_run: int | None = Field(
        default=bc.MONTHLY_CATCH_UP_PER_RUN, ge=1
    )

    @model_validator(mode="after")
    def check_package_tables(self) -> "CompensationConfig":
        """Per-package tables must cover every package type."""
        for name in ("daily_cap", "tax_threshold", "active_investment_cap"):
            table = getattr(self, name)
            missing = [p.value for p in PackageType if p not in table]
            if missing:
                raise ValueError(f"{name} missing package types: {', '.join(missing)}")
        if self.min_investment > self.max_investment:
            raise ValueError("min_investment exceeds max_investment")
        return self

    @model_validator(mode="after")
    def check_rank_tables(self) -> "CompensationConfig":
        """Every tier above TMC_PLUS needs a connection requirement."""
        for rank in RANK_ORDER[2:]:
            if rank not in self.rank_required_connections:
                raise ValueError(f"No connection requirement for {rank.value}")
        if not self.plus_stages:
            raise ValueError("At least one TMC_PLUS stage is required")
        return self


# Default configuration instance
default_config = CompensationConfig()
