"""
Business logic constants for the compensation engine.

Default values for rates, caps, reward tables and rank criteria.
Engines never read these directly: they receive a CompensationConfig
built from them (see compensation_config.py).
"""

from decimal import Decimal

from compensation.models.enums import PackageType, Rank


# Daily ROI rate by rank (fraction of principal)
DAILY_RATE_BY_RANK: dict[Rank, Decimal] = {
    Rank.REGULAR: Decimal("0.006"),
    Rank.TMC_PLUS: Decimal("0.008"),
    Rank.TMC_PRO: Decimal("0.01"),
    Rank.TMC_SMART: Decimal("0.01"),
    Rank.TMC_ROYAL: Decimal("0.01"),
    Rank.TMC_CHIEF: Decimal("0.01"),
    Rank.TMC_AMBASSADOR: Decimal("0.01"),
}

# Daily return ceiling per investment
DAILY_CAP: dict[PackageType, Decimal] = {
    PackageType.PRINCIPAL: Decimal("20000"),
    PackageType.YIELD: Decimal("50000"),
}

# Balance level at which the period's return is taxed
TAX_THRESHOLD: dict[PackageType, Decimal] = {
    PackageType.PRINCIPAL: Decimal("20000"),
    PackageType.YIELD: Decimal("50000"),
}

# Share of a taxed return the user keeps (25% tax)
TAX_RETAINED = Decimal("0.75")

# Investment bounds
MIN_INVESTMENT = Decimal("50")
MAX_INVESTMENT = Decimal("10000")
YIELD_MIN_INVESTMENT = Decimal("1000")

# Ceilings on the active total per package class
ACTIVE_INVESTMENT_CAP: dict[PackageType, Decimal] = {
    PackageType.PRINCIPAL: Decimal("10000"),
    PackageType.YIELD: Decimal("25000"),
}

# Default auto-reinvest ceiling for new users
DEFAULT_INVESTMENT_CAP = Decimal("10000")

# Fee retained on every new investment
LIQUIDITY_FEE_RATE = Decimal("0.01")

# Referral bonuses
DIRECT_BONUS_RATE = Decimal("0.20")
SIGNUP_BONUS = Decimal("10")
LEVEL_ROI_QUALIFYING_DIRECTS = 5

# Level ROI bands: (level_from, level_to, percentage)
LEVEL_ROI_BELOW_THRESHOLD: list[tuple[int, int, Decimal]] = [
    (1, 1, Decimal("0.05")),
    (2, 5, Decimal("0.02")),
    (6, 50, Decimal("0.005")),
]
LEVEL_ROI_QUALIFIED: list[tuple[int, int, Decimal]] = [
    (1, 1, Decimal("0.10")),
    (2, 5, Decimal("0.05")),
    (6, 50, Decimal("0.02")),
]

# Referral graph traversal bound
MAX_TRAVERSAL_DEPTH = 50

# TMC_PLUS staged windows:
# (tenure_from_days, tenure_to_days, required_directs, referral_max_tenure_days)
PLUS_STAGES: list[tuple[int, int, int, int]] = [
    (0, 30, 5, 30),
    (31, 90, 8, 60),
    (91, 180, 10, 90),
]

# Distinct direct connections whose subtree holds the preceding tier
RANK_REQUIRED_CONNECTIONS: dict[Rank, int] = {
    Rank.TMC_PRO: 4,
    Rank.TMC_SMART: 5,
    Rank.TMC_ROYAL: 6,
    Rank.TMC_CHIEF: 7,
    Rank.TMC_AMBASSADOR: 8,
}

# One-time reward on entering a tier
ENTRY_REWARDS: dict[Rank, Decimal] = {
    Rank.TMC_PLUS: Decimal("500"),
    Rank.TMC_PRO: Decimal("2000"),
    Rank.TMC_SMART: Decimal("5000"),
    Rank.TMC_ROYAL: Decimal("50000"),
    Rank.TMC_CHIEF: Decimal("200000"),
    Rank.TMC_AMBASSADOR: Decimal("1000000"),
}

# Monthly stipend per tier held
MONTHLY_REWARDS: dict[Rank, Decimal] = {
    Rank.TMC_SMART: Decimal("1000"),
    Rank.TMC_ROYAL: Decimal("5000"),
    Rank.TMC_CHIEF: Decimal("10000"),
    Rank.TMC_AMBASSADOR: Decimal("30000"),
}

MONTH_LENGTH_DAYS = 30
# Bound on months paid per tier and run (None pays every due month)
MONTHLY_CATCH_UP_PER_RUN: int | None = None
