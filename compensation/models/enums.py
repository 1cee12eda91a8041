"""
Enums for database models.
"""

from enum import Enum


class Rank(str, Enum):
    """
    Referral network rank.

    Members are declared in tier order; ranks only move forward.
    """

    REGULAR = "regular"
    TMC_PLUS = "tmc_plus"
    TMC_PRO = "tmc_pro"
    TMC_SMART = "tmc_smart"
    TMC_ROYAL = "tmc_royal"
    TMC_CHIEF = "tmc_chief"
    TMC_AMBASSADOR = "tmc_ambassador"

    @property
    def order(self) -> int:
        """Position in the tier order (REGULAR = 0)."""
        return RANK_ORDER.index(self)

    def next(self) -> "Rank | None":
        """Next tier, or None at the top."""
        index = self.order + 1
        return RANK_ORDER[index] if index < len(RANK_ORDER) else None

    def previous(self) -> "Rank | None":
        """Preceding tier, or None for REGULAR."""
        return RANK_ORDER[self.order - 1] if self.order > 0 else None

    def at_least(self, other: "Rank") -> bool:
        """Check if this rank is at or above another rank."""
        return self.order >= other.order


RANK_ORDER: tuple[Rank, ...] = tuple(Rank)


class PackageType(str, Enum):
    """Investment package type."""

    PRINCIPAL = "principal"
    YIELD = "yield"


class BonusKind(str, Enum):
    """Referral bonus kind."""

    DIRECT = "direct"
    LEVEL_ROI = "level_roi"
