"""
Level ROI schedule.

Maps (level, direct referral count, amount) to a percentage and value
using the configured band lists.
"""

from dataclasses import dataclass
from decimal import Decimal

from compensation.config.compensation_config import LevelSchedule
from compensation.services.base_service import to_money


@dataclass(frozen=True)
class LevelROI:
    """Level ROI percentage and value."""
    percentage: Decimal
    value: Decimal


ZERO_LEVEL_ROI = LevelROI(percentage=Decimal("0"), value=Decimal("0"))


def level_roi(
    level: int,
    direct_referral_count: int,
    amount: Decimal,
    schedule: LevelSchedule | None = None,
) -> LevelROI:
    """
    Level ROI for one referral level.

    The band list is chosen by the referring user's direct referral count
    (qualified at schedule.qualifying_directs or more). Levels outside every
    band pay nothing.

    Args:
        level: Distance from the referring user (1 = direct)
        direct_referral_count: Referring user's direct referrals
        amount: Investment amount
        schedule: Level schedule (defaults to the business constants)

    Returns:
        LevelROI(percentage, value)

    Example:
        >>> level_roi(1, 5, Decimal("1000")).value
        Decimal('100.00000000')
    """
    schedule = schedule or LevelSchedule()
    if level < 1 or amount <= 0:
        return ZERO_LEVEL_ROI

    for band in schedule.bands_for(direct_referral_count):
        if band.covers(level):
            return LevelROI(
                percentage=band.percentage,
                value=to_money(amount * band.percentage),
            )
    return ZERO_LEVEL_ROI
