"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from compensation.models.base import Base
from compensation.models.bonus_record import BonusRecord
from compensation.models.enums import RANK_ORDER, BonusKind, PackageType, Rank
from compensation.models.investment import Investment
from compensation.models.rank_reward import RankRewardRecord
from compensation.models.user import User


__all__ = [
    "Base",
    "BonusKind",
    "BonusRecord",
    "Investment",
    "PackageType",
    "RANK_ORDER",
    "Rank",
    "RankRewardRecord",
    "User",
]
