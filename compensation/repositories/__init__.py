"""
Repositories.

Data access layer over the SQLAlchemy models.
"""

from compensation.repositories.base import BaseRepository
from compensation.repositories.bonus_record_repository import BonusRecordRepository
from compensation.repositories.investment_repository import InvestmentRepository
from compensation.repositories.rank_reward_repository import RankRewardRepository
from compensation.repositories.user_repository import UserRepository


__all__ = [
    "BaseRepository",
    "BonusRecordRepository",
    "InvestmentRepository",
    "RankRewardRepository",
    "UserRepository",
]
