"""
Rank reward repository.

Data access layer for RankRewardRecord model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.enums import Rank
from compensation.models.rank_reward import RankRewardRecord
from compensation.repositories.base import BaseRepository


class RankRewardRepository(BaseRepository[RankRewardRecord]):
    """Rank reward repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize rank reward repository."""
        super().__init__(RankRewardRecord, session)

    async def get_for_rank(
        self, user_id: int, rank: Rank
    ) -> RankRewardRecord | None:
        """
        Get the reward record of one tier.

        Args:
            user_id: Rank holder
            rank: Tier

        Returns:
            Record or None if the tier was never entered
        """
        return await self.get_by(user_id=user_id, rank=rank)
