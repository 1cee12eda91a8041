"""
User repository.

Data access layer for User model, including referral tree queries.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.user import User
from compensation.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with referral queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_direct_referrals(self, user_id: int) -> list[User]:
        """
        Get direct (level 1) referrals.

        Args:
            user_id: Referrer user ID

        Returns:
            Users whose referrer is user_id, ordered by ID
        """
        return await self.find_by(referrer_id=user_id)

    async def count_direct_referrals(self, user_id: int) -> int:
        """
        Count direct referrals.

        Args:
            user_id: Referrer user ID

        Returns:
            Number of direct referrals
        """
        return await self.count(referrer_id=user_id)

    async def get_active_user_ids(self) -> list[int]:
        """
        Get IDs of all active users.

        Returns:
            Active user IDs in ascending order
        """
        stmt = select(User.id).where(User.is_active.is_(True)).order_by(User.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
