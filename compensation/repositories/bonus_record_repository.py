"""
Bonus record repository.

Data access layer for BonusRecord model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.bonus_record import BonusRecord
from compensation.models.enums import BonusKind
from compensation.repositories.base import BaseRepository


class BonusRecordRepository(BaseRepository[BonusRecord]):
    """Bonus record repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize bonus record repository."""
        super().__init__(BonusRecord, session)

    async def tag_exists(
        self,
        investment_id: int,
        kind: BonusKind,
        level: int,
        recipient_id: int,
    ) -> bool:
        """
        Check if a bonus with this idempotency tag was already credited.

        Args:
            investment_id: Triggering investment
            kind: Bonus kind
            level: Referral level
            recipient_id: Credited user

        Returns:
            True if already credited
        """
        return await self.exists(
            investment_id=investment_id,
            kind=kind,
            level=level,
            recipient_id=recipient_id,
        )
