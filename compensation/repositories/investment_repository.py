"""
Investment repository.

Data access layer for Investment model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from compensation.models.enums import PackageType
from compensation.models.investment import Investment
from compensation.repositories.base import BaseRepository


class InvestmentRepository(BaseRepository[Investment]):
    """Investment repository with accrual queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize investment repository."""
        super().__init__(Investment, session)

    async def find_for_user(
        self,
        user_id: int,
        active_only: bool = False,
        package_type: PackageType | None = None,
        for_update: bool = False,
    ) -> list[Investment]:
        """
        Get investments of a user.

        Args:
            user_id: Owner user ID
            active_only: Only active, uncapped investments
            package_type: Optional package filter
            for_update: Lock rows (SELECT FOR UPDATE)

        Returns:
            Investments ordered by ID
        """
        stmt = select(Investment).where(Investment.user_id == user_id)
        if active_only:
            stmt = stmt.where(
                Investment.is_active.is_(True),
                Investment.is_capped.is_(False),
            )
        if package_type is not None:
            stmt = stmt.where(Investment.package_type == package_type)
        stmt = stmt.order_by(Investment.id)
        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_active_total(
        self, user_id: int, package_type: PackageType
    ) -> Decimal:
        """
        Sum of active, uncapped principal for one package class.

        Args:
            user_id: Owner user ID
            package_type: Package class

        Returns:
            Total principal
        """
        stmt = select(func.coalesce(func.sum(Investment.amount), 0)).where(
            Investment.user_id == user_id,
            Investment.package_type == package_type,
            Investment.is_active.is_(True),
            Investment.is_capped.is_(False),
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def get_unsettled_ids(self, limit: int = 500) -> list[int]:
        """
        Get investments whose referral bonuses are not fully credited.

        Args:
            limit: Max number of IDs

        Returns:
            Investment IDs, oldest first
        """
        stmt = (
            select(Investment.id)
            .where(Investment.bonuses_settled.is_(False))
            .order_by(Investment.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
