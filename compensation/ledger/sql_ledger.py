"""
SQLAlchemy ledger.

LedgerAccessor implementation over the async repositories. One AsyncSession
per transaction; driver failures surface as TransientStoreError.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import IntegrityError as SAIntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from compensation.ledger.accessor import (
    ALL_INVESTMENTS,
    InvestmentFilter,
    LedgerAccessor,
    LedgerUnitOfWork,
)
from compensation.models.bonus_record import BonusRecord
from compensation.models.enums import BonusKind, PackageType, Rank
from compensation.models.investment import Investment
from compensation.models.rank_reward import RankRewardRecord
from compensation.models.user import User
from compensation.repositories import (
    BonusRecordRepository,
    InvestmentRepository,
    RankRewardRepository,
    UserRepository,
)
from compensation.utils.exceptions import (
    STORE_TRANSIENT,
    IntegrityError,
    NotFoundError,
    TransientStoreError,
)


class SqlUnitOfWork(LedgerUnitOfWork):
    """Unit of work bound to one AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize unit of work.

        Args:
            session: Async database session with an open transaction
        """
        self.session = session
        self.users = UserRepository(session)
        self.investments = InvestmentRepository(session)
        self.bonus_records = BonusRecordRepository(session)
        self.rank_rewards = RankRewardRepository(session)

    async def get_user(self, user_id: int, for_update: bool = False) -> User:
        user = await self.users.get_by_id(user_id, for_update=for_update)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)
        return user

    async def save_user(self, user: User) -> User:
        return await self.users.save(user)

    async def find_investments(
        self, user_id: int, filter: InvestmentFilter = ALL_INVESTMENTS
    ) -> list[Investment]:
        return await self.investments.find_for_user(
            user_id,
            active_only=filter.active_only,
            package_type=filter.package_type,
        )

    async def get_investment(self, investment_id: int) -> Investment:
        investment = await self.investments.get_by_id(investment_id)
        if investment is None:
            raise NotFoundError(
                f"Investment {investment_id} not found",
                investment_id=investment_id,
            )
        return investment

    async def save_investment(self, investment: Investment) -> Investment:
        if investment.id is None:
            return await self.investments.add(investment)
        return await self.investments.save(investment)

    async def active_total(self, user_id: int, package_type: PackageType) -> Decimal:
        return await self.investments.get_active_total(user_id, package_type)

    async def list_unsettled_investment_ids(self, limit: int = 500) -> list[int]:
        return await self.investments.get_unsettled_ids(limit=limit)

    async def find_downline(self, user_id: int) -> list[User]:
        return await self.users.get_direct_referrals(user_id)

    async def count_direct(self, user_id: int) -> int:
        return await self.users.count_direct_referrals(user_id)

    async def bonus_exists(
        self,
        investment_id: int,
        kind: BonusKind,
        level: int,
        recipient_id: int,
    ) -> bool:
        return await self.bonus_records.tag_exists(
            investment_id, kind, level, recipient_id
        )

    async def add_bonus_record(self, record: BonusRecord) -> BonusRecord:
        return await self.bonus_records.add(record)

    async def get_rank_reward(self, user_id: int, rank: Rank) -> RankRewardRecord | None:
        return await self.rank_rewards.get_for_rank(user_id, rank)

    async def save_rank_reward(self, record: RankRewardRecord) -> RankRewardRecord:
        if record.id is None:
            return await self.rank_rewards.add(record)
        return await self.rank_rewards.save(record)


class SqlLedger(LedgerAccessor):
    """
    Ledger backed by SQLAlchemy async sessions.

    Example:
        ledger = SqlLedger(async_session_maker)
        async with ledger.transaction() as uow:
            user = await uow.get_user(1, for_update=True)
            user.balance += Decimal("10")
            await uow.save_user(user)
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        """
        Initialize ledger.

        Args:
            session_maker: Session factory (see compensation.config.database)
        """
        self.session_maker = session_maker

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlUnitOfWork]:
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    yield SqlUnitOfWork(session)
        except SAIntegrityError as e:
            logger.error(f"Ledger constraint violation: {e.orig}")
            raise IntegrityError(f"Constraint violation: {e.orig}") from e
        except STORE_TRANSIENT as e:
            logger.warning(f"Ledger store failure: {e}")
            raise TransientStoreError(f"Ledger store failure: {e}") from e

    async def list_active_user_ids(self) -> list[int]:
        async with self.transaction() as uow:
            return await uow.users.get_active_user_ids()
