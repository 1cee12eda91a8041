"""
Ledger accessor interface.

Abstracts the data store behind per-entity transactions. Engines only
talk to a LedgerUnitOfWork obtained from LedgerAccessor.transaction().
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from decimal import Decimal

from compensation.models.bonus_record import BonusRecord
from compensation.models.enums import BonusKind, PackageType, Rank
from compensation.models.investment import Investment
from compensation.models.rank_reward import RankRewardRecord
from compensation.models.user import User


@dataclass(frozen=True)
class InvestmentFilter:
    """
    Investment query filter.

    Attributes:
        active_only: Only active, uncapped investments
        package_type: Restrict to one package class
    """
    active_only: bool = False
    package_type: PackageType | None = None


ALL_INVESTMENTS = InvestmentFilter()
ACTIVE_INVESTMENTS = InvestmentFilter(active_only=True)


class LedgerUnitOfWork(ABC):
    """
    Operations available inside one ledger transaction.

    Everything done through a unit of work is committed together when the
    transaction block exits normally and rolled back when it raises.
    """

    @abstractmethod
    async def get_user(self, user_id: int, for_update: bool = False) -> User:
        """
        Load a user.

        Raises:
            NotFoundError: If the user does not exist
        """

    @abstractmethod
    async def save_user(self, user: User) -> User:
        """Persist user changes."""

    @abstractmethod
    async def find_investments(
        self, user_id: int, filter: InvestmentFilter = ALL_INVESTMENTS
    ) -> list[Investment]:
        """Investments of a user, ordered by ID."""

    @abstractmethod
    async def get_investment(self, investment_id: int) -> Investment:
        """
        Load an investment.

        Raises:
            NotFoundError: If the investment does not exist
        """

    @abstractmethod
    async def save_investment(self, investment: Investment) -> Investment:
        """Persist a new or changed investment (ID assigned on insert)."""

    @abstractmethod
    async def active_total(self, user_id: int, package_type: PackageType) -> Decimal:
        """Active, uncapped principal of one package class."""

    @abstractmethod
    async def list_unsettled_investment_ids(self, limit: int = 500) -> list[int]:
        """Investments whose referral bonuses are not fully credited."""

    @abstractmethod
    async def find_downline(self, user_id: int) -> list[User]:
        """Direct children of a user in the referral forest."""

    @abstractmethod
    async def count_direct(self, user_id: int) -> int:
        """Number of direct referrals."""

    @abstractmethod
    async def bonus_exists(
        self,
        investment_id: int,
        kind: BonusKind,
        level: int,
        recipient_id: int,
    ) -> bool:
        """Check the idempotency tag of a referral bonus."""

    @abstractmethod
    async def add_bonus_record(self, record: BonusRecord) -> BonusRecord:
        """Insert a referral bonus record."""

    @abstractmethod
    async def get_rank_reward(self, user_id: int, rank: Rank) -> RankRewardRecord | None:
        """Reward record of one tier, or None if never entered."""

    @abstractmethod
    async def save_rank_reward(self, record: RankRewardRecord) -> RankRewardRecord:
        """Persist a new or changed rank reward record."""


class LedgerAccessor(ABC):
    """Factory of ledger transactions."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[LedgerUnitOfWork]:
        """
        Open a transaction.

        Usage:
            async with ledger.transaction() as uow:
                user = await uow.get_user(user_id, for_update=True)
                ...

        Raises:
            TransientStoreError: If the store fails (connect, lock, commit)
        """

    @abstractmethod
    async def list_active_user_ids(self) -> list[int]:
        """IDs of all active users, ascending."""

