"""
Reward scheduler.

Disburses rank rewards:
- one-time entry reward per tier, gated by RankRewardRecord.entry_reward_paid
- monthly stipend for every tier held at TMC_SMART and above, one payment
  per elapsed 30-day window while the tier was the current one

A run pays every month that has fallen due, each as its own payment, so
missed runs are recovered on the next one. monthly_catch_up_per_run can
bound the months paid per tier and run.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from compensation.ledger.accessor import LedgerUnitOfWork
from compensation.models.enums import RANK_ORDER, Rank
from compensation.models.rank_reward import RankRewardRecord
from compensation.models.user import User
from compensation.services.base_service import BaseService
from compensation.utils.datetime_utils import days_between, utc_now


@dataclass(frozen=True)
class RewardPayment:
    """
    Rank reward credited to a user.

    Attributes:
        user_id: Rank holder
        rank: Tier the reward belongs to
        kind: "entry" or "monthly"
        amount: Credited value
        month: Month number for monthly stipends (1 = first month)
    """
    user_id: int
    rank: Rank
    kind: str
    amount: Decimal
    month: int | None = None


class RewardScheduler(BaseService):
    """Rank reward disbursement."""

    async def pay_user_entry_rewards(
        self, user_id: int, now: datetime | None = None
    ) -> list[RewardPayment]:
        """Pay pending entry rewards of a user in its own transaction."""
        async with self.ledger.transaction() as uow:
            user = await uow.get_user(user_id, for_update=True)
            payments = await self.pay_entry_rewards(uow, user, now or utc_now())
            await uow.save_user(user)
            return payments

    async def pay_user_monthly_rewards(
        self, user_id: int, now: datetime | None = None
    ) -> list[RewardPayment]:
        """Pay due monthly stipends of a user in its own transaction."""
        async with self.ledger.transaction() as uow:
            user = await uow.get_user(user_id, for_update=True)
            payments = await self.pay_monthly_rewards(uow, user, now or utc_now())
            await uow.save_user(user)
            return payments

    async def pay_entry_rewards(
        self, uow: LedgerUnitOfWork, user: User, now: datetime
    ) -> list[RewardPayment]:
        """
        Credit the entry reward of every tier held and not yet rewarded.

        Args:
            uow: Open ledger unit of work
            user: User loaded for update in uow (saved by the caller)
            now: Payment time

        Returns:
            Payments made, lowest tier first
        """
        payments: list[RewardPayment] = []

        for rank in RANK_ORDER[1:user.rank.order + 1]:
            amount = self.config.entry_rewards.get(rank)
            if not amount:
                continue

            record = await self._get_or_create_record(uow, user.id, rank, now)
            if record.entry_reward_paid:
                continue

            record.entry_reward_paid = True
            record.entry_reward_amount = amount
            await uow.save_rank_reward(record)

            user.balance += amount
            user.rank_reward += amount
            payments.append(RewardPayment(
                user_id=user.id, rank=rank, kind="entry", amount=amount
            ))
            self.logger.info(
                f"Entry reward {amount} paid to user {user.id} for {rank.value}"
            )

        return payments

    async def pay_monthly_rewards(
        self, uow: LedgerUnitOfWork, user: User, now: datetime
    ) -> list[RewardPayment]:
        """
        Credit every due monthly stipend.

        Months of a tier are counted from its entry up to the entry of the
        next tier, or up to now for the tier currently held, so months
        earned before a promotion are still paid after it.

        Args:
            uow: Open ledger unit of work
            user: User loaded for update in uow (saved by the caller)
            now: Payment time

        Returns:
            Payments made, lowest tier and oldest month first
        """
        payments: list[RewardPayment] = []

        for rank in RANK_ORDER[1:user.rank.order + 1]:
            amount = self.config.monthly_rewards.get(rank)
            if not amount:
                continue

            if rank == user.rank:
                record = await self._get_or_create_record(uow, user.id, rank, now)
                until = now
            else:
                record = await uow.get_rank_reward(user.id, rank)
                if record is None:
                    # Entry time unknown, no months can be counted
                    continue
                next_record = await uow.get_rank_reward(user.id, rank.next())
                until = next_record.entered_at if next_record else now

            payments.extend(
                await self._pay_due_months(uow, user, record, amount, until, now)
            )

        return payments

    async def _pay_due_months(
        self,
        uow: LedgerUnitOfWork,
        user: User,
        record: RankRewardRecord,
        amount: Decimal,
        until: datetime,
        now: datetime,
    ) -> list[RewardPayment]:
        elapsed = (
            days_between(record.entered_at, until) // self.config.month_length_days
        )
        limit = self.config.monthly_catch_up_per_run

        payments: list[RewardPayment] = []
        while record.months_paid < elapsed:
            if limit is not None and len(payments) >= limit:
                break
            record.months_paid += 1
            record.monthly_paid_total += amount
            user.balance += amount
            user.rank_reward += amount
            payments.append(RewardPayment(
                user_id=user.id,
                rank=record.rank,
                kind="monthly",
                amount=amount,
                month=record.months_paid,
            ))

        if payments:
            record.last_monthly_paid_at = now
            await uow.save_rank_reward(record)
            behind = elapsed - record.months_paid
            self.logger.info(
                f"Monthly reward {amount} x{len(payments)} paid to user {user.id} "
                f"for {record.rank.value} (month {record.months_paid}/{elapsed}"
                f"{f', {behind} still due' if behind else ''})"
            )

        return payments

    async def _get_or_create_record(
        self, uow: LedgerUnitOfWork, user_id: int, rank: Rank, now: datetime
    ) -> RankRewardRecord:
        record = await uow.get_rank_reward(user_id, rank)
        if record is not None:
            return record

        # Tier held without an entry record (rank set outside the evaluator)
        self.logger.warning(
            f"No reward record for user {user_id} at {rank.value}, "
            f"using {now.isoformat()} as entry time"
        )
        return await uow.save_rank_reward(RankRewardRecord(
            user_id=user_id,
            rank=rank,
            entered_at=now,
            entry_reward_paid=False,
            entry_reward_amount=Decimal("0"),
            months_paid=0,
            monthly_paid_total=Decimal("0"),
            last_monthly_paid_at=None,
        ))
