"""
Referral bonus engine.

Credits the bonuses triggered by a new investment:
- direct bonus to the investor's referrer (level 1 of the upline)
- level ROI to every member of the investor's downline, by level

Each credit runs in the recipient's own transaction and is tagged with
(investment_id, kind, level, recipient_id), so reprocessing never pays twice.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from compensation.ledger.accessor import LedgerUnitOfWork
from compensation.models.bonus_record import BonusRecord
from compensation.models.enums import BonusKind
from compensation.models.investment import Investment
from compensation.models.user import User
from compensation.services.base_service import BaseService, to_money
from compensation.services.referral.graph import ReferralGraph
from compensation.services.referral.level_schedule import level_roi
from compensation.services.roi.calculator import parse_amount
from compensation.utils.exceptions import (
    IntegrityError,
    NotFoundError,
    TransientStoreError,
)


@dataclass(frozen=True)
class PlannedBonus:
    """Bonus to credit for an investment."""
    recipient_id: int
    kind: BonusKind
    level: int
    percentage: Decimal
    amount: Decimal


@dataclass
class ProcessResult:
    """
    Result of bonus processing for one investment.

    Attributes:
        investment_id: Triggering investment
        credited: Bonuses credited by this call
        already_credited: Bonuses skipped because their tag already exists
        failed: Bonuses that could not be credited (retried later)
        error_message: Why planning failed, if it did
    """
    investment_id: int
    credited: list[PlannedBonus] = field(default_factory=list)
    already_credited: int = 0
    failed: list[PlannedBonus] = field(default_factory=list)
    error_message: str | None = None

    @property
    def settled(self) -> bool:
        return not self.failed and self.error_message is None

    @property
    def total_credited(self) -> Decimal:
        return sum((b.amount for b in self.credited), Decimal("0"))


class ReferralBonusEngine(BaseService):
    """Referral bonus engine (direct bonus and level ROI)."""

    async def process_investment(self, investment_id: int) -> ProcessResult:
        """
        Credit all bonuses of an investment.

        Failures never undo the investment: the investment stays unsettled
        and settle_pending() retries it.

        Args:
            investment_id: Investment that triggered the bonuses

        Returns:
            ProcessResult

        Raises:
            NotFoundError: If the investment does not exist
        """
        result = ProcessResult(investment_id=investment_id)

        try:
            async with self.ledger.transaction() as uow:
                investment = await uow.get_investment(investment_id)
                if investment.bonuses_settled:
                    return result
                investor = await uow.get_user(investment.user_id)
                plan = await self.plan(uow, investor, investment)
        except (IntegrityError, TransientStoreError) as e:
            result.error_message = e.message
            self.logger.error(
                f"Bonus planning failed for investment {investment_id}: {e.message}"
            )
            return result

        for bonus in plan:
            try:
                if await self._credit(investment_id, investor.id, bonus):
                    result.credited.append(bonus)
                else:
                    result.already_credited += 1
            except (IntegrityError, NotFoundError, TransientStoreError) as e:
                result.failed.append(bonus)
                self.logger.warning(
                    f"Bonus credit failed for investment {investment_id}, "
                    f"recipient {bonus.recipient_id} (level {bonus.level}): {e.message}",
                    extra={"investment_id": investment_id, "kind": bonus.kind.value},
                )

        if result.settled:
            try:
                await self._mark_settled(investment_id)
            except TransientStoreError as e:
                result.error_message = e.message
                self.logger.warning(
                    f"Could not mark investment {investment_id} settled: {e.message}"
                )

        if plan:
            self.logger.info(
                f"Bonuses for investment {investment_id}: "
                f"{len(result.credited)} credited ({result.total_credited}), "
                f"{result.already_credited} already credited, "
                f"{len(result.failed)} failed"
            )
        return result

    async def plan(
        self, uow: LedgerUnitOfWork, investor: User, investment: Investment
    ) -> list[PlannedBonus]:
        """
        Compute every bonus an investment owes.

        Args:
            uow: Open ledger unit of work
            investor: Investment owner
            investment: Triggering investment

        Returns:
            Planned bonuses, direct bonus first, then level ROI by level

        Raises:
            IntegrityError: If the amount is malformed or the graph has a cycle
        """
        amount = parse_amount(investment.amount)
        if amount is None:
            raise IntegrityError(
                f"Investment {investment.id} has malformed amount {investment.amount!r}"
            )

        plan: list[PlannedBonus] = []

        if investor.referrer_id is not None:
            rate = self.config.direct_bonus_rate
            plan.append(PlannedBonus(
                recipient_id=investor.referrer_id,
                kind=BonusKind.DIRECT,
                level=1,
                percentage=rate,
                amount=to_money(amount * rate),
            ))

        direct_count = await uow.count_direct(investor.id)
        if direct_count == 0:
            return plan

        graph = ReferralGraph(uow, max_depth=self.config.max_depth)
        async for node in graph.descendants(investor.id):
            share = level_roi(
                node.level, direct_count, amount, self.config.level_schedule
            )
            if share.value <= 0:
                continue
            plan.append(PlannedBonus(
                recipient_id=node.user.id,
                kind=BonusKind.LEVEL_ROI,
                level=node.level,
                percentage=share.percentage,
                amount=share.value,
            ))

        return plan

    async def settle_pending(self, limit: int = 500) -> list[ProcessResult]:
        """
        Retry bonuses of investments that are not fully settled.

        Args:
            limit: Max investments per call

        Returns:
            One ProcessResult per investment retried
        """
        async with self.ledger.transaction() as uow:
            pending = await uow.list_unsettled_investment_ids(limit=limit)

        results = []
        for investment_id in pending:
            results.append(await self.process_investment(investment_id))
        if pending:
            settled = sum(1 for r in results if r.settled)
            self.logger.info(f"Settled {settled}/{len(pending)} pending investments")
        return results

    async def _credit(
        self, investment_id: int, source_user_id: int, bonus: PlannedBonus
    ) -> bool:
        async with self.ledger.transaction() as uow:
            if await uow.bonus_exists(
                investment_id, bonus.kind, bonus.level, bonus.recipient_id
            ):
                return False

            recipient = await uow.get_user(bonus.recipient_id, for_update=True)
            recipient.balance += bonus.amount
            await uow.save_user(recipient)
            await uow.add_bonus_record(BonusRecord(
                investment_id=investment_id,
                kind=bonus.kind,
                level=bonus.level,
                recipient_id=bonus.recipient_id,
                source_user_id=source_user_id,
                percentage=bonus.percentage,
                amount=bonus.amount,
            ))
        return True

    async def _mark_settled(self, investment_id: int) -> None:
        async with self.ledger.transaction() as uow:
            investment = await uow.get_investment(investment_id)
            investment.bonuses_settled = True
            await uow.save_investment(investment)
