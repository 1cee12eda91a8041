"""
Rank evaluator.

Forward-only state machine over the tier order:
REGULAR -> TMC_PLUS -> TMC_PRO -> TMC_SMART -> TMC_ROYAL -> TMC_CHIEF
-> TMC_AMBASSADOR.

REGULAR -> TMC_PLUS passes three staged windows anchored to the user's
first investment. Every later tier needs a number of distinct direct
connections whose own team (the connection included) holds a member at
or above the preceding tier.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from compensation.ledger.accessor import LedgerUnitOfWork
from compensation.models.enums import Rank
from compensation.models.rank_reward import RankRewardRecord
from compensation.models.user import User
from compensation.services.base_service import BaseService
from compensation.services.referral.graph import ReferralGraph
from compensation.utils.datetime_utils import days_between, utc_now


@dataclass(frozen=True)
class RankEvaluation:
    """
    Outcome of one rank evaluation.

    Attributes:
        user_id: Evaluated user
        previous_rank: Rank before the evaluation
        new_rank: Rank after the evaluation
        entered: Tiers entered by this evaluation, in order
        reason: Why the next tier was not reached (None at the top tier)
    """
    user_id: int
    previous_rank: Rank
    new_rank: Rank
    entered: tuple[Rank, ...] = field(default_factory=tuple)
    reason: str | None = None

    @property
    def promoted(self) -> bool:
        return self.new_rank != self.previous_rank


class RankEvaluator(BaseService):
    """Evaluates and applies rank promotions."""

    async def evaluate_user(
        self, user_id: int, now: datetime | None = None
    ) -> RankEvaluation:
        """
        Evaluate a user in its own transaction.

        Args:
            user_id: User to evaluate
            now: Evaluation time (defaults to current UTC time)

        Returns:
            RankEvaluation
        """
        async with self.ledger.transaction() as uow:
            user = await uow.get_user(user_id, for_update=True)
            evaluation = await self.evaluate(uow, user, now or utc_now())
            await uow.save_user(user)
            return evaluation

    async def evaluate(
        self, uow: LedgerUnitOfWork, user: User, now: datetime
    ) -> RankEvaluation:
        """
        Evaluate a user inside an open transaction.

        Promotes as many tiers as the user qualifies for and creates a
        RankRewardRecord for each tier entered. The caller saves the user.

        Args:
            uow: Open ledger unit of work
            user: User loaded for update in uow
            now: Evaluation time

        Returns:
            RankEvaluation

        Raises:
            IntegrityError: If a referral cycle is found
        """
        previous = user.rank
        entered: list[Rank] = []

        directs = await uow.find_downline(user.id)
        if not directs:
            return RankEvaluation(
                user_id=user.id,
                previous_rank=previous,
                new_rank=previous,
                reason="No direct referrals",
            )

        reason: str | None = None
        while True:
            target = user.rank.next()
            if target is None:
                break

            if target == Rank.TMC_PLUS:
                reason = self._check_plus_stages(user, directs, now)
            else:
                reason = await self._check_connections(uow, directs, target)
            if reason is not None:
                break

            user.rank = target
            entered.append(target)
            await self._record_entry(uow, user.id, target, now)

        if entered:
            self.logger.info(
                f"User {user.id} promoted {previous.value} -> {user.rank.value}",
                extra={"user_id": user.id, "entered": [r.value for r in entered]},
            )

        return RankEvaluation(
            user_id=user.id,
            previous_rank=previous,
            new_rank=user.rank,
            entered=tuple(entered),
            reason=reason,
        )

    def _check_plus_stages(
        self, user: User, directs: list[User], now: datetime
    ) -> str | None:
        """
        Advance through the TMC_PLUS stages.

        A direct referral counts toward a stage when the user's tenure is
        inside the stage window and the referral's own tenure is within
        the stage's referral limit. Passed stages are stored on the user.

        Returns:
            None when every stage has passed, otherwise the blocking reason
        """
        if user.first_investment_at is None:
            return "No investment yet"

        tenure = days_between(user.first_investment_at, now)
        stages = self.config.plus_stages

        while user.plus_stages_passed < len(stages):
            number = user.plus_stages_passed + 1
            stage = stages[user.plus_stages_passed]

            if tenure < stage.tenure_from_days:
                return (
                    f"TMC_PLUS stage {number} opens on day {stage.tenure_from_days} "
                    f"(tenure {tenure} days)"
                )
            if not stage.contains(tenure):
                return (
                    f"TMC_PLUS stage {number} window closed on day "
                    f"{stage.tenure_to_days} (tenure {tenure} days)"
                )

            counted = sum(
                1 for direct in directs
                if direct.first_investment_at is not None
                and days_between(direct.first_investment_at, now)
                <= stage.referral_max_tenure_days
            )
            if counted < stage.required_directs:
                return (
                    f"TMC_PLUS stage {number} needs {stage.required_directs} "
                    f"direct referrals invested within "
                    f"{stage.referral_max_tenure_days} days, has {counted}"
                )

            user.plus_stages_passed = number
            self.logger.info(
                f"User {user.id} passed TMC_PLUS stage {number}/{len(stages)}"
            )

        return None

    async def _check_connections(
        self, uow: LedgerUnitOfWork, directs: list[User], target: Rank
    ) -> str | None:
        """
        Count direct connections whose team holds the preceding tier.

        Each branch is searched depth-first and stops at its first match;
        counting stops once the requirement is met.

        Returns:
            None when qualified, otherwise the blocking reason
        """
        required = self.config.rank_required_connections[target]
        preceding = target.previous()

        if len(directs) < required:
            return (
                f"{target.value} needs {required} direct connections "
                f"with {preceding.value}, has {len(directs)} direct referrals"
            )

        # Directs are level 1, their teams use the remaining depth
        graph = ReferralGraph(uow, max_depth=max(self.config.max_depth - 1, 0))

        def holds_preceding(member: User) -> bool:
            return member.rank.at_least(preceding)

        found = 0
        for index, direct in enumerate(directs):
            if len(directs) - index + found < required:
                break
            if await graph.subtree_contains(direct, holds_preceding):
                found += 1
                if found >= required:
                    return None

        return (
            f"{target.value} needs {required} direct connections "
            f"with {preceding.value} in their team, found {found}"
        )

    async def _record_entry(
        self, uow: LedgerUnitOfWork, user_id: int, rank: Rank, now: datetime
    ) -> None:
        if await uow.get_rank_reward(user_id, rank) is not None:
            return
        await uow.save_rank_reward(RankRewardRecord(
            user_id=user_id,
            rank=rank,
            entered_at=now,
            entry_reward_paid=False,
            entry_reward_amount=Decimal("0"),
            months_paid=0,
            monthly_paid_total=Decimal("0"),
            last_monthly_paid_at=None,
        ))
