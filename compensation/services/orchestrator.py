"""
Batch orchestrator.

Drives the engines over the active user population:
- run_daily_accrual: pending bonus settlement, then per user ROI accrual,
  rank evaluation and entry rewards in one transaction
- run_monthly_rewards: per user monthly rank stipends

Runs are guarded by a run-lock (overlapping runs are rejected) and users
are processed by a bounded worker pool. A failing user is logged, recorded
in the run summary and skipped; the run always continues.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from compensation.config.compensation_config import CompensationConfig
from compensation.config.settings import settings
from compensation.ledger.accessor import LedgerAccessor
from compensation.models.user import User
from compensation.services.base_service import BaseService
from compensation.services.rank.evaluator import RankEvaluation, RankEvaluator
from compensation.services.referral.bonus_engine import ReferralBonusEngine
from compensation.services.reward.scheduler import RewardPayment, RewardScheduler
from compensation.services.roi.accrual_engine import ROIAccrualEngine, UserAccrualResult
from compensation.utils.datetime_utils import period_of, utc_now
from compensation.utils.distributed_lock import DistributedLock
from compensation.utils.exceptions import (
    BatchAlreadyRunningError,
    CompensationError,
    IntegrityError,
    TransientStoreError,
    skips_user,
)
from compensation.utils.retry import retry_transient


DAILY_ACCRUAL_LOCK = "compensation:daily_accrual"
MONTHLY_REWARDS_LOCK = "compensation:monthly_rewards"


@dataclass
class BatchRunSummary:
    """
    Aggregated outcome of a batch run.

    Attributes:
        run: "daily_accrual" or "monthly_rewards"
        started_at: Run start
        finished_at: Run end
        processed: Users processed successfully
        skipped: Users skipped (missing data, integrity problems)
        failed: Users that failed (retries exhausted or unexpected errors)
        warnings: Human-readable warnings, one per skipped/failed user
        errors: Error message by user ID
        accrued_total: ROI accrued over all users
        promotions: Users promoted
        rewards_total: Rank rewards paid
        bonuses_settled: Pending investments whose bonuses were settled
    """
    run: str
    started_at: datetime
    finished_at: datetime | None = None
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    warnings: list[str] = field(default_factory=list)
    errors: dict[int, str] = field(default_factory=dict)
    accrued_total: Decimal = Decimal("0")
    promotions: int = 0
    rewards_total: Decimal = Decimal("0")
    bonuses_settled: int = 0

    @property
    def total_users(self) -> int:
        return self.processed + self.skipped + self.failed

    def to_dict(self) -> dict[str, Any]:
        """Serializable view (for task results and logs)."""
        return {
            "run": self.run,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "warnings": list(self.warnings),
            "accrued_total": str(self.accrued_total),
            "promotions": self.promotions,
            "rewards_total": str(self.rewards_total),
            "bonuses_settled": self.bonuses_settled,
        }


@dataclass
class DailyUserResult:
    """Daily batch outcome of one user."""
    accrual: UserAccrualResult
    evaluation: RankEvaluation
    payments: list[RewardPayment]


class BatchOrchestrator(BaseService):
    """
    Batch orchestrator.

    Example:
        orchestrator = BatchOrchestrator(SqlLedger(async_session_maker), redis_client=redis)
        summary = await orchestrator.run_daily_accrual()
    """

    def __init__(
        self,
        ledger: LedgerAccessor,
        config: CompensationConfig | None = None,
        redis_client=None,
        concurrency: int | None = None,
        retry_attempts: int | None = None,
        retry_base_delay: float | None = None,
        lock_timeout: int | None = None,
        emergency_stop: bool | None = None,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            ledger: Ledger accessor
            config: Compensation configuration
            redis_client: redis.asyncio client for the run-lock (None = process-local)
            concurrency: Users processed concurrently
            retry_attempts: Retries on transient ledger failures per user
            retry_base_delay: First retry delay in seconds
            lock_timeout: Run-lock expiry in seconds
            emergency_stop: Skip ROI accrual while set
        """
        super().__init__(ledger, config)
        self.concurrency = concurrency or settings.batch_concurrency
        self.retry_attempts = (
            settings.store_retry_attempts if retry_attempts is None else retry_attempts
        )
        self.retry_base_delay = (
            settings.store_retry_base_delay if retry_base_delay is None else retry_base_delay
        )
        self.lock_timeout = lock_timeout or settings.run_lock_timeout_seconds
        self.emergency_stop = (
            settings.emergency_stop_roi if emergency_stop is None else emergency_stop
        )
        self.run_lock = DistributedLock(redis_client=redis_client)

        self.accrual_engine = ROIAccrualEngine(ledger, self.config)
        self.rank_evaluator = RankEvaluator(ledger, self.config)
        self.reward_scheduler = RewardScheduler(ledger, self.config)
        self.bonus_engine = ReferralBonusEngine(ledger, self.config)

    async def run_daily_accrual(
        self, period: date | None = None, now: datetime | None = None
    ) -> BatchRunSummary:
        """
        Daily batch: settle pending bonuses, accrue ROI, evaluate ranks, pay entry rewards.

        Args:
            period: Accrual period (defaults to the UTC day of now)
            now: Run time (defaults to current UTC time)

        Returns:
            BatchRunSummary

        Raises:
            BatchAlreadyRunningError: If another daily run holds the lock
        """
        now = now or utc_now()
        period = period or period_of(now)
        summary = BatchRunSummary(run="daily_accrual", started_at=utc_now())

        async with self.run_lock.lock(DAILY_ACCRUAL_LOCK, timeout=self.lock_timeout) as acquired:
            if not acquired:
                raise BatchAlreadyRunningError(
                    "Daily accrual is already running", lock=DAILY_ACCRUAL_LOCK
                )

            if self.emergency_stop:
                self.logger.warning("Emergency stop active, daily accrual skipped")
                summary.warnings.append("Emergency stop active, daily accrual skipped")
                summary.finished_at = utc_now()
                return summary

            self.logger.info(f"Daily accrual started for period {period.isoformat()}")
            await self._settle_pending_bonuses(summary)

            def on_success(result: DailyUserResult) -> None:
                summary.accrued_total += result.accrual.total_accrued
                if result.evaluation.promoted:
                    summary.promotions += 1
                summary.rewards_total += sum(
                    (p.amount for p in result.payments), Decimal("0")
                )

            await self._run_users(
                summary,
                lambda user_id: self._daily_user(user_id, period, now),
                on_success,
            )

        summary.finished_at = utc_now()
        self._log_summary(summary)
        return summary

    async def run_monthly_rewards(self, now: datetime | None = None) -> BatchRunSummary:
        """
        Monthly batch: pay due rank stipends.

        Args:
            now: Run time (defaults to current UTC time)

        Returns:
            BatchRunSummary

        Raises:
            BatchAlreadyRunningError: If another monthly run holds the lock
        """
        now = now or utc_now()
        summary = BatchRunSummary(run="monthly_rewards", started_at=utc_now())

        async with self.run_lock.lock(MONTHLY_REWARDS_LOCK, timeout=self.lock_timeout) as acquired:
            if not acquired:
                raise BatchAlreadyRunningError(
                    "Monthly rewards are already running", lock=MONTHLY_REWARDS_LOCK
                )

            self.logger.info("Monthly rewards started")

            def on_success(payments: list[RewardPayment]) -> None:
                summary.rewards_total += sum((p.amount for p in payments), Decimal("0"))

            await self._run_users(
                summary,
                lambda user_id: self._monthly_user(user_id, now),
                on_success,
            )

        summary.finished_at = utc_now()
        self._log_summary(summary)
        return summary

    async def _daily_user(
        self, user_id: int, period: date, now: datetime
    ) -> DailyUserResult:
        async with self.ledger.transaction() as uow:
            user = await uow.get_user(user_id, for_update=True)
            self._require_payout_address(user)

            accrual = await self.accrual_engine.accrue(uow, user, period)
            evaluation = await self.rank_evaluator.evaluate(uow, user, now)
            payments = await self.reward_scheduler.pay_entry_rewards(uow, user, now)
            await uow.save_user(user)

        return DailyUserResult(accrual=accrual, evaluation=evaluation, payments=payments)

    async def _monthly_user(self, user_id: int, now: datetime) -> list[RewardPayment]:
        async with self.ledger.transaction() as uow:
            user = await uow.get_user(user_id, for_update=True)
            self._require_payout_address(user)

            payments = await self.reward_scheduler.pay_monthly_rewards(uow, user, now)
            await uow.save_user(user)

        return payments

    async def _run_users(
        self,
        summary: BatchRunSummary,
        work: Callable[[int], Awaitable[Any]],
        on_success: Callable[[Any], None],
    ) -> None:
        user_ids = await retry_transient(
            self.ledger.list_active_user_ids,
            max_retries=self.retry_attempts,
            base_delay=self.retry_base_delay,
            description="active user listing",
        )
        semaphore = asyncio.Semaphore(self.concurrency)

        async def process(user_id: int) -> None:
            async with semaphore:
                try:
                    result = await retry_transient(
                        lambda: work(user_id),
                        max_retries=self.retry_attempts,
                        base_delay=self.retry_base_delay,
                        description=f"{summary.run} for user {user_id}",
                    )
                except CompensationError as e:
                    self._record_failure(summary, user_id, e)
                except Exception as e:
                    self.logger.exception(
                        f"Unexpected error in {summary.run} for user {user_id}: {e}"
                    )
                    summary.failed += 1
                    summary.errors[user_id] = str(e)
                    summary.warnings.append(f"User {user_id}: unexpected error: {e}")
                else:
                    summary.processed += 1
                    on_success(result)

        await asyncio.gather(*(process(user_id) for user_id in user_ids))

    def _record_failure(
        self, summary: BatchRunSummary, user_id: int, error: CompensationError
    ) -> None:
        summary.errors[user_id] = error.message
        if skips_user(error):
            summary.skipped += 1
            summary.warnings.append(f"User {user_id} skipped: {error.message}")
            self.logger.warning(f"{summary.run}: user {user_id} skipped: {error.message}")
        elif isinstance(error, TransientStoreError):
            summary.failed += 1
            summary.warnings.append(
                f"User {user_id}: store unavailable after "
                f"{self.retry_attempts} retries: {error.message}"
            )
            self.logger.warning(
                f"{summary.run}: user {user_id} failed after retries: {error.message}"
            )
        else:
            summary.failed += 1
            summary.warnings.append(f"User {user_id} failed: {error.message}")
            self.logger.error(f"{summary.run}: user {user_id} failed: {error.message}")

    async def _settle_pending_bonuses(self, summary: BatchRunSummary) -> None:
        try:
            results = await self.bonus_engine.settle_pending()
        except TransientStoreError as e:
            summary.warnings.append(f"Pending bonus settlement skipped: {e.message}")
            self.logger.warning(f"Pending bonus settlement skipped: {e.message}")
            return

        summary.bonuses_settled = sum(1 for r in results if r.settled)
        for result in results:
            if not result.settled:
                summary.warnings.append(
                    f"Investment {result.investment_id} bonuses still pending"
                    f"{f': {result.error_message}' if result.error_message else ''}"
                )

    @staticmethod
    def _require_payout_address(user: User) -> None:
        if not user.payout_address:
            raise IntegrityError(
                f"User {user.id} has no payout address", user_id=user.id
            )

    def _log_summary(self, summary: BatchRunSummary) -> None:
        self.logger.info(
            f"{summary.run} complete: {summary.processed} processed, "
            f"{summary.skipped} skipped, {summary.failed} failed, "
            f"accrued {summary.accrued_total}, rewards {summary.rewards_total}, "
            f"{summary.promotions} promotions",
            extra={"summary": summary.to_dict()},
        )
