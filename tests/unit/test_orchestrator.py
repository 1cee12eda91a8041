"""
Tests for batch orchestrator.

Tests cover:
- Run-lock rejects overlapping runs
- Per-user isolation: skipped and failed users never abort the run
- Transient failures retried at the user boundary
- Idempotent daily accrual within a period
- Pending bonus settlement and monthly rewards
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from compensation.models import Rank
from compensation.services.orchestrator import (
    DAILY_ACCRUAL_LOCK,
    BatchOrchestrator,
)
from compensation.utils.distributed_lock import DistributedLock
from compensation.utils.exceptions import BatchAlreadyRunningError, TransientStoreError


@pytest.fixture
def orchestrator(ledger, config):
    return BatchOrchestrator(
        ledger,
        config,
        concurrency=4,
        retry_attempts=2,
        retry_base_delay=0,
        emergency_stop=False,
    )


class TestRunLock:
    """Test run-lock behavior."""

    @pytest.mark.asyncio
    async def test_overlapping_run_rejected(self, ledger, orchestrator, now):
        user_id = ledger.add_user()
        ledger.add_investment(user_id, Decimal("1000"))

        async with DistributedLock().lock(DAILY_ACCRUAL_LOCK) as acquired:
            assert acquired is True
            with pytest.raises(BatchAlreadyRunningError):
                await orchestrator.run_daily_accrual(now=now)

        assert ledger.user(user_id).balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_lock_released_after_run(self, orchestrator, now):
        await orchestrator.run_daily_accrual(now=now)

        async with DistributedLock().lock(DAILY_ACCRUAL_LOCK) as acquired:
            assert acquired is True

    @pytest.mark.asyncio
    async def test_redis_lock_used(self, ledger, config, mock_redis, now):
        orchestrator = BatchOrchestrator(
            ledger, config, redis_client=mock_redis, emergency_stop=False
        )
        mock_redis.set.return_value = None

        with pytest.raises(BatchAlreadyRunningError):
            await orchestrator.run_daily_accrual(now=now)

        mock_redis.set.assert_awaited_once()
        assert mock_redis.set.await_args.args[0] == f"lock:{DAILY_ACCRUAL_LOCK}"


class TestDailyAccrual:
    """Test the daily batch."""

    @pytest.mark.asyncio
    async def test_accrues_all_users(self, ledger, orchestrator, now):
        users = [ledger.add_user() for _ in range(3)]
        for user_id in users:
            ledger.add_investment(user_id, Decimal("1000"))

        summary = await orchestrator.run_daily_accrual(now=now)

        assert summary.processed == 3
        assert summary.failed == 0
        assert summary.accrued_total == Decimal("18")
        assert summary.finished_at is not None
        assert all(ledger.user(u).balance == Decimal("6") for u in users)

    @pytest.mark.asyncio
    async def test_second_run_same_period_is_noop(self, ledger, orchestrator, now):
        user_id = ledger.add_user()
        investment_id = ledger.add_investment(user_id, Decimal("1000"))

        await orchestrator.run_daily_accrual(now=now)
        second = await orchestrator.run_daily_accrual(now=now + timedelta(hours=1))

        assert second.accrued_total == Decimal("0")
        assert ledger.user(user_id).balance == Decimal("6")
        assert ledger.investment(investment_id).days_accumulated == 1

    @pytest.mark.asyncio
    async def test_next_period_accrues_again(self, ledger, orchestrator, now):
        user_id = ledger.add_user()
        ledger.add_investment(user_id, Decimal("1000"))

        await orchestrator.run_daily_accrual(now=now)
        await orchestrator.run_daily_accrual(now=now + timedelta(days=1))

        assert ledger.user(user_id).balance == Decimal("12")

    @pytest.mark.asyncio
    async def test_promotion_and_entry_reward(self, ledger, orchestrator, now):
        user_id = ledger.add_user(rank=Rank.TMC_PLUS, plus_stages_passed=3)
        for member in [user_id] + [
            ledger.add_user(referrer_id=user_id, rank=Rank.TMC_PLUS) for _ in range(4)
        ]:
            ledger.add_rank_reward(member, Rank.TMC_PLUS, now, entry_reward_paid=True)

        summary = await orchestrator.run_daily_accrual(now=now)

        assert summary.promotions == 1
        assert summary.rewards_total == Decimal("2000")
        user = ledger.user(user_id)
        assert user.rank == Rank.TMC_PRO
        assert user.balance == Decimal("2000")

    @pytest.mark.asyncio
    async def test_inactive_users_not_processed(self, ledger, orchestrator, now):
        user_id = ledger.add_user(is_active=False)
        ledger.add_investment(user_id, Decimal("1000"))

        summary = await orchestrator.run_daily_accrual(now=now)

        assert summary.total_users == 0
        assert ledger.user(user_id).balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_emergency_stop(self, ledger, config, now):
        user_id = ledger.add_user()
        ledger.add_investment(user_id, Decimal("1000"))
        orchestrator = BatchOrchestrator(ledger, config, emergency_stop=True)

        summary = await orchestrator.run_daily_accrual(now=now)

        assert summary.processed == 0
        assert "Emergency stop" in summary.warnings[0]
        assert ledger.user(user_id).balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_pending_bonuses_settled(self, ledger, orchestrator, now):
        referrer = ledger.add_user()
        investor = ledger.add_user(referrer_id=referrer)
        ledger.add_investment(investor, Decimal("1000"), bonuses_settled=False)

        summary = await orchestrator.run_daily_accrual(now=now)

        assert summary.bonuses_settled == 1
        assert ledger.user(referrer).balance == Decimal("200")
        assert ledger.user(investor).balance == Decimal("6")


class TestUserIsolation:
    """Test that per-user failures are isolated."""

    @pytest.mark.asyncio
    async def test_missing_payout_address_skipped(self, ledger, orchestrator, now):
        broken = ledger.add_user(payout_address=None)
        healthy = ledger.add_user()
        ledger.add_investment(broken, Decimal("1000"))
        ledger.add_investment(healthy, Decimal("1000"))

        summary = await orchestrator.run_daily_accrual(now=now)

        assert summary.skipped == 1
        assert summary.processed == 1
        assert broken in summary.errors
        assert any("payout address" in w for w in summary.warnings)
        assert ledger.user(broken).balance == Decimal("0")
        assert ledger.user(healthy).balance == Decimal("6")

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, ledger, orchestrator, now):
        user_id = ledger.add_user()
        ledger.add_investment(user_id, Decimal("1000"))
        ledger.fail_user(user_id, TransientStoreError("deadlock"), times=2)

        summary = await orchestrator.run_daily_accrual(now=now)

        assert summary.processed == 1
        assert ledger.user(user_id).balance == Decimal("6")

    @pytest.mark.asyncio
    async def test_retries_exhausted_reported_as_warning(self, ledger, orchestrator, now):
        failing = ledger.add_user()
        healthy = ledger.add_user()
        ledger.add_investment(failing, Decimal("1000"))
        ledger.add_investment(healthy, Decimal("1000"))
        ledger.fail_user(failing, TransientStoreError("store down"), times=3)

        summary = await orchestrator.run_daily_accrual(now=now)

        assert summary.failed == 1
        assert summary.processed == 1
        assert any("store unavailable" in w for w in summary.warnings)
        assert ledger.user(failing).balance == Decimal("0")
        assert ledger.user(healthy).balance == Decimal("6")

    @pytest.mark.asyncio
    async def test_unexpected_error_isolated(self, ledger, orchestrator, now):
        failing = ledger.add_user()
        healthy = ledger.add_user()
        ledger.add_investment(healthy, Decimal("1000"))
        ledger.fail_user(failing, RuntimeError("boom"))

        summary = await orchestrator.run_daily_accrual(now=now)

        assert summary.failed == 1
        assert summary.errors[failing] == "boom"
        assert ledger.user(healthy).balance == Decimal("6")

    @pytest.mark.asyncio
    async def test_cycle_leaves_bonuses_pending(self, ledger, orchestrator, now):
        first = ledger.add_user()
        second = ledger.add_user(referrer_id=first)
        ledger.update_user(first, referrer_id=second)
        investment_id = ledger.add_investment(first, Decimal("1000"), bonuses_settled=False)

        summary = await orchestrator.run_daily_accrual(now=now)

        assert summary.bonuses_settled == 0
        assert any("cycle" in w for w in summary.warnings)
        assert summary.processed == 2
        assert ledger.investment(investment_id).bonuses_settled is False
        assert ledger.user(second).balance == Decimal("0")
        assert ledger.user(first).balance == Decimal("6")


class TestMonthlyRewards:
    """Test the monthly batch."""

    @pytest.mark.asyncio
    async def test_monthly_paid(self, ledger, orchestrator, now):
        user_id = ledger.add_user(rank=Rank.TMC_SMART)
        ledger.add_rank_reward(user_id, Rank.TMC_SMART, now - timedelta(days=31))

        summary = await orchestrator.run_monthly_rewards(now=now)
        again = await orchestrator.run_monthly_rewards(now=now)

        assert summary.rewards_total == Decimal("1000")
        assert again.rewards_total == Decimal("0")
        assert ledger.user(user_id).balance == Decimal("1000")

    @pytest.mark.asyncio
    async def test_skipped_monthly_run_caught_up(self, ledger, orchestrator):
        entered = datetime(2026, 1, 1, tzinfo=UTC)
        user_id = ledger.add_user(rank=Rank.TMC_SMART)
        ledger.add_rank_reward(user_id, Rank.TMC_SMART, entered)

        # Runs on the 1st of February to December, the March run is missed
        for month in range(2, 13):
            if month == 3:
                continue
            await orchestrator.run_monthly_rewards(
                now=datetime(2026, month, 1, tzinfo=UTC)
            )

        # 334 days since entry
        record = ledger.rank_reward(user_id, Rank.TMC_SMART)
        assert record.months_paid == 11
        assert ledger.user(user_id).balance == Decimal("11000")

    @pytest.mark.asyncio
    async def test_months_before_promotion_paid(self, ledger, orchestrator, now):
        user_id = ledger.add_user(rank=Rank.TMC_ROYAL)
        ledger.add_rank_reward(user_id, Rank.TMC_SMART, now - timedelta(days=65))
        ledger.add_rank_reward(user_id, Rank.TMC_ROYAL, now)

        summary = await orchestrator.run_monthly_rewards(now=now)

        assert summary.rewards_total == Decimal("2000")
        assert ledger.rank_reward(user_id, Rank.TMC_SMART).months_paid == 2
        assert ledger.rank_reward(user_id, Rank.TMC_ROYAL).months_paid == 0

    @pytest.mark.asyncio
    async def test_summary_serializable(self, orchestrator, now):
        summary = await orchestrator.run_monthly_rewards(now=now)

        data = summary.to_dict()
        assert data["run"] == "monthly_rewards"
        assert data["rewards_total"] == "0"
