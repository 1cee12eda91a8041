"""
Daily accrual task.

Runs the daily compensation batch: pending bonus settlement, ROI accrual,
rank evaluation and entry rewards. Safe to retry: accrual is guarded per
investment and period.
"""

from datetime import date

import dramatiq
from loguru import logger

from compensation.services.orchestrator import BatchOrchestrator
from compensation.utils.exceptions import BatchAlreadyRunningError
from jobs.async_runner import create_task_ledger, create_task_redis, run_async
from jobs.broker import BATCH_MAX_RETRIES


# time_limit: 1 hour, below the run-lock timeout
@dramatiq.actor(max_retries=BATCH_MAX_RETRIES, time_limit=3_600_000)
def run_daily_accrual(period: str | None = None) -> dict | None:
    """
    Run the daily accrual batch.

    Args:
        period: ISO date of the accrual period (defaults to today, UTC)

    Returns:
        Run summary, or None if another run holds the lock
    """
    logger.info(f"Starting daily accrual{f' for {period}' if period else ''}...")

    try:
        summary = run_async(_run_daily_accrual_async(period))
    except BatchAlreadyRunningError as e:
        logger.warning(f"Daily accrual not started: {e.message}")
        return None

    logger.info(
        f"Daily accrual complete: {summary['processed']} processed, "
        f"{summary['skipped']} skipped, {summary['failed']} failed"
    )
    return summary


async def _run_daily_accrual_async(period: str | None) -> dict:
    """Async implementation of the daily accrual task."""
    accrual_period = date.fromisoformat(period) if period else None

    async with create_task_ledger() as ledger, create_task_redis() as redis_client:
        orchestrator = BatchOrchestrator(ledger, redis_client=redis_client)
        summary = await orchestrator.run_daily_accrual(period=accrual_period)
        return summary.to_dict()
