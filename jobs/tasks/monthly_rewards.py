"""
Monthly rewards task.

Pays due monthly rank stipends. Safe to retry: each stipend month is
paid at most once per tier.
"""

import dramatiq
from loguru import logger

from compensation.services.orchestrator import BatchOrchestrator
from compensation.utils.exceptions import BatchAlreadyRunningError
from jobs.async_runner import create_task_ledger, create_task_redis, run_async
from jobs.broker import BATCH_MAX_RETRIES


@dramatiq.actor(max_retries=BATCH_MAX_RETRIES, time_limit=3_600_000)  # 1 hour
def run_monthly_rewards() -> dict | None:
    """
    Run the monthly rewards batch.

    Returns:
        Run summary, or None if another run holds the lock
    """
    logger.info("Starting monthly rewards...")

    try:
        summary = run_async(_run_monthly_rewards_async())
    except BatchAlreadyRunningError as e:
        logger.warning(f"Monthly rewards not started: {e.message}")
        return None

    logger.info(
        f"Monthly rewards complete: {summary['processed']} processed, "
        f"rewards {summary['rewards_total']}"
    )
    return summary


async def _run_monthly_rewards_async() -> dict:
    """Async implementation of the monthly rewards task."""
    async with create_task_ledger() as ledger, create_task_redis() as redis_client:
        orchestrator = BatchOrchestrator(ledger, redis_client=redis_client)
        summary = await orchestrator.run_monthly_rewards()
        return summary.to_dict()
