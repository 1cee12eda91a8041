"""
Batch scheduler.

Enqueues the compensation batch runs on a UTC cron schedule:
- daily accrual at DAILY_ACCRUAL_HOUR:DAILY_ACCRUAL_MINUTE
- monthly rewards on MONTHLY_REWARDS_DAY at 00:30

The runs themselves execute in dramatiq workers; the run-lock rejects
overlapping runs, so a late or duplicate trigger is harmless.
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from compensation.config.settings import Settings, settings
from compensation.utils.logging import setup_logging
from jobs.tasks import run_daily_accrual, run_monthly_rewards


def enqueue_daily_accrual() -> None:
    """Send the daily accrual message."""
    message = run_daily_accrual.send()
    logger.info(f"Daily accrual enqueued (message {message.message_id})")


def enqueue_monthly_rewards() -> None:
    """Send the monthly rewards message."""
    message = run_monthly_rewards.send()
    logger.info(f"Monthly rewards enqueued (message {message.message_id})")


def build_scheduler(config: Settings | None = None) -> AsyncIOScheduler:
    """
    Create the scheduler with both batch jobs registered.

    Args:
        config: Settings to read the schedule from (defaults to global settings)

    Returns:
        AsyncIOScheduler, not started
    """
    config = config or settings
    scheduler = AsyncIOScheduler(timezone="UTC")

    scheduler.add_job(
        enqueue_daily_accrual,
        CronTrigger(
            hour=config.daily_accrual_hour,
            minute=config.daily_accrual_minute,
            timezone="UTC",
        ),
        id="daily_accrual",
        name="Daily ROI accrual",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    scheduler.add_job(
        enqueue_monthly_rewards,
        CronTrigger(
            day=config.monthly_rewards_day, hour=0, minute=30, timezone="UTC"
        ),
        id="monthly_rewards",
        name="Monthly rank rewards",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    return scheduler


async def main() -> None:
    """Run the scheduler until SIGINT/SIGTERM."""
    setup_logging()

    scheduler = build_scheduler()
    scheduler.start()
    for job in scheduler.get_jobs():
        logger.info(f"Scheduled {job.id}: next run at {job.next_run_time}")

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        await stop.wait()
    finally:
        logger.info("Stopping scheduler...")
        scheduler.shutdown(wait=False)


if __name__ == "__main__":
    asyncio.run(main())
