#!/usr/bin/env python3
"""
Run a compensation batch in-process.

Bypasses the task queue; useful for manual catch-up after an outage.
The run-lock still applies, so this never overlaps a worker run.

Usage:
    python scripts/run_batch.py daily [--period 2026-01-31]
    python scripts/run_batch.py monthly
"""

import argparse
import asyncio
import json
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from compensation.services.orchestrator import BatchOrchestrator
from compensation.utils.exceptions import BatchAlreadyRunningError
from jobs.async_runner import create_task_ledger, create_task_redis

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def run_batch(run: str, period: date | None = None) -> int:
    """Run one batch and print its summary; returns the exit code."""
    async with create_task_ledger() as ledger, create_task_redis() as redis_client:
        orchestrator = BatchOrchestrator(ledger, redis_client=redis_client)
        try:
            if run == "daily":
                summary = await orchestrator.run_daily_accrual(period=period)
            else:
                summary = await orchestrator.run_monthly_rewards()
        except BatchAlreadyRunningError as e:
            logger.error(e.message)
            return 2

    print(json.dumps(summary.to_dict(), indent=2))
    return 1 if summary.failed else 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Run a compensation batch")
    parser.add_argument("run", choices=["daily", "monthly"], help="Batch to run")
    parser.add_argument(
        "--period",
        type=date.fromisoformat,
        default=None,
        help="Accrual period for the daily batch (YYYY-MM-DD, default: today UTC)",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(run_batch(args.run, args.period)))


if __name__ == "__main__":
    main()
