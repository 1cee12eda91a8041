"""
Dramatiq tasks.

Importing this package configures the broker and registers the actors.
Run workers with: dramatiq jobs.tasks
"""

from jobs import broker  # noqa: F401  (must be set before actors register)
from jobs.tasks.daily_accrual import run_daily_accrual
from jobs.tasks.monthly_rewards import run_monthly_rewards


__all__ = [
    "run_daily_accrual",
    "run_monthly_rewards",
]
