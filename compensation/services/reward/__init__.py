"""
Reward services.

Rank entry rewards and monthly stipends.
"""

from compensation.services.reward.scheduler import RewardPayment, RewardScheduler


__all__ = [
    "RewardPayment",
    "RewardScheduler",
]
