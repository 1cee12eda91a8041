"""
TMC compensation engine.

ROI accrual, referral bonuses, rank evaluation and rank rewards for a
referral investment platform.
"""

__version__ = "0.1.0"
