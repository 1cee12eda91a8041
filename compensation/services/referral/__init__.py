"""
Referral services package.

Contains modular services for referral processing:
- graph: Depth-bounded upline/downline traversal with cycle detection
- level_schedule: Level ROI percentage lookup
- bonus_engine: Direct bonus and level ROI crediting
- referral_service: Referrer attachment and sign-up bonus
"""

from compensation.services.referral.bonus_engine import (
    PlannedBonus,
    ProcessResult,
    ReferralBonusEngine,
)
from compensation.services.referral.graph import GraphNode, ReferralGraph
from compensation.services.referral.level_schedule import LevelROI, level_roi
from compensation.services.referral.referral_service import ReferralService


__all__ = [
    # Graph
    "GraphNode",
    "ReferralGraph",
    # Level ROI
    "LevelROI",
    "level_roi",
    # Bonus processing
    "PlannedBonus",
    "ProcessResult",
    "ReferralBonusEngine",
    "ReferralService",
]
