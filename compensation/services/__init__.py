"""
Services.

Business logic layer: compensation engines and the batch orchestrator.
"""

from compensation.services.base_service import BaseService
from compensation.services.investment import InvestmentReceipt, InvestmentService
from compensation.services.orchestrator import BatchOrchestrator, BatchRunSummary
from compensation.services.rank import RankEvaluation, RankEvaluator
from compensation.services.referral import (
    ReferralBonusEngine,
    ReferralGraph,
    ReferralService,
)
from compensation.services.reward import RewardPayment, RewardScheduler
from compensation.services.roi import ROIAccrualEngine, ROICalculator


__all__ = [
    "BaseService",
    "BatchOrchestrator",
    "BatchRunSummary",
    "InvestmentReceipt",
    "InvestmentService",
    "ROIAccrualEngine",
    "ROICalculator",
    "RankEvaluation",
    "RankEvaluator",
    "ReferralBonusEngine",
    "ReferralGraph",
    "ReferralService",
    "RewardPayment",
    "RewardScheduler",
]
