"""
Rank services.

Rank evaluation over the referral graph.
"""

from compensation.services.rank.evaluator import RankEvaluation, RankEvaluator


__all__ = [
    "RankEvaluation",
    "RankEvaluator",
]
