"""
ROI services.

Return calculation and periodic accrual.
"""

from compensation.services.roi.accrual_engine import (
    InvestmentAccrual,
    ROIAccrualEngine,
    UserAccrualResult,
)
from compensation.services.roi.calculator import PeriodReturn, ROICalculator, parse_amount


__all__ = [
    "InvestmentAccrual",
    "PeriodReturn",
    "ROIAccrualEngine",
    "ROICalculator",
    "UserAccrualResult",
    "parse_amount",
]
