"""
Investment services.

New investments, withdrawals and summaries.
"""

from compensation.services.investment.service import (
    InvestmentReceipt,
    InvestmentService,
    InvestmentSummary,
)
from compensation.services.investment.validation import InvestmentValidator


__all__ = [
    "InvestmentReceipt",
    "InvestmentService",
    "InvestmentSummary",
    "InvestmentValidator",
]
