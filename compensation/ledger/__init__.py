"""
Ledger.

Store-agnostic ledger interface and its SQLAlchemy implementation.
"""

from compensation.ledger.accessor import (
    ACTIVE_INVESTMENTS,
    ALL_INVESTMENTS,
    InvestmentFilter,
    LedgerAccessor,
    LedgerUnitOfWork,
)
from compensation.ledger.sql_ledger import SqlLedger, SqlUnitOfWork


__all__ = [
    "ACTIVE_INVESTMENTS",
    "ALL_INVESTMENTS",
    "InvestmentFilter",
    "LedgerAccessor",
    "LedgerUnitOfWork",
    "SqlLedger",
    "SqlUnitOfWork",
]
