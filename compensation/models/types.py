"""
Standard type definitions for database models.

Provides consistent types for monetary and rate fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for amounts, balances, rewards
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Fractional rate type for bonus percentages (0.2 == 20%)
# Precision: 10 digits total, 6 after decimal point
RateType = DECIMAL(10, 6)
