"""
ROI calculator.

Pure return math: rate lookup, daily ceiling and threshold tax.
No ledger or ORM access.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from compensation.config.compensation_config import CompensationConfig
from compensation.models.enums import PackageType, Rank
from compensation.services.base_service import to_money


@dataclass(frozen=True)
class PeriodReturn:
    """
    Return of one investment for one period.

    Attributes:
        rate: Daily rate applied
        raw: amount * rate
        capped: raw limited by the daily ceiling
        taxed: Whether the threshold tax applied
        net: Return actually accrued
    """
    rate: Decimal
    raw: Decimal
    capped: Decimal
    taxed: bool
    net: Decimal


def parse_amount(value: object) -> Decimal | None:
    """
    Parse a stored principal.

    Args:
        value: Stored amount (Decimal, number, string or None)

    Returns:
        Positive finite Decimal, or None if the value is malformed
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


class ROICalculator:
    """
    Pure business logic calculator for periodic returns.

    Works with Decimal values and an injected CompensationConfig.
    """

    def __init__(self, config: CompensationConfig) -> None:
        """Initialize calculator with configuration."""
        self.config = config

    def daily_rate(self, rank: Rank) -> Decimal:
        """
        Daily rate for a rank from the configured rate table.

        Example:
            >>> ROICalculator(CompensationConfig()).daily_rate(Rank.TMC_PLUS)
            Decimal('0.008')
        """
        return self.config.rate_table.rate_for(rank)

    def capped_return(
        self, amount: Decimal, rate: Decimal, package_type: PackageType
    ) -> Decimal:
        """
        Raw return limited by the package's daily ceiling.

        Formula: min(amount * rate, daily_cap)

        Args:
            amount: Principal
            rate: Daily rate (fraction)
            package_type: Package class selecting the ceiling

        Returns:
            Capped return
        """
        if amount <= 0 or rate <= 0:
            return Decimal("0")
        return min(amount * rate, self.config.daily_cap[package_type])

    def crosses_tax_threshold(
        self, bucket_balance: Decimal, period_return: Decimal, package_type: PackageType
    ) -> bool:
        """
        Check if the post-accrual balance reaches the tax threshold.

        Args:
            bucket_balance: Balance the return accrues into
            period_return: Capped return of the period
            package_type: Package class selecting the threshold

        Returns:
            True if the period's return is taxed
        """
        return bucket_balance + period_return >= self.config.tax_threshold[package_type]

    def apply_tax(self, value: Decimal) -> Decimal:
        """Retained part of a taxed return (25% tax by default)."""
        return value * self.config.tax_retained

    def period_return(
        self,
        amount: Decimal,
        rank: Rank,
        package_type: PackageType,
        bucket_balance: Decimal,
    ) -> PeriodReturn:
        """
        Full return computation for one investment and period.

        Args:
            amount: Principal
            rank: Owner's rank
            package_type: Package class
            bucket_balance: Owner's balance for this package class

        Returns:
            PeriodReturn with intermediate values

        Example:
            >>> calc = ROICalculator(CompensationConfig())
            >>> calc.period_return(
            ...     Decimal("2000000"), Rank.TMC_PRO, PackageType.PRINCIPAL, Decimal("0")
            ... ).net
            Decimal('15000.00000000')
        """
        rate = self.daily_rate(rank)
        raw = amount * rate
        capped = self.capped_return(amount, rate, package_type)
        taxed = self.crosses_tax_threshold(bucket_balance, capped, package_type)
        net = self.apply_tax(capped) if taxed else capped
        return PeriodReturn(
            rate=rate,
            raw=to_money(raw),
            capped=to_money(capped),
            taxed=taxed,
            net=to_money(net),
        )
