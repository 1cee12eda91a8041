"""
Amount validation for investments and withdrawals.
"""

from decimal import Decimal, InvalidOperation

from loguru import logger

from compensation.config.compensation_config import CompensationConfig
from compensation.models.enums import PackageType


class InvestmentValidator:
    """Validator for investment requests."""

    def __init__(self, config: CompensationConfig) -> None:
        self.config = config

    def parse_amount(self, value: object) -> tuple[Decimal | None, str | None]:
        """
        Parse a requested amount.

        Args:
            value: Amount as Decimal, int, float or string

        Returns:
            Tuple of (amount, error_message)
        """
        if value is None or isinstance(value, bool):
            return None, "Amount is required"
        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None, f"Amount is not a number: {value!r}"
        if not amount.is_finite():
            return None, f"Amount is not a finite number: {value!r}"
        if amount <= 0:
            return None, "Amount must be positive"
        return amount, None

    def parse_package_type(
        self, value: object
    ) -> tuple[PackageType | None, str | None]:
        """
        Parse a package type name.

        Returns:
            Tuple of (package_type, error_message)
        """
        if isinstance(value, PackageType):
            return value, None
        try:
            return PackageType(str(value).lower()), None
        except ValueError:
            return None, f"Unknown package type: {value!r}"

    def validate_bounds(
        self, amount: Decimal, package_type: PackageType
    ) -> tuple[bool, str | None]:
        """
        Validate that amount is within the investment bounds.

        Args:
            amount: Requested amount
            package_type: Package class (yield packages have a higher minimum)

        Returns:
            Tuple of (is_valid, error_message)
        """
        min_amount = self.config.min_investment
        max_amount = self.config.max_investment

        if amount < min_amount or amount > max_amount:
            logger.debug(
                "Amount outside bounds",
                extra={
                    "amount": str(amount),
                    "min": str(min_amount),
                    "max": str(max_amount),
                },
            )
            return (
                False,
                f"Amount must be between {min_amount:.2f} and {max_amount:.2f}",
            )

        if (
            package_type == PackageType.YIELD
            and amount < self.config.yield_min_investment
        ):
            return (
                False,
                f"Yield packages require at least "
                f"{self.config.yield_min_investment:.2f}",
            )

        return True, None

    def is_yield_eligible(self, amount: Decimal) -> bool:
        """Check if an amount qualifies for a yield package."""
        return amount >= self.config.yield_min_investment
