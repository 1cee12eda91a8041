"""
Base service class.

Provides common functionality for all engine classes: ledger and
configuration injection, and logging with bound service context.
"""

from decimal import ROUND_DOWN, Decimal

from loguru import logger

from compensation.config.compensation_config import CompensationConfig, default_config
from compensation.ledger.accessor import LedgerAccessor

# Smallest unit stored by MoneyType (8 decimal places)
MONEY_QUANTUM = Decimal("0.00000001")


def to_money(value: Decimal) -> Decimal:
    """
    Round a value down to the stored money precision.

    Args:
        value: Amount

    Returns:
        Amount with at most 8 decimal places
    """
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_DOWN)


class BaseService:
    """
    Base service class.

    Provides common functionality for all service classes:
    - Ledger access
    - Injected compensation configuration
    - Logging with bound service context
    """

    def __init__(
        self,
        ledger: LedgerAccessor,
        config: CompensationConfig | None = None,
    ) -> None:
        """
        Initialize base service.

        Args:
            ledger: Ledger accessor
            config: Compensation configuration (defaults to business constants)
        """
        self.ledger = ledger
        self.config = config or default_config
        self.logger = logger.bind(service=self.__class__.__name__)
