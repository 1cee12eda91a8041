"""
Exception handling utilities.

Defines the compensation error taxonomy and the categories used by the
batch orchestrator to decide how a per-user failure is handled.
"""

from sqlalchemy.exc import DBAPIError, OperationalError


class CompensationError(Exception):
    """Base class for all compensation engine errors."""

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(CompensationError):
    """Raised when request input is invalid (amount, package type, bounds)."""
    pass


class NotFoundError(CompensationError):
    """Raised when a user or investment does not exist."""
    pass


class CapExceededError(CompensationError):
    """Raised when an investment would exceed an active-investment ceiling."""
    pass


class IntegrityError(CompensationError):
    """
    Raised on corrupted or incomplete data.

    Cycles in the referral graph, missing payout address during a batch run.
    """
    pass


class TransientStoreError(CompensationError):
    """Raised when the ledger store fails in a way that may succeed on retry."""
    pass


class BatchAlreadyRunningError(CompensationError):
    """Raised when a batch run is requested while the run-lock is held."""
    pass


# Exception categories based on handling strategy

# Driver-level failures that are translated into TransientStoreError
STORE_TRANSIENT = (
    OperationalError,
    DBAPIError,
    TimeoutError,
    ConnectionError,
)

# Batch errors: the offending user is skipped, the run continues
SKIP_USER = (
    IntegrityError,
    NotFoundError,
)


def is_transient(exc: BaseException) -> bool:
    """
    Check if exception is a retryable store failure.

    Args:
        exc: Exception to check

    Returns:
        True if the operation may be retried
    """
    return isinstance(exc, (TransientStoreError, *STORE_TRANSIENT))


def skips_user(exc: BaseException) -> bool:
    """
    Check if exception means the batch should skip the user.

    Args:
        exc: Exception to check

    Returns:
        True if the user is skipped with a warning
    """
    return isinstance(exc, SKIP_USER)
