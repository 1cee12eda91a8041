"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

from datetime import UTC, date, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes.

    Some backends (SQLite) return naive datetimes for timezone-aware columns.

    Args:
        value: Datetime, naive or aware

    Returns:
        Timezone-aware datetime in UTC
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def days_between(start: datetime, end: datetime) -> int:
    """
    Whole days elapsed between two datetimes.

    Args:
        start: Earlier datetime
        end: Later datetime

    Returns:
        Number of whole days, 0 if end precedes start
    """
    delta = ensure_utc(end) - ensure_utc(start)
    return max(delta.days, 0)


def period_of(moment: datetime | None = None) -> date:
    """Accrual period (UTC calendar day) containing the given moment."""
    return ensure_utc(moment or utc_now()).date()
