"""
Dramatiq broker configuration.

Redis broker for the compensation batch actors. Batch runs are idempotent
per period and month, so a failed run is retried as a whole; domain errors
other than store failures are not, a rerun would fail the same way.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import Retries, ShutdownNotifications
from loguru import logger

from compensation.config.settings import settings
from compensation.utils.exceptions import CompensationError, is_transient

# Whole-run retries after the first attempt
BATCH_MAX_RETRIES = 3


def retry_batch_run(retries_so_far: int, exception: Exception) -> bool:
    """
    Decide whether a failed batch run is retried.

    Args:
        retries_so_far: Retries already made for the message
        exception: Error raised by the actor

    Returns:
        True if the run is enqueued again
    """
    if isinstance(exception, CompensationError) and not is_transient(exception):
        logger.warning(f"Batch run not retried: {exception}")
        return False
    return retries_so_far < BATCH_MAX_RETRIES


redis_broker = RedisBroker(
    host=settings.redis_host,
    port=settings.redis_port,
    password=settings.redis_password if settings.redis_password else None,
    db=settings.redis_db,
)

# A worker stopping mid-run interrupts the actor; the retried run resumes
# from the per-user state already committed
redis_broker.add_middleware(ShutdownNotifications())
redis_broker.add_middleware(
    Retries(
        max_retries=BATCH_MAX_RETRIES,
        min_backoff=30_000,  # 30 seconds, lets the store recover
        max_backoff=600_000,  # 10 minutes
        retry_when=retry_batch_run,
    )
)

dramatiq.set_broker(redis_broker)

broker = redis_broker

logger.info(
    f"Compensation task broker on "
    f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
)
