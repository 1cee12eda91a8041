"""
Async runner for dramatiq tasks.

Provides a thread-safe way to run async code in dramatiq actors.
Each worker thread reuses one event loop; each task run gets its own
NullPool engine so connections never cross event loops.
"""

import asyncio
import threading
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import redis.asyncio as redis
from loguru import logger
from sqlalchemy.pool import NullPool

from compensation.config.database import create_engine, create_session_maker
from compensation.config.settings import settings
from compensation.ledger.sql_ledger import SqlLedger
from compensation.utils.exceptions import BatchAlreadyRunningError

T = TypeVar("T")

# Thread-local storage for event loops
_thread_local = threading.local()


def get_event_loop() -> asyncio.AbstractEventLoop:
    """
    Get or create event loop for current thread.

    Creates a new event loop for each thread and reuses it.
    This prevents "Future attached to a different loop" errors.
    """
    loop = getattr(_thread_local, "loop", None)
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        _thread_local.loop = loop
        logger.debug(f"Created new event loop for thread {threading.current_thread().name}")
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run async coroutine in the thread's event loop.

    Args:
        coro: Async coroutine to run

    Returns:
        Result of the coroutine

    Raises:
        BatchAlreadyRunningError: Passed through unlogged, the actors report it
    """
    loop = get_event_loop()
    try:
        return loop.run_until_complete(coro)
    except BatchAlreadyRunningError:
        raise
    except Exception as e:
        logger.exception(f"Error running async coroutine: {e}")
        raise


@asynccontextmanager
async def create_task_ledger() -> AsyncIterator[SqlLedger]:
    """
    Create a ledger bound to the current event loop.

    Usage:
        async with create_task_ledger() as ledger:
            orchestrator = BatchOrchestrator(ledger)

    Yields:
        SqlLedger over a NullPool engine, disposed on exit
    """
    engine = create_engine(poolclass=NullPool)
    try:
        yield SqlLedger(create_session_maker(engine))
    finally:
        await engine.dispose()


@asynccontextmanager
async def create_task_redis() -> AsyncIterator[redis.Redis]:
    """
    Create a Redis client for the run-lock.

    Yields:
        redis.asyncio client, closed on exit
    """
    client = redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )
    try:
        yield client
    finally:
        await client.aclose()
