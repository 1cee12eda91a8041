"""
Tests for transient failure retries.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from compensation.utils.exceptions import TransientStoreError, ValidationError
from compensation.utils.retry import backoff_delay, retry_transient


class TestBackoffDelay:
    """Test exponential backoff."""

    def test_doubles_per_attempt(self):
        assert [backoff_delay(n, 0.5) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]


class TestRetryTransient:
    """Test retry_transient."""

    @pytest.mark.asyncio
    async def test_success_after_failures(self):
        operation = AsyncMock(
            side_effect=[TransientStoreError("a"), TransientStoreError("b"), "ok"]
        )

        result = await retry_transient(operation, max_retries=3, base_delay=0)

        assert result == "ok"
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_exhausted(self):
        operation = AsyncMock(side_effect=TransientStoreError("down"))

        with pytest.raises(TransientStoreError):
            await retry_transient(operation, max_retries=2, base_delay=0)

        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self):
        operation = AsyncMock(side_effect=ValidationError("bad"))

        with pytest.raises(ValidationError):
            await retry_transient(operation, max_retries=3, base_delay=0)

        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_driver_errors_retried(self):
        operation = AsyncMock(
            side_effect=[OperationalError("SELECT 1", {}, Exception("gone")), "ok"]
        )

        result = await retry_transient(operation, max_retries=1, base_delay=0)

        assert result == "ok"
        assert operation.await_count == 2
