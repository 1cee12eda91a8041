"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for tests (settings are read at import time)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("EMERGENCY_STOP_ROI", "false")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from compensation.config.compensation_config import CompensationConfig


@pytest.fixture
def config():
    """Default compensation configuration."""
    return CompensationConfig()


@pytest.fixture
def now():
    """Fixed evaluation time."""
    return datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def mock_redis():
    """Mock redis.asyncio client for the run-lock."""
    client = AsyncMock()
    client.set = AsyncMock(return_value=True)
    client.eval = AsyncMock(return_value=1)
    return client
