"""
Shared pytest fixtures for kvsession tests.

This module provides common fixtures including:
- RecordingStore: in-memory store client that records every call
- FakeClock: deterministic clock whose sleeps advance time instantly
- Redis mocks for store client and table admin tests
"""

import asyncio
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kvsession.config import SessionStoreConfig
from kvsession.modules.storage import InMemoryStoreClient

SECRET = "test-secret-key"


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """
    Clock for tests: time only moves when sleep() is awaited or advance() is called.

    on_sleep, when set, is awaited after every sleep so a test can let another
    request make progress while a lock acquirer backs off.
    """

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start
        self.sleeps: List[float] = []
        self.on_sleep: Optional[Callable[[float], Awaitable[None]]] = None

    def time(self) -> float:
        return self.now

    def monotonic(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)
        if self.on_sleep is not None:
            await self.on_sleep(seconds)


# =============================================================================
# Store
# =============================================================================

@dataclass
class StoreCall:
    """Record of a store client call made during testing."""
    operation: str
    key: str
    updates: Dict[str, Any] = field(default_factory=dict)
    condition: Any = None
    kwargs: Dict[str, Any] = field(default_factory=dict)


class RecordingStore(InMemoryStoreClient):
    """InMemoryStoreClient that keeps a history of calls for payload assertions."""

    def __init__(self, key_attribute: str = "session_id"):
        super().__init__(key_attribute)
        self.calls: List[StoreCall] = []

    async def get_item(self, key, attributes=None, consistent_read=False):
        self.calls.append(
            StoreCall(
                "get_item",
                key,
                kwargs={"attributes": attributes, "consistent_read": consistent_read},
            )
        )
        return await super().get_item(key, attributes, consistent_read)

    async def update_item(self, key, updates, condition=None):
        self.calls.append(StoreCall("update_item", key, dict(updates), condition))
        return await super().update_item(key, updates, condition)

    async def delete_item(self, key, condition=None):
        self.calls.append(StoreCall("delete_item", key, condition=condition))
        return await super().delete_item(key, condition)

    def calls_to(self, operation: str) -> List[StoreCall]:
        return [c for c in self.calls if c.operation == operation]

    def reset(self):
        """Clear call history (but keep stored items)."""
        self.calls = []


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def error_handler():
    handler = MagicMock()
    handler.handle_error = MagicMock(return_value=None)
    return handler


@pytest.fixture
def config():
    return SessionStoreConfig(secret_key=SECRET, shadow_keys=["role"])


# =============================================================================
# Redis Mocking Infrastructure
# =============================================================================

@pytest.fixture
def mock_redis():
    """
    Mock async Redis client with a transactional pipeline.

    The pipeline is exposed as mock_redis._pipe. Commands queued after
    multi() are plain MagicMocks, as in redis-py where they are buffered.
    """
    redis = AsyncMock()

    # Hash operations
    redis.hgetall = AsyncMock(return_value={})
    redis.hmget = AsyncMock(return_value=[])
    redis.hset = AsyncMock(return_value=1)
    redis.hsetnx = AsyncMock(return_value=1)

    # Key and set operations
    redis.delete = AsyncMock(return_value=0)
    redis.smembers = AsyncMock(return_value=set())

    pipe = AsyncMock()
    pipe.__aenter__.return_value = pipe
    pipe.__aexit__.return_value = False
    pipe.watch = AsyncMock()
    pipe.hgetall = AsyncMock(return_value={})
    pipe.multi = MagicMock()
    pipe.hset = MagicMock()
    pipe.hdel = MagicMock()
    pipe.sadd = MagicMock()
    pipe.srem = MagicMock()
    pipe.delete = MagicMock()
    pipe.execute = AsyncMock(return_value=[])
    redis.pipeline = MagicMock(return_value=pipe)
    redis._pipe = pipe

    return redis


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "locking: Tests exercising lock acquisition and release"
    )
    config.addinivalue_line(
        "markers", "integration: Tests wiring several modules together"
    )
