"""
Storage Module - Black Box Interface

Purpose: Abstract the key-value store behind get/update/delete item calls
Interface: StoreClient protocol, InMemoryStoreClient, RedisStoreClient, StorageModule
Hidden: Redis specifics, connection handling, transactions

Any client implementing StoreClient can back the locking strategies.
"""

import os
from typing import Optional

import redis.asyncio as redis

from .client import StoreClient
from .memory import InMemoryStoreClient
from .redis_store import RedisStoreClient
from .types import (
    Action,
    AllOf,
    AnyOf,
    AttributeEquals,
    AttributeExists,
    AttributeLessThan,
    AttributeNotExists,
    AttributeUpdate,
    Condition,
    apply_updates,
    combine,
)


class StorageModule:
    """Owns the Redis connection used by the store client and table admin."""

    def __init__(self, connection_url: Optional[str] = None):
        """
        Args:
            connection_url: Redis URL (falls back to REDIS_URL, then localhost)
        """
        self.url = connection_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self._client: Optional[redis.Redis] = None

    async def connect(self) -> redis.Redis:
        """Return the shared client, creating it on first use."""
        if not self._client:
            self._client = redis.from_url(self.url, decode_responses=True)
        return self._client

    async def disconnect(self):
        """Close the client; connect() afterwards opens a new one."""
        if self._client:
            await self._client.aclose()
            self._client = None


__all__ = [
    "Action",
    "AllOf",
    "AnyOf",
    "AttributeEquals",
    "AttributeExists",
    "AttributeLessThan",
    "AttributeNotExists",
    "AttributeUpdate",
    "Condition",
    "InMemoryStoreClient",
    "RedisStoreClient",
    "StorageModule",
    "StoreClient",
    "apply_updates",
    "combine",
]
