"""
Locking Module - Black Box Interface

Purpose: Translate session reads and writes into conditional store operations
Interface: LockingStrategy.get(), set(), delete(), release()
Hidden: Change detection, shadow columns, lock records, retry schedule

Two strategies: NullLocking (last writer wins) and PessimisticLocking
(exclusive lock per session). Pick one at startup; see modules.factory.
"""

from .base import (
    CREATED_AT,
    DATA,
    LOCK_FLAG,
    LOCK_TIME,
    UPDATED_AT,
    LockingStrategy,
    RequestContext,
    SessionRecords,
    WriteOptions,
)
from .null import NullLocking
from .pessimistic import PessimisticLocking

__all__ = [
    "CREATED_AT",
    "DATA",
    "LOCK_FLAG",
    "LOCK_TIME",
    "UPDATED_AT",
    "LockingStrategy",
    "NullLocking",
    "PessimisticLocking",
    "RequestContext",
    "SessionRecords",
    "WriteOptions",
]
