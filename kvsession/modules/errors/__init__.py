"""
Errors Module - Black Box Interface

Purpose: Error taxonomy and the pluggable error handler port
Interface: SessionStoreError hierarchy, ErrorHandler, DefaultErrorHandler, guard()
Hidden: How errors are logged

Hosts replace DefaultErrorHandler with anything that has handle_error().
"""

from .errors import (
    ConditionalCheckFailed,
    CorruptSessionData,
    InvalidSessionId,
    LockTimeout,
    MissingSecretKey,
    SessionStoreError,
    StoreError,
    StoreUnavailable,
    TableError,
    UnsupportedSessionValue,
)
from .handler import DefaultErrorHandler, ErrorHandler, guard, report_error

__all__ = [
    "ConditionalCheckFailed",
    "CorruptSessionData",
    "DefaultErrorHandler",
    "ErrorHandler",
    "InvalidSessionId",
    "LockTimeout",
    "MissingSecretKey",
    "SessionStoreError",
    "StoreError",
    "StoreUnavailable",
    "TableError",
    "UnsupportedSessionValue",
    "guard",
    "report_error",
]
