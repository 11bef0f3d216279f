"""
Error taxonomy for the session store.

Every error raised by kvsession derives from SessionStoreError so callers can
catch the whole family in one place.
"""

from typing import Optional


class SessionStoreError(Exception):
    """Base class for all session store errors."""


class StoreError(SessionStoreError):
    """A call against the backing key-value store failed."""


class StoreUnavailable(StoreError):
    """The backing store could not be reached or rejected the request."""


class ConditionalCheckFailed(StoreError):
    """A conditional write or delete did not meet its precondition."""

    def __init__(self, key: str, message: Optional[str] = None):
        super().__init__(message or f"Conditional check failed for item {key!r}")
        self.key = key


class CorruptSessionData(SessionStoreError):
    """Stored session data could not be decoded."""


class UnsupportedSessionValue(SessionStoreError, TypeError):
    """A session value falls outside the serializable value domain."""


class InvalidSessionId(SessionStoreError):
    """A session id presented by a client failed signature verification."""

    def __init__(self, session_id: Optional[str] = None):
        super().__init__("Session id failed integrity verification")
        # Never echo the full forged id back into logs
        self.session_id_prefix = session_id[:8] if session_id else None


class LockTimeout(SessionStoreError):
    """Pessimistic lock acquisition exhausted its retry budget."""

    def __init__(self, session_id: str, attempts: int, waited: float):
        super().__init__(
            f"Could not acquire session lock after {attempts} attempts ({waited:.3f}s)"
        )
        self.session_id = session_id
        self.attempts = attempts
        self.waited = waited


class MissingSecretKey(SessionStoreError):
    """No secret key was configured for signing session ids."""

    def __init__(self):
        super().__init__(
            "A secret key is required to sign session ids. "
            "Set SESSION_SECRET_KEY or pass secret_key in the configuration."
        )


class TableError(SessionStoreError):
    """Table administration failed (for example, waiting for a table timed out)."""
