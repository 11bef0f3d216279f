"""
Pessimistic locking.

State per session id and request:

    Unlocked --get (conditional put of lock_flag/lock_time)--> Locked
    Locked   --set/delete/release (same call clears the lock)--> Unlocked

A lock older than lock_expiry_time counts as abandoned and may be seized.
The lock is written before the caller sees any session data, so a request
that dies while holding it leaves a lock that simply expires.
"""

import logging
import uuid
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ..codec import AttributeCodec
from ..errors import ConditionalCheckFailed, ErrorHandler, LockTimeout, guard
from ..reliability import BackoffPolicy, SystemClock
from ..storage import (
    AllOf,
    AnyOf,
    AttributeEquals,
    AttributeLessThan,
    AttributeNotExists,
    AttributeUpdate,
    Condition,
    StoreClient,
    combine,
)
from .base import DATA, LOCK_FLAG, LOCK_TIME, RequestContext, SessionRecords, WriteOptions
from kvsession.config.provider import SessionStoreConfig

logger = logging.getLogger(__name__)


class PessimisticLocking:
    """Exclusive per-session lock held from get() until set()/delete()."""

    def __init__(
        self,
        config: SessionStoreConfig,
        store: StoreClient,
        error_handler: ErrorHandler,
        codec: Optional[AttributeCodec] = None,
        clock=None,
        backoff: Optional[BackoffPolicy] = None,
    ):
        """
        Initialize pessimistic locking.

        Args:
            config: Session store configuration (lock expiry and retry budget)
            store: Store client
            error_handler: Observer for store and lock errors
            codec: Attribute codec
            clock: Clock for lock timestamps and retry sleeps
            backoff: Retry schedule (defaults to config.lock_backoff)
        """
        self.config = config
        self.store = store
        self.error_handler = error_handler
        self.clock = clock or SystemClock()
        self.backoff = backoff or config.lock_backoff
        self.records = SessionRecords(config, codec, self.clock)

    async def get(self, session_id: str, context: RequestContext) -> Tuple[Dict[str, Any], bool]:
        async with guard(self.error_handler, context):
            item = await self._acquire(session_id, context)
            return self.records.decode_item(item, context)

    async def set(
        self,
        session_id: str,
        session: Mapping[str, Any],
        context: RequestContext,
        options: Optional[WriteOptions] = None,
    ) -> Union[str, bool]:
        if not session:
            return False

        async with guard(self.error_handler, context):
            updates, condition, packed = self.records.build_update(session, context, options)
            # Always written, even with unchanged data, so the lock is cleared
            updates.update(self._unlock_attributes())
            condition = combine(condition, self._write_allowed(context))
            await self.store.update_item(session_id, updates, condition)
            self.records.written(context, packed)
            context.lock_token = None
            return session_id

    async def delete(self, session_id: str, context: RequestContext) -> None:
        async with guard(self.error_handler, context):
            condition = AnyOf(AttributeNotExists(LOCK_FLAG), self._owned(context))
            await self.store.delete_item(session_id, condition)
            context.lock_token = None

    async def release(self, session_id: str, context: RequestContext) -> None:
        if context.lock_token is None:
            return
        async with guard(self.error_handler, context):
            if context.initial_data is None and await self._drop_placeholder(session_id, context):
                context.lock_token = None
                return
            try:
                await self.store.update_item(
                    session_id, self._unlock_attributes(), self._owned(context)
                )
            except ConditionalCheckFailed:
                # Lock expired and was seized by another request; nothing of ours to release
                logger.debug(f"Lock on {session_id[:8]}... no longer held at release")
            context.lock_token = None

    async def _drop_placeholder(self, session_id: str, context: RequestContext) -> bool:
        """
        Delete an item that holds nothing but our lock.

        Acquiring a lock on an unknown id creates the item; when the request
        ends without writing a body the item must not outlive the lock.
        """
        try:
            await self.store.delete_item(
                session_id, AllOf(self._owned(context), AttributeNotExists(DATA))
            )
        except ConditionalCheckFailed:
            return False
        return True

    async def _acquire(self, session_id: str, context: RequestContext) -> Dict[str, Any]:
        """Take the lock, retrying per the backoff policy. Returns the full item."""
        token = uuid.uuid4().hex
        started = self.clock.monotonic()
        attempt = 0

        while True:
            attempt += 1
            now = self.clock.time()
            try:
                item = await self.store.update_item(
                    session_id,
                    {
                        LOCK_FLAG: AttributeUpdate.put(token),
                        LOCK_TIME: AttributeUpdate.put(repr(now)),
                    },
                    self._lock_available(now),
                )
                context.lock_token = token
                if attempt > 1:
                    logger.debug(f"Acquired lock on {session_id[:8]}... after {attempt} attempts")
                return item
            except ConditionalCheckFailed:
                waited = self.clock.monotonic() - started
                delay = self.backoff.next_delay(attempt, waited)
                if delay is None:
                    logger.warning(
                        f"Lock on {session_id[:8]}... still held after {attempt} attempts"
                    )
                    raise LockTimeout(session_id, attempt, waited)
                await self.clock.sleep(delay)

    def _lock_available(self, now: float) -> Condition:
        """Unlocked, or locked long enough ago to count as abandoned."""
        return AnyOf(
            AttributeNotExists(LOCK_FLAG),
            AttributeLessThan(LOCK_TIME, now - self.config.lock_expiry_time),
        )

    def _owned(self, context: RequestContext) -> Condition:
        return AttributeEquals(LOCK_FLAG, context.lock_token or "")

    def _unlock_attributes(self) -> Dict[str, AttributeUpdate]:
        return {
            LOCK_FLAG: AttributeUpdate.delete(),
            LOCK_TIME: AttributeUpdate.delete(),
        }

    def _write_allowed(self, context: RequestContext) -> Condition:
        """Our own lock, or, for a writer that never locked, no live lock held by anyone."""
        if context.lock_token:
            return self._owned(context)
        return self._lock_available(self.clock.time())
