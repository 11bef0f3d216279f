"""
Locking contract and the record-building logic shared by every strategy.

Strategies compose a SessionRecords instance rather than inheriting from a
base class; LockingStrategy is a structural protocol.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple, Union

from ..codec import AttributeCodec
from ..reliability import SystemClock
from ..storage import AttributeUpdate, Condition
from kvsession.config.provider import SessionStoreConfig

DATA = "data"
CREATED_AT = "created_at"
UPDATED_AT = "updated_at"
LOCK_FLAG = "lock_flag"
LOCK_TIME = "lock_time"


@dataclass
class RequestContext:
    """
    Per-request state threaded through get/set/delete.

    Attributes:
        new_session: No stored record is known for the id yet
        initial_data: Encoded body as last read or written, for change detection
        lock_token: Owner token of the pessimistic lock held by this request
        extras: Free-form values for error handlers (request path, etc.)
    """
    new_session: bool = False
    initial_data: Optional[bytes] = None
    lock_token: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WriteOptions:
    """Extra instructions for set()."""
    add_attributes: Dict[str, AttributeUpdate] = field(default_factory=dict)
    expected: Optional[Condition] = None

    def __bool__(self) -> bool:
        return bool(self.add_attributes) or self.expected is not None


class LockingStrategy(Protocol):
    """Protocol for session concurrency strategies."""

    async def get(self, session_id: str, context: RequestContext) -> Tuple[Dict[str, Any], bool]:
        """
        Load session attributes.

        Returns:
            Tuple of (attributes, found)
        """
        ...

    async def set(
        self,
        session_id: str,
        session: Mapping[str, Any],
        context: RequestContext,
        options: Optional[WriteOptions] = None,
    ) -> Union[str, bool]:
        """
        Persist session attributes.

        Returns:
            The session id on success, False for an empty session (nothing written)
        """
        ...

    async def delete(self, session_id: str, context: RequestContext) -> None:
        """Remove the session record. Idempotent."""
        ...

    async def release(self, session_id: str, context: RequestContext) -> None:
        """Give up any lock held by the context without writing data."""
        ...


class SessionRecords:
    """Builds store payloads for session records."""

    def __init__(self, config: SessionStoreConfig, codec: Optional[AttributeCodec] = None, clock=None):
        self.config = config
        self.codec = codec or AttributeCodec()
        self.clock = clock or SystemClock()

    def now(self) -> str:
        return repr(self.clock.time())

    def data_unchanged(self, context: RequestContext, packed: bytes) -> bool:
        """True when the encoded body matches what this request started with."""
        if context.initial_data is None:
            return False
        return context.initial_data == packed

    def shadow_attributes(self, session: Mapping[str, Any]) -> Dict[str, AttributeUpdate]:
        """Mirror configured keys into their own columns; absent keys delete the column."""
        updates = {}
        for key in self.config.shadow_keys:
            if session.get(key) is None:
                updates[key] = AttributeUpdate.delete()
            else:
                updates[key] = AttributeUpdate.put(self.codec.encode_shadow(session[key]))
        return updates

    def build_update(
        self,
        session: Mapping[str, Any],
        context: RequestContext,
        options: Optional[WriteOptions] = None,
    ) -> Tuple[Dict[str, AttributeUpdate], Optional[Condition], bytes]:
        """
        Build the update_item payload for a session write.

        New sessions get created_at and ignore options; existing sessions
        take the forced attributes and expectation from options. The data
        column is left out when the encoded body is unchanged since the last
        read or write.

        Returns:
            Tuple of (updates, condition, packed body)
        """
        packed = self.codec.encode(session)
        timestamp = self.now()

        updates: Dict[str, AttributeUpdate] = {UPDATED_AT: AttributeUpdate.put(timestamp)}
        if not self.data_unchanged(context, packed):
            updates[DATA] = AttributeUpdate.put(packed)

        if context.new_session:
            updates[CREATED_AT] = AttributeUpdate.put_if_absent(timestamp)

        condition = None
        if options and not context.new_session:
            updates.update(options.add_attributes)
            condition = options.expected
        updates.update(self.shadow_attributes(session))
        return updates, condition, packed

    def decode_item(self, item: Optional[Mapping[str, Any]], context: RequestContext) -> Tuple[Dict[str, Any], bool]:
        """Decode the data column of an item and record the baseline on the context."""
        packed = AttributeCodec.as_bytes(item.get(DATA)) if item else None
        found = packed is not None
        context.initial_data = packed
        context.new_session = not found
        return self.codec.decode(packed), found

    def written(self, context: RequestContext, packed: bytes) -> None:
        """Record a successful write: later writes in this context compare against it."""
        context.initial_data = packed
        context.new_session = False
