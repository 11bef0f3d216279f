import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from redis.exceptions import RedisError, WatchError

from ..errors import ConditionalCheckFailed, StoreUnavailable
from .types import AttributeUpdate, Condition, apply_updates

logger = logging.getLogger(__name__)


class RedisStoreClient:
    """
    Store client over Redis hashes.

    A table is a key namespace: item ``k`` lives in the hash ``<table>:<k>``.
    Conditional writes run as WATCH/MULTI/EXEC transactions, so the
    precondition and the write are atomic with respect to other clients.
    Configured index attributes are mirrored into sets
    ``<table>:index:<attr>:<value>`` holding item keys.
    """

    def __init__(
        self,
        redis_client,
        table_name: str = "sessions",
        key_attribute: str = "session_id",
        index_attributes: Sequence[str] = (),
        max_watch_retries: int = 10,
    ):
        """
        Initialize the client.

        Args:
            redis_client: Async Redis client
            table_name: Key namespace for items
            key_attribute: Attribute holding the item's own key
            index_attributes: Attributes to maintain secondary index sets for
            max_watch_retries: Attempts before a contended transaction gives up
        """
        self.redis = redis_client
        self.table_name = table_name
        self.key_attribute = key_attribute
        self.index_attributes = tuple(index_attributes)
        self.max_watch_retries = max_watch_retries

    def item_key(self, key: str) -> str:
        return f"{self.table_name}:{key}"

    def index_key(self, attribute: str, value: Any) -> str:
        return f"{self.table_name}:index:{attribute}:{_text(value)}"

    async def get_item(
        self,
        key: str,
        attributes: Optional[Sequence[str]] = None,
        consistent_read: bool = False,
    ) -> Optional[Dict[str, Any]]:
        # Reads from the primary are always consistent; consistent_read is accepted for the protocol
        name = self.item_key(key)
        try:
            if attributes is None:
                item = await self.redis.hgetall(name)
                return dict(item) if item else None

            fields = [self.key_attribute, *attributes]
            values = await self.redis.hmget(name, fields)
        except RedisError as e:
            raise StoreUnavailable(f"Redis get failed: {e}") from e

        if values[0] is None:
            return None
        return {
            attr: value for attr, value in zip(attributes, values[1:]) if value is not None
        }

    async def update_item(
        self,
        key: str,
        updates: Mapping[str, AttributeUpdate],
        condition: Optional[Condition] = None,
    ) -> Dict[str, Any]:
        name = self.item_key(key)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                for attempt in range(self.max_watch_retries):
                    try:
                        await pipe.watch(name)
                        current = await pipe.hgetall(name) or {}
                        if condition is not None and not condition.evaluate(current):
                            raise ConditionalCheckFailed(key)

                        updated = apply_updates(current, updates)
                        updated[self.key_attribute] = key

                        pipe.multi()
                        self._queue_write(pipe, name, key, current, updated)
                        await pipe.execute()
                        return updated
                    except WatchError:
                        logger.debug(f"Item {key[:8]}... changed during update (attempt {attempt + 1})")
                        continue
        except RedisError as e:
            raise StoreUnavailable(f"Redis update failed: {e}") from e

        raise StoreUnavailable(
            f"Update gave up after {self.max_watch_retries} contended attempts"
        )

    async def delete_item(self, key: str, condition: Optional[Condition] = None) -> None:
        name = self.item_key(key)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                for attempt in range(self.max_watch_retries):
                    try:
                        await pipe.watch(name)
                        current = await pipe.hgetall(name) or {}
                        if condition is not None and not condition.evaluate(current):
                            raise ConditionalCheckFailed(key)

                        pipe.multi()
                        pipe.delete(name)
                        for attribute in self.index_attributes:
                            if attribute in current:
                                pipe.srem(self.index_key(attribute, current[attribute]), key)
                        await pipe.execute()
                        return
                    except WatchError:
                        logger.debug(f"Item {key[:8]}... changed during delete (attempt {attempt + 1})")
                        continue
        except RedisError as e:
            raise StoreUnavailable(f"Redis delete failed: {e}") from e

        raise StoreUnavailable(
            f"Delete gave up after {self.max_watch_retries} contended attempts"
        )

    async def query_index(self, attribute: str, value: Any) -> List[str]:
        """
        Return keys of items whose index attribute equals value.

        Raises:
            ValueError: If the attribute is not indexed
        """
        if attribute not in self.index_attributes:
            raise ValueError(f"Attribute {attribute!r} is not indexed")
        try:
            members = await self.redis.smembers(self.index_key(attribute, value))
        except RedisError as e:
            raise StoreUnavailable(f"Redis index query failed: {e}") from e
        return sorted(_text(m) for m in members)

    def _queue_write(self, pipe, name: str, key: str, current: Mapping, updated: Mapping) -> None:
        """Queue the commands turning current into updated inside MULTI."""
        changed = {attr: value for attr, value in updated.items() if current.get(attr) != value}
        removed = [attr for attr in current if attr not in updated]

        if changed:
            pipe.hset(name, mapping=changed)
        if removed:
            pipe.hdel(name, *removed)

        for attribute in self.index_attributes:
            old = current.get(attribute)
            new = updated.get(attribute)
            if old is not None and (new is None or _text(old) != _text(new)):
                pipe.srem(self.index_key(attribute, old), key)
            if new is not None and (old is None or _text(old) != _text(new)):
                pipe.sadd(self.index_key(attribute, new), key)


def _text(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)
