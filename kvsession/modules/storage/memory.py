import logging
from typing import Any, Dict, Mapping, Optional, Sequence

from ..errors import ConditionalCheckFailed
from .types import AttributeUpdate, Condition, apply_updates

logger = logging.getLogger(__name__)


class InMemoryStoreClient:
    """
    Process-local store client.

    Useful for development and tests. Each operation runs to completion
    without awaiting, so check-and-apply is atomic within one event loop.
    Not shared across processes.
    """

    def __init__(self, key_attribute: str = "session_id"):
        self.key_attribute = key_attribute
        self._items: Dict[str, Dict[str, Any]] = {}

    @property
    def items(self) -> Dict[str, Dict[str, Any]]:
        """Live view of stored items, for inspection."""
        return self._items

    async def get_item(
        self,
        key: str,
        attributes: Optional[Sequence[str]] = None,
        consistent_read: bool = False,
    ) -> Optional[Dict[str, Any]]:
        item = self._items.get(key)
        if item is None:
            return None
        if attributes is None:
            return dict(item)
        return {name: item[name] for name in attributes if name in item}

    async def update_item(
        self,
        key: str,
        updates: Mapping[str, AttributeUpdate],
        condition: Optional[Condition] = None,
    ) -> Dict[str, Any]:
        current = self._items.get(key, {})
        if condition is not None and not condition.evaluate(current):
            raise ConditionalCheckFailed(key)

        updated = apply_updates(current, updates)
        updated[self.key_attribute] = key
        self._items[key] = updated
        return dict(updated)

    async def delete_item(self, key: str, condition: Optional[Condition] = None) -> None:
        current = self._items.get(key, {})
        if condition is not None and not condition.evaluate(current):
            raise ConditionalCheckFailed(key)
        if self._items.pop(key, None) is None:
            logger.debug(f"Delete of missing item {key[:8]}... ignored")
