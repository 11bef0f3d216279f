"""Store client protocol consumed by the locking strategies."""

from typing import Any, Dict, Mapping, Optional, Protocol, Sequence

from .types import AttributeUpdate, Condition


class StoreClient(Protocol):
    """
    Protocol for key-value store clients.

    Failures surface as StoreError subclasses: StoreUnavailable when the
    backend call fails, ConditionalCheckFailed when a precondition does not hold.
    """

    async def get_item(
        self,
        key: str,
        attributes: Optional[Sequence[str]] = None,
        consistent_read: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """
        Fetch an item.

        Args:
            key: Item key
            attributes: Only return these attributes (all when None)
            consistent_read: Request a strongly consistent read where supported

        Returns:
            Attribute mapping, or None when the item does not exist
        """
        ...

    async def update_item(
        self,
        key: str,
        updates: Mapping[str, AttributeUpdate],
        condition: Optional[Condition] = None,
    ) -> Dict[str, Any]:
        """
        Apply attribute updates, creating the item when absent.

        Returns:
            All attributes of the item after the update
        """
        ...

    async def delete_item(self, key: str, condition: Optional[Condition] = None) -> None:
        """Delete an item. Deleting an absent item is not an error."""
        ...
