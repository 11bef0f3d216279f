import logging
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ..codec import AttributeCodec
from ..errors import ErrorHandler, guard
from ..storage import StoreClient
from .base import DATA, RequestContext, SessionRecords, WriteOptions
from kvsession.config.provider import SessionStoreConfig

logger = logging.getLogger(__name__)


class NullLocking:
    """
    No cross-request exclusion.

    Relies on change detection and last-writer-wins at the store. The store
    merges attributes, so concurrent writers only clobber each other when they
    change the same column.
    """

    def __init__(
        self,
        config: SessionStoreConfig,
        store: StoreClient,
        error_handler: ErrorHandler,
        codec: Optional[AttributeCodec] = None,
        clock=None,
    ):
        self.config = config
        self.store = store
        self.error_handler = error_handler
        self.records = SessionRecords(config, codec, clock)

    async def get(self, session_id: str, context: RequestContext) -> Tuple[Dict[str, Any], bool]:
        async with guard(self.error_handler, context):
            item = await self.store.get_item(
                session_id, attributes=[DATA], consistent_read=self.config.consistent_read
            )
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
            await self.store.update_item(session_id, updates, condition)
            self.records.written(context, packed)
            return session_id

    async def delete(self, session_id: str, context: RequestContext) -> None:
        async with guard(self.error_handler, context):
            await self.store.delete_item(session_id)

    async def release(self, session_id: str, context: RequestContext) -> None:
        """Nothing is ever locked."""
        return None
