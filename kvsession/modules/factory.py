"""
Session Store Factory following Black Box Design principles.

This factory:
- Picks the locking strategy from configuration at startup
- Wires the store client, error handler and identifier together
- Returns only the public interfaces
"""

import logging
from typing import Any, Optional

from .codec import AttributeCodec
from .errors import DefaultErrorHandler, ErrorHandler
from .identifier import SessionIdentifier
from .locking import LockingStrategy, NullLocking, PessimisticLocking
from .middleware import SessionMiddleware
from .storage import RedisStoreClient, StoreClient
from ..config.provider import SessionStoreConfig

logger = logging.getLogger(__name__)


class SessionStoreFactory:
    """
    Composition root for the session store.

    Every component is built here and injected; nothing else constructs
    strategies or identifiers.
    """

    @staticmethod
    def build_store_client(config: SessionStoreConfig, redis_client: Any) -> StoreClient:
        """Build the Redis-backed store client for the configured table."""
        return RedisStoreClient(
            redis_client,
            table_name=config.table_name,
            key_attribute=config.table_key,
            index_attributes=config.index_keys,
        )

    @staticmethod
    def build_locking_strategy(
        config: SessionStoreConfig,
        store: StoreClient,
        error_handler: Optional[ErrorHandler] = None,
        clock: Optional[Any] = None,
    ) -> LockingStrategy:
        """
        Build the locking strategy selected by config.enable_locking.

        Args:
            config: Session store configuration
            store: Store client
            error_handler: Error observer (DefaultErrorHandler when None)
            clock: Optional clock override

        Returns:
            PessimisticLocking when locking is enabled, NullLocking otherwise
        """
        error_handler = error_handler or DefaultErrorHandler()
        codec = AttributeCodec()

        if config.enable_locking:
            logger.info(
                f"Using pessimistic locking (expiry={config.lock_expiry_time}s, "
                f"max_wait={config.lock_max_wait_time}s)"
            )
            return PessimisticLocking(config, store, error_handler, codec=codec, clock=clock)

        logger.info("Using null locking (last writer wins)")
        return NullLocking(config, store, error_handler, codec=codec, clock=clock)

    @staticmethod
    def build_middleware(
        config: SessionStoreConfig,
        store: StoreClient,
        error_handler: Optional[ErrorHandler] = None,
        clock: Optional[Any] = None,
    ) -> SessionMiddleware:
        """
        Build the complete per-request session stack.

        Raises:
            MissingSecretKey: If config.secret_key is not set
        """
        error_handler = error_handler or DefaultErrorHandler()
        identifier = SessionIdentifier(config.secret_key)
        strategy = SessionStoreFactory.build_locking_strategy(config, store, error_handler, clock)
        return SessionMiddleware(
            strategy=strategy,
            identifier=identifier,
            error_handler=error_handler,
            cookie_name=config.cookie_name,
            secure=config.cookie_secure,
            max_age=config.cookie_max_age,
        )
