"""
Unit tests for SessionStoreFactory wiring.
"""

import pytest

from kvsession.config import SessionStoreConfig
from kvsession.modules.errors import DefaultErrorHandler, MissingSecretKey
from kvsession.modules.factory import SessionStoreFactory
from kvsession.modules.locking import NullLocking, PessimisticLocking
from kvsession.modules.middleware import SessionMiddleware
from kvsession.modules.storage import RedisStoreClient

from conftest import SECRET


def test_store_client_uses_table_settings(mock_redis):
    config = SessionStoreConfig(table_name="web", table_key="sid", index_keys=["role"])

    client = SessionStoreFactory.build_store_client(config, mock_redis)

    assert isinstance(client, RedisStoreClient)
    assert client.item_key("abc") == "web:abc"
    assert client.key_attribute == "sid"
    assert client.index_attributes == ("role",)


def test_null_locking_by_default(config, store):
    strategy = SessionStoreFactory.build_locking_strategy(config, store)

    assert isinstance(strategy, NullLocking)
    assert isinstance(strategy.error_handler, DefaultErrorHandler)


def test_pessimistic_locking_when_enabled(store, error_handler, clock):
    config = SessionStoreConfig(secret_key=SECRET, enable_locking=True, lock_retry_delay=0.2)

    strategy = SessionStoreFactory.build_locking_strategy(config, store, error_handler, clock)

    assert isinstance(strategy, PessimisticLocking)
    assert strategy.error_handler is error_handler
    assert strategy.clock is clock
    assert strategy.backoff.initial_delay == 0.2


def test_middleware_carries_cookie_settings(store):
    config = SessionStoreConfig(
        secret_key=SECRET, cookie_name="sid", cookie_secure=True, cookie_max_age=600
    )

    middleware = SessionStoreFactory.build_middleware(config, store)

    assert isinstance(middleware, SessionMiddleware)
    assert middleware.cookie_name == "sid"
    assert middleware.secure is True
    assert middleware.max_age == 600
    assert middleware.identifier.verify(middleware.identifier.generate()).ok


def test_middleware_requires_secret(store):
    with pytest.raises(MissingSecretKey):
        SessionStoreFactory.build_middleware(SessionStoreConfig(), store)
