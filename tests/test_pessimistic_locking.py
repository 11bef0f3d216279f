"""
Unit tests for PessimisticLocking.

Time is driven by FakeClock: retry sleeps advance it instantly, so lock
expiry and retry budgets are exercised without real waiting.
"""

import asyncio

import pytest

from kvsession.config import SessionStoreConfig
from kvsession.modules.errors import ConditionalCheckFailed, LockTimeout
from kvsession.modules.locking import (
    DATA,
    LOCK_FLAG,
    LOCK_TIME,
    PessimisticLocking,
    RequestContext,
)
from kvsession.modules.reliability import BackoffPolicy

from conftest import SECRET

SID = "digest--token"

pytestmark = pytest.mark.locking


@pytest.fixture
def strategy(config, store, error_handler, clock):
    return PessimisticLocking(config, store, error_handler, clock=clock)


@pytest.fixture
def long_lived(store, error_handler, clock):
    """Locks that never expire within a test."""
    config = SessionStoreConfig(secret_key=SECRET, lock_expiry_time=30.0)
    return PessimisticLocking(config, store, error_handler, clock=clock)


async def load(strategy, session_id=SID):
    context = RequestContext()
    data, found = await strategy.get(session_id, context)
    return context, data


@pytest.mark.asyncio
async def test_get_takes_the_lock(strategy, store, clock):
    context, data = await load(strategy)

    assert data == {}
    assert context.new_session is True
    assert context.lock_token
    assert store.items[SID][LOCK_FLAG] == context.lock_token
    assert store.items[SID][LOCK_TIME] == repr(clock.now)


@pytest.mark.asyncio
async def test_set_writes_and_releases(strategy, store):
    context, _ = await load(strategy)

    assert await strategy.set(SID, {"n": 1}, context) == SID

    item = store.items[SID]
    assert LOCK_FLAG not in item and LOCK_TIME not in item
    assert context.lock_token is None
    _, data = await load(strategy)
    assert data == {"n": 1}


@pytest.mark.asyncio
async def test_set_is_conditioned_on_owning_the_lock(strategy, store):
    context, _ = await load(strategy)
    token = context.lock_token

    await strategy.set(SID, {"n": 1}, context)

    condition = store.calls_to("update_item")[-1].condition
    assert condition.evaluate({LOCK_FLAG: token})
    assert not condition.evaluate({LOCK_FLAG: "someone-else"})


@pytest.mark.asyncio
async def test_unchanged_body_still_releases(strategy, store):
    context, _ = await load(strategy)
    await strategy.set(SID, {"n": 1}, context)

    context, data = await load(strategy)
    store.reset()
    await strategy.set(SID, data, context)

    updates = store.calls_to("update_item")[0].updates
    assert DATA not in updates
    assert LOCK_FLAG in updates
    assert LOCK_FLAG not in store.items[SID]


@pytest.mark.asyncio
async def test_empty_new_session_leaves_no_record(strategy, store):
    context, _ = await load(strategy)

    assert await strategy.set(SID, {}, context) is False
    assert LOCK_FLAG in store.items[SID]

    await strategy.release(SID, context)

    assert SID not in store.items
    assert context.lock_token is None


@pytest.mark.asyncio
async def test_release_keeps_stored_body(strategy, store):
    context, _ = await load(strategy)
    await strategy.set(SID, {"n": 1}, context)
    context, _ = await load(strategy)

    await strategy.release(SID, context)

    item = store.items[SID]
    assert LOCK_FLAG not in item
    assert DATA in item
    _, data = await load(strategy)
    assert data == {"n": 1}


@pytest.mark.asyncio
async def test_writer_without_lock_cannot_overwrite_holder(long_lived, store, error_handler):
    holder, _ = await load(long_lived)
    await long_lived.set(SID, {"owner": "holder"}, holder)
    holder, _ = await load(long_lived)

    with pytest.raises(ConditionalCheckFailed):
        await long_lived.set(SID, {"intruder": True}, RequestContext())

    assert store.items[SID][LOCK_FLAG] == holder.lock_token
    error_handler.handle_error.assert_called_once()
    await long_lived.set(SID, {"owner": "holder", "n": 2}, holder)
    _, data = await load(long_lived)
    assert data == {"owner": "holder", "n": 2}


@pytest.mark.asyncio
async def test_writer_without_lock_may_write_unlocked_or_expired(strategy, store, clock):
    assert await strategy.set(SID, {"n": 1}, RequestContext(new_session=True)) == SID

    await load(strategy)
    clock.advance(1.0)  # past the 0.5s expiry

    assert await strategy.set(SID, {"n": 2}, RequestContext()) == SID
    assert LOCK_FLAG not in store.items[SID]


@pytest.mark.asyncio
async def test_release_without_lock_does_nothing(strategy, store):
    store.reset()

    await strategy.release(SID, RequestContext())

    assert store.calls == []


@pytest.mark.asyncio
async def test_held_lock_times_out(long_lived, store, clock, error_handler):
    await load(long_lived)

    with pytest.raises(LockTimeout) as exc_info:
        await load(long_lived)

    # Fixed 0.5s delay within a 1.0s budget: two sleeps, three attempts
    assert clock.sleeps == [0.5, 0.5]
    assert exc_info.value.attempts == 3
    assert exc_info.value.waited == pytest.approx(1.0)
    assert exc_info.value.session_id == SID
    error_handler.handle_error.assert_called_once()
    assert isinstance(error_handler.handle_error.call_args[0][0], LockTimeout)


@pytest.mark.asyncio
async def test_waiter_proceeds_once_holder_writes(long_lived, clock):
    holder, _ = await load(long_lived)

    async def holder_finishes(_seconds):
        if holder.lock_token:
            await long_lived.set(SID, {"n": 1}, holder)

    clock.on_sleep = holder_finishes
    waiter, data = await load(long_lived)

    assert data == {"n": 1}
    assert waiter.lock_token
    assert clock.sleeps == [0.5]


@pytest.mark.asyncio
async def test_concurrent_gets_exclude_each_other(long_lived):
    results = await asyncio.gather(load(long_lived), load(long_lived), return_exceptions=True)

    timeouts = [r for r in results if isinstance(r, LockTimeout)]
    winners = [r for r in results if not isinstance(r, BaseException)]
    assert len(timeouts) == 1
    assert len(winners) == 1


@pytest.mark.asyncio
async def test_stale_lock_is_seized(strategy, store, clock, error_handler):
    first, _ = await load(strategy)
    clock.advance(1.0)  # past the 0.5s expiry

    second, _ = await load(strategy)

    assert second.lock_token != first.lock_token
    assert store.items[SID][LOCK_FLAG] == second.lock_token
    assert clock.sleeps == []

    with pytest.raises(ConditionalCheckFailed):
        await strategy.set(SID, {"who": "first"}, first)
    error_handler.handle_error.assert_called_once()

    await strategy.set(SID, {"who": "second"}, second)
    _, data = await load(strategy)
    assert data == {"who": "second"}


@pytest.mark.asyncio
async def test_release_after_seizure_is_silent(strategy, store, clock, error_handler):
    first, _ = await load(strategy)
    clock.advance(1.0)
    second, _ = await load(strategy)

    await strategy.release(SID, first)

    assert first.lock_token is None
    assert store.items[SID][LOCK_FLAG] == second.lock_token
    error_handler.handle_error.assert_not_called()


@pytest.mark.asyncio
async def test_delete_owned_lock(strategy, store):
    context, _ = await load(strategy)
    await strategy.set(SID, {"n": 1}, context)
    context, _ = await load(strategy)

    await strategy.delete(SID, context)

    assert SID not in store.items
    assert context.lock_token is None


@pytest.mark.asyncio
async def test_delete_refused_while_another_request_holds_the_lock(long_lived, store):
    await load(long_lived)

    with pytest.raises(ConditionalCheckFailed):
        await long_lived.delete(SID, RequestContext())

    assert SID in store.items


@pytest.mark.asyncio
async def test_delete_unlocked_or_missing(strategy, store):
    await strategy.delete("never-stored", RequestContext())

    context, _ = await load(strategy)
    await strategy.set(SID, {"n": 1}, context)
    await strategy.delete(SID, RequestContext())

    assert SID not in store.items


@pytest.mark.asyncio
async def test_custom_backoff(store, error_handler, clock):
    strategy = PessimisticLocking(
        SessionStoreConfig(secret_key=SECRET, lock_expiry_time=30.0),
        store,
        error_handler,
        clock=clock,
        backoff=BackoffPolicy(max_attempts=2, initial_delay=0.1, max_wait=None),
    )
    await load(strategy)

    with pytest.raises(LockTimeout) as exc_info:
        await load(strategy)

    assert clock.sleeps == [0.1]
    assert exc_info.value.attempts == 2
