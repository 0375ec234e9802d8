"""ConnectionCache: one in-flight attempt, cached success, forgotten failure."""

import asyncio

import pytest

from devevent.core.errors import UpstreamFailure
from devevent.services.database import ConnectionCache, MongoService


def _slow_connector(handle, delay=0.01):
    async def connect():
        connect.calls += 1
        await asyncio.sleep(delay)
        if isinstance(handle, Exception):
            raise handle
        return handle

    connect.calls = 0
    return connect


def test_concurrent_first_use_makes_one_attempt():
    handle = object()
    connect = _slow_connector(handle)
    cache = ConnectionCache(connect)

    async def main():
        return await asyncio.gather(*(cache.acquire() for _ in range(25)))

    results = asyncio.run(main())

    assert connect.calls == 1
    assert all(r is handle for r in results)
    assert cache.connected


def test_established_handle_is_reused_without_reconnecting():
    handle = object()
    connect = _slow_connector(handle)
    cache = ConnectionCache(connect)

    async def main():
        first = await cache.acquire()
        second = await cache.acquire()
        return first, second

    first, second = asyncio.run(main())

    assert first is second is handle
    assert connect.calls == 1


def test_concurrent_callers_share_the_same_failure():
    boom = ConnectionError("server selection timed out")
    connect = _slow_connector(boom)
    cache = ConnectionCache(connect)

    async def main():
        return await asyncio.gather(
            *(cache.acquire() for _ in range(10)), return_exceptions=True
        )

    results = asyncio.run(main())

    assert connect.calls == 1
    assert all(r is boom for r in results)
    assert not cache.connected


def test_failure_is_not_cached_next_call_retries():
    handle = object()
    outcomes = [ConnectionError("refused"), handle]
    calls = []

    async def connect():
        calls.append(1)
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    cache = ConnectionCache(connect)

    async def main():
        with pytest.raises(ConnectionError):
            await cache.acquire()
        return await cache.acquire()

    assert asyncio.run(main()) is handle
    assert len(calls) == 2


def test_cancelled_caller_does_not_cancel_shared_attempt():
    handle = object()

    async def main():
        gate = asyncio.Event()
        calls = []

        async def connect():
            calls.append(1)
            await gate.wait()
            return handle

        cache = ConnectionCache(connect)
        impatient = asyncio.ensure_future(cache.acquire())
        await asyncio.sleep(0)
        impatient.cancel()
        await asyncio.sleep(0)

        patient = asyncio.ensure_future(cache.acquire())
        gate.set()
        return await patient, impatient.cancelled(), len(calls)

    result, cancelled, calls = asyncio.run(main())

    assert result is handle
    assert cancelled
    assert calls == 1


def test_close_drops_handle_so_next_acquire_reconnects():
    connect = _slow_connector(object(), delay=0)
    cache = ConnectionCache(connect)

    async def main():
        await cache.acquire()
        await cache.close()
        await cache.acquire()

    asyncio.run(main())
    assert connect.calls == 2


def test_hung_connection_times_out_as_upstream_failure():
    async def connect():
        await asyncio.sleep(10)

    service = MongoService(ConnectionCache(connect), timeout=0.05)

    async def main():
        await service._run(lambda db: db.events.find_one({}), "fetching an event")

    with pytest.raises(UpstreamFailure, match="Timed out"):
        asyncio.run(main())


def test_close_cancels_an_attempt_still_in_flight():
    handle = object()

    async def main():
        gate = asyncio.Event()

        async def connect():
            await gate.wait()
            return handle

        cache = ConnectionCache(connect)
        waiter = asyncio.ensure_future(cache.acquire())
        await asyncio.sleep(0)

        await cache.close()
        gate.set()
        await asyncio.sleep(0)

        return cache.connected, await asyncio.gather(waiter, return_exceptions=True)

    connected, (outcome,) = asyncio.run(main())

    assert not connected
    assert isinstance(outcome, asyncio.CancelledError)
