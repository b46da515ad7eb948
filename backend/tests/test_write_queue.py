"""Tests for the write coalescer."""
import asyncio

import pytest

from roadmap.services.write_queue import WriteCoalescer


def recorder(log: list, value):
    async def write():
        log.append(value)

    return write


@pytest.mark.asyncio
async def test_latest_write_wins():
    log: list = []
    queue = WriteCoalescer(delay=0.01)
    queue.schedule(("t1", "roster"), recorder(log, 1))
    queue.schedule(("t1", "roster"), recorder(log, 2))
    await asyncio.sleep(0.05)
    assert log == [2]
    assert queue.pending == []


@pytest.mark.asyncio
async def test_keys_are_independent():
    log: list = []
    queue = WriteCoalescer(delay=0.01)
    queue.schedule(("t1", "roster"), recorder(log, "team"))
    queue.schedule(("f1", "teamAllocations"), recorder(log, "item"))
    await asyncio.sleep(0.05)
    assert sorted(log) == ["item", "team"]


@pytest.mark.asyncio
async def test_flush_runs_pending_writes_now():
    log: list = []
    queue = WriteCoalescer(delay=60)
    queue.schedule("a", recorder(log, "a"))
    queue.schedule("b", recorder(log, "b"))
    assert queue.pending == ["a", "b"]
    results = await queue.flush()
    assert log == ["a", "b"]
    assert results == {"a": None, "b": None}
    assert queue.pending == []


@pytest.mark.asyncio
async def test_cancel_drops_write():
    log: list = []
    queue = WriteCoalescer(delay=0.01)
    queue.schedule("a", recorder(log, "a"))
    assert queue.cancel("a")
    assert not queue.cancel("a")
    await asyncio.sleep(0.05)
    assert log == []


@pytest.mark.asyncio
async def test_errors_reach_callback():
    errors = []

    async def broken():
        raise RuntimeError("store down")

    queue = WriteCoalescer(delay=60, on_error=lambda key, e: errors.append((key, str(e))))
    queue.schedule("a", broken)
    results = await queue.flush()
    assert isinstance(results["a"], RuntimeError)
    assert errors == [("a", "store down")]


@pytest.mark.asyncio
async def test_close_discards_pending():
    log: list = []
    queue = WriteCoalescer(delay=60)
    queue.schedule("a", recorder(log, "a"))
    await queue.close()
    assert queue.pending == []
    assert log == []
