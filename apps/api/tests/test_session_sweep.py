"""Tests for the periodic session sweep task."""
from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from renal_aid.services.session_store import SessionStore

TTL = timedelta(minutes=15)
FAST_INTERVAL = timedelta(milliseconds=10)


async def _wait_for(predicate, attempts: int = 200) -> bool:
    for _ in range(attempts):
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return predicate()


@pytest.mark.asyncio
async def test_sweep_evicts_abandoned_sessions(clock):
    store = SessionStore(ttl=TTL, cleanup_interval=FAST_INTERVAL, clock=clock)
    store.create("abandoned")
    clock.advance(minutes=15)
    store.create("fresh")

    async with store:
        assert store.is_sweeping
        assert await _wait_for(lambda: store.active_count() == 1)

    assert not store.is_sweeping
    assert store.get("fresh") is not None


@pytest.mark.asyncio
async def test_start_is_idempotent_and_close_is_safe(clock):
    store = SessionStore(cleanup_interval=FAST_INTERVAL, clock=clock)

    await store.aclose()

    store.start()
    task = store._sweep_task
    store.start()
    assert store._sweep_task is task

    await store.aclose()
    assert task.cancelled()
    await store.aclose()


@pytest.mark.asyncio
async def test_sweep_keeps_running_after_failure(clock, monkeypatch):
    store = SessionStore(cleanup_interval=FAST_INTERVAL, clock=clock)
    calls: list[int] = []

    def flaky_cleanup() -> int:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return 0

    monkeypatch.setattr(store, "cleanup", flaky_cleanup)

    async with store:
        assert await _wait_for(lambda: len(calls) >= 2)
        assert store.is_sweeping


@pytest.mark.asyncio
async def test_operations_work_while_sweeping(clock):
    store = SessionStore(cleanup_interval=FAST_INTERVAL, clock=clock)

    async with store:
        store.create("abc")
        await asyncio.sleep(0.05)
        assert store.touch("abc") is True
        assert store.get("abc") is not None
