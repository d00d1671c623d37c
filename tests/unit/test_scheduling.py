from __future__ import annotations

import asyncio

import pytest

from titledraft.utils.scheduling import Debouncer, call_later


@pytest.mark.asyncio
async def test_rescheduling_a_key_keeps_only_the_last_task():
    calls = []
    debouncer = Debouncer(0.01)

    async def write(value):
        calls.append(value)

    debouncer.schedule("k", lambda: write(1))
    debouncer.schedule("k", lambda: write(2))
    debouncer.schedule("other", lambda: write(3))
    await asyncio.sleep(0.05)
    await debouncer.wait()

    assert sorted(calls) == [2, 3]


@pytest.mark.asyncio
async def test_key_is_pending_until_its_task_finishes():
    release = asyncio.Event()
    debouncer = Debouncer(0)

    async def slow():
        await release.wait()

    debouncer.schedule(("id", "field"), slow)
    assert debouncer.is_pending(("id", "field"))
    await asyncio.sleep(0.01)
    assert debouncer.has_pending(lambda key: key[0] == "id")

    release.set()
    await debouncer.wait()
    assert not debouncer.is_pending(("id", "field"))


@pytest.mark.asyncio
async def test_flush_fires_immediately_and_cancel_matching_drops_tasks():
    calls = []
    debouncer = Debouncer(60)

    async def write(value):
        calls.append(value)

    debouncer.schedule(("a", 1), lambda: write("a"))
    debouncer.schedule(("b", 1), lambda: write("b"))
    assert debouncer.cancel_matching(lambda key: key[0] == "a") == 1

    await debouncer.flush()

    assert calls == ["b"]


@pytest.mark.asyncio
async def test_failed_task_is_logged_and_released(caplog):
    debouncer = Debouncer(0)

    async def boom():
        raise RuntimeError("nope")

    debouncer.schedule("k", boom)
    await asyncio.sleep(0.01)
    await debouncer.wait()

    assert not debouncer.is_pending("k")
    assert "Debounced task failed" in caplog.text


@pytest.mark.asyncio
async def test_call_later_runs_callback():
    seen = set()
    call_later(0.01, seen.add, "x")
    await asyncio.sleep(0.03)
    assert seen == {"x"}
