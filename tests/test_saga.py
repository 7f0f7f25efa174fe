"""Tests for the saga compensation runner."""

import pytest

from erp.services.saga import Saga


@pytest.mark.asyncio
async def test_compensates_newest_first():
    calls: list[str] = []
    saga = Saga("order")

    async def undo(name: str):
        calls.append(name)

    saga.on_rollback("first", lambda: undo("first"))
    saga.on_rollback("second", lambda: undo("second"))
    saga.on_rollback("third", lambda: undo("third"))

    failures = await saga.compensate()

    assert failures == []
    assert calls == ["third", "second", "first"]
    # Each compensation runs at most once
    assert await saga.compensate() == []
    assert calls == ["third", "second", "first"]


@pytest.mark.asyncio
async def test_failed_compensation_does_not_stop_the_rest():
    calls: list[str] = []
    saga = Saga("partial")

    async def ok(name: str):
        calls.append(name)

    async def boom():
        raise ConnectionError("storage unreachable")

    saga.on_rollback("identity", lambda: ok("identity"))
    saga.on_rollback("tenant", boom)

    failures = await saga.compensate()

    assert calls == ["identity"]
    assert len(failures) == 1
    assert failures[0].step == "tenant"
    assert "storage unreachable" in failures[0].error


@pytest.mark.asyncio
async def test_compensate_runs_each_action_once():
    calls: list[str] = []
    saga = Saga("once")

    async def undo():
        calls.append("undo")

    saga.on_rollback("only", undo)
    await saga.compensate()
    await saga.compensate()

    assert calls == ["undo"]
