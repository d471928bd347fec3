"""Tests for per-key call coalescing."""
import asyncio

import pytest

from app.utils.singleflight import SingleFlight


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_call():
    flight = SingleFlight()
    calls = 0

    async def work():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.05)
        return "done"

    results = await asyncio.gather(*(flight.do("key", work) for _ in range(5)))

    assert calls == 1
    assert [value for value, _ in results] == ["done"] * 5
    assert sum(1 for _, shared in results if not shared) == 1
    assert not flight.in_flight("key")


@pytest.mark.asyncio
async def test_different_keys_run_independently():
    flight = SingleFlight()
    calls = []

    async def work(name):
        calls.append(name)
        await asyncio.sleep(0.01)
        return name

    results = await asyncio.gather(
        flight.do("a", lambda: work("a")),
        flight.do("b", lambda: work("b")),
    )

    assert sorted(calls) == ["a", "b"]
    assert [value for value, _ in results] == ["a", "b"]


@pytest.mark.asyncio
async def test_failure_is_shared_and_key_released():
    flight = SingleFlight()
    calls = 0

    async def failing():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        raise RuntimeError("boom")

    results = await asyncio.gather(
        flight.do("key", failing), flight.do("key", failing), return_exceptions=True
    )

    assert calls == 1
    assert all(isinstance(r, RuntimeError) for r in results)

    async def ok():
        return 42

    assert await flight.do("key", ok) == (42, False)


@pytest.mark.asyncio
async def test_sequential_calls_are_not_coalesced():
    flight = SingleFlight()
    calls = 0

    async def work():
        nonlocal calls
        calls += 1
        return calls

    assert await flight.do("key", work) == (1, False)
    assert await flight.do("key", work) == (2, False)
