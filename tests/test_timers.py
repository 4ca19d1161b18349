"""Tests for the event-loop timers used by the orchestrator."""

from __future__ import annotations

import asyncio

import pytest

from talkpoints.engine.timers import PeriodicTimer, Timer


@pytest.mark.asyncio
async def test_timer_fires_once() -> None:
    fired: list[int] = []
    timer = Timer(0.01, lambda: fired.append(1))

    timer.arm()
    assert timer.armed
    await asyncio.sleep(0.05)

    assert fired == [1]
    assert not timer.armed


@pytest.mark.asyncio
async def test_rearm_restarts_countdown() -> None:
    fired: list[int] = []
    timer = Timer(0.1, lambda: fired.append(1))

    timer.arm()
    await asyncio.sleep(0.06)
    timer.arm()
    await asyncio.sleep(0.06)
    assert fired == []

    await asyncio.sleep(0.1)
    assert fired == [1]


@pytest.mark.asyncio
async def test_cancel_prevents_fire() -> None:
    fired: list[int] = []
    timer = Timer(0.01, lambda: fired.append(1))

    timer.arm()
    timer.cancel()
    await asyncio.sleep(0.03)

    assert fired == []


@pytest.mark.asyncio
async def test_coroutine_callback_is_scheduled() -> None:
    done = asyncio.Event()

    async def callback() -> None:
        done.set()

    timer = Timer(0.0, callback)
    timer.arm()

    await asyncio.wait_for(done.wait(), timeout=1.0)


@pytest.mark.asyncio
async def test_periodic_timer_ticks_until_stopped() -> None:
    ticks: list[int] = []
    periodic = PeriodicTimer(0.01, lambda: ticks.append(1))

    periodic.start()
    assert periodic.running
    await asyncio.sleep(0.055)
    periodic.stop()
    seen = len(ticks)
    await asyncio.sleep(0.03)

    assert seen >= 2
    assert len(ticks) == seen
    assert not periodic.running
