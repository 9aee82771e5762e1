import asyncio

import pytest

from pkg_authstate.application.scheduler import ExpirationScheduler
from pkg_authstate.domain.value_objects import now_ms


@pytest.mark.asyncio
async def test_fires_at_instant():
    timer = ExpirationScheduler("auth")
    fired = []

    timer.arm(now_ms() + 50, lambda: fired.append(now_ms()))
    assert timer.armed
    await asyncio.sleep(0.01)
    assert fired == []

    await asyncio.sleep(0.1)
    assert len(fired) == 1
    assert not timer.armed


@pytest.mark.asyncio
async def test_absent_instant_never_fires():
    timer = ExpirationScheduler()
    fired = []

    timer.arm(None, lambda: fired.append(True))
    assert not timer.armed
    assert timer.instant is None
    await asyncio.sleep(0.05)
    assert fired == []


@pytest.mark.asyncio
async def test_past_instant_fires_asynchronously():
    timer = ExpirationScheduler()
    fired = []

    timer.arm(now_ms() - 10_000, lambda: fired.append(True))
    assert fired == []

    await asyncio.sleep(0.01)
    assert fired == [True]


@pytest.mark.asyncio
async def test_rearm_replaces_previous_timer():
    timer = ExpirationScheduler()
    fired = []

    timer.arm(now_ms() + 30, lambda: fired.append("first"))
    timer.arm(now_ms() + 60, lambda: fired.append("second"))
    assert timer.instant is not None

    await asyncio.sleep(0.15)
    assert fired == ["second"]


@pytest.mark.asyncio
async def test_stale_disarm_keeps_replacement():
    timer = ExpirationScheduler()
    fired = []

    disarm_first = timer.arm(now_ms() + 30, lambda: fired.append("first"))
    timer.arm(now_ms() + 30, lambda: fired.append("second"))
    disarm_first()
    assert timer.armed

    await asyncio.sleep(0.1)
    assert fired == ["second"]


@pytest.mark.asyncio
async def test_disarm_cancels():
    timer = ExpirationScheduler()
    fired = []

    disarm = timer.arm(now_ms() + 20, lambda: fired.append(True))
    disarm()
    assert not timer.armed
    assert timer.instant is None

    await asyncio.sleep(0.05)
    assert fired == []
