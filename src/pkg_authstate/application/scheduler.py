from __future__ import annotations

import asyncio
from typing import Callable, Optional

from ..domain.value_objects import now_ms


class ExpirationScheduler:
    """
    One cancellable one-shot timer slot.

    `arm(instant, on_fire)` fires `on_fire` once the wall clock reaches
    `instant` (epoch milliseconds). Arming again replaces the previous timer;
    `None` leaves the slot empty. A past instant fires on the next loop
    iteration, never synchronously.
    """

    def __init__(self, name: str = "timer") -> None:
        self.name = name
        self._handle: Optional[asyncio.TimerHandle] = None
        self._instant: Optional[int] = None

    @property
    def instant(self) -> Optional[int]:
        return self._instant

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, instant: Optional[int], on_fire: Callable[[], None]) -> Callable[[], None]:
        """Arm the slot and return a function cancelling this arming only."""
        self.disarm()
        self._instant = instant
        if instant is None:
            return _noop

        loop = asyncio.get_running_loop()
        delay = max(0.0, (instant - now_ms()) / 1000)
        handle: Optional[asyncio.TimerHandle] = None

        def _fire() -> None:
            if self._handle is handle:
                self._handle = None
            on_fire()

        handle = loop.call_later(delay, _fire)
        self._handle = handle

        def _disarm() -> None:
            if self._handle is handle:
                self.disarm()

        return _disarm

    def disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._instant = None


def _noop() -> None:
    pass
