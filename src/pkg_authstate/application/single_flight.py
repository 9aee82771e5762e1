from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Hashable, TypeVar

T = TypeVar("T")


class SingleFlightExecutor:
    """
    Collapses concurrent invocations of the same operation into one.

    While a call for `key` is in flight, later callers attach to it instead of
    invoking `fn` again; every caller observes the same result or exception.
    The entry is cleared as soon as the call settles.
    """

    def __init__(self) -> None:
        self._inflight: Dict[Hashable, asyncio.Future[Any]] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._inflight

    async def run(self, key: Hashable, fn: Callable[[], Awaitable[T]]) -> T:
        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(fn())
            self._inflight[key] = future
            future.add_done_callback(lambda f, k=key: self._settled(k, f))
        # one cancelled caller must not cancel the call shared with the others
        return await asyncio.shield(future)

    def _settled(self, key: Hashable, future: asyncio.Future[Any]) -> None:
        if self._inflight.get(key) is future:
            del self._inflight[key]
        if not future.cancelled():
            # marks the exception as retrieved; attached callers still get it
            future.exception()
