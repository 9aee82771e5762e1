from __future__ import annotations

import asyncio
import inspect
from typing import Any, Optional, Set

from ..domain.entities import AuthState
from ..domain.ports import TokenChangeHandler
from ..domain.value_objects import is_bundle_valid
from ..logging import get_logger

logger = get_logger(__name__)


class NotificationBridge:
    """
    Calls the external token-change handler once per distinct token value.

    The bridge starts from "no token", so the first call happens when a token
    first appears (or is primed from storage) and every later call marks a
    change of the token string. Changes to unrelated fields are ignored.
    """

    def __init__(self, handler: Optional[TokenChangeHandler] = None) -> None:
        self._handler = handler
        self._last_token: Optional[str] = None
        self._primed = False
        self._pending: Set[asyncio.Future[Any]] = set()

    @property
    def last_token(self) -> Optional[str]:
        return self._last_token

    def prime(self, state: AuthState[Any]) -> None:
        """
        Synchronous first call for an already authenticated state.

        Runs before anything else observes the controller so that the
        earliest outgoing request already carries the token.
        """
        if self._primed:
            return
        self._primed = True
        if is_bundle_valid(state.auth):
            self.notify(state)

    def notify(self, state: AuthState[Any]) -> bool:
        """Forward the state's token if it differs from the last one sent."""
        token = state.token
        if token == self._last_token:
            return False
        self._last_token = token
        if self._handler is None:
            return True

        try:
            outcome = self._handler(state, token)
        except Exception:
            logger.exception("token_change_handler_failed")
            return True

        if inspect.isawaitable(outcome):
            future = asyncio.ensure_future(outcome)
            self._pending.add(future)
            future.add_done_callback(self._settled)
        return True

    async def drain(self) -> None:
        """Wait for asynchronous handler calls still running."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _settled(self, future: asyncio.Future[Any]) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("token_change_handler_failed", error=str(exc), exc_info=exc)
