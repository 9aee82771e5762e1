from __future__ import annotations

from typing import Any, Awaitable, Optional, Protocol

from .entities import ActionResult, AuthState


class KeyValueStorage(Protocol):
    """
    Port for the physical key-value backend holding the serialized state.

    Implementations live in the adapters layer (memory, file, ...).
    """

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class SignInHandler(Protocol):
    def __call__(self, state: AuthState[Any], input: Any, /) -> Awaitable[ActionResult[Any]]:
        ...


class RenewHandler(Protocol):
    def __call__(self, state: AuthState[Any], input: Any, /) -> Awaitable[ActionResult[Any]]:
        ...


class SignOutHandler(Protocol):
    def __call__(self, state: AuthState[Any], input: Any, /) -> Awaitable[None]:
        ...


class TokenChangeHandler(Protocol):
    """May return None or an awaitable; awaitables are scheduled, not awaited."""

    def __call__(self, state: AuthState[Any], token: Optional[str], /) -> Optional[Awaitable[None]]:
        ...
