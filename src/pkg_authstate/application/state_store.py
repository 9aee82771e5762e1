from __future__ import annotations

import json
from typing import Any, Callable, Dict, Generic, Optional, TypeVar, Union

from ..domain.entities import AuthState
from ..domain.ports import KeyValueStorage
from ..logging import get_logger

U = TypeVar("U")

Subscriber = Callable[[AuthState[Any], AuthState[Any]], None]
StateUpdate = Union[AuthState[U], Callable[[AuthState[U]], AuthState[U]]]

logger = get_logger(__name__)


class PersistentStateStore(Generic[U]):
    """
    Observable holder of the current AuthState, mirrored into a KeyValueStorage.

    The store is the only writer of the storage key. Every committed change is
    persisted synchronously and then pushed to subscribers as
    `fn(state, previous)`. Setting a state equal to the current one is a no-op.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str,
        default: Optional[AuthState[U]] = None,
    ) -> None:
        self._storage = storage
        self._key = key
        self._default: AuthState[U] = default if default is not None else AuthState()
        self._state: AuthState[U] = self._default
        self._subscribers: Dict[int, Subscriber] = {}
        self._next_handle = 0
        # storage we moved away from; cleared on the next write
        self._previous_storage: Optional[KeyValueStorage] = None

    @property
    def key(self) -> str:
        return self._key

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    # ------------------------------------------------------------------ #
    # Reading
    # ------------------------------------------------------------------ #

    def load(self) -> AuthState[U]:
        """
        Read the persisted state, falling back to the default.

        `initialized` always comes back False: it belongs to the running
        session, not to what was persisted.
        """
        raw = self._storage.get(self._key)
        if raw is None:
            self._state = self._default
            return self._state

        try:
            self._state = AuthState.from_dict(json.loads(raw)).evolve(initialized=False)
        except (ValueError, TypeError) as exc:
            logger.warning("auth_state_malformed", key=self._key, error=str(exc))
            self._state = self._default
        return self._state

    def get(self) -> AuthState[U]:
        return self._state

    # ------------------------------------------------------------------ #
    # Writing
    # ------------------------------------------------------------------ #

    def set(self, update: StateUpdate[U]) -> AuthState[U]:
        """
        Commit a new state, or a function of the latest one.

        Returns the state in effect after the call.
        """
        previous = self._state
        state = update(previous) if callable(update) else update
        if state == previous and self._previous_storage is None:
            return previous

        payload = json.dumps(state.to_dict())
        self._storage.set(self._key, payload)
        if self._previous_storage is not None:
            self._previous_storage.remove(self._key)
            self._previous_storage = None

        self._state = state
        if state != previous:
            self._notify(state, previous)
        return state

    def use_storage(self, storage: KeyValueStorage) -> None:
        """
        Point the store at another backend.

        The in-memory state is kept; it is written to the new backend (and
        removed from the old one) on the next mutation.
        """
        if storage is self._storage:
            return
        if self._previous_storage is None:
            self._previous_storage = self._storage
        elif self._previous_storage is storage:
            self._previous_storage = None
        self._storage = storage
        logger.info("auth_storage_switched", key=self._key, storage=type(storage).__name__)

    # ------------------------------------------------------------------ #
    # Subscriptions
    # ------------------------------------------------------------------ #

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        handle = self._next_handle
        self._next_handle += 1
        self._subscribers[handle] = fn

        def unsubscribe() -> None:
            self._subscribers.pop(handle, None)

        return unsubscribe

    def _notify(self, state: AuthState[U], previous: AuthState[U]) -> None:
        for fn in list(self._subscribers.values()):
            try:
                fn(state, previous)
            except Exception:
                logger.exception("auth_state_subscriber_failed", key=self._key)
