from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Generic, Optional, Set, TypeVar

from ...adapters.storage import storage_for_scope
from ...domain.constants import AuthStatus, OperationKey, StorageScope
from ...domain.entities import ActionResult, AuthState
from ...domain.exceptions import (
    AuthStateError,
    ControllerClosedError,
    NoRenewHandler,
    NoSignInHandler,
    RenewFailure,
    SignInFailure,
    SignOutCallbackFailure,
)
from ...domain.ports import (
    KeyValueStorage,
    RenewHandler,
    SignInHandler,
    SignOutHandler,
    TokenChangeHandler,
)
from ...domain.value_objects import TokenBundle, is_bundle_valid
from ...logging import get_logger
from ...settings import LifecycleSettings
from ..notifications import NotificationBridge
from ..scheduler import ExpirationScheduler
from ..single_flight import SingleFlightExecutor
from ..state_store import PersistentStateStore, StateUpdate, Subscriber

U = TypeVar("U")

logger = get_logger(__name__)


class LifecycleController(Generic[U]):
    """
    Owns the authentication state and drives its lifecycle.

    - sign_in / renew_token / sign_out / set_auth mutate the state
    - two timers follow `auth.expires_at` and `renew.expires_at`
    - a reconciliation pass after every change evicts expired bundles and
      renews automatically when a renew bundle allows it
    - the token-change handler is told about every distinct token

    Sign-in, renewal and sign-out are single-flight: concurrent callers share
    one handler invocation and its outcome.

    Usage:

        async with LifecycleController(do_sign_in=login, do_renew=refresh) as auth:
            await auth.sign_in({"username": "...", "password": "..."})
            auth.token
    """

    def __init__(
        self,
        *,
        settings: Optional[LifecycleSettings] = None,
        storage: Optional[KeyValueStorage] = None,
        do_sign_in: Optional[SignInHandler] = None,
        do_renew: Optional[RenewHandler] = None,
        do_sign_out: Optional[SignOutHandler] = None,
        on_token_change: Optional[TokenChangeHandler] = None,
    ) -> None:
        self.settings = settings or LifecycleSettings()
        self._do_sign_in = do_sign_in
        self._do_renew = do_renew
        self._do_sign_out = do_sign_out

        if storage is None:
            storage = storage_for_scope(self.settings.storage_scope, self.settings)
        self._store: PersistentStateStore[U] = PersistentStateStore(
            storage,
            self.settings.storage_key,
            default=self._default_state(),
        )
        self._flights = SingleFlightExecutor()
        self._notifications = NotificationBridge(on_token_change)
        self._auth_timer = ExpirationScheduler("auth")
        self._renew_timer = ExpirationScheduler("renew")

        self._unsubscribe: Optional[Callable[[], None]] = None
        self._loaded = False
        self._started = False
        self._closed = False
        self._first_pass = True
        self._reconcile_task: Optional[asyncio.Task[None]] = None
        self._reconcile_again = False
        self._background: Set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def start(self) -> AuthState[U]:
        """
        Load the persisted state and run the first reconciliation pass.

        Returns once the state is initialized.
        """
        if self._closed:
            raise ControllerClosedError("Controller is closed")
        if self._started:
            return self.state
        self._started = True
        self._load()

        self._schedule_reconciliation()
        if self._reconcile_task is not None:
            await asyncio.shield(self._reconcile_task)
        logger.debug("auth_controller_started", key=self._store.key, status=self.status.value)
        return self.state

    async def close(self) -> None:
        """
        Disarm timers and stop mutating state.

        Handler calls still in flight are left to settle; their results are
        discarded.
        """
        if self._closed:
            return
        self._closed = True
        self._auth_timer.disarm()
        self._renew_timer.disarm()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        pending = list(self._background)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self._notifications.drain()
        logger.debug("auth_controller_closed", key=self._store.key)

    async def __aenter__(self) -> "LifecycleController[U]":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Read accessors
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> AuthState[U]:
        return self._store.get()

    @property
    def status(self) -> AuthStatus:
        return self.state.status

    @property
    def initialized(self) -> bool:
        return self.state.initialized

    @property
    def token(self) -> Optional[str]:
        return self.state.token

    @property
    def user(self) -> Optional[U]:
        return self.state.user

    @property
    def is_authenticated(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATED

    @property
    def is_renew_enabled(self) -> bool:
        return is_bundle_valid(self.state.renew)

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        """Call `fn(state, previous)` after every committed change."""
        return self._store.subscribe(fn)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def sign_in(self, input: Any = None) -> ActionResult[U]:
        """
        Sign in through the handler, or with the development token.

        Raises:
            NoSignInHandler
            SignInFailure (handler raised; state unchanged)
        """
        await self._ensure_started()
        return await self._flights.run(OperationKey.SIGN_IN, lambda: self._sign_in(input))

    async def renew_token(self, input: Any = None) -> ActionResult[U]:
        """
        Renew through the renew handler.

        A failure here never changes the state.

        Raises:
            NoRenewHandler
            RenewFailure
        """
        await self._ensure_started()
        return await self._flights.run(OperationKey.RENEW, lambda: self._renew(input))

    async def sign_out(self, input: Any = None) -> None:
        """Call the sign-out handler, if any, then always clear the state."""
        await self._ensure_started()
        await self._flights.run(OperationKey.SIGN_OUT, lambda: self._sign_out(input))

    def set_auth(self, result: Any) -> AuthState[U]:
        """
        Commit a result obtained outside the handlers.

        Before `start()` the persisted state is loaded first, so the stored
        renew bundle and user survive the merge.
        """
        if self._closed:
            raise ControllerClosedError("Controller is closed")
        self._load()
        return self._process_result(ActionResult.coerce(result))

    def sign_in_nowait(self, input: Any = None) -> "asyncio.Task[ActionResult[U]]":
        return self._spawn(self.sign_in(input), OperationKey.SIGN_IN.value)

    def renew_token_nowait(self, input: Any = None) -> "asyncio.Task[ActionResult[U]]":
        return self._spawn(self.renew_token(input), OperationKey.RENEW.value)

    def sign_out_nowait(self, input: Any = None) -> "asyncio.Task[None]":
        return self._spawn(self.sign_out(input), OperationKey.SIGN_OUT.value)

    # ------------------------------------------------------------------ #
    # Storage target
    # ------------------------------------------------------------------ #

    def use_storage(self, storage: KeyValueStorage) -> None:
        self._store.use_storage(storage)

    def use_storage_scope(self, scope: StorageScope) -> None:
        self.settings.storage_scope = scope
        self._store.use_storage(storage_for_scope(scope, self.settings))

    # ------------------------------------------------------------------ #
    # Internal: operation bodies
    # ------------------------------------------------------------------ #

    async def _sign_in(self, input: Any) -> ActionResult[U]:
        development_token = self.settings.development_token
        if development_token:
            # never expires, the handler is bypassed
            result: ActionResult[U] = ActionResult(
                token=development_token,
                user=self.settings.development_user,
            )
        elif self._do_sign_in is None:
            raise NoSignInHandler("No sign-in handler or development token configured")
        else:
            try:
                raw = await self._do_sign_in(self.state, input)
            except AuthStateError:
                raise
            except Exception as exc:
                logger.warning("sign_in_failed", error=str(exc))
                raise SignInFailure(f"Sign-in failed: {exc}") from exc
            result = ActionResult.coerce(raw)

        self._process_result(result)
        logger.info("sign_in_completed", development=bool(development_token))
        return result

    async def _renew(self, input: Any) -> ActionResult[U]:
        if self._do_renew is None:
            raise NoRenewHandler("No renew handler configured")
        try:
            raw = await self._do_renew(self.state, input)
        except AuthStateError:
            raise
        except Exception as exc:
            logger.warning("renew_failed", error=str(exc))
            raise RenewFailure(f"Token renewal failed: {exc}") from exc

        result: ActionResult[U] = ActionResult.coerce(raw)
        self._process_result(result)
        logger.info("renew_completed")
        return result

    async def _sign_out(self, input: Any) -> None:
        if self._do_sign_out is not None:
            try:
                await self._do_sign_out(self.state, input)
            except Exception as exc:
                # a failing remote sign-out must not keep the client signed in
                failure = SignOutCallbackFailure(f"Sign-out handler failed: {exc}")
                failure.__cause__ = exc
                logger.warning("sign_out_handler_failed", error=str(failure))

        self._commit(lambda s: s.signed_out())
        logger.info("sign_out_completed")

    def _process_result(self, result: ActionResult[U]) -> AuthState[U]:
        # coerce before touching the state so a bad expiration changes nothing
        auth = result.auth_bundle()
        renew = result.renew_bundle()

        def _merge(prev: AuthState[U]) -> AuthState[U]:
            return AuthState(
                initialized=True,
                auth=auth,
                renew=renew if renew is not None else prev.renew,
                user=result.user if result.user is not None else prev.user,
            )

        return self._commit(_merge)

    # ------------------------------------------------------------------ #
    # Internal: state changes, timers, reconciliation
    # ------------------------------------------------------------------ #

    def _default_state(self) -> AuthState[U]:
        s = self.settings
        if s.development_signed_in and s.development_token:
            return AuthState(auth=TokenBundle(s.development_token), user=s.development_user)
        return AuthState()

    def _commit(self, update: StateUpdate[U]) -> AuthState[U]:
        if self._closed:
            logger.debug("auth_commit_after_close_ignored")
            return self._store.get()
        return self._store.set(update)

    def _on_state_change(self, state: AuthState[U], previous: AuthState[U]) -> None:
        if self._closed:
            return
        self._rearm_timers(state)
        self._notifications.notify(state)
        self._schedule_reconciliation()

    def _rearm_timers(self, state: AuthState[U]) -> None:
        auth_at = state.auth.expires_at if state.auth else None
        if auth_at != self._auth_timer.instant:
            self._auth_timer.arm(auth_at, self._on_auth_timer)

        renew_at = state.renew.expires_at if state.renew else None
        if renew_at != self._renew_timer.instant:
            self._renew_timer.arm(renew_at, self._on_renew_timer)

    def _on_auth_timer(self) -> None:
        if self._closed:
            return
        expired = self.state.auth
        if expired is not None:
            self._spawn(self._expire_auth(expired), "auth_expiry")

    def _on_renew_timer(self) -> None:
        if self._closed:
            return
        expired = self.state.renew
        if expired is None:
            return
        logger.info("renew_token_expired", expires_at=expired.expires_at)
        self._commit(lambda s: s.evolve(renew=None) if s.renew == expired else s)

    async def _expire_auth(self, expired: TokenBundle) -> None:
        if self.state.auth != expired:
            # already replaced by a renewal or sign-in
            return
        logger.info("auth_token_expired", expires_at=expired.expires_at)

        if self._can_auto_renew(self.state):
            try:
                await self.renew_token(None)
                return
            except AuthStateError as exc:
                logger.warning("scheduled_renew_failed", error=str(exc))

        # only the bundle that expired is dropped; renew is kept
        self._commit(lambda s: s.evolve(auth=None) if s.auth == expired else s)

    def _can_auto_renew(self, state: AuthState[U]) -> bool:
        return self._do_renew is not None and is_bundle_valid(state.renew)

    def _schedule_reconciliation(self) -> None:
        # the first pass belongs to start()
        if self._closed or not self._started:
            return
        if self._reconcile_task is not None and not self._reconcile_task.done():
            self._reconcile_again = True
            return
        self._reconcile_task = self._spawn(self._run_reconciliation(), "reconciliation")

    async def _run_reconciliation(self) -> None:
        renew_attempted = False
        while not self._closed:
            self._reconcile_again = False
            # at most one automatic renewal per run
            if await self._reconcile_once(allow_renew=not renew_attempted):
                renew_attempted = True
            if not self._reconcile_again:
                return

    async def _reconcile_once(self, *, allow_renew: bool) -> bool:
        """One pass; returns True if a renewal was attempted."""
        state = self.state
        first_pass, self._first_pass = self._first_pass, False

        auth_invalid = state.auth is not None and not state.auth.is_valid()
        forced = first_pass and self.settings.renew_on_mount and self._do_renew is not None
        needs_renew = (state.auth is None or auth_invalid) and self._can_auto_renew(state)

        attempted = False
        if allow_renew and (forced or needs_renew):
            attempted = True
            try:
                await self.renew_token(None)
                return attempted
            except AuthStateError as exc:
                logger.info("automatic_renew_failed", error=str(exc), on_mount=forced)

        def _evict(s: AuthState[U]) -> AuthState[U]:
            changes: dict[str, Any] = {}
            if not s.initialized:
                changes["initialized"] = True
            if s.auth is not None and not s.auth.is_valid():
                changes["auth"] = None
            if s.renew is not None and not s.renew.is_valid():
                changes["renew"] = None
            return s.evolve(**changes) if changes else s

        after = self._commit(_evict)
        if after.auth is None and state.auth is not None and auth_invalid:
            logger.info("auth_token_evicted")
        return attempted

    # ------------------------------------------------------------------ #
    # Internal: helpers
    # ------------------------------------------------------------------ #

    def _load(self) -> AuthState[U]:
        """Read the persisted state and attach to the store, once."""
        if not self._loaded:
            self._loaded = True
            state = self._store.load()
            self._notifications.prime(state)
            self._unsubscribe = self._store.subscribe(self._on_state_change)
            self._rearm_timers(state)
        return self.state

    async def _ensure_started(self) -> None:
        if self._closed:
            raise ControllerClosedError("Controller is closed")
        if not self._started:
            await self.start()

    def _spawn(self, coro: Awaitable[Any], name: str) -> "asyncio.Task[Any]":
        task = asyncio.ensure_future(coro)
        self._background.add(task)

        def _done(t: "asyncio.Task[Any]") -> None:
            self._background.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                logger.error("auth_background_task_failed", task=name, error=str(exc))

        task.add_done_callback(_done)
        return task
