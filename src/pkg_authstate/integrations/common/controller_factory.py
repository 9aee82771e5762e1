from __future__ import annotations

from typing import Any, Optional

from ...application.use_cases.lifecycle import LifecycleController
from ...domain.ports import (
    KeyValueStorage,
    RenewHandler,
    SignInHandler,
    SignOutHandler,
    TokenChangeHandler,
)
from ...env import settings_from_env
from ...settings import LifecycleSettings


def create_controller(
        *,
        settings: LifecycleSettings | None = None,
        storage: Optional[KeyValueStorage] = None,
        do_sign_in: Optional[SignInHandler] = None,
        do_renew: Optional[RenewHandler] = None,
        do_sign_out: Optional[SignOutHandler] = None,
        on_token_change: Optional[TokenChangeHandler] = None,
) -> LifecycleController[Any]:
    """
    High-level factory: settings + handlers -> LifecycleController.

    - settings default to `settings_from_env()`
    - storage defaults to the backend of `settings.storage_scope`
    """
    return LifecycleController(
        settings=settings or settings_from_env(),
        storage=storage,
        do_sign_in=do_sign_in,
        do_renew=do_renew,
        do_sign_out=do_sign_out,
        on_token_change=on_token_change,
    )
