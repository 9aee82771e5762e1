from __future__ import annotations

import json
import os
from pathlib import Path

from .domain.constants import DEFAULT_KEY_PREFIX, StorageScope
from .domain.exceptions import ConfigurationError
from .settings import LifecycleSettings


def settings_from_env() -> LifecycleSettings:
    def _bool(key: str, default: bool = False) -> bool:
        raw = os.getenv(key)
        if raw is None:
            return default
        return str(raw).strip().lower() in {"1", "true", "yes", "on"}

    raw_scope = (os.getenv("AUTHSTATE_STORAGE_SCOPE") or StorageScope.SESSION.value).strip().lower()
    try:
        scope = StorageScope(raw_scope)
    except ValueError as exc:
        allowed = ", ".join(s.value for s in StorageScope)
        raise ConfigurationError(
            f"Invalid AUTHSTATE_STORAGE_SCOPE {raw_scope!r} (expected one of: {allowed})"
        ) from exc

    raw_user = os.getenv("AUTHSTATE_DEV_USER")
    dev_user = None
    if raw_user:
        try:
            dev_user = json.loads(raw_user)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"AUTHSTATE_DEV_USER is not valid JSON: {exc}") from exc

    storage_path = os.getenv("AUTHSTATE_STORAGE_PATH")

    return LifecycleSettings(
        storage_scope=scope,
        key_prefix=os.getenv("AUTHSTATE_KEY_PREFIX") or DEFAULT_KEY_PREFIX,
        storage_path=Path(storage_path) if storage_path else None,
        development_token=os.getenv("AUTHSTATE_DEV_TOKEN") or None,
        development_user=dev_user,
        development_signed_in=_bool("AUTHSTATE_DEV_SIGNED_IN"),
        renew_on_mount=_bool("AUTHSTATE_RENEW_ON_MOUNT"),
    )
