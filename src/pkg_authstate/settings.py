from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .domain.constants import (
    DEFAULT_KEY_PREFIX,
    DEVELOPMENT_KEY_MARKER,
    STATE_KEY_SUFFIX,
    StorageScope,
)


@dataclass(slots=True)
class LifecycleSettings:
    """
    Token lifecycle settings.

    Host code decides how to construct this (env, config file, etc.).
    """
    storage_scope: StorageScope = StorageScope.SESSION
    key_prefix: str = DEFAULT_KEY_PREFIX
    # Directory used by the LOCAL scope
    storage_path: Optional[Path] = None

    # Development bypass: sign-in never calls the handler and the token never expires
    development_token: Optional[str] = None
    development_user: Any = None
    development_signed_in: bool = False

    # Force one renewal attempt on the first pass after start()
    renew_on_mount: bool = False

    @property
    def is_development(self) -> bool:
        return bool(self.development_token)

    @property
    def storage_key(self) -> str:
        prefix = self.key_prefix
        if self.is_development:
            prefix = DEVELOPMENT_KEY_MARKER + prefix
        return f"{prefix}{STATE_KEY_SUFFIX}"
