from __future__ import annotations

from pathlib import Path

from ...domain.constants import StorageScope
from ...domain.ports import KeyValueStorage
from ...settings import LifecycleSettings
from .file import FileStorage
from .memory import MemoryStorage

DEFAULT_STORAGE_DIR = Path.home() / ".pkg_authstate"

# Shared by every controller of this process, like a browser session
_session_storage = MemoryStorage()


def storage_for_scope(scope: StorageScope, settings: LifecycleSettings) -> KeyValueStorage:
    """Resolve the storage backend for a retention scope."""
    if scope is StorageScope.LOCAL:
        return FileStorage(settings.storage_path or DEFAULT_STORAGE_DIR)
    return _session_storage


__all__ = ["FileStorage", "MemoryStorage", "storage_for_scope", "DEFAULT_STORAGE_DIR"]
