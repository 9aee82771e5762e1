# src/pkg_authstate/cli.py

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional, Sequence

from .adapters.storage import DEFAULT_STORAGE_DIR, FileStorage
from .application.state_store import PersistentStateStore
from .domain.value_objects import TokenBundle
from .env import settings_from_env
from .settings import LifecycleSettings


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="authstate",
        description="Inspect or clear authentication state persisted on disk",
    )
    parser.add_argument(
        "command",
        choices=["show", "clear"],
        help="show: print the persisted state; clear: remove it",
    )
    parser.add_argument(
        "--storage-path",
        "-d",
        help="Directory of the local storage (default: AUTHSTATE_STORAGE_PATH "
             f"or {DEFAULT_STORAGE_DIR})",
    )
    parser.add_argument(
        "--key-prefix",
        "-p",
        help="Storage key prefix (default: AUTHSTATE_KEY_PREFIX or 'auth_')",
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Target the development namespace ($dev_ prefixed key).",
    )
    parser.add_argument(
        "--reveal",
        action="store_true",
        help="Print tokens in clear instead of masking them.",
    )
    return parser.parse_args(args=argv)


def _settings(args: argparse.Namespace) -> LifecycleSettings:
    settings = settings_from_env()
    if args.key_prefix:
        settings = replace(settings, key_prefix=args.key_prefix)
    if args.storage_path:
        settings = replace(settings, storage_path=Path(args.storage_path))
    if args.dev and not settings.development_token:
        # only the key namespace matters here
        settings = replace(settings, development_token="cli")
    elif not args.dev:
        settings = replace(settings, development_token=None)
    return settings


def _mask(value: str) -> str:
    if len(value) <= 4:
        return "***"
    return value[:2] + "***" + value[-2:]


def _describe_bundle(bundle: Optional[TokenBundle], reveal: bool) -> Optional[dict[str, Any]]:
    if bundle is None:
        return None
    return {
        "token": bundle.token if reveal else _mask(bundle.token),
        "expiresAt": bundle.expires_at,
        "valid": bundle.is_valid(),
    }


def run(args: argparse.Namespace) -> dict[str, Any]:
    settings = _settings(args)
    storage = FileStorage(settings.storage_path or DEFAULT_STORAGE_DIR)
    key = settings.storage_key

    if args.command == "clear":
        existed = storage.get(key) is not None
        storage.remove(key)
        return {"key": key, "directory": str(storage.directory), "removed": existed}

    store: PersistentStateStore[Any] = PersistentStateStore(storage, key)
    state = store.load()
    return {
        "key": key,
        "directory": str(storage.directory),
        "present": storage.get(key) is not None,
        "auth": _describe_bundle(state.auth, args.reveal),
        "renew": _describe_bundle(state.renew, args.reveal),
        "user": state.user,
    }


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)

    try:
        summary = run(args)
        json.dump({"ok": True, **summary}, sys.stdout, indent=2)
        sys.stdout.write("\n")
    except Exception as exc:  # noqa: BLE001
        json.dump({"ok": False, "error": str(exc)}, sys.stdout, indent=2)
        sys.stdout.write("\n")
        raise


if __name__ == "__main__":
    main()
