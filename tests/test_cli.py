import json

import pytest

from pkg_authstate.adapters.storage import FileStorage
from pkg_authstate.cli import main


@pytest.fixture(autouse=True)
def _no_env(clean_env):
    pass


def _run(capsys, *argv):
    main(list(argv))
    return json.loads(capsys.readouterr().out)


def test_show_masks_tokens(tmp_path, capsys):
    FileStorage(tmp_path).set(
        "auth_state",
        json.dumps({
            "initialized": True,
            "auth": {"token": "abcdef123", "expiresAt": None},
            "user": {"id": 1},
        }),
    )

    out = _run(capsys, "show", "-d", str(tmp_path))
    assert out["ok"] is True
    assert out["key"] == "auth_state"
    assert out["present"] is True
    assert out["auth"] == {"token": "ab***23", "expiresAt": None, "valid": True}
    assert out["renew"] is None
    assert out["user"] == {"id": 1}

    revealed = _run(capsys, "show", "-d", str(tmp_path), "--reveal")
    assert revealed["auth"]["token"] == "abcdef123"


def test_show_missing_state(tmp_path, capsys):
    out = _run(capsys, "show", "-d", str(tmp_path), "-p", "app_")
    assert out["key"] == "app_state"
    assert out["present"] is False
    assert out["auth"] is None


def test_clear_development_namespace(tmp_path, capsys):
    storage = FileStorage(tmp_path)
    storage.set("$dev_auth_state", json.dumps({"auth": {"token": "dev", "expiresAt": None}}))
    storage.set("auth_state", json.dumps({"auth": {"token": "prod", "expiresAt": None}}))

    out = _run(capsys, "clear", "-d", str(tmp_path), "--dev")
    assert out == {"ok": True, "key": "$dev_auth_state", "directory": str(tmp_path), "removed": True}
    assert storage.get("$dev_auth_state") is None
    assert storage.get("auth_state") is not None
