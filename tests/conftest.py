import pytest

ENV_KEYS = [
    "AUTHSTATE_STORAGE_SCOPE",
    "AUTHSTATE_KEY_PREFIX",
    "AUTHSTATE_STORAGE_PATH",
    "AUTHSTATE_DEV_TOKEN",
    "AUTHSTATE_DEV_USER",
    "AUTHSTATE_DEV_SIGNED_IN",
    "AUTHSTATE_RENEW_ON_MOUNT",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Environment without any AUTHSTATE_* variable."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch
