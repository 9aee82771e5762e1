from pathlib import Path

import pytest

from pkg_authstate.adapters.storage import MemoryStorage
from pkg_authstate.domain.constants import StorageScope
from pkg_authstate.domain.exceptions import ConfigurationError
from pkg_authstate.env import settings_from_env
from pkg_authstate.integrations.common.controller_factory import create_controller
from pkg_authstate.settings import LifecycleSettings


def test_storage_key():
    assert LifecycleSettings().storage_key == "auth_state"
    assert LifecycleSettings(key_prefix="app_").storage_key == "app_state"
    assert LifecycleSettings(development_token="dev").storage_key == "$dev_auth_state"


def test_defaults_from_empty_env(clean_env):
    settings = settings_from_env()
    assert settings == LifecycleSettings()
    assert settings.storage_scope is StorageScope.SESSION
    assert not settings.is_development


def test_values_from_env(clean_env):
    clean_env.setenv("AUTHSTATE_STORAGE_SCOPE", "Local")
    clean_env.setenv("AUTHSTATE_KEY_PREFIX", "app_")
    clean_env.setenv("AUTHSTATE_STORAGE_PATH", "/tmp/authstate")
    clean_env.setenv("AUTHSTATE_DEV_TOKEN", "dev-token")
    clean_env.setenv("AUTHSTATE_DEV_USER", '{"name": "dev"}')
    clean_env.setenv("AUTHSTATE_DEV_SIGNED_IN", "yes")
    clean_env.setenv("AUTHSTATE_RENEW_ON_MOUNT", "1")

    settings = settings_from_env()
    assert settings.storage_scope is StorageScope.LOCAL
    assert settings.key_prefix == "app_"
    assert settings.storage_path == Path("/tmp/authstate")
    assert settings.development_token == "dev-token"
    assert settings.development_user == {"name": "dev"}
    assert settings.development_signed_in is True
    assert settings.renew_on_mount is True
    assert settings.storage_key == "$dev_app_state"


def test_invalid_env_values(clean_env):
    clean_env.setenv("AUTHSTATE_STORAGE_SCOPE", "cookie")
    with pytest.raises(ConfigurationError):
        settings_from_env()

    clean_env.setenv("AUTHSTATE_STORAGE_SCOPE", "session")
    clean_env.setenv("AUTHSTATE_DEV_USER", "{broken")
    with pytest.raises(ConfigurationError):
        settings_from_env()


def test_create_controller_reads_env(clean_env):
    clean_env.setenv("AUTHSTATE_DEV_TOKEN", "dev-token")
    clean_env.setenv("AUTHSTATE_RENEW_ON_MOUNT", "true")

    controller = create_controller(storage=MemoryStorage())
    assert controller.settings.development_token == "dev-token"
    assert controller.settings.renew_on_mount is True

    explicit = create_controller(settings=LifecycleSettings(), storage=MemoryStorage())
    assert explicit.settings.development_token is None
