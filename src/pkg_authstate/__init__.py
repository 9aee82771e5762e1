"""
pkg_authstate

Token lifecycle core: acquires, persists, renews and tears down an opaque
authentication token on behalf of a client application. Credential exchange
is supplied by the host as async handlers.
"""

__version__ = "0.1.0"

from .domain.constants import AuthStatus, OperationKey, StorageScope
from .domain.entities import ActionResult, AuthState
from .domain.exceptions import (
    AuthStateError,
    ConfigurationError,
    NoSignInHandler,
    NoRenewHandler,
    InvalidExpirationFormat,
    InvalidActionResult,
    CallbackError,
    SignInFailure,
    RenewFailure,
    SignOutCallbackFailure,
    ControllerClosedError,
)
from .domain.value_objects import TokenBundle, coerce_expiration, is_bundle_valid
from .domain.ports import KeyValueStorage

from .application.notifications import NotificationBridge
from .application.scheduler import ExpirationScheduler
from .application.single_flight import SingleFlightExecutor
from .application.state_store import PersistentStateStore
from .application.use_cases.lifecycle import LifecycleController

from .adapters.storage import FileStorage, MemoryStorage, storage_for_scope
from .integrations.common.controller_factory import create_controller
from .settings import LifecycleSettings
from .env import settings_from_env
from .logging import configure_logging, get_logger

__all__ = [
    "__version__",
    # domain core
    "AuthStatus",
    "OperationKey",
    "StorageScope",
    "ActionResult",
    "AuthState",
    "TokenBundle",
    "coerce_expiration",
    "is_bundle_valid",
    "KeyValueStorage",
    # exceptions
    "AuthStateError",
    "ConfigurationError",
    "NoSignInHandler",
    "NoRenewHandler",
    "InvalidExpirationFormat",
    "InvalidActionResult",
    "CallbackError",
    "SignInFailure",
    "RenewFailure",
    "SignOutCallbackFailure",
    "ControllerClosedError",
    # components
    "NotificationBridge",
    "ExpirationScheduler",
    "SingleFlightExecutor",
    "PersistentStateStore",
    "LifecycleController",
    "create_controller",
    # adapters
    "FileStorage",
    "MemoryStorage",
    "storage_for_scope",
    # configuration
    "LifecycleSettings",
    "settings_from_env",
    "configure_logging",
    "get_logger",
]
