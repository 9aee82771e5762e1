from enum import Enum


DEFAULT_KEY_PREFIX = "auth_"
DEVELOPMENT_KEY_MARKER = "$dev_"
STATE_KEY_SUFFIX = "state"


class StorageScope(Enum):
    SESSION = "session"
    LOCAL = "local"


class OperationKey(Enum):
    SIGN_IN = "sign_in"
    RENEW = "renew"
    SIGN_OUT = "sign_out"


class AuthStatus(Enum):
    UNINITIALIZED = "uninitialized"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
