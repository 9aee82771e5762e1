class AuthStateError(Exception):
    """Base class for every error raised by pkg_authstate."""
    pass


class ConfigurationError(AuthStateError):
    """Raised when the controller is missing a required collaborator or setting."""
    pass


class NoSignInHandler(ConfigurationError):
    """Raised when sign-in is requested without a handler or development token."""
    pass


class NoRenewHandler(ConfigurationError):
    """Raised when renewal is requested without a renew handler."""
    pass


class InvalidExpirationFormat(AuthStateError, TypeError):
    """Raised when an expiration is neither seconds, a datetime nor None."""
    pass


class InvalidActionResult(AuthStateError, ValueError):
    """Raised when a handler returns something that is not a usable result."""
    pass


class CallbackError(AuthStateError):
    """Raised when a caller-supplied handler fails."""
    pass


class SignInFailure(CallbackError):
    pass


class RenewFailure(CallbackError):
    pass


class SignOutCallbackFailure(CallbackError):
    """Logged when the sign-out handler fails. Never raised to callers."""
    pass


class ControllerClosedError(AuthStateError):
    """Raised when an operation is invoked on a closed controller."""
    pass
