from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Generic, Mapping, Optional, TypeVar

from .constants import AuthStatus
from .exceptions import InvalidActionResult
from .value_objects import ExpirationInput, TokenBundle, coerce_expiration, is_bundle_valid

U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class AuthState(Generic[U]):
    """
    Snapshot of the authentication state.

    - initialized: False until the first reconciliation pass completes
    - auth:        present iff the caller is considered authenticated
    - renew:       renewal credential, with its own lifetime
    - user:        last user returned by sign-in / renewal
    """
    initialized: bool = False
    auth: Optional[TokenBundle] = None
    renew: Optional[TokenBundle] = None
    user: Optional[U] = None

    # --- Derived views ----------------------------------------------------

    @property
    def token(self) -> Optional[str]:
        return self.auth.token if self.auth else None

    @property
    def status(self) -> AuthStatus:
        if not self.initialized:
            return AuthStatus.UNINITIALIZED
        if is_bundle_valid(self.auth):
            return AuthStatus.AUTHENTICATED
        return AuthStatus.UNAUTHENTICATED

    def signed_out(self) -> "AuthState[U]":
        return AuthState(initialized=True)

    def evolve(self, **changes: Any) -> "AuthState[U]":
        return replace(self, **changes)

    # --- Persistence shape ------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"initialized": self.initialized}
        if self.auth is not None:
            data["auth"] = self.auth.to_dict()
        if self.renew is not None:
            data["renew"] = self.renew.to_dict()
        if self.user is not None:
            data["user"] = self.user
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AuthState[Any]":
        if not isinstance(data, Mapping):
            raise ValueError(f"Invalid auth state: {data!r}")
        auth_raw = data.get("auth")
        renew_raw = data.get("renew")
        return cls(
            initialized=bool(data.get("initialized", False)),
            auth=TokenBundle.from_dict(auth_raw) if auth_raw is not None else None,
            renew=TokenBundle.from_dict(renew_raw) if renew_raw is not None else None,
            user=data.get("user"),
        )


@dataclass(slots=True)
class ActionResult(Generic[U]):
    """
    Payload returned by the sign-in / renew handlers and accepted by set_auth.

    Expirations are seconds from now, an absolute datetime, or None (never).
    """
    token: str
    token_expiration: ExpirationInput = None
    renew: Optional[str] = None
    renew_expiration: ExpirationInput = None
    user: Optional[U] = None

    def auth_bundle(self, *, now: Optional[int] = None) -> TokenBundle:
        return TokenBundle(self.token, coerce_expiration(self.token_expiration, now=now))

    def renew_bundle(self, *, now: Optional[int] = None) -> Optional[TokenBundle]:
        if not self.renew:
            return None
        return TokenBundle(self.renew, coerce_expiration(self.renew_expiration, now=now))

    @classmethod
    def coerce(cls, value: Any) -> "ActionResult[Any]":
        """
        Accept an ActionResult or a mapping (camelCase or snake_case keys).

        Raises:
            InvalidActionResult if no usable token is present.
        """
        if isinstance(value, ActionResult):
            result = value
        elif isinstance(value, Mapping):
            result = cls(
                token=value.get("token"),
                token_expiration=_pick(value, "tokenExpiration", "token_expiration"),
                renew=value.get("renew"),
                renew_expiration=_pick(value, "renewExpiration", "renew_expiration"),
                user=value.get("user"),
            )
        else:
            raise InvalidActionResult(f"Unsupported action result: {value!r}")

        if not isinstance(result.token, str) or not result.token:
            raise InvalidActionResult("Action result has no token")
        return result


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None
