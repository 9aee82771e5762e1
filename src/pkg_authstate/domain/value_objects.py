# src/pkg_authstate/domain/value_objects.py

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from .exceptions import InvalidExpirationFormat

# Relative durations are seconds from now, absolute instants are datetimes.
ExpirationInput = Union[int, float, datetime, None]


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def coerce_expiration(value: ExpirationInput, *, now: Optional[int] = None) -> Optional[int]:
    """
    Turn an expiration input into an absolute instant (epoch milliseconds).

    - int / float: seconds from now
    - datetime:    absolute instant, passed through
    - None:        never expires

    Raises:
        InvalidExpirationFormat for anything else (including bool).
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidExpirationFormat(f"Unknown expiration format {value!r}")
    if isinstance(value, (int, float)):
        base = now_ms() if now is None else now
        return int(base + value * 1000)
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    raise InvalidExpirationFormat(f"Unknown expiration format {value!r}")


@dataclass(frozen=True, slots=True)
class TokenBundle:
    """
    One opaque credential plus an optional absolute expiry.

    The token is never interpreted; `expires_at` is epoch milliseconds and
    `None` means the token never expires.
    """
    token: str
    expires_at: Optional[int] = None

    def is_valid(self, *, now: Optional[int] = None) -> bool:
        if not self.token:
            return False
        if self.expires_at is None:
            return True
        return self.expires_at >= (now_ms() if now is None else now)

    def to_dict(self) -> dict[str, Any]:
        return {"token": self.token, "expiresAt": self.expires_at}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TokenBundle":
        if not isinstance(data, Mapping):
            raise ValueError(f"Invalid token bundle: {data!r}")
        token = data.get("token")
        if not isinstance(token, str):
            raise ValueError(f"Invalid token bundle: {data!r}")
        expires_at = data.get("expiresAt")
        if expires_at is not None and (
            isinstance(expires_at, bool)
            or not isinstance(expires_at, (int, float))
            or not math.isfinite(expires_at)
        ):
            raise ValueError(f"Invalid bundle expiration: {expires_at!r}")
        return cls(token=token, expires_at=None if expires_at is None else int(expires_at))


def is_bundle_valid(bundle: Optional[TokenBundle], *, now: Optional[int] = None) -> bool:
    """True iff the bundle is present, has a token and is not expired."""
    return bundle is not None and bundle.is_valid(now=now)
