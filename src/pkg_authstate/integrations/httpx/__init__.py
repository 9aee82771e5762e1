"""

import httpx
from pkg_authstate.integrations.httpx import LifecycleBearerAuth

client = httpx.AsyncClient(auth=LifecycleBearerAuth(controller))


"""
from __future__ import annotations

from .auth import LifecycleBearerAuth

__all__ = ["LifecycleBearerAuth"]
