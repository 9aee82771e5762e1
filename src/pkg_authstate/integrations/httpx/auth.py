from __future__ import annotations

from typing import Any, AsyncGenerator, Generator, Optional

import httpx

from ...application.use_cases.lifecycle import LifecycleController
from ...domain.exceptions import AuthStateError
from ...logging import get_logger

logger = get_logger(__name__)


class LifecycleBearerAuth(httpx.Auth):
    """
    httpx auth flow backed by a LifecycleController.

    - adds `Authorization: <scheme> <token>` while a token is held
    - async clients only: on a 401, renews once and retries once
    """

    requires_request_body = True

    def __init__(
        self,
        controller: LifecycleController[Any],
        *,
        scheme: str = "Bearer",
        renew_on_unauthorized: bool = True,
    ) -> None:
        self._controller = controller
        self._scheme = scheme
        self._renew_on_unauthorized = renew_on_unauthorized

    def _apply(self, request: httpx.Request) -> Optional[str]:
        token = self._controller.token
        if token:
            request.headers["Authorization"] = f"{self._scheme} {token}"
        else:
            request.headers.pop("Authorization", None)
        return token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        self._apply(request)
        yield request

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        if self.requires_request_body:
            await request.aread()

        sent_token = self._apply(request)
        response = yield request

        if response.status_code != 401 or not self._renew_on_unauthorized:
            return
        if not self._controller.is_renew_enabled:
            return

        # skip renewing when the token changed while the request was in flight
        if self._controller.token == sent_token:
            try:
                await self._controller.renew_token()
            except AuthStateError as exc:
                logger.warning("unauthorized_renew_failed", url=str(request.url), error=str(exc))
                return

        if self._controller.token == sent_token:
            return
        # refresh once
        self._apply(request)
        yield request
