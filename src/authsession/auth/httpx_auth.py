"""httpx integration: attach cached credentials and answer Bearer challenges.

:class:`SessionAuth` plugs an
:class:`~authsession.auth.manager.AuthorizationManager` into
:class:`httpx.Client` or :class:`httpx.AsyncClient`:

1. the cached ``Authorization`` header is added to every request;
2. when a response is a Bearer challenge (see
   :mod:`authsession.auth.detector`), the manager obtains authorization;
3. on success the request is retried once with the new header. On failure
   the challenge response is returned to the caller unchanged.

Example::

    manager = AuthorizationManager(config, process=MyProcess())
    with httpx.Client(auth=SessionAuth(manager)) as client:
        client.get("https://api.example.com/notes")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, Generator
from typing import Any, Optional

import httpx

from authsession.auth.manager import AuthorizationManager
from authsession.exceptions import AuthorizationFailure

logger = logging.getLogger(__name__)


class SessionAuth(httpx.Auth):
    """:class:`httpx.Auth` backed by an authorization session.

    Args:
        manager: The session whose credentials are used.
        host: Opaque handle forwarded to the authorization process.
        timeout: Seconds to wait for an authorization outcome
            (``None`` waits as long as the process takes).
    """

    def __init__(
        self,
        manager: AuthorizationManager,
        host: Any = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._manager = manager
        self._host = host
        self._timeout = timeout

    def sync_auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        self._manager.add_cached_authorization_header(request)
        response = yield request
        if not self._manager.is_authorization_required(response):
            return
        try:
            self._manager.wait_for_authorization(self._host, timeout=self._timeout)
        except AuthorizationFailure as exc:
            logger.warning("Authorization for %s failed: %s", request.url, exc)
            return
        self._manager.add_cached_authorization_header(request)
        yield request

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        self._manager.add_cached_authorization_header(request)
        response = yield request
        if not self._manager.is_authorization_required(response):
            return
        try:
            await asyncio.to_thread(
                self._manager.wait_for_authorization, self._host, timeout=self._timeout
            )
        except AuthorizationFailure as exc:
            logger.warning("Authorization for %s failed: %s", request.url, exc)
            return
        self._manager.add_cached_authorization_header(request)
        yield request
