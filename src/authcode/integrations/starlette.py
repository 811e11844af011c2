"""Starlette integration for the OAuth2 authorization code strategy.

Maps strategy results onto HTTP responses. The application supplies the
completion callback that establishes its own notion of a logged-in user.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import PlainTextResponse, RedirectResponse, Response
from starlette.types import Receive, Scope, Send

from authcode.models.errors import OAuth2Error
from authcode.models.results import Authenticated, Failed, Redirect, Unauthenticated
from authcode.strategy import OAuth2Strategy

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[Request, Any], Awaitable[Response]]
FailureCallback = Callable[[Request, OAuth2Error], Awaitable[Response]]
UnauthenticatedCallback = Callable[[Request], Awaitable[Response]]


class OAuth2Endpoint:
    """ASGI endpoint serving both phases of the flow.

    Mount it on the route `return_url` points to, for example
    `Route("/auth/callback", OAuth2Endpoint(strategy, on_success))`.
    CSRF state needs `SessionMiddleware` installed on the application.
    """

    def __init__(
        self,
        strategy: OAuth2Strategy,
        on_success: CompletionCallback,
        on_failure: FailureCallback | None = None,
        on_unauthenticated: UnauthenticatedCallback | None = None,
    ):
        """Initialize the endpoint.

        Args:
            strategy: Configured authorization code strategy
            on_success: Called exactly once with the resolved user, returns
                the response to send
            on_failure: Optional handler for strategy errors. Without it the
                error is raised as a 401 HTTPException.
            on_unauthenticated: Optional handler for requests where no user
                was resolved. Without it a plain 401 is returned.
        """
        self.strategy = strategy
        self.on_success = on_success
        self.on_failure = on_failure
        self.on_unauthenticated = on_unauthenticated

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive=receive, send=send)
        response = await self.handle(request)
        await response(scope, receive, send)

    async def handle(self, request: Request) -> Response:
        """Run the strategy for one request and build the response."""
        result = await self.strategy.authenticate(request)

        if isinstance(result, Redirect):
            return RedirectResponse(result.url, status_code=302)

        if isinstance(result, Authenticated):
            return await self.on_success(request, result.user)

        if isinstance(result, Failed):
            if self.on_failure:
                return await self.on_failure(request, result.error)
            raise HTTPException(status_code=401, detail=str(result.error))

        if isinstance(result, Unauthenticated):
            if self.on_unauthenticated:
                return await self.on_unauthenticated(request)
            return PlainTextResponse("Unauthorized", status_code=401)

        raise TypeError(f"Unexpected authentication result: {result!r}")
