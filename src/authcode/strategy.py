"""OAuth2 authorization code strategy.

Drives the two phases of the authorization code grant for a single request:
redirecting the browser to the authorization server, and completing the
callback by exchanging the code for a token and resolving a user from it.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Generic, Mapping, Protocol, TypeVar

from authcode.models.config import StrategyConfig
from authcode.models.errors import InvalidStateError, OAuth2Error
from authcode.models.flow import AuthorizationRequest
from authcode.models.results import (
    Authenticated,
    AuthResult,
    Failed,
    Redirect,
    Unauthenticated,
)
from authcode.models.tokens import OAuth2Token, TokenRequest
from authcode.services.state import Session
from authcode.services.tokens import OAuth2TokenManager

logger = logging.getLogger(__name__)

TUser = TypeVar("TUser")


class RequestContext(Protocol):
    """What the strategy needs from an incoming request.

    Starlette's `Request` satisfies this when `SessionMiddleware` is installed.
    `session` is only touched when CSRF state is enabled.
    """

    @property
    def query_params(self) -> Mapping[str, str]: ...

    @property
    def session(self) -> Session: ...


IdentityResolver = Callable[[Any, OAuth2Token], Awaitable[Any]]


def _first_query_value(request: RequestContext, key: str) -> str | None:
    """Return the first value of a query parameter, even when it repeats."""
    params = request.query_params
    if hasattr(params, "getlist"):
        values = params.getlist(key)
        return values[0] if values else None
    return params.get(key)


class OAuth2Strategy(Generic[TUser]):
    """Authorization code grant as a pluggable authentication strategy.

    Stateless across requests. The phase is picked from the request alone:
    no `code` query parameter means the flow is starting, a `code` means the
    authorization server redirected back.
    """

    name = "oauth2"

    def __init__(
        self,
        config: StrategyConfig,
        resolve_identity: IdentityResolver,
        token_manager: OAuth2TokenManager | None = None,
    ):
        """Initialize the strategy.

        Args:
            config: Strategy configuration, resolved on construction
            resolve_identity: Async callable mapping (request, token) to a user,
                or None when no user matches
            token_manager: Optional token manager, e.g. one sharing an
                application-wide httpx client
        """
        self.config = config.resolve()
        self.resolve_identity = resolve_identity
        self.token_manager = token_manager or OAuth2TokenManager()

    async def authenticate(self, request: RequestContext) -> AuthResult:
        """Handle one request of the authorization code flow.

        Args:
            request: Incoming request

        Returns:
            Redirect when starting the flow, otherwise Authenticated,
            Unauthenticated or Failed for the callback
        """
        code = _first_query_value(request, "code")
        if not code:
            return self.start_authorization(request)

        try:
            return await self.complete_authorization(request, code)
        except OAuth2Error as e:
            logger.warning(f"OAuth2 authentication failed: {e}")
            return Failed(e)

    def start_authorization(self, request: RequestContext) -> Redirect:
        """Build the redirect to the authorization endpoint."""
        state = None
        if self.config.state:
            state = self.config.store.generate(request.session)

        auth_request = AuthorizationRequest(
            authorization_endpoint=self.config.authorize_url,
            client_id=self.config.client_id,
            redirect_uri=self.config.return_url,
            state=state,
            scope=self.config.scope,
        )

        logger.debug(f"Redirecting to authorization endpoint {self.config.authorize_url}")
        return Redirect(auth_request.build_authorization_url())

    async def complete_authorization(
        self, request: RequestContext, code: str
    ) -> Authenticated | Unauthenticated:
        """Process the authorization server callback.

        Args:
            request: Incoming callback request
            code: Authorization code presented on the callback

        Returns:
            Authenticated if the resolver returned a user, else Unauthenticated

        Raises:
            InvalidStateError: If CSRF state is enabled and does not verify
            TokenExchangeError: If the code could not be exchanged
        """
        if self.config.state:
            self._verify_state(request)

        token_request = TokenRequest(
            token_endpoint=self.config.token_url,
            code=code,
            redirect_uri=self.config.return_url,
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
            scope=self.config.scope,
        )
        token = await self.token_manager.exchange_code_for_token(token_request)

        user = await self.resolve_identity(request, token)
        if user is None:
            logger.info("Identity resolver returned no user")
            return Unauthenticated()

        logger.info("OAuth2 authentication succeeded")
        return Authenticated(user)

    def _verify_state(self, request: RequestContext) -> None:
        state = _first_query_value(request, "state")
        if not state:
            raise InvalidStateError("Invalid state parameter: missing from callback")

        if not self.config.store.verify(request.session, state):
            raise InvalidStateError("Invalid state parameter: possible CSRF attack")

    async def close(self) -> None:
        """Release the token manager's HTTP resources."""
        await self.token_manager.close()
