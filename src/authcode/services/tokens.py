"""OAuth2 token exchange service.

Implements the RFC 6749 Section 4.1.3 access token request for confidential
clients authenticating with HTTP Basic credentials.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from authcode.models.errors import TokenExchangeError, TokenResponseError
from authcode.models.tokens import OAuth2Token, TokenRequest

logger = logging.getLogger(__name__)


class OAuth2TokenManager:
    """Exchanges authorization codes for access tokens.

    Uses application/x-www-form-urlencoded encoding as required by RFC 6749.
    Failures are reported once and never retried; timeouts are owned by the
    underlying httpx client.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the token manager.

        Args:
            timeout: HTTP request timeout in seconds
            http_client: Optional shared client. The manager only closes
                clients it created itself.
        """
        self.timeout = timeout
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def exchange_code_for_token(self, token_request: TokenRequest) -> OAuth2Token:
        """Exchange an authorization code for an access token.

        Args:
            token_request: Token exchange request parameters

        Returns:
            OAuth2Token: Decoded token response

        Raises:
            TokenExchangeError: If the endpoint is unreachable or answers with
                a non-success status
            TokenResponseError: If the response body is not a valid token
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
            "Authorization": token_request.authorization_header(),
        }
        form_data = token_request.to_form_data()

        logger.debug(
            f"Token request: grant_type={form_data['grant_type']}, "
            f"client_id={token_request.client_id}, "
            f"scope={form_data.get('scope', 'none')}"
        )

        try:
            response = await self._http_client.post(
                token_request.token_endpoint,
                data=form_data,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise TokenExchangeError(f"HTTP error during token exchange: {e}") from e

        return self._parse_token_response(response)

    def _parse_token_response(self, response: httpx.Response) -> OAuth2Token:
        """Parse a token endpoint response.

        Args:
            response: HTTP response from token endpoint

        Returns:
            OAuth2Token: Decoded token

        Raises:
            TokenExchangeError: If the status is not a success status
            TokenResponseError: If the body cannot be decoded
        """
        if not response.is_success:
            logger.warning(
                f"Token exchange failed with {response.status_code} "
                f"{response.reason_phrase}"
            )
            raise TokenExchangeError(
                f"Failed to get token: {response.reason_phrase}",
                status_code=response.status_code,
                reason=response.reason_phrase,
            )

        try:
            token = OAuth2Token.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TokenResponseError(
                f"Invalid token response format: {e}",
                status_code=response.status_code,
                reason=response.reason_phrase,
            ) from e

        logger.info("Token exchange successful")
        return token

    async def close(self) -> None:
        """Close the HTTP client if this manager created it."""
        if self._owns_client:
            await self._http_client.aclose()
