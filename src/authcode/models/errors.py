"""Exception hierarchy for OAuth2 authorization code authentication errors.

Provides specific exception types for the failure modes of the strategy so the
surrounding pipeline can decide how each one is presented.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all OAuth2 strategy errors."""

    pass


class ConfigurationError(OAuth2Error):
    """Raised when strategy configuration cannot be assembled."""

    pass


class InvalidStateError(OAuth2Error):
    """Raised when the callback state parameter is missing or does not match.

    This indicates either a replayed callback or a cross-site request forgery
    attempt against the callback endpoint. No token exchange is performed.
    """

    pass


class TokenExchangeError(OAuth2Error):
    """Raised when exchanging an authorization code for a token fails.

    Covers non-success responses from the token endpoint as well as
    transport-level failures reaching it.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        reason: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class TokenResponseError(TokenExchangeError):
    """Raised when the token endpoint body cannot be decoded as a token."""

    pass
