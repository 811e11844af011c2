"""Token models for the OAuth2 authorization code exchange.

Contains the token endpoint request parameters and the decoded token response.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code exchange request (RFC 6749 Section 4.1.3).

    The client authenticates with HTTP Basic credentials rather than form
    parameters, so `client_id` and `client_secret` only feed the header.
    """

    token_endpoint: str
    code: str
    redirect_uri: str
    client_id: str
    client_secret: str
    scope: str | None = None
    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for an application/x-www-form-urlencoded body.

        Returns:
            Ordered mapping suitable for the httpx data parameter
        """
        data = {"redirect_uri": self.redirect_uri}
        if self.scope:
            data["scope"] = self.scope
        data["grant_type"] = self.grant_type
        data["code"] = self.code
        return data

    def authorization_header(self) -> str:
        """Build the HTTP Basic authorization header value."""
        credentials = f"{self.client_id}:{self.client_secret}".encode()
        return f"Basic {base64.b64encode(credentials).decode('ascii')}"


class OAuth2Token(BaseModel):
    """Successful token endpoint response (RFC 6749 Section 5.1).

    Only `access_token` is checked. The other fields are passed through as
    the provider sent them, and provider specific fields such as `id_token`
    are kept as extras for the identity resolver to read.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    access_token: str
    token_type: Any = None
    expires_in: Any = None  # Seconds until expiry
    refresh_token: Any = None
    scope: Any = None
