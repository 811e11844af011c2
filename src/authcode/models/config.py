"""Strategy configuration for the OAuth2 authorization code grant.

Configuration is built once at startup, validated eagerly and shared
read-only by every request.
"""

from __future__ import annotations

import os
from typing import Mapping
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, field_validator

from authcode.models.errors import ConfigurationError
from authcode.services.state import SessionStateStore, StateStore

_TRUTHY = {"1", "true", "yes", "on"}


class StrategyConfig(BaseModel):
    """Client registration and endpoints for one authorization server.

    `state` turns on CSRF protection. When it is set and no `store` is given,
    `resolve()` installs a `SessionStateStore`.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    authorize_url: str
    token_url: str
    client_id: str
    client_secret: str
    return_url: str
    scope: str | None = None
    state: bool = False
    store: StateStore | None = None

    @field_validator("authorize_url", "token_url", "return_url")
    @classmethod
    def validate_absolute_url(cls, v: str) -> str:
        """Require absolute http(s) URLs so bad config fails at startup."""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"URL must be an absolute http(s) URL: {v!r}")
        return v

    @field_validator("client_id")
    @classmethod
    def validate_client_id(cls, v: str) -> str:
        if not v:
            raise ValueError("client_id must not be empty")
        return v

    def resolve(self) -> StrategyConfig:
        """Return a fully resolved configuration.

        Idempotent: a config that already has a store (or does not need one)
        is returned unchanged.
        """
        if self.state and self.store is None:
            return self.model_copy(update={"store": SessionStateStore()})
        return self

    @classmethod
    def from_env(
        cls,
        prefix: str = "OAUTH2_",
        environ: Mapping[str, str] | None = None,
    ) -> StrategyConfig:
        """Build configuration from environment variables.

        Reads `{prefix}AUTHORIZE_URL`, `{prefix}TOKEN_URL`, `{prefix}CLIENT_ID`,
        `{prefix}CLIENT_SECRET`, `{prefix}RETURN_URL` and the optional
        `{prefix}SCOPE` and `{prefix}STATE`.

        Args:
            prefix: Variable name prefix
            environ: Mapping to read from, defaults to os.environ

        Returns:
            StrategyConfig: Resolved configuration

        Raises:
            ConfigurationError: If required variables are missing
        """
        env = os.environ if environ is None else environ
        required = {
            "authorize_url": f"{prefix}AUTHORIZE_URL",
            "token_url": f"{prefix}TOKEN_URL",
            "client_id": f"{prefix}CLIENT_ID",
            "client_secret": f"{prefix}CLIENT_SECRET",
            "return_url": f"{prefix}RETURN_URL",
        }

        missing = [name for name in required.values() if not env.get(name)]
        if missing:
            raise ConfigurationError(
                f"Missing OAuth2 configuration: {', '.join(missing)}"
            )

        values = {field: env[name] for field, name in required.items()}
        return cls(
            **values,
            scope=env.get(f"{prefix}SCOPE") or None,
            state=env.get(f"{prefix}STATE", "").strip().lower() in _TRUTHY,
        ).resolve()
