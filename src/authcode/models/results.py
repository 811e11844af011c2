"""Outcomes of a single strategy invocation.

The strategy never finishes authentication itself. It returns one of these
values and the surrounding pipeline decides what to do with it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from authcode.models.errors import OAuth2Error

TUser = TypeVar("TUser")


@dataclass(frozen=True)
class Redirect:
    """Send the browser to the authorization endpoint."""

    url: str


@dataclass(frozen=True)
class Authenticated(Generic[TUser]):
    """The identity resolver produced a user for this request."""

    user: TUser


@dataclass(frozen=True)
class Unauthenticated:
    """Token exchange succeeded but the resolver returned no user."""


@dataclass(frozen=True)
class Failed:
    """The authentication attempt failed with a strategy error."""

    error: OAuth2Error


AuthResult = Redirect | Authenticated | Unauthenticated | Failed
