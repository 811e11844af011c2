"""CSRF state handling for the authorization code flow.

The state parameter binds the authorization redirect to the browser session
that started it. A store issues a value before the redirect and consumes it
when the callback arrives.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any, MutableMapping, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_SESSION_KEY = "__oauth2state__"

Session = MutableMapping[str, Any]


@runtime_checkable
class StateStore(Protocol):
    """Protocol for issuing and checking CSRF state values.

    Implementations may keep state anywhere (cookie session, cache, database)
    as long as a value verifies at most once.
    """

    def generate(self, session: Session) -> str:
        """Issue a new state value bound to the session.

        Args:
            session: Per-request session mapping

        Returns:
            State value to send with the authorization request
        """
        ...

    def verify(self, session: Session, state: str) -> bool:
        """Check a presented state value and consume the pending one.

        Args:
            session: Per-request session mapping
            state: State parameter received on the callback

        Returns:
            True if the value matches the pending state
        """
        ...


def generate_state(num_bytes: int = 16) -> str:
    """Generate a cryptographically secure, hex encoded state value."""
    return secrets.token_hex(num_bytes)


class SessionStateStore:
    """Keeps the pending state value in the request session.

    One pending value per session. Verification always clears it, so a state
    value can never be replayed.
    """

    def __init__(self, session_key: str = DEFAULT_SESSION_KEY):
        self.session_key = session_key

    def generate(self, session: Session) -> str:
        state = generate_state()
        session[self.session_key] = state
        return state

    def verify(self, session: Session, state: str) -> bool:
        expected = session.pop(self.session_key, None)
        if not expected:
            logger.warning("No pending OAuth2 state in session")
            return False
        if not state:
            logger.warning("Empty OAuth2 state presented on callback")
            return False

        return secrets.compare_digest(str(expected).encode(), state.encode())

    def __repr__(self) -> str:
        return f"SessionStateStore(session_key={self.session_key!r})"
