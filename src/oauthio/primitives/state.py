"""Anti-CSRF state parameter for the authorization code grant.

The state is an opaque value the client sends with the authorization request
and expects back, unchanged, in the redirect callback (RFC 6749 §10.12).
"""

from __future__ import annotations

import logging
import secrets

from pydantic import SecretBytes

from oauthio.models.errors import CsrfStateMismatch

logger = logging.getLogger(__name__)

# 32 random bytes, 256 bits of entropy once base64url-encoded.
STATE_ENTROPY_BYTES = 32


class State(SecretBytes):
    """Opaque anti-CSRF token.

    Held as a pydantic secret so it never shows up in logs or reprs; the raw
    bytes are only reachable through ``get_secret_value()``.
    """

    def __init__(self, secret_value: bytes | str):
        if isinstance(secret_value, str):
            secret_value = secret_value.encode("utf-8")
        super().__init__(secret_value)

    @classmethod
    def new(cls) -> State:
        """Generate a fresh, URL-safe, practically unguessable state."""
        token = secrets.token_urlsafe(STATE_ENTROPY_BYTES)
        return cls(token.encode("ascii"))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, State):
            return NotImplemented
        return secrets.compare_digest(
            self.get_secret_value(), other.get_secret_value()
        )

    def __hash__(self) -> int:
        return hash(self.get_secret_value())


def validate_state(expected: State | None, received: State | None) -> None:
    """Validate the callback state against the one issued with the request.

    Args:
        expected: State sent in the authorization request, if any
        received: State found in the callback URI, if any

    Raises:
        CsrfStateMismatch: If the states differ, or only one of them is present
    """
    if expected is None and received is None:
        return

    if expected is None:
        logger.warning("Callback carries a state but none was issued")
        raise CsrfStateMismatch("Unexpected state parameter in callback")

    if received is None:
        logger.warning("Callback is missing the issued state parameter")
        raise CsrfStateMismatch("Missing state parameter in callback")

    if expected != received:
        logger.warning("State parameter mismatch - possible CSRF attack")
        raise CsrfStateMismatch("State parameter mismatch - possible CSRF attack")
