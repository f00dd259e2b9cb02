"""Exception hierarchy for the OAuth 2.0 authorization code grant.

Provides specific exception types for each failure mode so callers can tell
a forged callback from a broken transport from a server that answered with
an unexpected body.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from oauthio.models.tokens import IssueAccessTokenErrorParams


class OAuth2Error(Exception):
    """Base exception for all OAuth 2.0 related errors."""

    pass


class CsrfStateMismatch(OAuth2Error):
    """Raised when the state returned in the callback differs from the one issued.

    Also raised when a state was issued but the callback carries none, or the
    other way around. This is fatal to the flow: the callback may be forged.
    """

    pass


class MalformedCallback(OAuth2Error):
    """Raised when the redirect callback URI lacks or repeats required parameters."""

    pass


class AuthorizationDenied(OAuth2Error):
    """Raised when the authorization server redirected back with an error."""

    def __init__(
        self,
        error: str,
        error_description: str | None = None,
        error_uri: str | None = None,
    ):
        self.error = error
        self.error_description = error_description
        self.error_uri = error_uri
        message = f"Authorization failed: {error}"
        if error_description:
            message += f" ({error_description})"
        if error_uri:
            message += f" See: {error_uri}"
        super().__init__(message)


class PKCEError(OAuth2Error):
    """Raised when PKCE parameter generation or validation fails."""

    pass


class InvalidPkceCharacter(PKCEError):
    """Raised when a PKCE code verifier contains a byte outside the unreserved set."""

    def __init__(self, byte: int):
        self.byte = byte
        super().__init__(f"Invalid byte 0x{byte:02x} found in PKCE code verifier")


class InvalidScopeToken(OAuth2Error, ValueError):
    """Raised when a scope token is empty or contains a forbidden character."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Invalid scope token: {token!r}")


class RequestBuildError(OAuth2Error):
    """Raised when the HTTP request for the token endpoint cannot be built.

    Always raised before any I/O is requested.
    """

    pass


class ResponseParseError(OAuth2Error):
    """Raised when a token endpoint body matches neither expected JSON shape.

    Distinct from a grant error: the server did not answer with a structured
    OAuth response at all.
    """

    def __init__(self, message: str, status_code: int):
        self.status_code = status_code
        super().__init__(f"{message} (HTTP {status_code})")


class ProtocolGrantError(OAuth2Error):
    """Raised by ``unwrap_access_token`` when the server rejected the grant."""

    def __init__(self, params: IssueAccessTokenErrorParams):
        self.params = params
        message = f"Token request rejected: {params.error.value}"
        if params.error_description:
            message += f" ({params.error_description})"
        super().__init__(message)


class TransportIoError(OAuth2Error):
    """Raised when the transport reports a failure for a requested I/O operation.

    The original exception is kept as ``__cause__``.
    """

    pass


class HttpProtocolError(TransportIoError):
    """Raised when the bytes read from the transport are not valid HTTP/1.1."""

    pass


class CoroutineStateError(OAuth2Error):
    """Raised when a coroutine is resumed out of order or after completion."""

    pass
