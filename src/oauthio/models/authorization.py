"""Authorization request and callback models (RFC 6749 Section 4.1.1, 4.1.2).

Contains the parameters of the front-channel part of the grant: the query sent
to the authorization endpoint and the query received on the redirect URI.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from oauthio.models.errors import AuthorizationDenied, MalformedCallback
from oauthio.primitives.pkce import PkceCodeChallenge
from oauthio.primitives.scope import join_scope, normalize_scope
from oauthio.primitives.state import State

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationRequestParams:
    """Authorization request parameters for the authorization code grant.

    The client adds these to the query component of the authorization
    endpoint URI using the application/x-www-form-urlencoded format and sends
    the resource owner's user agent there.

    ``scope`` accepts any iterable of tokens (or a space-delimited string) and
    is stored de-duplicated in first-seen order. ``pkce_code_challenge`` set to
    None disables PKCE for this request.
    """

    client_id: str
    redirect_uri: str | None = None
    scope: tuple[str, ...] = ()
    state: State | None = None
    pkce_code_challenge: PkceCodeChallenge | None = None

    def __post_init__(self) -> None:
        if not self.client_id:
            raise ValueError("client_id must not be empty")
        object.__setattr__(self, "scope", normalize_scope(self.scope))

    def to_form_data(self) -> list[tuple[str, str]]:
        """Return the ordered query pairs.

        Exposes the state in cleartext: the result belongs in the URL only.
        """
        data = [
            ("response_type", "code"),
            ("client_id", self.client_id),
        ]

        if self.state is not None:
            state = self.state.get_secret_value().decode("utf-8", errors="replace")
            data.append(("state", state))

        if self.redirect_uri:
            data.append(("redirect_uri", self.redirect_uri))

        if self.scope:
            data.append(("scope", join_scope(self.scope)))

        if self.pkce_code_challenge is not None:
            data.append(("code_challenge", self.pkce_code_challenge.encode()))
            data.append(
                ("code_challenge_method", self.pkce_code_challenge.method.value)
            )

        return data

    def to_query_string(self) -> str:
        return urlencode(self.to_form_data())

    def build_authorization_url(self, authorization_endpoint: str) -> str:
        """Build the complete authorization URL.

        Any query component already present on the endpoint is retained
        (RFC 6749 Section 3.1).
        """
        parts = urlsplit(authorization_endpoint)
        if parts.fragment:
            raise ValueError("Authorization endpoint must not include a fragment")

        query = self.to_query_string()
        if parts.query:
            query = f"{parts.query}&{query}"

        return urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))


class AuthorizationErrorCode(str, Enum):
    """Error codes of an authorization error response (RFC 6749 Section 4.1.2.1)."""

    INVALID_REQUEST = "invalid_request"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    ACCESS_DENIED = "access_denied"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    INVALID_SCOPE = "invalid_scope"
    SERVER_ERROR = "server_error"
    TEMPORARILY_UNAVAILABLE = "temporarily_unavailable"


_CALLBACK_PARAMS = ("code", "state", "error", "error_description", "error_uri")


@dataclass(frozen=True)
class AuthorizationResponseParams:
    """Parameters received on the redirect URI.

    Holds either an authorization code or an error. The returned state is
    only surfaced here; checking it against the issued one is the caller's
    job (see ``oauthio.primitives.state.validate_state``).
    """

    code: str | None = None
    state: State | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    @classmethod
    def from_callback_uri(cls, uri: str) -> AuthorizationResponseParams:
        """Parse the query component of the redirect target.

        Raises:
            MalformedCallback: If neither or both of code and error are present,
                if a parameter is repeated, or if code or error is empty
        """
        try:
            query = urlsplit(uri).query
        except ValueError as e:
            raise MalformedCallback(f"Failed to parse callback URI: {e}") from e

        params: dict[str, str] = {}
        for key, value in parse_qsl(query, keep_blank_values=True):
            if key not in _CALLBACK_PARAMS:
                continue
            if key in params:
                raise MalformedCallback(f"Callback repeats the {key!r} parameter")
            params[key] = value

        for key in ("code", "error"):
            if key in params and not params[key]:
                raise MalformedCallback(f"Callback has an empty {key!r} parameter")

        if "code" in params and "error" in params:
            raise MalformedCallback("Callback carries both code and error")
        if "code" not in params and "error" not in params:
            raise MalformedCallback("Callback carries neither code nor error")

        # An empty state counts as no state; validate_state reports it.
        state = State(params["state"]) if params.get("state") else None

        response = cls(
            code=params.get("code"),
            state=state,
            error=params.get("error"),
            error_description=params.get("error_description") or None,
            error_uri=params.get("error_uri") or None,
        )

        if response.is_error():
            logger.warning(
                f"Authorization callback contained error: {response.error} - "
                f"{response.error_description}"
            )
        else:
            logger.debug("Authorization callback carries an authorization code")

        return response

    def is_success(self) -> bool:
        return self.error is None and self.code is not None

    def is_error(self) -> bool:
        return self.error is not None

    @property
    def error_code(self) -> AuthorizationErrorCode | None:
        """The error as a known code, or None for success and extension codes."""
        if self.error is None:
            return None
        try:
            return AuthorizationErrorCode(self.error)
        except ValueError:
            return None

    def raise_for_error(self) -> None:
        """Raise ``AuthorizationDenied`` if the callback reports an error."""
        if self.error is not None:
            raise AuthorizationDenied(
                self.error, self.error_description, self.error_uri
            )
