"""Token endpoint request and response models (RFC 6749 Sections 4.1.3, 5, 6).

Contains the form bodies sent to the token endpoint for the authorization code
and refresh token grants, and the JSON responses the endpoint answers with.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from urllib.parse import urlencode

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    FieldSerializationInfo,
    SecretStr,
    field_serializer,
    field_validator,
)

from oauthio.models.errors import ProtocolGrantError
from oauthio.primitives.pkce import PkceCodeVerifier
from oauthio.primitives.scope import join_scope, normalize_scope, split_scope


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _aware_now(now: datetime | None) -> datetime:
    if now is None:
        return _utcnow()
    if now.tzinfo is None:
        raise ValueError("now must be a timezone-aware datetime")
    return now


@dataclass(frozen=True)
class AccessTokenRequestParams:
    """Access token request parameters (RFC 6749 Section 4.1.3).

    Exchanges the authorization code received on the redirect URI for tokens.
    ``redirect_uri`` must be set when it was part of the authorization request.
    ``pkce_code_verifier`` must be set when a code challenge was sent.
    """

    code: str
    client_id: str
    redirect_uri: str | None = None
    pkce_code_verifier: PkceCodeVerifier | None = None

    def __post_init__(self) -> None:
        if not self.code:
            raise ValueError("code must not be empty")
        if not self.client_id:
            raise ValueError("client_id must not be empty")

    def to_form_data(self) -> list[tuple[str, str]]:
        """Return the ordered body pairs.

        Exposes the authorization code and the PKCE code verifier.
        """
        data = [
            ("grant_type", "authorization_code"),
            ("code", self.code),
        ]

        if self.redirect_uri:
            data.append(("redirect_uri", self.redirect_uri))

        data.append(("client_id", self.client_id))

        if self.pkce_code_verifier is not None:
            verifier = self.pkce_code_verifier.get_secret_value()
            data.append(("code_verifier", verifier.decode("ascii", errors="replace")))

        return data

    def to_form_urlencoded(self) -> str:
        return urlencode(self.to_form_data())


@dataclass(frozen=True)
class RefreshAccessTokenParams:
    """Refresh token request parameters (RFC 6749 Section 6).

    ``refresh_token`` may be given as plain text; it is stored as a secret.
    """

    client_id: str
    refresh_token: SecretStr
    scope: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if not self.client_id:
            raise ValueError("client_id must not be empty")
        if isinstance(self.refresh_token, str):
            object.__setattr__(self, "refresh_token", SecretStr(self.refresh_token))
        if not self.refresh_token.get_secret_value():
            raise ValueError("refresh_token must not be empty")
        object.__setattr__(self, "scope", normalize_scope(self.scope))

    def to_form_data(self) -> list[tuple[str, str]]:
        """Return the ordered body pairs. Exposes the refresh token."""
        data = [
            ("grant_type", "refresh_token"),
            ("client_id", self.client_id),
            ("refresh_token", self.refresh_token.get_secret_value()),
        ]

        if self.scope:
            data.append(("scope", join_scope(self.scope)))

        return data

    def to_form_urlencoded(self) -> str:
        return urlencode(self.to_form_data())


class IssueAccessTokenSuccessParams(BaseModel):
    """Successful token response (RFC 6749 Section 5.1).

    ``issued_at`` is not part of the protocol. The server sends no timestamp,
    so it is captured when the response is parsed, assuming the delay between
    issuance and parsing is negligible. ``sync_expires_in`` moves it forward as
    it consumes elapsed time.
    """

    model_config = ConfigDict(hide_input_in_errors=True)

    access_token: SecretStr
    token_type: str
    expires_in: int | None = Field(default=None, ge=0)  # Seconds until expiry
    refresh_token: SecretStr | None = None
    scope: str | None = None
    issued_at: datetime = Field(default_factory=_utcnow)

    @field_validator("access_token")
    @classmethod
    def validate_access_token(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("access_token must not be empty")
        return v

    @field_validator("issued_at")
    @classmethod
    def validate_issued_at(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @field_serializer("access_token", "refresh_token", when_used="json")
    def serialize_secret(
        self, value: SecretStr | None, info: FieldSerializationInfo
    ) -> str | None:
        if value is None:
            return None
        if info.context and info.context.get("expose_secrets"):
            return value.get_secret_value()
        return str(value)

    @classmethod
    def from_response_body(cls, body: bytes | str) -> IssueAccessTokenSuccessParams:
        """Parse a token endpoint success body.

        A server-sent ``issued_at`` member is ignored: the capture time is
        always the local parse time.

        Raises:
            ValueError: If the body is not JSON or does not have the success shape
        """
        data = json.loads(body)
        if isinstance(data, dict):
            data.pop("issued_at", None)
        return cls.model_validate(data)

    def expose_json(self) -> str:
        """Serialize to JSON with the access and refresh tokens in cleartext.

        This is the only serialization that writes the tokens out; use it to
        hand them to the caller's own storage.
        """
        return self.model_dump_json(context={"expose_secrets": True})

    def sync_expires_in(self, now: datetime | None = None) -> None:
        """Decrement ``expires_in`` by the whole seconds elapsed since ``issued_at``.

        Floors at zero. Does nothing without ``expires_in`` or when
        ``issued_at`` is in the future (clock skew). Must be called before
        trusting ``expires_in``; nothing runs on a timer.

        Raises:
            ValueError: If ``now`` is a naive datetime
        """
        if self.expires_in is None:
            return

        now = _aware_now(now)
        elapsed = now - self.issued_at
        if elapsed < timedelta(0):
            return

        seconds = int(elapsed.total_seconds())
        self.expires_in -= min(seconds, self.expires_in)
        self.issued_at += timedelta(seconds=seconds)

    @property
    def expires_at(self) -> datetime | None:
        if self.expires_in is None:
            return None
        return self.issued_at + timedelta(seconds=self.expires_in)

    def is_expired(
        self, buffer_seconds: float = 0.0, now: datetime | None = None
    ) -> bool:
        """Check whether the access token is expired, with an optional buffer.

        Tokens without ``expires_in`` never expire from the client's view.

        Raises:
            ValueError: If ``now`` is a naive datetime
        """
        expires_at = self.expires_at
        if expires_at is None:
            return False
        now = _aware_now(now)
        return now >= expires_at - timedelta(seconds=buffer_seconds)

    @property
    def scopes(self) -> tuple[str, ...]:
        return split_scope(self.scope)

    def refresh_params(
        self, client_id: str, scope: tuple[str, ...] = ()
    ) -> RefreshAccessTokenParams | None:
        """Build refresh parameters, or None when no refresh token was issued."""
        if self.refresh_token is None:
            return None
        return RefreshAccessTokenParams(
            client_id=client_id, refresh_token=self.refresh_token, scope=scope
        )

    def is_success(self) -> bool:
        return True

    def is_error(self) -> bool:
        return False


class IssueAccessTokenErrorCode(str, Enum):
    """Error codes of a token error response (RFC 6749 Section 5.2)."""

    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    INVALID_REQUEST = "invalid_request"
    INVALID_SCOPE = "invalid_scope"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"


class IssueAccessTokenErrorParams(BaseModel):
    """Token error response (RFC 6749 Section 5.2).

    A normal terminal outcome of the token request, not an exception.
    """

    model_config = ConfigDict(frozen=True, hide_input_in_errors=True)

    error: IssueAccessTokenErrorCode
    error_description: str | None = None
    error_uri: str | None = None

    @classmethod
    def from_response_body(cls, body: bytes | str) -> IssueAccessTokenErrorParams:
        """Parse a token endpoint error body.

        Raises:
            ValueError: If the body is not JSON or does not have the error shape
        """
        return cls.model_validate_json(body)

    def is_success(self) -> bool:
        return False

    def is_error(self) -> bool:
        return True


AccessTokenResponse = IssueAccessTokenSuccessParams | IssueAccessTokenErrorParams


def unwrap_access_token(
    response: AccessTokenResponse,
) -> IssueAccessTokenSuccessParams:
    """Return the success params or raise ``ProtocolGrantError`` on an error."""
    if isinstance(response, IssueAccessTokenErrorParams):
        raise ProtocolGrantError(response)
    return response
