"""Authorization code flow orchestration.

Coordinates the complete grant without doing any I/O: builds the
authorization URL with fresh state and PKCE parameters, checks the callback,
and hands out the coroutines that talk to the token endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import SecretStr

from oauthio.config import ClientConfig
from oauthio.coroutines.access_token import SendAccessTokenRequest
from oauthio.coroutines.refresh_token import RefreshAccessToken
from oauthio.models.authorization import (
    AuthorizationRequestParams,
    AuthorizationResponseParams,
)
from oauthio.models.errors import MalformedCallback
from oauthio.models.tokens import AccessTokenRequestParams, RefreshAccessTokenParams
from oauthio.primitives.pkce import PkceCodeChallenge
from oauthio.primitives.state import State, validate_state
from oauthio.transport.http import RequestBuilder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingAuthorization:
    """What the client keeps between redirecting the user and the callback.

    Holds the issued state and the PKCE challenge (with its verifier); both
    are secrets and must stay with the client.
    """

    authorization_url: str
    state: State | None = field(default=None, repr=False)
    pkce_code_challenge: PkceCodeChallenge | None = field(default=None, repr=False)


class AuthorizationCodeFlow:
    """Orchestrates OAuth 2.0 authorization code flows for one client.

    Typical use::

        flow = AuthorizationCodeFlow(ClientConfig.from_env())
        pending = flow.start()
        # send the user to pending.authorization_url, receive callback_uri
        coroutine = flow.exchange(pending, callback_uri)
        response = drive(coroutine, handler)
    """

    def __init__(self, config: ClientConfig):
        self.config = config

    def start(self) -> PendingAuthorization:
        """Generate state and PKCE parameters and build the authorization URL."""
        state = State.new() if self.config.use_state else None

        challenge = None
        if self.config.pkce_method is not None:
            challenge = PkceCodeChallenge.generate(
                self.config.pkce_method, self.config.verifier_length
            )

        request = AuthorizationRequestParams(
            client_id=self.config.client_id,
            redirect_uri=self.config.redirect_uri,
            scope=self.config.scope,
            state=state,
            pkce_code_challenge=challenge,
        )
        authorization_url = request.build_authorization_url(
            self.config.authorization_endpoint
        )

        logger.info(f"Generated authorization URL for client {self.config.client_id}")

        return PendingAuthorization(
            authorization_url=authorization_url,
            state=state,
            pkce_code_challenge=challenge,
        )

    def handle_callback(
        self, pending: PendingAuthorization, callback_uri: str
    ) -> AccessTokenRequestParams:
        """Parse and check the callback, then build the token request parameters.

        Raises:
            MalformedCallback: If the callback URI lacks required parameters
            CsrfStateMismatch: If the returned state is not the issued one
            AuthorizationDenied: If the authorization server returned an error
        """
        response = AuthorizationResponseParams.from_callback_uri(callback_uri)

        validate_state(pending.state, response.state)
        response.raise_for_error()

        if response.code is None:
            raise MalformedCallback("Missing authorization code")

        verifier = None
        if pending.pkce_code_challenge is not None:
            verifier = pending.pkce_code_challenge.verifier

        return AccessTokenRequestParams(
            code=response.code,
            client_id=self.config.client_id,
            redirect_uri=self.config.redirect_uri,
            pkce_code_verifier=verifier,
        )

    def exchange(
        self, pending: PendingAuthorization, callback_uri: str
    ) -> SendAccessTokenRequest:
        """Check the callback and return the coroutine exchanging its code."""
        params = self.handle_callback(pending, callback_uri)
        return SendAccessTokenRequest(self._token_request(), params)

    def refresh(
        self, refresh_token: SecretStr | str, scope: tuple[str, ...] = ()
    ) -> RefreshAccessToken:
        """Return the coroutine refreshing an access token."""
        params = RefreshAccessTokenParams(
            client_id=self.config.client_id,
            refresh_token=refresh_token,
            scope=scope,
        )
        return RefreshAccessToken(self._token_request(), params)

    def _token_request(self) -> RequestBuilder:
        return RequestBuilder.post(self.config.token_endpoint)
