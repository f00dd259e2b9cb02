"""Access token request coroutine (RFC 6749 Section 4.1.3).

The authorization code grant is used to obtain both access tokens and refresh
tokens. After the user agent came back with an authorization code, the client
exchanges it at the token endpoint.
"""

from __future__ import annotations

from oauthio.coroutines.base import TokenEndpointCoroutine
from oauthio.models.tokens import AccessTokenRequestParams
from oauthio.transport.http import RequestBuilder
from oauthio.transport.io import DEFAULT_READ_SIZE


class SendAccessTokenRequest(TokenEndpointCoroutine):
    """I/O-free coroutine exchanging an authorization code for tokens.

    Example::

        coroutine = SendAccessTokenRequest(
            RequestBuilder.post("https://auth.example.com/token"), params
        )
        response = drive(coroutine, functools.partial(handle_stream, sock))
    """

    grant_type = "authorization_code"

    def __init__(
        self,
        request: RequestBuilder,
        params: AccessTokenRequestParams,
        read_size: int = DEFAULT_READ_SIZE,
    ):
        super().__init__(request, params.to_form_urlencoded(), read_size=read_size)
