"""Refresh access token coroutine (RFC 6749 Section 6)."""

from __future__ import annotations

from oauthio.coroutines.base import TokenEndpointCoroutine
from oauthio.models.tokens import RefreshAccessTokenParams
from oauthio.transport.http import RequestBuilder
from oauthio.transport.io import DEFAULT_READ_SIZE


class RefreshAccessToken(TokenEndpointCoroutine):
    """I/O-free coroutine obtaining a new access token from a refresh token."""

    grant_type = "refresh_token"

    def __init__(
        self,
        request: RequestBuilder,
        params: RefreshAccessTokenParams,
        read_size: int = DEFAULT_READ_SIZE,
    ):
        super().__init__(request, params.to_form_urlencoded(), read_size=read_size)
