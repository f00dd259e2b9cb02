"""Shared machinery of the token endpoint coroutines.

Both grants POST a form-urlencoded body to the token endpoint and read back a
JSON document whose expected shape depends on the HTTP status class.
"""

from __future__ import annotations

import logging

import httpx

from oauthio.models.errors import ResponseParseError
from oauthio.models.tokens import (
    AccessTokenResponse,
    IssueAccessTokenErrorParams,
    IssueAccessTokenSuccessParams,
)
from oauthio.transport.http import RequestBuilder, SendHttpRequest
from oauthio.transport.io import (
    DEFAULT_READ_SIZE,
    CoroutineState,
    IoRequest,
    IoResult,
)

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class TokenEndpointCoroutine:
    """Sends a token request and classifies the response.

    The response is classified twice: by HTTP status class first (2xx is a
    success, anything else an error), then by JSON shape. A body that does not
    fit the shape of its class raises ``ResponseParseError``; a well-formed
    error body is returned as ``IssueAccessTokenErrorParams``.
    """

    grant_type: str = ""

    def __init__(
        self,
        request: RequestBuilder,
        body: str,
        read_size: int = DEFAULT_READ_SIZE,
    ):
        http_request = (
            request.header("Content-Type", FORM_CONTENT_TYPE)
            .header("Accept", "application/json")
            .build(body.encode("utf-8"))
        )

        logger.debug(
            f"Built {self.grant_type} token request for {http_request.url}"
        )

        self._send = SendHttpRequest(http_request, read_size=read_size)
        self.result: AccessTokenResponse | None = None

    @property
    def state(self) -> CoroutineState:
        return self._send.state

    @property
    def pending(self) -> IoRequest | None:
        return self._send.pending

    def resume(self, result: IoResult | None = None) -> IoRequest | AccessTokenResponse:
        """Make the token request progress.

        Returns the next ``IoRequest`` while suspended, then the parsed
        ``AccessTokenResponse``.

        Raises:
            ResponseParseError: If the body does not match its status class
            TransportIoError: If the transport reported a failure
            CoroutineStateError: If resumed out of order or after completion
        """
        output = self._send.resume(result)
        if not isinstance(output, httpx.Response):
            return output

        self.result = self._classify(output)
        return self.result

    def _classify(self, response: httpx.Response) -> AccessTokenResponse:
        if response.is_success:
            try:
                params = IssueAccessTokenSuccessParams.from_response_body(
                    response.content
                )
            except ValueError as e:
                raise ResponseParseError(
                    f"Invalid {self.grant_type} token response format: {e}",
                    response.status_code,
                ) from e

            logger.info(f"Token request successful ({self.grant_type})")
            return params

        try:
            error = IssueAccessTokenErrorParams.from_response_body(response.content)
        except ValueError as e:
            raise ResponseParseError(
                f"Invalid {self.grant_type} token error response format: {e}",
                response.status_code,
            ) from e

        description = error.error_description or "No description provided"
        logger.warning(
            f"Token request failed with {response.status_code}: "
            f"{error.error.value} - {description}"
        )
        return error
