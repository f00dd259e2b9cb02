"""Tests for the authorization code token exchange coroutine."""

import logging
from datetime import timedelta
from urllib.parse import parse_qsl

import pytest

from oauthio.coroutines.access_token import SendAccessTokenRequest
from oauthio.models.errors import RequestBuildError, ResponseParseError
from oauthio.models.tokens import (
    AccessTokenRequestParams,
    IssueAccessTokenErrorCode,
    IssueAccessTokenErrorParams,
    IssueAccessTokenSuccessParams,
)
from oauthio.primitives.pkce import PkceCodeVerifier
from oauthio.transport.http import RequestBuilder
from oauthio.transport.io import CoroutineState, WriteRequest
from oauthio.transport.streams import drive

TOKEN_ENDPOINT = "https://auth.example.com/token"


class TestSendAccessTokenRequest:
    def setup_method(self) -> None:
        self.params = AccessTokenRequestParams(
            code="auth-code-456",
            client_id="client-123",
            redirect_uri="https://myapp.com/callback",
            pkce_code_verifier=PkceCodeVerifier.parse("a" * 43),
        )
        self.request = RequestBuilder.post(TOKEN_ENDPOINT)

    def test_request_is_a_form_post(
        self, fake_transport, http_response, parse_request
    ) -> None:
        # Arrange
        transport = fake_transport(
            http_response(200, {"access_token": "at", "token_type": "Bearer"})
        )

        # Act
        drive(SendAccessTokenRequest(self.request, self.params), transport)

        # Assert
        method, target, headers, body = parse_request(bytes(transport.written))
        assert method == "POST"
        assert target == "/token"
        assert headers["content-type"] == "application/x-www-form-urlencoded"
        assert headers["accept"] == "application/json"
        assert parse_qsl(body) == [
            ("grant_type", "authorization_code"),
            ("code", "auth-code-456"),
            ("redirect_uri", "https://myapp.com/callback"),
            ("client_id", "client-123"),
            ("code_verifier", "a" * 43),
        ]

    def test_success_response(self, fake_transport, http_response) -> None:
        # Arrange
        transport = fake_transport(
            http_response(
                200,
                {
                    "access_token": "at-789",
                    "token_type": "Bearer",
                    "expires_in": 3600,
                    "refresh_token": "rt-1",
                    "scope": "read write",
                },
            )
        )
        coroutine = SendAccessTokenRequest(self.request, self.params)

        # Act
        response = drive(coroutine, transport)

        # Assert
        assert isinstance(response, IssueAccessTokenSuccessParams)
        assert response.access_token.get_secret_value() == "at-789"
        assert response.expires_in == 3600
        assert response.scopes == ("read", "write")
        assert coroutine.result is response
        assert coroutine.state is CoroutineState.COMPLETE

    def test_expiry_is_synced_from_parse_time(
        self, fake_transport, http_response
    ) -> None:
        # Arrange
        transport = fake_transport(
            http_response(
                200,
                {"access_token": "AT", "token_type": "Bearer", "expires_in": 3600},
            )
        )

        # Act
        response = drive(SendAccessTokenRequest(self.request, self.params), transport)
        response.sync_expires_in(now=response.issued_at + timedelta(seconds=10))

        # Assert
        assert response.refresh_token is None
        assert response.expires_in == 3590

    def test_error_response_is_returned_not_raised(
        self, fake_transport, http_response
    ) -> None:
        # Arrange
        transport = fake_transport(
            http_response(
                400,
                {"error": "invalid_grant", "error_description": "Code expired"},
                reason="Bad Request",
            )
        )

        # Act
        response = drive(SendAccessTokenRequest(self.request, self.params), transport)

        # Assert
        assert isinstance(response, IssueAccessTokenErrorParams)
        assert response.error is IssueAccessTokenErrorCode.INVALID_GRANT
        assert response.error_description == "Code expired"

    def test_invalid_grant_without_description(
        self, fake_transport, http_response
    ) -> None:
        # Arrange
        transport = fake_transport(
            http_response(400, {"error": "invalid_grant"}, reason="Bad Request")
        )

        # Act
        response = drive(SendAccessTokenRequest(self.request, self.params), transport)

        # Assert
        assert isinstance(response, IssueAccessTokenErrorParams)
        assert response.error is IssueAccessTokenErrorCode.INVALID_GRANT
        assert response.error_description is None

    def test_error_response_is_logged(
        self, fake_transport, http_response, caplog
    ) -> None:
        # Arrange
        transport = fake_transport(
            http_response(401, {"error": "invalid_client"}, reason="Unauthorized")
        )

        # Act
        with caplog.at_level(logging.WARNING):
            drive(SendAccessTokenRequest(self.request, self.params), transport)

        # Assert
        assert "invalid_client" in caplog.text
        assert "auth-code-456" not in caplog.text

    def test_success_status_with_error_shape_is_parse_error(
        self, fake_transport, http_response
    ) -> None:
        # Arrange
        transport = fake_transport(http_response(200, {"error": "invalid_grant"}))

        # Act & Assert
        with pytest.raises(ResponseParseError) as exc_info:
            drive(SendAccessTokenRequest(self.request, self.params), transport)

        assert exc_info.value.status_code == 200

    def test_parse_error_does_not_leak_tokens(
        self, fake_transport, http_response
    ) -> None:
        # Arrange
        transport = fake_transport(
            http_response(
                200, {"access_token": "AT-SECRET", "refresh_token": "RT-SECRET"}
            )
        )

        # Act & Assert
        with pytest.raises(ResponseParseError) as exc_info:
            drive(SendAccessTokenRequest(self.request, self.params), transport)

        message = str(exc_info.value)
        assert "token_type" in message
        assert "RT-SECRET" not in message
        assert "AT-SEC" not in message

    def test_html_error_page_is_parse_error(
        self, fake_transport, http_response
    ) -> None:
        # Arrange
        transport = fake_transport(
            http_response(
                502,
                "<html>Bad Gateway</html>",
                reason="Bad Gateway",
                content_type="text/html",
            )
        )

        # Act & Assert
        with pytest.raises(ResponseParseError, match="HTTP 502"):
            drive(SendAccessTokenRequest(self.request, self.params), transport)

    def test_unknown_error_code_is_parse_error(
        self, fake_transport, http_response
    ) -> None:
        # Arrange
        transport = fake_transport(
            http_response(400, {"error": "temporarily_unavailable"}, reason="Bad")
        )

        # Act & Assert
        with pytest.raises(ResponseParseError):
            drive(SendAccessTokenRequest(self.request, self.params), transport)

    def test_first_output_is_a_write(self) -> None:
        # Arrange
        coroutine = SendAccessTokenRequest(self.request, self.params)

        # Act
        output = coroutine.resume()

        # Assert
        assert isinstance(output, WriteRequest)
        assert coroutine.pending is output

    def test_invalid_header_fails_before_io(self) -> None:
        # Arrange
        request = self.request.header("X-Trace", "bad\r\nvalue")

        # Act & Assert
        with pytest.raises(RequestBuildError):
            SendAccessTokenRequest(request, self.params)
