import json
from collections.abc import Callable
from typing import Any

import h11
import pytest

from oauthio.transport.io import (
    IoRequest,
    IoResult,
    ReadResult,
    WriteRequest,
    WriteResult,
)


class FakeTransport:
    """In-memory transport answering I/O requests from a canned response.

    Records everything written; serves the response in ``chunk_size`` pieces
    and then empty reads (EOF). ``write_limit`` caps each write to exercise
    partial writes.
    """

    def __init__(
        self,
        response: bytes,
        chunk_size: int = 64,
        write_limit: int | None = None,
    ):
        self.response = response
        self.chunk_size = chunk_size
        self.write_limit = write_limit
        self.written = bytearray()
        self.requests: list[IoRequest] = []
        self._offset = 0

    def __call__(self, request: IoRequest) -> IoResult:
        self.requests.append(request)

        if isinstance(request, WriteRequest):
            data = request.data
            if self.write_limit is not None:
                data = data[: self.write_limit]
            self.written += data
            return WriteResult(len(data))

        size = min(request.max_bytes, self.chunk_size)
        chunk = self.response[self._offset : self._offset + size]
        self._offset += len(chunk)
        return ReadResult(chunk)


def build_http_response(
    status: int,
    body: Any = b"",
    reason: str = "OK",
    content_type: str = "application/json",
) -> bytes:
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")

    head = (
        f"HTTP/1.1 {status} {reason}\r\n"
        f"Content-Type: {content_type}\r\n"
        f"Content-Length: {len(body)}\r\n"
        "\r\n"
    )
    return head.encode("ascii") + body


def parse_http_request(data: bytes) -> tuple[str, str, dict[str, str], str]:
    """Parse raw request bytes into (method, target, headers, body)."""
    connection = h11.Connection(our_role=h11.SERVER)
    connection.receive_data(bytes(data))

    request = connection.next_event()
    assert isinstance(request, h11.Request)

    body = b""
    while True:
        event = connection.next_event()
        if isinstance(event, h11.Data):
            body += event.data
        elif isinstance(event, h11.EndOfMessage):
            break
        else:
            raise AssertionError(f"Unexpected event {event!r}")

    headers = {name.decode(): value.decode() for name, value in request.headers}
    return request.method.decode(), request.target.decode(), headers, body.decode()


@pytest.fixture
def fake_transport() -> Callable[..., FakeTransport]:
    return FakeTransport


@pytest.fixture
def http_response() -> Callable[..., bytes]:
    return build_http_response


@pytest.fixture
def parse_request() -> Callable[[bytes], tuple[str, str, dict[str, str], str]]:
    return parse_http_request
