"""I/O-free HTTP/1.1 exchange.

Frames one request and parses one response with h11, suspending whenever
bytes have to be written or read. Requests are built as ``httpx.Request`` and
the parsed response is handed back as an ``httpx.Response``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import h11
import httpx

from oauthio.models.errors import (
    CoroutineStateError,
    HttpProtocolError,
    RequestBuildError,
    TransportIoError,
)
from oauthio.transport.io import (
    DEFAULT_READ_SIZE,
    CoroutineState,
    IoFailure,
    IoRequest,
    IoResult,
    ReadRequest,
    ReadResult,
    WriteRequest,
    WriteResult,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestBuilder:
    """Method, URL and headers of a request whose body is not known yet."""

    url: str
    method: str = "POST"
    headers: tuple[tuple[str, str], ...] = ()

    @classmethod
    def post(cls, url: str) -> RequestBuilder:
        return cls(url=url, method="POST")

    def header(self, name: str, value: str) -> RequestBuilder:
        return replace(self, headers=self.headers + ((name, value),))

    def build(self, content: bytes) -> httpx.Request:
        """Build the request with ``content`` as body.

        Raises:
            RequestBuildError: If the URL or a header cannot be encoded
        """
        try:
            return httpx.Request(
                self.method, self.url, headers=list(self.headers), content=content
            )
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise RequestBuildError(f"Failed to build HTTP request: {e}") from e


class SendHttpRequest:
    """Coroutine sending one HTTP/1.1 request and receiving its response.

    Drive it with ``resume``: the first call takes no input and returns the
    first ``IoRequest``; every following call takes the result of the last
    request. The final call returns the ``httpx.Response``.
    """

    def __init__(self, request: httpx.Request, read_size: int = DEFAULT_READ_SIZE):
        self.request = request
        self._read_size = read_size
        self._connection = h11.Connection(our_role=h11.CLIENT)
        self._outgoing = self._serialize(request)
        self._state = CoroutineState.BUILT
        self._pending: IoRequest | None = None
        self._head: h11.Response | None = None
        self._body = bytearray()

    @property
    def state(self) -> CoroutineState:
        return self._state

    @property
    def pending(self) -> IoRequest | None:
        """The I/O request the coroutine is suspended on, if any."""
        return self._pending

    def resume(self, result: IoResult | None = None) -> IoRequest | httpx.Response:
        """Make the exchange progress.

        Raises:
            CoroutineStateError: If resumed after completion or with a result
                that does not answer the pending request
            TransportIoError: If ``result`` is an ``IoFailure``
            HttpProtocolError: If the response bytes are not valid HTTP/1.1
        """
        if self._state is CoroutineState.COMPLETE:
            raise CoroutineStateError("HTTP exchange already complete")

        if self._state is CoroutineState.BUILT:
            if result is not None:
                raise CoroutineStateError("First resume must not carry an I/O result")
            logger.debug(f"Sending {self.request.method} {self.request.url}")
            return self._suspend(WriteRequest(self._outgoing))

        if result is None:
            raise CoroutineStateError(f"Expected a result for {self._pending!r}")

        if isinstance(result, IoFailure):
            self._finish()
            raise TransportIoError(
                f"Transport failed on {self._pending!r}: {result.error}"
            ) from result.error

        if isinstance(self._pending, WriteRequest):
            return self._on_written(self._pending, result)
        return self._on_read(result)

    def _on_written(
        self, pending: WriteRequest, result: IoResult
    ) -> IoRequest | httpx.Response:
        if not isinstance(result, WriteResult):
            raise CoroutineStateError(f"Expected WriteResult, got {result!r}")
        if not 0 <= result.written <= len(pending.data):
            raise CoroutineStateError(
                f"Wrote {result.written} bytes of a {len(pending.data)} byte request"
            )

        remaining = pending.data[result.written :]
        if remaining:
            return self._suspend(WriteRequest(remaining))

        logger.debug("Request sent, awaiting response")
        return self._suspend(ReadRequest(self._read_size))

    def _on_read(self, result: IoResult) -> IoRequest | httpx.Response:
        if not isinstance(result, ReadResult):
            raise CoroutineStateError(f"Expected ReadResult, got {result!r}")

        try:
            self._connection.receive_data(result.data)
            return self._next_event()
        except h11.RemoteProtocolError as e:
            self._finish()
            raise HttpProtocolError(f"Invalid HTTP response: {e}") from e

    def _next_event(self) -> IoRequest | httpx.Response:
        while True:
            event = self._connection.next_event()

            if event is h11.NEED_DATA:
                return self._suspend(ReadRequest(self._read_size))
            if isinstance(event, h11.InformationalResponse):
                continue
            if isinstance(event, h11.Response):
                self._head = event
            elif isinstance(event, h11.Data):
                self._body += event.data
            elif isinstance(event, h11.EndOfMessage):
                return self._build_response()
            else:
                self._finish()
                raise HttpProtocolError(
                    "Connection closed before the response completed"
                )

    def _build_response(self) -> httpx.Response:
        self._finish()
        try:
            response = httpx.Response(
                status_code=self._head.status_code,
                headers=list(self._head.headers),
                content=bytes(self._body),
                request=self.request,
            )
        except httpx.DecodingError as e:
            raise HttpProtocolError(f"Failed to decode response body: {e}") from e

        logger.debug(
            f"Received HTTP {response.status_code} ({len(response.content)} bytes)"
        )
        return response

    def _suspend(self, request: IoRequest) -> IoRequest:
        self._pending = request
        self._state = CoroutineState.AWAITING_IO
        return request

    def _finish(self) -> None:
        self._pending = None
        self._state = CoroutineState.COMPLETE

    def _serialize(self, request: httpx.Request) -> bytes:
        try:
            data = self._connection.send(
                h11.Request(
                    method=request.method.encode("ascii"),
                    target=request.url.raw_path,
                    headers=list(request.headers.raw),
                )
            )
            if request.content:
                data += self._connection.send(h11.Data(data=request.content))
            data += self._connection.send(h11.EndOfMessage())
        except h11.LocalProtocolError as e:
            raise RequestBuildError(f"Failed to frame HTTP request: {e}") from e
        return data
