"""Drivers that run a protocol coroutine against a concrete transport.

``drive`` / ``adrive`` loop a coroutine to completion with any handler that
performs one ``IoRequest``. ``handle_stream`` and ``handle_async_stream`` are
ready-made handlers for a connected socket and an asyncio stream pair.
Opening, securing and closing the connection stays with the caller.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar

from oauthio.transport.io import (
    IoFailure,
    IoRequest,
    IoResult,
    ReadRequest,
    ReadResult,
    WriteRequest,
    WriteResult,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", covariant=True)


class Resumable(Protocol[T]):
    """Anything driven through ``resume(result) -> IoRequest | output``."""

    def resume(self, result: IoResult | None = None) -> IoRequest | T: ...


IoHandler = Callable[[IoRequest], IoResult]
AsyncIoHandler = Callable[[IoRequest], Awaitable[IoResult]]


def drive(coroutine: Resumable[T], handler: IoHandler) -> T:
    """Resume ``coroutine`` until it produces its output.

    Every ``IoRequest`` it yields is passed to ``handler`` and the handler's
    result is fed back. Errors raised by the coroutine propagate unchanged.
    """
    result: IoResult | None = None
    while True:
        output = coroutine.resume(result)
        if not isinstance(output, (WriteRequest, ReadRequest)):
            return output
        result = handler(output)


async def adrive(coroutine: Resumable[T], handler: AsyncIoHandler) -> T:
    """Async counterpart of ``drive`` for awaitable handlers."""
    result: IoResult | None = None
    while True:
        output = coroutine.resume(result)
        if not isinstance(output, (WriteRequest, ReadRequest)):
            return output
        result = await handler(output)


def handle_stream(stream: socket.socket, request: IoRequest) -> IoResult:
    """Perform ``request`` on a connected (optionally TLS-wrapped) socket.

    Use with ``functools.partial(handle_stream, sock)`` as a ``drive`` handler.
    """
    try:
        if isinstance(request, WriteRequest):
            return WriteResult(stream.send(request.data))
        return ReadResult(stream.recv(request.max_bytes))
    except OSError as e:
        logger.debug(f"Stream I/O failed: {e}")
        return IoFailure(e)


async def handle_async_stream(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    request: IoRequest,
) -> IoResult:
    """Perform ``request`` on an asyncio stream pair."""
    try:
        if isinstance(request, WriteRequest):
            writer.write(request.data)
            await writer.drain()
            return WriteResult(len(request.data))
        return ReadResult(await reader.read(request.max_bytes))
    except OSError as e:
        logger.debug(f"Stream I/O failed: {e}")
        return IoFailure(e)
