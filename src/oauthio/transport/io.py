"""I/O contract between the protocol coroutines and a transport.

A coroutine never touches a socket. When it needs bytes written or read it
suspends and hands out an ``IoRequest``; the transport performs exactly that
operation and resumes the coroutine with the matching ``IoResult``, or with an
``IoFailure`` wrapping whatever went wrong.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

DEFAULT_READ_SIZE = 16 * 1024


class CoroutineState(str, Enum):
    """Lifecycle of a protocol coroutine."""

    BUILT = "built"
    AWAITING_IO = "awaiting_io"
    COMPLETE = "complete"


@dataclass(frozen=True)
class WriteRequest:
    """Write these bytes. Answered with ``WriteResult``.

    The payload may carry secrets (authorization code, verifier, refresh
    token), so it is left out of the repr.
    """

    data: bytes = field(repr=False)

    def __repr__(self) -> str:
        return f"WriteRequest(<{len(self.data)} bytes>)"


@dataclass(frozen=True)
class ReadRequest:
    """Read up to ``max_bytes`` bytes. Answered with ``ReadResult``."""

    max_bytes: int = DEFAULT_READ_SIZE


@dataclass(frozen=True)
class WriteResult:
    """Number of bytes actually written; the remainder is requested again."""

    written: int


@dataclass(frozen=True)
class ReadResult:
    """Bytes read. Empty bytes mean the peer closed the connection."""

    data: bytes = field(repr=False)

    def __repr__(self) -> str:
        return f"ReadResult(<{len(self.data)} bytes>)"


@dataclass(frozen=True)
class IoFailure:
    """Transport-level failure for the pending request."""

    error: BaseException


IoRequest = WriteRequest | ReadRequest
IoResult = WriteResult | ReadResult | IoFailure
