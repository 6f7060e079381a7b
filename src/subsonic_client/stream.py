"""Lazy, caller-owned byte streams for media endpoints."""

import logging
from typing import Iterator, Optional

import httpx

from .exceptions import NetworkFailure

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


def parse_content_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        logger.warning(f"Ignoring invalid Content-Length header: {value!r}")
        return None
    return length if length >= 0 else None


class StreamHandle:
    """An open media response handed to the caller.

    The handle owns the underlying connection. Nothing is read until the
    caller iterates, and the connection is released by ``close()`` or by
    leaving a ``with`` block, on every exit path.

    The declared Content-Length is exposed but not trusted: a body that ends
    early, or runs past the declared length, raises NetworkFailure on read.

    Attributes:
        status_code: HTTP status of the media response
        content_type: Media type reported by the server
        content_length: Declared body length, or None if the server omitted it
        content_range: Raw Content-Range header for partial responses
        partial: True if the server honored a range request (HTTP 206)
        offset: Byte offset of the first byte of this body in the full media
        bytes_read: Bytes consumed so far

    Example:
        >>> with client.stream("300") as media:
        ...     for chunk in media.iter_bytes():
        ...         sink.write(chunk)
    """

    def __init__(self, response: httpx.Response, offset: int = 0, cancel=None):
        self._response = response
        self._cancel = cancel
        self._consuming = False
        self._closed = False
        self.status_code = response.status_code
        self.content_type = response.headers.get("content-type", "")
        self.content_length = parse_content_length(response.headers.get("content-length"))
        self.content_range = response.headers.get("content-range")
        self.partial = response.status_code == 206
        self.offset = offset if self.partial else 0
        self.bytes_read = 0

        encoding = response.headers.get("content-encoding", "identity").lower()
        # Content-Length counts encoded bytes; only verify identity bodies
        self._verify_length = encoding == "identity"

        if offset and not self.partial:
            logger.warning(f"Server ignored range request at offset {offset}; body starts at 0")

    @property
    def position(self) -> int:
        """Absolute offset to pass as ``offset`` when resuming this media."""
        return self.offset + self.bytes_read

    @property
    def closed(self) -> bool:
        return self._closed

    def iter_bytes(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the body in chunks.

        Raises:
            NetworkFailure: On a dropped connection, a short body or extra bytes
            RequestCancelledError: If the request's cancellation token fires
            RuntimeError: If the handle is closed or already being consumed
        """
        if self.closed:
            raise RuntimeError("Stream is closed")
        if self._consuming:
            raise RuntimeError("Stream is already being consumed")
        self._consuming = True

        try:
            for chunk in self._response.iter_bytes(chunk_size):
                if self._cancel is not None:
                    self._cancel.raise_if_cancelled()
                self.bytes_read += len(chunk)
                if self._overran():
                    raise NetworkFailure(
                        f"Received more than the declared {self.content_length} bytes"
                    )
                yield chunk
        except httpx.TransportError as e:
            self.close()
            raise NetworkFailure(f"Stream interrupted after {self.bytes_read} bytes: {e}") from e
        except BaseException:
            self.close()
            raise

        if self._verify_length and self.content_length is not None:
            if self.bytes_read < self.content_length:
                self.close()
                raise NetworkFailure(
                    f"Stream ended after {self.bytes_read} of {self.content_length} bytes"
                )

    def read(self) -> bytes:
        """Consume and return the whole remaining body."""
        return b"".join(self.iter_bytes())

    def close(self) -> None:
        """Release the underlying connection. Safe to call more than once."""
        if not self._closed:
            self._closed = True
            self._response.close()
            logger.debug(f"Closed media stream after {self.bytes_read} bytes")

    def _overran(self) -> bool:
        return (
            self._verify_length
            and self.content_length is not None
            and self.bytes_read > self.content_length
        )

    def __iter__(self) -> Iterator[bytes]:
        return self.iter_bytes()

    def __enter__(self) -> "StreamHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
