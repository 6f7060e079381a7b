"""Network exchange for built requests: retries, timeouts and cancellation."""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, TypeVar
from urllib.parse import urlencode

import httpx

from .exceptions import MalformedResponseError, NetworkFailure, RequestCancelledError
from .models import RawResponse, RequestEnvelope, SubsonicConfig
from .request import RequestBuilder
from .response import decode_envelope, is_envelope_content_type
from .stream import StreamHandle, parse_content_length

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Caller-side switch for aborting one in-flight request.

    Checked before every attempt, while waiting between retries and between
    body chunks. Cancelling one token never affects other requests.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelledError("Request cancelled")

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)


class Dispatcher:
    """Sends RequestEnvelopes over a shared ``httpx.Client``.

    Read-only requests are retried on NetworkFailure with exponential
    backoff, up to ``config.max_retries`` extra attempts. Mutating requests
    are sent exactly once. Server errors inside a valid envelope are never
    retried here; they are the decoder's concern.

    Args:
        config: Client configuration (retry and backoff settings)
        http_client: Shared HTTP client (connection pool, timeouts)
        builder: Request builder used to render endpoint URLs
    """

    def __init__(self, config: SubsonicConfig, http_client: httpx.Client, builder: RequestBuilder):
        self.config = config
        self._client = http_client
        self._builder = builder

    def send(
        self,
        envelope: RequestEnvelope,
        cancel: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> RawResponse:
        """Perform the exchange and return the buffered body.

        ``timeout`` (seconds) overrides ``config.timeout`` for this request only.

        Raises:
            NetworkFailure: Transport failure after the retry budget is spent
            RequestCancelledError: If ``cancel`` fires
        """
        return self._with_retries(
            envelope, cancel, lambda: self._send_once(envelope, cancel, timeout)
        )

    def open(
        self,
        envelope: RequestEnvelope,
        offset: int = 0,
        cancel: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> StreamHandle:
        """Open a media response without reading its body.

        Args:
            envelope: Request for a media endpoint
            offset: Byte offset to resume from (sends a Range header when > 0)
            cancel: Optional cancellation token, also honored while reading
            timeout: Per-request timeout in seconds (defaults to ``config.timeout``)

        Returns:
            StreamHandle owned by the caller

        Raises:
            SubsonicError: If the server answered with an error envelope
            NetworkFailure: Transport failure after the retry budget is spent
        """
        if offset < 0:
            raise ValueError("offset must not be negative")
        return self._with_retries(
            envelope, cancel, lambda: self._open_once(envelope, offset, cancel, timeout)
        )

    def _with_retries(
        self,
        envelope: RequestEnvelope,
        cancel: Optional[CancellationToken],
        attempt_once: Callable[[], T],
    ) -> T:
        attempts = 1 if envelope.mutating else self.config.max_retries + 1

        for attempt in range(attempts):
            if cancel is not None:
                cancel.raise_if_cancelled()
            try:
                return attempt_once()
            except NetworkFailure as e:
                if attempt + 1 >= attempts or not e.retryable:
                    if envelope.mutating:
                        logger.error(f"{envelope.endpoint} failed and will not be retried: {e}")
                    else:
                        logger.error(f"{envelope.endpoint} failed after {attempts} attempts: {e}")
                    raise
                delay = min(self.config.backoff_factor * (2 ** attempt), self.config.max_backoff)
                logger.warning(
                    f"Attempt {attempt + 1}/{attempts}: {envelope.endpoint} failed: {e}. "
                    f"Retrying in {delay:.2f}s"
                )
                self._sleep(delay, cancel)

        raise AssertionError("unreachable")

    @staticmethod
    def _sleep(delay: float, cancel: Optional[CancellationToken]) -> None:
        if cancel is None:
            time.sleep(delay)
        elif cancel.wait(delay):
            raise RequestCancelledError("Request cancelled")

    def _build_request(
        self,
        envelope: RequestEnvelope,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Request:
        url = self._builder.endpoint_url(envelope.endpoint)
        options: Dict[str, Any] = {"headers": dict(headers or {})}
        # Without an override the client-wide httpx.Timeout applies
        if timeout is not None:
            options["timeout"] = httpx.Timeout(timeout)

        if self.config.use_post:
            options["headers"]["Content-Type"] = "application/x-www-form-urlencoded"
            return self._client.build_request(
                "POST", url, content=urlencode(envelope.params), **options
            )
        return self._client.build_request("GET", url, params=list(envelope.params), **options)

    def _transmit(self, request: httpx.Request, endpoint: str) -> httpx.Response:
        # Only the path is logged; the query string carries credentials
        logger.debug(f"{request.method} {request.url.path}")
        try:
            response = self._client.send(request, stream=True)
        except httpx.TransportError as e:
            raise NetworkFailure(f"Request to {endpoint} failed: {e}") from e

        if response.status_code >= 500:
            response.close()
            raise NetworkFailure(
                f"HTTP {response.status_code} from {endpoint}", status_code=response.status_code
            )
        return response

    def _send_once(
        self,
        envelope: RequestEnvelope,
        cancel: Optional[CancellationToken],
        timeout: Optional[float],
    ) -> RawResponse:
        response = self._transmit(self._build_request(envelope, timeout=timeout), envelope.endpoint)
        chunks = []
        try:
            for chunk in response.iter_bytes():
                if cancel is not None:
                    cancel.raise_if_cancelled()
                chunks.append(chunk)
        except httpx.TransportError as e:
            raise NetworkFailure(f"Reading response from {envelope.endpoint} failed: {e}") from e
        finally:
            response.close()

        logger.debug(f"{envelope.endpoint} returned HTTP {response.status_code}")
        return RawResponse(
            content=b"".join(chunks),
            status_code=response.status_code,
            content_type=response.headers.get("content-type", ""),
            content_length=parse_content_length(response.headers.get("content-length")),
        )

    def _open_once(
        self,
        envelope: RequestEnvelope,
        offset: int,
        cancel: Optional[CancellationToken],
        timeout: Optional[float],
    ) -> StreamHandle:
        headers = {"Accept-Encoding": "identity"}
        if offset:
            headers["Range"] = f"bytes={offset}-"

        response = self._transmit(
            self._build_request(envelope, headers, timeout), envelope.endpoint
        )
        try:
            content_type = response.headers.get("content-type", "")
            if is_envelope_content_type(content_type):
                # Media endpoints answer with an envelope only to report errors
                response.read()
                response_format = "json" if "json" in content_type else "xml"
                decode_envelope(response.content, response_format, response.status_code).raise_for_error()
                raise MalformedResponseError(
                    f"Expected media from {envelope.endpoint}, got a {content_type} envelope"
                )
            if response.status_code >= 400:
                raise NetworkFailure(
                    f"HTTP {response.status_code} from {envelope.endpoint}",
                    status_code=response.status_code,
                )
        except httpx.TransportError as e:
            response.close()
            raise NetworkFailure(f"Reading response from {envelope.endpoint} failed: {e}") from e
        except BaseException:
            response.close()
            raise

        logger.info(
            f"Opened {envelope.endpoint} stream: {content_type or 'unknown type'}, "
            f"{response.headers.get('content-length', 'unknown')} bytes"
        )
        return StreamHandle(response, offset=offset, cancel=cancel)
