"""Protocol version negotiation and endpoint resolution."""

import logging
import threading
from enum import Enum
from typing import Callable, Optional, Tuple

from .catalog import EndpointDescriptor, Operation, describe
from .exceptions import UnsupportedVersionError
from .models import ResponseEnvelope
from .version import (
    MAX_SUPPORTED_VERSION,
    MIN_SUPPORTED_VERSION,
    TOKEN_AUTH_VERSION,
    ProtocolVersion,
)

logger = logging.getLogger(__name__)

# Ping failure codes that a second ping at the server's own version may resolve
SERVER_TOO_OLD_CODE = 30
_CREDENTIAL_CODES = (40, 41)

Probe = Callable[[ProtocolVersion], ResponseEnvelope]


class NegotiationState(Enum):
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"


def resolve_endpoint(descriptor: EndpointDescriptor, version: ProtocolVersion) -> str:
    """Pick the concrete endpoint for ``descriptor`` on a server of ``version``.

    The alternate (ID3) endpoint wins whenever the server supports it and the
    descriptor prefers it; otherwise the primary is used if supported.

    Raises:
        UnsupportedVersionError: If neither endpoint is available
    """
    if (
        descriptor.alternate is not None
        and descriptor.prefer_alternate
        and version >= descriptor.alternate_since
    ):
        return descriptor.alternate
    if version >= descriptor.since:
        return descriptor.endpoint
    if descriptor.alternate is not None and version >= descriptor.alternate_since:
        return descriptor.alternate

    required = descriptor.since
    if descriptor.alternate_since is not None:
        required = min(required, descriptor.alternate_since)
    raise UnsupportedVersionError(version, required, descriptor.operation)


class VersionNegotiator:
    """Discovers and caches the server protocol version for one client.

    The first call to ``ensure_resolved`` pings the server through ``probe``.
    The result is cached for the negotiator's lifetime; a server below the
    supported floor moves it to FAILED, after which every call raises
    UnsupportedVersionError without touching the network.

    Args:
        probe: Callable issuing a ping that advertises the given version and
            returns the decoded (not yet error-checked) envelope
        advertised: Highest version the client is willing to advertise
    """

    def __init__(self, probe: Probe, advertised: ProtocolVersion = MAX_SUPPORTED_VERSION):
        self._probe = probe
        self._advertised = advertised
        self._lock = threading.Lock()
        # (state, version), always replaced as a whole
        self._snapshot: Tuple[NegotiationState, Optional[ProtocolVersion]] = (
            NegotiationState.UNRESOLVED,
            None,
        )
        self._failure: Optional[UnsupportedVersionError] = None

    @property
    def state(self) -> NegotiationState:
        return self._snapshot[0]

    @property
    def version(self) -> Optional[ProtocolVersion]:
        """Negotiated server version, or None until resolved."""
        return self._snapshot[1]

    @property
    def advertised(self) -> ProtocolVersion:
        """Version to send as ``v``: the negotiated one, capped at the client ceiling."""
        version = self._snapshot[1]
        if version is None:
            return self._advertised
        return self.advertise_for(version)

    def advertise_for(self, version: ProtocolVersion) -> ProtocolVersion:
        """Cap a negotiated ``version`` at the client ceiling."""
        return min(version, self._advertised)

    def ensure_resolved(self) -> ProtocolVersion:
        """Return the negotiated version, negotiating on first use."""
        # Lock-free read path once a terminal state is reached
        state, version = self._snapshot
        if state is NegotiationState.RESOLVED:
            return version
        if state is NegotiationState.FAILED:
            raise self._failed_error()
        return self.negotiate()

    def negotiate(self, force: bool = False) -> ProtocolVersion:
        """Ping the server and cache its protocol version.

        Args:
            force: Re-query even if a version is already cached

        Returns:
            Negotiated ProtocolVersion

        Raises:
            UnsupportedVersionError: If the server is older than 1.8.0
            SubsonicException: Any other failure of the probe propagates and
                leaves the negotiator retryable
        """
        with self._lock:
            previous = self._snapshot
            if not force:
                if previous[0] is NegotiationState.RESOLVED:
                    return previous[1]
                if previous[0] is NegotiationState.FAILED:
                    raise self._failed_error()

            self._snapshot = (NegotiationState.RESOLVING, previous[1])
            try:
                version = self._run_probe()
            except UnsupportedVersionError as e:
                self._failure = e
                self._snapshot = (NegotiationState.FAILED, None)
                logger.error(f"Server rejected during negotiation: {e}")
                raise
            except BaseException:
                if previous[0] is NegotiationState.RESOLVED:
                    self._snapshot = previous
                else:
                    self._snapshot = (NegotiationState.UNRESOLVED, None)
                raise

            self._snapshot = (NegotiationState.RESOLVED, version)
            logger.info(f"Negotiated Subsonic API version {version}")
            return version

    def resolve(self, operation: Operation) -> Tuple[str, ProtocolVersion]:
        """Resolve ``operation`` against one consistent read of the negotiated version.

        Returns:
            (endpoint, version) pair; callers build the whole request from
            this version even if a concurrent ``negotiate(force=True)``
            replaces the cached one meanwhile
        """
        version = self.ensure_resolved()
        return resolve_endpoint(describe(operation), version), version

    def endpoint_for(self, operation: Operation) -> str:
        """Resolve ``operation`` to an endpoint for the negotiated version."""
        return self.resolve(operation)[0]

    def _run_probe(self) -> ProtocolVersion:
        envelope = self._probe(self._advertised)
        version = self._check_floor(envelope.version)

        if not envelope.ok and self._should_ping_again(envelope.error_code, version):
            retry_as = min(version, self._advertised)
            logger.info(
                f"Ping failed with code {envelope.error_code}; "
                f"retrying as API version {retry_as}"
            )
            envelope = self._probe(retry_as)
            version = self._check_floor(envelope.version)

        envelope.raise_for_error()

        if version > MAX_SUPPORTED_VERSION:
            logger.warning(
                f"Server API version {version} is newer than {MAX_SUPPORTED_VERSION}; "
                "newer features are used best-effort"
            )
        return version

    def _should_ping_again(self, error_code: Optional[int], version: ProtocolVersion) -> bool:
        """True if pinging again as ``version`` could change the outcome.

        Code 30 means the advertised version itself was rejected. Codes 40
        and 41 are only worth a second ping when the older version switches
        from token to password authentication; otherwise the same login
        would simply be repeated.
        """
        retry_as = min(version, self._advertised)
        if retry_as == self._advertised:
            return False
        if error_code == SERVER_TOO_OLD_CODE:
            return True
        if error_code in _CREDENTIAL_CODES:
            return retry_as < TOKEN_AUTH_VERSION <= self._advertised
        return False

    @staticmethod
    def _check_floor(version: ProtocolVersion) -> ProtocolVersion:
        if version < MIN_SUPPORTED_VERSION:
            raise UnsupportedVersionError(version, MIN_SUPPORTED_VERSION)
        return version

    def _failed_error(self) -> UnsupportedVersionError:
        failure = self._failure
        return UnsupportedVersionError(failure.server_version, failure.required_version)
