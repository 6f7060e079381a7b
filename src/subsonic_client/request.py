"""Request construction for Subsonic API calls."""

import logging
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

import httpx

from .auth import create_auth_params, credential_for_version
from .catalog import EndpointDescriptor, Operation, describe
from .exceptions import InvalidRequestError
from .models import RequestEnvelope, SubsonicConfig
from .negotiation import VersionNegotiator
from .version import ProtocolVersion

logger = logging.getLogger(__name__)

# Parameters owned by the client; callers can never override them
RESERVED_PARAMS = frozenset({"u", "p", "t", "s", "v", "c", "f"})

Params = Union[Mapping[str, Any], Iterable[Tuple[str, Any]], None]


def _encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def encode_params(params: Params) -> List[Tuple[str, str]]:
    """Flatten caller parameters into ordered string pairs.

    None values are dropped, booleans become "true"/"false" and list or tuple
    values expand into repeated keys in the caller's order.

    Example:
        >>> encode_params({"playlistId": 7, "songIdToAdd": ["3", "1", "2"]})
        [('playlistId', '7'), ('songIdToAdd', '3'), ('songIdToAdd', '1'), ('songIdToAdd', '2')]
    """
    if params is None:
        return []

    items = params.items() if isinstance(params, Mapping) else params
    encoded = []
    for key, value in items:
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            encoded.extend((key, _encode_value(item)) for item in value if item is not None)
        else:
            encoded.append((key, _encode_value(value)))
    return encoded


class RequestBuilder:
    """Assembles RequestEnvelopes from logical operations.

    Every envelope carries the injected identity parameters (u, t+s or p, v,
    c, f) followed by the operation-specific parameters.

    Args:
        config: Client configuration
        negotiator: Version negotiator owning the cached server version
    """

    def __init__(self, config: SubsonicConfig, negotiator: VersionNegotiator):
        self.config = config
        self._negotiator = negotiator
        self._base_url = config.url.rstrip("/")

    def build(self, operation: Operation, params: Params = None) -> RequestEnvelope:
        """Build the request for ``operation``.

        Required parameters are checked before negotiation so a bad call
        never reaches the network.

        Raises:
            InvalidRequestError: If a required parameter is missing
            UnsupportedVersionError: If the server cannot serve the operation
        """
        descriptor = describe(operation)
        caller_params = encode_params(params)
        self._check_required(descriptor, caller_params)

        # Endpoint, credential and advertised version all come from one read
        endpoint, version = self._negotiator.resolve(operation)
        return self._assemble(
            descriptor, endpoint, version, self._negotiator.advertise_for(version), caller_params
        )

    def build_probe(self, version: ProtocolVersion) -> RequestEnvelope:
        """Build a ping advertising ``version``, bypassing negotiation."""
        descriptor = describe(Operation.PING)
        return self._assemble(descriptor, descriptor.endpoint, version, version, [])

    def endpoint_url(self, endpoint: str) -> str:
        """Build full URL for API endpoint (``<base>/rest/<endpoint>``)."""
        return f"{self._base_url}/rest/{endpoint}"

    def build_url(self, envelope: RequestEnvelope) -> str:
        """Render ``envelope`` as a complete URL including credentials.

        Intended for handing media URLs to external players. The URL embeds
        the request's token and salt, so treat it as a secret.
        """
        return str(httpx.URL(self.endpoint_url(envelope.endpoint), params=list(envelope.params)))

    def _assemble(
        self,
        descriptor: EndpointDescriptor,
        endpoint: str,
        version: ProtocolVersion,
        advertised: ProtocolVersion,
        caller_params: List[Tuple[str, str]],
    ) -> RequestEnvelope:
        credential = credential_for_version(self.config, version)
        auth_params = create_auth_params(
            credential,
            username=self.config.username,
            api_version=str(advertised),
            client_name=self.config.client_name,
            response_format=self.config.response_format,
        )

        overridden = sorted({key for key, _ in caller_params if key in RESERVED_PARAMS})
        if overridden:
            logger.warning(
                f"Ignoring reserved parameters {overridden} for {descriptor.operation.value}"
            )

        params = list(auth_params.items())
        params.extend((key, value) for key, value in caller_params if key not in RESERVED_PARAMS)

        return RequestEnvelope(
            operation=descriptor.operation,
            endpoint=endpoint,
            params=tuple(params),
            response_format=self.config.response_format,
            mutating=descriptor.mutating,
            media=descriptor.media,
        )

    @staticmethod
    def _check_required(
        descriptor: EndpointDescriptor, caller_params: List[Tuple[str, str]]
    ) -> None:
        present = {key for key, _ in caller_params}
        missing = [name for name in descriptor.required if name not in present]
        if missing:
            raise InvalidRequestError(
                f"{descriptor.operation.value} is missing required parameters: "
                f"{', '.join(missing)}"
            )
