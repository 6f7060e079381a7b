"""Subsonic API client core: negotiation, authentication, dispatch and streaming."""

__version__ = "1.0.0"

from .auth import create_auth_params, derive_token, generate_salt, generate_token, verify_token
from .catalog import CATALOG, EndpointDescriptor, Operation, describe
from .client import SubsonicClient
from .dispatch import CancellationToken
from .exceptions import (
    ClientVersionTooOldError,
    InvalidRequestError,
    MalformedResponseError,
    NetworkFailure,
    RequestCancelledError,
    ServerVersionTooOldError,
    SubsonicAuthenticationError,
    SubsonicAuthorizationError,
    SubsonicError,
    SubsonicException,
    SubsonicNotFoundError,
    SubsonicParameterError,
    SubsonicTrialError,
    SubsonicVersionError,
    TokenAuthenticationNotSupportedError,
    UnsupportedVersionError,
)
from .logger import setup_logging
from .models import (
    PasswordCredential,
    RequestEnvelope,
    ResponseEnvelope,
    SubsonicConfig,
    TokenCredential,
)
from .negotiation import NegotiationState
from .stream import StreamHandle
from .version import MAX_SUPPORTED_VERSION, MIN_SUPPORTED_VERSION, ProtocolVersion

__all__ = [
    # Client
    "SubsonicClient",
    "CancellationToken",
    "StreamHandle",
    "NegotiationState",
    # Models
    "SubsonicConfig",
    "TokenCredential",
    "PasswordCredential",
    "RequestEnvelope",
    "ResponseEnvelope",
    "ProtocolVersion",
    "MIN_SUPPORTED_VERSION",
    "MAX_SUPPORTED_VERSION",
    # Catalog
    "CATALOG",
    "EndpointDescriptor",
    "Operation",
    "describe",
    # Authentication
    "derive_token",
    "generate_salt",
    "generate_token",
    "verify_token",
    "create_auth_params",
    # Logging
    "setup_logging",
    # Exceptions
    "SubsonicException",
    "NetworkFailure",
    "UnsupportedVersionError",
    "InvalidRequestError",
    "MalformedResponseError",
    "RequestCancelledError",
    "SubsonicError",
    "SubsonicAuthenticationError",
    "TokenAuthenticationNotSupportedError",
    "ClientVersionTooOldError",
    "ServerVersionTooOldError",
    "SubsonicAuthorizationError",
    "SubsonicNotFoundError",
    "SubsonicParameterError",
    "SubsonicTrialError",
    "SubsonicVersionError",
]
