"""Data models for the Subsonic protocol client."""

import os
import warnings
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import error_for_code
from .version import ProtocolVersion

RESPONSE_FORMATS = ("json", "xml")


@dataclass
class SubsonicConfig:
    """Configuration for connecting to a Subsonic-compatible server.

    Attributes:
        url: Base server URL (e.g., "https://music.example.com")
        username: Subsonic username
        password: Subsonic password (never sent in clear to token-capable servers)
        client_name: Client identifier for API requests
        api_version: Highest protocol version this client advertises
        response_format: Envelope format requested from the server ("json" or "xml")
        timeout: Per-request timeout in seconds
        max_retries: Retry budget for read-only requests on network failure
        backoff_factor: Base delay in seconds for exponential backoff
        max_backoff: Upper bound for a single backoff delay in seconds
        use_post: Send parameters as a form body instead of the query string
        verify_ssl: Verify TLS certificates
    """

    url: str
    username: str
    password: str
    client_name: str = "subsonic-client"
    api_version: str = "1.16.1"
    response_format: str = "json"
    timeout: float = 30.0
    max_retries: int = 2
    backoff_factor: float = 0.5
    max_backoff: float = 8.0
    use_post: bool = False
    verify_ssl: bool = True

    def __post_init__(self):
        """Validate configuration on initialization."""
        if not self.url or not self.url.startswith(("http://", "https://")):
            raise ValueError("url must be a valid HTTP/HTTPS URL")
        if not self.username:
            raise ValueError("username is required")
        if not self.password:
            raise ValueError("password is required")
        if self.response_format not in RESPONSE_FORMATS:
            raise ValueError(f"response_format must be one of {RESPONSE_FORMATS}")
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        # Raises ValueError for malformed versions
        ProtocolVersion.parse(self.api_version)

        # Warn about insecure HTTP connections
        if not self.url.startswith("https://"):
            warnings.warn(
                "Using HTTP instead of HTTPS for Subsonic connection. "
                "Credentials will be transmitted insecurely.",
                UserWarning,
                stacklevel=2,
            )

    @classmethod
    def from_environment(cls) -> "SubsonicConfig":
        """Load configuration from environment variables.

        Required: SUBSONIC_URL, SUBSONIC_USER, SUBSONIC_PASSWORD.
        Optional: SUBSONIC_CLIENT_NAME, SUBSONIC_FORMAT, SUBSONIC_TIMEOUT,
        SUBSONIC_MAX_RETRIES.

        Returns:
            SubsonicConfig: Loaded configuration object

        Raises:
            EnvironmentError: If required environment variables are missing
        """
        required = {
            "SUBSONIC_URL": os.getenv("SUBSONIC_URL"),
            "SUBSONIC_USER": os.getenv("SUBSONIC_USER"),
            "SUBSONIC_PASSWORD": os.getenv("SUBSONIC_PASSWORD"),
        }
        missing = [var for var, value in required.items() if not value]
        if missing:
            raise EnvironmentError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        return cls(
            url=required["SUBSONIC_URL"],
            username=required["SUBSONIC_USER"],
            password=required["SUBSONIC_PASSWORD"],
            client_name=os.getenv("SUBSONIC_CLIENT_NAME", "subsonic-client"),
            response_format=os.getenv("SUBSONIC_FORMAT", "json").lower(),
            timeout=float(os.getenv("SUBSONIC_TIMEOUT", "30")),
            max_retries=int(os.getenv("SUBSONIC_MAX_RETRIES", "2")),
        )


@dataclass(frozen=True)
class TokenCredential:
    """Salted token credential (API 1.13.0+).

    Attributes:
        token: MD5(password + salt)
        salt: Random salt string, unique to one request
        created_at: Token creation timestamp
    """

    token: str
    salt: str
    created_at: datetime

    def to_auth_params(self) -> Dict[str, str]:
        """Convert to authentication query parameters.

        Returns:
            Dict with t (token) and s (salt)
        """
        return {"t": self.token, "s": self.salt}

    def __repr__(self) -> str:
        return "TokenCredential(token=***, salt=***)"


@dataclass(frozen=True)
class PasswordCredential:
    """Legacy plaintext password credential for servers older than 1.13.0."""

    password: str

    def to_auth_params(self) -> Dict[str, str]:
        return {"p": self.password}

    def __repr__(self) -> str:
        return "PasswordCredential(password=***)"


@dataclass(frozen=True)
class RequestEnvelope:
    """A fully built request for one endpoint.

    Attributes:
        operation: Logical operation the request was built for
        endpoint: Concrete wire endpoint (e.g., "getAlbumList2")
        params: Ordered (key, value) pairs; keys may repeat for multi-valued fields
        response_format: Envelope format requested ("json" or "xml")
        mutating: True if the endpoint changes server state (never retried)
        media: True if a successful response is a binary body, not an envelope
    """

    operation: Any
    endpoint: str
    params: Tuple[Tuple[str, str], ...]
    response_format: str = "json"
    mutating: bool = False
    media: bool = False

    def get_all(self, key: str) -> List[str]:
        """Return every value sent for ``key`` in request order."""
        return [value for name, value in self.params if name == key]


@dataclass(frozen=True)
class RawResponse:
    """Buffered HTTP response body plus transport metadata."""

    content: bytes
    status_code: int
    content_type: str = ""
    content_length: Optional[int] = None


@dataclass
class ResponseEnvelope:
    """Decoded top-level ``subsonic-response`` wrapper.

    The payload is not interpreted: for JSON it holds the remaining
    top-level members, for XML the child elements keyed by tag name.

    Attributes:
        status: "ok" or "failed"
        version: Protocol version reported in this response
        error_code: Server error code when status is "failed"
        error_message: Server error message when status is "failed"
        payload: Operation-specific body, keyed by element name
        server_type: Server implementation name (OpenSubsonic "type")
        server_version: Server software version (OpenSubsonic "serverVersion")
        open_subsonic: True if the server advertises OpenSubsonic extensions
    """

    status: str
    version: ProtocolVersion
    error_code: Optional[int] = None
    error_message: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    server_type: Optional[str] = None
    server_version: Optional[str] = None
    open_subsonic: bool = False

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def raise_for_error(self) -> "ResponseEnvelope":
        """Raise the typed exception for a failed envelope.

        Returns:
            The envelope itself when status is "ok"

        Raises:
            SubsonicError: Subclass matching the server error code
        """
        if not self.ok:
            raise error_for_code(self.error_code, self.error_message or "")
        return self

    def get(self, key: str, default: Any = None) -> Any:
        """Shortcut for ``payload.get``."""
        return self.payload.get(key, default)

    @property
    def value(self) -> Any:
        """The first payload member, or None for empty responses such as ping."""
        return next(iter(self.payload.values()), None)
