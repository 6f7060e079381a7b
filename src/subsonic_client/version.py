"""Subsonic protocol version handling."""

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class ProtocolVersion:
    """Subsonic REST API version as a numerically ordered triple.

    Attributes:
        major: Major version number
        minor: Minor version number
        patch: Patch version number (0 when the server omits it)
    """

    major: int
    minor: int
    patch: int = 0

    @classmethod
    def parse(cls, value: str) -> "ProtocolVersion":
        """Parse a version string such as "1.16.1" or "1.12".

        Missing components default to 0. Anything that is not one to three
        dot-separated non-negative integers is rejected.

        Args:
            value: Version string reported by the server or configured locally

        Returns:
            Parsed ProtocolVersion

        Raises:
            ValueError: If the string is not a valid version

        Example:
            >>> ProtocolVersion.parse("1.12")
            ProtocolVersion(major=1, minor=12, patch=0)
        """
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Invalid protocol version: {value!r}")

        parts = value.strip().split(".")
        if len(parts) > 3 or not all(part.isdigit() for part in parts):
            raise ValueError(f"Invalid protocol version: {value!r}")

        numbers = [int(part) for part in parts] + [0] * (3 - len(parts))
        return cls(*numbers)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


# Oldest version with ID3-organized browsing (getArtists, getAlbumList2, search3)
MIN_SUPPORTED_VERSION = ProtocolVersion(1, 8, 0)

# Newest version this library targets; newer servers are used best-effort
MAX_SUPPORTED_VERSION = ProtocolVersion(1, 16, 1)

# First version accepting salted-token authentication (t + s)
TOKEN_AUTH_VERSION = ProtocolVersion(1, 13, 0)
