"""Subsonic API authentication implementation.

This module derives the credential parameters sent with every Subsonic
request. Servers implementing API 1.13.0 or newer accept a salted token;
older servers only understand the legacy plaintext password parameter.

Authentication Flow (token mode):
    1. Generate cryptographically secure random salt (36 alphanumeric chars)
    2. Concatenate password + salt
    3. Calculate MD5 hash of concatenated string
    4. Send token (t) and salt (s) instead of the password

Example:
    >>> from subsonic_client.models import SubsonicConfig
    >>> from subsonic_client.auth import generate_token
    >>>
    >>> config = SubsonicConfig(
    ...     url="https://music.example.com",
    ...     username="admin",
    ...     password="sesame"
    ... )
    >>> credential = generate_token(config, salt="c19b2d")
    >>> credential.to_auth_params()
    {'t': '26719a1196d2a940705a59634eb18eab', 's': 'c19b2d'}

Security Notes:
    - Salt is regenerated for each request to prevent replay attacks
    - MD5 is mandated by the Subsonic API (obfuscation, not strong crypto)
    - Tokens and salts must never be logged; see logger.CredentialRedactingFilter
"""

import hashlib
import secrets
import string
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from .models import PasswordCredential, SubsonicConfig, TokenCredential
from .version import TOKEN_AUTH_VERSION, ProtocolVersion

# Subsonic requires at least six characters of salt
MIN_SALT_LENGTH = 6
SALT_LENGTH = 36

_SALT_ALPHABET = string.ascii_letters + string.digits

Credential = Union[TokenCredential, PasswordCredential]


def generate_salt(length: int = SALT_LENGTH) -> str:
    """Generate a random alphanumeric salt using the ``secrets`` module.

    Args:
        length: Number of characters (default: 36, minimum: 6)

    Returns:
        Random salt string

    Raises:
        ValueError: If length is below the protocol minimum
    """
    if length < MIN_SALT_LENGTH:
        raise ValueError(f"salt length must be at least {MIN_SALT_LENGTH}")
    return "".join(secrets.choice(_SALT_ALPHABET) for _ in range(length))


def derive_token(password: str, salt: str) -> str:
    """Compute the Subsonic token: lowercase hex MD5 of password + salt."""
    return hashlib.md5(f"{password}{salt}".encode("utf-8")).hexdigest()


def generate_token(config: SubsonicConfig, salt: Optional[str] = None) -> TokenCredential:
    """Generate a salted token credential for one request.

    Args:
        config: Subsonic configuration containing the password
        salt: Optional pre-generated salt. If None, a fresh salt is generated.
              Primarily for testing purposes - production should use auto-generated salt.

    Returns:
        TokenCredential with token, salt and UTC creation timestamp

    Example:
        >>> credential = generate_token(config)
        >>> len(credential.salt)
        36
    """
    if salt is None:
        salt = generate_salt()

    return TokenCredential(
        token=derive_token(config.password, salt),
        salt=salt,
        created_at=datetime.now(timezone.utc),
    )


def verify_token(config: SubsonicConfig, token: str, salt: str) -> bool:
    """Verify that a token matches the expected MD5(password + salt).

    This is primarily used for testing and validation. In production,
    the server verifies tokens, not the client.

    Args:
        config: Subsonic configuration with password
        token: Token to verify (32 hex chars)
        salt: Salt used to generate token

    Returns:
        True if token matches MD5(password + salt), False otherwise
    """
    return secrets.compare_digest(token, derive_token(config.password, salt))


def credential_for_version(config: SubsonicConfig, version: ProtocolVersion) -> Credential:
    """Select the credential variant a server of ``version`` understands.

    Servers older than 1.13.0 predate salted tokens and get the legacy
    password parameter. Every call for newer servers yields a new salt.
    """
    if version >= TOKEN_AUTH_VERSION:
        return generate_token(config)
    return PasswordCredential(password=config.password)


def create_auth_params(
    credential: Credential,
    username: str,
    api_version: str,
    client_name: str,
    response_format: str = "json",
) -> Dict[str, str]:
    """Create the full set of injected query parameters for a request.

    Args:
        credential: Token or password credential for this request
        username: Subsonic username
        api_version: Protocol version advertised to the server
        client_name: Client application identifier
        response_format: Response format - "json" or "xml" (default: "json")

    Returns:
        Dictionary with u, t+s (or p), v, c and f

    Example:
        >>> params = create_auth_params(credential, "admin", "1.16.1", "myapp")
        >>> sorted(params)
        ['c', 'f', 's', 't', 'u', 'v']
    """
    return {
        "u": username,
        **credential.to_auth_params(),
        "v": api_version,
        "c": client_name,
        "f": response_format,
    }
