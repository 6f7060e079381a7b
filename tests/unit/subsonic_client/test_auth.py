"""Tests for salted-token derivation and credential selection."""

import hashlib
import re
from datetime import datetime

import pytest

from src.subsonic_client.auth import (
    MIN_SALT_LENGTH,
    SALT_LENGTH,
    create_auth_params,
    credential_for_version,
    derive_token,
    generate_salt,
    generate_token,
    verify_token,
)
from src.subsonic_client.models import PasswordCredential, TokenCredential
from src.subsonic_client.version import ProtocolVersion
from tests.unit.subsonic_client.fakes import make_config


class TestDeriveToken:
    def test_matches_documented_example(self):
        """Password "sesame" with salt "c19b2d" from the Subsonic API docs."""
        assert derive_token("sesame", "c19b2d") == "26719a1196d2a940705a59634eb18eab"

    def test_is_md5_of_password_plus_salt(self):
        expected = hashlib.md5("testpassabc123".encode("utf-8")).hexdigest()
        assert derive_token("testpass", "abc123") == expected

    def test_is_deterministic(self):
        assert derive_token("pw", "salt01") == derive_token("pw", "salt01")

    def test_distinct_salts_give_distinct_tokens(self):
        assert derive_token("pw", "salt01") != derive_token("pw", "salt02")

    def test_handles_unicode_passwords(self):
        token = derive_token("pässwörd🎵", "saltyy")
        assert re.match(r"^[a-f0-9]{32}$", token)


class TestGenerateSalt:
    def test_default_length_and_alphabet(self):
        salt = generate_salt()
        assert len(salt) == SALT_LENGTH
        assert salt.isalnum()

    def test_salts_are_unique(self):
        assert len({generate_salt() for _ in range(50)}) == 50

    def test_minimum_length_is_accepted(self):
        assert len(generate_salt(MIN_SALT_LENGTH)) == MIN_SALT_LENGTH

    def test_short_salt_is_rejected(self):
        with pytest.raises(ValueError):
            generate_salt(MIN_SALT_LENGTH - 1)


class TestGenerateToken:
    def test_generate_token_with_custom_salt(self):
        config = make_config(password="sesame")

        credential = generate_token(config, salt="c19b2d")

        assert isinstance(credential, TokenCredential)
        assert credential.token == "26719a1196d2a940705a59634eb18eab"
        assert credential.salt == "c19b2d"
        assert isinstance(credential.created_at, datetime)
        assert credential.created_at.tzinfo is not None

    def test_generate_token_uses_fresh_salt(self):
        config = make_config()

        first = generate_token(config)
        second = generate_token(config)

        assert first.salt != second.salt
        assert first.token != second.token

    def test_verify_token(self):
        config = make_config()
        credential = generate_token(config)

        assert verify_token(config, credential.token, credential.salt)
        assert not verify_token(config, credential.token, "othersalt")

    def test_repr_masks_secrets(self):
        credential = generate_token(make_config(password="sesame"), salt="c19b2d")
        assert "26719a" not in repr(credential)
        assert "c19b2d" not in repr(credential)
        assert "sesame" not in repr(PasswordCredential("sesame"))


class TestCredentialForVersion:
    def test_token_credential_from_1_13_0(self):
        credential = credential_for_version(make_config(), ProtocolVersion(1, 13, 0))
        assert isinstance(credential, TokenCredential)

    def test_password_credential_before_1_13_0(self):
        credential = credential_for_version(make_config(), ProtocolVersion(1, 12, 0))
        assert credential == PasswordCredential(password="testpass")


class TestCreateAuthParams:
    def test_token_params(self):
        credential = generate_token(make_config(password="sesame"), salt="c19b2d")

        params = create_auth_params(credential, "admin", "1.16.1", "myapp")

        assert params == {
            "u": "admin",
            "t": "26719a1196d2a940705a59634eb18eab",
            "s": "c19b2d",
            "v": "1.16.1",
            "c": "myapp",
            "f": "json",
        }

    def test_password_params_never_include_token(self):
        params = create_auth_params(
            PasswordCredential("sesame"), "admin", "1.12.0", "myapp", response_format="xml"
        )

        assert params == {"u": "admin", "p": "sesame", "v": "1.12.0", "c": "myapp", "f": "xml"}
