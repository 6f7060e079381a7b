"""Tests for ProtocolVersion parsing and ordering."""

import pytest

from src.subsonic_client.version import (
    MAX_SUPPORTED_VERSION,
    MIN_SUPPORTED_VERSION,
    TOKEN_AUTH_VERSION,
    ProtocolVersion,
)


class TestParse:
    def test_parse_full_version(self):
        assert ProtocolVersion.parse("1.16.1") == ProtocolVersion(1, 16, 1)

    def test_parse_pads_missing_patch(self):
        """Servers commonly report two-component versions."""
        assert ProtocolVersion.parse("1.12") == ProtocolVersion(1, 12, 0)

    def test_parse_strips_whitespace(self):
        assert ProtocolVersion.parse(" 1.8.0 ") == ProtocolVersion(1, 8, 0)

    @pytest.mark.parametrize("value", ["", "1.x", "1.2.3.4", "-1.0", "1..2", "v1.2", None])
    def test_parse_rejects_invalid_versions(self, value):
        with pytest.raises(ValueError):
            ProtocolVersion.parse(value)

    def test_str_renders_three_components(self):
        assert str(ProtocolVersion.parse("1.9")) == "1.9.0"


class TestOrdering:
    def test_ordering_is_numeric_not_lexical(self):
        assert ProtocolVersion.parse("1.10.0") > ProtocolVersion.parse("1.9.0")
        assert ProtocolVersion.parse("1.16.1") > ProtocolVersion.parse("1.16.0")

    def test_min_of_versions(self):
        versions = [ProtocolVersion(1, 16, 1), ProtocolVersion(1, 8, 0), ProtocolVersion(1, 12, 0)]
        assert min(versions) == ProtocolVersion(1, 8, 0)

    def test_supported_range_constants(self):
        assert MIN_SUPPORTED_VERSION == ProtocolVersion(1, 8, 0)
        assert MIN_SUPPORTED_VERSION < TOKEN_AUTH_VERSION < MAX_SUPPORTED_VERSION
        assert ProtocolVersion(1, 16, 0) <= MAX_SUPPORTED_VERSION

    def test_versions_are_hashable(self):
        assert len({ProtocolVersion(1, 8), ProtocolVersion.parse("1.8.0")}) == 1
