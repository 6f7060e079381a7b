"""Tests for the static endpoint catalog."""

import pytest

from src.subsonic_client.catalog import CATALOG, EndpointDescriptor, Operation, describe
from src.subsonic_client.version import ProtocolVersion


class TestCatalog:
    def test_every_operation_has_an_entry(self):
        assert set(CATALOG) == set(Operation)

    def test_entries_are_keyed_by_their_operation(self):
        for operation, descriptor in CATALOG.items():
            assert descriptor.operation is operation

    @pytest.mark.parametrize(
        "operation,primary,alternate",
        [
            (Operation.LIST_ARTISTS, "getIndexes", "getArtists"),
            (Operation.LIST_ALBUMS, "getAlbumList", "getAlbumList2"),
            (Operation.GET_STARRED, "getStarred", "getStarred2"),
            (Operation.SEARCH, "search2", "search3"),
            (Operation.GET_ARTIST_INFO, "getArtistInfo", "getArtistInfo2"),
            (Operation.GET_ALBUM_INFO, "getAlbumInfo", "getAlbumInfo2"),
            (Operation.GET_SIMILAR_SONGS, "getSimilarSongs", "getSimilarSongs2"),
        ],
    )
    def test_id3_alternates(self, operation, primary, alternate):
        descriptor = describe(operation)
        assert descriptor.endpoint == primary
        assert descriptor.alternate == alternate
        assert descriptor.prefer_alternate

    def test_media_operations(self):
        media = {op for op, descriptor in CATALOG.items() if descriptor.media}
        assert media == {
            Operation.STREAM,
            Operation.DOWNLOAD,
            Operation.HLS,
            Operation.GET_CAPTIONS,
            Operation.GET_COVER_ART,
            Operation.GET_AVATAR,
        }

    @pytest.mark.parametrize(
        "operation",
        [
            Operation.CREATE_PLAYLIST,
            Operation.UPDATE_PLAYLIST,
            Operation.DELETE_PLAYLIST,
            Operation.STAR,
            Operation.UNSTAR,
            Operation.SET_RATING,
            Operation.SCROBBLE,
            Operation.START_SCAN,
        ],
    )
    def test_state_changing_operations_are_mutating(self, operation):
        assert describe(operation).mutating

    def test_read_operations_are_not_mutating(self):
        for operation in (Operation.PING, Operation.GET_ALBUM, Operation.STREAM, Operation.SEARCH):
            assert not describe(operation).mutating

    def test_required_parameters(self):
        assert describe(Operation.SET_RATING).required == ("id", "rating")
        assert describe(Operation.LIST_ALBUMS).required == ("type",)
        assert describe(Operation.PING).required == ()

    def test_alternate_requires_since_version(self):
        with pytest.raises(ValueError):
            EndpointDescriptor(
                Operation.LIST_ALBUMS,
                "getAlbumList",
                ProtocolVersion(1, 2, 0),
                alternate="getAlbumList2",
            )

    def test_descriptors_are_immutable(self):
        descriptor = describe(Operation.PING)
        with pytest.raises(AttributeError):
            descriptor.endpoint = "other"
