"""Static catalog of logical operations and the endpoints that serve them.

Each logical operation has a primary endpoint and, for library browsing,
an ID3-tag-organized alternate that is preferred whenever the negotiated
server version supports it. Since-versions follow the Subsonic API
documentation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .version import ProtocolVersion


class Operation(Enum):
    """Caller-facing Subsonic capabilities."""

    # System
    PING = "ping"
    GET_LICENSE = "get_license"

    # Browsing
    GET_MUSIC_FOLDERS = "get_music_folders"
    LIST_ARTISTS = "list_artists"
    GET_MUSIC_DIRECTORY = "get_music_directory"
    GET_GENRES = "get_genres"
    GET_ARTIST = "get_artist"
    GET_ALBUM = "get_album"
    GET_SONG = "get_song"
    GET_VIDEOS = "get_videos"
    GET_VIDEO_INFO = "get_video_info"
    GET_ARTIST_INFO = "get_artist_info"
    GET_ALBUM_INFO = "get_album_info"
    GET_SIMILAR_SONGS = "get_similar_songs"
    GET_TOP_SONGS = "get_top_songs"

    # Album/song lists
    LIST_ALBUMS = "list_albums"
    GET_RANDOM_SONGS = "get_random_songs"
    GET_SONGS_BY_GENRE = "get_songs_by_genre"
    GET_NOW_PLAYING = "get_now_playing"
    GET_STARRED = "get_starred"

    # Searching
    SEARCH = "search"

    # Playlists
    GET_PLAYLISTS = "get_playlists"
    GET_PLAYLIST = "get_playlist"
    CREATE_PLAYLIST = "create_playlist"
    UPDATE_PLAYLIST = "update_playlist"
    DELETE_PLAYLIST = "delete_playlist"

    # Media retrieval
    STREAM = "stream"
    DOWNLOAD = "download"
    HLS = "hls"
    GET_CAPTIONS = "get_captions"
    GET_COVER_ART = "get_cover_art"
    GET_LYRICS = "get_lyrics"
    GET_AVATAR = "get_avatar"

    # Media annotation
    STAR = "star"
    UNSTAR = "unstar"
    SET_RATING = "set_rating"
    SCROBBLE = "scrobble"

    # Sharing
    GET_SHARES = "get_shares"
    CREATE_SHARE = "create_share"
    UPDATE_SHARE = "update_share"
    DELETE_SHARE = "delete_share"

    # Podcast
    GET_PODCASTS = "get_podcasts"
    GET_NEWEST_PODCASTS = "get_newest_podcasts"
    REFRESH_PODCASTS = "refresh_podcasts"
    CREATE_PODCAST_CHANNEL = "create_podcast_channel"
    DELETE_PODCAST_CHANNEL = "delete_podcast_channel"
    DELETE_PODCAST_EPISODE = "delete_podcast_episode"
    DOWNLOAD_PODCAST_EPISODE = "download_podcast_episode"

    # Jukebox
    JUKEBOX_CONTROL = "jukebox_control"

    # Internet radio
    GET_INTERNET_RADIO_STATIONS = "get_internet_radio_stations"
    CREATE_INTERNET_RADIO_STATION = "create_internet_radio_station"
    UPDATE_INTERNET_RADIO_STATION = "update_internet_radio_station"
    DELETE_INTERNET_RADIO_STATION = "delete_internet_radio_station"

    # Chat
    GET_CHAT_MESSAGES = "get_chat_messages"
    ADD_CHAT_MESSAGE = "add_chat_message"

    # User management
    GET_USER = "get_user"
    GET_USERS = "get_users"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    CHANGE_PASSWORD = "change_password"

    # Bookmarks
    GET_BOOKMARKS = "get_bookmarks"
    CREATE_BOOKMARK = "create_bookmark"
    DELETE_BOOKMARK = "delete_bookmark"
    GET_PLAY_QUEUE = "get_play_queue"
    SAVE_PLAY_QUEUE = "save_play_queue"

    # Media library scanning
    GET_SCAN_STATUS = "get_scan_status"
    START_SCAN = "start_scan"


@dataclass(frozen=True)
class EndpointDescriptor:
    """Immutable description of how one logical operation reaches the wire.

    Attributes:
        operation: Logical operation
        endpoint: Primary endpoint name
        since: Minimum version for the primary endpoint
        alternate: Optional alternate (ID3) endpoint name
        alternate_since: Minimum version for the alternate endpoint
        prefer_alternate: Pick the alternate whenever the server supports it
        required: Parameter names the endpoint cannot be called without
        mutating: Endpoint changes server state; never retried automatically
        media: Successful responses are binary bodies, not envelopes
    """

    operation: Operation
    endpoint: str
    since: ProtocolVersion
    alternate: Optional[str] = None
    alternate_since: Optional[ProtocolVersion] = None
    prefer_alternate: bool = True
    required: Tuple[str, ...] = ()
    mutating: bool = False
    media: bool = False

    def __post_init__(self):
        if (self.alternate is None) != (self.alternate_since is None):
            raise ValueError("alternate and alternate_since must be given together")


def _v(value: str) -> ProtocolVersion:
    return ProtocolVersion.parse(value)


def _entry(operation, endpoint, since, **kwargs) -> Tuple[Operation, EndpointDescriptor]:
    if "alternate_since" in kwargs:
        kwargs["alternate_since"] = _v(kwargs["alternate_since"])
    return operation, EndpointDescriptor(operation, endpoint, _v(since), **kwargs)


_O = Operation

CATALOG: Dict[Operation, EndpointDescriptor] = dict(
    [
        _entry(_O.PING, "ping", "1.0.0"),
        _entry(_O.GET_LICENSE, "getLicense", "1.0.0"),
        _entry(_O.GET_MUSIC_FOLDERS, "getMusicFolders", "1.0.0"),
        _entry(_O.LIST_ARTISTS, "getIndexes", "1.0.0",
               alternate="getArtists", alternate_since="1.8.0"),
        _entry(_O.GET_MUSIC_DIRECTORY, "getMusicDirectory", "1.0.0", required=("id",)),
        _entry(_O.GET_GENRES, "getGenres", "1.9.0"),
        _entry(_O.GET_ARTIST, "getArtist", "1.8.0", required=("id",)),
        _entry(_O.GET_ALBUM, "getAlbum", "1.8.0", required=("id",)),
        _entry(_O.GET_SONG, "getSong", "1.8.0", required=("id",)),
        _entry(_O.GET_VIDEOS, "getVideos", "1.8.0"),
        _entry(_O.GET_VIDEO_INFO, "getVideoInfo", "1.14.0", required=("id",)),
        _entry(_O.GET_ARTIST_INFO, "getArtistInfo", "1.11.0",
               alternate="getArtistInfo2", alternate_since="1.11.0", required=("id",)),
        _entry(_O.GET_ALBUM_INFO, "getAlbumInfo", "1.14.0",
               alternate="getAlbumInfo2", alternate_since="1.14.0", required=("id",)),
        _entry(_O.GET_SIMILAR_SONGS, "getSimilarSongs", "1.11.0",
               alternate="getSimilarSongs2", alternate_since="1.11.0", required=("id",)),
        _entry(_O.GET_TOP_SONGS, "getTopSongs", "1.13.0", required=("artist",)),
        _entry(_O.LIST_ALBUMS, "getAlbumList", "1.2.0",
               alternate="getAlbumList2", alternate_since="1.8.0", required=("type",)),
        _entry(_O.GET_RANDOM_SONGS, "getRandomSongs", "1.2.0"),
        _entry(_O.GET_SONGS_BY_GENRE, "getSongsByGenre", "1.9.0", required=("genre",)),
        _entry(_O.GET_NOW_PLAYING, "getNowPlaying", "1.0.0"),
        _entry(_O.GET_STARRED, "getStarred", "1.8.0",
               alternate="getStarred2", alternate_since="1.8.0"),
        _entry(_O.SEARCH, "search2", "1.4.0",
               alternate="search3", alternate_since="1.8.0", required=("query",)),
        _entry(_O.GET_PLAYLISTS, "getPlaylists", "1.0.0"),
        _entry(_O.GET_PLAYLIST, "getPlaylist", "1.0.0", required=("id",)),
        _entry(_O.CREATE_PLAYLIST, "createPlaylist", "1.2.0", mutating=True),
        _entry(_O.UPDATE_PLAYLIST, "updatePlaylist", "1.8.0",
               required=("playlistId",), mutating=True),
        _entry(_O.DELETE_PLAYLIST, "deletePlaylist", "1.2.0", required=("id",), mutating=True),
        _entry(_O.STREAM, "stream", "1.0.0", required=("id",), media=True),
        _entry(_O.DOWNLOAD, "download", "1.0.0", required=("id",), media=True),
        _entry(_O.HLS, "hls", "1.8.0", required=("id",), media=True),
        _entry(_O.GET_CAPTIONS, "getCaptions", "1.14.0", required=("id",), media=True),
        _entry(_O.GET_COVER_ART, "getCoverArt", "1.0.0", required=("id",), media=True),
        _entry(_O.GET_LYRICS, "getLyrics", "1.2.0"),
        _entry(_O.GET_AVATAR, "getAvatar", "1.8.0", required=("username",), media=True),
        _entry(_O.STAR, "star", "1.8.0", mutating=True),
        _entry(_O.UNSTAR, "unstar", "1.8.0", mutating=True),
        _entry(_O.SET_RATING, "setRating", "1.6.0", required=("id", "rating"), mutating=True),
        _entry(_O.SCROBBLE, "scrobble", "1.5.0", required=("id",), mutating=True),
        _entry(_O.GET_SHARES, "getShares", "1.6.0"),
        _entry(_O.CREATE_SHARE, "createShare", "1.6.0", required=("id",), mutating=True),
        _entry(_O.UPDATE_SHARE, "updateShare", "1.6.0", required=("id",), mutating=True),
        _entry(_O.DELETE_SHARE, "deleteShare", "1.6.0", required=("id",), mutating=True),
        _entry(_O.GET_PODCASTS, "getPodcasts", "1.6.0"),
        _entry(_O.GET_NEWEST_PODCASTS, "getNewestPodcasts", "1.13.0"),
        _entry(_O.REFRESH_PODCASTS, "refreshPodcasts", "1.9.0", mutating=True),
        _entry(_O.CREATE_PODCAST_CHANNEL, "createPodcastChannel", "1.9.0",
               required=("url",), mutating=True),
        _entry(_O.DELETE_PODCAST_CHANNEL, "deletePodcastChannel", "1.9.0",
               required=("id",), mutating=True),
        _entry(_O.DELETE_PODCAST_EPISODE, "deletePodcastEpisode", "1.9.0",
               required=("id",), mutating=True),
        _entry(_O.DOWNLOAD_PODCAST_EPISODE, "downloadPodcastEpisode", "1.9.0",
               required=("id",), mutating=True),
        _entry(_O.JUKEBOX_CONTROL, "jukeboxControl", "1.2.0",
               required=("action",), mutating=True),
        _entry(_O.GET_INTERNET_RADIO_STATIONS, "getInternetRadioStations", "1.9.0"),
        _entry(_O.CREATE_INTERNET_RADIO_STATION, "createInternetRadioStation", "1.16.0",
               required=("streamUrl", "name"), mutating=True),
        _entry(_O.UPDATE_INTERNET_RADIO_STATION, "updateInternetRadioStation", "1.16.0",
               required=("id", "streamUrl", "name"), mutating=True),
        _entry(_O.DELETE_INTERNET_RADIO_STATION, "deleteInternetRadioStation", "1.16.0",
               required=("id",), mutating=True),
        _entry(_O.GET_CHAT_MESSAGES, "getChatMessages", "1.2.0"),
        _entry(_O.ADD_CHAT_MESSAGE, "addChatMessage", "1.2.0",
               required=("message",), mutating=True),
        _entry(_O.GET_USER, "getUser", "1.3.0", required=("username",)),
        _entry(_O.GET_USERS, "getUsers", "1.8.0"),
        _entry(_O.CREATE_USER, "createUser", "1.1.0",
               required=("username", "password", "email"), mutating=True),
        _entry(_O.UPDATE_USER, "updateUser", "1.10.1", required=("username",), mutating=True),
        _entry(_O.DELETE_USER, "deleteUser", "1.3.0", required=("username",), mutating=True),
        _entry(_O.CHANGE_PASSWORD, "changePassword", "1.1.0",
               required=("username", "password"), mutating=True),
        _entry(_O.GET_BOOKMARKS, "getBookmarks", "1.9.0"),
        _entry(_O.CREATE_BOOKMARK, "createBookmark", "1.9.0",
               required=("id", "position"), mutating=True),
        _entry(_O.DELETE_BOOKMARK, "deleteBookmark", "1.9.0", required=("id",), mutating=True),
        _entry(_O.GET_PLAY_QUEUE, "getPlayQueue", "1.12.0"),
        _entry(_O.SAVE_PLAY_QUEUE, "savePlayQueue", "1.12.0", mutating=True),
        _entry(_O.GET_SCAN_STATUS, "getScanStatus", "1.15.0"),
        _entry(_O.START_SCAN, "startScan", "1.15.0", mutating=True),
    ]
)


def describe(operation: Operation) -> EndpointDescriptor:
    """Return the catalog entry for ``operation``.

    Raises:
        KeyError: If the operation has no catalog entry
    """
    return CATALOG[operation]
