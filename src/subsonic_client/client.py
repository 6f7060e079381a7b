"""HTTP client for the Subsonic API (1.8.0 - 1.16.1)."""

import asyncio
import logging
from typing import Any, Callable, List, Optional, TypeVar

import httpx

from .catalog import Operation, describe
from .dispatch import CancellationToken, Dispatcher
from .exceptions import InvalidRequestError, MalformedResponseError, NetworkFailure
from .models import ResponseEnvelope, SubsonicConfig
from .negotiation import NegotiationState, VersionNegotiator
from .request import Params, RequestBuilder
from .response import decode_envelope, decode_response, is_envelope_content_type
from .stream import StreamHandle
from .version import ProtocolVersion

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SubsonicClient:
    """Synchronous HTTP client for Subsonic-compatible servers.

    This client implements the Subsonic REST API with:
    - Version negotiation on first use and ID3 endpoint selection
    - Salted-token authentication (plaintext password for pre-1.13.0 servers)
    - Typed exceptions for every server error code
    - Bounded retries for read-only requests, never for mutating ones
    - Caller-owned streaming for media endpoints

    The client is safe to share between threads; only the negotiated
    version is shared state.

    Attributes:
        config: SubsonicConfig with server connection details
        client: httpx.Client for HTTP requests
        opensubsonic: True if the server advertised OpenSubsonic extensions
        opensubsonic_version: Server software version reported by OpenSubsonic servers

    Example:
        >>> config = SubsonicConfig(
        ...     url="https://music.example.com",
        ...     username="john",
        ...     password="secret"
        ... )
        >>> with SubsonicClient(config) as client:
        ...     albums = client.get_album_list("newest", size=20)
    """

    def __init__(self, config: SubsonicConfig, transport: Optional[httpx.BaseTransport] = None):
        """Initialize Subsonic API client.

        Args:
            config: SubsonicConfig with server URL and credentials
            transport: Optional httpx transport (e.g., httpx.MockTransport in tests)
        """
        self.config = config
        self._base_url = config.url.rstrip("/")

        # OpenSubsonic detection attributes
        self.opensubsonic = False
        self.opensubsonic_version = None

        if transport is None:
            transport = self._create_transport(config)

        # Retries happen in the Dispatcher, never in the transport
        self.client = httpx.Client(
            timeout=httpx.Timeout(config.timeout),
            transport=transport,
            follow_redirects=True,
        )

        self._negotiator = VersionNegotiator(self._probe, ProtocolVersion.parse(config.api_version))
        self._builder = RequestBuilder(config, self._negotiator)
        self._dispatcher = Dispatcher(config, self.client, self._builder)

        logger.info(f"Initialized Subsonic client for {self._base_url}")

    @staticmethod
    def _create_transport(config: SubsonicConfig) -> httpx.HTTPTransport:
        limits = httpx.Limits(
            max_connections=100,  # Max total connections
            max_keepalive_connections=20,  # Max persistent connections
            keepalive_expiry=5.0,  # Keep connections alive for 5s
        )
        # Try to enable HTTP/2 if available, fallback to HTTP/1.1
        try:
            return httpx.HTTPTransport(limits=limits, verify=config.verify_ssl, http2=True)
        except ImportError:
            # h2 package not installed, use HTTP/1.1
            logger.debug("HTTP/2 not available, using HTTP/1.1")
            return httpx.HTTPTransport(limits=limits, verify=config.verify_ssl)

    # ------------------------------------------------------------------
    # Core protocol operations
    # ------------------------------------------------------------------

    @property
    def version(self) -> Optional[ProtocolVersion]:
        """Negotiated server API version, or None before negotiation."""
        return self._negotiator.version

    @property
    def negotiation_state(self) -> NegotiationState:
        return self._negotiator.state

    def negotiate(self, force: bool = False) -> ProtocolVersion:
        """Discover the server API version (cached after the first call).

        Args:
            force: Ping the server again even if a version is cached

        Raises:
            UnsupportedVersionError: If the server is older than API 1.8.0
            SubsonicAuthenticationError: If the credentials are rejected
            NetworkFailure: If the server cannot be reached
        """
        return self._negotiator.negotiate(force=force)

    def _probe(self, version: ProtocolVersion) -> ResponseEnvelope:
        envelope = self._builder.build_probe(version)
        raw = self._dispatcher.send(envelope)
        response = decode_envelope(raw.content, envelope.response_format, raw.status_code)

        # Check for OpenSubsonic
        if response.open_subsonic:
            self.opensubsonic = True
            self.opensubsonic_version = response.server_version
            logger.info(f"OpenSubsonic server detected: version {self.opensubsonic_version}")
        return response

    def call(
        self,
        operation: Operation,
        params: Params = None,
        cancel: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> ResponseEnvelope:
        """Invoke an envelope-returning operation.

        Args:
            operation: Logical operation from the endpoint catalog
            params: Operation-specific parameters (mapping or (key, value) pairs)
            cancel: Optional cancellation token
            timeout: Per-request timeout in seconds (defaults to ``config.timeout``)

        Returns:
            Successful ResponseEnvelope with the payload unopened

        Raises:
            InvalidRequestError: Missing parameters, or a media operation
            UnsupportedVersionError: Server cannot serve the operation
            SubsonicError: Server reported an error (subclass per code)
            MalformedResponseError: Response is not a valid envelope
            NetworkFailure: Transport failure
            RequestCancelledError: ``cancel`` fired
        """
        if describe(operation).media:
            raise InvalidRequestError(
                f"{operation.value} returns media; use fetch_bytes() or open_stream()"
            )

        self._check_timeout(timeout)
        envelope = self._builder.build(operation, params)
        raw = self._dispatcher.send(envelope, cancel, timeout)
        response = decode_response(raw, envelope.response_format)

        if response.version != self._negotiator.version:
            logger.debug(
                f"{envelope.endpoint} reported API version {response.version}, "
                f"negotiated {self._negotiator.version}"
            )
        return response

    def fetch_bytes(
        self,
        operation: Operation,
        params: Params = None,
        cancel: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> bytes:
        """Fetch a media operation's body into memory (cover art, avatars, captions).

        Raises:
            SubsonicError: If the server answered with an error envelope
        """
        self._require_media(operation)
        self._check_timeout(timeout)
        envelope = self._builder.build(operation, params)
        raw = self._dispatcher.send(envelope, cancel, timeout)

        # For media endpoints, an envelope is always an error report
        if is_envelope_content_type(raw.content_type):
            response_format = "json" if "json" in raw.content_type else "xml"
            decode_envelope(raw.content, response_format, raw.status_code).raise_for_error()
            raise MalformedResponseError(
                f"Expected media from {envelope.endpoint}, got {raw.content_type}"
            )
        if raw.status_code >= 400:
            raise NetworkFailure(
                f"HTTP {raw.status_code} from {envelope.endpoint}", status_code=raw.status_code
            )

        logger.info(f"Downloaded {len(raw.content)} bytes from {envelope.endpoint}")
        return raw.content

    def open_stream(
        self,
        operation: Operation,
        params: Params = None,
        offset: int = 0,
        cancel: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> StreamHandle:
        """Open a media operation as a caller-owned stream.

        Args:
            operation: Media operation (e.g., Operation.STREAM)
            params: Operation-specific parameters
            offset: Resume from this byte offset using a range request;
                check ``StreamHandle.partial`` to see if the server honored it
            cancel: Optional cancellation token, also checked while reading
            timeout: Per-request timeout in seconds (defaults to ``config.timeout``)

        Returns:
            StreamHandle; use it in a ``with`` block to guarantee release
        """
        self._require_media(operation)
        self._check_timeout(timeout)
        envelope = self._builder.build(operation, params)
        return self._dispatcher.open(
            envelope, offset=offset, cancel=cancel, timeout=timeout
        )

    def build_url(self, operation: Operation, params: Params = None) -> str:
        """Build a complete, authenticated URL for ``operation``.

        The URL embeds a one-time token and salt; treat it as a secret.
        """
        return self._builder.build_url(self._builder.build(operation, params))

    @staticmethod
    def _require_media(operation: Operation) -> None:
        if not describe(operation).media:
            raise InvalidRequestError(f"{operation.value} does not return media; use call()")

    @staticmethod
    def _check_timeout(timeout: Optional[float]) -> None:
        if timeout is not None and timeout <= 0:
            raise InvalidRequestError(f"timeout must be positive, got {timeout}")

    # Async wrapper methods for async/await compatibility
    # These run the synchronous path in a thread pool; cancelling the awaiting
    # task trips the request's cancellation token.

    async def _run_async(self, func: Callable[..., T], *args, cancel=None, **kwargs) -> T:
        cancel = cancel or CancellationToken()
        try:
            return await asyncio.to_thread(func, *args, cancel=cancel, **kwargs)
        except asyncio.CancelledError:
            cancel.cancel()
            raise

    async def call_async(
        self,
        operation: Operation,
        params: Params = None,
        cancel: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> ResponseEnvelope:
        """Async wrapper for call()."""
        return await self._run_async(self.call, operation, params, cancel=cancel, timeout=timeout)

    async def fetch_bytes_async(
        self,
        operation: Operation,
        params: Params = None,
        cancel: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> bytes:
        """Async wrapper for fetch_bytes()."""
        return await self._run_async(
            self.fetch_bytes, operation, params, cancel=cancel, timeout=timeout
        )

    async def open_stream_async(
        self,
        operation: Operation,
        params: Params = None,
        offset: int = 0,
        cancel: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> StreamHandle:
        """Async wrapper for open_stream(). Reading the handle stays synchronous."""
        return await self._run_async(
            self.open_stream, operation, params, offset=offset, cancel=cancel, timeout=timeout
        )

    # ------------------------------------------------------------------
    # System and browsing
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Test server connectivity and authentication.

        The first call negotiates the API version; later calls issue a
        fresh ping.

        Returns:
            True if ping successful

        Raises:
            SubsonicAuthenticationError: If credentials are invalid
            UnsupportedVersionError: If the server is older than API 1.8.0
            NetworkFailure: For network/HTTP errors
        """
        if self._negotiator.state is NegotiationState.RESOLVED:
            self.call(Operation.PING)
        else:
            self.negotiate()

        logger.info("Subsonic ping successful")
        return True

    def get_license(self) -> Any:
        """Return the server license payload (always valid on Subsonic forks)."""
        return self.call(Operation.GET_LICENSE).get("license")

    def get_music_folders(self) -> Any:
        """Return all configured top-level music folders."""
        return self.call(Operation.GET_MUSIC_FOLDERS).get("musicFolders")

    def get_genres(self) -> Any:
        """Return all genres (API 1.9.0+)."""
        return self.call(Operation.GET_GENRES).get("genres")

    def get_artists(self, music_folder_id: Optional[str] = None) -> Any:
        """Get all artists, ID3-organized when the server supports it.

        Args:
            music_folder_id: Optional music folder ID to filter artists

        Returns:
            The ``artists`` (or legacy ``indexes``) payload
        """
        response = self.call(Operation.LIST_ARTISTS, {"musicFolderId": music_folder_id})
        logger.debug(f"Fetched artists (folder={music_folder_id})")
        return response.value

    def get_album(self, album_id: str) -> Any:
        """Return an album with its songs (ID3)."""
        return self.call(Operation.GET_ALBUM, {"id": album_id}).get("album")

    def get_album_list(
        self,
        list_type: str = "newest",
        size: Optional[int] = None,
        offset: Optional[int] = None,
        music_folder_id: Optional[str] = None,
        **filters: Any,
    ) -> Any:
        """List albums by ``list_type`` (newest, random, alphabeticalByName, byGenre, ...).

        Uses getAlbumList2 (ID3 tags) whenever the server supports it.

        Args:
            list_type: Album list type
            size: Number of albums to return (server default 10, max 500)
            offset: List offset for paging
            music_folder_id: Optional music folder ID
            **filters: Extra filters such as fromYear, toYear, genre

        Returns:
            The ``albumList2`` (or ``albumList``) payload
        """
        params = {
            "type": list_type,
            "size": size,
            "offset": offset,
            "musicFolderId": music_folder_id,
            **filters,
        }
        return self.call(Operation.LIST_ALBUMS, params).value

    def get_random_songs(
        self,
        size: int = 10,
        genre: Optional[str] = None,
        from_year: Optional[int] = None,
        to_year: Optional[int] = None,
        music_folder_id: Optional[str] = None,
    ) -> Any:
        """Return random songs (size capped at 500 by the server)."""
        params = {
            "size": min(size, 500),
            "genre": genre,
            "fromYear": from_year,
            "toYear": to_year,
            "musicFolderId": music_folder_id,
        }
        return self.call(Operation.GET_RANDOM_SONGS, params).get("randomSongs")

    def search(
        self,
        query: str,
        artist_count: Optional[int] = None,
        artist_offset: Optional[int] = None,
        album_count: Optional[int] = None,
        album_offset: Optional[int] = None,
        song_count: Optional[int] = None,
        song_offset: Optional[int] = None,
        music_folder_id: Optional[str] = None,
    ) -> Any:
        """Search artists, albums and songs (search3 when available).

        Returns:
            The ``searchResult3`` (or ``searchResult2``) payload
        """
        params = {
            "query": query,
            "artistCount": artist_count,
            "artistOffset": artist_offset,
            "albumCount": album_count,
            "albumOffset": album_offset,
            "songCount": song_count,
            "songOffset": song_offset,
            "musicFolderId": music_folder_id,
        }
        logger.debug(f"Searching for '{query}'")
        return self.call(Operation.SEARCH, params).value

    def get_starred(self, music_folder_id: Optional[str] = None) -> Any:
        """Return starred artists, albums and songs (getStarred2 when available)."""
        return self.call(Operation.GET_STARRED, {"musicFolderId": music_folder_id}).value

    def get_scan_status(self) -> Any:
        """Return the media library scan status (API 1.15.0+)."""
        return self.call(Operation.GET_SCAN_STATUS).get("scanStatus")

    def start_scan(self) -> Any:
        """Initiate a rescan of the media libraries (API 1.15.0+)."""
        return self.call(Operation.START_SCAN).get("scanStatus")

    # ------------------------------------------------------------------
    # Playlists
    # ------------------------------------------------------------------

    def get_playlists(self, username: Optional[str] = None) -> Any:
        """Return playlists visible to the user (or to ``username`` for admins)."""
        return self.call(Operation.GET_PLAYLISTS, {"username": username}).get("playlists")

    def get_playlist(self, playlist_id: str) -> Any:
        """Return a playlist with its entries."""
        return self.call(Operation.GET_PLAYLIST, {"id": playlist_id}).get("playlist")

    def create_playlist(
        self,
        name: Optional[str] = None,
        song_ids: Optional[List[str]] = None,
        playlist_id: Optional[str] = None,
    ) -> Any:
        """Create a playlist, or replace the songs of ``playlist_id``.

        Song order is preserved. Never retried automatically.
        """
        if name is None and playlist_id is None:
            raise InvalidRequestError("create_playlist requires name or playlist_id")

        params = {"name": name, "playlistId": playlist_id, "songId": song_ids}
        response = self.call(Operation.CREATE_PLAYLIST, params)
        logger.info(f"Created playlist {name or playlist_id}")
        return response.get("playlist")

    def update_playlist(
        self,
        playlist_id: str,
        name: Optional[str] = None,
        comment: Optional[str] = None,
        public: Optional[bool] = None,
        song_ids_to_add: Optional[List[str]] = None,
        song_indexes_to_remove: Optional[List[int]] = None,
    ) -> None:
        """Update playlist metadata and entries. Never retried automatically."""
        params = {
            "playlistId": playlist_id,
            "name": name,
            "comment": comment,
            "public": public,
            "songIdToAdd": song_ids_to_add,
            "songIndexToRemove": song_indexes_to_remove,
        }
        self.call(Operation.UPDATE_PLAYLIST, params)
        logger.info(f"Updated playlist {playlist_id}")

    def delete_playlist(self, playlist_id: str) -> None:
        """Delete a playlist. Never retried automatically."""
        self.call(Operation.DELETE_PLAYLIST, {"id": playlist_id})
        logger.info(f"Deleted playlist {playlist_id}")

    # ------------------------------------------------------------------
    # Annotation
    # ------------------------------------------------------------------

    @staticmethod
    def _annotation_params(id, album_id, artist_id) -> dict:
        if id is None and album_id is None and artist_id is None:
            raise InvalidRequestError("At least one of id, album_id or artist_id is required")
        return {"id": id, "albumId": album_id, "artistId": artist_id}

    def star(self, id=None, album_id=None, artist_id=None) -> bool:
        """Star songs, albums and/or artists (each argument may be a list).

        Returns:
            True if successful
        """
        self.call(Operation.STAR, self._annotation_params(id, album_id, artist_id))
        logger.info(f"Starred id={id} album_id={album_id} artist_id={artist_id}")
        return True

    def unstar(self, id=None, album_id=None, artist_id=None) -> bool:
        """Remove stars from songs, albums and/or artists.

        Returns:
            True if successful
        """
        self.call(Operation.UNSTAR, self._annotation_params(id, album_id, artist_id))
        logger.info(f"Unstarred id={id} album_id={album_id} artist_id={artist_id}")
        return True

    def set_rating(self, item_id: str, rating: int) -> bool:
        """Rate an item from 1 to 5; 0 removes the rating."""
        if not 0 <= rating <= 5:
            raise InvalidRequestError("rating must be between 0 and 5 inclusive")
        self.call(Operation.SET_RATING, {"id": item_id, "rating": rating})
        return True

    def scrobble(self, track_id: str, time: Optional[int] = None, submission: bool = True) -> bool:
        """Register playback of a track.

        Args:
            track_id: Track ID
            time: Playback time in milliseconds since the epoch
            submission: True for a scrobble, False for a "now playing" notification

        Returns:
            True if successful
        """
        self.call(Operation.SCROBBLE, {"id": track_id, "time": time, "submission": submission})
        action = "Scrobbled" if submission else "Sent now playing for"
        logger.info(f"{action} track {track_id}")
        return True

    # ------------------------------------------------------------------
    # Media retrieval
    # ------------------------------------------------------------------

    def stream(
        self,
        track_id: str,
        max_bit_rate: Optional[int] = None,
        format: Optional[str] = None,
        offset: int = 0,
        cancel: Optional[CancellationToken] = None,
        timeout: Optional[float] = None,
    ) -> StreamHandle:
        """Open a (possibly transcoded) media stream.

        Example:
            >>> with client.stream("300") as media:
            ...     audio = media.read()
        """
        params = {"id": track_id, "maxBitRate": max_bit_rate, "format": format}
        return self.open_stream(
            Operation.STREAM, params, offset=offset, cancel=cancel, timeout=timeout
        )

    def download(
        self, track_id: str, offset: int = 0, cancel: Optional[CancellationToken] = None
    ) -> StreamHandle:
        """Open the original, untranscoded media file as a stream."""
        return self.open_stream(Operation.DOWNLOAD, {"id": track_id}, offset=offset, cancel=cancel)

    def get_cover_art(self, cover_art_id: str, size: Optional[int] = None) -> bytes:
        """Download cover art image bytes.

        Args:
            cover_art_id: Cover art ID from a song/album/artist payload
            size: Optional size in pixels
        """
        return self.fetch_bytes(Operation.GET_COVER_ART, {"id": cover_art_id, "size": size})

    def get_stream_url(
        self, track_id: str, max_bit_rate: Optional[int] = None, format: Optional[str] = None
    ) -> str:
        """Get streaming URL for a track without downloading.

        This generates a URL that can be used directly in M3U playlists
        or media players. The URL includes authentication parameters.
        """
        url = self.build_url(
            Operation.STREAM, {"id": track_id, "maxBitRate": max_bit_rate, "format": format}
        )
        logger.debug(f"Generated stream URL for track {track_id}")
        return url

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self):
        """Close HTTP client and release resources.

        Example:
            >>> client = SubsonicClient(config)
            >>> try:
            ...     client.ping()
            ... finally:
            ...     client.close()
        """
        self.client.close()
        logger.info("Closed Subsonic client")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - automatically close client."""
        self.close()
