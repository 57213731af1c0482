"""
Data models for library entities.

This module defines immutable dataclasses representing the objects a
library provider hands to the sync engine: tracks, playlists, the
metadata snapshot of a track, and embedded artwork images.

Design Decisions:
    - All dataclasses are frozen so a snapshot taken on the orchestrator
      thread can be passed to worker threads without copying
    - TrackMetadata is fully resolved (lyrics and artwork bytes included),
      so workers never call back into the provider
    - Numeric fields use 0 for "not set", matching library exports

Usage:
    from tune_sync.library.models import LibraryTrack, TrackMetadata

    metadata = TrackMetadata(title="Song", artist="Artist", year=2020)
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ArtworkFormat(Enum):
    """Image format declared by the library for an artwork image."""

    UNKNOWN = "unknown"
    JPEG = "jpeg"
    PNG = "png"
    BMP = "bmp"

    @property
    def suffix(self) -> str:
        """File suffix used when staging the image on disk (JPEG for unknown)."""
        return _ARTWORK_SUFFIXES.get(self, ".jpg")

    @classmethod
    def from_mime(cls, mime: str | None) -> "ArtworkFormat":
        """Map a MIME type such as 'image/png' to a format."""
        if not mime:
            return cls.UNKNOWN
        subtype = mime.lower().split("/")[-1]
        if subtype in ("jpeg", "jpg"):
            return cls.JPEG
        if subtype == "png":
            return cls.PNG
        if subtype in ("bmp", "x-ms-bmp"):
            return cls.BMP
        return cls.UNKNOWN


_ARTWORK_SUFFIXES = {
    ArtworkFormat.BMP: ".bmp",
    ArtworkFormat.JPEG: ".jpg",
    ArtworkFormat.PNG: ".png",
}


@dataclass(frozen=True)
class Artwork:
    """
    One artwork image attached to a track.

    Attributes:
        format: Declared image format.
        data: Raw image bytes.
    """
    format: ArtworkFormat
    data: bytes = field(repr=False)

    def save_to_file(self, path: Path) -> None:
        """Write the image bytes to path, replacing any existing file."""
        path.write_bytes(self.data)


@dataclass(frozen=True)
class TrackMetadata:
    """
    Immutable metadata snapshot of a library track.

    Text fields default to "" and numeric fields to 0 (meaning "not set").
    Sort fields hold the library's sort value; a provider fills them with
    the primary value when the library has no explicit sort value.

    Attributes:
        title / sort_title: Track name.
        artist / sort_artist: Track artist.
        album / sort_album: Album name.
        album_artist / sort_album_artist: Album artist.
        composer / sort_composer: Composer.
        genre: Genre name.
        year: Release year.
        track_number / track_count: Position on the disc and disc length.
        disc_number / disc_count: Disc position and number of discs.
        bpm: Tempo in beats per minute.
        lyrics: Unsynchronized lyrics text.
        comment: Library comment.
        artwork: Embedded artwork images, in library order.
    """
    title: str = ""
    sort_title: str = ""
    artist: str = ""
    sort_artist: str = ""
    album: str = ""
    sort_album: str = ""
    album_artist: str = ""
    sort_album_artist: str = ""
    composer: str = ""
    sort_composer: str = ""
    genre: str = ""
    year: int = 0
    track_number: int = 0
    track_count: int = 0
    disc_number: int = 0
    disc_count: int = 0
    bpm: int = 0
    lyrics: str = ""
    comment: str = ""
    artwork: tuple[Artwork, ...] = ()


@dataclass(frozen=True)
class LibraryTrack:
    """
    A track entry of the library.

    Attributes:
        track_id: Library-local track id (not stable across exports).
        persistent_id: Provider-issued persistent id, 16 hex digits.
        location: Source file path, or None for streaming / missing entries.
        start: Trim start offset in seconds, or None.
        finish: Trim end offset in seconds, or None.
        metadata: Metadata read from the library itself (no lyrics/artwork).
    """
    track_id: int
    persistent_id: str
    location: Path | None = None
    start: float | None = None
    finish: float | None = None
    metadata: TrackMetadata = field(default_factory=TrackMetadata)

    @property
    def is_convertible(self) -> bool:
        """True if the track is backed by a local file."""
        return self.location is not None


@dataclass(frozen=True)
class Playlist:
    """
    A playlist of the library.

    Attributes:
        name: Playlist name as shown in the library.
        persistent_id: Provider-issued persistent id, 16 hex digits.
        tracks: Member tracks in playlist order (duplicates allowed).
    """
    name: str
    persistent_id: str
    tracks: tuple[LibraryTrack, ...] = ()

    @property
    def track_count(self) -> int:
        return len(self.tracks)
