"""
Library module for tune-sync.

This module provides the read-only view of the media library:
    - models: LibraryTrack, Playlist, TrackMetadata, Artwork
    - provider: LibraryProvider abstract base class
    - itunes_xml: provider for iTunes / Music XML exports
    - identifiers: 64-bit persistent identifier resolution
"""

from tune_sync.library.identifiers import combine_parts, resolve, split_hex_id
from tune_sync.library.itunes_xml import ITunesXmlLibrary
from tune_sync.library.models import (
    Artwork,
    ArtworkFormat,
    LibraryTrack,
    Playlist,
    TrackMetadata,
)
from tune_sync.library.provider import LibraryProvider

__all__ = [
    "Artwork",
    "ArtworkFormat",
    "LibraryTrack",
    "Playlist",
    "TrackMetadata",
    "LibraryProvider",
    "ITunesXmlLibrary",
    "combine_parts",
    "resolve",
    "split_hex_id",
]
