"""
Library provider interface.

A provider is the read-only source of tracks and playlists. The sync
engine only talks to a library through this interface, so the XML export
reader can be swapped for another backend (or a fake in tests).

Thread Safety:
    Providers are only called from the orchestrator thread. Workers
    receive a fully-resolved TrackMetadata snapshot instead.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator

from tune_sync.library.models import LibraryTrack, Playlist, TrackMetadata


class LibraryProvider(ABC):
    """
    Abstract read-only media library.

    Subclasses must enumerate tracks and playlists in library order and
    expose the two 32-bit halves of each object's persistent id.
    """

    @property
    @abstractmethod
    def version(self) -> str:
        """Version string of the application that produced the library."""

    @abstractmethod
    def tracks(self) -> Iterator[LibraryTrack]:
        """Yield every track in library order."""

    @abstractmethod
    def playlists(self) -> Iterator[Playlist]:
        """Yield every playlist in library order."""

    @abstractmethod
    def persistent_id_parts(self, obj: LibraryTrack | Playlist) -> tuple[int, int]:
        """
        Return the (high, low) 32-bit parts of an object's persistent id.

        Raises:
            LibraryError: If the object carries no usable persistent id.
        """

    @abstractmethod
    def metadata(self, track: LibraryTrack) -> TrackMetadata:
        """
        Return the complete metadata snapshot of a track.

        The result includes lyrics and artwork, which may require reading
        the source file.
        """

    def ensure_available(self) -> int:
        """
        Enumerate every track once so lazily-loaded properties are materialized.

        Must run before persistent ids are relied on. Returns the number of
        tracks seen.
        """
        count = 0
        for _ in self.tracks():
            count += 1
        return count
