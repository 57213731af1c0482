"""
Playlist materialization.

Writes one plain M3U file per library playlist into the output
directory. Every line references a converted track by identifier:

    ./1234567890123456789.m4a
    ./9876543210987654321.m4a

Files are UTF-8 without a byte-order mark and end with a single newline.
Existing .m3u files are deleted first, so the directory always mirrors
the library's current playlists. Tracks without a file location are left
out of the playlist body.
"""

from collections.abc import Callable
from pathlib import Path

from tune_sync.core.exceptions import FilesystemError
from tune_sync.core.logger import get_logger
from tune_sync.convert.naming import PLAYLIST_SUFFIX, output_reference, playlist_path
from tune_sync.library.identifiers import resolve
from tune_sync.library.models import Playlist
from tune_sync.library.provider import LibraryProvider


logger = get_logger(__name__)


class PlaylistMaterializer:
    """
    Writes the library's playlists as .m3u files.

    Attributes:
        provider: The library whose playlists are written.
    """

    def __init__(self, provider: LibraryProvider) -> None:
        self.provider = provider

    def materialize(self, temp_dir: Path, on_file_written: Callable[[Path], None]) -> list[Path]:
        """
        Replace every playlist file in temp_dir.

        Args:
            temp_dir: Output directory (created if missing).
            on_file_written: Called with each playlist file after it is written.

        Returns:
            Written playlist paths in library order.

        Raises:
            FilesystemError: If the directory cannot be prepared or a
                             playlist cannot be written.
        """
        try:
            temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(
                f"Cannot create output directory: {temp_dir}",
                details={"directory": str(temp_dir), "original_error": str(e)}
            ) from e

        removed = self._remove_existing(temp_dir)
        if removed:
            logger.debug(f"Removed {removed} old playlist files")

        written = []
        for playlist in self.provider.playlists():
            path = playlist_path(temp_dir, playlist.name)
            content = self.render(playlist)

            try:
                path.write_bytes(content.encode("utf-8"))
            except OSError as e:
                raise FilesystemError(
                    f"Cannot write playlist '{playlist.name}': {e}",
                    details={"playlist_path": str(path), "original_error": str(e)}
                ) from e

            logger.debug(f"Wrote playlist {path.name} ({playlist.track_count} entries)")
            written.append(path)
            on_file_written(path)

        logger.info(f"Wrote {len(written)} playlists")
        return written

    def render(self, playlist: Playlist) -> str:
        """Return the file content for one playlist."""
        lines = [
            output_reference(resolve(self.provider, track))
            for track in playlist.tracks
            if track.location is not None
        ]
        return "\n".join(lines) + "\n"

    @staticmethod
    def _remove_existing(temp_dir: Path) -> int:
        removed = 0
        for entry in temp_dir.iterdir():
            if entry.suffix.lower() != PLAYLIST_SUFFIX or not entry.is_file():
                continue
            try:
                entry.unlink()
            except OSError as e:
                raise FilesystemError(
                    f"Cannot delete old playlist {entry.name}: {e}",
                    details={"playlist_path": str(entry), "original_error": str(e)}
                ) from e
            removed += 1
        return removed


def materialize_playlists(
    provider: LibraryProvider,
    temp_dir: Path,
    on_file_written: Callable[[Path], None]
) -> list[Path]:
    """Write the playlists of provider into temp_dir. See PlaylistMaterializer."""
    return PlaylistMaterializer(provider).materialize(temp_dir, on_file_written)
