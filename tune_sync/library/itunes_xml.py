"""
Library provider backed by an iTunes / Music XML export.

iTunes (and Music.app via File > Library > Export Library...) writes the
whole library as an XML property list:

    <dict>
      <key>Application Version</key><string>12.9.5.5</string>
      <key>Tracks</key>
      <dict>
        <key>1234</key>
        <dict>
          <key>Track ID</key><integer>1234</integer>
          <key>Name</key><string>Song</string>
          <key>Persistent ID</key><string>1A2B3C4D5E6F7081</string>
          <key>Track Type</key><string>File</string>
          <key>Location</key><string>file:///Users/me/Music/song.mp3</string>
          ...
        </dict>
      </dict>
      <key>Playlists</key>
      <array>
        <dict>
          <key>Name</key><string>Favorites</string>
          <key>Playlist Persistent ID</key><string>...</string>
          <key>Playlist Items</key>
          <array><dict><key>Track ID</key><integer>1234</integer></dict></array>
        </dict>
      </array>
    </dict>

The file is parsed once with plistlib on first access; afterwards the
provider serves everything from memory.
"""

import plistlib
import re
from collections.abc import Iterator
from dataclasses import replace
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse
from xml.parsers.expat import ExpatError

from tune_sync.core.exceptions import LibraryError
from tune_sync.core.logger import get_logger
from tune_sync.library.embedded import read_embedded_extras
from tune_sync.library.identifiers import split_hex_id
from tune_sync.library.models import LibraryTrack, Playlist, TrackMetadata
from tune_sync.library.provider import LibraryProvider


logger = get_logger(__name__)

# "file://localhost/C:/Music/a.mp3" parses to the path "/C:/Music/a.mp3"
_WINDOWS_DRIVE_PATTERN = re.compile(r"^/[A-Za-z]:")

# Library "Track Type" for tracks backed by a local file
_FILE_TRACK_TYPE = "File"

# (primary key, sort key) pairs; a missing sort value falls back to the primary
_TEXT_FIELDS = {
    "title": ("Name", "Sort Name"),
    "artist": ("Artist", "Sort Artist"),
    "album": ("Album", "Sort Album"),
    "album_artist": ("Album Artist", "Sort Album Artist"),
    "composer": ("Composer", "Sort Composer"),
}

_NUMBER_FIELDS = {
    "year": "Year",
    "track_number": "Track Number",
    "track_count": "Track Count",
    "disc_number": "Disc Number",
    "disc_count": "Disc Count",
    "bpm": "BPM",
}


def location_to_path(location_url: str | None) -> Path | None:
    """
    Convert a library 'Location' file:// URL to a local path.

    Returns None for empty values and for non-file URLs (streams).

    Examples:
        location_to_path("file:///Users/me/Music/My%20Song.mp3")
        # Path("/Users/me/Music/My Song.mp3")
        location_to_path("http://example.com/stream")  # None
    """
    if not location_url:
        return None

    parsed = urlparse(location_url)
    if parsed.scheme != "file":
        return None

    path = unquote(parsed.path)
    if _WINDOWS_DRIVE_PATTERN.match(path):
        path = path[1:]
    return Path(path)


def _parse_trim(value: Any) -> float | None:
    """Library trim offsets are integer milliseconds."""
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value / 1000.0
    return None


def _parse_number(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return 0


def metadata_from_entry(entry: dict[str, Any]) -> TrackMetadata:
    """
    Build the library part of a TrackMetadata from one Tracks entry.

    Lyrics and artwork are left empty; they live in the source file.
    """
    values: dict[str, Any] = {}

    for field_name, (primary_key, sort_key) in _TEXT_FIELDS.items():
        primary = str(entry.get(primary_key) or "")
        values[field_name] = primary
        values[f"sort_{field_name}"] = str(entry.get(sort_key) or primary)

    for field_name, key in _NUMBER_FIELDS.items():
        values[field_name] = _parse_number(entry.get(key))

    values["genre"] = str(entry.get("Genre") or "")
    values["comment"] = str(entry.get("Comments") or "")

    return TrackMetadata(**values)


def track_from_entry(entry: dict[str, Any]) -> LibraryTrack:
    """
    Build a LibraryTrack from one Tracks entry.

    Raises:
        LibraryError: If the entry has no Track ID or no Persistent ID.
    """
    track_id = entry.get("Track ID")
    persistent_id = entry.get("Persistent ID")
    if not isinstance(track_id, int) or not persistent_id:
        raise LibraryError(
            "Library track entry without Track ID or Persistent ID",
            details={"track_id": track_id, "name": entry.get("Name")}
        )

    location = None
    if entry.get("Track Type", _FILE_TRACK_TYPE) == _FILE_TRACK_TYPE:
        location = location_to_path(entry.get("Location"))

    return LibraryTrack(
        track_id=track_id,
        persistent_id=str(persistent_id),
        location=location,
        start=_parse_trim(entry.get("Start Time")),
        finish=_parse_trim(entry.get("Stop Time")),
        metadata=metadata_from_entry(entry),
    )


class ITunesXmlLibrary(LibraryProvider):
    """
    Read-only library over an iTunes / Music XML export.

    Folder playlists are skipped; their tracks are already listed by the
    playlists they contain. Playlist items that reference unknown track
    ids are dropped.

    Attributes:
        xml_path: Path to the XML export.

    Example:
        library = ITunesXmlLibrary(Path("~/Music/iTunes/iTunes Music Library.xml").expanduser())
        for track in library.tracks():
            print(track.persistent_id, track.location)
    """

    def __init__(self, xml_path: Path) -> None:
        self.xml_path = xml_path
        self._version = ""
        self._tracks: dict[int, LibraryTrack] | None = None
        self._playlists: list[Playlist] = []

    def load(self) -> None:
        """
        Parse the XML export. Called implicitly on first access.

        Raises:
            LibraryError: If the file is missing, is not a property list,
                          or does not have the expected structure.
        """
        try:
            with open(self.xml_path, "rb") as f:
                raw = plistlib.load(f)
        except FileNotFoundError as e:
            raise LibraryError(
                f"Library file not found: {self.xml_path}",
                details={"file_path": str(self.xml_path)}
            ) from e
        except (OSError, ExpatError, ValueError) as e:
            raise LibraryError(
                f"Failed to read library file: {e}",
                details={"file_path": str(self.xml_path), "original_error": str(e)}
            ) from e

        if not isinstance(raw, dict) or not isinstance(raw.get("Tracks"), dict):
            raise LibraryError(
                "Library file has no Tracks dictionary",
                details={"file_path": str(self.xml_path)}
            )

        tracks: dict[int, LibraryTrack] = {}
        for entry in raw["Tracks"].values():
            track = track_from_entry(entry)
            tracks[track.track_id] = track

        playlists = []
        for entry in raw.get("Playlists", []):
            if entry.get("Folder"):
                continue
            playlists.append(self._playlist_from_entry(entry, tracks))

        self._version = str(raw.get("Application Version", ""))
        self._tracks = tracks
        self._playlists = playlists

        logger.debug(
            f"Loaded library {self.xml_path}: {len(tracks)} tracks, "
            f"{len(playlists)} playlists"
        )

    def _playlist_from_entry(
        self,
        entry: dict[str, Any],
        tracks: dict[int, LibraryTrack]
    ) -> Playlist:
        members = []
        for item in entry.get("Playlist Items", []):
            track = tracks.get(item.get("Track ID"))
            if track is None:
                logger.debug(
                    f"Playlist '{entry.get('Name')}' references unknown track "
                    f"{item.get('Track ID')}"
                )
                continue
            members.append(track)

        return Playlist(
            name=str(entry.get("Name", "")),
            persistent_id=str(entry.get("Playlist Persistent ID", "")),
            tracks=tuple(members),
        )

    def _ensure_loaded(self) -> dict[int, LibraryTrack]:
        if self._tracks is None:
            self.load()
        return self._tracks

    @property
    def version(self) -> str:
        self._ensure_loaded()
        return self._version

    def tracks(self) -> Iterator[LibraryTrack]:
        yield from self._ensure_loaded().values()

    def playlists(self) -> Iterator[Playlist]:
        self._ensure_loaded()
        yield from self._playlists

    def persistent_id_parts(self, obj: LibraryTrack | Playlist) -> tuple[int, int]:
        try:
            return split_hex_id(obj.persistent_id)
        except ValueError as e:
            raise LibraryError(
                f"Invalid persistent id: {obj.persistent_id!r}",
                details={"persistent_id": obj.persistent_id}
            ) from e

    def metadata(self, track: LibraryTrack) -> TrackMetadata:
        if track.location is None or not track.location.is_file():
            return track.metadata

        extras = read_embedded_extras(track.location)
        return replace(track.metadata, lyrics=extras.lyrics, artwork=extras.artwork)
