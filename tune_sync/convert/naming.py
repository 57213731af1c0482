"""
Output file naming.

All converted tracks live in one flat directory and are named after their
64-bit persistent identifier:

    output_directory/
    ├── 1234567890123456789.m4a
    ├── 9876543210987654321.m4a
    ├── Favorites.m3u
    └── Favorites-1.m3u          # second playlist also named "Favorites"

Because the name depends only on the identifier, two runs over the same
library produce the same paths; an existing file means "already converted".
"""

import re
from pathlib import Path


OUTPUT_SUFFIX = ".m4a"
PLAYLIST_SUFFIX = ".m3u"

# Characters that are invalid in filenames on various operating systems
_INVALID_CHARS_PATTERN = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

# Maximum filename length (conservative for cross-platform compatibility)
_MAX_FILENAME_LENGTH = 200


def sanitize_filename(name: str) -> str:
    """
    Sanitize a string for use in a filename.

    Args:
        name: The string to sanitize.

    Returns:
        A sanitized string safe for use in filenames.

    Behavior:
        - Replaces invalid characters with underscores
        - Strips leading/trailing whitespace and dots
        - Truncates to maximum length
        - Returns "Unknown" if result is empty
    """
    if not name:
        return "Unknown"

    result = _INVALID_CHARS_PATTERN.sub("_", name)

    # Strip whitespace and dots (dots at start can hide files on Unix)
    result = result.strip(" .")

    if len(result) > _MAX_FILENAME_LENGTH:
        result = result[:_MAX_FILENAME_LENGTH].rstrip(" .")

    return result if result else "Unknown"


def output_path(directory: Path, identifier: int) -> Path:
    """Return the converted file path for a track identifier."""
    return directory / f"{identifier}{OUTPUT_SUFFIX}"


def output_reference(identifier: int) -> str:
    """Return the playlist line referencing a converted track."""
    return f"./{identifier}{OUTPUT_SUFFIX}"


def playlist_path(directory: Path, name: str) -> Path:
    """
    Return a playlist file path that does not exist yet.

    Tries '<name>.m3u', then '<name>-1.m3u', '<name>-2.m3u', ... The
    result depends on the files already on disk, so callers must write
    each playlist before asking for the next name.

    Example:
        # with Favorites.m3u present
        playlist_path(directory, "Favorites")  # directory / "Favorites-1.m3u"
    """
    stem = sanitize_filename(name)
    candidate = directory / f"{stem}{PLAYLIST_SUFFIX}"

    counter = 0
    while candidate.exists():
        counter += 1
        candidate = directory / f"{stem}-{counter}{PLAYLIST_SUFFIX}"

    return candidate
