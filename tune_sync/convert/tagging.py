"""
Tag rebuilding for converted files.

After ffmpeg has written a bare .m4a file, the TagRebuilder writes the
library metadata into its iTunes-style MP4 atoms with mutagen.

Atom mapping:
    title        ©nam    sort title         sonm
    artist       ©ART    sort artist        soar
    album        ©alb    sort album         soal
    album artist aART    sort album artist  soaa
    composer     ©wrt    sort composer      soco
    genre        ©gen    year               ©day
    track        trkn    disc               disk
    tempo        tmpo    lyrics             ©lyr
    comment      ©cmt    artwork            covr

Rules:
    - Sort atoms are only written when they differ from the primary value
    - Year, track, disc and tempo are only written when positive
    - Lyrics and comment are always written (empty string when unset)
    - Artwork is staged through a temporary file and loaded with Pillow;
      MP4 cover atoms only carry JPEG or PNG, so other formats (BMP) are
      re-encoded to PNG

The same metadata always produces the same atoms, so a re-converted track
gets identical tags.
"""

import tempfile
from io import BytesIO
from pathlib import Path

from mutagen import MutagenError
from mutagen.mp4 import MP4, MP4Cover
from PIL import Image, UnidentifiedImageError

from tune_sync.core.exceptions import TagWriteError
from tune_sync.core.logger import get_logger
from tune_sync.library.models import Artwork, TrackMetadata


logger = get_logger(__name__)

# (primary atom, sort atom, metadata field)
_TEXT_ATOMS = (
    ("\xa9nam", "sonm", "title"),
    ("\xa9ART", "soar", "artist"),
    ("\xa9alb", "soal", "album"),
    ("aART", "soaa", "album_artist"),
    ("\xa9wrt", "soco", "composer"),
)

GENRE_ATOM = "\xa9gen"
YEAR_ATOM = "\xa9day"
TRACK_ATOM = "trkn"
DISC_ATOM = "disk"
TEMPO_ATOM = "tmpo"
LYRICS_ATOM = "\xa9lyr"
COMMENT_ATOM = "\xa9cmt"
COVER_ATOM = "covr"


class TagRebuilder:
    """
    Writes a TrackMetadata snapshot into a converted MP4 file.

    Safe to share between worker threads as long as two threads never
    rebuild the same output path at once (output paths are unique per
    track).

    Attributes:
        temp_dir: Directory for staging artwork files. Defaults to the
                  system temporary directory.
    """

    def __init__(self, temp_dir: Path | None = None) -> None:
        self.temp_dir = temp_dir or Path(tempfile.gettempdir())

    def rebuild(self, output_path: Path, metadata: TrackMetadata) -> None:
        """
        Replace the tags of output_path with metadata.

        Args:
            output_path: Freshly converted .m4a file.
            metadata: Snapshot to write.

        Raises:
            TagWriteError: If the file cannot be opened as MP4 or saved.
        """
        try:
            audio = MP4(str(output_path))
        except (MutagenError, OSError) as e:
            raise TagWriteError(
                f"Cannot open converted file: {e}",
                details={"output_path": str(output_path), "original_error": str(e)}
            ) from e

        # MP4 has a single tag format (the ilst atom), so no other tag
        # types can appear here that were not already on disk
        if audio.tags is None:
            audio.add_tags()
        tags = audio.tags

        for primary_atom, sort_atom, field_name in _TEXT_ATOMS:
            primary = getattr(metadata, field_name)
            sort_value = getattr(metadata, f"sort_{field_name}")
            _set_or_remove(tags, primary_atom, [primary] if primary else None)
            _set_or_remove(
                tags,
                sort_atom,
                [sort_value] if sort_value and sort_value != primary else None
            )

        _set_or_remove(tags, GENRE_ATOM, [metadata.genre] if metadata.genre else None)
        _set_or_remove(tags, YEAR_ATOM, [str(metadata.year)] if metadata.year > 0 else None)
        _set_or_remove(tags, TRACK_ATOM, _number_pair(metadata.track_number, metadata.track_count))
        _set_or_remove(tags, DISC_ATOM, _number_pair(metadata.disc_number, metadata.disc_count))
        _set_or_remove(tags, TEMPO_ATOM, [metadata.bpm] if metadata.bpm > 0 else None)

        tags[LYRICS_ATOM] = [metadata.lyrics or ""]
        tags[COMMENT_ATOM] = [metadata.comment or ""]

        stem = output_path.stem
        covers = []
        for index, artwork in enumerate(metadata.artwork):
            cover = self._load_cover(artwork, stem, index)
            if cover is not None:
                covers.append(cover)
        _set_or_remove(tags, COVER_ATOM, covers or None)

        try:
            audio.save()
        except (MutagenError, OSError) as e:
            raise TagWriteError(
                f"Cannot save tags: {e}",
                details={"output_path": str(output_path), "original_error": str(e)}
            ) from e

    def _load_cover(self, artwork: Artwork, stem: str, index: int) -> MP4Cover | None:
        """
        Stage one artwork image on disk and load it as an MP4 cover.

        The temporary file only exists for the duration of this call.
        Returns None (with a warning) for images Pillow cannot read.
        """
        name = stem if index == 0 else f"{stem}-{index}"
        staged = self.temp_dir / f"{name}{artwork.format.suffix}"

        try:
            artwork.save_to_file(staged)
            with Image.open(staged) as image:
                image_format = image.format
                if image_format == "JPEG":
                    return MP4Cover(staged.read_bytes(), imageformat=MP4Cover.FORMAT_JPEG)
                if image_format == "PNG":
                    return MP4Cover(staged.read_bytes(), imageformat=MP4Cover.FORMAT_PNG)

                buffer = BytesIO()
                image.save(buffer, format="PNG")
                logger.debug(f"Re-encoded {image_format} artwork of {stem} to PNG")
                return MP4Cover(buffer.getvalue(), imageformat=MP4Cover.FORMAT_PNG)
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Skipping unreadable artwork of {stem}: {e}")
            return None
        finally:
            try:
                staged.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove staged artwork {staged}: {e}")


def _number_pair(number: int, count: int) -> list[tuple[int, int]] | None:
    """trkn/disk value; None when neither part is set."""
    number = number if number > 0 else 0
    count = count if count > 0 else 0
    if number == 0 and count == 0:
        return None
    return [(number, count)]


def _set_or_remove(tags, atom: str, value) -> None:
    if value is None:
        if atom in tags:
            del tags[atom]
    else:
        tags[atom] = value
