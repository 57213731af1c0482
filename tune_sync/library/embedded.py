"""
Lyrics and artwork embedded in source audio files.

Library XML exports carry neither lyrics nor artwork, so both are read
from the tags of the source file itself with mutagen.

Supported tag formats:
    - MP4 / M4A: '©lyr' atom, 'covr' atom (MP4Cover)
    - ID3 (MP3, AIFF, WAV): USLT frames, APIC frames
    - FLAC / Vorbis: LYRICS or UNSYNCEDLYRICS comment, picture blocks

Unreadable files are not an error at this stage: the track still converts,
just without lyrics or artwork, and a warning is logged.
"""

from dataclasses import dataclass
from pathlib import Path

import mutagen
from mutagen.id3 import ID3
from mutagen.mp4 import MP4Cover, MP4Tags

from tune_sync.core.logger import get_logger
from tune_sync.library.models import Artwork, ArtworkFormat


logger = get_logger(__name__)

_VORBIS_LYRICS_KEYS = ("lyrics", "unsyncedlyrics")


@dataclass(frozen=True)
class EmbeddedExtras:
    """Lyrics and artwork found in a source file."""
    lyrics: str = ""
    artwork: tuple[Artwork, ...] = ()


def read_embedded_extras(path: Path) -> EmbeddedExtras:
    """
    Read lyrics and artwork from the tags of an audio file.

    Args:
        path: Source audio file.

    Returns:
        EmbeddedExtras, empty when the file has no tags, is of an
        unsupported type, or cannot be read.
    """
    try:
        audio = mutagen.File(path)
    except (mutagen.MutagenError, OSError) as e:
        logger.warning(f"Could not read embedded tags from {path}: {e}")
        return EmbeddedExtras()

    if audio is None or audio.tags is None:
        return EmbeddedExtras()

    tags = audio.tags

    if isinstance(tags, MP4Tags):
        return _read_mp4(tags)
    if isinstance(tags, ID3):
        return _read_id3(tags)

    # FLAC and Ogg files expose Vorbis comments; only FLAC has picture blocks
    pictures = getattr(audio, "pictures", [])
    return _read_vorbis(tags, pictures)


def _read_mp4(tags: MP4Tags) -> EmbeddedExtras:
    lyrics_values = tags.get("\xa9lyr", [])
    lyrics = str(lyrics_values[0]) if lyrics_values else ""

    artwork = []
    for cover in tags.get("covr", []):
        if cover.imageformat == MP4Cover.FORMAT_PNG:
            image_format = ArtworkFormat.PNG
        elif cover.imageformat == MP4Cover.FORMAT_JPEG:
            image_format = ArtworkFormat.JPEG
        else:
            image_format = ArtworkFormat.UNKNOWN
        artwork.append(Artwork(format=image_format, data=bytes(cover)))

    return EmbeddedExtras(lyrics=lyrics, artwork=tuple(artwork))


def _read_id3(tags: ID3) -> EmbeddedExtras:
    lyrics = ""
    for frame in tags.getall("USLT"):
        if frame.text:
            lyrics = str(frame.text)
            break

    artwork = tuple(
        Artwork(format=ArtworkFormat.from_mime(frame.mime), data=frame.data)
        for frame in tags.getall("APIC")
    )
    return EmbeddedExtras(lyrics=lyrics, artwork=artwork)


def _read_vorbis(tags, pictures) -> EmbeddedExtras:
    lyrics = ""
    for key in _VORBIS_LYRICS_KEYS:
        values = tags.get(key)
        if values:
            lyrics = str(values[0])
            break

    artwork = tuple(
        Artwork(format=ArtworkFormat.from_mime(picture.mime), data=picture.data)
        for picture in pictures
    )
    return EmbeddedExtras(lyrics=lyrics, artwork=artwork)
