"""Test MP4 tag rebuilding"""

from io import BytesIO
from pathlib import Path
from unittest.mock import patch

import pytest
from mutagen import MutagenError
from mutagen.mp4 import MP4Cover
from PIL import Image

from tune_sync.convert.tagging import TagRebuilder
from tune_sync.core.exceptions import TagWriteError
from tune_sync.library.models import Artwork, ArtworkFormat, TrackMetadata


class FakeMP4:
    """Stands in for mutagen.mp4.MP4 with a plain dict of atoms"""

    def __init__(self, tags=None, save_error=None):
        self.tags = tags
        self.saved = False
        self.save_error = save_error

    def add_tags(self):
        self.tags = {}

    def save(self):
        if self.save_error is not None:
            raise self.save_error
        self.saved = True


def image_bytes(image_format: str) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (4, 4), color=(200, 10, 10)).save(buffer, format=image_format)
    return buffer.getvalue()


def rebuild(metadata, temp_dir, audio=None):
    """Run TagRebuilder against a FakeMP4 and return it"""
    audio = audio or FakeMP4()
    with patch("tune_sync.convert.tagging.MP4", return_value=audio):
        TagRebuilder(temp_dir=temp_dir).rebuild(temp_dir / "100.m4a", metadata)
    return audio


class TestTextFields:
    """Test primary and sort atoms"""

    def test_primary_fields(self, temp_dir):
        """Test title, artist, album, album artist, composer, genre"""
        metadata = TrackMetadata(
            title="Song", sort_title="Song",
            artist="Artist", sort_artist="Artist",
            album="Album", sort_album="Album",
            album_artist="Band", sort_album_artist="Band",
            composer="Writer", sort_composer="Writer",
            genre="Rock",
        )
        tags = rebuild(metadata, temp_dir).tags

        assert tags["\xa9nam"] == ["Song"]
        assert tags["\xa9ART"] == ["Artist"]
        assert tags["\xa9alb"] == ["Album"]
        assert tags["aART"] == ["Band"]
        assert tags["\xa9wrt"] == ["Writer"]
        assert tags["\xa9gen"] == ["Rock"]

    def test_sort_equal_to_primary_is_omitted(self, temp_dir):
        """Test Artist == SortArtist writes no sort-artist atom"""
        metadata = TrackMetadata(artist="Queen", sort_artist="Queen")
        tags = rebuild(metadata, temp_dir).tags
        assert "soar" not in tags

    def test_sort_different_from_primary_is_written(self, temp_dir):
        """Test a distinct sort value"""
        metadata = TrackMetadata(
            artist="The Beatles", sort_artist="Beatles",
            title="A Day", sort_title="Day",
        )
        tags = rebuild(metadata, temp_dir).tags
        assert tags["soar"] == ["Beatles"]
        assert tags["sonm"] == ["Day"]

    def test_stale_atoms_removed(self, temp_dir):
        """Test atoms from a previous rebuild are cleared"""
        audio = FakeMP4(tags={"soar": ["Old"], "\xa9gen": ["Jazz"]})
        tags = rebuild(TrackMetadata(artist="A", sort_artist="A"), temp_dir, audio).tags
        assert "soar" not in tags
        assert "\xa9gen" not in tags


class TestNumericFields:
    """Test year, track, disc and tempo atoms"""

    def test_zero_year_not_written(self, temp_dir):
        """Test Year == 0 writes no year atom"""
        tags = rebuild(TrackMetadata(year=0), temp_dir).tags
        assert "\xa9day" not in tags

    def test_year_written(self, temp_dir):
        """Test Year == 2020"""
        tags = rebuild(TrackMetadata(year=2020), temp_dir).tags
        assert tags["\xa9day"] == ["2020"]

    def test_track_and_disc(self, temp_dir):
        """Test number / count pairs"""
        metadata = TrackMetadata(track_number=3, track_count=12, disc_number=1, disc_count=2)
        tags = rebuild(metadata, temp_dir).tags
        assert tags["trkn"] == [(3, 12)]
        assert tags["disk"] == [(1, 2)]

    def test_partial_pair(self, temp_dir):
        """Test only the number set"""
        tags = rebuild(TrackMetadata(track_number=5), temp_dir).tags
        assert tags["trkn"] == [(5, 0)]
        assert "disk" not in tags

    def test_tempo(self, temp_dir):
        """Test BPM only when positive"""
        assert rebuild(TrackMetadata(bpm=128), temp_dir).tags["tmpo"] == [128]
        assert "tmpo" not in rebuild(TrackMetadata(bpm=0), temp_dir).tags


class TestLyricsAndComment:
    """Test unconditional atoms"""

    def test_always_written(self, temp_dir):
        """Test empty lyrics and comment still produce atoms"""
        tags = rebuild(TrackMetadata(), temp_dir).tags
        assert tags["\xa9lyr"] == [""]
        assert tags["\xa9cmt"] == [""]

    def test_values(self, temp_dir):
        """Test lyrics and comment text"""
        tags = rebuild(TrackMetadata(lyrics="la la", comment="live"), temp_dir).tags
        assert tags["\xa9lyr"] == ["la la"]
        assert tags["\xa9cmt"] == ["live"]


class TestArtwork:
    """Test cover art staging"""

    def test_jpeg_and_png_kept(self, temp_dir):
        """Test JPEG and PNG are embedded with their own format"""
        jpeg = image_bytes("JPEG")
        png = image_bytes("PNG")
        metadata = TrackMetadata(artwork=(
            Artwork(ArtworkFormat.JPEG, jpeg),
            Artwork(ArtworkFormat.PNG, png),
        ))
        covers = rebuild(metadata, temp_dir).tags["covr"]

        assert [c.imageformat for c in covers] == [MP4Cover.FORMAT_JPEG, MP4Cover.FORMAT_PNG]
        assert bytes(covers[0]) == jpeg
        assert bytes(covers[1]) == png

    def test_bmp_reencoded_as_png(self, temp_dir):
        """Test formats MP4 cannot carry become PNG"""
        metadata = TrackMetadata(artwork=(Artwork(ArtworkFormat.BMP, image_bytes("BMP")),))
        covers = rebuild(metadata, temp_dir).tags["covr"]

        assert covers[0].imageformat == MP4Cover.FORMAT_PNG
        with Image.open(BytesIO(bytes(covers[0]))) as image:
            assert image.format == "PNG"

    def test_declared_format_is_not_trusted(self, temp_dir):
        """Test image type comes from the bytes, not the declared format"""
        metadata = TrackMetadata(artwork=(Artwork(ArtworkFormat.UNKNOWN, image_bytes("PNG")),))
        covers = rebuild(metadata, temp_dir).tags["covr"]
        assert covers[0].imageformat == MP4Cover.FORMAT_PNG

    def test_unreadable_image_skipped(self, temp_dir):
        """Test garbage bytes do not fail the rebuild"""
        metadata = TrackMetadata(artwork=(Artwork(ArtworkFormat.JPEG, b"not an image"),))
        tags = rebuild(metadata, temp_dir).tags
        assert "covr" not in tags

    def test_staged_files_removed(self, temp_dir):
        """Test temporary artwork files do not outlive the call"""
        metadata = TrackMetadata(artwork=(
            Artwork(ArtworkFormat.PNG, image_bytes("PNG")),
            Artwork(ArtworkFormat.JPEG, b"broken"),
        ))
        rebuild(metadata, temp_dir)
        assert list(temp_dir.iterdir()) == []


class TestErrors:
    """Test failures become TagWriteError"""

    def test_open_failure(self, temp_dir):
        """Test a file mutagen cannot parse"""
        with patch("tune_sync.convert.tagging.MP4", side_effect=MutagenError("bad atom")):
            with pytest.raises(TagWriteError):
                TagRebuilder(temp_dir=temp_dir).rebuild(temp_dir / "x.m4a", TrackMetadata())

    def test_save_failure(self, temp_dir):
        """Test a locked file"""
        audio = FakeMP4(save_error=OSError("locked"))
        with pytest.raises(TagWriteError):
            rebuild(TrackMetadata(), temp_dir, audio)

    def test_saved(self, temp_dir):
        """Test successful rebuild persists the file"""
        assert rebuild(TrackMetadata(title="x"), temp_dir).saved is True

    def test_real_file_that_is_not_mp4(self, temp_dir):
        """Test a real mutagen open of a non-MP4 file"""
        path = temp_dir / "bad.m4a"
        path.write_bytes(b"definitely not mp4")
        with pytest.raises(TagWriteError):
            TagRebuilder(temp_dir=temp_dir).rebuild(path, TrackMetadata())

    def test_missing_file(self, temp_dir):
        """Test output that was never written"""
        with pytest.raises(TagWriteError):
            TagRebuilder(temp_dir=temp_dir).rebuild(Path(temp_dir / "none.m4a"), TrackMetadata())


class TestArtworkStaging:
    """Test staged artwork file names"""

    @pytest.mark.parametrize("image_format, suffix", [
        (ArtworkFormat.BMP, ".bmp"),
        (ArtworkFormat.JPEG, ".jpg"),
        (ArtworkFormat.PNG, ".png"),
        (ArtworkFormat.UNKNOWN, ".jpg"),
    ])
    def test_suffix(self, image_format, suffix):
        """Test suffix follows the declared format, JPEG when unknown"""
        assert image_format.suffix == suffix

    def test_staged_names(self, temp_dir):
        """Test first image is <stem><suffix>, later ones <stem>-<n><suffix>"""
        staged = []

        def record(artwork, path):
            staged.append(path)
            path.write_bytes(artwork.data)

        metadata = TrackMetadata(artwork=(
            Artwork(ArtworkFormat.BMP, image_bytes("BMP")),
            Artwork(ArtworkFormat.UNKNOWN, image_bytes("JPEG")),
        ))
        with patch.object(Artwork, "save_to_file", autospec=True, side_effect=record):
            covers = rebuild(metadata, temp_dir).tags["covr"]

        assert [path.name for path in staged] == ["100.bmp", "100-1.jpg"]
        assert all(path.parent == temp_dir for path in staged)
        assert len(covers) == 2

    @pytest.mark.parametrize("mime, expected", [
        ("image/jpeg", ArtworkFormat.JPEG),
        ("image/jpg", ArtworkFormat.JPEG),
        ("image/PNG", ArtworkFormat.PNG),
        ("image/x-ms-bmp", ArtworkFormat.BMP),
        ("image/gif", ArtworkFormat.UNKNOWN),
        ("", ArtworkFormat.UNKNOWN),
        (None, ArtworkFormat.UNKNOWN),
    ])
    def test_from_mime(self, mime, expected):
        """Test MIME types reported by source tags"""
        assert ArtworkFormat.from_mime(mime) == expected
