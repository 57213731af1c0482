"""Test configuration and fixtures"""

import tempfile
import threading
from pathlib import Path

import pytest

from tune_sync.core.exceptions import TranscodeFailure
from tune_sync.library.identifiers import split_hex_id
from tune_sync.library.models import LibraryTrack, Playlist, TrackMetadata
from tune_sync.library.provider import LibraryProvider


def make_track(track_id, identifier, location=None, title="Song"):
    """Build a LibraryTrack whose persistent id combines to identifier."""
    return LibraryTrack(
        track_id=track_id,
        persistent_id=f"{identifier:016X}",
        location=location,
        metadata=TrackMetadata(title=title, sort_title=title),
    )


class FakeLibrary(LibraryProvider):
    """In-memory provider for orchestrator and playlist tests"""

    def __init__(self, tracks, playlists=()):
        self._tracks = list(tracks)
        self._playlists = list(playlists)
        self.ensure_calls = 0
        self.metadata_threads = set()

    @property
    def version(self):
        return "test"

    def tracks(self):
        yield from self._tracks

    def playlists(self):
        yield from self._playlists

    def persistent_id_parts(self, obj):
        return split_hex_id(obj.persistent_id)

    def metadata(self, track):
        self.metadata_threads.add(threading.current_thread().name)
        return track.metadata

    def ensure_available(self):
        self.ensure_calls += 1
        return super().ensure_available()


class FakeTranscoder:
    """Writes a small file instead of running ffmpeg"""

    def __init__(self, fail_for=(), gate=None):
        self.fail_for = {Path(p) for p in fail_for}
        self.calls = []
        self.gate = gate
        self._lock = threading.Lock()

    def transcode(self, input_path, output_path, bitrate_kbps, start=None, finish=None):
        if self.gate is not None:
            self.gate.wait(timeout=5)
        with self._lock:
            self.calls.append((input_path, output_path, bitrate_kbps, start, finish))
        if input_path in self.fail_for:
            output_path.write_bytes(b"partial")
            raise TranscodeFailure("ffmpeg exited with an error")
        output_path.write_bytes(b"m4a data")


class FakeTagger:
    """Records rebuild calls"""

    def __init__(self):
        self.calls = []
        self._lock = threading.Lock()

    def rebuild(self, output_path, metadata):
        with self._lock:
            self.calls.append((output_path, metadata))


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def source_dir(temp_dir):
    """Directory holding fake source audio files"""
    directory = temp_dir / "source"
    directory.mkdir()
    return directory


@pytest.fixture
def sample_library(source_dir):
    """
    Three tracks: ids 100 and 200 have files, the third is a stream.
    One playlist "Favorites" lists 200, the stream, then 100.
    """
    first = source_dir / "first.flac"
    second = source_dir / "second.mp3"
    first.write_bytes(b"flac")
    second.write_bytes(b"mp3")

    track_100 = make_track(1, 100, first, title="First")
    track_200 = make_track(2, 200, second, title="Second")
    stream = make_track(3, 300, None, title="Radio")

    favorites = Playlist(
        name="Favorites",
        persistent_id="00000000000003E8",
        tracks=(track_200, stream, track_100),
    )
    return FakeLibrary([track_100, track_200, stream], [favorites])
