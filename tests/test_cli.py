"""Test the command-line interface"""

import plistlib
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from tune_sync.cli import cli

from conftest import FakeTagger, FakeTranscoder


@pytest.fixture
def cli_setup(temp_dir, source_dir, monkeypatch):
    """Config file plus a two-track library with one playlist"""
    monkeypatch.delenv("TUNESYNC_LIBRARY_XML", raising=False)
    monkeypatch.delenv("TUNESYNC_OUTPUT_DIR", raising=False)
    monkeypatch.setattr("tune_sync.core.config.load_dotenv", lambda: False)

    song = source_dir / "song.flac"
    song.write_bytes(b"flac")

    library = temp_dir / "Library.xml"
    with open(library, "wb") as f:
        plistlib.dump({
            "Application Version": "12.9.5.5",
            "Tracks": {
                "1": {
                    "Track ID": 1,
                    "Name": "Song",
                    "Persistent ID": "0000000000000064",
                    "Location": song.as_uri(),
                },
                "2": {
                    "Track ID": 2,
                    "Name": "Stream",
                    "Persistent ID": "00000000000000C8",
                    "Track Type": "URL",
                },
            },
            "Playlists": [
                {
                    "Name": "Mix",
                    "Playlist Persistent ID": "00000000000003E8",
                    "Playlist Items": [{"Track ID": 1}, {"Track ID": 2}],
                },
            ],
        }, f)

    output = temp_dir / "out"
    config = temp_dir / "config.yaml"
    config.write_text(
        f"library:\n  xml_path: {library}\noutput:\n  directory: {output}\n",
        encoding="utf-8"
    )
    return config, output


class TestCli:
    """Test tunesync commands"""

    def test_info(self, cli_setup):
        """Test library statistics output"""
        config, _ = cli_setup
        result = CliRunner().invoke(cli, ["--config", str(config), "info"])

        assert result.exit_code == 0
        assert "12.9.5.5" in result.output
        assert "Convertible tracks: 1" in result.output

    def test_sync(self, cli_setup):
        """Test a full run converts and writes playlists"""
        config, output = cli_setup
        with patch("tune_sync.cli.Transcoder", return_value=FakeTranscoder()), \
                patch("tune_sync.cli.TagRebuilder", return_value=FakeTagger()):
            result = CliRunner().invoke(cli, ["--config", str(config), "sync"])

        assert result.exit_code == 0
        assert (output / "100.m4a").exists()
        assert (output / "Mix.m3u").read_bytes() == b"./100.m4a\n"
        assert list((output / "logs").glob("log_full_*.log"))

    def test_sync_failure_exit_code(self, cli_setup, source_dir):
        """Test a failed track gives exit status 1"""
        config, output = cli_setup
        failing = FakeTranscoder(fail_for=[source_dir / "song.flac"])
        with patch("tune_sync.cli.Transcoder", return_value=failing), \
                patch("tune_sync.cli.TagRebuilder", return_value=FakeTagger()):
            result = CliRunner().invoke(cli, ["--config", str(config), "sync", "--no-playlists"])

        assert result.exit_code == 1
        assert not (output / "Mix.m3u").exists()
        reports = list((output / "logs").glob("conversion_failures_*.log"))
        assert "100.m4a" in reports[0].read_text(encoding="utf-8")

    def test_playlists_only(self, cli_setup):
        """Test playlists command writes .m3u files without converting"""
        config, output = cli_setup
        result = CliRunner().invoke(cli, ["--config", str(config), "playlists"])

        assert result.exit_code == 0
        assert (output / "Mix.m3u").exists()
        assert not (output / "100.m4a").exists()

    def test_missing_config(self, temp_dir):
        """Test configuration error exit status"""
        result = CliRunner().invoke(cli, ["--config", str(temp_dir / "none.yaml"), "info"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_missing_library(self, cli_setup, temp_dir):
        """Test library error exit status"""
        config, _ = cli_setup
        (temp_dir / "Library.xml").unlink()
        result = CliRunner().invoke(cli, ["--config", str(config), "info"])
        assert result.exit_code == 2

    def test_log_directory_not_creatable(self, cli_setup):
        """Test an unwritable log directory gives the filesystem exit status"""
        config, output = cli_setup
        output.mkdir()
        (output / "logs").write_text("not a directory")

        result = CliRunner().invoke(cli, ["--config", str(config), "info"])

        assert result.exit_code == 3
        assert "Filesystem error" in result.output
