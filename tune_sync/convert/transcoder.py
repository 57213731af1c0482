"""
Audio transcoding through ffmpeg.

Every convertible track is re-encoded to AAC in an MP4 (.m4a) container.
The command is built with ffmpeg-python and run as a blocking subprocess
on the calling worker thread:

    ffmpeg [-ss START] [-to END] -i INPUT -b:a 256k -acodec aac
           -map_metadata -1 -vn OUTPUT -y

Source tags are dropped (-map_metadata -1) and embedded cover streams are
ignored (-vn); the TagRebuilder writes both back afterwards from the
library metadata.

Contract:
    On success OUTPUT exists and is a decodable MP4 file.
    On failure a TranscodeFailure (or MissingSourceFile) is raised and no
    file is left at OUTPUT.
"""

import shutil
from pathlib import Path

import ffmpeg

from tune_sync.core.exceptions import MissingSourceFile, TranscodeFailure
from tune_sync.core.logger import get_logger


logger = get_logger(__name__)

AUDIO_CODEC = "aac"

# Keep the error message readable; the full stderr goes to the debug log
_STDERR_TAIL_LENGTH = 500


def find_ffmpeg() -> str | None:
    """Find ffmpeg binary on PATH. Returns path or None."""
    return shutil.which("ffmpeg")


class Transcoder:
    """
    Runs ffmpeg for one track at a time.

    Stateless apart from the binary path, so one instance is shared by all
    worker threads.

    Attributes:
        ffmpeg_path: Explicit ffmpeg binary, or None to look it up on PATH.
    """

    def __init__(self, ffmpeg_path: str | None = None) -> None:
        self.ffmpeg_path = ffmpeg_path

    def build_stream(
        self,
        input_path: Path,
        output_path: Path,
        bitrate_kbps: int,
        start: float | None = None,
        finish: float | None = None
    ):
        """
        Build the ffmpeg-python stream for one conversion.

        Trim offsets are input options so ffmpeg seeks before decoding.
        """
        input_kwargs = {}
        if start is not None:
            input_kwargs["ss"] = start
        if finish is not None:
            input_kwargs["to"] = finish

        stream = ffmpeg.input(str(input_path), **input_kwargs)
        stream = ffmpeg.output(
            stream,
            str(output_path),
            acodec=AUDIO_CODEC,
            audio_bitrate=f"{bitrate_kbps}k",
            map_metadata=-1,
            vn=None,
        )
        return stream.overwrite_output()

    def transcode(
        self,
        input_path: Path,
        output_path: Path,
        bitrate_kbps: int,
        start: float | None = None,
        finish: float | None = None
    ) -> None:
        """
        Convert input_path to an AAC .m4a file at output_path.

        Args:
            input_path: Source audio file.
            output_path: Destination file, overwritten if present.
            bitrate_kbps: Target AAC bitrate.
            start: Optional trim start in seconds.
            finish: Optional trim end in seconds.

        Raises:
            MissingSourceFile: If input_path does not exist.
            TranscodeFailure: If ffmpeg is missing, fails, or writes nothing.
        """
        if not input_path.is_file():
            raise MissingSourceFile(
                f"Source file not found: {input_path}",
                details={"input_path": str(input_path), "output_path": str(output_path)}
            )

        binary = self.ffmpeg_path or find_ffmpeg()
        if not binary:
            raise TranscodeFailure(
                "ffmpeg not found (install it or set conversion.ffmpeg)",
                details={"input_path": str(input_path)}
            )

        stream = self.build_stream(input_path, output_path, bitrate_kbps, start, finish)
        logger.debug(f"Transcoding {input_path} -> {output_path.name}")

        try:
            ffmpeg.run(stream, cmd=binary, capture_stdout=True, capture_stderr=True)
        except ffmpeg.Error as e:
            stderr = (e.stderr or b"").decode("utf-8", errors="replace")
            logger.debug(f"ffmpeg stderr for {input_path}:\n{stderr}")
            _remove_partial(output_path)
            raise TranscodeFailure(
                "ffmpeg exited with an error",
                details={
                    "input_path": str(input_path),
                    "output_path": str(output_path),
                    "stderr": stderr[-_STDERR_TAIL_LENGTH:],
                }
            ) from e
        except OSError as e:
            _remove_partial(output_path)
            raise TranscodeFailure(
                f"Could not run ffmpeg: {e}",
                details={"input_path": str(input_path), "original_error": str(e)}
            ) from e

        if not output_path.exists() or output_path.stat().st_size == 0:
            _remove_partial(output_path)
            raise TranscodeFailure(
                "ffmpeg reported success but wrote no output",
                details={"input_path": str(input_path), "output_path": str(output_path)}
            )


def _remove_partial(output_path: Path) -> None:
    try:
        output_path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove partial output {output_path}: {e}")
