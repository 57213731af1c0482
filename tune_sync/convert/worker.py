"""
Conversion worker: one track from source file to tagged .m4a.

A ConvertJob is built on the orchestrator thread and carries everything
the worker needs, including a resolved metadata snapshot, so the worker
never touches the library provider.

Job lifecycle (one pool thread, start to finish):
    1. Transcode input -> output with ffmpeg
    2. Rebuild the output's tags from the snapshot
    3. Call the per-file-written callback
    4. Increment the run's ProgressTracker
    5. Count down the run's CompletionGate

Steps 4 and 5 run on every exit path. A failing job removes its partial
output, is logged to the conversion failure report, and is recorded on
the gate; it never affects other jobs.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from tune_sync.core.exceptions import MissingSourceFile, TagWriteError, TranscodeFailure
from tune_sync.core.logger import get_logger, log_conversion_failure
from tune_sync.core.progress import ProgressTracker
from tune_sync.convert.tagging import TagRebuilder
from tune_sync.convert.transcoder import Transcoder
from tune_sync.library.models import TrackMetadata

if TYPE_CHECKING:
    from tune_sync.sync.gate import CompletionGate


logger = get_logger(__name__)

FileWrittenCallback = Callable[[Path], None]


@dataclass(frozen=True)
class ConvertJob:
    """
    Everything needed to convert one track.

    Attributes:
        input_path: Source audio file.
        output_path: Destination <persistent id>.m4a path.
        bitrate_kbps: Target AAC bitrate.
        start: Trim start in seconds, or None.
        finish: Trim end in seconds, or None.
        metadata: Fully resolved metadata snapshot.
        progress: The run's shared progress counters.
        gate: The run's completion gate.
        on_file_written: Called with output_path after a successful conversion.
    """
    input_path: Path
    output_path: Path
    bitrate_kbps: int
    start: float | None
    finish: float | None
    metadata: TrackMetadata = field(repr=False)
    progress: ProgressTracker = field(repr=False, compare=False)
    gate: "CompletionGate" = field(repr=False, compare=False)
    on_file_written: FileWrittenCallback | None = field(default=None, repr=False, compare=False)


class ConversionWorker:
    """
    Runs ConvertJobs. One instance is shared by all pool threads.

    Attributes:
        transcoder: Produces the .m4a file.
        tagger: Writes tags into it.
    """

    def __init__(self, transcoder: Transcoder, tagger: TagRebuilder) -> None:
        self.transcoder = transcoder
        self.tagger = tagger

    def run(self, job: ConvertJob) -> bool:
        """
        Convert one track.

        Returns:
            True if the output was written and tagged, False if the job
            failed with a per-track error (already logged and recorded).

        Raises:
            Exception: Anything unexpected is recorded on the gate and
                       re-raised into the pool future.
        """
        with job.gate.completion(job.output_path):
            try:
                try:
                    self._convert(job)
                except (MissingSourceFile, TranscodeFailure, TagWriteError) as e:
                    _discard(job.output_path)
                    log_conversion_failure(logger, job.output_path, job.input_path, e)
                    job.gate.record_failure(job.output_path, e)
                    return False
                except Exception:
                    _discard(job.output_path)
                    raise

                if job.on_file_written is not None:
                    job.on_file_written(job.output_path)
                return True
            finally:
                job.progress.increment()

    def _convert(self, job: ConvertJob) -> None:
        self.transcoder.transcode(
            job.input_path,
            job.output_path,
            job.bitrate_kbps,
            start=job.start,
            finish=job.finish,
        )
        self.tagger.rebuild(job.output_path, job.metadata)
        logger.debug(f"Converted {job.input_path.name} -> {job.output_path.name}")


def _discard(output_path: Path) -> None:
    """Remove a partial output so the next run converts the track again."""
    try:
        output_path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove failed output {output_path}: {e}")
