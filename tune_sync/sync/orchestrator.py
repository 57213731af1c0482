"""
Sync orchestrator: decides what to convert and dispatches it.

One call to check_sync() is one sync run:

    1. Enumerate every library track once (materializes lazy provider state)
    2. Keep convertible tracks (those with a file location)
    3. Resolve every output path <persistent id>.m4a up front
    4. Create the output directory
    5. Reset progress and create a CompletionGate for all convertible tracks
    6. For each track:
         - output exists and not forced  -> skip (counted immediately)
         - source file vanished          -> MissingSourceFile (counted immediately)
         - otherwise                     -> snapshot metadata, submit ConvertJob
    7. Return the gate without waiting

Failures before step 5 are fatal and raised to the caller; after that,
per-track failures only show up on the gate and in the logs.

Thread Safety:
    check_sync() runs on the calling thread and is the only code that
    talks to the library provider. The pool threads only see ConvertJobs.
"""

import functools
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from tune_sync.core.config import DEFAULT_BITRATE_KBPS, DEFAULT_WORKERS
from tune_sync.core.exceptions import FilesystemError, MissingSourceFile
from tune_sync.core.logger import get_logger, log_conversion_failure
from tune_sync.core.progress import ProgressTracker
from tune_sync.convert.naming import output_path
from tune_sync.convert.tagging import TagRebuilder
from tune_sync.convert.transcoder import Transcoder
from tune_sync.convert.worker import ConversionWorker, ConvertJob, FileWrittenCallback
from tune_sync.library.identifiers import resolve
from tune_sync.library.models import LibraryTrack
from tune_sync.library.provider import LibraryProvider
from tune_sync.sync.gate import CompletionGate
from tune_sync.sync.playlists import PlaylistMaterializer


logger = get_logger(__name__)


@dataclass(frozen=True)
class ConversionConfig:
    """
    Policy for one sync run.

    Attributes:
        bitrate_kbps: Target AAC bitrate.
        force: Convert every track even if its output already exists.
        progress: Counters updated by the run.
    """
    bitrate_kbps: int = DEFAULT_BITRATE_KBPS
    force: bool = False
    progress: ProgressTracker = field(default_factory=ProgressTracker, compare=False)


@dataclass
class SyncStats:
    """
    Dispatch statistics of the last check_sync() call.

    Attributes:
        total: Convertible tracks (the gate's initial count).
        skipped: Outputs that already existed.
        dispatched: Jobs submitted to the pool.
        missing: Tracks whose source file no longer exists.
    """

    total: int = 0
    skipped: int = 0
    dispatched: int = 0
    missing: int = 0


class SyncOrchestrator:
    """
    Runs sync passes over one library with a bounded worker pool.

    The pool is created with the orchestrator and reused by every
    check_sync() call; close() (or leaving the context manager) shuts it
    down after in-flight jobs finish.

    Attributes:
        provider: The library to sync.
        max_workers: Pool capacity (concurrent ffmpeg processes).
        last_stats: SyncStats of the most recent run.

    Example:
        with SyncOrchestrator(library, max_workers=4) as orchestrator:
            gate = orchestrator.check_sync(print, ConversionConfig(), out_dir)
            gate.wait()
            orchestrator.materialize_playlists(out_dir, print)
    """

    def __init__(
        self,
        provider: LibraryProvider,
        transcoder: Transcoder | None = None,
        tagger: TagRebuilder | None = None,
        max_workers: int = DEFAULT_WORKERS
    ) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be positive: {max_workers}")

        self.provider = provider
        self.max_workers = max_workers
        self.last_stats = SyncStats()
        self._worker = ConversionWorker(transcoder or Transcoder(), tagger or TagRebuilder())
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="convert"
        )

    def __enter__(self) -> "SyncOrchestrator":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Wait for in-flight jobs and shut the pool down."""
        self._executor.shutdown(wait=True)

    def check_sync(
        self,
        on_file_written: FileWrittenCallback,
        config: ConversionConfig,
        temp_dir: Path
    ) -> CompletionGate:
        """
        Start a sync run into temp_dir and return its completion gate.

        Args:
            on_file_written: Called with each output path that is ready,
                             immediately for skipped tracks and from a pool
                             thread for converted ones.
            config: Run policy.
            temp_dir: Flat output directory.

        Returns:
            CompletionGate initialized to the number of convertible tracks.

        Raises:
            LibraryError: If the library cannot be enumerated.
            FilesystemError: If temp_dir cannot be created.
        """
        seen = self.provider.ensure_available()

        plan: list[tuple[LibraryTrack, Path]] = []
        for track in self.provider.tracks():
            if track.location is None:
                continue
            plan.append((track, output_path(temp_dir, resolve(self.provider, track))))

        logger.debug(f"Library has {seen} tracks, {len(plan)} convertible")

        try:
            temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(
                f"Cannot create output directory: {temp_dir}",
                details={"directory": str(temp_dir), "original_error": str(e)}
            ) from e

        stats = SyncStats(total=len(plan))
        self.last_stats = stats

        progress = config.progress
        progress.reset(len(plan))
        gate = CompletionGate(len(plan))

        claimed: set[Path] = set()
        for track, target in plan:
            if target in claimed:
                logger.warning(
                    f"Duplicate persistent id {track.persistent_id} "
                    f"({track.metadata.title}), converted once as {target.name}"
                )
                self._complete_immediately(gate, progress, target)
                stats.skipped += 1
                continue
            claimed.add(target)

            if not config.force and target.exists():
                logger.debug(f"Already converted: {target.name}")
                self._complete_immediately(gate, progress, target, on_file_written)
                stats.skipped += 1
                continue

            if not track.location.is_file():
                error = MissingSourceFile(
                    f"Source file not found: {track.location}",
                    details={"input_path": str(track.location), "output_path": str(target)}
                )
                log_conversion_failure(logger, target, track.location, error)
                gate.record_failure(target, error)
                self._complete_immediately(gate, progress, target)
                stats.missing += 1
                continue

            job = ConvertJob(
                input_path=track.location,
                output_path=target,
                bitrate_kbps=config.bitrate_kbps,
                start=track.start,
                finish=track.finish,
                metadata=self.provider.metadata(track),
                progress=progress,
                gate=gate,
                on_file_written=on_file_written,
            )
            future = self._executor.submit(self._worker.run, job)
            future.add_done_callback(functools.partial(_log_unexpected_error, target))
            stats.dispatched += 1

        logger.info(
            f"Sync started: {stats.total} tracks, {stats.skipped} already converted, "
            f"{stats.dispatched} queued with {self.max_workers} workers"
        )
        return gate

    def materialize_playlists(self, temp_dir: Path, on_file_written: FileWrittenCallback) -> None:
        """Write one .m3u file per library playlist into temp_dir."""
        PlaylistMaterializer(self.provider).materialize(temp_dir, on_file_written)

    @staticmethod
    def _complete_immediately(
        gate: CompletionGate,
        progress: ProgressTracker,
        target: Path,
        on_file_written: FileWrittenCallback | None = None
    ) -> None:
        """
        Account for a track that needs no job.

        A raising callback is recorded as that track's failure so the
        remaining tracks are still counted and dispatched.
        """
        try:
            progress.increment()
            if on_file_written is not None:
                on_file_written(target)
        except Exception as e:
            logger.error(f"File-written callback failed for {target.name}: {e}", exc_info=True)
            gate.record_failure(target, e)
        finally:
            gate.count_down()


def _log_unexpected_error(output: Path, future: Future) -> None:
    """Done-callback: report exceptions that escaped ConversionWorker.run()."""
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error(
            f"Unexpected error converting {output.name}: {error}",
            exc_info=(type(error), error, error.__traceback__)
        )
