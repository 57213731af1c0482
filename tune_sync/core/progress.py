"""
Progress tracking for tune-sync.

Two pieces live here:

    ProgressTracker: thread-safe counters shared by the orchestrator and
        every conversion worker of one sync run. It notifies an optional
        observer after each change.

    ConversionProgressBar: a Rich progress bar the CLI attaches to a
        tracker as its observer.

Usage:
    from tune_sync.core.progress import ConversionProgressBar, ProgressTracker

    with ConversionProgressBar() as bar:
        tracker = ProgressTracker(on_change=bar.update)
        ...
"""

import threading
from typing import Callable, Optional

from rich import get_console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.theme import Theme


ProgressCallback = Callable[[int, int], None]

PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(165,66,129)",
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(165,66,129)",
    "progress.percentage": "white",
})


class ProgressTracker:
    """
    Per-run progress counters (current count, max count).

    Mutated by every worker thread and by the orchestrator's skip path,
    so all updates go through a lock. The observer is called outside the
    lock with the values produced by that update.

    Attributes:
        current: Number of tracks finished so far (converted, skipped or failed).
        maximum: Number of convertible tracks in the run.
    """

    def __init__(self, on_change: Optional[ProgressCallback] = None) -> None:
        self._lock = threading.Lock()
        self._current = 0
        self._maximum = 0
        self._on_change = on_change

    @property
    def current(self) -> int:
        with self._lock:
            return self._current

    @property
    def maximum(self) -> int:
        with self._lock:
            return self._maximum

    def reset(self, maximum: int) -> None:
        """Start a new run: current = 0, maximum = given count."""
        with self._lock:
            self._current = 0
            self._maximum = maximum
        self._notify(0, maximum)

    def increment(self) -> None:
        with self._lock:
            self._current += 1
            current, maximum = self._current, self._maximum
        self._notify(current, maximum)

    def _notify(self, current: int, maximum: int) -> None:
        if self._on_change is not None:
            self._on_change(current, maximum)


class ConversionProgressBar:
    """
    Progress bar for the conversion phase.

    Displays:
    - Description (e.g., "Converting")
    - Progress bar
    - Completed / total count and elapsed time

    Example:
        Converting  ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━  120/348  0:02:13

    update() is safe to call from worker threads; Rich serializes
    task updates internally.
    """

    def __init__(self, description: str = "Converting") -> None:
        self.description = description

        self.console = get_console()

        self.progress = Progress(
            TextColumn("[white]{task.description}"),
            BarColumn(bar_width=40, finished_style="green"),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=False,
            refresh_per_second=10,
        )

        self.task_id: Optional[TaskID] = None
        self._started = False

    def __enter__(self) -> "ConversionProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if not self._started:
            self.console.push_theme(PROGRESS_THEME)
            self.progress.start()
            self.task_id = self.progress.add_task(description=self.description, total=None)
            self._started = True

    def stop(self) -> None:
        if self._started:
            self.progress.stop()
            self.console.pop_theme()
            self._started = False

    def update(self, current: int, maximum: int) -> None:
        """ProgressTracker observer: move the bar to current/maximum."""
        if self.task_id is not None:
            self.progress.update(self.task_id, completed=current, total=maximum)
