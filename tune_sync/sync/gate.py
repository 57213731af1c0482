"""
Completion gate for one sync run.

The orchestrator creates a gate counting every convertible track before
dispatching anything. Each track, whether skipped, converted or failed,
counts the gate down exactly once; callers block on wait() until all of
them are done.

Usage:
    gate = CompletionGate(len(tracks))

    with gate.completion(output_path):
        convert(...)          # counted down even if this raises

    gate.wait()
    for path, error in gate.failures:
        ...
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


class CompletionGate:
    """
    Countdown latch with a failure list.

    Attributes:
        count: Number of completions still outstanding.
        failures: (output path, exception) pairs recorded during the run.
    """

    def __init__(self, count: int) -> None:
        if count < 0:
            raise ValueError(f"Gate count must not be negative: {count}")
        self._count = count
        self._condition = threading.Condition()
        self._failures: list[tuple[Path, Exception]] = []

    @property
    def count(self) -> int:
        with self._condition:
            return self._count

    @property
    def failures(self) -> list[tuple[Path, Exception]]:
        with self._condition:
            return list(self._failures)

    @property
    def is_complete(self) -> bool:
        return self.count == 0

    def count_down(self) -> None:
        """
        Record one completion. Waiters are released when the count hits zero.

        Raises:
            RuntimeError: If called more times than the initial count.
        """
        with self._condition:
            if self._count == 0:
                raise RuntimeError("CompletionGate counted down below zero")
            self._count -= 1
            if self._count == 0:
                self._condition.notify_all()

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until the count reaches zero.

        Returns:
            True if the gate is open, False if timeout expired first.
        """
        with self._condition:
            return self._condition.wait_for(lambda: self._count == 0, timeout=timeout)

    def record_failure(self, output_path: Path, error: Exception) -> None:
        with self._condition:
            self._failures.append((output_path, error))

    @contextmanager
    def completion(self, output_path: Path) -> Iterator[None]:
        """
        Scope one unit of work.

        An exception escaping the block is recorded as a failure for
        output_path and re-raised; the count is decremented in every case.
        """
        try:
            yield
        except Exception as e:
            self.record_failure(output_path, e)
            raise
        finally:
            self.count_down()
