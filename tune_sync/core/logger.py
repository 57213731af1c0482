"""
Logging configuration for tune-sync.

This module sets up the logging system with multiple outputs:
    - Console: Real-time messages with tqdm-compatible, coloured output
    - log_full.log: Complete log of all events (DEBUG and above)
    - log_errors.log: Only ERROR and CRITICAL level messages
    - conversion_failures.log: Tracks that could not be converted or tagged

Log File Locations:
    All log files are created in the log directory from config.yaml
    (default: {output directory}/logs), one set per run.

Usage:
    from tune_sync.core.logger import setup_logging, get_logger

    setup_logging(log_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Starting sync")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

import colorama
from colorama import Fore, Style
from tqdm import tqdm

from tune_sync.core.exceptions import FilesystemError


# Log file name prefixes (created in the log directory)
LOG_FULL_PREFIX = "log_full"
LOG_ERRORS_PREFIX = "log_errors"
CONVERSION_FAILURES_PREFIX = "conversion_failures"

# Log format for file output (detailed with timestamp and thread)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that prefixes console messages with a coloured level name.

    Colors:
        - DEBUG: Cyan
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bright Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Fore.WHITE)
        return f"{color}{record.levelname}{Style.RESET_ALL}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking progress bars.

    Uses tqdm.write(), which prints above any active bar instead of
    interleaving with its carriage-return updates.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class ConversionFailedHandler(logging.Handler):
    """
    Handler that captures conversion failures for the failure report file.

    Records carrying the 'conversion_failed_*' extra fields are written to
    conversion_failures.log in a simple, human-readable format:

        1234567890123456789.m4a
        /Users/me/Music/Artist/Album/01 Song.flac
        TranscodeFailure: ffmpeg exited with an error

    All other records are ignored.

    Usage:
        log_conversion_failure(logger, output_path, input_path, error)
    """

    def __init__(self, report_path: Path) -> None:
        """
        Args:
            report_path: Path to the conversion_failures.log file.
                         File will be created/overwritten by open().
        """
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "conversion_failed_output"):
            return

        if self.report_file is None:
            return

        try:
            output_name = Path(getattr(record, "conversion_failed_output")).name
            source = getattr(record, "conversion_failed_input", "")
            reason = getattr(record, "conversion_failed_reason", "")

            self.report_file.write(f"{output_name}\n")
            self.report_file.write(f"{source}\n")
            self.report_file.write(f"{reason}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the report file handle. Safe to call multiple times."""
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path, verbose: bool = False) -> None:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any worker threads start.

    Args:
        log_dir: Directory where log files will be created.
        verbose: Show DEBUG messages on the console as well.

    Behavior:
        1. Create log_dir if it doesn't exist
        2. Generate timestamp for this run's log files
        3. Configure root logger level to DEBUG
        4. Console handler (TqdmLoggingHandler), INFO (or DEBUG if verbose)
        5. Full log file handler, DEBUG
        6. Error log file handler, ERROR+ via ErrorOnlyFilter
        7. Conversion failure report handler

    Raises:
        FilesystemError: If log_dir or a log file cannot be created.
    """
    colorama.init()

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    full_handler, error_handler, failures_handler = _open_log_files(log_dir, timestamp)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove any existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    root_logger.addHandler(failures_handler)


def _open_log_files(log_dir: Path, timestamp: str):
    """
    Create log_dir and open this run's three log files.

    Raises:
        FilesystemError: If the directory or a file cannot be created.
    """
    opened: list[logging.Handler] = []
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        full_handler = logging.FileHandler(
            log_dir / f"{LOG_FULL_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
        )
        opened.append(full_handler)
        error_handler = logging.FileHandler(
            log_dir / f"{LOG_ERRORS_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
        )
        opened.append(error_handler)
        failures_handler = ConversionFailedHandler(
            log_dir / f"{CONVERSION_FAILURES_PREFIX}_{timestamp}.log"
        )
        failures_handler.open()
    except OSError as e:
        for handler in opened:
            handler.close()
        raise FilesystemError(
            f"Cannot create log files in {log_dir}",
            details={"directory": str(log_dir), "original_error": str(e)}
        ) from e
    return full_handler, error_handler, failures_handler


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Note:
        Loggers obtained before setup_logging() is called have no
        handlers of their own and only propagate to the root logger.
    """
    return logging.getLogger(name)


def log_conversion_failure(
    logger: logging.Logger,
    output_path: Path,
    input_path: Path | None,
    error: Exception
) -> None:
    """
    Log a track whose conversion failed.

    Logs an ERROR level message and attaches the extra fields that
    ConversionFailedHandler uses to write to conversion_failures.log.

    Example:
        log_conversion_failure(
            logger,
            output_path=Path("/sync/1234.m4a"),
            input_path=Path("/music/song.flac"),
            error=TranscodeFailure("ffmpeg exited with an error")
        )
    """
    reason = f"{type(error).__name__}: {error}"
    logger.error(
        f"Conversion failed: {output_path.name} - {reason}",
        extra={
            "conversion_failed_output": str(output_path),
            "conversion_failed_input": str(input_path) if input_path else "",
            "conversion_failed_reason": reason,
        }
    )


def shutdown_logging() -> None:
    """
    Flush and close all handlers on the root logger.

    Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except OSError:
            pass
        root_logger.removeHandler(handler)
