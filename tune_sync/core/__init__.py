"""
Core module for tune-sync.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with multiple outputs
    - progress: Thread-safe progress counters and the Rich progress bar

Usage:
    from tune_sync.core import (
        Config, load_config,
        setup_logging, get_logger,
        TuneSyncError, ConfigError
    )
"""

from tune_sync.core.config import (
    Config,
    EncoderConfig,
    LibraryConfig,
    OutputConfig,
    load_config,
)
from tune_sync.core.exceptions import (
    ConfigError,
    FilesystemError,
    LibraryError,
    MissingSourceFile,
    TagWriteError,
    TranscodeFailure,
    TuneSyncError,
)
from tune_sync.core.logger import (
    get_logger,
    log_conversion_failure,
    setup_logging,
    shutdown_logging,
)
from tune_sync.core.progress import ConversionProgressBar, ProgressTracker

__all__ = [
    # Config
    "Config",
    "LibraryConfig",
    "OutputConfig",
    "EncoderConfig",
    "load_config",
    # Exceptions
    "TuneSyncError",
    "ConfigError",
    "LibraryError",
    "MissingSourceFile",
    "TranscodeFailure",
    "TagWriteError",
    "FilesystemError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_conversion_failure",
    "shutdown_logging",
    # Progress
    "ProgressTracker",
    "ConversionProgressBar",
]
