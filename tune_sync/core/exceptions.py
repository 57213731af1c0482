"""
Exception classes for tune-sync.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary, so failures can be shown to the user and logged with context.

Exception Hierarchy:
    TuneSyncError (base)
        ConfigError - Configuration file issues
        LibraryError - Library export cannot be read
        MissingSourceFile - Track location does not resolve to a file
        TranscodeFailure - ffmpeg failed for one track
        TagWriteError - Output container cannot be opened or saved
        FilesystemError - Directory, deletion or write failures
"""


class TuneSyncError(Exception):
    """
    Base exception for all tune-sync errors.
    
    All custom exceptions in this project inherit from this class,
    allowing callers to catch all tune-sync errors with a single
    except clause if desired.
    
    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., paths).
    
    Example:
        try:
            # some operation
        except TuneSyncError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """
    
    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.
        
        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'input_path': Source file of the track
                     - 'output_path': Converted file being written
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(TuneSyncError):
    """
    Raised when there's an issue with the configuration file.
    
    This is a CRITICAL error that should stop program execution.
    
    Common causes:
        - config.yaml not found
        - config.yaml has invalid YAML syntax
        - Required fields missing (library.xml_path, output.directory)
        - Invalid field values (e.g., zero bitrate)
    """
    pass


class LibraryError(TuneSyncError):
    """
    Raised when the library export cannot be read.
    
    This is a CRITICAL error: it happens before any conversion is
    dispatched and aborts the whole run.
    
    Common causes:
        - Library XML file not found
        - File is not a valid property list
        - Unexpected structure (no Tracks dictionary)
    """
    pass


class MissingSourceFile(TuneSyncError):
    """
    Raised when a track's location does not exist on disk.
    
    This is a NON-CRITICAL error - only the affected track is skipped.
    
    Typically happens when the library was edited (file moved or deleted)
    after the export was written.
    """
    pass


class TranscodeFailure(TuneSyncError):
    """
    Raised when ffmpeg cannot convert a track.
    
    This is a NON-CRITICAL error - the program continues with other tracks.
    
    Common causes:
        - ffmpeg binary not installed or not on PATH
        - Source file is corrupted or in an unsupported format
        - Non-zero exit status or no output file written
        - Disk full or permission denied on the output directory
    
    Example:
        raise TranscodeFailure(
            "ffmpeg exited with an error",
            details={
                'input_path': '/music/song.flac',
                'output_path': '/sync/1234.m4a',
                'stderr': '...'
            }
        )
    """
    pass


class TagWriteError(TuneSyncError):
    """
    Raised when tags cannot be written into a converted file.
    
    This is a NON-CRITICAL error for the run, but the affected output is
    discarded so the next run converts it again.
    
    Common causes:
        - Output file missing or not a valid MP4 container
        - File locked by another process
        - Permission denied or disk full during save
    """
    pass


class FilesystemError(TuneSyncError):
    """
    Raised when the output directory cannot be prepared or written.
    
    Covers directory creation, deletion of stale playlist files, and
    playlist file writes. Directory preparation failures are CRITICAL.
    """
    pass
