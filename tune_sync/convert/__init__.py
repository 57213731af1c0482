"""
Convert module for tune-sync.

Turns one library track into one tagged .m4a file:
    - naming: deterministic output and playlist file names
    - transcoder: ffmpeg invocation
    - tagging: MP4 tag rebuilding from a metadata snapshot
    - worker: ConvertJob and the ConversionWorker that runs it
"""

from tune_sync.convert.naming import output_path, playlist_path, sanitize_filename
from tune_sync.convert.tagging import TagRebuilder
from tune_sync.convert.transcoder import Transcoder
from tune_sync.convert.worker import ConversionWorker, ConvertJob

__all__ = [
    "output_path",
    "playlist_path",
    "sanitize_filename",
    "TagRebuilder",
    "Transcoder",
    "ConversionWorker",
    "ConvertJob",
]
