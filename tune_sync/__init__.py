"""
tune-sync: mirror an iTunes / Music library as a flat folder of .m4a files.

Every track with a local file is converted once to AAC and saved as
<persistent id>.m4a; playlists are written as .m3u files referencing
those names. Re-runs only convert tracks whose output is missing.

Usage:
    from tune_sync import ConversionConfig, ITunesXmlLibrary, SyncOrchestrator

    library = ITunesXmlLibrary(xml_path)
    with SyncOrchestrator(library) as orchestrator:
        gate = orchestrator.check_sync(print, ConversionConfig(), output_dir)
        gate.wait()
        orchestrator.materialize_playlists(output_dir, print)
"""

__version__ = "0.1.0"

from tune_sync.library import ITunesXmlLibrary, LibraryProvider
from tune_sync.sync import (
    CompletionGate,
    ConversionConfig,
    SyncOrchestrator,
    materialize_playlists,
)

__all__ = [
    "__version__",
    "CompletionGate",
    "ConversionConfig",
    "ITunesXmlLibrary",
    "LibraryProvider",
    "SyncOrchestrator",
    "materialize_playlists",
]
