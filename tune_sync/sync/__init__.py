"""
Sync module for tune-sync.

    - gate: CompletionGate counting finished tracks of a run
    - orchestrator: SyncOrchestrator.check_sync() and ConversionConfig
    - playlists: .m3u playlist materialization
"""

from tune_sync.sync.gate import CompletionGate
from tune_sync.sync.playlists import PlaylistMaterializer, materialize_playlists
from tune_sync.sync.orchestrator import ConversionConfig, SyncOrchestrator, SyncStats

__all__ = [
    "CompletionGate",
    "ConversionConfig",
    "PlaylistMaterializer",
    "SyncOrchestrator",
    "SyncStats",
    "materialize_playlists",
]
