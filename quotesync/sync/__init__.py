"""Sync infrastructure between the local collection and the remote feed.

Provides the feed client, the remote-wins merge, and the coordinator
that runs manual and periodic sync cycles.
"""

from .coordinator import SyncCoordinator, SyncMode, SyncOutcome, SyncResult
from .merge import dedupe, local_only, merge
from .remote_source import PushResult, RemoteSource

__all__ = [
    "PushResult",
    "RemoteSource",
    "SyncCoordinator",
    "SyncMode",
    "SyncOutcome",
    "SyncResult",
    "dedupe",
    "local_only",
    "merge",
]
