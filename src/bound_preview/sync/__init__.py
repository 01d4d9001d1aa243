"""
Live preview synchronization.

Modules:
    fetchers        In-process and HTTP (httpx) fetch boundaries
    synchronizer    Debounced, per-route coalescing sync state machine
"""

from bound_preview.sync.fetchers import Fetcher, HttpFetcher, ServerFetcher
from bound_preview.sync.synchronizer import (
    RESOURCE_SYNCED,
    SYNC_FAILED,
    SYNC_HALTED,
    SYNC_SETTLED,
    LivePreviewSynchronizer,
    SyncState,
)

__all__ = [
    "Fetcher",
    "HttpFetcher",
    "LivePreviewSynchronizer",
    "RESOURCE_SYNCED",
    "SYNC_FAILED",
    "SYNC_HALTED",
    "SYNC_SETTLED",
    "ServerFetcher",
    "SyncState",
]
