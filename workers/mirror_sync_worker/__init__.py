"""Mirror sync worker module exports."""

from .worker import (
    MirrorSyncWorkerSettings,
    SyncRunResult,
    load_settings,
    run_forever,
    run_sync_once,
    run_sync_with_retries,
)

__all__ = [
    "MirrorSyncWorkerSettings",
    "SyncRunResult",
    "load_settings",
    "run_forever",
    "run_sync_once",
    "run_sync_with_retries",
]
