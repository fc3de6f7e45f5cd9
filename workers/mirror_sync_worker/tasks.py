"""Mirror sync worker tasks."""

from __future__ import annotations

from workers.mirror_sync_worker.worker import (
    MirrorSyncWorkerSettings,
    SyncRunResult,
    load_settings,
    run_sync_with_retries,
)


def sync_tick(settings: MirrorSyncWorkerSettings | None = None) -> SyncRunResult:
    """Push the local mirror to the remote store once, for cron-style scheduling."""
    resolved_settings = settings or load_settings()
    return run_sync_with_retries(resolved_settings)
