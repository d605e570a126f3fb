"""Background workers: scheduled carrier status sync.

The sync runs either in-process (StatusSyncScheduler, started with the
API) or through Celery beat (workers.celery_app).
"""

from .status_sync import (
    StatusSyncScheduler,
    SyncAlreadyRunningError,
    load_sync_candidates,
    run_status_sync,
    get_scheduler,
    sync_carrier_statuses_task,
)

__all__ = [
    "StatusSyncScheduler",
    "SyncAlreadyRunningError",
    "load_sync_candidates",
    "run_status_sync",
    "get_scheduler",
    "sync_carrier_statuses_task",
]
