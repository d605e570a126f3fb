"""Scheduled carrier status sync.

Every tick loads the pending delivery records and reconciles them with
their carriers. At most one run is in flight: a tick arriving while a run
is still going is dropped, not queued.

The same guarded runner serves the in-process scheduler thread (started
with the API), the Celery beat task, and the manual "sync now" endpoint.
"""

import logging
import threading
import time
from functools import lru_cache
from typing import Callable, List, Optional

from celery import shared_task
from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from config import settings
from database import SessionLocal, session_scope
from dependencies import get_orchestrator
from domain.delivery_status import is_terminal_status
from models.delivery_record import DeliveryRecord, DeliveryType
from observability.metrics import reconciliation_runs_total
from observability.request_id import run_context
from reconciliation.orchestrator import ReconciliationOrchestrator
from reconciliation.schemas import ReconcileResult, SyncOrder

logger = logging.getLogger(__name__)


class SyncAlreadyRunningError(Exception):
    """A sync run is already in flight."""
    pass


def load_sync_candidates(db: Session) -> List[SyncOrder]:
    """Delivery records worth asking a carrier about.

    Excludes livreur orders, orders without tracking number, and orders
    whose status is already terminal (delivered, returned, cancelled).
    """
    records = (
        db.query(DeliveryRecord)
        .filter(
            func.lower(DeliveryRecord.delivery_type) != DeliveryType.LIVREUR,
            DeliveryRecord.tracking.isnot(None),
            DeliveryRecord.tracking != "",
        )
        .order_by(DeliveryRecord.created_at, DeliveryRecord.id)
        .all()
    )
    # Status equivalence is diacritic-insensitive, so it is checked here
    return [
        SyncOrder(
            row_id=record.row_id,
            tracking=record.tracking.strip(),
            reference=record.reference,
            current_status=record.status,
            delivery_type=record.delivery_type,
            row=dict(record.row_json or {}),
        )
        for record in records
        if record.tracking.strip() and not is_terminal_status(record.status)
    ]


def run_status_sync(
    orchestrator: ReconciliationOrchestrator,
    session_factory: sessionmaker = SessionLocal,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> ReconcileResult:
    """Load the pending orders and reconcile them."""
    with session_scope(session_factory) as db:
        orders = load_sync_candidates(db)

    if not orders:
        logger.info("No pending orders to sync")
        return ReconcileResult()

    logger.info(f"Syncing {len(orders)} pending orders with carriers")
    return orchestrator.reconcile(orders, start_date=start_date, end_date=end_date)


class StatusSyncScheduler:
    """Runs the status sync on a fixed interval, once immediately at start.

    Example:
        scheduler = StatusSyncScheduler(lambda: run_status_sync(orchestrator), 600)
        scheduler.start()
        ...
        scheduler.stop()
    """

    def __init__(self, runner: Callable[[], ReconcileResult], interval_seconds: float = 600):
        self.runner = runner
        self.interval_seconds = interval_seconds
        self._run_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        """True while a sync run is in flight."""
        return self._run_lock.locked()

    def run_once(
        self,
        trigger: str = "manual",
        runner: Optional[Callable[[], ReconcileResult]] = None,
    ) -> ReconcileResult:
        """Run one sync now, under the same guard as scheduled ticks.

        Args:
            trigger: Metric and log label of whoever asked for the run
            runner: Run to execute instead of the scheduled one (e.g. a
                manual sync of an explicit order list)

        Raises:
            SyncAlreadyRunningError: If another run is in flight
            Exception: Whatever the run itself raised
        """
        if not self._run_lock.acquire(blocking=False):
            reconciliation_runs_total.labels(trigger=trigger, outcome="skipped").inc()
            raise SyncAlreadyRunningError("A status sync is already running")

        try:
            with run_context(trigger):
                started = time.monotonic()
                try:
                    result = (runner or self.runner)()
                except Exception:
                    reconciliation_runs_total.labels(trigger=trigger, outcome="error").inc()
                    raise
                reconciliation_runs_total.labels(trigger=trigger, outcome="success").inc()
                logger.info(
                    f"Status sync finished: {len(result.updates)} updates",
                    extra={"duration_ms": round((time.monotonic() - started) * 1000, 2)},
                )
                return result
        finally:
            self._run_lock.release()

    def tick(self, trigger: str = "scheduler") -> Optional[ReconcileResult]:
        """Run one sync unless another run is in flight; never raises.

        Returns:
            The run's ReconcileResult, or None if skipped or failed
        """
        try:
            return self.run_once(trigger)
        except SyncAlreadyRunningError:
            logger.info("Status sync already running, tick skipped")
        except Exception as e:
            logger.error(f"Status sync failed: {e}", exc_info=True)
        return None

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.tick()
            self._stop.wait(self.interval_seconds)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="status-sync", daemon=True)
        self._thread.start()
        logger.info(f"Status sync scheduler started (every {self.interval_seconds}s)")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Status sync scheduler stopped")


@lru_cache()
def get_scheduler() -> StatusSyncScheduler:
    """Process-wide scheduler; its run guard is shared by every trigger."""
    orchestrator = get_orchestrator()
    return StatusSyncScheduler(
        runner=lambda: run_status_sync(orchestrator),
        interval_seconds=settings.STATUS_SYNC_INTERVAL_SECONDS,
    )


@shared_task(name="orders.sync_carrier_statuses", bind=True)
def sync_carrier_statuses_task(self) -> dict:
    """Celery beat entry point for the status sync.

    Returns:
        The reconcile result as a dict, or {"status": "skipped"} when a
        run was already in flight or failed
    """
    result = get_scheduler().tick(trigger="celery")
    if result is None:
        return {"status": "skipped"}
    return {"status": "completed", **result.to_dict()}
