"""Carrier sync API endpoints"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from dependencies import get_orchestrator
from reconciliation.orchestrator import ReconciliationOrchestrator
from workers.status_sync import StatusSyncScheduler, SyncAlreadyRunningError, get_scheduler, run_status_sync
from .schemas import SyncRunRequest, SyncRunResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/carrier-sync", tags=["carrier-sync"])


@router.post("/run", response_model=SyncRunResponse)
def run_carrier_sync(
    request: SyncRunRequest,
    scheduler: StatusSyncScheduler = Depends(get_scheduler),
    orchestrator: ReconciliationOrchestrator = Depends(get_orchestrator),
):
    """Reconcile orders with their carriers now ("sync now").

    Without an order list the pending delivery records are synced, like a
    scheduled run. The run shares the scheduler's guard.

    Raises:
        HTTPException 409: If a sync is already running
    """
    orders = None if request.orders is None else [order.to_sync_order() for order in request.orders]

    def runner():
        if orders is None:
            return run_status_sync(orchestrator, start_date=request.start_date, end_date=request.end_date)
        return orchestrator.reconcile(orders, start_date=request.start_date, end_date=request.end_date)

    try:
        result = scheduler.run_once(trigger="manual", runner=runner)
    except SyncAlreadyRunningError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return SyncRunResponse(**result.to_dict())
