"""Order status API endpoints"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from dependencies import get_order_status_service
from .ports import SheetWriteError
from .schemas import StatusChangeRequest, StatusChangeResponse
from .service import InvalidStatusError, LocalStatusPersistError, OrderNotFoundError, OrderStatusService
from .status_writer import InvalidRowIdError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/{row_id}/status", response_model=StatusChangeResponse)
def change_order_status(
    row_id: str,
    request: StatusChangeRequest,
    service: OrderStatusService = Depends(get_order_status_service),
):
    """Change an order's status (e.g. mark delivered).

    Stock adjustments run in the background and never fail this call.

    Raises:
        HTTPException 404: If the order has no local record
        HTTPException 400: If the row id is malformed or the status is blank
        HTTPException 502: If the order sheet could not be written
        HTTPException 500: If the local record could not be updated
    """
    try:
        change = service.change_status(row_id, request.status)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (InvalidRowIdError, InvalidStatusError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SheetWriteError as e:
        logger.error(f"Sheet write failed: {e}", extra={"row_id": row_id})
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Order sheet could not be updated: {e}"
        )
    except LocalStatusPersistError as e:
        logger.error(str(e), extra={"row_id": row_id}, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Order sheet updated but local record could not be saved"
        )

    return StatusChangeResponse(**change.to_dict())
