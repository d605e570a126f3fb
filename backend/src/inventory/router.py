"""Manual stock API endpoints"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database import get_db
from matching import CatalogMatcher, ProductNotFoundError
from observability.metrics import stock_adjustments_total
from .schemas import BulkStockRequest, BulkStockResponse, StockItemRequest, StockItemResult
from .service import (
    InsufficientStockError,
    StockAdjuster,
    StockAdjustmentError,
    VariantNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stock", tags=["stock"])


def _decrement_item(db: Session, item: StockItemRequest) -> StockItemResult:
    result = StockItemResult(
        ok=False,
        code=item.code,
        name=item.name,
        variant=item.variant,
        quantity=item.quantity,
    )
    if (not item.code and not item.name) or not item.variant or not item.quantity or item.quantity <= 0:
        result.error = "invalid parameters"
        return result

    try:
        product = CatalogMatcher(db).resolve_product(code=item.code, name=item.name)
        result.remaining = StockAdjuster(db).decrement_guarded(product, item.variant, item.quantity)
        result.ok = True
        stock_adjustments_total.labels(operation="decrement_guarded", outcome="applied").inc()
    except ProductNotFoundError:
        result.error = "product not found"
    except VariantNotFoundError:
        result.error = "variant not found"
    except InsufficientStockError:
        result.error = "insufficient stock"
    except StockAdjustmentError as e:
        result.error = str(e)

    if not result.ok:
        stock_adjustments_total.labels(operation="decrement_guarded", outcome="error").inc()
    return result


@router.post("/decrement", response_model=BulkStockResponse)
def bulk_decrement(request: BulkStockRequest, db: Session = Depends(get_db)):
    """Decrement stock for several product variants, refusing shortfalls.

    Items are processed independently; one failing item does not stop the
    others.

    Returns:
        200 with per-item results when every item succeeded, 207 otherwise

    Raises:
        HTTPException 400: If no items were sent
    """
    if not request.items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="items must be a non-empty list"
        )

    results = [_decrement_item(db, item) for item in request.items]
    failed = [r for r in results if not r.ok]
    if failed:
        logger.warning(f"Bulk stock decrement: {len(failed)}/{len(results)} items failed")

    payload = BulkStockResponse(results=results)
    return JSONResponse(
        content=payload.model_dump(),
        status_code=status.HTTP_207_MULTI_STATUS if failed else status.HTTP_200_OK,
    )
