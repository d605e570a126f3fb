"""Stock side effects of order status changes.

Newly delivered orders decrement the ordered variant (stock may go
negative); orders returned after delivery get the stock back. These
functions never raise: a product that cannot be matched, or a failing
catalog write, is logged and counted, and the order lifecycle carries on.
"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Callable, Mapping, Optional

from sqlalchemy.orm import Session, sessionmaker

from database import SessionLocal, session_scope
from domain.delivery_status import is_delivered_status, is_returned_status
from domain.inventory import extract_product_info
from matching import CatalogLookup, CatalogMatcher
from observability.metrics import stock_adjustments_total
from .service import StockAdjuster, StockAdjustmentError

logger = logging.getLogger(__name__)

DECREMENT = "decrement"
INCREMENT = "increment"


class MissingProductMemo:
    """Bounded memo of order products that matched nothing in the catalog.

    Owned by one reconciliation run so a product missing from the catalog
    is looked up once per run, not once per order.
    """

    def __init__(self, max_size: int = 512):
        self.max_size = max_size
        self._keys = OrderedDict()
        self._lock = threading.Lock()

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._keys

    def add(self, key) -> None:
        with self._lock:
            self._keys[key] = True
            self._keys.move_to_end(key)
            while len(self._keys) > self.max_size:
                self._keys.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


def _apply_stock_effect(
    operation: str,
    row_id: str,
    row: Optional[Mapping[str, Any]],
    memo: Optional[MissingProductMemo],
    session_factory: sessionmaker,
) -> Optional[int]:
    info = extract_product_info(row)
    if info is None:
        logger.info("No product on order row, stock untouched", extra={"row_id": row_id, "operation": operation})
        stock_adjustments_total.labels(operation=operation, outcome="skipped").inc()
        return None

    lookup = CatalogLookup(product_id=info.product_id, code=info.code, name=info.name, variant=info.variant)
    log_context = {
        "row_id": row_id,
        "operation": operation,
        "code": info.code,
        "product_name": info.name,
        "variant": info.variant,
        "quantity": info.quantity,
    }

    if memo is not None and lookup.memo_key() in memo:
        stock_adjustments_total.labels(operation=operation, outcome="not_found").inc()
        return None

    try:
        with session_scope(session_factory) as db:
            match = CatalogMatcher(db).find(lookup)
            if match is None:
                if memo is not None:
                    memo.add(lookup.memo_key())
                logger.warning("No catalog variant for delivered order product", extra=log_context)
                stock_adjustments_total.labels(operation=operation, outcome="not_found").inc()
                return None

            adjuster = StockAdjuster(db)
            if operation == DECREMENT:
                new_quantity = adjuster.decrement_allow_negative(match.product, match.variant.name, info.quantity)
            else:
                new_quantity = adjuster.increment(match.product, match.variant.name, info.quantity)
    except StockAdjustmentError as e:
        logger.warning(f"Stock adjustment refused: {e}", extra=log_context)
        stock_adjustments_total.labels(operation=operation, outcome="error").inc()
        return None
    except Exception as e:
        logger.error(f"Stock adjustment failed: {e}", extra=log_context, exc_info=True)
        stock_adjustments_total.labels(operation=operation, outcome="error").inc()
        return None

    logger.info(f"Stock {operation} applied, new quantity {new_quantity}", extra=log_context)
    stock_adjustments_total.labels(operation=operation, outcome="applied").inc()
    return new_quantity


def apply_delivery_stock_effect(
    row_id: str,
    row: Optional[Mapping[str, Any]],
    memo: Optional[MissingProductMemo] = None,
    session_factory: sessionmaker = SessionLocal,
) -> Optional[int]:
    """Decrement stock for a newly delivered order (negative stock allowed).

    Returns:
        New variant quantity, or None when nothing was adjusted
    """
    return _apply_stock_effect(DECREMENT, row_id, row, memo, session_factory)


def apply_return_stock_effect(
    row_id: str,
    row: Optional[Mapping[str, Any]],
    memo: Optional[MissingProductMemo] = None,
    session_factory: sessionmaker = SessionLocal,
) -> Optional[int]:
    """Give stock back for an order returned after delivery.

    Returns:
        New variant quantity, or None when nothing was adjusted
    """
    return _apply_stock_effect(INCREMENT, row_id, row, memo, session_factory)


def stock_effect_for_transition(previous_status: Optional[str], new_status: str) -> Optional[Callable]:
    """Pick the stock effect a status change calls for, if any.

    - anything not delivered -> delivered: decrement
    - delivered -> returned: increment
    """
    was_delivered = is_delivered_status(previous_status)
    if is_delivered_status(new_status) and not was_delivered:
        return apply_delivery_stock_effect
    if is_returned_status(new_status) and was_delivered:
        return apply_return_stock_effect
    return None


def schedule_stock_effect(
    dispatcher,
    row_id: str,
    row: Optional[Mapping[str, Any]],
    previous_status: Optional[str],
    new_status: str,
    memo: Optional[MissingProductMemo] = None,
    session_factory: sessionmaker = SessionLocal,
):
    """Dispatch the stock effect of a status change without waiting for it.

    Returns:
        The dispatched Future, or None if the transition has no stock effect
    """
    effect = stock_effect_for_transition(previous_status, new_status)
    if effect is None:
        return None
    label = f"{effect.__name__}:{row_id}"
    return dispatcher.dispatch(label, effect, row_id, row, memo=memo, session_factory=session_factory)
