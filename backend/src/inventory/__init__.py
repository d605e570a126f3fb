"""Inventory - atomic stock adjustments and their delivery side effects"""

from .service import (
    StockAdjuster,
    StockAdjustmentError,
    InvalidQuantityError,
    InsufficientStockError,
    VariantNotFoundError,
    StockConflictError,
)
from .dispatcher import BestEffortDispatcher
from .delivery_effects import (
    MissingProductMemo,
    apply_delivery_stock_effect,
    apply_return_stock_effect,
    schedule_stock_effect,
    stock_effect_for_transition,
)

__all__ = [
    "StockAdjuster",
    "StockAdjustmentError",
    "InvalidQuantityError",
    "InsufficientStockError",
    "VariantNotFoundError",
    "StockConflictError",
    "BestEffortDispatcher",
    "MissingProductMemo",
    "apply_delivery_stock_effect",
    "apply_return_stock_effect",
    "schedule_stock_effect",
    "stock_effect_for_transition",
]
