"""Orders - status writes into the order sheet and the local record"""

from .ports import OrderSheetPort, SheetWriteError, UnconfiguredSheet
from .status_writer import SheetStatusWriter, HeaderRowCache, InvalidRowIdError, parse_row_id, column_letter
from .service import (
    OrderStatusService,
    OrderSnapshot,
    StatusChange,
    OrderNotFoundError,
    InvalidStatusError,
    LocalStatusPersistError,
    resolve_status_label,
)

__all__ = [
    "OrderSheetPort",
    "SheetWriteError",
    "UnconfiguredSheet",
    "SheetStatusWriter",
    "HeaderRowCache",
    "InvalidRowIdError",
    "parse_row_id",
    "column_letter",
    "OrderStatusService",
    "OrderSnapshot",
    "StatusChange",
    "OrderNotFoundError",
    "InvalidStatusError",
    "LocalStatusPersistError",
    "resolve_status_label",
]
