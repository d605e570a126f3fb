"""Delivery status domain - canonical statuses and carrier status classification"""

from .canonical import (
    CanonicalStatus,
    SHEET_STATUS_LABELS,
    TERMINAL_STATUSES,
    normalize_status,
    sheet_label,
    local_status_category,
    statuses_equivalent,
    is_terminal_status,
    is_delivered_status,
    is_returned_status,
)
from .classifier import classify_carrier_status

__all__ = [
    "CanonicalStatus",
    "SHEET_STATUS_LABELS",
    "TERMINAL_STATUSES",
    "normalize_status",
    "sheet_label",
    "local_status_category",
    "statuses_equivalent",
    "is_terminal_status",
    "is_delivered_status",
    "is_returned_status",
    "classify_carrier_status",
]
