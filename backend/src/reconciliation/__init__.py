"""Carrier status reconciliation: scan carrier feeds, write changed statuses"""

from .schemas import SyncOrder, ScanResult, ReconcileResult
from .scanner import CarrierScanner, normalize_identifier, MAX_PAGES
from .orchestrator import (
    ReconciliationOrchestrator,
    sanitize_orders,
    SKIP_DELIVERY_PERSON,
    SKIP_MISSING_TOKEN,
    SKIP_UNKNOWN_STATUS,
)

__all__ = [
    "SyncOrder",
    "ScanResult",
    "ReconcileResult",
    "CarrierScanner",
    "normalize_identifier",
    "MAX_PAGES",
    "ReconciliationOrchestrator",
    "sanitize_orders",
    "SKIP_DELIVERY_PERSON",
    "SKIP_MISSING_TOKEN",
    "SKIP_UNKNOWN_STATUS",
]
