"""Reconciliation data types and API schemas"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class SyncOrder:
    """A local order submitted for reconciliation.

    Attributes:
        row_id: Order address in the sheet
        tracking: Carrier tracking number
        reference: Free-text order reference known to the carrier
        current_status: Status the caller believes the order has
        delivery_type: api_dhd, api_sook or livreur (api_dhd when missing)
        row: Snapshot of the order row, used when there is no local record
    """
    row_id: str
    tracking: Optional[str] = None
    reference: Optional[str] = None
    current_status: Optional[str] = None
    delivery_type: Optional[str] = None
    row: Optional[Dict[str, Any]] = None


@dataclass
class ScanResult:
    """Outcome of paging through one carrier's order list.

    Attributes:
        matches: First carrier entry seen for each matched row id
        pages_fetched: Pages successfully fetched
        fetched_orders: Carrier entries seen across those pages
        error: Message of the carrier error that aborted paging, if any
    """
    matches: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    pages_fetched: int = 0
    fetched_orders: int = 0
    error: Optional[str] = None


@dataclass
class ReconcileResult:
    updates: List[Dict[str, Any]] = field(default_factory=list)
    not_found: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    fetched_orders: int = 0
    pages_fetched: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "updates": self.updates,
            "notFound": self.not_found,
            "skipped": self.skipped,
            "errors": self.errors,
            "fetchedOrders": self.fetched_orders,
            "pagesFetched": self.pages_fetched,
        }


class SyncOrderRequest(BaseModel):
    rowId: str
    tracking: Optional[str] = None
    reference: Optional[str] = None
    currentStatus: Optional[str] = None
    deliveryType: Optional[str] = None

    def to_sync_order(self) -> SyncOrder:
        return SyncOrder(
            row_id=self.rowId,
            tracking=self.tracking,
            reference=self.reference,
            current_status=self.currentStatus,
            delivery_type=self.deliveryType,
        )


class SyncRunRequest(BaseModel):
    """Manual "sync now".

    Without orders, the pending delivery records are loaded from the local
    store, exactly like a scheduled run.
    """
    orders: Optional[List[SyncOrderRequest]] = None
    start_date: Optional[str] = Field(None, max_length=32)
    end_date: Optional[str] = Field(None, max_length=32)


class SyncRunResponse(BaseModel):
    updates: List[Dict[str, Any]]
    notFound: List[Dict[str, Any]]
    skipped: List[Dict[str, Any]]
    errors: List[Dict[str, Any]]
    fetchedOrders: int
    pagesFetched: int
