"""Order status changes: sheet write, local record, stock side effect.

Both the reconciliation run and manual user actions go through
OrderStatusService.commit_status, so the ordering of the three steps is
the same everywhere:

1. Write the status into the order sheet (failure propagates)
2. Persist it on the local delivery record
3. Dispatch the stock side effect without waiting for it
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import sessionmaker

from database import SessionLocal, session_scope
from domain.delivery_status import CanonicalStatus, sheet_label
from inventory.delivery_effects import MissingProductMemo, schedule_stock_effect, stock_effect_for_transition
from models.delivery_record import DeliveryRecord
from .status_writer import SheetStatusWriter

logger = logging.getLogger(__name__)


class OrderNotFoundError(Exception):
    """No local delivery record exists for the row id."""
    pass


class InvalidStatusError(ValueError):
    """The requested status is blank."""
    pass


class LocalStatusPersistError(Exception):
    """The sheet was written but the local record could not be updated."""
    pass


@dataclass
class OrderSnapshot:
    """Local view of an order, read right before a status decision."""
    row_id: str
    status: Optional[str]
    row: Dict[str, Any]


@dataclass
class StatusChange:
    row_id: str
    previous_status: Optional[str]
    status: str
    cell: Optional[str] = None
    stock_effect: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rowId": self.row_id,
            "previousStatus": self.previous_status,
            "status": self.status,
            "cell": self.cell,
            "stockEffect": self.stock_effect,
        }


def resolve_status_label(status: str) -> str:
    """Turn a canonical token ("delivered") into its sheet label ("livrée").

    Anything that is not a canonical token is written as given.
    """
    try:
        canonical = CanonicalStatus(status.strip().lower())
    except ValueError:
        return status.strip()
    if canonical in (CanonicalStatus.UNKNOWN, CanonicalStatus.PENDING):
        return status.strip()
    return sheet_label(canonical)


class OrderStatusService:
    """Applies status changes to orders.

    Sessions are opened per step with session_factory, so the service can
    run on the scheduler thread as well as in request handlers.
    """

    def __init__(
        self,
        writer: SheetStatusWriter,
        dispatcher,
        session_factory: sessionmaker = SessionLocal,
    ):
        self.writer = writer
        self.dispatcher = dispatcher
        self.session_factory = session_factory

    def snapshot(self, row_id: str) -> Optional[OrderSnapshot]:
        """Re-read the local record of an order (None if there is none)."""
        with session_scope(self.session_factory) as db:
            record = db.query(DeliveryRecord).filter(DeliveryRecord.row_id == row_id).first()
            if record is None:
                return None
            return OrderSnapshot(row_id=row_id, status=record.status, row=dict(record.row_json or {}))

    def _persist_local_status(self, row_id: str, status: str) -> None:
        try:
            with session_scope(self.session_factory) as db:
                record = db.query(DeliveryRecord).filter(DeliveryRecord.row_id == row_id).first()
                if record is None:
                    logger.warning("Sheet updated for an order without local record", extra={"row_id": row_id})
                    return
                record.status = status
        except Exception as e:
            raise LocalStatusPersistError(f"Local status update failed for row {row_id}: {e}") from e

    def commit_status(
        self,
        row_id: str,
        status_label: str,
        previous_status: Optional[str],
        row: Optional[Dict[str, Any]],
        memo: Optional[MissingProductMemo] = None,
    ) -> StatusChange:
        """Write a new status and trigger its stock side effect.

        Raises:
            InvalidRowIdError: If the row id is malformed
            SheetWriteError: If the sheet write fails (nothing else happens)
            LocalStatusPersistError: If the local record could not be updated
                after the sheet write; the stock effect is not dispatched
        """
        _, cell = self.writer.write_status(row_id, status_label)
        self._persist_local_status(row_id, status_label)

        change = StatusChange(row_id=row_id, previous_status=previous_status, status=status_label, cell=cell)
        effect = stock_effect_for_transition(previous_status, status_label)
        if effect is not None:
            schedule_stock_effect(
                self.dispatcher,
                row_id,
                row,
                previous_status,
                status_label,
                memo=memo,
                session_factory=self.session_factory,
            )
            change.stock_effect = effect.__name__
        return change

    def change_status(self, row_id: str, status: str) -> StatusChange:
        """Manual status change (e.g. "mark delivered").

        Stock failures are never surfaced here: the order shows its new
        status whatever happens to the catalog.

        Raises:
            InvalidStatusError: If status is empty or whitespace only
            OrderNotFoundError: If no local record exists for row_id
            InvalidRowIdError: If the row id is malformed
            SheetWriteError: If the sheet write fails
            LocalStatusPersistError: If the local record could not be updated
        """
        if not (status or "").strip():
            raise InvalidStatusError("Invalid status: must not be blank")

        snapshot = self.snapshot(row_id)
        if snapshot is None:
            raise OrderNotFoundError(f"Order {row_id} not found")

        label = resolve_status_label(status)
        change = self.commit_status(row_id, label, snapshot.status, snapshot.row)
        logger.info(
            f"Order status changed manually: {snapshot.status} -> {label}",
            extra={"row_id": row_id, "previous_status": snapshot.status, "status": label},
        )
        return change
