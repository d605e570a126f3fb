"""Reconciliation orchestrator.

One run takes the pending local orders, scans each carrier profile for
them, classifies the carrier status and writes the orders whose status
really changed. Repeating a run without upstream changes writes nothing.

Per-order outcomes:
- updates: status written to the sheet and the local record
- notFound: the carrier order list does not contain the order
- skipped: livreur orders, missing carrier token, unknown carrier status
- errors: carrier unreachable, or a sheet or local store operation failed
"""

import logging
import time
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from domain.delivery_status import (
    CanonicalStatus,
    classify_carrier_status,
    sheet_label,
    statuses_equivalent,
)
from infrastructure.carriers import CarrierClient, CarrierProfile
from inventory.delivery_effects import MissingProductMemo
from models.delivery_record import DeliveryType
from observability.metrics import (
    carrier_status_unknown_total,
    reconciliation_duration_seconds,
    reconciliation_updates_total,
)
from orders.ports import SheetWriteError
from orders.service import LocalStatusPersistError, OrderStatusService
from orders.status_writer import InvalidRowIdError
from .scanner import MAX_PAGES, CarrierScanner
from .schemas import ReconcileResult, ScanResult, SyncOrder

logger = logging.getLogger(__name__)

SKIP_DELIVERY_PERSON = "delivery_person_order"
SKIP_MISSING_TOKEN = "missing_token"
SKIP_UNKNOWN_STATUS = "unknown_status"


def sanitize_orders(orders: Iterable[SyncOrder]) -> List[SyncOrder]:
    """Drop orders without row id and keep the first order per row id.

    Delivery types are lower-cased, so "Livreur" is a livreur order.
    """
    unique = OrderedDict()
    for order in orders:
        row_id = str(order.row_id or "").strip()
        if not row_id or row_id in unique:
            continue
        unique[row_id] = SyncOrder(
            row_id=row_id,
            tracking=(order.tracking or "").strip() or None,
            reference=(order.reference or "").strip() or None,
            current_status=order.current_status,
            delivery_type=(order.delivery_type or "").strip().lower() or DeliveryType.API_DHD,
            row=order.row,
        )
    return list(unique.values())


class ReconciliationOrchestrator:
    """Runs one reconciliation over a batch of local orders.

    Example:
        orchestrator = ReconciliationOrchestrator(profiles, status_service)
        result = orchestrator.reconcile(orders)
        print(result.to_dict())
    """

    def __init__(
        self,
        profiles: Dict[str, CarrierProfile],
        status_service: OrderStatusService,
        client_factory: Optional[Callable[[CarrierProfile], CarrierClient]] = None,
        max_pages: int = MAX_PAGES,
        request_timeout: float = 10.0,
    ):
        self.profiles = profiles
        self.status_service = status_service
        self.client_factory = client_factory or (lambda profile: CarrierClient(profile, timeout=request_timeout))
        self.max_pages = max_pages

    def reconcile(
        self,
        orders: Iterable[SyncOrder],
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> ReconcileResult:
        """Reconcile local orders with their carriers.

        Carrier profiles are processed one after the other. Failures are
        recorded per order in the result; one failing order never stops
        the others.

        Args:
            orders: Local orders to check
            start_date: Optional lower bound forwarded to the carrier feeds
            end_date: Optional upper bound forwarded to the carrier feeds

        Returns:
            ReconcileResult
        """
        started = time.monotonic()
        result = ReconcileResult()
        memo = MissingProductMemo()

        groups: Dict[str, List[SyncOrder]] = OrderedDict()
        for order in sanitize_orders(orders):
            if order.delivery_type == DeliveryType.LIVREUR:
                result.skipped.append({"rowId": order.row_id, "reason": SKIP_DELIVERY_PERSON})
                continue
            groups.setdefault(order.delivery_type, []).append(order)

        for delivery_type, group in groups.items():
            profile = self.profiles.get(delivery_type)
            if profile is None or not profile.is_usable:
                logger.warning(
                    f"No usable carrier profile for {delivery_type}, skipping {len(group)} orders",
                    extra={"delivery_type": delivery_type},
                )
                for order in group:
                    result.skipped.append({"rowId": order.row_id, "reason": SKIP_MISSING_TOKEN})
                continue

            scanner = CarrierScanner(profile, self.client_factory, max_pages=self.max_pages)
            scan = scanner.scan(group, start_date=start_date, end_date=end_date)
            result.pages_fetched += scan.pages_fetched
            result.fetched_orders += scan.fetched_orders

            for order in group:
                self._reconcile_order(order, profile, scan, result, memo)

        duration = time.monotonic() - started
        reconciliation_duration_seconds.observe(duration)
        logger.info(
            f"Reconciliation done: {len(result.updates)} updates, {len(result.not_found)} not found, "
            f"{len(result.skipped)} skipped, {len(result.errors)} errors",
            extra={"duration_ms": round(duration * 1000, 2)},
        )
        return result

    def _reconcile_order(
        self,
        order: SyncOrder,
        profile: CarrierProfile,
        scan: ScanResult,
        result: ReconcileResult,
        memo: MissingProductMemo,
    ) -> None:
        entry = scan.matches.get(order.row_id)
        if entry is None:
            if scan.error:
                result.errors.append({"rowId": order.row_id, "error": f"carrier_unavailable: {scan.error}"})
            else:
                result.not_found.append(
                    {"rowId": order.row_id, "tracking": order.tracking, "reference": order.reference}
                )
            return

        carrier_status = entry.get("status")
        canonical = classify_carrier_status(carrier_status)
        if canonical == CanonicalStatus.UNKNOWN:
            carrier_status_unknown_total.labels(delivery_type=profile.key).inc()
            logger.info(
                "Unrecognized carrier status, order left unchanged",
                extra={"row_id": order.row_id, "carrier_status": carrier_status, "delivery_type": profile.key},
            )
            result.skipped.append(
                {"rowId": order.row_id, "reason": SKIP_UNKNOWN_STATUS, "carrierStatus": carrier_status}
            )
            return

        # Re-read right before deciding: a manual change may have landed
        # since the batch was loaded
        try:
            snapshot = self.status_service.snapshot(order.row_id)
        except SQLAlchemyError as e:
            logger.error(
                f"Local record read failed: {e}",
                extra={"row_id": order.row_id},
                exc_info=True,
            )
            result.errors.append({"rowId": order.row_id, "error": f"local_read_failed: {e}"})
            return
        current_status = snapshot.status if snapshot is not None else order.current_status
        row = snapshot.row if snapshot is not None else order.row

        if statuses_equivalent(current_status, canonical):
            return

        label = sheet_label(canonical)
        try:
            change = self.status_service.commit_status(order.row_id, label, current_status, row, memo=memo)
        except (SheetWriteError, InvalidRowIdError) as e:
            logger.error(
                f"Status write failed: {e}",
                extra={"row_id": order.row_id, "status": label},
                exc_info=True,
            )
            result.errors.append({"rowId": order.row_id, "error": str(e)})
            return
        except LocalStatusPersistError as e:
            logger.error(str(e), extra={"row_id": order.row_id, "status": label}, exc_info=True)
            result.errors.append({"rowId": order.row_id, "error": str(e)})
            return

        reconciliation_updates_total.labels(status=canonical.value).inc()
        result.updates.append({
            "rowId": order.row_id,
            "previousStatus": current_status,
            "status": label,
            "carrierStatus": carrier_status,
            "tracking": order.tracking,
            "stockEffect": change.stock_effect,
        })
