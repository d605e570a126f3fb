"""Carrier scanner: page through a carrier's order list and match local orders.

Local orders are indexed by normalized tracking number and normalized
reference. Pages are fetched one after the other until every order has
been matched, the carrier's last page is reached, or the page cap is hit.
The first carrier entry seen for an order wins.
"""

import logging
import re
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from infrastructure.carriers import CarrierClient, CarrierError, CarrierProfile
from observability.metrics import carrier_fetch_errors_total, carrier_pages_fetched_total
from .schemas import ScanResult, SyncOrder

logger = logging.getLogger(__name__)

MAX_PAGES = 250

_WHITESPACE = re.compile(r"\s+")


def normalize_identifier(value: Any) -> str:
    """Trim, drop all whitespace and upper-case ("ab 12 " -> "AB12")."""
    if value is None:
        return ""
    return _WHITESPACE.sub("", str(value)).upper()


def build_index(orders: List[SyncOrder], attribute: str) -> Dict[str, List[str]]:
    """Map normalized identifier -> row ids carrying it (duplicates kept)."""
    index = defaultdict(list)
    for order in orders:
        key = normalize_identifier(getattr(order, attribute))
        if key:
            index[key].append(order.row_id)
    return dict(index)


class CarrierScanner:
    """Scans one carrier profile for a batch of local orders.

    Example:
        scanner = CarrierScanner(profile, client_factory=lambda p: CarrierClient(p))
        scan = scanner.scan(orders, start_date="2024-05-01")
        entry = scan.matches.get("12")
    """

    def __init__(
        self,
        profile: CarrierProfile,
        client_factory: Callable[[CarrierProfile], CarrierClient],
        max_pages: int = MAX_PAGES,
    ):
        self.profile = profile
        self.client_factory = client_factory
        self.max_pages = max_pages

    def scan(
        self,
        orders: List[SyncOrder],
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> ScanResult:
        """Match a batch of orders against the carrier's order list.

        Carrier errors are not raised: paging stops, the error is recorded
        on the result and the matches collected so far are kept.
        """
        result = ScanResult()
        by_tracking = build_index(orders, "tracking")
        by_reference = build_index(orders, "reference")
        if not by_tracking and not by_reference:
            logger.info(
                f"{self.profile.label}: no order has a tracking number or reference, nothing to scan",
                extra={"delivery_type": self.profile.key},
            )
            return result

        wanted = {order.row_id for order in orders}
        try:
            client = self.client_factory(self.profile)
        except CarrierError as e:
            result.error = str(e)
            return result

        try:
            page = 1
            last_page = 1
            while page <= last_page and page <= self.max_pages:
                try:
                    carrier_page = client.fetch_orders_page(page, start_date=start_date, end_date=end_date)
                except CarrierError as e:
                    carrier_fetch_errors_total.labels(delivery_type=self.profile.key).inc()
                    logger.error(
                        f"{self.profile.label}: page fetch failed, stopping scan: {e}",
                        extra={"delivery_type": self.profile.key, "page": page},
                        exc_info=True,
                    )
                    result.error = str(e)
                    break

                result.pages_fetched += 1
                result.fetched_orders += len(carrier_page.entries)
                carrier_pages_fetched_total.labels(delivery_type=self.profile.key).inc()
                last_page = max(carrier_page.last_page, 1)

                for entry in carrier_page.entries:
                    self._match_entry(entry, by_tracking, by_reference, result.matches)

                if wanted.issubset(result.matches):
                    logger.debug(
                        f"{self.profile.label}: all {len(wanted)} orders matched on page {page}",
                        extra={"delivery_type": self.profile.key, "page": page},
                    )
                    break
                page += 1
        finally:
            client.close()

        logger.info(
            f"{self.profile.label}: {len(result.matches)}/{len(wanted)} orders matched "
            f"over {result.pages_fetched} pages",
            extra={"delivery_type": self.profile.key},
        )
        return result

    def _match_entry(
        self,
        entry: Dict[str, Any],
        by_tracking: Dict[str, List[str]],
        by_reference: Dict[str, List[str]],
        matches: Dict[str, Dict[str, Any]],
    ) -> None:
        tracking = normalize_identifier(entry.get("tracking"))
        reference = normalize_identifier(entry.get("reference"))
        if not tracking and not reference:
            return

        row_ids = []
        if tracking:
            row_ids.extend(by_tracking.get(tracking, ()))
        if reference:
            row_ids.extend(by_reference.get(reference, ()))

        for row_id in row_ids:
            # First sighting wins
            if row_id not in matches:
                matches[row_id] = entry
