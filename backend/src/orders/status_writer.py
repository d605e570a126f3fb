"""Status writes into the order sheet.

An order's row id is its address in the sheet: the row number, optionally
prefixed with the tab name ("Commandes!12"). The status column is either
configured as a letter or found by header name; the header row is cached
for a few minutes so a reconciliation run reads it once.
"""

import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from domain.delivery_status import normalize_status
from observability.metrics import sheet_writes_total
from .ports import OrderSheetPort, SheetWriteError

logger = logging.getLogger(__name__)

_ROW_ID = re.compile(r"^(?:(?P<tab>.+)!)?\s*(?P<row>\d+)\s*$")
STATUS_HEADER_HINTS = ("statut", "status")


class InvalidRowIdError(ValueError):
    """The row id does not address a data row of the sheet."""
    pass


@dataclass(frozen=True)
class RowAddress:
    tab_name: str
    row_number: int


def parse_row_id(row_id: str, default_tab: str) -> RowAddress:
    """Parse "12" or "Tab!12" into a sheet address.

    Raises:
        InvalidRowIdError: If the id is malformed or points at the header row
    """
    match = _ROW_ID.match(str(row_id or "").strip())
    if not match:
        raise InvalidRowIdError(f"Invalid row id: {row_id!r}")
    row_number = int(match.group("row"))
    if row_number < 2:
        raise InvalidRowIdError(f"Row id {row_id!r} does not address a data row")
    tab_name = (match.group("tab") or default_tab).strip()
    return RowAddress(tab_name=tab_name, row_number=row_number)


def column_letter(index: int) -> str:
    """1-based column index to letter (1 -> A, 27 -> AA)."""
    if index < 1:
        raise ValueError(f"Column index must be >= 1, got {index}")
    letters = ""
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


class HeaderRowCache:
    """TTL cache of sheet header rows, keyed by tab name.

    Owned by the writer instance, so separate writers never share entries.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, tab_name: str) -> Optional[List[str]]:
        with self._lock:
            entry = self._entries.get(tab_name)
            if entry is None:
                return None
            stored_at, headers = entry
            if self._clock() - stored_at > self.ttl_seconds:
                del self._entries[tab_name]
                return None
            return headers

    def put(self, tab_name: str, headers: List[str]) -> None:
        with self._lock:
            self._entries[tab_name] = (self._clock(), list(headers))

    def invalidate(self, tab_name: Optional[str] = None) -> None:
        with self._lock:
            if tab_name is None:
                self._entries.clear()
            else:
                self._entries.pop(tab_name, None)


class SheetStatusWriter:
    """Writes order statuses into the status column of the order sheet.

    Example:
        writer = SheetStatusWriter(GoogleSheetsClient(...), tab_name="Commandes")
        writer.write_status("12", "livrée")
    """

    def __init__(
        self,
        sheet: OrderSheetPort,
        tab_name: str,
        status_column: Optional[str] = None,
        status_header: str = "Statut",
        header_cache: Optional[HeaderRowCache] = None,
    ):
        self.sheet = sheet
        self.tab_name = tab_name
        self.status_column = status_column.strip().upper() if status_column else None
        self.status_header = status_header
        self.header_cache = header_cache or HeaderRowCache()

    def _headers(self, tab_name: str) -> List[str]:
        headers = self.header_cache.get(tab_name)
        if headers is None:
            headers = self.sheet.read_header_row(tab_name)
            self.header_cache.put(tab_name, headers)
        return headers

    def resolve_status_column(self, tab_name: str) -> str:
        """Column letter of the status column.

        Raises:
            SheetWriteError: If no header looks like a status column
        """
        if self.status_column:
            return self.status_column

        normalized = [normalize_status(header) for header in self._headers(tab_name)]
        wanted = normalize_status(self.status_header)
        for index, header in enumerate(normalized, start=1):
            if header == wanted:
                return column_letter(index)
        for index, header in enumerate(normalized, start=1):
            if any(hint in header for hint in STATUS_HEADER_HINTS):
                return column_letter(index)

        # The header row may have changed since it was cached
        self.header_cache.invalidate(tab_name)
        raise SheetWriteError(f"No status column found in tab '{tab_name}'")

    def write_status(self, row_id: str, status_label: str) -> Tuple[str, str]:
        """Write a status label into the order's row.

        Args:
            row_id: Order row id ("12" or "Tab!12")
            status_label: Value to write (e.g. "livrée")

        Returns:
            (tab_name, cell) that was written, e.g. ("Commandes", "K12")

        Raises:
            InvalidRowIdError: If the row id is malformed
            SheetWriteError: If the column cannot be resolved or the write fails
        """
        address = parse_row_id(row_id, self.tab_name)
        try:
            column = self.resolve_status_column(address.tab_name)
            self.sheet.write_cell(address.tab_name, column, address.row_number, status_label)
        except SheetWriteError:
            sheet_writes_total.labels(status="error").inc()
            raise

        sheet_writes_total.labels(status="success").inc()
        logger.info(
            f"Status written to {address.tab_name}!{column}{address.row_number}",
            extra={"row_id": row_id, "status": status_label},
        )
        return address.tab_name, f"{column}{address.row_number}"
