"""Ports for the tabular order store.

The order sheet is the single source of truth for an order's status. It is
reached through one narrow write primitive; there is no locking, so
concurrent writers resolve as last-write-wins.
"""

from abc import ABC, abstractmethod
from typing import List


class SheetWriteError(Exception):
    """Reading or writing the order sheet failed."""
    pass


class OrderSheetPort(ABC):
    """Port interface for the spreadsheet holding the orders.

    Rows and columns are 1-indexed; row 1 is the header row.
    """

    @abstractmethod
    def read_header_row(self, tab_name: str) -> List[str]:
        """Read the header row of a tab.

        Raises:
            SheetWriteError: If the sheet cannot be read
        """
        pass

    @abstractmethod
    def write_cell(self, tab_name: str, column_letter: str, row_number: int, value: str) -> None:
        """Write one cell.

        Raises:
            SheetWriteError: If the write fails
        """
        pass


class UnconfiguredSheet(OrderSheetPort):
    """Stand-in used when no spreadsheet is configured; every call fails."""

    def read_header_row(self, tab_name: str) -> List[str]:
        raise SheetWriteError("Order sheet is not configured (SHEETS_SPREADSHEET_ID / SHEETS_API_TOKEN)")

    def write_cell(self, tab_name: str, column_letter: str, row_number: int, value: str) -> None:
        raise SheetWriteError("Order sheet is not configured (SHEETS_SPREADSHEET_ID / SHEETS_API_TOKEN)")
