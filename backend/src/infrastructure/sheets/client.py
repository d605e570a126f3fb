"""Google Sheets client for the order sheet (Sheets REST API v4, values).

Only the two calls the status writer needs are implemented:

    GET {api}/{spreadsheet_id}/values/'{tab}'!1:1
    PUT {api}/{spreadsheet_id}/values/'{tab}'!{col}{row}?valueInputOption=RAW
"""

import logging
from typing import List, Optional
from urllib.parse import quote

import httpx

from orders.ports import OrderSheetPort, SheetWriteError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"


def a1_range(tab_name: str, cell_range: str) -> str:
    """Quote a tab name into an A1 range ("Commandes", "K2" -> "'Commandes'!K2")."""
    escaped = tab_name.replace("'", "''")
    return f"'{escaped}'!{cell_range}"


class GoogleSheetsClient(OrderSheetPort):
    """Values API client bound to one spreadsheet.

    Example:
        client = GoogleSheetsClient(spreadsheet_id="1AbC...", token="ya29...")
        headers = client.read_header_row("Commandes")
        client.write_cell("Commandes", "K", 12, "livrée")
    """

    def __init__(
        self,
        spreadsheet_id: str,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not spreadsheet_id or not token:
            raise SheetWriteError("Spreadsheet id and API token are required")
        self.spreadsheet_id = spreadsheet_id
        self._client = httpx.Client(
            base_url=f"{api_url.rstrip('/')}/{spreadsheet_id}",
            timeout=timeout,
            headers={"Authorization": f"Bearer {token}"},
            transport=transport,
        )

    def _values_path(self, cell_range: str) -> str:
        return f"/values/{quote(cell_range, safe='')}"

    def read_header_row(self, tab_name: str) -> List[str]:
        try:
            response = self._client.get(self._values_path(a1_range(tab_name, "1:1")))
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SheetWriteError(f"Could not read header row of '{tab_name}': {e}") from e

        if not isinstance(payload, dict):
            raise SheetWriteError(f"Unexpected header payload for '{tab_name}'")
        values = payload.get("values") or [[]]
        return [str(value) for value in values[0]]

    def write_cell(self, tab_name: str, column_letter: str, row_number: int, value: str) -> None:
        cell = a1_range(tab_name, f"{column_letter}{row_number}")
        try:
            response = self._client.put(
                self._values_path(cell),
                params={"valueInputOption": "RAW"},
                json={"range": cell, "majorDimension": "ROWS", "values": [[value]]},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SheetWriteError(f"Could not write {cell}: {e}") from e

        logger.debug(f"Wrote {cell}")

    def close(self) -> None:
        self._client.close()
