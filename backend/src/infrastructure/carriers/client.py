"""HTTP client for the carriers' paginated order-list API.

Both supported carriers expose the same endpoint:

    GET {base_url}/api/v1/get/orders?page=N[&start_date=..&end_date=..]
    Authorization: Bearer <token>

    -> {"data": [...], "current_page": N, "last_page": M}

Entries are schema-loose; any of tracking, reference or status may be
missing or null.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .profiles import CarrierProfile

logger = logging.getLogger(__name__)

ORDERS_PATH = "/api/v1/get/orders"
DEFAULT_TIMEOUT_SECONDS = 10.0


class CarrierError(Exception):
    """Carrier API unreachable, timed out, or answered with an unusable payload."""
    pass


@dataclass
class CarrierPage:
    """One page of the carrier order list.

    Attributes:
        entries: Raw order entries (dicts) as returned by the carrier
        current_page: Page number the carrier says it returned
        last_page: Last page number the carrier reports
    """
    entries: List[Dict[str, Any]] = field(default_factory=list)
    current_page: int = 1
    last_page: int = 1


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class CarrierClient:
    """Client for one carrier profile.

    Example:
        client = CarrierClient(profile, timeout=10.0)
        try:
            page = client.fetch_orders_page(1, start_date="2024-01-01")
        finally:
            client.close()
    """

    def __init__(
        self,
        profile: CarrierProfile,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            profile: Carrier profile (base URL and token)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        if not profile.is_usable:
            raise CarrierError(f"Carrier profile {profile.key} has no base URL or token")
        self.profile = profile
        self._client = httpx.Client(
            base_url=profile.base_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {profile.token}",
                "Accept": "application/json",
            },
            transport=transport,
        )

    def fetch_orders_page(
        self,
        page: int,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> CarrierPage:
        """Fetch one page of the carrier order list.

        Args:
            page: 1-based page number
            start_date: Optional lower bound forwarded to the carrier
            end_date: Optional upper bound forwarded to the carrier

        Returns:
            CarrierPage

        Raises:
            CarrierError: On network error, timeout, non-2xx status or bad JSON
        """
        params = {"page": page}
        if start_date:
            params["start_date"] = start_date
        if end_date:
            params["end_date"] = end_date

        try:
            response = self._client.get(ORDERS_PATH, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            raise CarrierError(f"{self.profile.label} timed out on page {page}") from e
        except httpx.HTTPStatusError as e:
            raise CarrierError(
                f"{self.profile.label} answered HTTP {e.response.status_code} on page {page}"
            ) from e
        except httpx.HTTPError as e:
            raise CarrierError(f"{self.profile.label} unreachable on page {page}: {e}") from e
        except ValueError as e:
            raise CarrierError(f"{self.profile.label} returned invalid JSON on page {page}") from e

        if not isinstance(payload, dict):
            raise CarrierError(f"{self.profile.label} returned an unexpected payload on page {page}")

        data = payload.get("data")
        entries = [entry for entry in data if isinstance(entry, dict)] if isinstance(data, list) else []
        current_page = _as_int(payload.get("current_page"), page)
        last_page = _as_int(payload.get("last_page"), current_page)

        logger.debug(
            f"{self.profile.label} page {current_page}/{last_page}: {len(entries)} entries",
            extra={"delivery_type": self.profile.key, "page": current_page},
        )
        return CarrierPage(entries=entries, current_page=current_page, last_page=last_page)

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
