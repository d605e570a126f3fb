"""Carrier profiles: one configured delivery API each."""

from dataclasses import dataclass
from typing import Dict, Optional

from config import Settings, settings as default_settings
from models.delivery_record import DeliveryType


@dataclass(frozen=True)
class CarrierProfile:
    """Configured carrier API.

    Attributes:
        key: Delivery type the profile serves (api_dhd, api_sook)
        label: Human readable carrier name for logs
        base_url: API root, without trailing slash
        token: Bearer token (None means the profile cannot be queried)
    """
    key: str
    label: str
    base_url: Optional[str]
    token: Optional[str]

    @property
    def is_usable(self) -> bool:
        return bool(self.base_url) and bool(self.token)


def carrier_profiles_from_settings(settings: Optional[Settings] = None) -> Dict[str, CarrierProfile]:
    """Build the carrier profiles keyed by delivery type."""
    settings = settings or default_settings
    return {
        DeliveryType.API_DHD: CarrierProfile(
            key=DeliveryType.API_DHD,
            label="DHD",
            base_url=(settings.DHD_API_URL or "").rstrip("/") or None,
            token=settings.DHD_API_TOKEN,
        ),
        DeliveryType.API_SOOK: CarrierProfile(
            key=DeliveryType.API_SOOK,
            label="Sook",
            base_url=(settings.SOOK_API_URL or "").rstrip("/") or None,
            token=settings.SOOK_API_TOKEN,
        ),
    }
