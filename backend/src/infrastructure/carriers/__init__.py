"""Carrier infrastructure - paginated order-list client per carrier profile."""

from .client import CarrierClient, CarrierError, CarrierPage
from .profiles import CarrierProfile, carrier_profiles_from_settings

__all__ = ["CarrierClient", "CarrierError", "CarrierPage", "CarrierProfile", "carrier_profiles_from_settings"]
