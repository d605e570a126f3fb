"""SQLAlchemy models for the local document store"""

from .base import Base
from .delivery_record import DeliveryRecord, DeliveryType
from .product import Product, ProductVariant

__all__ = [
    "Base",
    "DeliveryRecord",
    "DeliveryType",
    "Product",
    "ProductVariant",
]
