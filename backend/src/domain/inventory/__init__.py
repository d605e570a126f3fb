"""Inventory domain - product extraction from order rows and text normalization"""

from .product_extractor import (
    DEFAULT_VARIANT,
    ProductInfo,
    ProductLabel,
    extract_product_info,
    extract_product_label,
    split_product_label,
    is_meaningful_variant,
)
from .text import normalize_for_comparison, split_variant_parts, has_arabic

__all__ = [
    "DEFAULT_VARIANT",
    "ProductInfo",
    "ProductLabel",
    "extract_product_info",
    "extract_product_label",
    "split_product_label",
    "is_meaningful_variant",
    "normalize_for_comparison",
    "split_variant_parts",
    "has_arabic",
]
