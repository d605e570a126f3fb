"""Catalog matching ports.

The matcher resolves an extracted order product to one catalog variant.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from models.product import Product, ProductVariant


@dataclass(frozen=True)
class CatalogLookup:
    """What an order says it consumed.

    Attributes:
        variant: Variant name as written on the order ("default" if none)
        product_id: Catalog id when known
        code: Product code / SKU when known
        name: Product name when known
    """
    variant: str
    product_id: Optional[str] = None
    code: Optional[str] = None
    name: Optional[str] = None

    def memo_key(self) -> tuple:
        return (self.product_id or "", self.code or "", self.name or "", self.variant)


@dataclass
class VariantMatch:
    """Product and variant the lookup resolved to.

    Attributes:
        product: Matched catalog product
        variant: Matched variant of that product
        method: Resolution step that matched (product_id, code, name)
    """
    product: Product
    variant: ProductVariant
    method: str


class MatcherPort(ABC):
    """Port interface for catalog matching strategies."""

    @abstractmethod
    def find(self, lookup: CatalogLookup) -> Optional[VariantMatch]:
        """Resolve a lookup to a product variant.

        Args:
            lookup: Product reference extracted from an order

        Returns:
            VariantMatch, or None when no product with a matching variant exists
        """
        pass


class MatcherError(Exception):
    """Exception raised for matching errors."""
    pass


class ProductNotFoundError(MatcherError):
    """No catalog product matches the given code or name."""
    pass
