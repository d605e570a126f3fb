"""Catalog matcher resolving free-text order products to stock variants.

Resolution order:
1. Explicit product id
2. Exact product code
3. Products whose normalized name contains (or is contained in) the
   searched name, in catalog order

Within a product the variant is matched by exact normalized name, then by
containment against the slash-delimited parts of either side. The first
product with a matching variant wins; a product without one is skipped.
"""

import logging
import re
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from domain.inventory.text import normalize_for_comparison, split_variant_parts
from models.product import Product, ProductVariant
from .ports import CatalogLookup, MatcherPort, ProductNotFoundError, VariantMatch

logger = logging.getLogger(__name__)


def match_variant(variants: Iterable[ProductVariant], searched: str) -> Optional[ProductVariant]:
    """Pick the variant matching the searched variant name.

    Args:
        variants: Candidate variants in catalog order
        searched: Variant name as written on the order

    Returns:
        First matching variant, or None
    """
    variants = list(variants)
    target = normalize_for_comparison(searched)
    if not target:
        return None

    for variant in variants:
        if normalize_for_comparison(variant.name) == target:
            return variant

    target_parts = split_variant_parts(target)

    for variant in variants:
        candidate = normalize_for_comparison(variant.name)
        if not candidate:
            continue
        for part in target_parts:
            if part == candidate or part in candidate or candidate in part:
                return variant

    for variant in variants:
        candidate_parts = split_variant_parts(normalize_for_comparison(variant.name))
        for part in target_parts:
            for candidate_part in candidate_parts:
                if part == candidate_part or part in candidate_part or candidate_part in part:
                    return variant

    return None


def names_overlap(searched: str, candidate: str) -> bool:
    """Case-insensitive containment of two names, in either direction."""
    if not searched or not candidate:
        return False
    return bool(
        re.search(re.escape(searched), candidate, re.IGNORECASE)
        or re.search(re.escape(candidate), searched, re.IGNORECASE)
    )


class CatalogMatcher(MatcherPort):
    """Catalog matcher backed by the product tables.

    Example:
        matcher = CatalogMatcher(db)
        match = matcher.find(CatalogLookup(name="T-shirt", variant="Rouge / M"))
        if match:
            print(match.product.name, match.variant.name)
    """

    def __init__(self, db: Session):
        self.db = db

    def _products(self):
        return self.db.query(Product).options(selectinload(Product.variants))

    def find(self, lookup: CatalogLookup) -> Optional[VariantMatch]:
        if lookup.product_id:
            product = self._products().filter(Product.id == lookup.product_id).first()
            match = self._match_in(product, lookup.variant, "product_id")
            if match:
                return match

        if lookup.code:
            product = self._products().filter(Product.code == lookup.code.strip()).first()
            match = self._match_in(product, lookup.variant, "code")
            if match:
                return match

        if lookup.name:
            for product in self._products_by_name(lookup.name):
                match = self._match_in(product, lookup.variant, "name")
                if match:
                    return match

        logger.debug(
            "No catalog variant for order product",
            extra={"code": lookup.code, "product_name": lookup.name, "variant": lookup.variant},
        )
        return None

    def _match_in(self, product: Optional[Product], variant_name: str, method: str) -> Optional[VariantMatch]:
        if product is None:
            return None
        variant = match_variant(product.variants, variant_name)
        if variant is None:
            return None
        return VariantMatch(product=product, variant=variant, method=method)

    def _products_by_name(self, name: str) -> List[Product]:
        searched = normalize_for_comparison(name)
        if not searched:
            return []
        # Names are normalized in Python so Arabic and accented text compare
        # the same way regardless of the database collation
        return [
            product
            for product in self._products().order_by(Product.created_at, Product.id).all()
            if names_overlap(searched, normalize_for_comparison(product.name))
        ]

    def resolve_product(self, code: Optional[str] = None, name: Optional[str] = None) -> Product:
        """Resolve a product from a code and/or name (manual stock endpoint).

        Order: exact code, exact case-insensitive name, case-insensitive
        code, then normalized-name equality among containment candidates.

        Raises:
            ProductNotFoundError: If nothing matches
        """
        code = (code or "").strip()
        name = (name or "").strip()
        if not code and not name:
            raise ProductNotFoundError("code or name is required")

        if code:
            product = self._products().filter(Product.code == code).first()
            if product:
                return product

        if name:
            product = self._products().filter(func.lower(Product.name) == name.lower()).first()
            if product:
                return product

        if code:
            product = self._products().filter(func.lower(Product.code) == code.lower()).first()
            if product:
                return product

        if name:
            searched = normalize_for_comparison(name)
            for product in self._products_by_name(name):
                if normalize_for_comparison(product.name) == searched:
                    return product

        raise ProductNotFoundError(f"Product not found: code={code or '-'} name={name or '-'}")
