"""Catalog matching - resolve order products to stock-holding variants"""

from .ports import CatalogLookup, VariantMatch, MatcherPort, MatcherError, ProductNotFoundError
from .catalog_matcher import CatalogMatcher, match_variant

__all__ = [
    "CatalogLookup",
    "VariantMatch",
    "MatcherPort",
    "MatcherError",
    "ProductNotFoundError",
    "CatalogMatcher",
    "match_variant",
]
