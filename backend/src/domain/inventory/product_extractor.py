"""Product extraction from loosely structured order rows.

Order rows come from a spreadsheet whose headers vary between shops and
languages. The product an order consumed is found in priority order:

1. An explicit product id column (plus any variant column)
2. Explicit product name and variant columns, both meaningful
3. A free-text product label split into base name and variant
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .text import normalize_key

logger = logging.getLogger(__name__)

DEFAULT_VARIANT = "default"

PRODUCT_KEY_KEYWORDS = ("produit", "product", "article")
VARIANT_KEY_KEYWORDS = ("variante", "variant", "taille", "size", "couleur", "color")
LABEL_EXCLUDED_KEY_PARTS = ("(no)", "no)", "numero", "code")

QUANTITY_KEYS = ("Quantité", "Quantite", "Qte")
CODE_KEYS = ("Code", "code", "SKU", "Sku", "Référence", "Reference")
PRODUCT_ID_KEYS = (
    "Product ID",
    "ProductID",
    "productId",
    "product_id",
    "ProductId",
    "Produit ID",
    "ProduitID",
    "ID Produit",
)
PRODUCT_NAME_KEYS = (
    "Product Name",
    "ProductName",
    "productName",
    "product_name",
    "Produit Name",
    "ProduitName",
    "Nom Produit",
    "Nom du produit",
)

NON_VARIANT_VALUES = frozenset({"", "default", "defaut", "n/a", "na", "none", "aucun", "aucune", "-"})

LABEL_SEPARATORS = (" / ", " - ", " – ", " — ", " : ", " | ")

_TRAILING_PARENTHESIS = re.compile(r"\(([^()]+)\)\s*$")
_TRAILING_BRACKET = re.compile(r"\[([^\[\]]+)\]\s*$")
_BASE_TRAILING_PUNCTUATION = re.compile(r"[-–—:|]+\s*$")
_VARIANT_LEADING = re.compile(r"^[\s\-–—:|\[\]]+")
_VARIANT_TRAILING = re.compile(r"[\s\[\]]+$")
_WHITESPACE = re.compile(r"\s+")
_NON_DIGITS = re.compile(r"[^\d]")
_ID_TOKEN = re.compile(r"\bid\b")


@dataclass(frozen=True)
class ProductInfo:
    """Product reference extracted from an order row.

    Attributes:
        variant: Variant name, "default" when none could be found
        quantity: Ordered quantity, at least 1
        product_id: Catalog id when the row carries one
        code: Product code / SKU when present
        name: Product base name
    """
    variant: str
    quantity: int
    product_id: Optional[str] = None
    code: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class ProductLabel:
    base_name: str
    variant: str


def is_meaningful_variant(value: Optional[str]) -> bool:
    """Reject placeholder variants such as "default" or "n/a"."""
    if value is None:
        return False
    return value.strip().lower() not in NON_VARIANT_VALUES


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _first_present(row: Mapping[str, Any], keys) -> Optional[str]:
    for key in keys:
        if key in row:
            value = _text(row[key])
            if value:
                return value
    return None


def _first_matching_key(row: Mapping[str, Any], *required_parts: str) -> Optional[str]:
    for raw_key, value in row.items():
        normalized = normalize_key(str(raw_key))
        if all(part in normalized for part in required_parts):
            text = _text(value)
            if text:
                return text
    return None


def _clean_base_name(value: str) -> str:
    return _BASE_TRAILING_PUNCTUATION.sub("", value).strip()


def _clean_variant(value: str) -> str:
    value = _VARIANT_LEADING.sub("", value)
    value = _VARIANT_TRAILING.sub("", value)
    return _WHITESPACE.sub(" ", value).strip()


def split_product_label(label: str) -> ProductLabel:
    """Split a free-text product label into base name and variant.

    Tried in order: trailing parenthesis group, trailing bracket group,
    then the first " / ", " - ", " : " or " | " separator (everything after
    it is the variant, so "Robe / Rouge / M" gives variant "Rouge / M").
    Candidates that are not meaningful variants are ignored.

    Examples:
        "T-shirt (Rouge / M)" -> ("T-shirt", "Rouge / M")
        "T-shirt"             -> ("T-shirt", "default")
    """
    trimmed = (label or "").strip()
    if not trimmed:
        return ProductLabel(base_name="", variant=DEFAULT_VARIANT)

    for pattern in (_TRAILING_PARENTHESIS, _TRAILING_BRACKET):
        match = pattern.search(trimmed)
        if match:
            variant = _clean_variant(match.group(1))
            if variant and is_meaningful_variant(variant):
                base_name = _clean_base_name(trimmed[:match.start()])
                return ProductLabel(base_name=base_name or trimmed, variant=variant)

    for separator in LABEL_SEPARATORS:
        index = trimmed.find(separator)
        if 0 < index < len(trimmed) - len(separator):
            variant = _clean_variant(trimmed[index + len(separator):])
            base_name = _clean_base_name(trimmed[:index])
            if base_name and variant and is_meaningful_variant(variant):
                return ProductLabel(base_name=base_name, variant=variant)

    return ProductLabel(base_name=trimmed, variant=DEFAULT_VARIANT)


def extract_product_label(row: Mapping[str, Any]) -> str:
    """Find the free-text product label of an order row."""
    for raw_key, value in row.items():
        normalized = normalize_key(str(raw_key))
        if not normalized:
            continue
        if not any(keyword in normalized for keyword in PRODUCT_KEY_KEYWORDS):
            continue
        # Code, number and id columns are not labels
        if any(part in normalized for part in LABEL_EXCLUDED_KEY_PARTS) or _ID_TOKEN.search(normalized):
            continue
        text = _text(value)
        if text:
            return text
    return _text(row.get("Produit"))


def extract_variant(row: Mapping[str, Any]) -> str:
    """Find the variant of an order row, from variant columns or the label."""
    for raw_key, value in row.items():
        normalized = normalize_key(str(raw_key))
        if any(keyword in normalized for keyword in VARIANT_KEY_KEYWORDS):
            text = _text(value)
            if text and is_meaningful_variant(text):
                return text

    label = extract_product_label(row)
    if label:
        return split_product_label(label).variant
    return DEFAULT_VARIANT


def extract_quantity(row: Mapping[str, Any]) -> int:
    """Parse the ordered quantity; anything unusable counts as 1."""
    raw = None
    for key in QUANTITY_KEYS:
        if row.get(key):
            raw = row[key]
            break
    digits = _NON_DIGITS.sub("", _text(raw) or "1")
    try:
        quantity = int(digits)
    except ValueError:
        return 1
    return quantity if quantity > 0 else 1


def extract_product_code(row: Mapping[str, Any]) -> Optional[str]:
    return _first_present(row, CODE_KEYS)


def extract_product_id(row: Mapping[str, Any]) -> Optional[str]:
    return _first_present(row, PRODUCT_ID_KEYS) or _first_matching_key(row, "product", "id")


def extract_product_name(row: Mapping[str, Any]) -> Optional[str]:
    return _first_present(row, PRODUCT_NAME_KEYS) or _first_matching_key(row, "product", "name")


def extract_product_info(row: Optional[Mapping[str, Any]]) -> Optional[ProductInfo]:
    """Extract the product an order row refers to.

    Args:
        row: Snapshot of the order's spreadsheet row (header -> value)

    Returns:
        ProductInfo, or None when the row names no product at all
    """
    if not row:
        return None

    quantity = extract_quantity(row)
    variant = extract_variant(row)

    product_id = extract_product_id(row)
    if product_id:
        return ProductInfo(
            product_id=product_id,
            name=extract_product_name(row),
            variant=variant,
            quantity=quantity,
        )

    code = extract_product_code(row)
    direct_name = extract_product_name(row)
    if direct_name and variant != DEFAULT_VARIANT:
        return ProductInfo(code=code, name=direct_name, variant=variant, quantity=quantity)

    label = extract_product_label(row)
    if not label:
        logger.debug("Order row has no product label")
        return None

    split = split_product_label(label)
    if variant == DEFAULT_VARIANT:
        variant = split.variant
    return ProductInfo(
        code=code,
        name=split.base_name or label,
        variant=variant,
        quantity=quantity,
    )
