"""Carrier status classifier.

Turns a raw carrier status (French, English or Arabic free text, with
typos and synonyms) into a canonical status. Pure function, no I/O.
"""

from typing import Iterable, Optional

from .canonical import CanonicalStatus, normalize_status
from .keywords import (
    ARABIC_KEYWORDS,
    CLASSIFICATION_ORDER,
    LATIN_KEYWORDS,
    SHIPPED_EXACT_STATUSES,
)


def _normalized_keywords(values: Iterable[str]) -> tuple:
    return tuple(keyword for keyword in (normalize_status(v) for v in values) if keyword)


_LATIN_TABLE = {
    category: _normalized_keywords(keywords)
    for category, keywords in LATIN_KEYWORDS.items()
}


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword and keyword in text for keyword in keywords)


def classify_carrier_status(raw_status: Optional[object]) -> CanonicalStatus:
    """Classify a raw carrier status string.

    Categories are tested in a fixed order (returned, delivered, shipped,
    cancelled); the first match wins.

    Args:
        raw_status: Status value from a carrier entry (any type)

    Returns:
        CanonicalStatus; UNKNOWN when nothing matches or input is not text.
        Callers must leave the local status untouched on UNKNOWN.
    """
    if not isinstance(raw_status, str):
        return CanonicalStatus.UNKNOWN
    trimmed = raw_status.strip()
    if not trimmed:
        return CanonicalStatus.UNKNOWN

    normalized = normalize_status(trimmed)

    for category in CLASSIFICATION_ORDER:
        if category == CanonicalStatus.SHIPPED and normalized in SHIPPED_EXACT_STATUSES:
            return category
        if _contains_any(normalized, _LATIN_TABLE[category]):
            return category
        if _contains_any(trimmed, ARABIC_KEYWORDS[category]):
            return category

    return CanonicalStatus.UNKNOWN
