"""Text normalization shared by product extraction and catalog matching."""

import re
import unicodedata

_COMBINING_MARKS = re.compile(r"[\u0300-\u036f]")
_ARABIC_SCRIPT = re.compile(r"[\u0600-\u06ff\u0750-\u077f\u08a0-\u08ff\ufb50-\ufdff\ufe70-\ufeff]")
_WHITESPACE = re.compile(r"\s+")
_VARIANT_PART_SEPARATOR = re.compile(r"\s*/\s*")


def strip_diacritics(text: str) -> str:
    return _COMBINING_MARKS.sub("", unicodedata.normalize("NFD", text))


def has_arabic(text: str) -> bool:
    return bool(_ARABIC_SCRIPT.search(text))


def normalize_key(key: str) -> str:
    """Normalize a column header: no diacritics, lower case, trimmed."""
    return strip_diacritics(key).lower().strip()


def normalize_for_comparison(text) -> str:
    """Normalize a product or variant name for comparison.

    Whitespace is collapsed for every script. Diacritics are stripped and
    case folded for Latin text only; Arabic text is kept as written.
    """
    if not text:
        return ""
    normalized = _WHITESPACE.sub(" ", str(text)).strip()
    if has_arabic(normalized):
        return normalized
    return strip_diacritics(normalized).lower()


def split_variant_parts(normalized_variant: str) -> list:
    """Split a normalized variant on slashes ("rouge / m" -> ["rouge", "m"])."""
    return [part.strip() for part in _VARIANT_PART_SEPARATOR.split(normalized_variant) if part.strip()]
