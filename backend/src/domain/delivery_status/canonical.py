"""Canonical order statuses and local status equivalence.

The tabular order store holds free-form status strings. Reconciliation
reasons about a small canonical vocabulary; this module maps between the
two.

State Flow:
    PENDING → SHIPPED → DELIVERED|RETURNED
    PENDING|SHIPPED → CANCELLED

Terminal States: DELIVERED, RETURNED, CANCELLED
"""

import re
import unicodedata
from enum import Enum
from typing import Dict, FrozenSet, Optional

_COMBINING_MARKS = re.compile(r"[\u0300-\u036f]")


class CanonicalStatus(str, Enum):
    """Canonical order status vocabulary."""
    PENDING = "pending"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    RETURNED = "returned"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


# Label written into the tabular store for each canonical status
SHEET_STATUS_LABELS: Dict[CanonicalStatus, str] = {
    CanonicalStatus.SHIPPED: "SHIPPED",
    CanonicalStatus.DELIVERED: "livrée",
    CanonicalStatus.RETURNED: "retours",
    CanonicalStatus.CANCELLED: "abandoned",
}

# Normalized local spellings that mean the same canonical status
STATUS_EQUIVALENTS: Dict[CanonicalStatus, FrozenSet[str]] = {
    CanonicalStatus.SHIPPED: frozenset({"shipped", "expedie", "expediee"}),
    CanonicalStatus.DELIVERED: frozenset({"delivered", "livree", "livre"}),
    CanonicalStatus.RETURNED: frozenset({"returned", "retours", "retour", "retourne", "retournee"}),
    CanonicalStatus.CANCELLED: frozenset({
        "abandoned", "cancelled", "canceled", "annulee", "annule",
    }),
}

TERMINAL_STATUSES: FrozenSet[CanonicalStatus] = frozenset({
    CanonicalStatus.DELIVERED,
    CanonicalStatus.RETURNED,
    CanonicalStatus.CANCELLED,
})


def normalize_status(status: Optional[str]) -> str:
    """Normalize a status string for comparison.

    Underscores become spaces, Latin diacritics are stripped, case is
    folded and surrounding whitespace removed.
    """
    if not status:
        return ""
    text = status.replace("_", " ")
    text = _COMBINING_MARKS.sub("", unicodedata.normalize("NFD", text))
    return text.lower().strip()


def sheet_label(status: CanonicalStatus) -> str:
    """Return the tabular-store label for a canonical status.

    Raises:
        ValueError: If the status has no label (PENDING, UNKNOWN)
    """
    try:
        return SHEET_STATUS_LABELS[status]
    except KeyError:
        raise ValueError(f"No sheet label for status {status.value}")


def local_status_category(status: Optional[str]) -> CanonicalStatus:
    """Map a local free-form status onto the canonical vocabulary.

    Anything not recognized as shipped or terminal (``new``,
    ``ready_to_ship``, carrier-opaque strings) counts as PENDING.
    """
    normalized = normalize_status(status)
    for canonical, equivalents in STATUS_EQUIVALENTS.items():
        if normalized in equivalents:
            return canonical
    return CanonicalStatus.PENDING


def statuses_equivalent(current: Optional[str], target: CanonicalStatus) -> bool:
    """Check whether a local status already expresses ``target``.

    Args:
        current: Local status as stored (may be missing)
        target: Canonical status the carrier reports

    Returns:
        True if writing ``target`` would not change the order's meaning
    """
    if not current or target not in SHEET_STATUS_LABELS:
        return False
    normalized = normalize_status(current)
    if normalized == normalize_status(SHEET_STATUS_LABELS[target]):
        return True
    return normalized in STATUS_EQUIVALENTS.get(target, frozenset())


def is_terminal_status(status: Optional[str]) -> bool:
    """True for delivered, returned or cancelled-equivalent statuses."""
    return local_status_category(status) in TERMINAL_STATUSES


def is_delivered_status(status: Optional[str]) -> bool:
    return local_status_category(status) == CanonicalStatus.DELIVERED


def is_returned_status(status: Optional[str]) -> bool:
    return local_status_category(status) == CanonicalStatus.RETURNED
