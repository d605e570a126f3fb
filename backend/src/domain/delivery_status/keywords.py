"""Carrier status keyword tables.

Carrier feeds report free text in French, English and Arabic. Each
category maps to an ordered keyword list; Latin keywords are matched by
substring containment on normalized text, Arabic keywords by raw
containment (normalization would corrupt Arabic script).
"""

from typing import Dict, FrozenSet, Tuple

from .canonical import CanonicalStatus

# Exact statuses reported while a parcel moves through the carrier network
SHIPPED_EXACT_STATUSES: FrozenSet[str] = frozenset({
    "vers station",
    "en station",
    "vers wilaya",
    "en preparation",
    "en prepa",
    "en livraison",
    "en cours de livraison",
    "ramassage",
    "ramasse",
    "collecte",
    "prise en charge",
    "en cours",
    "depart station",
    "depart wilaya",
    "pret a expedier",
    "prete a expedier",
})

LATIN_KEYWORDS: Dict[CanonicalStatus, Tuple[str, ...]] = {
    CanonicalStatus.RETURNED: (
        "retour",
        "retours",
        "retourne",
        "retournee",
        "retour vers expediteur",
        "return to sender",
        "returned",
        "refus",
        "refuse",
        "client refuse",
        "colis refuse",
        "refusee",
        "non livre",
    ),
    CanonicalStatus.DELIVERED: (
        "livre",
        "livree",
        "colis livre",
        "commande livree",
        "livre au client",
        "livraison reussie",
        "delivered",
        "delivery done",
        "paye et archive",
        "paye et archivee",
        "payer et archive",
    ),
    CanonicalStatus.SHIPPED: tuple(sorted(SHIPPED_EXACT_STATUSES)) + (
        "livraison",
        "en chemin",
        "en route",
        "ready to ship",
        "expedition en cours",
        "expedie",
    ),
    CanonicalStatus.CANCELLED: (
        "annule",
        "annulee",
        "annule par client",
        "commande annulee",
        "cancelled",
        "canceled",
        "annulation",
        "annule marchand",
    ),
}

ARABIC_KEYWORDS: Dict[CanonicalStatus, Tuple[str, ...]] = {
    CanonicalStatus.RETURNED: (
        "راجع",
        "تم الارجاع",
        "تم الإرجاع",
        "مرتجع",
        "رفض الاستلام",
    ),
    CanonicalStatus.DELIVERED: (
        "تم التسليم",
        "تم التوصيل",
        "سلمت",
        "سُلِّم",
    ),
    CanonicalStatus.SHIPPED: (
        "تم الشحن",
        "في الطريق",
        "في التوصيل",
    ),
    CanonicalStatus.CANCELLED: (
        "ألغيت",
        "تم الإلغاء",
        "ملغاة",
    ),
}

# Order matters: "Colis refusé en livraison" must read as a return.
CLASSIFICATION_ORDER: Tuple[CanonicalStatus, ...] = (
    CanonicalStatus.RETURNED,
    CanonicalStatus.DELIVERED,
    CanonicalStatus.SHIPPED,
    CanonicalStatus.CANCELLED,
)
