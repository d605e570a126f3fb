"""Unit tests for carrier status classification and local status equivalence"""

import pytest

from domain.delivery_status import (
    CanonicalStatus,
    classify_carrier_status,
    is_delivered_status,
    is_returned_status,
    is_terminal_status,
    local_status_category,
    normalize_status,
    sheet_label,
    statuses_equivalent,
)


class TestClassifyCarrierStatus:
    """Test raw carrier status -> canonical status"""

    @pytest.mark.parametrize("raw", ["Livré", "livree", "Colis livré au client", "DELIVERED", "Payé et archivé"])
    def test_delivered(self, raw):
        assert classify_carrier_status(raw) == CanonicalStatus.DELIVERED

    @pytest.mark.parametrize("raw", ["Retourné", "Retour vers expéditeur", "Returned to sender", "Client refuse"])
    def test_returned(self, raw):
        assert classify_carrier_status(raw) == CanonicalStatus.RETURNED

    @pytest.mark.parametrize("raw", ["Vers Wilaya", "En livraison", "Expédié", "ready_to_ship", "En station"])
    def test_shipped(self, raw):
        assert classify_carrier_status(raw) == CanonicalStatus.SHIPPED

    @pytest.mark.parametrize("raw", ["Annulé", "Commande annulée", "cancelled"])
    def test_cancelled(self, raw):
        assert classify_carrier_status(raw) == CanonicalStatus.CANCELLED

    def test_returned_wins_over_shipped(self):
        """Test a refusal mentioning delivery reads as a return"""
        assert classify_carrier_status("Colis refusé en livraison") == CanonicalStatus.RETURNED

    def test_arabic_statuses_are_matched_raw(self):
        assert classify_carrier_status("تم التسليم") == CanonicalStatus.DELIVERED
        assert classify_carrier_status("راجع للمرسل") == CanonicalStatus.RETURNED
        assert classify_carrier_status("تم الشحن") == CanonicalStatus.SHIPPED

    @pytest.mark.parametrize("raw", ["Nouveau colis", "xyz", "", "   ", None, 42, {"status": "livré"}])
    def test_unrecognized_is_unknown(self, raw):
        assert classify_carrier_status(raw) == CanonicalStatus.UNKNOWN


class TestLocalStatuses:
    """Test local status normalization and equivalence"""

    def test_normalize_status(self):
        assert normalize_status("  Livrée ") == "livree"
        assert normalize_status("ready_to_ship") == "ready to ship"
        assert normalize_status(None) == ""

    def test_sheet_labels(self):
        assert sheet_label(CanonicalStatus.SHIPPED) == "SHIPPED"
        assert sheet_label(CanonicalStatus.DELIVERED) == "livrée"
        assert sheet_label(CanonicalStatus.RETURNED) == "retours"
        assert sheet_label(CanonicalStatus.CANCELLED) == "abandoned"

    def test_unknown_has_no_sheet_label(self):
        with pytest.raises(ValueError):
            sheet_label(CanonicalStatus.UNKNOWN)

    @pytest.mark.parametrize("current, target", [
        ("livrée", CanonicalStatus.DELIVERED),
        ("delivered", CanonicalStatus.DELIVERED),
        ("LIVREE", CanonicalStatus.DELIVERED),
        ("retours", CanonicalStatus.RETURNED),
        ("returned", CanonicalStatus.RETURNED),
        ("shipped", CanonicalStatus.SHIPPED),
        ("SHIPPED", CanonicalStatus.SHIPPED),
        ("cancelled", CanonicalStatus.CANCELLED),
        ("abandoned", CanonicalStatus.CANCELLED),
    ])
    def test_equivalent_spellings(self, current, target):
        assert statuses_equivalent(current, target) is True

    @pytest.mark.parametrize("current, target", [
        ("new", CanonicalStatus.SHIPPED),
        ("SHIPPED", CanonicalStatus.DELIVERED),
        ("livrée", CanonicalStatus.RETURNED),
        (None, CanonicalStatus.DELIVERED),
        ("", CanonicalStatus.SHIPPED),
    ])
    def test_different_statuses(self, current, target):
        assert statuses_equivalent(current, target) is False

    def test_local_status_category(self):
        assert local_status_category("new") == CanonicalStatus.PENDING
        assert local_status_category("ready_to_ship") == CanonicalStatus.PENDING
        assert local_status_category("Livrée") == CanonicalStatus.DELIVERED
        assert local_status_category("abandoned") == CanonicalStatus.CANCELLED

    def test_terminal_statuses(self):
        assert is_terminal_status("livrée") is True
        assert is_terminal_status("retours") is True
        assert is_terminal_status("abandoned") is True
        assert is_terminal_status("SHIPPED") is False
        assert is_terminal_status("new") is False
        assert is_terminal_status(None) is False

    def test_delivered_and_returned_helpers(self):
        assert is_delivered_status("delivered") is True
        assert is_delivered_status("retours") is False
        assert is_returned_status("Retour") is True
