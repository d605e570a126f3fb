"""Unit tests for stock side effects of status changes and the best-effort queue"""

import threading
from unittest.mock import patch

from inventory import (
    BestEffortDispatcher,
    MissingProductMemo,
    apply_delivery_stock_effect,
    apply_return_stock_effect,
    schedule_stock_effect,
    stock_effect_for_transition,
)
from conftest import variant_quantity


class TestStockEffectForTransition:

    def test_newly_delivered_decrements(self):
        assert stock_effect_for_transition("SHIPPED", "livrée") is apply_delivery_stock_effect
        assert stock_effect_for_transition(None, "delivered") is apply_delivery_stock_effect

    def test_already_delivered_does_nothing(self):
        assert stock_effect_for_transition("livrée", "delivered") is None

    def test_return_after_delivery_increments(self):
        assert stock_effect_for_transition("livrée", "retours") is apply_return_stock_effect

    def test_return_before_delivery_does_nothing(self):
        assert stock_effect_for_transition("SHIPPED", "retours") is None

    def test_other_transitions(self):
        assert stock_effect_for_transition("new", "SHIPPED") is None
        assert stock_effect_for_transition("SHIPPED", "abandoned") is None


class TestApplyStockEffects:

    def test_delivery_decrements_matching_variant(self, catalog, session_factory):
        row = {"Produit": "T-shirt (Rouge / M)", "Quantité": "2"}
        assert apply_delivery_stock_effect("12", row, session_factory=session_factory) == 3
        assert variant_quantity(session_factory, "TSH-01", "Rouge / M") == 3

    def test_delivery_may_oversell(self, catalog, session_factory):
        row = {"Produit": "Robe Sahra [Noir]", "Quantité": "3"}
        assert apply_delivery_stock_effect("12", row, session_factory=session_factory) == -2

    def test_return_increments(self, catalog, session_factory):
        row = {"Produit": "Robe Sahra [Noir]"}
        assert apply_return_stock_effect("12", row, session_factory=session_factory) == 2

    def test_missing_product_is_swallowed(self, catalog, session_factory):
        row = {"Produit": "Sac à dos (Noir)"}
        assert apply_delivery_stock_effect("12", row, session_factory=session_factory) is None

    def test_row_without_product_is_swallowed(self, catalog, session_factory):
        assert apply_delivery_stock_effect("12", {"Client": "Amine"}, session_factory=session_factory) is None

    def test_catalog_failure_is_swallowed(self, catalog, session_factory):
        row = {"Produit": "T-shirt (Rouge / M)"}
        with patch("inventory.delivery_effects.CatalogMatcher.find", side_effect=RuntimeError("db down")):
            assert apply_delivery_stock_effect("12", row, session_factory=session_factory) is None
        assert variant_quantity(session_factory, "TSH-01", "Rouge / M") == 5

    def test_missing_product_memo_skips_repeat_lookups(self, catalog, session_factory):
        memo = MissingProductMemo()
        row = {"Produit": "Sac à dos (Noir)"}
        apply_delivery_stock_effect("12", row, memo=memo, session_factory=session_factory)
        assert len(memo) == 1

        with patch("inventory.delivery_effects.CatalogMatcher.find") as find:
            apply_delivery_stock_effect("13", row, memo=memo, session_factory=session_factory)
        find.assert_not_called()

    def test_memo_is_bounded(self):
        memo = MissingProductMemo(max_size=2)
        for key in ("a", "b", "c"):
            memo.add(key)
        assert len(memo) == 2
        assert "a" not in memo
        assert "c" in memo


class TestBestEffortDispatcher:

    def test_dispatch_does_not_wait(self):
        dispatcher = BestEffortDispatcher(max_workers=1)
        release = threading.Event()
        try:
            future = dispatcher.dispatch("slow", release.wait, 5)
            assert future is not None
            assert not future.done()
            release.set()
            assert dispatcher.wait_idle(timeout=5)
            assert future.result() is True
        finally:
            dispatcher.shutdown()

    def test_failing_job_is_logged_not_raised(self, caplog):
        dispatcher = BestEffortDispatcher(max_workers=1)

        def boom():
            raise RuntimeError("catalog unavailable")

        try:
            dispatcher.dispatch("boom", boom)
            assert dispatcher.wait_idle(timeout=5)
        finally:
            dispatcher.shutdown()
        assert "catalog unavailable" in caplog.text
        assert dispatcher.pending == 0

    def test_closed_dispatcher_drops_jobs(self):
        dispatcher = BestEffortDispatcher(max_workers=1)
        dispatcher.shutdown()
        assert dispatcher.dispatch("late", lambda: None) is None

    def test_schedule_stock_effect_dispatches_once_for_delivery(self, catalog, session_factory, dispatcher):
        row = {"Produit": "T-shirt (Bleu / L)"}
        future = schedule_stock_effect(dispatcher, "12", row, "SHIPPED", "livrée", session_factory=session_factory)
        assert future is not None
        assert dispatcher.wait_idle(timeout=5)
        assert variant_quantity(session_factory, "TSH-01", "Bleu / L") == 1

        assert schedule_stock_effect(dispatcher, "12", row, "livrée", "livrée", session_factory=session_factory) is None
