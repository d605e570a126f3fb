"""Unit tests for the reconciliation orchestrator.

Carrier feeds are served through httpx.MockTransport, the order sheet is
in memory and the catalog lives in SQLite.
"""

from unittest.mock import patch

from prometheus_client import REGISTRY
from sqlalchemy.exc import OperationalError

from infrastructure.carriers import CarrierProfile
from models import DeliveryRecord, DeliveryType
from orders.service import LocalStatusPersistError
from reconciliation import (
    SKIP_DELIVERY_PERSON,
    SKIP_MISSING_TOKEN,
    SKIP_UNKNOWN_STATUS,
    SyncOrder,
    sanitize_orders,
)
from conftest import CarrierFeed, add_delivery_record, variant_quantity

TSHIRT_ROW = {"Produit": "T-shirt (Rouge / M)", "Quantité": "2"}


def _local_status(session_factory, row_id):
    db = session_factory()
    try:
        return db.query(DeliveryRecord).filter(DeliveryRecord.row_id == row_id).one().status
    finally:
        db.close()


def _unknown_count():
    return REGISTRY.get_sample_value(
        "deliverysync_carrier_status_unknown_total", {"delivery_type": DeliveryType.API_DHD}
    ) or 0.0


class TestSanitizeOrders:

    def test_drops_blank_and_duplicate_row_ids(self):
        orders = sanitize_orders([
            SyncOrder(row_id=" 2 ", tracking=" T1 "),
            SyncOrder(row_id="", tracking="T2"),
            SyncOrder(row_id="2", tracking="T3"),
            SyncOrder(row_id="3", delivery_type=""),
            SyncOrder(row_id="4", delivery_type=" API_SOOK "),
        ])
        assert [o.row_id for o in orders] == ["2", "3", "4"]
        assert orders[0].tracking == "T1"
        assert orders[1].delivery_type == DeliveryType.API_DHD
        assert orders[2].delivery_type == DeliveryType.API_SOOK


class TestReconcile:

    def test_delivered_order_is_written_and_stock_decremented(
        self, db_session, catalog, fake_sheet, dispatcher, session_factory, make_orchestrator
    ):
        add_delivery_record(db_session, "2", status="SHIPPED", tracking="TRK1", row=TSHIRT_ROW)
        feed = CarrierFeed([[{"tracking": "trk1", "status": "Livré"}]])

        result = make_orchestrator(feed).reconcile([SyncOrder(row_id="2", tracking="TRK1", current_status="SHIPPED")])

        assert result.updates == [{
            "rowId": "2",
            "previousStatus": "SHIPPED",
            "status": "livrée",
            "carrierStatus": "Livré",
            "tracking": "TRK1",
            "stockEffect": "apply_delivery_stock_effect",
        }]
        assert result.pages_fetched == 1
        assert result.fetched_orders == 1
        assert fake_sheet.cells == {"Commandes!D2": "livrée"}
        assert _local_status(session_factory, "2") == "livrée"

        assert dispatcher.wait_idle(timeout=5)
        assert variant_quantity(session_factory, "TSH-01", "Rouge / M") == 3

    def test_second_run_changes_nothing(
        self, db_session, catalog, fake_sheet, dispatcher, session_factory, make_orchestrator
    ):
        add_delivery_record(db_session, "2", status="SHIPPED", tracking="TRK1", row=TSHIRT_ROW)
        feed = CarrierFeed([[{"tracking": "TRK1", "status": "Livré"}]])
        orchestrator = make_orchestrator(feed)
        orders = [SyncOrder(row_id="2", tracking="TRK1", current_status="SHIPPED")]

        orchestrator.reconcile(orders)
        assert dispatcher.wait_idle(timeout=5)
        second = orchestrator.reconcile(orders)
        assert dispatcher.wait_idle(timeout=5)

        assert second.updates == []
        assert second.errors == []
        assert len(fake_sheet.writes) == 1
        assert variant_quantity(session_factory, "TSH-01", "Rouge / M") == 3

    def test_equivalent_local_spelling_is_not_rewritten(self, db_session, fake_sheet, make_orchestrator):
        add_delivery_record(db_session, "2", status="delivered", tracking="TRK1")
        feed = CarrierFeed([[{"tracking": "TRK1", "status": "Colis livré"}]])

        result = make_orchestrator(feed).reconcile([SyncOrder(row_id="2", tracking="TRK1")])

        assert result.updates == []
        assert fake_sheet.writes == []

    def test_local_status_is_reread_before_writing(self, db_session, fake_sheet, make_orchestrator):
        # The batch still says SHIPPED but the order was delivered manually since
        add_delivery_record(db_session, "2", status="livrée", tracking="TRK1")
        feed = CarrierFeed([[{"tracking": "TRK1", "status": "Livré"}]])

        result = make_orchestrator(feed).reconcile([SyncOrder(row_id="2", tracking="TRK1", current_status="SHIPPED")])

        assert result.updates == []
        assert fake_sheet.writes == []

    def test_shipped_status_has_no_stock_effect(self, db_session, catalog, fake_sheet, make_orchestrator):
        add_delivery_record(db_session, "2", status="new", tracking="TRK1", row=TSHIRT_ROW)
        feed = CarrierFeed([[{"tracking": "TRK1", "status": "En livraison"}]])

        result = make_orchestrator(feed).reconcile([SyncOrder(row_id="2", tracking="TRK1")])

        assert result.updates[0]["status"] == "SHIPPED"
        assert result.updates[0]["stockEffect"] is None

    def test_return_after_delivery_gives_stock_back(
        self, db_session, catalog, dispatcher, session_factory, make_orchestrator
    ):
        add_delivery_record(db_session, "2", status="livrée", tracking="TRK1", row={"Produit": "Robe Sahra [Noir]"})
        feed = CarrierFeed([[{"tracking": "TRK1", "status": "Retourné à l'expéditeur"}]])

        result = make_orchestrator(feed).reconcile([SyncOrder(row_id="2", tracking="TRK1")])

        assert result.updates[0]["status"] == "retours"
        assert result.updates[0]["stockEffect"] == "apply_return_stock_effect"
        assert dispatcher.wait_idle(timeout=5)
        assert variant_quantity(session_factory, "ROBE-SA", "Noir") == 2

    def test_unknown_carrier_status_leaves_order_untouched(
        self, db_session, fake_sheet, session_factory, make_orchestrator
    ):
        add_delivery_record(db_session, "2", status="SHIPPED", tracking="TRK1")
        feed = CarrierFeed([[{"tracking": "TRK1", "status": "Anomalie adresse"}]])
        before = _unknown_count()

        result = make_orchestrator(feed).reconcile([SyncOrder(row_id="2", tracking="TRK1")])

        assert result.skipped == [{"rowId": "2", "reason": SKIP_UNKNOWN_STATUS, "carrierStatus": "Anomalie adresse"}]
        assert result.updates == []
        assert fake_sheet.writes == []
        assert _local_status(session_factory, "2") == "SHIPPED"
        assert _unknown_count() == before + 1

    def test_livreur_orders_are_never_scanned(self, db_session, fake_sheet, make_orchestrator):
        feed = CarrierFeed([[{"tracking": "TRK1", "status": "Livré"}]])

        result = make_orchestrator(feed).reconcile([
            SyncOrder(row_id="2", tracking="TRK1", delivery_type=DeliveryType.LIVREUR),
        ])

        assert result.skipped == [{"rowId": "2", "reason": SKIP_DELIVERY_PERSON}]
        assert feed.requested == []
        assert fake_sheet.writes == []

    def test_profile_without_token_is_skipped(self, db_session, make_orchestrator):
        feed = CarrierFeed([[{"tracking": "TRK1", "status": "Livré"}]])
        profiles = {
            DeliveryType.API_DHD: CarrierProfile(key=DeliveryType.API_DHD, label="DHD", base_url="https://dhd.test", token=None),
        }

        result = make_orchestrator(feed, profiles=profiles).reconcile([
            SyncOrder(row_id="2", tracking="TRK1"),
            SyncOrder(row_id="3", tracking="TRK2", delivery_type=DeliveryType.API_SOOK),
        ])

        assert result.skipped == [
            {"rowId": "2", "reason": SKIP_MISSING_TOKEN},
            {"rowId": "3", "reason": SKIP_MISSING_TOKEN},
        ]
        assert feed.requested == []

    def test_order_missing_from_feed(self, db_session, make_orchestrator):
        add_delivery_record(db_session, "2", status="SHIPPED", tracking="TRK1")
        feed = CarrierFeed([[{"tracking": "OTHER", "status": "Livré"}]])

        result = make_orchestrator(feed).reconcile([SyncOrder(row_id="2", tracking="TRK1", reference="R-9")])

        assert result.not_found == [{"rowId": "2", "tracking": "TRK1", "reference": "R-9"}]

    def test_matched_by_reference(self, db_session, fake_sheet, make_orchestrator):
        add_delivery_record(db_session, "2", status="new", row={"reference": "CMD-77"})
        feed = CarrierFeed([[{"tracking": None, "reference": "cmd-77 ", "status": "Annulé par client"}]])

        result = make_orchestrator(feed).reconcile([SyncOrder(row_id="2", reference="CMD-77")])

        assert result.updates[0]["status"] == "abandoned"
        assert fake_sheet.cells == {"Commandes!D2": "abandoned"}

    def test_sheet_failure_is_isolated_to_its_order(
        self, db_session, fake_sheet, session_factory, make_orchestrator
    ):
        add_delivery_record(db_session, "2", status="SHIPPED", tracking="TRK1")
        add_delivery_record(db_session, "3", status="SHIPPED", tracking="TRK2")
        fake_sheet.fail_rows = {2}
        feed = CarrierFeed([[
            {"tracking": "TRK1", "status": "Livré"},
            {"tracking": "TRK2", "status": "Livré"},
        ]])

        result = make_orchestrator(feed).reconcile([
            SyncOrder(row_id="2", tracking="TRK1"),
            SyncOrder(row_id="3", tracking="TRK2"),
        ])

        assert [e["rowId"] for e in result.errors] == ["2"]
        assert [u["rowId"] for u in result.updates] == ["3"]
        assert _local_status(session_factory, "2") == "SHIPPED"
        assert _local_status(session_factory, "3") == "livrée"

    def test_local_persist_failure_skips_stock_effect(
        self, db_session, catalog, fake_sheet, dispatcher, session_factory, status_service, make_orchestrator
    ):
        add_delivery_record(db_session, "2", status="SHIPPED", tracking="TRK1", row=TSHIRT_ROW)
        feed = CarrierFeed([[{"tracking": "TRK1", "status": "Livré"}]])

        with patch.object(
            status_service, "_persist_local_status", side_effect=LocalStatusPersistError("db down")
        ):
            result = make_orchestrator(feed).reconcile([SyncOrder(row_id="2", tracking="TRK1")])

        assert result.errors == [{"rowId": "2", "error": "db down"}]
        assert fake_sheet.cells == {"Commandes!D2": "livrée"}
        assert dispatcher.wait_idle(timeout=5)
        assert variant_quantity(session_factory, "TSH-01", "Rouge / M") == 5

    def test_unreachable_carrier_reports_errors(self, db_session, make_orchestrator):
        add_delivery_record(db_session, "2", status="SHIPPED", tracking="TRK1")
        add_delivery_record(db_session, "3", status="SHIPPED", tracking="TRK2")
        feed = CarrierFeed(
            [[{"tracking": "TRK1", "status": "En livraison"}], [{"tracking": "TRK2", "status": "Livré"}]],
            fail_on_page=2,
        )

        result = make_orchestrator(feed).reconcile([
            SyncOrder(row_id="2", tracking="TRK1", current_status="SHIPPED"),
            SyncOrder(row_id="3", tracking="TRK2", current_status="SHIPPED"),
        ])

        assert result.updates == []
        assert len(result.errors) == 1
        assert result.errors[0]["rowId"] == "3"
        assert result.errors[0]["error"].startswith("carrier_unavailable:")

    def test_invalid_row_id_is_an_error(self, db_session, fake_sheet, make_orchestrator):
        feed = CarrierFeed([[{"tracking": "TRK1", "status": "Livré"}]])

        result = make_orchestrator(feed).reconcile([SyncOrder(row_id="header", tracking="TRK1")])

        assert result.errors[0]["rowId"] == "header"
        assert fake_sheet.writes == []


    def test_local_read_failure_is_isolated_to_its_order(
        self, db_session, fake_sheet, session_factory, status_service, make_orchestrator
    ):
        for row_id, tracking in (("2", "TRK1"), ("3", "TRK2"), ("4", "TRK3")):
            add_delivery_record(db_session, row_id, status="SHIPPED", tracking=tracking)
        feed = CarrierFeed([[
            {"tracking": "TRK1", "status": "Livré"},
            {"tracking": "TRK2", "status": "Livré"},
            {"tracking": "TRK3", "status": "Livré"},
        ]])
        read_snapshot = status_service.snapshot

        def locked_on_row_3(row_id):
            if row_id == "3":
                raise OperationalError("SELECT delivery_record", {}, Exception("database is locked"))
            return read_snapshot(row_id)

        with patch.object(status_service, "snapshot", side_effect=locked_on_row_3):
            result = make_orchestrator(feed).reconcile([
                SyncOrder(row_id="2", tracking="TRK1"),
                SyncOrder(row_id="3", tracking="TRK2"),
                SyncOrder(row_id="4", tracking="TRK3"),
            ])

        assert [u["rowId"] for u in result.updates] == ["2", "4"]
        assert [e["rowId"] for e in result.errors] == ["3"]
        assert result.errors[0]["error"].startswith("local_read_failed:")
        assert "Commandes!D3" not in fake_sheet.cells
        assert _local_status(session_factory, "3") == "SHIPPED"
        assert _local_status(session_factory, "4") == "livrée"

    def test_delivery_type_is_case_insensitive(self, db_session, fake_sheet, make_orchestrator):
        feed = CarrierFeed([[{"tracking": "TRK1", "status": "Livré"}]])

        result = make_orchestrator(feed).reconcile([
            SyncOrder(row_id="2", tracking="TRK1", delivery_type="Livreur"),
        ])

        assert result.skipped == [{"rowId": "2", "reason": SKIP_DELIVERY_PERSON}]
        assert feed.requested == []
        assert fake_sheet.writes == []
