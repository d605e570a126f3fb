"""Pytest fixtures for the reconciliation and stock tests.

Provides reusable test fixtures for:
- A file-backed SQLite database, tables recreated for every test
- A seeded product catalog
- An in-memory order sheet
- Carrier order-list pages served through httpx.MockTransport
- A best-effort dispatcher drained at the end of each test

Usage:
    def test_something(db_session, catalog, fake_sheet):
        ...
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

# Set environment variables BEFORE any imports to ensure they take effect
_test_dir = tempfile.mkdtemp(prefix="deliverysync-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_test_dir) / 'test.db'}"
os.environ["DISABLE_STATUS_SYNC"] = "true"
os.environ["LOG_JSON"] = "false"
os.environ.setdefault("DHD_API_TOKEN", "test-dhd-token")
os.environ.pop("SHEETS_SPREADSHEET_ID", None)

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

import httpx
import pytest
from sqlalchemy.orm import Session

import database
from infrastructure.carriers import CarrierClient, CarrierProfile
from inventory.dispatcher import BestEffortDispatcher
from models import Base, DeliveryRecord, DeliveryType, Product
from orders.ports import OrderSheetPort, SheetWriteError
from orders.service import OrderStatusService
from orders.status_writer import SheetStatusWriter
from reconciliation.orchestrator import ReconciliationOrchestrator


class FakeOrderSheet(OrderSheetPort):
    """In-memory order sheet recording every write."""

    def __init__(self, headers: Optional[List[str]] = None):
        self.headers = headers if headers is not None else ["id-sheet", "Client", "Produit", "Statut", "Tracking"]
        self.cells: Dict[str, str] = {}
        self.writes: List[tuple] = []
        self.header_reads = 0
        self.fail_rows = set()

    def read_header_row(self, tab_name: str) -> List[str]:
        self.header_reads += 1
        return list(self.headers)

    def write_cell(self, tab_name: str, column_letter: str, row_number: int, value: str) -> None:
        if row_number in self.fail_rows:
            raise SheetWriteError(f"Sheet refused write to row {row_number}")
        self.cells[f"{tab_name}!{column_letter}{row_number}"] = value
        self.writes.append((tab_name, column_letter, row_number, value))


class CarrierFeed:
    """Serves canned carrier pages and records which pages were requested.

    Args:
        pages: Entries per page; pages[0] is page 1
        fail_on_page: Page number answered with HTTP 503
        last_page: Reported last page (defaults to len(pages))
    """

    def __init__(self, pages: List[List[dict]], fail_on_page: Optional[int] = None, last_page: Optional[int] = None):
        self.pages = pages
        self.fail_on_page = fail_on_page
        self.last_page = last_page if last_page is not None else len(pages)
        self.requested: List[int] = []
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        page = int(request.url.params.get("page", "1"))
        self.requested.append(page)
        self.requests.append(request)
        if self.fail_on_page is not None and page == self.fail_on_page:
            return httpx.Response(503, json={"message": "unavailable"})
        entries = self.pages[page - 1] if page <= len(self.pages) else []
        return httpx.Response(200, json={"data": entries, "current_page": page, "last_page": self.last_page})

    def client_factory(self, profile: CarrierProfile) -> CarrierClient:
        return CarrierClient(profile, transport=httpx.MockTransport(self.handler))


@pytest.fixture(scope="function")
def db_session() -> Session:
    """Fresh tables for each test, dropped afterwards."""
    Base.metadata.create_all(bind=database.engine)
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def session_factory(db_session):
    return database.SessionLocal


@pytest.fixture
def catalog(db_session: Session) -> Dict[str, Product]:
    """Seed a small catalog.

    - T-shirt (TSH-01): "Rouge / M" = 5, "Bleu / L" = 2
    - Robe Sahra (ROBE-SA): "Noir" = 1
    - Arabic named product: "أحمر" = 3
    - Casquette (no code): "default" = 10
    """
    tshirt = Product(code="TSH-01", name="T-shirt")
    tshirt.add_variant("Rouge / M", 5)
    tshirt.add_variant("Bleu / L", 2)

    robe = Product(code="ROBE-SA", name="Robe Sahra")
    robe.add_variant("Noir", 1)

    arabic = Product(code="AR-01", name="عباية")
    arabic.add_variant("أحمر", 3)

    cap = Product(code=None, name="Casquette")
    cap.add_variant("default", 10)

    db_session.add_all([tshirt, robe, arabic, cap])
    db_session.commit()
    return {"tshirt": tshirt, "robe": robe, "arabic": arabic, "cap": cap}


@pytest.fixture
def fake_sheet() -> FakeOrderSheet:
    return FakeOrderSheet()


@pytest.fixture
def dispatcher():
    dispatcher = BestEffortDispatcher(max_workers=2)
    yield dispatcher
    dispatcher.shutdown(wait=True)


@pytest.fixture
def status_service(fake_sheet, dispatcher, session_factory) -> OrderStatusService:
    writer = SheetStatusWriter(fake_sheet, tab_name="Commandes", status_header="Statut")
    return OrderStatusService(writer=writer, dispatcher=dispatcher, session_factory=session_factory)


@pytest.fixture
def dhd_profile() -> CarrierProfile:
    return CarrierProfile(key=DeliveryType.API_DHD, label="DHD", base_url="https://dhd.test", token="secret")


@pytest.fixture
def make_orchestrator(dhd_profile, status_service):
    """Build an orchestrator bound to a CarrierFeed."""

    def _make(feed: CarrierFeed, profiles=None, max_pages: int = 250) -> ReconciliationOrchestrator:
        return ReconciliationOrchestrator(
            profiles=profiles if profiles is not None else {DeliveryType.API_DHD: dhd_profile},
            status_service=status_service,
            client_factory=feed.client_factory,
            max_pages=max_pages,
        )

    return _make


def add_delivery_record(
    db: Session,
    row_id: str,
    status: str = "new",
    tracking: Optional[str] = None,
    delivery_type: str = DeliveryType.API_DHD,
    row: Optional[dict] = None,
) -> DeliveryRecord:
    record = DeliveryRecord(
        row_id=row_id,
        status=status,
        tracking=tracking,
        delivery_type=delivery_type,
        row_json=row or {},
    )
    db.add(record)
    db.commit()
    return record


def variant_quantity(session_factory, product_code: str, variant_name: str) -> int:
    """Read a variant quantity in a fresh session (after background writes)."""
    db = session_factory()
    try:
        product = db.query(Product).filter(Product.code == product_code).one()
        return next(v.quantity for v in product.variants if v.name == variant_name)
    finally:
        db.close()
