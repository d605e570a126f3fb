"""Application wiring and FastAPI dependencies.

Builds the long-lived collaborators (sheet client, stock dispatcher,
status service, orchestrator) from settings. Routers depend on the
get_* functions so tests can swap them with dependency_overrides.
"""

from functools import lru_cache
from typing import Optional

from config import Settings, settings as default_settings
from database import SessionLocal
from infrastructure.carriers import carrier_profiles_from_settings
from infrastructure.sheets import GoogleSheetsClient
from inventory.dispatcher import BestEffortDispatcher
from orders.ports import OrderSheetPort, UnconfiguredSheet
from orders.service import OrderStatusService
from orders.status_writer import HeaderRowCache, SheetStatusWriter
from reconciliation.orchestrator import ReconciliationOrchestrator


def build_sheet_port(settings: Settings) -> OrderSheetPort:
    if not settings.SHEETS_SPREADSHEET_ID or not settings.SHEETS_API_TOKEN:
        return UnconfiguredSheet()
    return GoogleSheetsClient(
        spreadsheet_id=settings.SHEETS_SPREADSHEET_ID,
        token=settings.SHEETS_API_TOKEN,
        api_url=settings.SHEETS_API_URL,
        timeout=settings.SHEETS_REQUEST_TIMEOUT_SECONDS,
    )


def build_status_writer(settings: Settings, sheet: Optional[OrderSheetPort] = None) -> SheetStatusWriter:
    return SheetStatusWriter(
        sheet or build_sheet_port(settings),
        tab_name=settings.SHEETS_TAB_NAME,
        status_column=settings.SHEETS_STATUS_COLUMN,
        status_header=settings.SHEETS_STATUS_HEADER,
        header_cache=HeaderRowCache(ttl_seconds=settings.SHEETS_HEADER_CACHE_TTL_SECONDS),
    )


@lru_cache()
def get_dispatcher() -> BestEffortDispatcher:
    """Process-wide best-effort queue for stock side effects."""
    return BestEffortDispatcher(max_workers=default_settings.STOCK_WORKERS)


@lru_cache()
def get_order_status_service() -> OrderStatusService:
    return OrderStatusService(
        writer=build_status_writer(default_settings),
        dispatcher=get_dispatcher(),
        session_factory=SessionLocal,
    )


def build_orchestrator(
    settings: Settings,
    status_service: OrderStatusService,
) -> ReconciliationOrchestrator:
    return ReconciliationOrchestrator(
        profiles=carrier_profiles_from_settings(settings),
        status_service=status_service,
        max_pages=settings.CARRIER_MAX_PAGES,
        request_timeout=settings.CARRIER_REQUEST_TIMEOUT_SECONDS,
    )


@lru_cache()
def get_orchestrator() -> ReconciliationOrchestrator:
    return build_orchestrator(default_settings, get_order_status_service())
