"""Observability: JSON logging, correlation ids, Prometheus metrics, health."""

from .logging_config import configure_logging, get_logger
from .metrics import (
    carrier_pages_fetched_total,
    carrier_fetch_errors_total,
    carrier_status_unknown_total,
    reconciliation_runs_total,
    reconciliation_updates_total,
    reconciliation_duration_seconds,
    sheet_writes_total,
    stock_adjustments_total,
)
from .request_id import get_request_id, generate_request_id, bind_request_id, reset_request_id, run_context
from .health import HealthStatus, ComponentHealth, get_overall_health
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "carrier_pages_fetched_total",
    "carrier_fetch_errors_total",
    "carrier_status_unknown_total",
    "reconciliation_runs_total",
    "reconciliation_updates_total",
    "reconciliation_duration_seconds",
    "sheet_writes_total",
    "stock_adjustments_total",
    # Correlation ids
    "get_request_id",
    "generate_request_id",
    "bind_request_id",
    "reset_request_id",
    "run_context",
    # Health
    "HealthStatus",
    "ComponentHealth",
    "get_overall_health",
    # Middleware
    "RequestIDMiddleware",
]
