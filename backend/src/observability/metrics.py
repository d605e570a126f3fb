"""Prometheus metrics for carrier reconciliation and stock adjustment.

Defines and exposes operational metrics for monitoring and alerting.
"""

from prometheus_client import Counter, Histogram

# Carrier feed metrics
carrier_pages_fetched_total = Counter(
    "deliverysync_carrier_pages_fetched_total",
    "Total carrier order-list pages fetched",
    ["delivery_type"]  # delivery_type: api_dhd|api_sook
)

carrier_fetch_errors_total = Counter(
    "deliverysync_carrier_fetch_errors_total",
    "Carrier page fetches that failed (network, timeout, bad payload)",
    ["delivery_type"]
)

# Carrier statuses no keyword table recognizes. Such orders are left
# unchanged, so a rising count means the tables need a new keyword.
carrier_status_unknown_total = Counter(
    "deliverysync_carrier_status_unknown_total",
    "Carrier statuses classified as unknown",
    ["delivery_type"]
)

# Reconciliation metrics
reconciliation_runs_total = Counter(
    "deliverysync_reconciliation_runs_total",
    "Total reconciliation runs",
    ["trigger", "outcome"]  # trigger: scheduler|celery|manual, outcome: success|error|skipped
)

reconciliation_updates_total = Counter(
    "deliverysync_reconciliation_updates_total",
    "Order statuses written by reconciliation",
    ["status"]  # canonical status written
)

reconciliation_duration_seconds = Histogram(
    "deliverysync_reconciliation_duration_seconds",
    "Time spent in one reconciliation run in seconds",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0]
)

# Tabular store metrics
sheet_writes_total = Counter(
    "deliverysync_sheet_writes_total",
    "Status cell writes to the order sheet",
    ["status"]  # status: success|error
)

# Stock metrics
stock_adjustments_total = Counter(
    "deliverysync_stock_adjustments_total",
    "Stock adjustments attempted",
    ["operation", "outcome"]  # operation: decrement|increment|decrement_guarded, outcome: applied|not_found|skipped|error
)
