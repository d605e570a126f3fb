"""Observability endpoints: Prometheus metrics, health and liveness."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from database import get_db
from .health import (
    HealthStatus,
    check_broker_health,
    check_carrier_profiles,
    check_database_health,
    check_order_sheet,
    get_overall_health,
)

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health/live", include_in_schema=False)
def liveness():
    """Process is up; does not touch any dependency."""
    return {"status": HealthStatus.HEALTHY.value}


@router.get("/health", summary="Readiness of the store, broker, carriers and order sheet")
def health_check(db: Session = Depends(get_db)):
    """Component health.

    Returns 200 when healthy or degraded, 503 when the local store is down.
    """
    components = {
        "database": check_database_health(db),
        "broker": check_broker_health(),
        "carriers": check_carrier_profiles(),
        "order_sheet": check_order_sheet(),
    }
    overall_status = get_overall_health(components)

    return JSONResponse(
        content={
            "status": overall_status.value,
            "components": {name: component.to_dict() for name, component in components.items()},
        },
        status_code=503 if overall_status == HealthStatus.UNHEALTHY else 200,
    )
