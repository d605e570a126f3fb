"""Health checks.

Only the local store is critical: without it no status can be recorded.
The broker, the carrier profiles and the order sheet degrade the service
when missing (the in-process scheduler still runs, sync runs skip or
report errors per order).
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional

import redis
from sqlalchemy import text
from sqlalchemy.orm import Session

from config import Settings, settings as default_settings
from infrastructure.carriers import carrier_profiles_from_settings
from .logging_config import get_logger

logger = get_logger(__name__)

CRITICAL_COMPONENTS = frozenset({"database"})


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None

    def to_dict(self) -> dict:
        return {"status": self.status.value, "message": self.message, "latency_ms": self.latency_ms}


def _timed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def check_database_health(db: Session) -> ComponentHealth:
    """Run SELECT 1 against the local store."""
    started = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=f"Database error: {e}")
    return ComponentHealth(status=HealthStatus.HEALTHY, message="Database connection OK", latency_ms=_timed_ms(started))


def check_broker_health(broker_url: Optional[str] = None) -> ComponentHealth:
    """Ping the Celery broker (Redis); unreachable means degraded."""
    started = time.perf_counter()
    try:
        client = redis.from_url(broker_url or default_settings.CELERY_BROKER_URL, socket_timeout=2)
        client.ping()
    except Exception as e:
        logger.warning(f"Broker health check failed: {e}")
        return ComponentHealth(status=HealthStatus.DEGRADED, message=f"Broker error: {e}")
    return ComponentHealth(status=HealthStatus.HEALTHY, message="Broker connection OK", latency_ms=_timed_ms(started))


def check_carrier_profiles(settings: Optional[Settings] = None) -> ComponentHealth:
    """Configuration check only; carriers are never called from /health."""
    profiles = carrier_profiles_from_settings(settings or default_settings)
    unusable = sorted(key for key, profile in profiles.items() if not profile.is_usable)
    if len(unusable) == len(profiles):
        return ComponentHealth(status=HealthStatus.DEGRADED, message="No carrier profile has a base URL and token")
    if unusable:
        return ComponentHealth(
            status=HealthStatus.HEALTHY,
            message=f"Orders of {', '.join(unusable)} will be skipped (missing_token)",
        )
    return ComponentHealth(status=HealthStatus.HEALTHY, message="All carrier profiles configured")


def check_order_sheet(settings: Optional[Settings] = None) -> ComponentHealth:
    settings = settings or default_settings
    if not settings.SHEETS_SPREADSHEET_ID or not settings.SHEETS_API_TOKEN:
        return ComponentHealth(status=HealthStatus.DEGRADED, message="Order sheet not configured, status writes fail")
    return ComponentHealth(status=HealthStatus.HEALTHY, message=f"Writing to tab '{settings.SHEETS_TAB_NAME}'")


def get_overall_health(
    components: Dict[str, ComponentHealth],
    critical: Iterable[str] = CRITICAL_COMPONENTS,
) -> HealthStatus:
    """Unhealthy if a critical component is down, degraded if anything else is not healthy."""
    critical = set(critical)
    if any(name in critical and c.status == HealthStatus.UNHEALTHY for name, c in components.items()):
        return HealthStatus.UNHEALTHY
    if all(c.status == HealthStatus.HEALTHY for c in components.values()):
        return HealthStatus.HEALTHY
    return HealthStatus.DEGRADED
