"""DeliverySync backend - FastAPI application.

Serves the manual endpoints (sync now, order status change, bulk stock
decrement) and, unless DISABLE_STATUS_SYNC is set, runs the carrier
status sync scheduler in-process for the lifetime of the app.

Run:
    uvicorn main:app --app-dir backend/src
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError

from config import Settings, settings
from dependencies import get_dispatcher
from observability.logging_config import configure_logging
from observability.middleware import RequestIDMiddleware
from observability.router import router as observability_router
from inventory.router import router as stock_router
from orders.router import router as orders_router
from reconciliation.router import router as carrier_sync_router
from workers.status_sync import get_scheduler

API_PREFIX = "/api/v1"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the status sync scheduler; on shutdown stop it and drain the stock queue."""
    app_settings: Settings = app.state.settings
    logger.info(f"DeliverySync API starting ({app_settings.ENVIRONMENT})")

    scheduler = None
    if app_settings.DISABLE_STATUS_SYNC:
        logger.info("Status sync scheduler disabled (DISABLE_STATUS_SYNC)")
    else:
        scheduler = get_scheduler()
        scheduler.start()

    yield

    logger.info("DeliverySync API shutting down")
    if scheduler is not None:
        scheduler.stop()
    # Stock effects already dispatched are finished, not dropped
    get_dispatcher().shutdown(wait=True)


def _error_response(status_code: int, error: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message, **extra})


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"Validation error on {request.method} {request.url.path}")
        return _error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "validation_error",
            "Request validation failed",
            details=exc.errors(),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        # Full error in the logs only
        logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "database_error",
            "The local store is unavailable. Please try again later.",
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "An unexpected error occurred. Please try again later.",
        )


def create_app(app_settings: Settings = settings) -> FastAPI:
    """Build the application.

    Args:
        app_settings: Settings to run with (tests pass their own)
    """
    configure_logging(level=app_settings.LOG_LEVEL, json_format=app_settings.LOG_JSON)
    expose_docs = app_settings.ENVIRONMENT != "production"

    app = FastAPI(
        title="DeliverySync API",
        description="Carrier status reconciliation and inventory adjustment",
        version="0.1.0",
        docs_url="/docs" if expose_docs else None,
        redoc_url=None,
        openapi_url="/openapi.json" if expose_docs else None,
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    # Added last so it wraps CORS and sees every request first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(observability_router)
    app.include_router(carrier_sync_router, prefix=API_PREFIX)
    app.include_router(orders_router, prefix=API_PREFIX)
    app.include_router(stock_router, prefix=API_PREFIX)

    @app.get("/", include_in_schema=False)
    def root() -> dict:
        return {
            "name": "DeliverySync API",
            "version": app.version,
            "sync_scheduler": "disabled" if app_settings.DISABLE_STATUS_SYNC else "enabled",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
