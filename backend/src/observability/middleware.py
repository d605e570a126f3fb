"""HTTP middleware: correlation id and access log for every request."""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .request_id import accept_incoming_id, bind_request_id, generate_request_id, reset_request_id
from .logging_config import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Scraped every few seconds; logging them drowns everything else
QUIET_PATHS = frozenset({"/metrics", "/health"})


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds a correlation id for the request and echoes it back.

    A well-formed incoming X-Request-ID is reused so a client can follow
    its "sync now" call through the reconciliation logs; anything else is
    replaced with a fresh uuid.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process a request under its correlation id.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in chain

        Returns:
            Response: HTTP response with the X-Request-ID header
        """
        request_id = accept_incoming_id(request.headers.get(REQUEST_ID_HEADER)) or generate_request_id()
        token = bind_request_id(request_id)
        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    f"{request.method} {request.url.path} failed: {e}",
                    extra={"duration_ms": _elapsed_ms(started)},
                    exc_info=True,
                )
                raise

            if request.url.path not in QUIET_PATHS:
                logger.info(
                    f"{request.method} {request.url.path} -> {response.status_code}",
                    extra={"status_code": response.status_code, "duration_ms": _elapsed_ms(started)},
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            reset_request_id(token)
