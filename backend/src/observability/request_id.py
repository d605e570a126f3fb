"""Correlation ids for requests and reconciliation runs.

HTTP requests carry the caller's X-Request-ID (or a fresh uuid); each
sync run gets "<trigger>-<uuid>". The id lives in a ContextVar, so stock
jobs dispatched with a copied context log under the id that caused them.
"""

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

NO_REQUEST_ID = "no-request-id"
MAX_INCOMING_ID_LENGTH = 128
_SAFE_INCOMING_ID = re.compile(r"^[A-Za-z0-9._:\-]+$")


def generate_request_id(prefix: Optional[str] = None) -> str:
    value = str(uuid.uuid4())
    return f"{prefix}-{value}" if prefix else value


def accept_incoming_id(header_value: Optional[str]) -> Optional[str]:
    """Return a caller supplied id if it is safe to log, else None."""
    if not header_value:
        return None
    value = header_value.strip()
    if len(value) > MAX_INCOMING_ID_LENGTH or not _SAFE_INCOMING_ID.match(value):
        return None
    return value


def get_request_id() -> str:
    return request_id_var.get() or NO_REQUEST_ID


def bind_request_id(request_id: str) -> Token:
    """Set the current id; pass the token to reset_request_id when done."""
    return request_id_var.set(request_id)


def reset_request_id(token: Token) -> None:
    request_id_var.reset(token)


@contextmanager
def run_context(trigger: str) -> Iterator[str]:
    """Bind a fresh "<trigger>-<uuid>" id for the duration of one sync run.

    Usage:
        with run_context("scheduler") as run_id:
            orchestrator.reconcile(orders)
    """
    run_id = generate_request_id(prefix=trigger)
    token = bind_request_id(run_id)
    try:
        yield run_id
    finally:
        reset_request_id(token)
