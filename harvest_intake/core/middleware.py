"""
Harvest Intake - Middleware

Per-request correlation id and access log, plus client address resolution
for the allow-list.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Correlation id of the request being served, "" outside a request."""
    return request_id_var.get()


def resolve_client_ip(request: Request) -> str:
    """
    Return the originating client address.

    Uses the first hop of X-Forwarded-For when present (the service runs
    behind a proxy), otherwise the raw connection peer.
    """
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else ""


def _incoming_request_id(request: Request) -> str:
    supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
    return supplied or uuid.uuid4().hex[:8]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One access-log line per request.

    Scans that end in a 4xx page (duplicate, missing field, blocked address)
    are logged at WARNING so they stand out from successful registrations.
    The correlation id is echoed in the X-Request-ID response header.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _incoming_request_id(request)
        request_id_var.set(request_id)
        client_ip = resolve_client_ip(request) or "unknown"
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                f"[{request_id}] {request.method} {request.url.path} failed ip={client_ip}"
            )
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            f"[{request_id}] {request.method} {request.url.path} "
            f"-> {response.status_code} ({elapsed_ms:.1f}ms) ip={client_ip}",
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
