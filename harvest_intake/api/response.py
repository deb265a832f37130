"""
Harvest Intake - JSON Envelope

Admin and health endpoints answer with ``{ok, data, meta}`` so a
script calling refresh-cache can check one flag and log one request id.

Usage:
    from harvest_intake.api import api_response

    return api_response(data=snapshot.as_dict())
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from ..core.middleware import get_request_id

T = TypeVar("T")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ResponseMeta(BaseModel):
    request_id: str = Field(..., description="Correlation id, also sent as X-Request-ID")
    timestamp: str = Field(default_factory=_utc_now_iso, description="Server time (UTC, ISO 8601)")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope for every JSON response; ``data`` is endpoint specific."""

    ok: bool
    data: T | None = None
    meta: ResponseMeta


def api_response(data: Any = None) -> ApiResponse[Any]:
    """Wrap ``data`` for the request currently being served."""
    return ApiResponse(
        ok=True,
        data=data,
        meta=ResponseMeta(request_id=get_request_id() or "no-request"),
    )
