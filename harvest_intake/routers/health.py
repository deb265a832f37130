"""
Harvest Intake - Health Router

Liveness plus a cheap view of cache, sinks and database pool. Performs no
store I/O so probes never trigger a sheet read.
"""

from typing import Any

from fastapi import APIRouter, Depends

from .. import __version__
from ..api import ApiResponse, api_response
from ..config import Settings
from ..core.security import get_request_settings
from ..db import get_pool_status
from ..services.registration import RegistrationService
from .deps import get_registration_service

router = APIRouter(prefix="/api", tags=["Health"])


@router.get("/health", response_model=ApiResponse[dict[str, Any]])
async def health(
    settings: Settings = Depends(get_request_settings),
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse[Any]:
    pool = get_pool_status()
    return api_response(
        data={
            "status": "ok",
            "version": __version__,
            "environment": settings.environment,
            "sinks": service.sink_names,
            "cache_source": service.cache.source.name,
            "cache": service.cache.snapshot().as_dict(),
            "outbox_pending": len(service.outbox),
            "database": {
                "enabled": settings.relational_enabled,
                "ready": pool.ready,
                "error": pool.error,
            },
        }
    )
