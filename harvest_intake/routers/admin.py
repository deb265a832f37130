"""
Harvest Intake - Admin Router

Token-protected maintenance endpoints:
- Reload the duplicate cache after someone edits the sheet by hand
- Inspect and replay writes queued by a partial failure
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends

from ..api import ApiResponse, api_response
from ..core.security import require_admin_token
from ..services.registration import RegistrationService
from .deps import get_registration_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin_token)],
)


@router.api_route(
    "/refresh-cache",
    methods=["GET", "POST"],
    response_model=ApiResponse[dict[str, Any]],
    summary="Reload the duplicate cache",
)
async def refresh_cache(
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse[Any]:
    """Re-read every row of the mirrored store and rebuild the key set."""
    logger.info("🔄 Manual duplicate cache reload requested")
    snapshot = await service.cache.force_reload()
    return api_response(data=snapshot.as_dict())


@router.get(
    "/outbox",
    response_model=ApiResponse[dict[str, Any]],
    summary="List writes pending after a partial failure",
)
async def list_outbox(
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse[Any]:
    pending = [entry.as_dict() for entry in service.outbox.pending()]
    return api_response(data={"pending": pending, "count": len(pending)})


@router.post(
    "/outbox/flush",
    response_model=ApiResponse[dict[str, Any]],
    summary="Replay pending writes once",
)
async def flush_outbox(
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse[Any]:
    report = await service.flush_outbox()
    return api_response(data=report.model_dump())
