"""
Harvest Intake - Registration Router

The URL encoded in each QR label. Scanning it from an authorized device
registers the bunch and shows a full-screen confirmation.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from ..api import pages
from ..core.security import require_authorized_ip
from ..models import RegistrationSubmission, is_true_flag
from ..services.registration import RegistrationService
from .deps import get_registration_service

router = APIRouter(tags=["Registro"])


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index() -> HTMLResponse:
    return HTMLResponse(pages.index_page())


@router.get(
    "/api/registrar",
    response_class=HTMLResponse,
    summary="Register a harvest bunch",
    description=(
        "Validates the QR payload, rejects exact duplicates unless force=true, "
        "and writes the record to every configured store."
    ),
)
async def registrar(
    id: str | None = Query(default=None),
    variedad: str | None = Query(default=None),
    bloque: str | None = Query(default=None),
    tallos: str | None = Query(default=None),
    tamano: str | None = Query(default=None),
    tamali: str | None = Query(default=None, description="Legacy name for tamano"),
    fecha: str | None = Query(default=None, description="YYYY-MM-DD; defaults to today"),
    etapa: str | None = Query(default=None),
    force: str | None = Query(default=None, description="'true' or '1' skips the duplicate check"),
    client_ip: str = Depends(require_authorized_ip),
    service: RegistrationService = Depends(get_registration_service),
) -> HTMLResponse:
    submission = RegistrationSubmission.from_params(
        {
            "id": id,
            "variedad": variedad,
            "bloque": bloque,
            "tallos": tallos,
            "tamano": tamano,
            "tamali": tamali,
            "fecha": fecha,
            "etapa": etapa,
        }
    )

    result = await service.register(submission, bypass_duplicate_check=is_true_flag(force))

    record = result.record
    return HTMLResponse(pages.success_page(record.variedad, record.bloque, record.tallos))
