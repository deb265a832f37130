"""
Harvest Intake - Security Layer

FastAPI dependencies for the two access checks the service has:
- Source address allow-list for QR registrations
- Shared-secret token for admin endpoints
"""

import secrets

from fastapi import Depends, Header, Query, Request
from loguru import logger

from ..config import Settings, get_settings
from .errors import AdminTokenInvalid, Unauthorized
from .middleware import resolve_client_ip


def get_request_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


def is_authorized_ip(client_ip: str, settings: Settings) -> bool:
    """Check an address against the configured allow-list."""
    return client_ip in settings.authorized_ips


async def require_authorized_ip(
    request: Request,
    settings: Settings = Depends(get_request_settings),
) -> str:
    """
    FastAPI dependency rejecting requests from addresses outside the allow-list.

    Runs before query parameter validation so an unknown device never gets
    feedback about its input.

    Raises:
        Unauthorized: If the client address is not allowed

    Returns:
        The resolved client address
    """
    client_ip = resolve_client_ip(request)
    logger.info(f"Client IP: {client_ip}")
    if not is_authorized_ip(client_ip, settings):
        logger.warning(f"Rejected registration from unauthorized IP {client_ip!r}")
        raise Unauthorized(client_ip)
    return client_ip


async def require_admin_token(
    token: str | None = Query(default=None),
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
    settings: Settings = Depends(get_request_settings),
) -> None:
    """
    FastAPI dependency for admin endpoints.

    Accepts the token from the X-Admin-Token header or the ``token`` query
    parameter (header wins). Admin endpoints are disabled when ADMIN_TOKEN is
    not configured.

    Raises:
        AdminTokenInvalid: If the token is missing, wrong, or not configured
    """
    configured = settings.ADMIN_TOKEN
    if not configured:
        logger.warning("ADMIN_TOKEN not configured - admin endpoints disabled")
        raise AdminTokenInvalid("Admin endpoints are disabled")

    supplied = x_admin_token or token
    if not supplied or not secrets.compare_digest(supplied.encode(), configured.encode()):
        logger.warning("Invalid admin token attempted")
        raise AdminTokenInvalid()
