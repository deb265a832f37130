"""Shared router dependencies."""

from fastapi import Request

from ..services.registration import RegistrationService


def get_registration_service(request: Request) -> RegistrationService:
    """The process-wide service built in create_app()."""
    return request.app.state.registration_service
