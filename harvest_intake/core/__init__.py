"""
Harvest Intake - Core Module

Errors, middleware and access-control dependencies.
"""

from .errors import (
    AdminTokenInvalid,
    DuplicateRecord,
    IntakeError,
    InvalidField,
    InvalidNumber,
    MissingField,
    PartialWrite,
    StoreUnavailable,
    Unauthorized,
    setup_error_handlers,
)
from .middleware import RequestLoggingMiddleware, get_request_id, resolve_client_ip
from .security import require_admin_token, require_authorized_ip

__all__ = [
    # Errors
    "IntakeError",
    "MissingField",
    "InvalidNumber",
    "InvalidField",
    "DuplicateRecord",
    "StoreUnavailable",
    "PartialWrite",
    "Unauthorized",
    "AdminTokenInvalid",
    "setup_error_handlers",
    # Middleware
    "RequestLoggingMiddleware",
    "get_request_id",
    "resolve_client_ip",
    # Security
    "require_authorized_ip",
    "require_admin_token",
]
