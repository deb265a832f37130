"""
Harvest Intake - Services
"""

from .cache import CacheSnapshot, DuplicateCache
from .keys import build_key, key_for_record, key_for_row
from .outbox import FlushReport, PendingWrite, WriteOutbox
from .registration import RegistrationService, build_registration_service, validate_submission

__all__ = [
    "CacheSnapshot",
    "DuplicateCache",
    "build_key",
    "key_for_record",
    "key_for_row",
    "FlushReport",
    "PendingWrite",
    "WriteOutbox",
    "RegistrationService",
    "build_registration_service",
    "validate_submission",
]
