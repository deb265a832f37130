"""
Harvest Intake - Record Stores

Backing tables for registrations: Postgres and Google Sheets.
"""

from .base import RecordStore
from .postgres import PostgresRecordStore
from .sheets import SheetRecordStore

__all__ = [
    "RecordStore",
    "PostgresRecordStore",
    "SheetRecordStore",
]
