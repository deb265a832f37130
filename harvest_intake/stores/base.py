"""
Record store contract.

A store is one backing table for registrations. The duplicate cache mirrors
exactly one store; the registration service writes to every configured store.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..models import RawRow, RegistrationRecord


@runtime_checkable
class RecordStore(Protocol):
    """Load-all / append capability over a backing table."""

    name: str

    async def load_rows(self) -> list[RawRow]:
        """
        Read every stored row, oldest first.

        Raises:
            StoreUnavailable: If the store cannot be reached or read
        """
        ...

    async def append(self, record: RegistrationRecord) -> RawRow:
        """
        Persist one registration and return the row as stored.

        Raises:
            StoreUnavailable: If the write fails
            InvalidField: If the record cannot be represented in this store
        """
        ...
