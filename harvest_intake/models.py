"""
Harvest Intake - Data Models

Registration DTOs shared by the HTTP layer, the service and the stores.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, Field

# A row as stored in a backing table: cell values in SHEET_HEADERS order
RawRow = list[str]

# Spreadsheet column layout. "tamali" is the legacy name of the size column.
SHEET_HEADERS = [
    "id",
    "variedad",
    "bloque",
    "tallos",
    "tamali",
    "fecha",
    "etapa",
    "creado_iso",
]

# Accepted legacy query parameter names -> canonical field name
FIELD_ALIASES: dict[str, str] = {
    "tamali": "tamano",
}

SUBMISSION_FIELDS = ("id", "variedad", "bloque", "tallos", "tamano", "fecha", "etapa")

TRUE_FLAGS = frozenset({"true", "1"})


class RegistrationSubmission(BaseModel):
    """Raw registration values as received, before validation."""

    id: str | None = None
    variedad: str | None = None
    bloque: str | None = None
    tallos: str | None = None
    tamano: str | None = None
    fecha: str | None = None
    etapa: str | None = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "RegistrationSubmission":
        """
        Build a submission from query parameters.

        Legacy aliases are resolved here, once. When both a canonical name and
        one of its aliases are present, the canonical name wins.
        """
        values: dict[str, str | None] = {}
        for alias, canonical in FIELD_ALIASES.items():
            if params.get(alias) is not None:
                values[canonical] = str(params[alias])
        for name in SUBMISSION_FIELDS:
            if params.get(name) is not None:
                values[name] = str(params[name])
        return cls(**values)


class RegistrationRecord(BaseModel):
    """A validated registration ready to be written."""

    id: str
    variedad: str
    bloque: str
    tallos: int = Field(..., ge=0)
    tamano: str
    fecha: str
    etapa: str | None = None

    def as_row(self) -> RawRow:
        """The seven key cells as text, in SHEET_HEADERS order."""
        return [
            self.id,
            self.variedad,
            self.bloque,
            str(self.tallos),
            self.tamano,
            self.fecha,
            self.etapa or "",
        ]


class RegistrationResult(BaseModel):
    """Outcome of a successful registration."""

    record: RegistrationRecord
    sinks: list[str] = Field(default_factory=list, description="Stores that persisted the row")
    duplicate_check: bool = Field(True, description="False when the check was bypassed")


def is_true_flag(value: str | None) -> bool:
    """Interpret the ``force`` query parameter."""
    return value is not None and value.strip().lower() in TRUE_FLAGS
