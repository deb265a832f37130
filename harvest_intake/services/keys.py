"""
Composite key derivation for duplicate detection.

Two registrations are the same iff their keys are equal. Values are only
stringified and trimmed: no case folding and no numeric canonicalisation, so
bloque "1.10" and "1.1" are different keys.
"""

from __future__ import annotations

from typing import Any, Sequence

from ..models import RegistrationRecord

KEY_DELIMITER = "|"

# Positions of the key fields in a stored row (see models.SHEET_HEADERS)
KEY_COLUMNS = 7


def _norm(value: Any) -> str:
    return "" if value is None else str(value).strip()


def build_key(
    id: Any,
    variedad: Any,
    bloque: Any,
    tallos: Any,
    tamano: Any,
    fecha: Any,
    etapa: Any,
) -> str:
    return KEY_DELIMITER.join(
        _norm(v) for v in (id, variedad, bloque, tallos, tamano, fecha, etapa)
    )


def key_for_record(record: RegistrationRecord) -> str:
    return build_key(
        record.id,
        record.variedad,
        record.bloque,
        record.tallos,
        record.tamano,
        record.fecha,
        record.etapa,
    )


def key_for_row(row: Sequence[Any]) -> str:
    """Key of a stored row; short rows are padded with empty cells."""
    cells = list(row[:KEY_COLUMNS])
    cells.extend([None] * (KEY_COLUMNS - len(cells)))
    return build_key(*cells)
