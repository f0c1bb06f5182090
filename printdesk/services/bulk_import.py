"""Fleet import from delimited text.

The payload is one header line followed by one printer per line with seven
comma-separated columns in this order::

    physical_location, model, brand, serial, ip_address, location_details, institution_id

The header is always skipped. Lines with fewer than seven fields are dropped
without raising; they are counted only for the log line. Everything that
survives parsing is inserted as a single batch, so a duplicate serial anywhere
in the payload rejects the whole file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import StoreConstraintViolation
from ..core.logging import log_event
from ..crud.equipment import insert_equipment_batch

LOGGER = logging.getLogger(__name__)

DELIMITER = ","
IMPORT_COLUMNS = (
    "physical_location",
    "model",
    "brand",
    "serial",
    "ip_address",
    "location_details",
    "customer_id",
)


@dataclass
class ParsedImport:
    rows: list[dict[str, str | None]] = field(default_factory=list)
    dropped_lines: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class ImportResult:
    imported: int
    dropped: int


def parse_equipment_rows(text: str) -> ParsedImport:
    """Split the payload into equipment dicts, skipping the header and short lines."""

    parsed = ParsedImport()
    if not text:
        return parsed
    if text.startswith("\ufeff"):
        text = text[1:]
    # Only \n (or \r\n) ends a row; other Unicode separators belong to the field text.
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    for line_number, line in enumerate(lines[1:], start=2):
        fields = line.rstrip("\r").split(DELIMITER)
        if len(fields) < len(IMPORT_COLUMNS):
            parsed.dropped_lines.append(line_number)
            continue
        values = [value.strip() for value in fields[: len(IMPORT_COLUMNS)]]
        row: dict[str, str | None] = dict(zip(IMPORT_COLUMNS, values))
        if not row["brand"]:
            row["brand"] = settings.DEFAULT_BRAND
        if not row["customer_id"]:
            row["customer_id"] = None
        parsed.rows.append(row)
    return parsed


def decode_payload(raw: bytes) -> str:
    """Decode an uploaded payload as UTF-8, tolerating a byte order mark."""

    return raw.decode("utf-8-sig")


def import_equipment(db: Session, text: str) -> ImportResult:
    parsed = parse_equipment_rows(text)
    extra = {"rows": len(parsed.rows), "dropped_lines": parsed.dropped_lines}
    if not parsed.rows:
        log_event(LOGGER, "import.empty", **extra)
        return ImportResult(imported=0, dropped=len(parsed.dropped_lines))
    try:
        imported = insert_equipment_batch(db, parsed.rows)
    except StoreConstraintViolation:
        log_event(LOGGER, "import.rejected", logging.WARNING, **extra)
        raise
    log_event(LOGGER, "import.completed", imported=imported, **extra)
    return ImportResult(imported=imported, dropped=len(parsed.dropped_lines))


__all__ = [
    "IMPORT_COLUMNS",
    "ImportResult",
    "ParsedImport",
    "decode_payload",
    "import_equipment",
    "parse_equipment_rows",
]
