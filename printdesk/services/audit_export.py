"""Delimited audit report built from the ticket projection.

Two layouts exist:

* ``basic``: ``ID,DATE,CUSTOMER,SERIAL,STATUS,NOTES``
* ``sla``:   ``ID,DATE,CUSTOMER,MODEL,SERIAL,STATUS,COMPLETED`` where the last
  column is the completion marker (``SI`` by default) or ``pending``.

Rows follow the order of the tickets handed in (the projection is already
newest first). Free text is written verbatim unless ``quote=True``; any field
that contains the delimiter or a line break is logged so the broken rows can
be found.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime
from typing import Any, Iterable, Sequence

from ..core.config import settings
from ..schemas.ticket import TicketOut, short_ticket_id

LOGGER = logging.getLogger(__name__)

DELIMITER = ","
VARIANT_BASIC = "basic"
VARIANT_SLA = "sla"

HEADERS = {
    VARIANT_BASIC: ("ID", "DATE", "CUSTOMER", "SERIAL", "STATUS", "NOTES"),
    VARIANT_SLA: ("ID", "DATE", "CUSTOMER", "MODEL", "SERIAL", "STATUS", "COMPLETED"),
}


def _to_dt(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def created_on(ticket: TicketOut) -> date | None:
    dt = _to_dt(ticket.created_at)
    return dt.date() if dt else None


def filter_by_created_date(
    tickets: Iterable[TicketOut], start: date | None = None, end: date | None = None
) -> list[TicketOut]:
    """Keep tickets created within ``[start, end]``; both bounds are needed to filter."""

    tickets = list(tickets)
    if start is None or end is None:
        return tickets
    selected = []
    for ticket in tickets:
        day = created_on(ticket)
        if day is not None and start <= day <= end:
            selected.append(ticket)
    return selected


def completion_marker(ticket: TicketOut) -> str:
    return settings.EXPORT_COMPLETED_MARKER if ticket.completed_at else settings.EXPORT_PENDING_MARKER


def _row(ticket: TicketOut, variant: str) -> list[str]:
    customer = ticket.customer.name if ticket.customer else ""
    serial = ticket.equipment.serial if ticket.equipment else ""
    ident = short_ticket_id(ticket.id)
    if variant == VARIANT_BASIC:
        return [ident, ticket.created_at, customer, serial, ticket.status, ticket.resolution_notes or ""]
    model = ticket.equipment.model if ticket.equipment else ""
    return [ident, ticket.created_at, customer, model, serial, ticket.status, completion_marker(ticket)]


def _flag_unsafe_fields(ticket_id: str, row: Sequence[str]) -> None:
    for column, value in enumerate(row):
        if DELIMITER in value or "\n" in value or "\r" in value:
            LOGGER.warning(
                "export.unescaped_delimiter",
                extra={"extra_data": {"ticket_id": ticket_id, "column": column}},
            )


def build_audit_export(
    tickets: Iterable[TicketOut],
    start: date | None = None,
    end: date | None = None,
    *,
    variant: str = VARIANT_SLA,
    quote: bool = False,
) -> str:
    """Render the audit report as text. Never mutates the tickets it is given."""

    if variant not in HEADERS:
        raise ValueError(f"Unknown export variant '{variant}'")
    selected = filter_by_created_date(tickets, start, end)
    rows = [_row(ticket, variant) for ticket in selected]

    if quote:
        buffer = io.StringIO()
        writer = csv.writer(buffer, delimiter=DELIMITER, lineterminator="\n")
        writer.writerow(HEADERS[variant])
        writer.writerows(rows)
        return buffer.getvalue()

    lines = [DELIMITER.join(HEADERS[variant])]
    for ticket, row in zip(selected, rows):
        _flag_unsafe_fields(ticket.id, row)
        lines.append(DELIMITER.join(row))
    return "\n".join(lines) + "\n"


def export_filename(start: date | None = None, end: date | None = None) -> str:
    if start is not None and end is not None:
        return f"audit-{start.isoformat()}_{end.isoformat()}.csv"
    return "audit-all.csv"


__all__ = [
    "HEADERS",
    "VARIANT_BASIC",
    "VARIANT_SLA",
    "build_audit_export",
    "completion_marker",
    "export_filename",
    "filter_by_created_date",
    "short_ticket_id",
]
