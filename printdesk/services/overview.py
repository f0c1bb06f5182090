from __future__ import annotations

from typing import Any, Dict

from ..core.roles import STATUS_ASSIGNED, STATUS_COMPLETED, STATUS_OPEN
from ..schemas.projection import ProjectionSnapshot

RECENT_LIMIT = 5


def _customer_name(ticket) -> str:
    if ticket.customer and ticket.customer.name.strip():
        return ticket.customer.name.strip()
    return ticket.customer_id or "Unknown"


def calculate_overview(snapshot: ProjectionSnapshot) -> Dict[str, Any]:
    """Aggregate dashboard counts from an already loaded projection."""

    totals = {
        "tickets_total": 0,
        "tickets_pending": 0,
        "tickets_in_attention": 0,
        "tickets_completed": 0,
        "fleet_total": len(snapshot.equipment),
        "fleet_unassigned": sum(1 for item in snapshot.equipment if not item.customer_id),
    }

    technician_names = {tech.id: tech.full_name for tech in snapshot.technicians}
    by_customer: Dict[str, Dict[str, Any]] = {}
    by_technician: Dict[str, Dict[str, Any]] = {}

    for ticket in snapshot.tickets:
        totals["tickets_total"] += 1
        if ticket.status == STATUS_OPEN:
            totals["tickets_pending"] += 1
        elif ticket.status == STATUS_ASSIGNED:
            totals["tickets_in_attention"] += 1
        elif ticket.status == STATUS_COMPLETED:
            totals["tickets_completed"] += 1
        completed = ticket.status == STATUS_COMPLETED

        name = _customer_name(ticket)
        customer_row = by_customer.setdefault(
            name, {"customer": name, "total": 0, "open": 0, "completed": 0}
        )
        customer_row["total"] += 1
        customer_row["completed" if completed else "open"] += 1

        tech_id = ticket.technician_id or ""
        tech_row = by_technician.setdefault(
            tech_id,
            {
                "technician_id": ticket.technician_id,
                "technician": technician_names.get(tech_id, tech_id or "Unassigned"),
                "total": 0,
                "open": 0,
                "completed": 0,
            },
        )
        tech_row["total"] += 1
        tech_row["completed" if completed else "open"] += 1

    tickets_by_customer = sorted(by_customer.values(), key=lambda row: row["total"], reverse=True)
    tickets_by_technician = sorted(by_technician.values(), key=lambda row: row["total"], reverse=True)

    recent = [
        {
            "id": ticket.id,
            "status": ticket.status,
            "created_at": ticket.created_at,
            "model": ticket.equipment.model if ticket.equipment else None,
            "customer": _customer_name(ticket),
        }
        for ticket in snapshot.tickets[:RECENT_LIMIT]
    ]

    return {
        "totals": totals,
        "tickets_by_customer": tickets_by_customer,
        "tickets_by_technician": tickets_by_technician,
        "recent_tickets": recent,
    }


__all__ = ["calculate_overview"]
