"""Deterministic routing of a printer to the technician who services it."""

from __future__ import annotations

from ..core.errors import RoutingUnresolved
from ..models.customer import Customer
from ..models.equipment import Equipment


def resolve_technician(equipment: Equipment, customer: Customer | None) -> str:
    """Return the technician id responsible for ``equipment``.

    The technician is the fixed assignment on the equipment's customer.
    Raises ``RoutingUnresolved`` naming the missing link when the equipment
    has no customer or the customer has no technician.
    """

    if not equipment.customer_id:
        raise RoutingUnresolved(
            f"Equipment {equipment.serial} is not linked to a customer; link it before opening a ticket",
            details={"equipment_id": equipment.id, "missing": "customer"},
        )
    if customer is None or customer.id != equipment.customer_id:
        raise RoutingUnresolved(
            f"Customer '{equipment.customer_id}' for equipment {equipment.serial} was not found",
            details={"equipment_id": equipment.id, "customer_id": equipment.customer_id, "missing": "customer"},
        )
    if not customer.assigned_tech_id:
        raise RoutingUnresolved(
            f"Customer {customer.name} has no assigned technician; assign one before opening a ticket",
            details={"customer_id": customer.id, "missing": "technician"},
        )
    return customer.assigned_tech_id


__all__ = ["resolve_technician"]
