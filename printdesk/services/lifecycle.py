"""Ticket lifecycle: Open -> Assigned -> Completed.

Every transition is checked against the acting identity before anything is
written. A rejected call leaves the stored ticket exactly as it was; callers
see the new state only through the next projection reload.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..core.errors import InvalidTransition, NotFound, PermissionDenied, RoutingUnresolved
from ..core.logging import log_event
from ..core.roles import RESOLVABLE_STATUSES, STATUS_ASSIGNED, STATUS_COMPLETED, STATUS_OPEN
from ..core.security import Identity
from ..crud.customers import get_customer
from ..crud.equipment import get_equipment
from ..crud.tickets import get_ticket, insert_ticket, save_ticket, tickets_query
from ..models._common import utcnow_iso
from ..models.ticket import Ticket
from .routing import resolve_technician

LOGGER = logging.getLogger(__name__)


def visible_tickets_query(identity: Identity):
    """Technicians only ever see their own tickets; everyone else sees all."""

    if identity.is_technician:
        return tickets_query(technician_id=identity.user_id)
    return tickets_query()


def get_visible_ticket(db: Session, identity: Identity, ticket_id: str) -> Ticket:
    ticket = get_ticket(db, ticket_id)
    if ticket is None:
        raise NotFound(f"Ticket '{ticket_id}' not found")
    if identity.is_technician and ticket.technician_id != identity.user_id:
        raise PermissionDenied("Technicians can only view their own tickets")
    return ticket


def create_ticket(db: Session, identity: Identity, equipment_id: str, description: str) -> Ticket:
    text = (description or "").strip()
    if not text:
        raise ValueError("A description is required to open a ticket")
    equipment = get_equipment(db, equipment_id)
    if equipment is None:
        raise NotFound(f"Equipment '{equipment_id}' not found")
    customer = get_customer(db, equipment.customer_id) if equipment.customer_id else None
    try:
        technician_id = resolve_technician(equipment, customer)
    except RoutingUnresolved:
        log_event(
            LOGGER, "ticket.routing_unresolved", equipment_id=equipment.id, requested_by=identity.user_id
        )
        raise

    ticket = Ticket(
        equipment_id=equipment.id,
        customer_id=customer.id,
        technician_id=technician_id,
        description=text,
        status=STATUS_OPEN,
        created_at=utcnow_iso(),
    )
    insert_ticket(db, ticket)
    log_event(
        LOGGER,
        "ticket.created",
        ticket_id=ticket.id,
        equipment_id=equipment.id,
        customer_id=customer.id,
        technician_id=technician_id,
        requested_by=identity.user_id,
    )
    return ticket


def _require_assigned_technician(identity: Identity, ticket: Ticket, action: str) -> None:
    if not identity.is_technician or ticket.technician_id != identity.user_id:
        log_event(
            LOGGER, "ticket.permission_denied", ticket_id=ticket.id, action=action, actor=identity.user_id
        )
        raise PermissionDenied(f"Only the assigned technician can {action} this ticket")


def acknowledge_ticket(db: Session, identity: Identity, ticket_id: str) -> Ticket:
    """The assigned technician takes the ticket into attention (Open -> Assigned)."""

    ticket = get_ticket(db, ticket_id)
    if ticket is None:
        raise NotFound(f"Ticket '{ticket_id}' not found")
    _require_assigned_technician(identity, ticket, "acknowledge")
    if ticket.status != STATUS_OPEN:
        raise InvalidTransition(f"Ticket is {ticket.status}; only Open tickets can be acknowledged")
    ticket.status = STATUS_ASSIGNED
    save_ticket(db, ticket)
    log_event(LOGGER, "ticket.acknowledged", ticket_id=ticket.id, technician_id=identity.user_id)
    return ticket


def resolve_ticket(db: Session, identity: Identity, ticket_id: str, note: str) -> Ticket:
    text = (note or "").strip()
    ticket = get_ticket(db, ticket_id)
    if ticket is None:
        raise NotFound(f"Ticket '{ticket_id}' not found")
    _require_assigned_technician(identity, ticket, "resolve")
    if not text:
        raise ValueError("A resolution note is required to complete a ticket")
    if ticket.status not in RESOLVABLE_STATUSES:
        raise InvalidTransition(f"Ticket is already {ticket.status}")
    ticket.status = STATUS_COMPLETED
    ticket.completed_at = utcnow_iso()
    ticket.resolution_notes = text
    save_ticket(db, ticket)
    log_event(LOGGER, "ticket.resolved", ticket_id=ticket.id, technician_id=identity.user_id)
    return ticket


__all__ = [
    "acknowledge_ticket",
    "create_ticket",
    "get_visible_ticket",
    "resolve_ticket",
    "visible_tickets_query",
]
