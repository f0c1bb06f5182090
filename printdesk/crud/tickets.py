"""Ticket queries and persistence calls used by the lifecycle controller."""

from __future__ import annotations

from sqlalchemy import Select, desc, select
from sqlalchemy.orm import Session

from ..models.ticket import Ticket


def tickets_query(technician_id: str | None = None) -> Select:
    """Newest-first ticket query, optionally restricted to one technician."""

    stmt = select(Ticket)
    if technician_id is not None:
        stmt = stmt.where(Ticket.technician_id == technician_id)
    return stmt.order_by(desc(Ticket.created_at), desc(Ticket.id))


def get_ticket(db: Session, ticket_id: str) -> Ticket | None:
    return db.get(Ticket, ticket_id)


def insert_ticket(db: Session, ticket: Ticket) -> Ticket:
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    return ticket


def save_ticket(db: Session, ticket: Ticket) -> Ticket:
    db.commit()
    db.refresh(ticket)
    return ticket
