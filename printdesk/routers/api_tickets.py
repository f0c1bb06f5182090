"""Ticket endpoints: list, open, acknowledge and resolve.

Role checks live in the lifecycle service so the same rules apply to every
caller; this module only translates HTTP payloads and input errors.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.security import Identity
from ..db.session import get_db
from ..deps.auth import get_current_identity
from ..schemas.ticket import TicketCreate, TicketOut, TicketResolve
from ..services import lifecycle

router = APIRouter(prefix="/api/v1/tickets", tags=["tickets"])


@router.get("", response_model=list[TicketOut])
def api_list(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    rows = db.execute(lifecycle.visible_tickets_query(identity)).unique().scalars().all()
    return [TicketOut.model_validate(row) for row in rows]


@router.get("/{ticket_id}", response_model=TicketOut)
def api_get(ticket_id: str, identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    return TicketOut.model_validate(lifecycle.get_visible_ticket(db, identity, ticket_id))


@router.post("", response_model=TicketOut, status_code=201)
def api_create(
    payload: TicketCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    try:
        ticket = lifecycle.create_ticket(db, identity, payload.equipment_id, payload.description)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return TicketOut.model_validate(ticket)


@router.post("/{ticket_id}/acknowledge", response_model=TicketOut)
def api_acknowledge(
    ticket_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return TicketOut.model_validate(lifecycle.acknowledge_ticket(db, identity, ticket_id))


@router.post("/{ticket_id}/resolve", response_model=TicketOut)
def api_resolve(
    ticket_id: str,
    payload: TicketResolve,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    try:
        ticket = lifecycle.resolve_ticket(db, identity, ticket_id, payload.note)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return TicketOut.model_validate(ticket)
