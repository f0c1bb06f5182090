from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ..core.config import settings
from .customer import CustomerOut
from .equipment import EquipmentOut


def short_ticket_id(ticket_id: str, length: int | None = None) -> str:
    """Human-facing ticket reference: the first ``EXPORT_ID_LENGTH`` characters, uppercased."""

    return ticket_id[: length or settings.EXPORT_ID_LENGTH].upper()


class TicketCreate(BaseModel):
    equipment_id: str
    description: str = Field(min_length=1)


class TicketResolve(BaseModel):
    note: str = Field(min_length=1)


class TicketOut(BaseModel):
    id: str
    equipment_id: str
    customer_id: str
    technician_id: Optional[str] = None
    description: str
    status: str
    created_at: str
    completed_at: Optional[str] = None
    resolution_notes: Optional[str] = None
    equipment: Optional[EquipmentOut] = None
    customer: Optional[CustomerOut] = None

    class Config:
        from_attributes = True

    @property
    def short_id(self) -> str:
        return short_ticket_id(self.id)
