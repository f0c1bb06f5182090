from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .customer import CustomerOut
from .equipment import EquipmentOut
from .profile import IdentityOut, TechnicianOut
from .ticket import TicketOut


class ProjectionSnapshot(BaseModel):
    identity: Optional[IdentityOut] = None
    customers: list[CustomerOut] = Field(default_factory=list)
    equipment: list[EquipmentOut] = Field(default_factory=list)
    technicians: list[TechnicianOut] = Field(default_factory=list)
    tickets: list[TicketOut] = Field(default_factory=list)
    loaded_at: Optional[str] = None
    last_error: Optional[str] = None
