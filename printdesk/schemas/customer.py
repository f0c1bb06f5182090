from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class CustomerCreate(BaseModel):
    name: str = Field(min_length=1)
    assigned_tech_id: Optional[str] = None


class TechnicianAssignment(BaseModel):
    technician_id: Optional[str] = None


class CustomerOut(BaseModel):
    id: str
    name: str
    assigned_tech_id: Optional[str] = None
    created_at: str

    class Config:
        from_attributes = True
