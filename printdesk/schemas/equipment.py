from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class EquipmentCreate(BaseModel):
    physical_location: str = ""
    location_details: Optional[str] = None
    model: str = ""
    brand: Optional[str] = None  # blank -> configured default vendor
    serial: str = Field(min_length=1)
    ip_address: Optional[str] = None
    customer_id: Optional[str] = None


class EquipmentLink(BaseModel):
    customer_id: Optional[str] = None


class EquipmentOut(BaseModel):
    id: str
    physical_location: str
    location_details: Optional[str] = None
    model: str
    brand: str
    serial: str
    ip_address: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    created_at: str

    class Config:
        from_attributes = True


class ImportResultOut(BaseModel):
    imported: int
    dropped: int
