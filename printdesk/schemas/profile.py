from __future__ import annotations

from pydantic import BaseModel


class TechnicianOut(BaseModel):
    id: str
    full_name: str
    role: str

    class Config:
        from_attributes = True


class IdentityOut(BaseModel):
    user_id: str
    role: str
    full_name: str
