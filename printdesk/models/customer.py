from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.orm import relationship

from ..db.session import Base
from ._common import new_id, utcnow_iso


class Customer(Base):
    """A client institution. Owns the fixed technician routing assignment."""

    __tablename__ = "customers"

    id = Column(Text, primary_key=True, default=new_id)
    name = Column(Text, nullable=False)
    assigned_tech_id = Column(Text, ForeignKey("profiles.id"), nullable=True, index=True)
    created_at = Column(Text, nullable=False, default=utcnow_iso)

    assigned_tech = relationship("Profile", lazy="joined")
