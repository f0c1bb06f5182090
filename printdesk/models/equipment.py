from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.orm import relationship

from ..db.session import Base
from ._common import new_id, utcnow_iso


class Equipment(Base):
    """A managed printer. ``serial`` is unique across the whole fleet."""

    __tablename__ = "equipment"

    id = Column(Text, primary_key=True, default=new_id)
    physical_location = Column(Text, nullable=False, default="")
    location_details = Column(Text, nullable=True)
    model = Column(Text, nullable=False, default="")
    brand = Column(Text, nullable=False)
    serial = Column(Text, nullable=False, unique=True, index=True)
    ip_address = Column(Text, nullable=True)
    customer_id = Column(Text, ForeignKey("customers.id"), nullable=True, index=True)
    created_at = Column(Text, nullable=False, default=utcnow_iso)

    customer = relationship("Customer", lazy="joined")

    @property
    def customer_name(self) -> str | None:
        return self.customer.name if self.customer else None
