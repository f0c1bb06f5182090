"""Service request records.

``equipment_id``, ``customer_id``, ``technician_id`` and ``created_at`` are
written once when the ticket is opened and never change afterwards.
``completed_at`` and ``resolution_notes`` stay empty until the ticket reaches
``Completed``.
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.orm import relationship

from ..core.roles import STATUS_OPEN
from ..db.session import Base
from ._common import new_id, utcnow_iso


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Text, primary_key=True, default=new_id)
    equipment_id = Column(Text, ForeignKey("equipment.id"), nullable=False, index=True)
    customer_id = Column(Text, ForeignKey("customers.id"), nullable=False, index=True)
    technician_id = Column(Text, ForeignKey("profiles.id"), nullable=True, index=True)
    description = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default=STATUS_OPEN)
    created_at = Column(Text, nullable=False, default=utcnow_iso, index=True)
    completed_at = Column(Text, nullable=True)
    resolution_notes = Column(Text, nullable=True)

    equipment = relationship("Equipment", lazy="joined")
    customer = relationship("Customer", lazy="joined")
    technician = relationship("Profile", lazy="joined")
