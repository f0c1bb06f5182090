"""Account profiles provisioned by the identity provider.

Technicians are profiles whose ``role`` is ``technician``; the core never
creates or edits them outside of seeding and tests.
"""

from __future__ import annotations

from sqlalchemy import Column, Text

from ..core.roles import ROLE_CLIENT
from ..db.session import Base
from ._common import new_id, utcnow_iso


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Text, primary_key=True, default=new_id)
    full_name = Column(Text, nullable=False, default="")
    role = Column(Text, nullable=False, default=ROLE_CLIENT, index=True)
    created_at = Column(Text, nullable=False, default=utcnow_iso)
