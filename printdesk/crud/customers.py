"""Customer (institution) helpers, including the fixed technician assignment."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import NotFound
from ..core.roles import ROLE_TECHNICIAN
from ..models.customer import Customer
from ..models.profile import Profile

LOGGER = logging.getLogger(__name__)


def list_customers(db: Session) -> list[Customer]:
    stmt = select(Customer).order_by(Customer.name)
    return list(db.execute(stmt).scalars().all())


def get_customer(db: Session, customer_id: str) -> Customer | None:
    return db.get(Customer, customer_id)


def _require_technician(db: Session, technician_id: str) -> Profile:
    profile = db.get(Profile, technician_id)
    if profile is None:
        raise NotFound(f"Technician '{technician_id}' not found")
    if profile.role != ROLE_TECHNICIAN:
        raise ValueError(f"Profile '{technician_id}' is not a technician")
    return profile


def create_customer(db: Session, *, name: str, assigned_tech_id: str | None = None) -> Customer:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("Customer name is required")
    if assigned_tech_id:
        _require_technician(db, assigned_tech_id)
    customer = Customer(name=cleaned, assigned_tech_id=assigned_tech_id or None)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


def assign_technician(db: Session, customer_id: str, technician_id: str | None) -> Customer:
    """Set or clear the customer's routing technician.

    Only tickets opened after this call are affected; existing tickets keep
    the technician they were routed to.
    """

    customer = get_customer(db, customer_id)
    if customer is None:
        raise NotFound(f"Customer '{customer_id}' not found")
    if technician_id:
        _require_technician(db, technician_id)
    previous = customer.assigned_tech_id
    customer.assigned_tech_id = technician_id or None
    db.commit()
    db.refresh(customer)
    LOGGER.info(
        "customer.technician_assigned",
        extra={
            "extra_data": {
                "customer_id": customer.id,
                "previous_technician_id": previous,
                "technician_id": customer.assigned_tech_id,
            }
        },
    )
    return customer
