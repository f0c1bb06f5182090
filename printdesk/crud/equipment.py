"""Equipment (printer fleet) CRUD helpers."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import NotFound, StoreConstraintViolation
from ..models.customer import Customer
from ..models.equipment import Equipment

LOGGER = logging.getLogger(__name__)

DUPLICATE_SERIAL_MESSAGE = "The store rejected the equipment; check for duplicate serials"

_OPTIONAL_TEXT = ("location_details", "ip_address", "customer_id")


def list_equipment(db: Session) -> list[Equipment]:
    stmt = select(Equipment).order_by(Equipment.physical_location, Equipment.serial)
    return list(db.execute(stmt).scalars().all())


def get_equipment(db: Session, equipment_id: str) -> Equipment | None:
    return db.get(Equipment, equipment_id)


def prepare_equipment(payload: dict) -> dict:
    """Trim text fields, default the brand and blank optional fields to ``None``."""

    data: dict[str, object] = {}
    for key in ("physical_location", "model", "brand", "serial", *_OPTIONAL_TEXT):
        value = payload.get(key)
        if isinstance(value, str):
            value = value.strip()
        data[key] = value
    for key in _OPTIONAL_TEXT:
        if not data[key]:
            data[key] = None
    data["physical_location"] = data["physical_location"] or ""
    data["model"] = data["model"] or ""
    data["brand"] = data["brand"] or settings.DEFAULT_BRAND
    data["serial"] = data["serial"] or ""
    return data


def _commit_or_reject(db: Session, count: int) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        LOGGER.warning(
            "equipment.insert_rejected",
            extra={"extra_data": {"rows": count, "error": str(exc.orig)}},
        )
        raise StoreConstraintViolation(DUPLICATE_SERIAL_MESSAGE) from exc


def create_equipment(db: Session, payload: dict) -> Equipment:
    data = prepare_equipment(payload)
    if not data["serial"]:
        raise ValueError("serial is required for equipment")
    if data["customer_id"] and db.get(Customer, data["customer_id"]) is None:
        raise NotFound(f"Customer '{data['customer_id']}' not found")
    item = Equipment(**data)
    db.add(item)
    _commit_or_reject(db, 1)
    db.refresh(item)
    return item


def insert_equipment_batch(db: Session, rows: Iterable[dict]) -> int:
    """Insert every row in one transaction; any constraint failure rejects them all."""

    items = [Equipment(**prepare_equipment(row)) for row in rows]
    if not items:
        return 0
    db.add_all(items)
    _commit_or_reject(db, len(items))
    return len(items)


def link_equipment(db: Session, equipment_id: str, customer_id: str | None) -> Equipment:
    item = get_equipment(db, equipment_id)
    if item is None:
        raise NotFound(f"Equipment '{equipment_id}' not found")
    if customer_id and db.get(Customer, customer_id) is None:
        raise NotFound(f"Customer '{customer_id}' not found")
    item.customer_id = customer_id or None
    db.commit()
    db.refresh(item)
    return item
