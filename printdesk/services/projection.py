"""Role-shaped, in-memory copy of the store used to render every view.

The cache holds four collections (customers, equipment with owner name,
technicians and tickets with their equipment and customer) and only ever
changes by a full reload. There is no incremental patching: a reload reads
everything again and swaps the whole snapshot in one assignment, so readers
see either the old state or the new one.

A failed reload keeps the previous snapshot and records the failure on
``last_error``. Nothing retries; the next reload (usually the next change
notification) tries again.
"""

from __future__ import annotations

import logging
import threading

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import TransientFetchFailure
from ..core.security import Identity
from ..crud.customers import list_customers
from ..crud.equipment import list_equipment
from ..crud.profiles import list_technicians
from ..models._common import utcnow_iso
from ..schemas.customer import CustomerOut
from ..schemas.equipment import EquipmentOut
from ..schemas.profile import IdentityOut, TechnicianOut
from ..schemas.projection import ProjectionSnapshot
from ..schemas.ticket import TicketOut
from .lifecycle import visible_tickets_query

LOGGER = logging.getLogger(__name__)


class ProjectionCache:
    def __init__(self, identity: Identity) -> None:
        self.identity = identity
        self.last_error: TransientFetchFailure | None = None
        self.reload_count = 0
        self._snapshot = ProjectionSnapshot(identity=self._identity_out())
        self._lock = threading.Lock()
        self._started = 0
        self._applied = 0

    def _identity_out(self) -> IdentityOut:
        return IdentityOut(
            user_id=self.identity.user_id,
            role=self.identity.role,
            full_name=self.identity.full_name,
        )

    def load(self, db: Session) -> bool:
        """Re-read all four collections. Returns ``False`` and keeps the old data on failure.

        Loads may overlap (a change notification can arrive while another load
        is still reading). A load only publishes its result if no load that
        started after it has already published, so an older read never
        replaces a newer one.
        """

        with self._lock:
            self._started += 1
            generation = self._started
        try:
            customers = [CustomerOut.model_validate(row) for row in list_customers(db)]
            technicians = [TechnicianOut.model_validate(row) for row in list_technicians(db)]
            equipment = [EquipmentOut.model_validate(row) for row in list_equipment(db)]
            # The technician filter is part of the SQL, not a post-filter.
            rows = db.execute(visible_tickets_query(self.identity)).unique().scalars().all()
            tickets = [TicketOut.model_validate(row) for row in rows]
        except SQLAlchemyError as exc:
            failure = TransientFetchFailure(
                "Could not refresh data from the store; showing the last loaded state",
                details={"error": str(exc)},
            )
            with self._lock:
                self.last_error = failure
                self._snapshot = self._snapshot.model_copy(update={"last_error": failure.message})
            LOGGER.warning(
                "projection.reload_failed",
                exc_info=True,
                extra={"extra_data": {"user_id": self.identity.user_id}},
            )
            return False

        with self._lock:
            if generation < self._applied:
                LOGGER.debug(
                    "projection.stale_load_discarded",
                    extra={"extra_data": {"user_id": self.identity.user_id, "generation": generation}},
                )
                return True
            self._applied = generation
            self._snapshot = ProjectionSnapshot(
                identity=self._identity_out(),
                customers=customers,
                equipment=equipment,
                technicians=technicians,
                tickets=tickets,
                loaded_at=utcnow_iso(),
            )
            self.last_error = None
            self.reload_count += 1
        LOGGER.debug(
            "projection.reloaded",
            extra={
                "extra_data": {
                    "user_id": self.identity.user_id,
                    "tickets": len(tickets),
                    "equipment": len(equipment),
                }
            },
        )
        return True

    def snapshot(self) -> ProjectionSnapshot:
        return self._snapshot

    @property
    def customers(self) -> list[CustomerOut]:
        return self._snapshot.customers

    @property
    def equipment(self) -> list[EquipmentOut]:
        return self._snapshot.equipment

    @property
    def technicians(self) -> list[TechnicianOut]:
        return self._snapshot.technicians

    @property
    def tickets(self) -> list[TicketOut]:
        return self._snapshot.tickets

    def search(self, term: str) -> ProjectionSnapshot:
        """Filter tickets and equipment by serial, model, customer name or short ticket id."""

        needle = (term or "").strip().casefold()
        snapshot = self._snapshot
        if not needle:
            return snapshot

        def _hit(*values: str | None) -> bool:
            return any(needle in value.casefold() for value in values if value)

        equipment = [
            item
            for item in snapshot.equipment
            if _hit(item.serial, item.model, item.customer_name, item.physical_location)
        ]
        tickets = [
            ticket
            for ticket in snapshot.tickets
            if _hit(
                ticket.short_id,
                ticket.equipment.serial if ticket.equipment else None,
                ticket.equipment.model if ticket.equipment else None,
                ticket.customer.name if ticket.customer else None,
            )
        ]
        return snapshot.model_copy(update={"equipment": equipment, "tickets": tickets})


__all__ = ["ProjectionCache"]
