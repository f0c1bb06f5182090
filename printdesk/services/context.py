"""Per-identity application context.

A ``SessionContext`` owns everything that belongs to one signed-in user: the
identity, its projection and its change feed subscription.

* ``open(identity)`` runs when an identity is acquired: a subscription to the
  watched record types, then one full load.
* Any notification for a watched type reloads the whole projection.
* ``close()`` runs when the identity is lost or the consuming view goes away
  and releases the subscription.

Write operations go straight to the store and return what was written. They
never touch the projection; the change feed brings the new state in.
"""

from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from ..core.config import settings
from ..core.security import Identity
from ..db.changefeed import ChangeEvent, ChangeFeed, Subscription
from ..db.session import SessionLocal, change_feed
from ..schemas.projection import ProjectionSnapshot
from ..schemas.ticket import TicketOut
from . import audit_export, bulk_import, lifecycle
from .permissions import require_supervisor
from .projection import ProjectionCache

LOGGER = logging.getLogger(__name__)

WATCHED_CORE = ("tickets", "equipment")
WATCHED_FULL = WATCHED_CORE + ("customers", "profiles")


def watched_record_types(watch_all: bool | None = None) -> tuple[str, ...]:
    if watch_all is None:
        watch_all = settings.REALTIME_WATCH_ALL
    return WATCHED_FULL if watch_all else WATCHED_CORE


class SessionContext:
    def __init__(
        self,
        session_factory: sessionmaker | Callable[[], Session] = SessionLocal,
        feed: ChangeFeed = change_feed,
        *,
        watch_all: bool | None = None,
        dispatcher: Callable[[list[ChangeEvent]], None] | None = None,
    ) -> None:
        """``dispatcher`` replaces the inline reload, e.g. to hand notifications to an event loop."""

        self._session_factory = session_factory
        self._feed = feed
        self._record_types = watched_record_types(watch_all)
        self._dispatcher = dispatcher
        self._subscription: Subscription | None = None
        self.identity: Identity | None = None
        self.projection: ProjectionCache | None = None

    @property
    def is_open(self) -> bool:
        return self.identity is not None

    @property
    def record_types(self) -> tuple[str, ...]:
        return self._record_types

    def open(self, identity: Identity) -> ProjectionSnapshot:
        if self.is_open:
            self.close()
        self.identity = identity
        self.projection = ProjectionCache(identity)
        # Subscribe before the first load so a commit landing during it still triggers a reload.
        self._subscription = self._feed.subscribe(self._record_types, self._on_change)
        self.reload()
        LOGGER.info(
            "context.opened",
            extra={"extra_data": {"user_id": identity.user_id, "role": identity.role}},
        )
        return self.projection.snapshot()

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self.identity is not None:
            LOGGER.info("context.closed", extra={"extra_data": {"user_id": self.identity.user_id}})
        self.identity = None
        self.projection = None

    def __enter__(self) -> "SessionContext":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def reload(self) -> bool:
        projection = self._require_open()
        db = self._session_factory()
        try:
            return projection.load(db)
        finally:
            db.close()

    def snapshot(self) -> ProjectionSnapshot:
        return self._require_open().snapshot()

    def _on_change(self, events: list[ChangeEvent]) -> None:
        if not self.is_open:
            return
        if self._dispatcher is not None:
            self._dispatcher(events)
            return
        self.reload()

    def _require_open(self) -> ProjectionCache:
        if self.projection is None:
            raise RuntimeError("SessionContext has no active identity")
        return self.projection

    def _require_identity(self) -> Identity:
        self._require_open()
        return self.identity

    # ---- write operations -------------------------------------------
    def _run(self, operation, *args):
        self._require_open()
        db = self._session_factory()
        try:
            return operation(db, *args)
        finally:
            db.close()

    def create_ticket(self, equipment_id: str, description: str) -> TicketOut:
        def _create(db: Session) -> TicketOut:
            ticket = lifecycle.create_ticket(db, self.identity, equipment_id, description)
            return TicketOut.model_validate(ticket)

        return self._run(_create)

    def acknowledge_ticket(self, ticket_id: str) -> TicketOut:
        def _acknowledge(db: Session) -> TicketOut:
            return TicketOut.model_validate(lifecycle.acknowledge_ticket(db, self.identity, ticket_id))

        return self._run(_acknowledge)

    def resolve_ticket(self, ticket_id: str, note: str) -> TicketOut:
        def _resolve(db: Session) -> TicketOut:
            return TicketOut.model_validate(lifecycle.resolve_ticket(db, self.identity, ticket_id, note))

        return self._run(_resolve)

    def import_equipment(self, text: str) -> bulk_import.ImportResult:
        require_supervisor(self._require_identity(), "import equipment")
        return self._run(bulk_import.import_equipment, text)

    def export_audit(self, start=None, end=None, **options) -> str:
        require_supervisor(self._require_identity(), "export the audit report")
        return audit_export.build_audit_export(self.snapshot().tickets, start, end, **options)


__all__ = ["SessionContext", "WATCHED_CORE", "WATCHED_FULL", "watched_record_types"]
