"""Row-level change notifications for the entity store.

The feed watches SQLAlchemy sessions: rows touched by a flush are collected
per session and published to subscribers only once the surrounding
transaction commits. A rollback discards whatever was collected, so
subscribers never hear about writes that did not happen.

Subscribers register for one or more record types (table names) and receive
one call per commit with the list of matching ``ChangeEvent`` objects.
Callbacks run on the committing thread; anything slow belongs on the
subscriber's own queue.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable

from sqlalchemy import event

LOGGER = logging.getLogger(__name__)

ACTION_INSERT = "INSERT"
ACTION_UPDATE = "UPDATE"
ACTION_DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    record_type: str
    action: str
    record_id: str | None = None


ChangeCallback = Callable[[list[ChangeEvent]], None]


class Subscription:
    """Handle returned by ``ChangeFeed.subscribe``; release it on teardown."""

    def __init__(self, feed: "ChangeFeed", record_types: frozenset[str], callback: ChangeCallback) -> None:
        self._feed = feed
        self.record_types = record_types
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._feed._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class ChangeFeed:
    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()
        self._info_key = f"changefeed.pending.{id(self)}"

    # ---- wiring -------------------------------------------------------
    def install(self, target) -> None:
        """Attach to a ``Session`` class or ``sessionmaker``."""

        event.listen(target, "after_flush", self._collect)
        event.listen(target, "after_commit", self._flush_pending)
        event.listen(target, "after_rollback", self._discard)

    def uninstall(self, target) -> None:
        event.remove(target, "after_flush", self._collect)
        event.remove(target, "after_commit", self._flush_pending)
        event.remove(target, "after_rollback", self._discard)

    # ---- subscriptions ------------------------------------------------
    def subscribe(self, record_types: Iterable[str], callback: ChangeCallback) -> Subscription:
        types = frozenset(record_types)
        if not types:
            raise ValueError("subscribe needs at least one record type")
        subscription = Subscription(self, types, callback)
        with self._lock:
            self._subscriptions.append(subscription)
        LOGGER.debug(
            "changefeed.subscribed",
            extra={"extra_data": {"record_types": sorted(types)}},
        )
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, events: list[ChangeEvent]) -> None:
        if not events:
            return
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            matching = [e for e in events if e.record_type in subscription.record_types]
            if not matching or not subscription.active:
                continue
            try:
                subscription.callback(matching)
            except Exception:
                # The commit already happened; one broken subscriber must not
                # stop the others from hearing about it.
                LOGGER.exception("changefeed.callback_failed")

    # ---- session event handlers --------------------------------------
    def _collect(self, session, flush_context) -> None:
        pending: list[ChangeEvent] = session.info.setdefault(self._info_key, [])
        for action, objects in (
            (ACTION_INSERT, session.new),
            (ACTION_UPDATE, session.dirty),
            (ACTION_DELETE, session.deleted),
        ):
            for obj in objects:
                record_type = getattr(obj, "__tablename__", None)
                if not record_type:
                    continue
                if action == ACTION_UPDATE and not session.is_modified(obj, include_collections=False):
                    continue
                record_id = getattr(obj, "id", None)
                pending.append(
                    ChangeEvent(
                        record_type=record_type,
                        action=action,
                        record_id=str(record_id) if record_id is not None else None,
                    )
                )

    def _flush_pending(self, session) -> None:
        events = session.info.pop(self._info_key, None)
        if events:
            self.publish(events)

    def _discard(self, session) -> None:
        session.info.pop(self._info_key, None)
