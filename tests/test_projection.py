import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from printdesk.core.errors import PermissionDenied, RoutingUnresolved
from printdesk.core.roles import ROLE_CLIENT, ROLE_SUPERVISOR, ROLE_TECHNICIAN, STATUS_COMPLETED
from printdesk.core.security import Identity
from printdesk.crud.customers import create_customer
from printdesk.crud.equipment import create_equipment
from printdesk.crud.profiles import create_profile
from printdesk.db.changefeed import ChangeFeed
from printdesk.db.session import Base
from printdesk.services.context import WATCHED_CORE, WATCHED_FULL, SessionContext, watched_record_types
from printdesk.services.projection import ProjectionCache

from printdesk.models import customer as customer_model  # noqa: F401
from printdesk.models import equipment as equipment_model  # noqa: F401
from printdesk.models import profile as profile_model  # noqa: F401
from printdesk.models import ticket as ticket_model  # noqa: F401


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def feed(session_factory):
    feed = ChangeFeed()
    feed.install(session_factory)
    yield feed
    feed.uninstall(session_factory)


@pytest.fixture()
def fleet(session_factory):
    with session_factory() as db:
        tech = create_profile(db, full_name="Tess Tech", role=ROLE_TECHNICIAN)
        other = create_profile(db, full_name="Omar Other", role=ROLE_TECHNICIAN)
        client = create_profile(db, full_name="Carla Client", role=ROLE_CLIENT)
        boss = create_profile(db, full_name="Sam Super", role=ROLE_SUPERVISOR)
        city_hall = create_customer(db, name="City Hall", assigned_tech_id=tech.id)
        library = create_customer(db, name="Library", assigned_tech_id=other.id)
        annex = create_customer(db, name="Annex")
        hall_printer = create_equipment(
            db, {"model": "IM 550", "serial": "SN-HALL", "customer_id": city_hall.id}
        )
        library_printer = create_equipment(
            db, {"model": "IM C3000", "serial": "SN-LIB", "customer_id": library.id}
        )
        annex_printer = create_equipment(db, {"model": "MP 305", "serial": "SN-ANX", "customer_id": annex.id})
        return {
            "tech": Identity(user_id=tech.id, role=ROLE_TECHNICIAN, full_name="Tess Tech"),
            "other": Identity(user_id=other.id, role=ROLE_TECHNICIAN, full_name="Omar Other"),
            "client": Identity(user_id=client.id, role=ROLE_CLIENT, full_name="Carla Client"),
            "supervisor": Identity(user_id=boss.id, role=ROLE_SUPERVISOR, full_name="Sam Super"),
            "hall_printer": hall_printer.id,
            "library_printer": library_printer.id,
            "annex_printer": annex_printer.id,
        }


def test_open_loads_every_collection(session_factory, feed, fleet):
    with SessionContext(session_factory, feed) as context:
        snapshot = context.open(fleet["supervisor"])

        assert snapshot.identity.role == ROLE_SUPERVISOR
        assert {c.name for c in snapshot.customers} == {"City Hall", "Library", "Annex"}
        assert {t.full_name for t in snapshot.technicians} == {"Tess Tech", "Omar Other"}
        assert len(snapshot.equipment) == 3
        assert snapshot.tickets == []
        assert snapshot.loaded_at is not None
        assert feed.subscriber_count == 1

    assert feed.subscriber_count == 0


def test_writes_reach_the_projection_through_the_feed(session_factory, feed, fleet):
    with SessionContext(session_factory, feed) as client:
        client.open(fleet["client"])

        created = client.create_ticket(fleet["hall_printer"], "paper jam")

        tickets = client.snapshot().tickets
        assert [t.id for t in tickets] == [created.id]
        assert tickets[0].equipment.serial == "SN-HALL"
        assert tickets[0].customer.name == "City Hall"


def test_projection_is_untouched_until_reload(session_factory, feed, fleet):
    notified = []
    with SessionContext(session_factory, feed, dispatcher=notified.append) as client:
        client.open(fleet["client"])

        client.create_ticket(fleet["hall_printer"], "paper jam")

        assert notified and notified[0][0].record_type == "tickets"
        assert client.snapshot().tickets == []
        client.reload()
        assert len(client.snapshot().tickets) == 1


def test_technician_projection_only_has_own_tickets(session_factory, feed, fleet):
    with SessionContext(session_factory, feed) as client, SessionContext(session_factory, feed) as tech:
        client.open(fleet["client"])
        tech.open(fleet["tech"])

        mine = client.create_ticket(fleet["hall_printer"], "paper jam")
        client.create_ticket(fleet["library_printer"], "no power")

        assert len(client.snapshot().tickets) == 2
        assert [t.id for t in tech.snapshot().tickets] == [mine.id]
        assert all(t.technician_id == fleet["tech"].user_id for t in tech.snapshot().tickets)


def test_resolution_flows_to_every_open_context(session_factory, feed, fleet):
    with SessionContext(session_factory, feed) as client, SessionContext(session_factory, feed) as tech:
        client.open(fleet["client"])
        tech.open(fleet["tech"])
        ticket = client.create_ticket(fleet["hall_printer"], "paper jam")

        tech.acknowledge_ticket(ticket.id)
        tech.resolve_ticket(ticket.id, "replaced fuser")

        (seen,) = client.snapshot().tickets
        assert seen.status == STATUS_COMPLETED
        assert seen.resolution_notes == "replaced fuser"


def test_unroutable_create_leaves_projection_alone(session_factory, feed, fleet):
    with SessionContext(session_factory, feed) as client:
        client.open(fleet["client"])
        before = client.projection.reload_count

        with pytest.raises(RoutingUnresolved):
            client.create_ticket(fleet["annex_printer"], "paper jam")

        assert client.projection.reload_count == before
        assert client.snapshot().tickets == []


def test_core_watch_ignores_customer_changes(session_factory, feed, fleet):
    with SessionContext(session_factory, feed, watch_all=False) as context:
        context.open(fleet["supervisor"])
        before = context.projection.reload_count

        with session_factory() as db:
            create_customer(db, name="Museum")

        assert context.projection.reload_count == before
        assert "Museum" not in {c.name for c in context.snapshot().customers}


def test_full_watch_reloads_on_customer_changes(session_factory, feed, fleet):
    with SessionContext(session_factory, feed, watch_all=True) as context:
        context.open(fleet["supervisor"])

        with session_factory() as db:
            create_customer(db, name="Museum")

        assert "Museum" in {c.name for c in context.snapshot().customers}


def test_watched_record_types():
    assert watched_record_types(False) == WATCHED_CORE
    assert watched_record_types(True) == WATCHED_FULL


def test_close_releases_subscription_and_state(session_factory, feed, fleet):
    context = SessionContext(session_factory, feed)
    context.open(fleet["tech"])
    context.close()

    assert not context.is_open
    assert feed.subscriber_count == 0
    with pytest.raises(RuntimeError):
        context.snapshot()


def test_reopen_with_another_identity_replaces_subscription(session_factory, feed, fleet):
    with SessionContext(session_factory, feed) as context:
        context.open(fleet["tech"])
        context.open(fleet["other"])

        assert feed.subscriber_count == 1
        assert context.identity == fleet["other"]


def test_failed_reload_keeps_previous_snapshot(engine, session_factory, feed, fleet):
    with SessionContext(session_factory, feed) as context:
        context.open(fleet["supervisor"])
        previous = context.snapshot()

        with engine.begin() as conn:
            conn.execute(text("DROP TABLE tickets"))

        assert context.reload() is False
        snapshot = context.snapshot()
        assert snapshot.customers == previous.customers
        assert snapshot.last_error is not None
        assert context.projection.last_error.code == "store_unavailable"


def test_supervisor_only_operations(session_factory, feed, fleet):
    with SessionContext(session_factory, feed) as tech:
        tech.open(fleet["tech"])
        with pytest.raises(PermissionDenied):
            tech.import_equipment("h\nA,B,C,SN9,,,\n")
        with pytest.raises(PermissionDenied):
            tech.export_audit()

    with SessionContext(session_factory, feed) as boss:
        boss.open(fleet["supervisor"])
        result = boss.import_equipment("h\nA,B,C,SN9,,,\n")
        assert result.imported == 1
        assert "SN9" in {e.serial for e in boss.snapshot().equipment}
        assert boss.export_audit().startswith("ID,DATE,CUSTOMER,MODEL,SERIAL,STATUS,COMPLETED")


def test_search_filters_equipment_and_tickets(session_factory, fleet):
    cache = ProjectionCache(fleet["supervisor"])
    with session_factory() as db:
        assert cache.load(db)

    found = cache.search("library")
    assert [e.serial for e in found.equipment] == ["SN-LIB"]

    assert cache.search("  ") is cache.snapshot()
    assert cache.search("sn-hall").equipment[0].model == "IM 550"


def test_commit_during_initial_load_is_not_lost(session_factory, feed, fleet, monkeypatch):
    from printdesk.services import projection as projection_module

    real_list_equipment = projection_module.list_equipment
    committed = []

    def _list_then_commit(db):
        rows = real_list_equipment(db)
        if not committed:
            committed.append(True)
            with session_factory() as other:
                create_equipment(other, {"model": "IM 430", "serial": "SN-RACE"})
        return rows

    monkeypatch.setattr(projection_module, "list_equipment", _list_then_commit)

    with SessionContext(session_factory, feed) as context:
        snapshot = context.open(fleet["supervisor"])

        assert "SN-RACE" in {e.serial for e in snapshot.equipment}
        assert "SN-RACE" in {e.serial for e in context.snapshot().equipment}


def test_older_load_never_replaces_newer_snapshot(session_factory, fleet, monkeypatch):
    from printdesk.services import projection as projection_module

    cache = ProjectionCache(fleet["supervisor"])
    real_list_equipment = projection_module.list_equipment
    nested = []

    def _list_with_nested_load(db):
        rows = real_list_equipment(db)
        if not nested:
            nested.append(True)
            with session_factory() as other:
                create_equipment(other, {"model": "IM 430", "serial": "SN-NEW"})
                assert cache.load(other)
        return rows

    monkeypatch.setattr(projection_module, "list_equipment", _list_with_nested_load)

    with session_factory() as db:
        assert cache.load(db)

    assert "SN-NEW" in {e.serial for e in cache.equipment}
    assert cache.reload_count == 1


def test_short_id_follows_configured_length(session_factory, feed, fleet, monkeypatch):
    from printdesk.core.config import settings
    from printdesk.services.audit_export import short_ticket_id

    monkeypatch.setattr(settings, "EXPORT_ID_LENGTH", 5)
    with SessionContext(session_factory, feed) as client:
        client.open(fleet["client"])
        created = client.create_ticket(fleet["hall_printer"], "paper jam")

        assert created.short_id == short_ticket_id(created.id)
        assert len(created.short_id) == 5
        found = client.projection.search(created.short_id.lower())
        assert [t.id for t in found.tickets] == [created.id]
        assert client.export_audit().splitlines()[1].split(",")[0] == created.short_id
