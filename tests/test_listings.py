import pytest

from app.msa import create_app
from app.msa.db import db_session, engine_options, session_scope, teardown_db_session
from app.msa.models import AuditEvent, Base
from app.msa.modules.listings.feed import ListingFeed
from app.msa.modules.listings.models import Property
from app.msa.modules.listings.service import (
    ListingNotFound,
    bulk_set_availability,
    create_property,
    delete_property,
    get_property,
    list_properties,
    property_statistics,
    set_availability,
    toggle_sold,
    validate_property_payload,
)


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "storage"))
    for k in ("FEATURE_QUICK_TOGGLE_SOLD", "FEATURE_PROPERTY_ANALYTICS", "FEATURE_BULK_ACTIONS"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
    return app


def _listing(**overrides):
    payload = {
        "title": "Studio Flat, Abington Street",
        "address": "12 Abington Street, Northampton NN1 2AJ",
        "rent": "650",
        "bedrooms": "0",
        "bathrooms": "1",
        "square_footage": "320",
        "amenities": "Furnished\nBills included",
        "availability": "available",
        "epc_rating": "c",
    }
    payload.update(overrides)
    return payload


def test_validate_property_payload_ok():
    assert validate_property_payload(_listing()) == []


def test_validate_property_payload_errors():
    errors = validate_property_payload(
        {"title": " ", "address": "", "rent": "abc", "bedrooms": "-1", "availability": "let", "epc_rating": "Z"}
    )
    assert "Title is required." in errors
    assert "Address is required." in errors
    assert "Rent must be a whole number." in errors
    assert "Bedrooms must be at least 0." in errors
    assert any(e.startswith("Invalid availability") for e in errors)
    assert "EPC rating must be a letter A-G." in errors


def test_validate_property_payload_requires_rent():
    assert "Rent is required." in validate_property_payload(_listing(rent=""))


def test_create_property_normalises_fields(app):
    with session_scope(app) as s:
        prop = create_property(s, _listing(), "msa-admin")
        pid = prop.id

    with session_scope(app) as s:
        prop = get_property(s, pid)
        assert prop.rent == 650
        assert prop.bedrooms == 0
        assert prop.amenities == ["Furnished", "Bills included"]
        assert prop.photos == []
        assert prop.epc_rating == "C"
        ev = s.query(AuditEvent).filter(AuditEvent.action == "property.create").one()
        assert ev.actor == "msa-admin"
        assert ev.entity_id == str(pid)


def test_list_properties_newest_first_and_filter(app):
    with session_scope(app) as s:
        create_property(s, _listing(title="First"), "msa-admin")
        create_property(s, _listing(title="Second", availability="sold"), "msa-admin")

    with session_scope(app) as s:
        assert [p.title for p in list_properties(s)] == ["Second", "First"]
        assert [p.title for p in list_properties(s, availability="sold")] == ["Second"]


def test_set_availability_records_change(app):
    with session_scope(app) as s:
        prop = create_property(s, _listing(), "msa-admin")
        set_availability(s, prop, "maintenance", "msa-admin", reason="boiler")
        set_availability(s, prop, "maintenance", "msa-admin")
        pid = prop.id

    with session_scope(app) as s:
        assert get_property(s, pid).availability == "maintenance"
        events = s.query(AuditEvent).filter(AuditEvent.action == "property.status_change").all()
        assert len(events) == 1
        assert events[0].reason == "boiler"


def test_set_availability_rejects_unknown_status(app):
    with session_scope(app) as s:
        prop = create_property(s, _listing(), "msa-admin")
        with pytest.raises(ValueError):
            set_availability(s, prop, "let-agreed", "msa-admin")


def test_toggle_sold_round_trip(app):
    with session_scope(app) as s:
        prop = create_property(s, _listing(availability="occupied"), "msa-admin")
        toggle_sold(s, prop, "msa-admin")
        assert prop.availability == "sold"
        toggle_sold(s, prop, "msa-admin")
        assert prop.availability == "available"


def test_bulk_set_availability_is_all_or_nothing(app):
    with session_scope(app) as s:
        a = create_property(s, _listing(title="A"), "msa-admin")
        b = create_property(s, _listing(title="B"), "msa-admin")
        ids = [a.id, b.id]

    with session_scope(app) as s:
        with pytest.raises(ListingNotFound):
            bulk_set_availability(s, ids + [999], "sold", "msa-admin")
        s.rollback()
        assert {p.availability for p in list_properties(s)} == {"available"}

    with session_scope(app) as s:
        updated = bulk_set_availability(s, ids, "sold", "msa-admin")
        assert len(updated) == 2

    with session_scope(app) as s:
        assert {p.availability for p in list_properties(s)} == {"sold"}


def test_delete_property(app):
    with session_scope(app) as s:
        pid = create_property(s, _listing(), "msa-admin").id

    with session_scope(app) as s:
        delete_property(s, get_property(s, pid), "msa-admin")

    with session_scope(app) as s:
        assert get_property(s, pid) is None
        assert s.query(AuditEvent).filter(AuditEvent.action == "property.delete").count() == 1


def test_property_statistics(app):
    with session_scope(app) as s:
        create_property(s, _listing(rent="600"), "msa-admin")
        create_property(s, _listing(rent="700", availability="occupied"), "msa-admin")
        create_property(s, _listing(rent="800", availability="sold"), "msa-admin")

    with session_scope(app) as s:
        stats = property_statistics(s)
    assert stats == {
        "total_properties": 3,
        "available_properties": 1,
        "occupied_properties": 1,
        "maintenance_properties": 0,
        "sold_properties": 1,
        "total_potential_revenue": 2100,
    }


# --- feed ---


def test_subscribe_delivers_current_snapshot_immediately():
    feed = ListingFeed(lambda: [{"id": 1, "availability": "available"}])
    seen = []
    feed.subscribe(seen.append)
    assert seen == [[{"id": 1, "availability": "available"}]]


def test_publish_reaches_every_subscriber_until_unsubscribed():
    data = [{"id": 1, "availability": "available"}]
    feed = ListingFeed(lambda: data)
    first, second = [], []
    unsub_first = feed.subscribe(first.append)
    feed.subscribe(second.append)

    data = [{"id": 1, "availability": "sold"}]
    feed.publish()
    assert first[-1] == [{"id": 1, "availability": "sold"}]
    assert second[-1] == [{"id": 1, "availability": "sold"}]

    unsub_first()
    unsub_first()
    assert feed.subscriber_count == 1
    feed.publish()
    assert len(first) == 2
    assert len(second) == 3


def test_failing_subscriber_does_not_block_others():
    feed = ListingFeed(lambda: [{"id": 1}])

    def broken(snapshot):
        raise RuntimeError("listener bug")

    seen = []
    feed.subscribe(broken)
    feed.subscribe(seen.append)
    feed.publish()
    assert len(seen) == 2


def test_loader_failure_skips_delivery():
    calls = {"n": 0}

    def loader():
        calls["n"] += 1
        if calls["n"] > 1:
            raise RuntimeError("db down")
        return [{"id": 1}]

    feed = ListingFeed(loader)
    seen = []
    feed.subscribe(seen.append)
    feed.publish()
    assert seen == [[{"id": 1}]]


def test_subscribers_get_independent_copies():
    feed = ListingFeed(lambda: [{"id": 1, "availability": "available"}])
    first, second = [], []
    feed.subscribe(first.append)
    feed.subscribe(second.append)
    first[0][0]["availability"] = "sold"
    assert second[0][0]["availability"] == "available"


def test_app_feed_reads_from_database(app):
    with session_scope(app) as s:
        create_property(s, _listing(title="Fed"), "msa-admin")

    seen = []
    unsubscribe = app.extensions["listing_feed"].subscribe(seen.append)
    assert [p["title"] for p in seen[0]] == ["Fed"]

    with session_scope(app) as s:
        prop = s.query(Property).one()
        toggle_sold(s, prop, "msa-admin")
    app.extensions["listing_feed"].publish()
    assert seen[-1][0]["availability"] == "sold"
    unsubscribe()


def test_engine_options_per_backend():
    pg = engine_options("postgresql+psycopg2://msa@localhost/msa")
    assert pg["pool_size"] == 5
    assert pg["pool_pre_ping"] is True
    lite = engine_options("sqlite:///msa.db")
    assert lite["connect_args"] == {"check_same_thread": False}
    assert "pool_size" not in lite


def test_request_session_is_reused_and_closed(app):
    with app.test_request_context("/"):
        s = db_session()
        assert db_session() is s
        create_property(s, _listing(title="Never committed"), "msa-admin")
        teardown_db_session(RuntimeError("view failed"))
        assert db_session() is not s

    with session_scope(app) as s:
        assert list_properties(s) == []
