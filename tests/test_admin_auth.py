"""Tests for the admin session manager and its stores."""
import json
from datetime import datetime, timedelta, timezone

import pytest
from flask import Flask, session
from werkzeug.security import generate_password_hash

from app.msa.admin_auth import AdminCredentials, AdminSession, AdminSessionManager
from app.msa.constants import ADMIN_SESSION_ID_KEY
from app.msa.session_store import SessionStore, StorageSessionStore
from app.msa.storage import LocalStorage, StorageError

T0 = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class BrokenStore(SessionStore):
    key = "broken"

    def __init__(self, *, fail_get=False, fail_set=False, fail_remove=False):
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.fail_remove = fail_remove

    def get(self):
        if self.fail_get:
            raise StorageError("disk on fire")
        return None

    def set(self, record):
        if self.fail_set:
            raise StorageError("read-only filesystem")

    def remove(self):
        if self.fail_remove:
            raise StorageError("read-only filesystem")


@pytest.fixture()
def request_ctx():
    app = Flask(__name__)
    app.secret_key = "test-secret"
    with app.test_request_context("/admin/"):
        yield


@pytest.fixture()
def store(tmp_path, request_ctx):
    return StorageSessionStore(storage=LocalStorage(root=tmp_path))


@pytest.fixture()
def clock():
    return FakeClock(T0)


@pytest.fixture()
def manager(store, clock):
    creds = AdminCredentials(username="msa-admin", password_hash=generate_password_hash("*#fhdncu^%!f"))
    return AdminSessionManager(store=store, credentials=creds, clock=clock)


@pytest.mark.parametrize(
    "username,password",
    [
        ("msa-admin", "wrong"),
        ("someone", "*#fhdncu^%!f"),
        ("MSA-ADMIN", "*#fhdncu^%!f"),
        ("msa-admin ", "*#fhdncu^%!f"),
        ("msa-admin", "*#fhdncu^%!f "),
        ("", ""),
        ("msa-admin", ""),
        ("", "*#fhdncu^%!f"),
    ],
)
def test_authenticate_rejects_everything_but_the_configured_pair(manager, store, tmp_path, username, password):
    assert manager.authenticate(username, password) is False
    assert store.get() is None
    assert store.blob_key is None
    assert not list(tmp_path.rglob("*.json"))


def test_authenticate_then_is_authenticated(manager):
    assert manager.authenticate("msa-admin", "*#fhdncu^%!f") is True
    assert manager.is_authenticated() is True


def test_persisted_record_layout(manager, store):
    manager.authenticate("msa-admin", "*#fhdncu^%!f")
    raw = json.loads(store.storage.get_bytes(store.blob_key))
    assert raw == {"username": "msa-admin", "role": "admin", "loginTime": T0.isoformat()}


def test_session_valid_just_before_24h(manager, clock):
    manager.authenticate("msa-admin", "*#fhdncu^%!f")
    clock.now = T0 + timedelta(hours=23, minutes=59)
    sess = manager.get_session()
    assert sess is not None
    assert sess.username == "msa-admin"
    assert sess.role == "admin"
    assert sess.issued_at == T0


def test_session_expired_after_24h_clears_storage(manager, store, clock, tmp_path):
    manager.authenticate("msa-admin", "*#fhdncu^%!f")
    clock.now = T0 + timedelta(hours=24, minutes=1)
    assert manager.get_session() is None
    assert store.get() is None
    assert not list(tmp_path.rglob("*.json"))
    # a second read is still absent and does not fail
    assert manager.get_session() is None
    assert manager.is_authenticated() is False


def test_session_expires_at_exactly_24h(manager, clock):
    manager.authenticate("msa-admin", "*#fhdncu^%!f")
    clock.now = T0 + timedelta(hours=24)
    assert manager.get_session() is None


def test_logout_then_get_session(manager):
    manager.authenticate("msa-admin", "*#fhdncu^%!f")
    manager.logout()
    assert manager.get_session() is None


def test_logout_is_idempotent(manager):
    manager.logout()
    manager.logout()
    assert manager.get_session() is None


def test_new_login_overwrites_previous_record(manager, clock):
    manager.authenticate("msa-admin", "*#fhdncu^%!f")
    clock.now = T0 + timedelta(hours=20)
    manager.authenticate("msa-admin", "*#fhdncu^%!f")
    clock.now = T0 + timedelta(hours=30)
    sess = manager.get_session()
    assert sess is not None
    assert sess.issued_at == T0 + timedelta(hours=20)


def test_failed_login_keeps_existing_session(manager, clock):
    manager.authenticate("msa-admin", "*#fhdncu^%!f")
    clock.now = T0 + timedelta(hours=1)
    assert manager.authenticate("msa-admin", "nope") is False
    assert manager.get_session().issued_at == T0


def test_corrupt_record_is_logged_out(manager, store):
    manager.authenticate("msa-admin", "*#fhdncu^%!f")
    store.storage.put_bytes(store.blob_key, b"{not json")
    assert manager.get_session() is None
    assert manager.is_authenticated() is False


def test_record_with_wrong_role_is_logged_out(manager, store):
    store.set({"username": "msa-admin", "role": "tenant", "loginTime": T0.isoformat()})
    assert manager.get_session() is None


def test_record_with_z_suffix_timestamp(manager, store, clock):
    store.set({"username": "msa-admin", "role": "admin", "loginTime": "2026-03-01T09:30:00.000Z"})
    clock.now = T0 + timedelta(hours=1)
    assert manager.get_session().issued_at == T0


def test_naive_timestamp_is_read_as_utc():
    sess = AdminSession.from_record({"username": "a", "role": "admin", "loginTime": "2026-03-01T09:30:00"})
    assert sess.issued_at == T0


def test_storage_read_failure_means_logged_out():
    creds = AdminCredentials(username="a", password_hash=generate_password_hash("b"))
    manager = AdminSessionManager(store=BrokenStore(fail_get=True), credentials=creds)
    assert manager.get_session() is None
    assert manager.is_authenticated() is False


def test_storage_write_failure_rejects_login():
    creds = AdminCredentials(username="a", password_hash=generate_password_hash("b"))
    manager = AdminSessionManager(store=BrokenStore(fail_set=True), credentials=creds)
    assert manager.authenticate("a", "b") is False


def test_storage_remove_failure_does_not_raise():
    creds = AdminCredentials(username="a", password_hash=generate_password_hash("b"))
    manager = AdminSessionManager(store=BrokenStore(fail_remove=True), credentials=creds)
    manager.logout()


def test_credentials_without_hash_reject_everything():
    assert AdminCredentials(username="a", password_hash="").verify("a", "") is False
    assert AdminCredentials(username="a", password_hash="").verify("a", "anything") is False


def test_local_storage_rejects_parent_traversal(tmp_path):
    storage = LocalStorage(root=tmp_path)
    with pytest.raises(StorageError):
        storage.put_bytes("../escape.json", b"{}")


def test_storage_records_are_per_browser(tmp_path):
    app = Flask(__name__)
    app.secret_key = "test-secret"
    store = StorageSessionStore(storage=LocalStorage(root=tmp_path))
    creds = AdminCredentials(username="msa-admin", password_hash=generate_password_hash("pw"))
    manager = AdminSessionManager(store=store, credentials=creds)

    with app.test_request_context("/admin/login", method="POST"):
        assert manager.authenticate("msa-admin", "pw") is True
        assert session[ADMIN_SESSION_ID_KEY]

    with app.test_request_context("/admin/"):
        assert store.blob_key is None
        assert manager.get_session() is None


def test_storage_login_rotates_the_browser_id(manager, store, tmp_path):
    manager.authenticate("msa-admin", "*#fhdncu^%!f")
    first = session[ADMIN_SESSION_ID_KEY]
    manager.authenticate("msa-admin", "*#fhdncu^%!f")
    assert session[ADMIN_SESSION_ID_KEY] != first
    assert len(list(tmp_path.rglob("*.json"))) == 1


def test_storage_logout_drops_the_browser_id(manager, store, tmp_path):
    manager.authenticate("msa-admin", "*#fhdncu^%!f")
    manager.logout()
    assert ADMIN_SESSION_ID_KEY not in session
    assert not list(tmp_path.rglob("*.json"))
