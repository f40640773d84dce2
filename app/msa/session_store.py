"""
Persistence for the single admin session record.

A store holds at most one opaque record (a JSON object) per browser.
Stores do not interpret the record and do not swallow errors: callers decide
what a failed read or write means.
"""
from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from typing import Any

from flask import session

from app.msa.constants import ADMIN_SESSION_ID_KEY, ADMIN_SESSION_KEY
from app.msa.storage import Storage, storage_from_config


class SessionStore:
    key: str

    def get(self) -> dict[str, Any] | None:
        raise NotImplementedError

    def set(self, record: dict[str, Any]) -> None:
        raise NotImplementedError

    def remove(self) -> None:
        raise NotImplementedError


def _decode(raw: str | bytes) -> dict[str, Any]:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Session record must be a JSON object")
    return data


def _encode(record: dict[str, Any]) -> str:
    return json.dumps(record, sort_keys=True)


@dataclass(frozen=True)
class CookieSessionStore(SessionStore):
    """
    Keeps the record in Flask's signed session cookie.
    The browser holds the data but cannot alter it without the SECRET_KEY.
    Only usable inside a request context.
    """

    key: str = ADMIN_SESSION_KEY

    def get(self) -> dict[str, Any] | None:
        raw = session.get(self.key)
        if raw is None:
            return None
        return _decode(raw)

    def set(self, record: dict[str, Any]) -> None:
        session[self.key] = _encode(record)

    def remove(self) -> None:
        session.pop(self.key, None)


@dataclass(frozen=True)
class StorageSessionStore(SessionStore):
    """
    Keeps the record as a JSON blob in a Storage backend (local disk or S3).

    Each browser gets its own blob, named after a random id held in the signed
    session cookie. A browser without an id has no record. The id is rotated on
    every ``set`` so a pre-login id never carries an authenticated record.
    Only usable inside a request context.
    """

    storage: Storage
    key: str = ADMIN_SESSION_KEY
    id_key: str = ADMIN_SESSION_ID_KEY

    def blob_key_for(self, sid: str) -> str:
        return f"sessions/{self.key}/{sid}.json"

    @property
    def blob_key(self) -> str | None:
        """Blob for the current browser, or None when it has no session id."""
        sid = session.get(self.id_key)
        if not sid:
            return None
        return self.blob_key_for(str(sid))

    def get(self) -> dict[str, Any] | None:
        blob_key = self.blob_key
        if blob_key is None:
            return None
        raw = self.storage.get_bytes(blob_key)
        if raw is None:
            return None
        return _decode(raw)

    def set(self, record: dict[str, Any]) -> None:
        previous = self.blob_key
        sid = secrets.token_urlsafe(32)
        self.storage.put_bytes(self.blob_key_for(sid), _encode(record).encode("utf-8"), content_type="application/json")
        session[self.id_key] = sid
        if previous is not None:
            self.storage.delete(previous)

    def remove(self) -> None:
        blob_key = self.blob_key
        session.pop(self.id_key, None)
        if blob_key is not None:
            self.storage.delete(blob_key)


def session_store_from_config(config: dict) -> SessionStore:
    backend = (config.get("ADMIN_SESSION_STORE") or "cookie").strip().lower()
    if backend == "storage":
        return StorageSessionStore(storage=storage_from_config(config))
    if backend != "cookie":
        raise ValueError(f"Unknown ADMIN_SESSION_STORE: {backend!r} (expected 'cookie' or 'storage')")
    return CookieSessionStore()
