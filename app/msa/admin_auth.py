from __future__ import annotations

import hmac
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import wraps
from typing import Any

from flask import Flask, current_app, g, redirect, request, url_for
from werkzeug.security import check_password_hash

from app.msa.constants import ADMIN_ROLE, ADMIN_SESSION_TTL
from app.msa.session_store import SessionStore, session_store_from_config

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class AdminSession:
    username: str
    issued_at: datetime
    role: str = ADMIN_ROLE

    def to_record(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "role": self.role,
            "loginTime": self.issued_at.isoformat(),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "AdminSession":
        username = record.get("username")
        role = record.get("role")
        login_time = record.get("loginTime")
        if not isinstance(username, str) or not username:
            raise ValueError("Session record has no username")
        if role != ADMIN_ROLE:
            raise ValueError(f"Session record has unexpected role {role!r}")
        if not isinstance(login_time, str):
            raise ValueError("Session record has no loginTime")
        return cls(username=username, issued_at=_parse_timestamp(login_time), role=role)

    def is_expired(self, now: datetime) -> bool:
        return now - self.issued_at >= ADMIN_SESSION_TTL


@dataclass(frozen=True)
class AdminCredentials:
    """The one admin credential pair; the password is only kept as a hash."""

    username: str
    password_hash: str

    def verify(self, username: str, password: str) -> bool:
        if not username or not password or not self.password_hash:
            return False
        user_ok = hmac.compare_digest(username.encode("utf-8"), self.username.encode("utf-8"))
        # always run the hash check so a wrong username costs the same as a wrong password
        password_ok = check_password_hash(self.password_hash, password)
        return user_ok and password_ok


class AdminSessionManager:
    """
    Admin login state, rehydrated from the session store on every read.

    Storage failures never reach the caller: they are logged and the admin is
    treated as logged out.
    """

    def __init__(
        self,
        store: SessionStore,
        credentials: AdminCredentials,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.credentials = credentials
        self.clock = clock

    def authenticate(self, username: str, password: str) -> bool:
        if not self.credentials.verify(username, password):
            return False
        admin_session = AdminSession(username=self.credentials.username, issued_at=self.clock())
        try:
            self.store.set(admin_session.to_record())
        except Exception as e:
            logger.error("Could not persist admin session: %s", e)
            return False
        return True

    def get_session(self) -> AdminSession | None:
        try:
            record = self.store.get()
            if record is None:
                return None
            admin_session = AdminSession.from_record(record)
        except Exception as e:
            logger.warning("Unreadable admin session treated as logged out: %s", e)
            return None

        if admin_session.is_expired(self.clock()):
            logger.info("Admin session for %s expired", admin_session.username)
            self._remove_quietly()
            return None
        return admin_session

    def is_authenticated(self) -> bool:
        return self.get_session() is not None

    def logout(self) -> None:
        self._remove_quietly()

    def _remove_quietly(self) -> None:
        try:
            self.store.remove()
        except Exception as e:
            logger.error("Could not remove admin session: %s", e)


def init_admin_auth(app: Flask) -> AdminSessionManager:
    manager = AdminSessionManager(
        store=session_store_from_config(app.config),
        credentials=AdminCredentials(
            username=app.config["ADMIN_USERNAME"],
            password_hash=app.config["ADMIN_PASSWORD_HASH"],
        ),
    )
    app.extensions["admin_sessions"] = manager
    return manager


def admin_sessions() -> AdminSessionManager:
    return current_app.extensions["admin_sessions"]


def load_admin_session() -> None:
    """Loads g.admin_session for the current request (None when logged out)."""
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.admin_session = None
        return
    g.admin_session = admin_sessions().get_session()


def admin_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Redirects to the admin login (no flash) when there is no valid admin session."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if getattr(g, "admin_session", None) is None:
            nxt = request.full_path or request.path
            # Avoid trailing '?' from full_path when there is no query string.
            if nxt.endswith("?"):
                nxt = nxt[:-1]
            return redirect(url_for("admin.login_get", next=nxt))
        return fn(*args, **kwargs)

    return wrapped
