from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from flask import Flask, current_app, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def engine_options(database_url: str) -> dict[str, Any]:
    """Pool settings per backend: a small bounded pool for Postgres, thread-shareable connections for SQLite."""
    options: dict[str, Any] = {"pool_pre_ping": True}
    if database_url.startswith("postgres"):
        options.update(pool_size=5, max_overflow=10, pool_timeout=30, pool_recycle=1800)
    elif database_url.startswith("sqlite"):
        # gunicorn threads and listing-feed loaders share the pool
        options["connect_args"] = {"check_same_thread": False}
    return options


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    # Route handlers keep using objects after commit (flash messages, feed publish).
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(app: Flask) -> Engine:
    db_url = app.config["DATABASE_URL"]
    engine = create_engine(db_url, **engine_options(db_url))

    if app.config.get("ENV") == "development":

        @event.listens_for(engine, "checkout")
        def _log_checkout(dbapi_connection, connection_record, connection_proxy):  # type: ignore[no-redef]
            logger.debug("DB connection checkout from pool")

    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = build_sessionmaker(engine)
    return engine


def db_session() -> Session:
    """Session bound to the current request; closed by teardown_db_session."""
    s: Session | None = g.get("db_session")
    if s is None:
        s = current_app.extensions["sqlalchemy_sessionmaker"]()
        g.db_session = s
    return s


def teardown_db_session(exc: BaseException | None) -> None:
    s: Session | None = g.pop("db_session", None)
    if s is None:
        return
    if exc is not None:
        # work left uncommitted by a failing view is discarded
        s.rollback()
    s.close()


@contextmanager
def session_scope(app: Flask) -> Iterator[Session]:
    """Session outside a request (scripts, feed loader, tests): commit on success, rollback on error."""
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
