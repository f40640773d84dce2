"""
Live listing feed.

Subscribers get the full current listing snapshot when they subscribe and
again after every committed change. ``subscribe`` returns the function that
ends the subscription.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from flask import Flask, current_app

from app.msa.db import session_scope

logger = logging.getLogger(__name__)

Snapshot = list[dict[str, Any]]
Listener = Callable[[Snapshot], None]


class ListingFeed:
    def __init__(self, loader: Callable[[], Snapshot]) -> None:
        self._loader = loader
        self._listeners: dict[int, Listener] = {}
        self._next_id = 0
        self._lock = threading.Lock()

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        with self._lock:
            sub_id = self._next_id
            self._next_id += 1
            self._listeners[sub_id] = callback

        snapshot = self._load()
        if snapshot is not None:
            self._deliver(sub_id, callback, snapshot)

        def unsubscribe() -> None:
            with self._lock:
                removed = self._listeners.pop(sub_id, None)
            if removed is None:
                logger.debug("Listing subscription %s already released", sub_id)

        return unsubscribe

    def publish(self) -> None:
        """Reload the snapshot and push it to every current subscriber."""
        with self._lock:
            listeners = list(self._listeners.items())
        if not listeners:
            return
        snapshot = self._load()
        if snapshot is None:
            return
        for sub_id, callback in listeners:
            self._deliver(sub_id, callback, snapshot)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _load(self) -> Snapshot | None:
        try:
            return self._loader()
        except Exception:
            logger.exception("Listing snapshot load failed; subscribers keep their last snapshot")
            return None

    def _deliver(self, sub_id: int, callback: Listener, snapshot: Snapshot) -> None:
        try:
            # each subscriber gets its own list so one cannot mutate another's view
            callback([dict(item) for item in snapshot])
        except Exception:
            logger.exception("Listing subscriber %s failed", sub_id)


def init_listing_feed(app: Flask) -> ListingFeed:
    from app.msa.modules.listings.service import list_properties, property_to_dict

    def _load_snapshot() -> Snapshot:
        with session_scope(app) as s:
            return [property_to_dict(p) for p in list_properties(s)]

    feed = ListingFeed(_load_snapshot)
    app.extensions["listing_feed"] = feed
    return feed


def listing_feed() -> ListingFeed:
    return current_app.extensions["listing_feed"]
