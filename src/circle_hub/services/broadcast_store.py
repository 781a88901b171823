"""In-memory store of approved communities with change notification."""

from __future__ import annotations

import logging
from collections.abc import Callable
from threading import Lock

from circle_hub.core.settings import settings
from circle_hub.schemas.community import ApprovedCommunity

logger = logging.getLogger(__name__)

Subscriber = Callable[[list[ApprovedCommunity]], None]


class ApprovedCommunitiesStore:
    """Most-recent-first list of approved communities.

    Subscribers are called synchronously with a copy of the list after every
    change. A subscriber that raises is logged and skipped.
    """

    def __init__(self, max_entries: int = 100) -> None:
        self.max_entries = max_entries
        self._communities: list[ApprovedCommunity] = []
        self._subscribers: list[Subscriber] = []
        self._lock = Lock()

    def add(self, community: ApprovedCommunity) -> None:
        """Insert or replace ``community`` at the front of the list."""
        with self._lock:
            remaining = [c for c in self._communities if c.id != community.id]
            self._communities = [community, *remaining][: self.max_entries]
        logger.debug(
            "Broadcast store holds %d communities after adding %s",
            len(self._communities), community.id,
        )
        self._notify()

    def get_all(self) -> list[ApprovedCommunity]:
        """Return a snapshot of the current list."""
        with self._lock:
            return list(self._communities)

    def get(self, community_id: str) -> ApprovedCommunity | None:
        with self._lock:
            return next((c for c in self._communities if c.id == community_id), None)

    def remove(self, community_id: str) -> bool:
        """Drop ``community_id``; subscribers are notified only if it was present."""
        with self._lock:
            remaining = [c for c in self._communities if c.id != community_id]
            removed = len(remaining) != len(self._communities)
            self._communities = remaining
        if removed:
            self._notify()
        return removed

    def clear(self) -> None:
        with self._lock:
            self._communities = []
        self._notify()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; the returned function unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
            snapshot = list(self._communities)
        for callback in subscribers:
            try:
                callback(list(snapshot))
            except Exception:
                logger.exception("Approved-community subscriber %r failed", callback)

    def __len__(self) -> int:
        with self._lock:
            return len(self._communities)


class _ApprovedStoreSingleton:
    """Singleton wrapper for ApprovedCommunitiesStore."""

    _instance: ApprovedCommunitiesStore | None = None

    @classmethod
    def get_instance(cls) -> ApprovedCommunitiesStore:
        if cls._instance is None:
            cls._instance = ApprovedCommunitiesStore(settings.broadcast_store_max_entries)
        return cls._instance


def get_approved_store() -> ApprovedCommunitiesStore:
    """Return the process-wide approved-community store."""
    return _ApprovedStoreSingleton.get_instance()
