"""In-process notification channel for submission lifecycle changes.

Notifications fall into two groups. Record-carrying kinds hand listeners the
exact listing entry to render now; the others only say that something
changed and the listener should re-fetch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any

from circle_hub.db.time import epoch_millis
from circle_hub.schemas.community import ApprovedCommunity

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    """Names mirror the event names the web client listens for."""

    COMMUNITY_APPROVED = "communityApproved"
    FORCE_REFRESH = "FORCE_COMMUNITIES_REFRESH"
    ADD_APPROVED = "addApprovedCommunity"
    REFRESH_REQUESTED = "refreshCommunities"
    COMMUNITY_REJECTED = "communityRejected"
    COMMUNITY_DELETED = "communityDeleted"
    NEW_SUBMISSION = "newSubmission"


RECORD_KINDS = frozenset({NotificationKind.FORCE_REFRESH, NotificationKind.ADD_APPROVED})
REFETCH_KINDS = frozenset(
    {
        NotificationKind.COMMUNITY_APPROVED,
        NotificationKind.FORCE_REFRESH,
        NotificationKind.REFRESH_REQUESTED,
        NotificationKind.COMMUNITY_REJECTED,
        NotificationKind.COMMUNITY_DELETED,
    }
)


@dataclass(frozen=True)
class Notification:
    """A single lifecycle notification."""

    kind: NotificationKind
    community_id: str | None = None
    record: ApprovedCommunity | None = None
    action: str | None = None
    timestamp: float = field(default_factory=epoch_millis)

    @property
    def carries_record(self) -> bool:
        return self.kind in RECORD_KINDS and self.record is not None

    @property
    def requests_refetch(self) -> bool:
        return self.kind in REFETCH_KINDS

    def detail(self) -> dict[str, Any]:
        """Return the payload in the shape the web client expects."""
        if self.kind is NotificationKind.ADD_APPROVED and self.record is not None:
            return self.record.model_dump(mode="json")
        if self.kind is NotificationKind.FORCE_REFRESH:
            return {
                "approvedCommunity": self.record.model_dump(mode="json") if self.record else None,
                "timestamp": self.timestamp,
                "action": self.action,
            }
        if self.kind is NotificationKind.REFRESH_REQUESTED:
            return {"timestamp": self.timestamp, "action": self.action}
        return {"id": self.community_id}


Listener = Callable[[Notification], None]


class NotificationBus:
    """Synchronous publish/subscribe hub."""

    def __init__(self) -> None:
        self._listeners: list[tuple[Listener, frozenset[NotificationKind] | None]] = []
        self._lock = Lock()

    def subscribe(
        self,
        listener: Listener,
        kinds: Iterable[NotificationKind] | None = None,
    ) -> Callable[[], None]:
        """Register ``listener`` for ``kinds`` (all kinds when None)."""
        entry = (listener, frozenset(kinds) if kinds is not None else None)
        with self._lock:
            self._listeners.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        return unsubscribe

    def publish(self, notification: Notification) -> None:
        """Deliver ``notification`` to every matching listener."""
        with self._lock:
            listeners = list(self._listeners)
        logger.debug("Publishing %s for %s", notification.kind.value, notification.community_id)
        for listener, kinds in listeners:
            if kinds is not None and notification.kind not in kinds:
                continue
            try:
                listener(notification)
            except Exception:
                logger.exception(
                    "Listener %r failed handling %s", listener, notification.kind.value
                )


class _NotificationBusSingleton:
    """Singleton wrapper for NotificationBus."""

    _instance: NotificationBus | None = None

    @classmethod
    def get_instance(cls) -> NotificationBus:
        if cls._instance is None:
            cls._instance = NotificationBus()
        return cls._instance


def get_notification_bus() -> NotificationBus:
    """Return the process-wide notification bus."""
    return _NotificationBusSingleton.get_instance()
