"""Discovery listing refresher.

This module provides the ListingRefresher class that keeps a merged view of
every community the discovery page should show. The view combines, in order:

- approved rows from the remote submission store (authoritative),
- approved communities known only locally (durable cache and broadcast store),
- the static seed communities.

The refresher polls the remote store on an interval and also wakes early
when a refresh notification is published.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from threading import Lock

from circle_hub.core.settings import settings
from circle_hub.data.seed import seed_communities
from circle_hub.db.time import utcnow
from circle_hub.schemas.community import ApprovedCommunity
from circle_hub.schemas.submission import SubmissionStatus
from circle_hub.services.broadcast_store import ApprovedCommunitiesStore, get_approved_store
from circle_hub.services.errors import RemoteStoreError
from circle_hub.services.local_cache import LocalDurableCache, dedupe_by_id, get_local_cache
from circle_hub.services.notifications import (
    Notification,
    NotificationBus,
    NotificationKind,
    get_notification_bus,
)
from circle_hub.services.projection import to_approved_community
from circle_hub.services.remote_store import SubmissionStore, get_submission_store

# Configure logger for this module
logger = logging.getLogger(__name__)

REMOVAL_KINDS = frozenset({NotificationKind.COMMUNITY_REJECTED, NotificationKind.COMMUNITY_DELETED})


class ListingState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    MERGED = "merged"
    ERROR = "error"


@dataclass(frozen=True)
class ListingSnapshot:
    """The merged listing as of ``refreshed_at``."""

    state: ListingState = ListingState.IDLE
    communities: tuple[ApprovedCommunity, ...] = ()
    local_only_ids: frozenset[str] = field(default_factory=frozenset)
    remote_ids: frozenset[str] = field(default_factory=frozenset)
    refreshed_at: datetime | None = None
    error: str | None = None

    def get(self, community_id: str) -> ApprovedCommunity | None:
        return next((c for c in self.communities if c.id == community_id), None)


def merge_listing(
    remote: Sequence[ApprovedCommunity],
    local: Sequence[ApprovedCommunity],
    seed: Sequence[ApprovedCommunity] = (),
) -> tuple[list[ApprovedCommunity], list[str]]:
    """Merge the three listing sources.

    Remote entries come first and win on content. Local entries are kept
    only when the remote store does not know their id. Seed entries fill in
    last. Returns the merged list and the ids that are visible only locally.
    """
    merged = dedupe_by_id(remote)
    remote_ids = {c.id for c in merged}
    local_only = [c for c in dedupe_by_id(local) if c.id not in remote_ids]
    merged.extend(local_only)

    known = {c.id for c in merged}
    merged.extend(c for c in dedupe_by_id(seed) if c.id not in known)
    return merged, [c.id for c in local_only]


class ListingRefresher:
    """Keeps the merged discovery listing fresh while mounted.

    ``mount`` starts a background loop that refreshes immediately and then
    every ``interval_seconds`` or as soon as a refresh notification arrives.
    ``unmount`` stops the loop and drops the notification subscription.
    """

    def __init__(
        self,
        store: SubmissionStore,
        cache: LocalDurableCache,
        approved_store: ApprovedCommunitiesStore,
        bus: NotificationBus,
        *,
        interval_seconds: float = 5.0,
        timeout_seconds: float = 10.0,
        seed: Sequence[ApprovedCommunity] | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._approved_store = approved_store
        self._bus = bus
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self._seed = list(seed) if seed is not None else seed_communities()

        self._snapshot = ListingSnapshot()
        self._has_merged = False
        self._in_flight = False
        self._pending: asyncio.Future[ListingSnapshot] | None = None
        self._suppressed: set[str] = set()
        self._lock = Lock()

        self._task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wake: asyncio.Event | None = None
        self._stopping: asyncio.Event | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def snapshot(self) -> ListingSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def state(self) -> ListingState:
        return self.snapshot.state

    @property
    def mounted(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def refresh(self) -> ListingSnapshot:
        """Fetch approved rows and recompute the merged listing.

        A call made while another refresh is running returns the current
        snapshot without fetching.
        """
        if self._in_flight:
            logger.debug("Listing refresh already in flight; skipping")
            return self.snapshot

        self._in_flight = True
        self._pending = asyncio.get_running_loop().create_future()
        self._set_state(ListingState.FETCHING)
        try:
            rows = await asyncio.wait_for(
                self._store.list_by_status(SubmissionStatus.APPROVED), self.timeout_seconds
            )
            remote = [
                to_approved_community(row)
                for row in rows
                if row.status is SubmissionStatus.APPROVED
            ]
            local = await self._load_local()
            communities, local_only = merge_listing(remote, local, self._seed)
            snapshot = ListingSnapshot(
                state=ListingState.MERGED,
                communities=tuple(communities),
                local_only_ids=frozenset(local_only),
                remote_ids=frozenset(c.id for c in remote),
                refreshed_at=utcnow(),
            )
            with self._lock:
                self._snapshot = snapshot
                self._has_merged = True
            logger.debug(
                "Listing merged: %d remote, %d local-only, %d total",
                len(remote), len(local_only), len(communities),
            )
            return snapshot
        except (RemoteStoreError, TimeoutError, OSError) as exc:
            logger.warning("Listing refresh failed: %s", exc or type(exc).__name__)
            return await self._fall_back(str(exc) or type(exc).__name__)
        finally:
            self._in_flight = False
            pending, self._pending = self._pending, None
            if pending is not None and not pending.done():
                pending.set_result(self.snapshot)

    async def wait_for_refresh(self) -> ListingSnapshot:
        """Wait for the refresh in flight, if any, and return the resulting snapshot."""
        pending = self._pending
        if pending is None:
            return self.snapshot
        return await asyncio.shield(pending)

    async def _load_local(self) -> list[ApprovedCommunity]:
        cached = await asyncio.to_thread(self._cache.load)
        local = [*cached, *self._approved_store.get_all()]
        with self._lock:
            suppressed = set(self._suppressed)
        return [c for c in local if c.id not in suppressed]

    async def _fall_back(self, error: str) -> ListingSnapshot:
        with self._lock:
            if self._has_merged:
                # Keep showing the last good merge.
                self._snapshot = replace(self._snapshot, state=ListingState.ERROR, error=error)
                return self._snapshot

        local = await self._load_local()
        communities, local_only = merge_listing([], local, self._seed)
        snapshot = ListingSnapshot(
            state=ListingState.ERROR,
            communities=tuple(communities),
            local_only_ids=frozenset(local_only),
            refreshed_at=utcnow(),
            error=error,
        )
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def _set_state(self, state: ListingState) -> None:
        with self._lock:
            self._snapshot = replace(self._snapshot, state=state)

    def upsert(self, record: ApprovedCommunity) -> None:
        """Show ``record`` immediately, ahead of the next fetch."""
        with self._lock:
            self._suppressed.discard(record.id)
            snapshot = self._snapshot
            if record.id in snapshot.remote_ids:
                return
            others = tuple(c for c in snapshot.communities if c.id != record.id)
            self._snapshot = replace(
                snapshot,
                communities=(record, *others),
                local_only_ids=snapshot.local_only_ids | {record.id},
            )

    def hide(self, community_id: str) -> None:
        """Drop ``community_id`` from the view and ignore local copies of it."""
        with self._lock:
            self._suppressed.add(community_id)
            snapshot = self._snapshot
            self._snapshot = replace(
                snapshot,
                communities=tuple(c for c in snapshot.communities if c.id != community_id),
                local_only_ids=snapshot.local_only_ids - {community_id},
                remote_ids=snapshot.remote_ids - {community_id},
            )

    def _on_notification(self, notification: Notification) -> None:
        if notification.carries_record and notification.record is not None:
            self.upsert(notification.record)
        if notification.kind in REMOVAL_KINDS and notification.community_id:
            self.hide(notification.community_id)
        if notification.requests_refetch:
            self.request_refresh()

    def request_refresh(self) -> None:
        """Wake the polling loop early. No-op when not mounted."""
        if not self.mounted or self._loop is None or self._wake is None:
            return
        self._loop.call_soon_threadsafe(self._wake.set)

    async def mount(self) -> None:
        """Start the background refresh loop."""
        if self.mounted:
            return

        self._loop = asyncio.get_running_loop()
        self._wake = asyncio.Event()
        self._stopping = asyncio.Event()
        self._unsubscribe = self._bus.subscribe(self._on_notification)
        self._task = asyncio.create_task(self._run())
        logger.info("Listing refresher mounted (interval %.1fs)", self.interval_seconds)

    async def unmount(self) -> None:
        """Stop the refresh loop and drop the notification subscription."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        if self._task is None:
            return

        if self._stopping is not None:
            self._stopping.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Listing refresher unmounted")

    async def _run(self) -> None:
        assert self._wake is not None and self._stopping is not None
        interval = max(0.1, float(self.interval_seconds))

        while not self._stopping.is_set():
            try:
                await self.refresh()
            except (ValueError, TypeError, KeyError) as e:
                logger.error("Listing refresher hit a data error: %s", e, exc_info=True)

            try:
                await asyncio.wait_for(self._wake.wait(), interval)
            except TimeoutError:
                pass
            self._wake.clear()


class _ListingRefresherSingleton:
    """Singleton wrapper for ListingRefresher."""

    _instance: ListingRefresher | None = None

    @classmethod
    def get_instance(cls) -> ListingRefresher:
        if cls._instance is None:
            cls._instance = ListingRefresher(
                get_submission_store(),
                get_local_cache(),
                get_approved_store(),
                get_notification_bus(),
                interval_seconds=settings.listing_refresh_interval_seconds,
                timeout_seconds=settings.remote_timeout_seconds,
            )
        return cls._instance


def get_listing_refresher() -> ListingRefresher:
    """Return the process-wide listing refresher."""
    return _ListingRefresherSingleton.get_instance()
