"""Submission review orchestration.

This module provides the ApprovalOrchestrator class that applies an admin's
decision to a submission. The remote store is asked to record the decision,
but an approval is made visible locally (durable cache, broadcast store,
notifications) whether or not the remote write succeeds.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from circle_hub.core.settings import settings
from circle_hub.db.time import utcnow
from circle_hub.schemas.community import ApprovedCommunity
from circle_hub.schemas.submission import Submission, SubmissionCreate, SubmissionStatus
from circle_hub.services.broadcast_store import ApprovedCommunitiesStore, get_approved_store
from circle_hub.services.errors import RemoteStoreError, SubmissionNotFound
from circle_hub.services.ledger import ApprovalLedger, LedgerEntry
from circle_hub.services.listing import ListingRefresher, get_listing_refresher
from circle_hub.services.local_cache import LocalDurableCache, get_local_cache
from circle_hub.services.notifications import (
    Notification,
    NotificationBus,
    NotificationKind,
    get_notification_bus,
)
from circle_hub.services.projection import to_approved_community
from circle_hub.services.remote_store import SubmissionStore, get_submission_store
from circle_hub.services.submission_board import SubmissionBoard

# Configure logger for this module
logger = logging.getLogger(__name__)

REVIEW_STATUSES = frozenset({SubmissionStatus.APPROVED, SubmissionStatus.REJECTED})


@dataclass(frozen=True)
class ReviewOutcome:
    """Result of a review call."""

    submission: Submission
    community: ApprovedCommunity | None
    remote_confirmed: bool
    remote_error: str | None = None


class ApprovalOrchestrator:
    """Applies review decisions and fans approvals out to every local channel.

    Within one review the durable cache and the broadcast store are written
    before any notification is published.
    """

    def __init__(
        self,
        store: SubmissionStore,
        cache: LocalDurableCache,
        approved_store: ApprovedCommunitiesStore,
        bus: NotificationBus,
        *,
        board: SubmissionBoard | None = None,
        ledger: ApprovalLedger | None = None,
        listing: ListingRefresher | None = None,
        timeout_seconds: float = 10.0,
        reload_delay_seconds: float = 1.0,
    ) -> None:
        self.store = store
        self.cache = cache
        self.approved_store = approved_store
        self.bus = bus
        self.board = board or SubmissionBoard(store, timeout_seconds)
        self.ledger = ledger or ApprovalLedger()
        self.listing = listing
        self.timeout_seconds = timeout_seconds
        self.reload_delay_seconds = reload_delay_seconds

    async def _fetch(self, submission_id: str) -> Submission:
        try:
            submission = await asyncio.wait_for(
                self.store.get(submission_id), self.timeout_seconds
            )
        except TimeoutError as exc:
            raise RemoteStoreError(f"Timed out reading submission {submission_id}") from exc
        if submission is None:
            raise SubmissionNotFound(submission_id)
        return submission

    async def create_submission(self, payload: SubmissionCreate) -> Submission:
        """Store a new pending submission from the public form."""
        submission = await asyncio.wait_for(
            self.store.create(payload.to_row()), self.timeout_seconds
        )
        self.board.add(submission)
        logger.info("New submission %s (%s)", submission.id, submission.community_name)
        self.bus.publish(
            Notification(NotificationKind.NEW_SUBMISSION, community_id=submission.id)
        )
        return submission

    async def review(
        self,
        submission_id: str,
        status: SubmissionStatus | str,
        notes: str | None = None,
    ) -> ReviewOutcome:
        """Approve or reject ``submission_id``.

        Raises:
            SubmissionNotFound: If the remote store has no such row. Nothing
                is written and nothing is published in that case.
            ValueError: If ``status`` is not approved or rejected.
        """
        status = SubmissionStatus(status)
        if status not in REVIEW_STATUSES:
            raise ValueError(f"Cannot review a submission to {status.value}")

        submission = await self._fetch(submission_id)
        reviewed_at = utcnow()

        remote_error: str | None = None
        try:
            updated = await asyncio.wait_for(
                self.store.update_status(
                    submission.id, status=status, reviewed_at=reviewed_at, notes=notes
                ),
                self.timeout_seconds,
            )
            submission = updated
        except (RemoteStoreError, TimeoutError, OSError) as exc:
            remote_error = str(exc) or type(exc).__name__
            logger.warning(
                "Remote store did not record %s for submission %s: %s",
                status.value, submission_id, remote_error,
            )

        remote_confirmed = remote_error is None
        reviewed = self.board.apply_review(submission, status, reviewed_at, notes)
        self.ledger.record(
            reviewed.id,
            status,
            confirmed=remote_confirmed,
            reviewed_at=reviewed_at,
            notes=notes,
            remote_error=remote_error,
        )

        community: ApprovedCommunity | None = None
        if status is SubmissionStatus.APPROVED:
            community = to_approved_community(reviewed)
            await self._broadcast_approval(community)
        else:
            await self._withdraw(reviewed.id)
            self.bus.publish(
                Notification(NotificationKind.COMMUNITY_REJECTED, community_id=reviewed.id)
            )

        logger.info(
            "Submission %s %s (remote %s)",
            reviewed.id, status.value, "confirmed" if remote_confirmed else "not confirmed",
        )
        return ReviewOutcome(
            submission=reviewed,
            community=community,
            remote_confirmed=remote_confirmed,
            remote_error=remote_error,
        )

    async def _broadcast_approval(self, community: ApprovedCommunity) -> None:
        await asyncio.to_thread(self.cache.add, community)
        self.approved_store.add(community)

        self.bus.publish(
            Notification(NotificationKind.COMMUNITY_APPROVED, community_id=community.id)
        )
        self.bus.publish(
            Notification(
                NotificationKind.FORCE_REFRESH,
                community_id=community.id,
                record=community,
                action="approved",
            )
        )
        self.bus.publish(
            Notification(NotificationKind.ADD_APPROVED, community_id=community.id, record=community)
        )
        self.bus.publish(
            Notification(
                NotificationKind.REFRESH_REQUESTED, community_id=community.id, action="approved"
            )
        )

        if self.listing is not None and self.listing.mounted:
            loop = asyncio.get_running_loop()
            loop.call_later(self.reload_delay_seconds, self.listing.request_refresh)

    async def _withdraw(self, community_id: str) -> None:
        await asyncio.to_thread(self.cache.remove, community_id)
        self.approved_store.remove(community_id)

    async def delete(self, submission_id: str) -> None:
        """Permanently remove a submission.

        Raises:
            SubmissionNotFound: If nothing was deleted.
        """
        deleted = await asyncio.wait_for(self.store.delete(submission_id), self.timeout_seconds)
        if not deleted:
            raise SubmissionNotFound(submission_id)

        self.board.remove(submission_id)
        self.ledger.forget(submission_id)
        await self._withdraw(submission_id)
        logger.info("Deleted submission %s", submission_id)
        self.bus.publish(
            Notification(NotificationKind.COMMUNITY_DELETED, community_id=submission_id)
        )

    async def retry_unconfirmed(self) -> list[LedgerEntry]:
        """Re-send decisions the remote store has not recorded yet."""
        results: list[LedgerEntry] = []
        for entry in self.ledger.local_only():
            try:
                await asyncio.wait_for(
                    self.store.update_status(
                        entry.submission_id,
                        status=entry.status,
                        reviewed_at=entry.reviewed_at,
                        notes=entry.notes,
                    ),
                    self.timeout_seconds,
                )
            except (RemoteStoreError, TimeoutError, OSError) as exc:
                logger.warning(
                    "Retry of %s for submission %s failed: %s",
                    entry.status.value, entry.submission_id, exc,
                )
                results.append(
                    self.ledger.record(
                        entry.submission_id,
                        entry.status,
                        confirmed=False,
                        reviewed_at=entry.reviewed_at,
                        notes=entry.notes,
                        remote_error=str(exc) or type(exc).__name__,
                    )
                )
                continue
            results.append(
                self.ledger.record(
                    entry.submission_id,
                    entry.status,
                    confirmed=True,
                    reviewed_at=entry.reviewed_at,
                    notes=entry.notes,
                )
            )
        return results


class _ApprovalOrchestratorSingleton:
    """Singleton wrapper for ApprovalOrchestrator."""

    _instance: ApprovalOrchestrator | None = None

    @classmethod
    def get_instance(cls) -> ApprovalOrchestrator:
        if cls._instance is None:
            cls._instance = ApprovalOrchestrator(
                get_submission_store(),
                get_local_cache(),
                get_approved_store(),
                get_notification_bus(),
                listing=get_listing_refresher(),
                timeout_seconds=settings.remote_timeout_seconds,
                reload_delay_seconds=settings.listing_reload_delay_seconds,
            )
        return cls._instance


def get_approval_orchestrator() -> ApprovalOrchestrator:
    """Return the process-wide approval orchestrator."""
    return _ApprovalOrchestratorSingleton.get_instance()
