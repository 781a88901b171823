"""Admin-side view of all submissions.

The board keeps the last successful read of the remote store and overlays
review decisions made in this process, so a decision shows up immediately
even when the remote write did not go through.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from threading import Lock

from circle_hub.schemas.submission import Submission, SubmissionStatus
from circle_hub.services.errors import RemoteStoreError
from circle_hub.services.remote_store import SubmissionStore

logger = logging.getLogger(__name__)


class SubmissionBoard:
    """Newest-first submission list with local review overlays."""

    def __init__(self, store: SubmissionStore, timeout_seconds: float = 10.0) -> None:
        self._store = store
        self._timeout_seconds = timeout_seconds
        self._submissions: list[Submission] = []
        self._overrides: dict[str, Submission] = {}
        self._lock = Lock()

    async def fetch(self) -> list[Submission]:
        """Re-read the remote store; keep the previous list on failure."""
        try:
            rows = await asyncio.wait_for(self._store.list_all(), self._timeout_seconds)
        except (RemoteStoreError, TimeoutError, OSError) as exc:
            logger.warning("Submission board refresh failed, keeping last list: %s", exc)
            return self.submissions()
        with self._lock:
            self._submissions = rows
            # Drop overlays the remote store now agrees with.
            for row in rows:
                override = self._overrides.get(row.id)
                if override is not None and override.status is row.status:
                    del self._overrides[row.id]
        return self.submissions()

    def submissions(self, status: SubmissionStatus | None = None) -> list[Submission]:
        with self._lock:
            merged = [self._overrides.get(s.id, s) for s in self._submissions]
        if status is not None:
            merged = [s for s in merged if s.status is status]
        return merged

    def add(self, submission: Submission) -> None:
        with self._lock:
            self._submissions = [
                submission, *(s for s in self._submissions if s.id != submission.id)
            ]

    def remove(self, submission_id: str) -> None:
        with self._lock:
            self._submissions = [s for s in self._submissions if s.id != submission_id]
            self._overrides.pop(submission_id, None)

    def apply_review(
        self,
        submission: Submission,
        status: SubmissionStatus,
        reviewed_at: datetime,
        notes: str | None = None,
    ) -> Submission:
        """Record a decision locally regardless of the remote outcome."""
        reviewed = submission.model_copy(
            update={"status": status, "reviewed_at": reviewed_at, "review_notes": notes}
        )
        with self._lock:
            self._overrides[submission.id] = reviewed
            if all(s.id != submission.id for s in self._submissions):
                self._submissions = [reviewed, *self._submissions]
        return reviewed
