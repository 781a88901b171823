"""Audit trail of review decisions and whether the remote store took them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from threading import Lock

from circle_hub.db.time import utcnow
from circle_hub.schemas.submission import SubmissionStatus


class RemoteConfirmation(str, Enum):
    CONFIRMED = "confirmed"
    LOCAL_ONLY = "local_only"


@dataclass(frozen=True)
class LedgerEntry:
    """Latest review decision for one submission."""

    submission_id: str
    status: SubmissionStatus
    confirmation: RemoteConfirmation
    reviewed_at: datetime
    notes: str | None = None
    remote_error: str | None = None


class ApprovalLedger:
    """Tracks review decisions that have or have not reached the remote store."""

    def __init__(self) -> None:
        self._entries: dict[str, LedgerEntry] = {}
        self._lock = Lock()

    def record(
        self,
        submission_id: str,
        status: SubmissionStatus,
        *,
        confirmed: bool,
        reviewed_at: datetime | None = None,
        notes: str | None = None,
        remote_error: str | None = None,
    ) -> LedgerEntry:
        entry = LedgerEntry(
            submission_id=submission_id,
            status=status,
            confirmation=(
                RemoteConfirmation.CONFIRMED if confirmed else RemoteConfirmation.LOCAL_ONLY
            ),
            reviewed_at=reviewed_at or utcnow(),
            notes=notes,
            remote_error=None if confirmed else remote_error,
        )
        with self._lock:
            self._entries[submission_id] = entry
        return entry

    def get(self, submission_id: str) -> LedgerEntry | None:
        with self._lock:
            return self._entries.get(submission_id)

    def entries(self) -> list[LedgerEntry]:
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.reviewed_at, reverse=True)

    def local_only(self) -> list[LedgerEntry]:
        return [e for e in self.entries() if e.confirmation is RemoteConfirmation.LOCAL_ONLY]

    def forget(self, submission_id: str) -> None:
        with self._lock:
            self._entries.pop(submission_id, None)
