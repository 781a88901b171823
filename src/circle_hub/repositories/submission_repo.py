"""Data access helpers for working with community submissions."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from circle_hub.models.submission import CommunitySubmission

__all__ = ["SubmissionRepository"]


class SubmissionRepository:
    """Thin wrapper around database access for submission rows."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, submission_id: int) -> CommunitySubmission | None:
        """Return a submission by identifier."""
        return self.session.get(CommunitySubmission, submission_id)

    def list_all(self, limit: int | None = None) -> list[CommunitySubmission]:
        """Return submissions sorted newest first."""
        stmt = select(CommunitySubmission).order_by(
            CommunitySubmission.created_at.desc(), CommunitySubmission.id.desc()
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def list_by_status(self, status: str, limit: int | None = None) -> list[CommunitySubmission]:
        """Return submissions with ``status`` sorted newest first."""
        stmt = (
            select(CommunitySubmission)
            .where(CommunitySubmission.status == status)
            .order_by(CommunitySubmission.created_at.desc(), CommunitySubmission.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def create(self, fields: dict[str, Any]) -> CommunitySubmission:
        """Insert a new submission and return the persisted ORM instance."""
        submission = CommunitySubmission(**fields)
        self.session.add(submission)
        self.session.flush()
        return submission

    def update_status(
        self,
        submission_id: int,
        *,
        status: str,
        reviewed_at: datetime,
        notes: str | None = None,
    ) -> CommunitySubmission | None:
        """Apply a review decision; return None when the row is gone."""
        submission = self.get_by_id(submission_id)
        if submission is None:
            return None
        submission.status = status
        submission.reviewed_at = reviewed_at
        if notes:
            submission.review_notes = notes
        self.session.flush()
        return submission

    def delete(self, submission_id: int) -> bool:
        """Delete a submission; return False when it did not exist."""
        submission = self.get_by_id(submission_id)
        if submission is None:
            return False
        self.session.delete(submission)
        self.session.flush()
        return True
