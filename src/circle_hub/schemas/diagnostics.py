"""Schemas for the approval diagnostics surface."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from circle_hub.schemas.submission import SubmissionStatus
from circle_hub.services.ledger import RemoteConfirmation


class LedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    submission_id: str
    status: SubmissionStatus
    confirmation: RemoteConfirmation
    reviewed_at: datetime
    notes: str | None = None
    remote_error: str | None = None


class ApprovalDiagnostics(BaseModel):
    """Where approved communities currently live and which are unconfirmed."""

    entries: list[LedgerEntryResponse]
    local_only_count: int
    session_cache_count: int
    persistent_cache_count: int
    broadcast_store_count: int
    listing_state: str
    listing_local_only_ids: list[str]
