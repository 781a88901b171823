# src/circle_hub/api/v1/endpoints/diagnostics.py
"""Admin diagnostics for approvals that have not reached the submission store."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Response, status

from circle_hub.schemas.diagnostics import ApprovalDiagnostics, LedgerEntryResponse

from ..dependencies import AdminDep, ListingDep, OrchestratorDep

router = APIRouter(prefix="/diagnostics", tags=["diagnostics"])


@router.get("/approvals", response_model=ApprovalDiagnostics)
async def approval_diagnostics(
    _admin: AdminDep,
    orchestrator: OrchestratorDep,
    listing: ListingDep,
) -> ApprovalDiagnostics:
    entries = orchestrator.ledger.entries()
    session_entries = await asyncio.to_thread(orchestrator.cache.load_tier, "session")
    persistent_entries = await asyncio.to_thread(orchestrator.cache.load_tier, "persistent")
    snapshot = listing.snapshot
    return ApprovalDiagnostics(
        entries=[LedgerEntryResponse.model_validate(e) for e in entries],
        local_only_count=len(orchestrator.ledger.local_only()),
        session_cache_count=len(session_entries),
        persistent_cache_count=len(persistent_entries),
        broadcast_store_count=len(orchestrator.approved_store),
        listing_state=snapshot.state.value,
        listing_local_only_ids=sorted(snapshot.local_only_ids),
    )


@router.post("/approvals/retry", response_model=list[LedgerEntryResponse])
async def retry_approvals(
    _admin: AdminDep,
    orchestrator: OrchestratorDep,
) -> list[LedgerEntryResponse]:
    """Re-send review decisions the submission store has not recorded."""
    results = await orchestrator.retry_unconfirmed()
    return [LedgerEntryResponse.model_validate(e) for e in results]


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cache(_admin: AdminDep, orchestrator: OrchestratorDep) -> Response:
    """Empty the durable cache and the broadcast store."""
    await asyncio.to_thread(orchestrator.cache.clear)
    orchestrator.approved_store.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
