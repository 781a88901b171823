# src/circle_hub/api/v1/endpoints/communities.py
"""Discovery listing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from circle_hub.schemas.community import ApprovedCommunity, CapacityResponse, ListingResponse
from circle_hub.services.listing import ListingRefresher, ListingSnapshot
from circle_hub.services.platform_capacity import get_capacity_info

from ..dependencies import AdminDep, ListingDep

router = APIRouter(prefix="/communities", tags=["communities"])


async def current_snapshot(listing: ListingRefresher) -> ListingSnapshot:
    """Return the mounted refresher's view, fetching on demand otherwise."""
    snapshot = listing.snapshot
    if snapshot.refreshed_at is None and listing.in_flight:
        return await listing.wait_for_refresh()
    if not listing.mounted or snapshot.refreshed_at is None:
        snapshot = await listing.refresh()
    return snapshot


def _matches(community: ApprovedCommunity, q: str | None, platform: str | None,
             category: str | None) -> bool:
    if platform and community.platform.lower() != platform.lower():
        return False
    if category and community.category.lower() != category.lower():
        return False
    if q:
        needle = q.lower()
        haystack = (community.name, community.description, community.category)
        if not any(needle in field.lower() for field in haystack):
            return False
    return True


def _to_response(snapshot: ListingSnapshot, communities: list[ApprovedCommunity]) -> ListingResponse:
    return ListingResponse(
        state=snapshot.state.value,
        refreshed_at=snapshot.refreshed_at,
        local_only_ids=sorted(snapshot.local_only_ids),
        communities=communities,
    )


@router.get("/", response_model=ListingResponse)
async def list_communities(
    listing: ListingDep,
    q: str | None = None,
    platform: str | None = None,
    category: str | None = None,
) -> ListingResponse:
    """List every community the discovery page shows."""
    snapshot = await current_snapshot(listing)
    communities = [c for c in snapshot.communities if _matches(c, q, platform, category)]
    return _to_response(snapshot, communities)


@router.post("/refresh", response_model=ListingResponse)
async def refresh_communities(_admin: AdminDep, listing: ListingDep) -> ListingResponse:
    """Re-read the submission store now."""
    snapshot = await listing.refresh()
    return _to_response(snapshot, list(snapshot.communities))


@router.get("/{community_id}", response_model=ApprovedCommunity)
async def get_community(community_id: str, listing: ListingDep) -> ApprovedCommunity:
    snapshot = await current_snapshot(listing)
    community = snapshot.get(community_id)
    if community is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Community not found",
        )
    return community


@router.get("/{community_id}/capacity", response_model=CapacityResponse)
async def get_community_capacity(community_id: str, listing: ListingDep) -> CapacityResponse:
    """Report how close a community is to its platform's member limit."""
    community = await get_community(community_id, listing)
    info = get_capacity_info(community.platform, community.members)
    return CapacityResponse.model_validate(info)
