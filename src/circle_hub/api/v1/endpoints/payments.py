# src/circle_hub/api/v1/endpoints/payments.py
"""Paid community checkout endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from circle_hub.models.community import MEMBERSHIP_STATUS_ACTIVE
from circle_hub.schemas.payment import (
    MembershipResponse,
    OrderCreate,
    OrderResponse,
    PaymentVerify,
    VerifyResponse,
)
from circle_hub.services.errors import (
    PaymentError,
    PaymentGatewayError,
    PaymentVerificationError,
    RemoteStoreError,
)

from ..dependencies import ListingDep, OrchestratorDep, PaymentsDep, SessionDep
from .communities import current_snapshot

# Configure logger for this module
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

MEMBERSHIP_STATUS_INACTIVE = "inactive"


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    payments: PaymentsDep,
    listing: ListingDep,
    db: SessionDep,
) -> OrderResponse:
    """Open a checkout order for a paid community."""
    snapshot = await current_snapshot(listing)
    community = snapshot.get(payload.community_id)
    if community is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Community not found",
        )

    try:
        _membership, order = await payments.create_order(
            db, user_id=payload.user_id, community=community
        )
    except PaymentGatewayError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except PaymentError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return OrderResponse(
        order_id=order.order_id,
        amount=order.amount,
        currency=order.currency,
        key_id=payments.gateway.key_id,
        community_id=community.id,
    )


@router.post("/verify", response_model=VerifyResponse)
async def verify_payment(
    payload: PaymentVerify,
    payments: PaymentsDep,
    orchestrator: OrchestratorDep,
    db: SessionDep,
) -> VerifyResponse:
    """Check a completed checkout and release the join link."""
    try:
        membership = payments.verify_payment(
            db,
            order_id=payload.order_id,
            payment_id=payload.payment_id,
            signature=payload.signature,
        )
    except PaymentVerificationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    join_link: str | None = None
    try:
        submission = await orchestrator.store.get(membership.community_id)
    except RemoteStoreError as exc:
        logger.warning("Could not load join link for %s: %s", membership.community_id, exc)
    else:
        join_link = submission.join_link if submission else None

    return VerifyResponse(
        success=True,
        membership=MembershipResponse.model_validate(membership),
        join_link=join_link,
    )


@router.get("/memberships/{community_id}", response_model=MembershipResponse)
async def get_membership(
    community_id: str,
    user_id: str,
    payments: PaymentsDep,
    db: SessionDep,
) -> MembershipResponse:
    """Return whether ``user_id`` has paid access to ``community_id``."""
    membership = payments.membership_status(db, user_id=user_id, community_id=community_id)
    if membership is None:
        return MembershipResponse(
            user_id=user_id, community_id=community_id, status=MEMBERSHIP_STATUS_INACTIVE
        )
    if membership.status != MEMBERSHIP_STATUS_ACTIVE:
        return MembershipResponse(
            user_id=user_id,
            community_id=community_id,
            status=MEMBERSHIP_STATUS_INACTIVE,
            order_id=membership.order_id,
        )
    return MembershipResponse.model_validate(membership)
