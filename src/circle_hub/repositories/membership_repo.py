"""Data access helpers for paid community memberships."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from circle_hub.models.community import CommunityMembership

__all__ = [
    "get_membership",
    "get_membership_by_order",
    "upsert_pending_membership",
]


def get_membership(db: Session, user_id: str, community_id: str) -> CommunityMembership | None:
    """Return the membership row for a user and community."""
    stmt = select(CommunityMembership).where(
        CommunityMembership.user_id == user_id,
        CommunityMembership.community_id == community_id,
    )
    return db.execute(stmt).scalars().first()


def get_membership_by_order(db: Session, order_id: str) -> CommunityMembership | None:
    """Return the membership row created for a gateway order."""
    stmt = select(CommunityMembership).where(CommunityMembership.order_id == order_id)
    return db.execute(stmt).scalars().first()


def upsert_pending_membership(
    db: Session,
    *,
    user_id: str,
    community_id: str,
    order_id: str,
    amount: int,
    currency: str,
) -> CommunityMembership:
    """Attach a new order to the user's membership row, creating it if needed."""
    membership = get_membership(db, user_id, community_id)
    if membership is None:
        membership = CommunityMembership(user_id=user_id, community_id=community_id)
        db.add(membership)
    membership.order_id = order_id
    membership.amount = amount
    membership.currency = currency
    db.commit()
    db.refresh(membership)
    return membership
