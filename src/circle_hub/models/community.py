"""SQLAlchemy model for paid community memberships."""
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from circle_hub.db.session import Base
from circle_hub.db.time import utcnow

MEMBERSHIP_STATUS_PENDING = "pending"
MEMBERSHIP_STATUS_ACTIVE = "active"


class CommunityMembership(Base):
    """Paid access record linking a user to a community listing."""

    __tablename__ = "community_memberships"
    __table_args__ = (UniqueConstraint("user_id", "community_id"),)

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"),
                                    primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    # Listing id as a string; approved listings share ids with submissions.
    community_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=MEMBERSHIP_STATUS_PENDING
    )
    order_id: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)
    payment_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    currency: Mapped[str | None] = mapped_column(String(8), nullable=True)
    activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
