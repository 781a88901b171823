"""SQLAlchemy model for community submissions awaiting review."""
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from circle_hub.db.session import Base
from circle_hub.db.time import utcnow

SUBMISSION_STATUS_PENDING = "pending"
SUBMISSION_STATUS_APPROVED = "approved"
SUBMISSION_STATUS_REJECTED = "rejected"


class CommunitySubmission(Base):
    """A community submitted through the public form.

    ``status`` is the authoritative review state; every cached approved
    listing is a projection of a row whose status is ``approved``.
    """

    __tablename__ = "community_subs"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"),
                                    primary_key=True, autoincrement=True)
    community_name: Mapped[str] = mapped_column(Text, nullable=False)
    platform: Mapped[str] = mapped_column(String(32), nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    short_description: Mapped[str] = mapped_column(Text, nullable=False)
    long_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Null for paid communities; access is granted after payment.
    join_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    join_type: Mapped[str] = mapped_column(String(8), nullable=False, default="free")
    # Whole rupees; the gateway is charged in paise.
    price_inr: Mapped[int | None] = mapped_column(Integer, nullable=True)
    owner_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    founder_name: Mapped[str] = mapped_column(Text, nullable=False, default="Anonymous")
    founder_bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    show_founder_info: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=SUBMISSION_STATUS_PENDING, index=True
    )
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
