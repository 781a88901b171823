# src/circle_hub/schemas/submission.py
"""Submission-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from circle_hub.schemas.community import ApprovedCommunity

PLATFORMS: dict[str, str] = {
    "whatsapp": "WhatsApp",
    "telegram": "Telegram",
    "slack": "Slack",
    "discord": "Discord",
}

JoinType = Literal["free", "paid"]


class SubmissionStatus(str, Enum):
    """Review state of a submission."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def normalize_platform(value: str) -> str:
    """Map any casing of a supported platform name to its display form."""
    try:
        return PLATFORMS[value.strip().lower()]
    except KeyError as err:
        allowed = ", ".join(PLATFORMS.values())
        raise ValueError(f"platform must be one of: {allowed}") from err


class Submission(BaseModel):
    """A submission as read from the remote store.

    Ids are always strings here regardless of how the backing store types
    them.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    community_name: str
    platform: str
    category: str
    short_description: str | None = None
    long_description: str | None = None
    join_link: str | None = None
    join_type: str = "free"
    price_inr: int | None = None
    owner_id: str | None = None
    founder_name: str | None = None
    founder_bio: str | None = None
    show_founder_info: bool = True
    logo_url: str | None = None
    status: SubmissionStatus = SubmissionStatus.PENDING
    review_notes: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str:
        return str(value)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: object) -> object:
        return value or SubmissionStatus.PENDING

    @property
    def is_paid(self) -> bool:
        return self.join_type == "paid"


class SubmissionCreate(BaseModel):
    """Payload accepted by the public submission form."""

    name: str = ""
    platform: str = "WhatsApp"
    category: str = "Other"
    short_description: str = ""
    long_description: str = ""
    join_link: str | None = None
    join_type: JoinType = "free"
    price_inr: int | None = Field(default=None, gt=0)
    founder_name: str = ""
    founder_bio: str = ""
    show_founder_info: bool = True
    logo_url: str | None = None
    owner_id: str | None = None

    @field_validator("platform")
    @classmethod
    def _platform(cls, value: str) -> str:
        return normalize_platform(value)

    @model_validator(mode="after")
    def _paid_requires_price(self) -> SubmissionCreate:
        if self.join_type == "paid" and self.price_inr is None:
            raise ValueError("price_inr is required for paid communities")
        if self.join_type == "free" and not (self.join_link or "").strip():
            raise ValueError("join_link is required for free communities")
        return self

    def to_row(self) -> dict[str, object]:
        """Return column values with the form's blank-field defaults applied."""
        short = self.short_description.strip() or "No description provided"
        return {
            "community_name": self.name.strip() or "Unnamed Community",
            "platform": self.platform,
            "category": self.category.strip() or "Other",
            "short_description": short,
            "long_description": self.long_description.strip() or short,
            "join_link": (self.join_link or "").strip() or None,
            "join_type": self.join_type,
            "price_inr": self.price_inr if self.join_type == "paid" else None,
            "founder_name": self.founder_name.strip() or "Anonymous",
            "founder_bio": self.founder_bio.strip(),
            "show_founder_info": self.show_founder_info,
            "logo_url": self.logo_url or None,
            "owner_id": self.owner_id,
            "status": SubmissionStatus.PENDING.value,
        }


class ReviewRequest(BaseModel):
    """Admin decision on a submission."""

    status: Literal["approved", "rejected"]
    notes: str | None = None


class ReviewResponse(BaseModel):
    """Outcome of a review as returned to the admin."""

    submission: Submission
    community: ApprovedCommunity | None = None
    remote_confirmed: bool
    remote_error: str | None = None
