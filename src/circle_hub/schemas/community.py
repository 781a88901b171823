# src/circle_hub/schemas/community.py
"""Community listing schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

PLACEHOLDER_LOGO = "/placeholder-logo.png"
DEFAULT_LOCATION = "Global"


class ApprovedCommunity(BaseModel):
    """Denormalized listing entry shown on the discovery page."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: str
    full_description: str | None = None
    category: str
    platform: str
    members: int = 0
    verified: bool = True
    join_link: str = ""
    join_type: str = "free"
    price_inr: int | None = None
    logo: str = PLACEHOLDER_LOGO
    location: str = DEFAULT_LOCATION
    tags: list[str] = Field(default_factory=list)
    admin: str | None = None
    admin_bio: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str:
        return str(value)


class ListingResponse(BaseModel):
    """Merged discovery listing."""

    state: str
    refreshed_at: datetime | None
    local_only_ids: list[str]
    communities: list[ApprovedCommunity]


class CapacityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    platform: str
    members: int
    percent_full: float
    is_near_full: bool
    is_full: bool
    max_members: int | None = None
    remaining: int | None = None
