"""Payment and membership schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class OrderCreate(BaseModel):
    """Request to start paying for a community."""

    user_id: str = Field(min_length=1)
    community_id: str = Field(min_length=1)


class OrderResponse(BaseModel):
    """Gateway order the checkout widget is opened with."""

    order_id: str
    amount: int
    currency: str
    key_id: str
    community_id: str


class PaymentVerify(BaseModel):
    """Checkout callback fields posted back by the client."""

    order_id: str = Field(min_length=1)
    payment_id: str = Field(min_length=1)
    signature: str = Field(min_length=1)


class MembershipResponse(BaseModel):
    """Membership state for one user and community."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    community_id: str
    status: str
    order_id: str | None = None
    payment_id: str | None = None
    amount: int | None = None
    currency: str | None = None
    activated_at: datetime | None = None


class VerifyResponse(BaseModel):
    success: bool
    membership: MembershipResponse
    join_link: str | None = None
