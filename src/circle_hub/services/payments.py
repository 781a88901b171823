"""Razorpay integration for paid community access.

A paid listing hides its join link. The buyer creates a gateway order,
completes checkout, and posts the signed callback back here; a valid
signature activates the membership and releases the join link.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from sqlalchemy.orm import Session

from circle_hub.core.settings import settings
from circle_hub.db.time import utcnow
from circle_hub.models.community import (
    MEMBERSHIP_STATUS_ACTIVE,
    CommunityMembership,
)
from circle_hub.repositories.membership_repo import (
    get_membership,
    get_membership_by_order,
    upsert_pending_membership,
)
from circle_hub.schemas.community import ApprovedCommunity
from circle_hub.services.errors import PaymentError, PaymentGatewayError, PaymentVerificationError

# Configure logger for this module
logger = logging.getLogger(__name__)

PAISE_PER_RUPEE = 100


@dataclass(frozen=True)
class GatewayOrder:
    order_id: str
    amount: int
    currency: str
    receipt: str | None = None


def sign_payment(order_id: str, payment_id: str, key_secret: str) -> str:
    """Return the hex HMAC-SHA256 Razorpay sends for a completed checkout."""
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(key_secret.encode(), message, hashlib.sha256).hexdigest()


class RazorpayClient:
    """Minimal async client for the Razorpay orders API."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = "https://api.razorpay.com/v1",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.key_id = key_id
        self._key_secret = key_secret
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self._base_url,
                    timeout=httpx.Timeout(self._timeout_seconds),
                    auth=(self.key_id, self._key_secret),
                    transport=self._transport,
                )
        return self._client

    async def create_order(
        self,
        amount: int,
        currency: str,
        *,
        receipt: str | None = None,
        notes: dict[str, str] | None = None,
    ) -> GatewayOrder:
        """Create an order for ``amount`` in the currency's minor unit."""
        payload: dict[str, Any] = {"amount": amount, "currency": currency}
        if receipt:
            payload["receipt"] = receipt
        if notes:
            payload["notes"] = notes

        client = await self._ensure_client()
        try:
            response = await client.post("/orders", json=payload)
        except httpx.HTTPError as exc:
            raise PaymentGatewayError(f"Payment gateway unreachable: {exc}") from exc

        if response.status_code >= 400:
            raise PaymentGatewayError(
                f"Payment gateway rejected order ({response.status_code}): {response.text}"
            )
        data = response.json()
        try:
            return GatewayOrder(
                order_id=str(data["id"]),
                amount=int(data["amount"]),
                currency=str(data["currency"]),
                receipt=data.get("receipt"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise PaymentGatewayError(f"Unexpected order payload: {data!r}") from exc

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        expected = sign_payment(order_id, payment_id, self._key_secret)
        return hmac.compare_digest(expected, signature)

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class PaymentService:
    """Order creation, signature verification, and membership activation."""

    def __init__(self, gateway: RazorpayClient, currency: str = "INR") -> None:
        self.gateway = gateway
        self.currency = currency

    async def create_order(
        self, db: Session, *, user_id: str, community: ApprovedCommunity
    ) -> tuple[CommunityMembership, GatewayOrder]:
        """Open a gateway order for a paid community and record it as pending.

        Raises:
            PaymentError: If the community is free or the user already has access.
            PaymentGatewayError: If the gateway call fails.
        """
        if community.join_type != "paid" or not community.price_inr:
            raise PaymentError(f"Community {community.id} does not require payment")

        existing = get_membership(db, user_id, community.id)
        if existing is not None and existing.status == MEMBERSHIP_STATUS_ACTIVE:
            raise PaymentError(f"User {user_id} already has access to {community.id}")

        amount = community.price_inr * PAISE_PER_RUPEE
        order = await self.gateway.create_order(
            amount,
            self.currency,
            receipt=f"{community.id}:{user_id}"[:40],
            notes={"user_id": user_id, "community_id": community.id},
        )
        membership = upsert_pending_membership(
            db,
            user_id=user_id,
            community_id=community.id,
            order_id=order.order_id,
            amount=order.amount,
            currency=order.currency,
        )
        logger.info(
            "Created order %s for user %s on community %s", order.order_id, user_id, community.id
        )
        return membership, order

    def verify_payment(
        self, db: Session, *, order_id: str, payment_id: str, signature: str
    ) -> CommunityMembership:
        """Check the checkout signature and activate the matching membership.

        Raises:
            PaymentVerificationError: If the signature is wrong or the order is unknown.
        """
        if not self.gateway.verify_signature(order_id, payment_id, signature):
            logger.warning("Rejected payment %s for order %s: bad signature", payment_id, order_id)
            raise PaymentVerificationError("Payment signature mismatch")

        membership = get_membership_by_order(db, order_id)
        if membership is None:
            raise PaymentVerificationError(f"Unknown order {order_id}")

        if membership.status != MEMBERSHIP_STATUS_ACTIVE:
            membership.status = MEMBERSHIP_STATUS_ACTIVE
            membership.payment_id = payment_id
            membership.activated_at = utcnow()
            db.commit()
            db.refresh(membership)
            logger.info(
                "Activated membership of %s in %s", membership.user_id, membership.community_id
            )
        return membership

    @staticmethod
    def membership_status(
        db: Session, *, user_id: str, community_id: str
    ) -> CommunityMembership | None:
        return get_membership(db, user_id, community_id)


class _PaymentServiceSingleton:
    """Singleton wrapper for PaymentService."""

    _instance: PaymentService | None = None

    @classmethod
    def get_instance(cls) -> PaymentService | None:
        if cls._instance is None and settings.payments_enabled:
            gateway = RazorpayClient(
                settings.razorpay_key_id or "",
                settings.razorpay_key_secret or "",
                base_url=settings.razorpay_base_url,
                timeout_seconds=settings.remote_timeout_seconds,
            )
            cls._instance = PaymentService(gateway, settings.payment_currency)
        return cls._instance


def get_payment_service() -> PaymentService | None:
    """Return the payment service, or None when Razorpay is not configured."""
    return _PaymentServiceSingleton.get_instance()
