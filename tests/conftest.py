# tests/conftest.py
from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Callable, Iterator
from itertools import count
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-circle-hub")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LISTING_REFRESH_ENABLED", "false")
os.environ.setdefault("PERSISTENT_CACHE_DIR", tempfile.mkdtemp(prefix="circle_hub_cache_"))

from circle_hub.api.v1.dependencies import require_payments
from circle_hub.core.security import create_admin_token
from circle_hub.data.seed import seed_communities
from circle_hub.db.session import Base
from circle_hub.db.session import get_db as app_get_session
from circle_hub.main import app as fastapi_app
from circle_hub.models import CommunitySubmission
from circle_hub.schemas.submission import Submission
from circle_hub.services.approval import ApprovalOrchestrator, get_approval_orchestrator
from circle_hub.services.broadcast_store import ApprovedCommunitiesStore
from circle_hub.services.listing import ListingRefresher, get_listing_refresher
from circle_hub.services.local_cache import (
    PERSISTENT_CACHE_KEY,
    SESSION_CACHE_KEY,
    CacheTier,
    LocalDurableCache,
)
from circle_hub.services.notifications import Notification, NotificationBus
from circle_hub.services.payments import PaymentService, RazorpayClient
from circle_hub.services.remote_store import SqlSubmissionStore
from circle_hub.services.storage import FileStorage, MemoryStorage

TEST_DB_URL = "sqlite://"
RAZORPAY_KEY_ID = "rzp_test_key"
RAZORPAY_KEY_SECRET = "rzp_test_secret"

_ORDER_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Iterator[Engine]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        # Each test starts from empty tables even though the stores commit.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_submission(
    session_factory: sessionmaker[Session],
) -> Callable[..., Submission]:
    """Insert a submission row and return it as the service schema."""

    def _make(**overrides: Any) -> Submission:
        fields: dict[str, Any] = {
            "community_name": "Python Builders",
            "platform": "Discord",
            "category": "Tech",
            "short_description": "Weekly build sessions for Python developers.",
            "long_description": "Pairing, code review, and demo days.",
            "join_link": "https://discord.gg/pybuilders",
            "join_type": "free",
            "founder_name": "Priya N",
            "founder_bio": "Maintainer of several packaging tools.",
            "status": "pending",
        }
        fields.update(overrides)
        with session_factory() as db:
            row = CommunitySubmission(**fields)
            db.add(row)
            db.commit()
            db.refresh(row)
            return Submission.model_validate(row)

    return _make


@pytest.fixture()
def sql_store(session_factory: sessionmaker[Session]) -> SqlSubmissionStore:
    return SqlSubmissionStore(session_factory)


@pytest.fixture()
def cache(tmp_path: Any) -> LocalDurableCache:
    return LocalDurableCache(
        [
            CacheTier("session", MemoryStorage(), SESSION_CACHE_KEY, 100),
            CacheTier("persistent", FileStorage(tmp_path / "cache"), PERSISTENT_CACHE_KEY, 500),
        ],
        fallback_entries=20,
    )


@pytest.fixture()
def approved_store() -> ApprovedCommunitiesStore:
    return ApprovedCommunitiesStore(max_entries=100)


@pytest.fixture()
def bus() -> NotificationBus:
    return NotificationBus()


@pytest.fixture()
def published(bus: NotificationBus) -> list[Notification]:
    """Every notification published on ``bus`` during the test."""
    received: list[Notification] = []
    bus.subscribe(received.append)
    return received


@pytest.fixture()
def listing(
    sql_store: SqlSubmissionStore,
    cache: LocalDurableCache,
    approved_store: ApprovedCommunitiesStore,
    bus: NotificationBus,
) -> ListingRefresher:
    return ListingRefresher(
        sql_store,
        cache,
        approved_store,
        bus,
        interval_seconds=0.05,
        timeout_seconds=1.0,
        seed=seed_communities(),
    )


@pytest.fixture()
def orchestrator(
    sql_store: SqlSubmissionStore,
    cache: LocalDurableCache,
    approved_store: ApprovedCommunitiesStore,
    bus: NotificationBus,
    listing: ListingRefresher,
) -> ApprovalOrchestrator:
    return ApprovalOrchestrator(
        sql_store,
        cache,
        approved_store,
        bus,
        listing=listing,
        timeout_seconds=1.0,
        reload_delay_seconds=0.01,
    )


@pytest.fixture()
def gateway_requests() -> list[httpx.Request]:
    return []


@pytest.fixture()
def razorpay_transport(gateway_requests: list[httpx.Request]) -> httpx.MockTransport:
    """Fake Razorpay orders API that echoes the requested amount."""

    def handler(request: httpx.Request) -> httpx.Response:
        gateway_requests.append(request)
        payload = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "id": f"order_test_{next(_ORDER_COUNTER)}",
                "entity": "order",
                "amount": payload["amount"],
                "currency": payload["currency"],
                "receipt": payload.get("receipt"),
                "status": "created",
            },
        )

    return httpx.MockTransport(handler)


@pytest.fixture()
def payment_service(razorpay_transport: httpx.MockTransport) -> PaymentService:
    gateway = RazorpayClient(RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET, transport=razorpay_transport)
    return PaymentService(gateway, "INR")


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    orchestrator: ApprovalOrchestrator,
    listing: ListingRefresher,
    payment_service: PaymentService,
) -> Iterator[None]:
    def _get_session_override() -> Iterator[Session]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_approval_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_listing_refresher] = lambda: listing
    app.dependency_overrides[require_payments] = lambda: payment_service
    try:
        yield
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_admin_token()}"}
