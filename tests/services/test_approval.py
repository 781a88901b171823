"""Tests for the approval orchestrator."""
from __future__ import annotations

import asyncio

import httpx
import pytest

from circle_hub.schemas.submission import SubmissionCreate, SubmissionStatus
from circle_hub.services.approval import ApprovalOrchestrator
from circle_hub.services.broadcast_store import ApprovedCommunitiesStore
from circle_hub.services.errors import RemoteStoreError, RemoteWriteDenied, SubmissionNotFound
from circle_hub.services.ledger import RemoteConfirmation
from circle_hub.services.listing import ListingRefresher
from circle_hub.services.local_cache import PERSISTENT_CACHE_KEY, CacheTier, LocalDurableCache
from circle_hub.services.notifications import NotificationBus, NotificationKind
from circle_hub.services.remote_store import SupabaseSubmissionStore
from circle_hub.services.storage import FileStorage

APPROVAL_SEQUENCE = [
    NotificationKind.COMMUNITY_APPROVED,
    NotificationKind.FORCE_REFRESH,
    NotificationKind.ADD_APPROVED,
    NotificationKind.REFRESH_REQUESTED,
]


@pytest.mark.asyncio
async def test_approval_updates_remote_cache_memory_and_notifies(
    orchestrator, make_submission, sql_store, cache, approved_store, published
) -> None:
    submission = make_submission()

    outcome = await orchestrator.review(submission.id, "approved", "Looks great")

    assert outcome.remote_confirmed is True
    assert outcome.remote_error is None
    assert outcome.community is not None
    assert outcome.community.id == submission.id

    remote = await sql_store.get(submission.id)
    assert remote.status is SubmissionStatus.APPROVED
    assert remote.review_notes == "Looks great"
    assert remote.reviewed_at is not None

    assert [c.id for c in cache.load_tier("session")] == [submission.id]
    assert [c.id for c in cache.load_tier("persistent")] == [submission.id]
    assert [c.id for c in approved_store.get_all()] == [submission.id]

    assert [n.kind for n in published] == APPROVAL_SEQUENCE
    force = published[1]
    assert force.record == outcome.community
    assert force.action == "approved"
    assert published[2].record == outcome.community


@pytest.mark.asyncio
async def test_cache_and_memory_are_written_before_notifications(
    orchestrator, make_submission, cache, approved_store, bus
) -> None:
    submission = make_submission()
    observed: list[tuple[bool, bool]] = []
    bus.subscribe(
        lambda n: observed.append(
            (
                any(c.id == submission.id for c in cache.load()),
                approved_store.get(submission.id) is not None,
            )
        ),
        kinds=[NotificationKind.COMMUNITY_APPROVED],
    )

    await orchestrator.review(submission.id, SubmissionStatus.APPROVED)

    assert observed == [(True, True)]


@pytest.mark.asyncio
async def test_denied_remote_write_still_publishes_locally(
    orchestrator, make_submission, sql_store, cache, approved_store, published, listing, mocker
) -> None:
    submission = make_submission()
    mocker.patch.object(
        sql_store,
        "update_status",
        side_effect=RemoteWriteDenied("Update matched no rows"),
    )

    outcome = await orchestrator.review(submission.id, "approved")

    assert outcome.remote_confirmed is False
    assert "no rows" in outcome.remote_error
    assert any(c.id == submission.id for c in cache.load())
    assert approved_store.get(submission.id) is not None
    assert [n.kind for n in published] == APPROVAL_SEQUENCE

    entry = orchestrator.ledger.get(submission.id)
    assert entry.confirmation is RemoteConfirmation.LOCAL_ONLY
    assert orchestrator.board.submissions()[0].status is SubmissionStatus.APPROVED

    remote_approved = await sql_store.list_by_status(SubmissionStatus.APPROVED)
    assert submission.id not in [s.id for s in remote_approved]
    snapshot = await listing.refresh()
    assert snapshot.get(submission.id) is not None
    assert submission.id in snapshot.local_only_ids


@pytest.mark.asyncio
async def test_remote_timeout_is_not_fatal(
    orchestrator, make_submission, sql_store, approved_store, mocker
) -> None:
    submission = make_submission()

    async def hang(*_args, **_kwargs):
        await asyncio.sleep(5)

    mocker.patch.object(sql_store, "update_status", side_effect=hang)
    orchestrator.timeout_seconds = 0.05

    outcome = await orchestrator.review(submission.id, "approved")

    assert outcome.remote_confirmed is False
    assert approved_store.get(submission.id) is not None


@pytest.mark.asyncio
async def test_missing_submission_writes_nothing(
    orchestrator, sql_store, cache, approved_store, published, mocker
) -> None:
    update = mocker.spy(sql_store, "update_status")

    with pytest.raises(SubmissionNotFound):
        await orchestrator.review("9999", "approved")

    update.assert_not_called()
    assert cache.load() == []
    assert len(approved_store) == 0
    assert published == []
    assert orchestrator.ledger.entries() == []


@pytest.mark.asyncio
async def test_failed_read_aborts_review(
    orchestrator, make_submission, sql_store, approved_store, published, mocker
) -> None:
    submission = make_submission()
    mocker.patch.object(sql_store, "get", side_effect=RemoteStoreError("connection reset"))

    with pytest.raises(RemoteStoreError):
        await orchestrator.review(submission.id, "approved")

    assert len(approved_store) == 0
    assert published == []


@pytest.mark.asyncio
async def test_approving_twice_leaves_one_entry_everywhere(
    orchestrator, make_submission, cache, approved_store
) -> None:
    submission = make_submission()

    await orchestrator.review(submission.id, "approved")
    await orchestrator.review(submission.id, "approved")

    assert [c.id for c in cache.load_tier("session")] == [submission.id]
    assert [c.id for c in cache.load_tier("persistent")] == [submission.id]
    assert [c.id for c in approved_store.get_all()] == [submission.id]


@pytest.mark.asyncio
async def test_paid_approval_hides_join_link(orchestrator, make_submission, cache) -> None:
    submission = make_submission(
        join_type="paid", price_inr=99, join_link="https://chat.example/abc"
    )

    outcome = await orchestrator.review(submission.id, "approved")

    assert outcome.community.join_link == ""
    assert outcome.community.price_inr == 99
    assert cache.load()[0].join_link == ""


@pytest.mark.asyncio
async def test_rejection_creates_no_listing_entry(
    orchestrator, make_submission, sql_store, cache, approved_store, published
) -> None:
    submission = make_submission()

    outcome = await orchestrator.review(submission.id, "rejected", "Spam")

    assert outcome.community is None
    assert outcome.remote_confirmed is True
    assert (await sql_store.get(submission.id)).status is SubmissionStatus.REJECTED
    assert cache.load() == []
    assert len(approved_store) == 0
    assert [n.kind for n in published] == [NotificationKind.COMMUNITY_REJECTED]
    assert orchestrator.board.submissions()[0].status is SubmissionStatus.REJECTED


@pytest.mark.asyncio
async def test_pending_is_not_a_review_decision(orchestrator, make_submission) -> None:
    submission = make_submission()

    with pytest.raises(ValueError):
        await orchestrator.review(submission.id, "pending")


@pytest.mark.asyncio
async def test_retry_confirms_local_only_decisions(
    orchestrator, make_submission, sql_store, mocker
) -> None:
    submission = make_submission()
    patched = mocker.patch.object(
        sql_store, "update_status", side_effect=RemoteWriteDenied("denied")
    )
    await orchestrator.review(submission.id, "approved")

    still_denied = await orchestrator.retry_unconfirmed()
    assert [e.confirmation for e in still_denied] == [RemoteConfirmation.LOCAL_ONLY]

    mocker.stop(patched)
    results = await orchestrator.retry_unconfirmed()

    assert [e.confirmation for e in results] == [RemoteConfirmation.CONFIRMED]
    assert orchestrator.ledger.local_only() == []
    assert (await sql_store.get(submission.id)).status is SubmissionStatus.APPROVED


@pytest.mark.asyncio
async def test_mounted_listing_reload_is_scheduled(
    orchestrator, make_submission, listing, mocker
) -> None:
    submission = make_submission()
    listing.interval_seconds = 10
    await listing.mount()
    try:
        while listing.snapshot.refreshed_at is None or listing.in_flight:
            await asyncio.sleep(0.01)
        spy = mocker.spy(listing, "request_refresh")

        await orchestrator.review(submission.id, "approved")
        # Three refetch notifications plus the delayed reload.
        assert spy.call_count == 3
        await asyncio.sleep(0.1)
        assert spy.call_count == 4
        while listing.in_flight:
            await asyncio.sleep(0.01)
    finally:
        await listing.unmount()


@pytest.mark.asyncio
async def test_create_submission_applies_form_defaults(orchestrator, published) -> None:
    payload = SubmissionCreate(
        name="  ",
        platform="telegram",
        join_link="https://t.me/example",
    )

    submission = await orchestrator.create_submission(payload)

    assert submission.community_name == "Unnamed Community"
    assert submission.platform == "Telegram"
    assert submission.short_description == "No description provided"
    assert submission.founder_name == "Anonymous"
    assert submission.status is SubmissionStatus.PENDING
    assert [n.kind for n in published] == [NotificationKind.NEW_SUBMISSION]
    assert published[0].community_id == submission.id


@pytest.mark.asyncio
async def test_delete_removes_submission_and_notifies(
    orchestrator, make_submission, sql_store, published
) -> None:
    submission = make_submission()

    await orchestrator.delete(submission.id)

    assert await sql_store.get(submission.id) is None
    assert [n.kind for n in published] == [NotificationKind.COMMUNITY_DELETED]


@pytest.mark.asyncio
async def test_delete_unknown_submission(orchestrator, published) -> None:
    with pytest.raises(SubmissionNotFound):
        await orchestrator.delete("12345")
    assert published == []


@pytest.mark.asyncio
async def test_rejecting_an_approved_community_withdraws_it(
    orchestrator, make_submission, cache, approved_store, listing, published
) -> None:
    submission = make_submission()
    await orchestrator.review(submission.id, "approved")
    published.clear()

    await orchestrator.review(submission.id, "rejected", "Link is dead")

    assert cache.load() == []
    assert approved_store.get(submission.id) is None
    assert [n.kind for n in published] == [NotificationKind.COMMUNITY_REJECTED]

    assert not listing.mounted
    snapshot = await listing.refresh()
    assert snapshot.get(submission.id) is None
    assert submission.id not in snapshot.local_only_ids


@pytest.mark.asyncio
async def test_rejected_community_stays_hidden_after_restart(
    orchestrator, make_submission, sql_store, listing, tmp_path
) -> None:
    submission = make_submission()
    await orchestrator.review(submission.id, "approved")
    listing.interval_seconds = 10
    await listing.mount()
    try:
        while listing.snapshot.refreshed_at is None or listing.in_flight:
            await asyncio.sleep(0.01)
        await orchestrator.review(submission.id, "rejected")
        await asyncio.sleep(0.05)
        while listing.in_flight:
            await asyncio.sleep(0.01)
    finally:
        await listing.unmount()

    # A new process only shares the persistent tier on disk.
    restarted_cache = LocalDurableCache(
        [CacheTier("persistent", FileStorage(tmp_path / "cache"), PERSISTENT_CACHE_KEY, 500)]
    )
    restarted = ListingRefresher(
        sql_store,
        restarted_cache,
        ApprovedCommunitiesStore(),
        NotificationBus(),
        seed=[],
    )

    snapshot = await restarted.refresh()

    assert restarted_cache.load() == []
    assert snapshot.get(submission.id) is None


@pytest.mark.asyncio
async def test_deleting_an_approved_community_withdraws_it(
    orchestrator, make_submission, cache, approved_store, listing
) -> None:
    submission = make_submission()
    await orchestrator.review(submission.id, "approved")

    await orchestrator.delete(submission.id)

    assert cache.load() == []
    assert approved_store.get(submission.id) is None
    assert (await listing.refresh()).get(submission.id) is None


@pytest.mark.asyncio
async def test_malformed_update_response_is_absorbed(
    cache, approved_store, bus, published
) -> None:
    row = {
        "id": 7,
        "community_name": "Night Owls",
        "platform": "Telegram",
        "category": "Lifestyle",
        "join_link": "https://t.me/nightowls",
        "status": "pending",
    }

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PATCH":
            return httpx.Response(200, json=[{"id": 7}])
        return httpx.Response(200, json=[row])

    store = SupabaseSubmissionStore(
        "https://project.supabase.co", "anon-key", transport=httpx.MockTransport(handler)
    )
    orchestrator = ApprovalOrchestrator(store, cache, approved_store, bus, timeout_seconds=1.0)

    outcome = await orchestrator.review("7", "approved")

    assert outcome.remote_confirmed is False
    assert "Malformed remote row" in outcome.remote_error
    assert approved_store.get("7") is not None
    assert [n.kind for n in published] == APPROVAL_SEQUENCE
    await store.close()
