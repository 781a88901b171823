"""Tests for the discovery listing refresher."""
from __future__ import annotations

import asyncio

import httpx
import pytest

from circle_hub.data.seed import SEED_ID_PREFIX, seed_communities
from circle_hub.schemas.community import ApprovedCommunity
from circle_hub.schemas.submission import Submission, SubmissionStatus
from circle_hub.services.errors import RemoteStoreError
from circle_hub.services.listing import ListingRefresher, ListingState, merge_listing
from circle_hub.services.notifications import Notification, NotificationKind
from circle_hub.services.remote_store import SupabaseSubmissionStore


def _community(community_id: str, name: str | None = None) -> ApprovedCommunity:
    return ApprovedCommunity(
        id=community_id,
        name=name or f"Community {community_id}",
        description="d",
        category="Tech",
        platform="Discord",
    )


async def _wait_for(predicate, timeout: float = 1.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def test_merge_prefers_remote_content() -> None:
    remote = [_community("1", "Remote name")]
    local = [_community("1", "Cached name"), _community("2")]

    merged, local_only = merge_listing(remote, local)

    assert [c.id for c in merged] == ["1", "2"]
    assert merged[0].name == "Remote name"
    assert local_only == ["2"]


def test_merge_appends_seed_without_duplicates() -> None:
    seed = [_community("seed-1"), _community("1", "Seed clash")]

    merged, _ = merge_listing([_community("1")], [], seed)

    assert [c.id for c in merged] == ["1", "seed-1"]
    assert merged[0].name == "Community 1"


def test_seed_ids_are_namespaced() -> None:
    seeds = seed_communities()

    assert seeds
    assert all(c.id.startswith(SEED_ID_PREFIX) for c in seeds)
    assert len({c.id for c in seeds}) == len(seeds)
    assert all(c.join_link == "" for c in seeds if c.join_type == "paid")


@pytest.mark.asyncio
async def test_refresh_merges_remote_then_local_then_seed(
    listing: ListingRefresher, make_submission, approved_store
) -> None:
    approved = make_submission(community_name="Approved One", status="approved")
    make_submission(community_name="Still Pending")
    approved_store.add(_community("local-1"))

    snapshot = await listing.refresh()

    ids = [c.id for c in snapshot.communities]
    assert snapshot.state is ListingState.MERGED
    assert ids[:2] == [approved.id, "local-1"]
    assert all(i.startswith(SEED_ID_PREFIX) for i in ids[2:])
    assert "Still Pending" not in {c.name for c in snapshot.communities}
    assert snapshot.local_only_ids == {"local-1"}
    assert snapshot.refreshed_at is not None


@pytest.mark.asyncio
async def test_remote_row_wins_over_cached_copy(
    listing: ListingRefresher, make_submission, cache
) -> None:
    submission = make_submission(community_name="Renamed Remotely", status="approved")
    cache.add(_community(submission.id, "Stale cached name"))

    snapshot = await listing.refresh()

    matches = [c for c in snapshot.communities if c.id == submission.id]
    assert len(matches) == 1
    assert matches[0].name == "Renamed Remotely"
    assert submission.id not in snapshot.local_only_ids


@pytest.mark.asyncio
async def test_failed_refresh_keeps_last_good_listing(
    listing: ListingRefresher, make_submission, sql_store, mocker
) -> None:
    make_submission(status="approved")
    good = await listing.refresh()

    mocker.patch.object(
        sql_store, "list_by_status", side_effect=RemoteStoreError("network unreachable")
    )
    stale = await listing.refresh()

    assert stale.state is ListingState.ERROR
    assert stale.communities == good.communities
    assert "network unreachable" in stale.error


@pytest.mark.asyncio
async def test_first_failure_falls_back_to_local_and_seed(
    listing: ListingRefresher, sql_store, cache, mocker
) -> None:
    cache.add(_community("cached-1"))
    mocker.patch.object(sql_store, "list_by_status", side_effect=TimeoutError())

    snapshot = await listing.refresh()

    assert snapshot.state is ListingState.ERROR
    assert snapshot.communities[0].id == "cached-1"
    assert len(snapshot.communities) == 1 + len(seed_communities())


@pytest.mark.asyncio
async def test_concurrent_refresh_is_skipped(
    listing: ListingRefresher, sql_store, mocker
) -> None:
    gate = asyncio.Event()

    async def slow(_status: SubmissionStatus) -> list:
        await gate.wait()
        return []

    fetch = mocker.patch.object(sql_store, "list_by_status", side_effect=slow)

    first = asyncio.create_task(listing.refresh())
    await asyncio.sleep(0)
    assert listing.in_flight
    skipped = await listing.refresh()
    gate.set()
    await first

    assert skipped.state is ListingState.FETCHING
    assert fetch.await_count == 1
    assert not listing.in_flight


@pytest.mark.asyncio
async def test_record_notification_renders_immediately(
    listing: ListingRefresher, bus
) -> None:
    listing.interval_seconds = 10
    await listing.mount()
    try:
        await _wait_for(lambda: listing.state is ListingState.MERGED)
        record = _community("fresh-1")

        bus.publish(Notification(NotificationKind.ADD_APPROVED, record=record))

        snapshot = listing.snapshot
        assert snapshot.communities[0] == record
        assert "fresh-1" in snapshot.local_only_ids
    finally:
        await _wait_for(lambda: not listing.in_flight)
        await listing.unmount()


@pytest.mark.asyncio
async def test_refresh_notification_wakes_polling_loop(
    listing: ListingRefresher, bus, make_submission
) -> None:
    listing.interval_seconds = 10
    await listing.mount()
    try:
        await _wait_for(lambda: listing.state is ListingState.MERGED)
        submission = make_submission(status="approved")
        assert listing.snapshot.get(submission.id) is None

        bus.publish(Notification(NotificationKind.REFRESH_REQUESTED, action="approved"))

        await _wait_for(lambda: listing.snapshot.get(submission.id) is not None)
    finally:
        await _wait_for(lambda: not listing.in_flight)
        await listing.unmount()


@pytest.mark.asyncio
async def test_polling_picks_up_remote_changes(
    listing: ListingRefresher, sql_store, mocker
) -> None:
    rows: list[Submission] = []
    mocker.patch.object(sql_store, "list_by_status", side_effect=lambda _status: list(rows))
    await listing.mount()
    try:
        await _wait_for(lambda: listing.state is ListingState.MERGED)
        rows.append(
            Submission(
                id="55",
                community_name="Polled In",
                platform="Telegram",
                category="Finance",
                status=SubmissionStatus.APPROVED,
            )
        )

        await _wait_for(lambda: listing.snapshot.get("55") is not None)
    finally:
        await listing.unmount()



@pytest.mark.asyncio
async def test_unmount_stops_loop_and_subscription(listing: ListingRefresher, bus) -> None:
    listing.interval_seconds = 10
    await listing.mount()
    await _wait_for(lambda: listing.state is ListingState.MERGED)

    await listing.unmount()
    bus.publish(Notification(NotificationKind.ADD_APPROVED, record=_community("late")))

    assert not listing.mounted
    assert listing.snapshot.get("late") is None
    listing.request_refresh()
    await listing.unmount()


@pytest.mark.asyncio
async def test_rejected_community_is_hidden_from_local_channels(
    listing: ListingRefresher, bus, approved_store
) -> None:
    approved_store.add(_community("77"))
    listing.interval_seconds = 10
    await listing.mount()
    try:
        await _wait_for(lambda: listing.snapshot.get("77") is not None)

        bus.publish(Notification(NotificationKind.COMMUNITY_REJECTED, community_id="77"))
        assert listing.snapshot.get("77") is None

        snapshot = await listing.refresh()
        assert snapshot.get("77") is None
    finally:
        await _wait_for(lambda: not listing.in_flight)
        await listing.unmount()


@pytest.mark.asyncio
async def test_malformed_remote_rows_fall_back_to_local_and_seed(
    cache, approved_store, bus
) -> None:
    store = SupabaseSubmissionStore(
        "https://project.supabase.co",
        "anon-key",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[{"id": 1}])),
    )
    approved_store.add(_community("local-1"))
    refresher = ListingRefresher(store, cache, approved_store, bus, seed=seed_communities())

    snapshot = await refresher.refresh()

    assert snapshot.state is ListingState.ERROR
    assert "Malformed remote row" in snapshot.error
    assert snapshot.get("local-1") is not None
    assert len(snapshot.communities) == 1 + len(seed_communities())
    assert not refresher.in_flight
    await store.close()


@pytest.mark.asyncio
async def test_wait_for_refresh_returns_the_in_flight_result(
    listing: ListingRefresher, sql_store, make_submission, mocker
) -> None:
    approved = make_submission(status="approved")
    gate = asyncio.Event()
    list_by_status = sql_store.list_by_status

    async def slow(status: SubmissionStatus) -> list[Submission]:
        await gate.wait()
        return await list_by_status(status)

    mocker.patch.object(sql_store, "list_by_status", side_effect=slow)

    first = asyncio.create_task(listing.refresh())
    await asyncio.sleep(0)
    waiter = asyncio.create_task(listing.wait_for_refresh())
    await asyncio.sleep(0)
    assert not waiter.done()

    gate.set()
    snapshot = await waiter
    await first

    assert snapshot.state is ListingState.MERGED
    assert snapshot.get(approved.id) is not None
    assert await listing.wait_for_refresh() is listing.snapshot
