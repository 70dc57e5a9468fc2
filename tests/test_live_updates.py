"""Snapshot feeds that back the SSE endpoints."""

import asyncio

import pytest

from app.services.live_updates import SnapshotFeed


def first_doc(snapshots):
    return snapshots[0].to_dict() if snapshots and snapshots[0].exists else None


async def test_feed_delivers_initial_state_then_changes(store):
    ref = store.collection("users").document("u1")
    ref.set({"storiesGeneratedThisMonth": 0})
    feed = SnapshotFeed(ref, first_doc).subscribe()

    assert await feed.next(timeout=1) == {"storiesGeneratedThisMonth": 0}

    ref.set({"storiesGeneratedThisMonth": 1})
    assert await feed.next(timeout=1) == {"storiesGeneratedThisMonth": 1}

    feed.unsubscribe()
    assert not feed.active


async def test_unsubscribed_feed_receives_nothing(store):
    ref = store.collection("users").document("u1")
    feed = SnapshotFeed(ref, first_doc).subscribe()
    await feed.next(timeout=1)
    feed.unsubscribe()

    ref.set({"n": 1})

    with pytest.raises(asyncio.TimeoutError):
        await feed.next(timeout=0.05)


async def test_slow_consumer_keeps_newest_snapshot(store):
    ref = store.collection("users").document("u1")
    feed = SnapshotFeed(ref, first_doc, max_pending=1).subscribe()

    for n in range(3):
        ref.set({"n": n})
    await asyncio.sleep(0)

    assert await feed.next(timeout=1) == {"n": 2}
    feed.unsubscribe()


async def test_query_feed_sends_full_filtered_list(store):
    query = store.collection("stories").where("userId", "==", "owner")
    feed = SnapshotFeed(query, lambda snaps: sorted(s.id for s in snaps)).subscribe()
    assert await feed.next(timeout=1) == []

    store.collection("stories").document("b").set({"userId": "owner"})
    store.collection("stories").document("x").set({"userId": "someone-else"})
    store.collection("stories").document("a").set({"userId": "owner"})

    updates = [await feed.next(timeout=1) for _ in range(3)]
    assert updates[-1] == ["a", "b"]
    feed.unsubscribe()


async def test_events_frames_snapshots_as_sse(store):
    ref = store.collection("users").document("u1")
    ref.set({"n": 1})
    feed = SnapshotFeed(ref, first_doc)

    frames = feed.events()
    frame = await frames.__anext__()
    await frames.aclose()

    assert frame == 'data: {"n": 1}\n\n'
    assert not feed.active
