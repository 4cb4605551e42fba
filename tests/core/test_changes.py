"""Tests for the polling change feed."""

import asyncio

import pytest

from chronicle.core.storage import ChangeFeed, PollingChangeFeed


@pytest.mark.smoke
def test_polling_feed_satisfies_protocol(store):
    assert isinstance(PollingChangeFeed(store), ChangeFeed)


@pytest.mark.asyncio
async def test_yields_initial_contents(store):
    await store.insert("notes", {"n": 1})
    feed = PollingChangeFeed(store, interval=0.01)
    updates = feed.subscribe("notes")
    try:
        first = await asyncio.wait_for(updates.__anext__(), timeout=1)
    finally:
        await updates.aclose()
    assert [doc.get("n") for doc in first] == [1]


@pytest.mark.asyncio
async def test_yields_again_after_change(store):
    feed = PollingChangeFeed(store, interval=0.01)
    updates = feed.subscribe("notes")
    try:
        assert await asyncio.wait_for(updates.__anext__(), timeout=1) == []
        await store.insert("notes", {"n": 1})
        second = await asyncio.wait_for(updates.__anext__(), timeout=1)
    finally:
        await updates.aclose()
    assert len(second) == 1


@pytest.mark.asyncio
async def test_predicate_filters_and_suppresses_unrelated_changes(store):
    feed = PollingChangeFeed(store, interval=0.01)
    updates = feed.subscribe("notes", lambda doc: doc.get("flag") is True)
    try:
        assert await asyncio.wait_for(updates.__anext__(), timeout=1) == []

        # An unmatched document does not change the filtered view
        await store.insert("notes", {"flag": False})
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(updates.__anext__(), timeout=0.1)
    finally:
        await updates.aclose()