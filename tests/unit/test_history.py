"""Unit tests for HistoryStore windowing and retention."""

from datetime import datetime, timedelta

import pytest

from lanmon.services.history import HistoryStore, clamp_hours


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 19, 12, 0, 0))


@pytest.fixture
def store(session_factory, clock):
    return HistoryStore(session_factory=session_factory, clock=clock)


def test_clamp_hours():
    assert clamp_hours(None) == 24
    assert clamp_hours(0) == 1
    assert clamp_hours(-5) == 1
    assert clamp_hours(500) == 168
    assert clamp_hours(48) == 48


async def test_query_returns_window_in_order(store, clock):
    start = clock.now
    for minutes, status in [(0, "up"), (30, "down"), (60, "up")]:
        clock.now = start + timedelta(minutes=minutes)
        await store.record("ollama", status, 12)

    entries = await store.query("ollama", 24)
    assert [e.status for e in entries] == ["up", "down", "up"]
    assert [e.timestamp for e in entries] == sorted(e.timestamp for e in entries)


async def test_window_excludes_older_entries(store, clock):
    start = clock.now
    await store.record("ollama", "down", None)
    clock.now = start + timedelta(hours=3)
    await store.record("ollama", "up", 8)

    recent = await store.query("ollama", 1)
    assert [e.status for e in recent] == ["up"]

    wider = await store.query("ollama", 4)
    assert [e.status for e in wider] == ["down", "up"]


async def test_hours_are_clamped_to_a_week(store, clock):
    start = clock.now
    await store.record("web", "up", 5)
    clock.now = start + timedelta(days=6, hours=23)
    await store.record("web", "up", 5)

    entries = await store.query("web", 10_000)
    assert len(entries) == 2


async def test_append_prunes_entries_past_retention(store, clock):
    start = clock.now
    await store.record("web", "up", 5)
    clock.now = start + timedelta(days=7, seconds=1)
    await store.record("web", "down", None)

    everything = await store.all_history()
    assert [e.status for e in everything["web"]] == ["down"]


async def test_prune_is_per_target(store, clock):
    start = clock.now
    await store.record("web", "up", 5)
    await store.record("nas", "up", 5)
    clock.now = start + timedelta(days=8)
    await store.record("web", "up", 5)

    everything = await store.all_history()
    assert len(everything["web"]) == 1
    # nas has not been appended to since, so its old entry is still there
    assert len(everything["nas"]) == 1


async def test_targets_are_isolated(store):
    await store.record("web", "up", 5)
    await store.record("nas", "down", None)
    assert [e.service_id for e in await store.query("web")] == ["web"]


async def test_latest_and_clear(store, clock):
    start = clock.now
    await store.record("web", "up", 5)
    clock.now = start + timedelta(minutes=1)
    await store.record("web", "down", None)

    latest = await store.latest("web")
    assert latest.status == "down"
    assert await store.latest("missing") is None

    assert await store.clear("web") == 2
    assert await store.query("web") == []
