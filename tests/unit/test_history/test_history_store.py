"""Unit tests for version history stores and the research snapshot hook."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from clarity.history.store import (
    InMemoryHistoryStore,
    RedisHistoryStore,
    decisions_from_insight,
    snapshot_hook,
)
from clarity.models.history import VersionRecord
from clarity.research.normalize import normalize_findings


# ─────────────────────────────────────────────────────────────────────────────
# InMemoryHistoryStore
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_append_assigns_gapless_sequence():
    store = InMemoryHistoryStore()
    stored = [await store.append(VersionRecord(project_id="dog-walk")) for _ in range(3)]

    assert [v.sequence for v in stored] == [1, 2, 3]
    assert [v.label for v in stored] == ["v1", "v2", "v3"]
    assert [v.id for v in await store.read("dog-walk")] == [v.id for v in stored]


@pytest.mark.asyncio
async def test_sequences_are_per_project():
    store = InMemoryHistoryStore()
    await store.append(VersionRecord(project_id="a"))
    other = await store.append(VersionRecord(project_id="b"))
    assert other.sequence == 1


@pytest.mark.asyncio
async def test_explicit_label_is_kept():
    store = InMemoryHistoryStore()
    stored = await store.append(VersionRecord(project_id="a", label="Pre-launch"))
    assert stored.label == "Pre-launch"
    assert stored.display_label == "Pre-launch"


@pytest.mark.asyncio
async def test_read_unknown_project_is_empty():
    assert await InMemoryHistoryStore().read("nope") == []


@pytest.mark.asyncio
async def test_read_returns_copies():
    store = InMemoryHistoryStore()
    await store.append(VersionRecord(project_id="a"))
    [v] = await store.read("a")
    v.label = "edited"
    assert (await store.read("a"))[0].label == "v1"


# ─────────────────────────────────────────────────────────────────────────────
# RedisHistoryStore
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_redis_append_uses_counter_and_list():
    r = AsyncMock()
    r.incr = AsyncMock(return_value=4)
    r.rpush = AsyncMock(return_value=4)
    store = RedisHistoryStore(_redis=r)

    stored = await store.append(VersionRecord(project_id="dog-walk"))

    assert stored.sequence == 4
    assert stored.label == "v4"
    r.incr.assert_awaited_once_with("clarity:history:seq:dog-walk")
    key, payload = r.rpush.call_args.args
    assert key == "clarity:history:dog-walk"
    assert VersionRecord.model_validate_json(payload) == stored


@pytest.mark.asyncio
async def test_redis_read_orders_by_sequence():
    records = [
        VersionRecord(project_id="p", sequence=2, label="v2"),
        VersionRecord(project_id="p", sequence=1, label="v1"),
    ]
    r = AsyncMock()
    r.lrange = AsyncMock(return_value=[v.model_dump_json() for v in records])
    store = RedisHistoryStore(_redis=r)

    history = await store.read("p")

    assert [v.sequence for v in history] == [1, 2]
    r.lrange.assert_awaited_once_with("clarity:history:p", 0, -1)


# ─────────────────────────────────────────────────────────────────────────────
# Snapshots
# ─────────────────────────────────────────────────────────────────────────────

def test_decisions_from_insight(dog_payload):
    from clarity.utils.clock import now_utc

    insight, _ = normalize_findings(dog_payload())
    at = now_utc()
    decisions = decisions_from_insight(insight, at)

    assert [d.decision_type for d in decisions] == [
        "pain_point", "pain_point", "feature", "feature",
    ]
    assert decisions[0].summary == "Owners can't find walkers at short notice"
    assert decisions[0].evidence == ["c1"]
    assert all(d.state == "pending" and d.timestamp == at for d in decisions)
    assert len({d.id for d in decisions}) == 4


@pytest.mark.asyncio
async def test_snapshot_hook_records_completed_jobs(make_controller, fake_collector, dog_payload):
    history = InMemoryHistoryStore()
    controller = make_controller(
        fake_collector(dog_payload()),
        on_terminal=[snapshot_hook(history, seed_decisions=True)],
    )
    job = await controller.submit("u1", "dog-walk", "dog walking app")
    done = await controller.await_completion(job)

    [version] = await history.read("dog-walk")
    assert version.sequence == 1
    assert version.job_id == job.id
    assert version.insight == done.insight_data
    assert version.timestamp == done.completed_at
    assert len(version.decisions) == 4


@pytest.mark.asyncio
async def test_snapshot_hook_skips_failed_jobs(make_controller, fake_collector, dog_payload):
    history = InMemoryHistoryStore()
    controller = make_controller(
        fake_collector(dog_payload(p2_source="c_missing")),
        on_terminal=[snapshot_hook(history)],
    )
    job = await controller.submit("u1", "dog-walk", "dog walking app")
    await controller.await_completion(job)

    assert await history.read("dog-walk") == []
