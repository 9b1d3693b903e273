"""Integration tests — job and history stores against a real Redis.

Run with:
    CLARITY_TEST_INTEGRATION=1 pytest tests/integration/ -v
"""

from __future__ import annotations

import os

import pytest

from clarity.history.store import RedisHistoryStore
from clarity.models.history import VersionRecord
from clarity.models.insight import InsightData
from clarity.models.job import ResearchJob
from clarity.research.store import RedisJobStore

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.getenv("CLARITY_TEST_INTEGRATION"),
        reason="Set CLARITY_TEST_INTEGRATION=1 to run integration tests",
    ),
]


@pytest.mark.asyncio
async def test_job_round_trip(redis_url, project_id):
    store = RedisJobStore(redis_url)
    try:
        job = ResearchJob(user_id="it-user", project_id=project_id, query="dog walking app")
        await store.put(job)
        assert await store.get(job.id) == job

        done = job.complete(InsightData(MVP_features=["booking"]))
        await store.put(done)
        assert (await store.get(job.id)).is_terminal
    finally:
        r = await store._redis()
        await r.delete(RedisJobStore.key(job.id))
        await store.close()


@pytest.mark.asyncio
async def test_history_append_and_read(redis_url, project_id):
    store = RedisHistoryStore(redis_url)
    try:
        for _ in range(3):
            await store.append(VersionRecord(project_id=project_id))
        history = await store.read(project_id)
        assert [v.sequence for v in history] == [1, 2, 3]
        assert [v.label for v in history] == ["v1", "v2", "v3"]
    finally:
        r = await store._redis()
        await r.delete(RedisHistoryStore.list_key(project_id), RedisHistoryStore.seq_key(project_id))
        await store.close()
