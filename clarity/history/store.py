"""Version history stores — append-only, ordered VersionRecords per project.

Storage layers:
    InMemoryHistoryStore — dict of lists; sequence = list length + 1
    RedisHistoryStore    — LIST ``clarity:history:{project}`` of JSON records,
                           sequence from INCR ``clarity:history:seq:{project}``

Writers assign ``sequence`` (1, 2, 3, … per project, no gaps). Readers get
records ordered by sequence. The export engine relies on that order but
never writes here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

import structlog

from clarity.models.history import Decision, VersionRecord
from clarity.models.insight import InsightData
from clarity.models.job import JobStatus, ResearchJob

logger = structlog.get_logger().bind(component="history.store")


class HistoryStore(Protocol):
    async def append(self, record: VersionRecord) -> VersionRecord:
        ...

    async def read(self, project_id: str) -> list[VersionRecord]:
        ...


def _sequenced(record: VersionRecord, sequence: int) -> VersionRecord:
    return record.model_copy(
        update={"sequence": sequence, "label": record.label or f"v{sequence}"},
        deep=True,
    )


class InMemoryHistoryStore:
    def __init__(self) -> None:
        self._history: dict[str, list[VersionRecord]] = {}

    async def append(self, record: VersionRecord) -> VersionRecord:
        versions = self._history.setdefault(record.project_id, [])
        stored = _sequenced(record, len(versions) + 1)
        versions.append(stored)
        logger.info(
            "version_appended",
            project_id=record.project_id,
            sequence=stored.sequence,
            decisions=len(stored.decisions),
        )
        return stored.model_copy(deep=True)

    async def read(self, project_id: str) -> list[VersionRecord]:
        return [v.model_copy(deep=True) for v in self._history.get(project_id, [])]


class RedisHistoryStore:
    """Version history in Redis.

    Args:
        redis_url: Redis connection string (defaults to settings).
        _redis:    Pre-built ``redis.asyncio.Redis`` (inject for tests).
    """

    def __init__(self, redis_url: str | None = None, *, _redis=None) -> None:
        if redis_url is None and _redis is None:
            from clarity.config import settings
            redis_url = settings.redis_url
        self._redis_url = redis_url
        self._redis_client = _redis

    async def _redis(self):
        if self._redis_client is None:
            import redis.asyncio as aioredis

            self._redis_client = aioredis.from_url(self._redis_url, decode_responses=True)
        return self._redis_client

    @staticmethod
    def list_key(project_id: str) -> str:
        return f"clarity:history:{project_id}"

    @staticmethod
    def seq_key(project_id: str) -> str:
        return f"clarity:history:seq:{project_id}"

    async def append(self, record: VersionRecord) -> VersionRecord:
        r = await self._redis()
        sequence = int(await r.incr(self.seq_key(record.project_id)))
        stored = _sequenced(record, sequence)
        await r.rpush(self.list_key(record.project_id), stored.model_dump_json())
        logger.info("version_appended", project_id=record.project_id, sequence=sequence)
        return stored

    async def read(self, project_id: str) -> list[VersionRecord]:
        r = await self._redis()
        raw = await r.lrange(self.list_key(project_id), 0, -1)
        records = [VersionRecord.model_validate_json(item) for item in raw]
        # Concurrent writers may RPUSH out of INCR order
        return sorted(records, key=lambda v: v.sequence)

    async def close(self) -> None:
        if self._redis_client is not None:
            await self._redis_client.aclose()
            self._redis_client = None


# ── Snapshots of completed research jobs ─────────────────────────────────────


def decisions_from_insight(insight: InsightData, at: datetime) -> list[Decision]:
    """Seed pending decisions for a fresh insight: one per pain point and MVP feature."""
    decisions = [
        Decision(
            timestamp=at,
            decision_type="pain_point",
            summary=p.description,
            rationale=[f"severity {p.severity}", f"reported {p.frequency} times"],
            evidence=list(p.sources),
        )
        for p in insight.pain_points
    ]
    decisions.extend(
        Decision(timestamp=at, decision_type="feature", summary=feature)
        for feature in insight.MVP_features
    )
    return decisions


def snapshot_hook(store: HistoryStore, *, seed_decisions: bool = False):
    """Terminal hook that appends a VersionRecord for every completed job.

    Usage::

        history = InMemoryHistoryStore()
        controller = ResearchJobController(collector, on_terminal=[snapshot_hook(history)])
    """

    async def append_snapshot(job: ResearchJob) -> None:
        if job.status is not JobStatus.COMPLETED:
            return
        record = VersionRecord(
            project_id=job.project_id,
            timestamp=job.completed_at,
            job_id=job.id,
            insight=job.insight_data,
            decisions=(
                decisions_from_insight(job.insight_data, job.completed_at)
                if seed_decisions else []
            ),
        )
        await store.append(record)

    return append_snapshot
