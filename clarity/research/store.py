"""Job stores — get/put-by-id persistence for ResearchJob records.

Two implementations:
    InMemoryJobStore — dict of deep copies; tests and single-process use
    RedisJobStore    — JSON string at ``clarity:job:{id}`` (redis.asyncio)

Only atomic single-record writes are assumed. Unlike the research log
buffers elsewhere, a job record is the source of truth for the state
machine, so Redis errors are logged and re-raised, never swallowed.

Dependency injection:
    Pass ``_redis`` to inject a pre-built client in tests.
    In production leave it None — the store connects lazily.
"""

from __future__ import annotations

from typing import Protocol

import structlog

from clarity.models.job import ResearchJob

logger = structlog.get_logger().bind(component="research.store")

_KEY_PREFIX = "clarity:job:"


class JobStore(Protocol):
    async def get(self, job_id: str) -> ResearchJob | None:
        ...

    async def put(self, job: ResearchJob) -> None:
        ...


class InMemoryJobStore:
    """Process-local job store. Hands out copies so callers cannot edit records."""

    def __init__(self) -> None:
        self._jobs: dict[str, ResearchJob] = {}

    async def get(self, job_id: str) -> ResearchJob | None:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job is not None else None

    async def put(self, job: ResearchJob) -> None:
        self._jobs[job.id] = job.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._jobs)


class RedisJobStore:
    """Job records as JSON strings in Redis.

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
        """Return a live redis.asyncio.Redis connection (cached)."""
        if self._redis_client is None:
            import redis.asyncio as aioredis

            self._redis_client = aioredis.from_url(self._redis_url, decode_responses=True)
        return self._redis_client

    @staticmethod
    def key(job_id: str) -> str:
        return f"{_KEY_PREFIX}{job_id}"

    async def get(self, job_id: str) -> ResearchJob | None:
        r = await self._redis()
        try:
            raw = await r.get(self.key(job_id))
        except Exception as exc:
            logger.warning("job_store_get_failed", job_id=job_id, error=str(exc))
            raise
        if raw is None:
            return None
        return ResearchJob.model_validate_json(raw)

    async def put(self, job: ResearchJob) -> None:
        r = await self._redis()
        try:
            await r.set(self.key(job.id), job.model_dump_json())
        except Exception as exc:
            logger.warning("job_store_put_failed", job_id=job.id, error=str(exc))
            raise
        logger.debug("job_stored", job_id=job.id, status=job.status.value)

    async def close(self) -> None:
        if self._redis_client is not None:
            await self._redis_client.aclose()
            self._redis_client = None
