"""Content-collection collaborators.

A collector runs the external research for one job and returns the raw
payload described in ``clarity.research.normalize``, or raises. It is
called once per job by the controller; collectors must tolerate being
called again for the same job (the controller restarts collection for a
running job it did not submit itself).

``FileCollector`` replays a captured payload from disk — handy for the CLI
and for reproducing a job offline.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import structlog
from pydantic import BaseModel

logger = structlog.get_logger().bind(component="research.collector")


class CollectionRequest(BaseModel):
    """What the collector is asked to research."""

    job_id: str
    user_id: str
    project_id: str
    query: str


@runtime_checkable
class Collector(Protocol):
    async def collect(self, request: CollectionRequest) -> Mapping[str, Any]:
        ...


class FileCollector:
    """Collector that returns a raw payload stored as JSON.

    Args:
        path:     JSON file holding the raw findings payload.
        delay_s:  Optional artificial latency before returning.
    """

    def __init__(self, path: Path, delay_s: float = 0.0) -> None:
        self.path = Path(path)
        self.delay_s = delay_s

    async def collect(self, request: CollectionRequest) -> Mapping[str, Any]:
        if self.delay_s > 0:
            await asyncio.sleep(self.delay_s)
        text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        payload = json.loads(text)
        logger.info(
            "findings_loaded",
            job_id=request.job_id,
            path=str(self.path),
            keys=sorted(payload) if isinstance(payload, dict) else None,
        )
        return payload
