"""Unit-test conftest — FakeCollector, payload builders and shared fixtures.

All fixtures here are available to every test under tests/unit/ without import.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from clarity.models.history import Decision, VersionData, VersionRecord
from clarity.research.collector import CollectionRequest
from clarity.research.controller import ResearchJobController
from clarity.research.store import InMemoryJobStore


# ─────────────────────────────────────────────────────────────────────────────
# FakeCollector — drop-in content-collection collaborator
# ─────────────────────────────────────────────────────────────────────────────

class FakeCollector:
    """Configurable fake collector for unit tests.

    Args:
        payload:  Raw findings returned by collect().
        raises:   If set, collect() raises this exception.
        delay:    Seconds to sleep before returning.
        gate:     If set, collect() waits for this event before returning —
                  lets a test decide exactly when the "late" result lands.
    """

    def __init__(
        self,
        payload: dict[str, Any] | None = None,
        *,
        raises: BaseException | None = None,
        delay: float = 0.0,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.payload = payload if payload is not None else {}
        self.raises = raises
        self.delay = delay
        self.gate = gate
        self.calls: list[CollectionRequest] = []
        self.finished = 0

    async def collect(self, request: CollectionRequest) -> dict[str, Any]:
        self.calls.append(request)
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        if self.gate is not None:
            await self.gate.wait()
        self.finished += 1
        if self.raises is not None:
            raise self.raises
        return self.payload


# ─────────────────────────────────────────────────────────────────────────────
# Payload / history builders
# ─────────────────────────────────────────────────────────────────────────────

def _dog_walking_payload(p2_source: str = "c1") -> dict[str, Any]:
    """Two pain points and one citation for the 'dog walking app' query."""
    return {
        "pain_points": [
            {
                "id": "p1",
                "description": "Owners can't find walkers at short notice",
                "severity": "high",
                "frequency": 14,
                "sources": ["c1"],
            },
            {
                "id": "p2",
                "description": "No proof the walk actually happened",
                "severity": "medium",
                "frequency": 6,
                "sources": [p2_source],
            },
        ],
        "competitors": [
            {
                "name": "Rover",
                "url": "https://www.rover.com",
                "pricing": "$20-$30 per walk",
                "features": ["booking", "GPS tracking"],
                "weaknesses": ["high fees"],
            }
        ],
        "MVP_features": ["On-demand booking", "GPS walk report"],
        "out_of_scope": ["Pet insurance"],
        "citations": [
            {
                "id": "c1",
                "url": "https://www.reddit.com/r/dogs/comments/walkers",
                "title": "Finding a reliable dog walker",
                "snippet": "Every walker I tried cancelled last minute…",
                "relevance_score": 0.9,
            }
        ],
        "artifacts": {"pages_crawled": 12},
    }


T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _make_decision(n: int, *, minutes: int = 0, **overrides: Any) -> Decision:
    fields: dict[str, Any] = {
        "id": f"d{n}",
        "timestamp": T0 + timedelta(minutes=minutes),
        "decision_type": "feature",
        "state": "locked",
        "summary": f"Decision number {n}",
        "rationale": [f"reason {n}a", f"reason {n}b"],
    }
    fields.update(overrides)
    return Decision(**fields)


def _make_history() -> list[VersionRecord]:
    """Two versions, three decisions, one with awkward CSV characters."""
    return [
        VersionRecord(
            id="v-1",
            project_id="dog-walk",
            sequence=1,
            label="v1",
            timestamp=T0,
            data=VersionData(
                name="Pawsome",
                audience="busy dog owners",
                problem="walkers cancel last minute",
                must_haves=["On-demand booking"],
                not_now=["Pet insurance"],
            ),
            decisions=[
                _make_decision(1, minutes=5),
                _make_decision(
                    2,
                    minutes=1,
                    summary='Say "no" to grooming, for now',
                    rationale=["scope; focus", "line one\nline two"],
                ),
            ],
        ),
        VersionRecord(
            id="v-2",
            project_id="dog-walk",
            sequence=2,
            label="v2",
            timestamp=T0 + timedelta(days=1),
            decisions=[_make_decision(3, minutes=60 * 24 + 3, decision_type="pain_point")],
        ),
    ]


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def job_store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def dog_payload():
    """Factory: dog_payload(p2_source="c1") → raw collector payload."""
    return _dog_walking_payload


@pytest.fixture
def decision_factory():
    """Factory: decision_factory(n, minutes=0, **overrides) → Decision."""
    return _make_decision


@pytest.fixture
def history() -> list[VersionRecord]:
    return _make_history()


@pytest.fixture
def fake_collector():
    """The FakeCollector class: fake_collector(payload, raises=..., gate=...)."""
    return FakeCollector


@pytest.fixture
async def make_controller(job_store):
    """Factory: make_controller(collector, **kwargs) → ResearchJobController.

    Controllers share the ``job_store`` fixture; leftover collector tasks are
    cancelled at teardown.
    """
    created: list[ResearchJobController] = []

    def _make(collector, **kwargs) -> ResearchJobController:
        kwargs.setdefault("timeout_s", 5.0)
        controller = ResearchJobController(collector, job_store, **kwargs)
        created.append(controller)
        return controller

    yield _make

    for controller in created:
        await controller.shutdown()
