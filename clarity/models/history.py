"""Version history models — Decision, VersionRecord and friends.

A project's history is an append-only, ordered sequence of VersionRecords.
Each record snapshots the project brief at that point, optionally the
InsightData produced by a research job, and the decisions taken on it.

Decision vocabulary:
    decision_type — persona | feature | pain_point | insight |
                    competitor_gap | journey_stage
    state         — pending | locked | refined | replaced | discarded |
                    scoped_out | not_now
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from clarity.models.insight import InsightData
from clarity.utils.clock import as_utc, now_utc

DecisionType = Literal[
    "persona", "feature", "pain_point", "insight", "competitor_gap", "journey_stage",
]
DecisionState = Literal[
    "pending", "locked", "refined", "replaced", "discarded", "scoped_out", "not_now",
]


class Decision(BaseModel):
    """A single product decision taken on a version."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=now_utc)
    decision_type: DecisionType = "insight"
    state: DecisionState = "pending"

    summary: str
    """One line: 'Ship GPS walk tracking in the MVP'."""

    rationale: list[str] = Field(default_factory=list)
    """Ordered reasons backing the decision."""

    evidence: list[str] = Field(default_factory=list)
    """Citation ids from the version's InsightData."""

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class VersionData(BaseModel):
    """The project brief captured with a version."""

    name: str = ""
    audience: str = ""
    problem: str = ""
    why_current_fails: str = ""
    promise: str = ""
    must_haves: list[str] = Field(default_factory=list)
    not_now: list[str] = Field(default_factory=list)
    constraints: str = ""
    positioning: str | None = None

    @property
    def positioning_line(self) -> str:
        """Explicit positioning, or the default 'We help …' line."""
        if self.positioning:
            return self.positioning
        return (
            f"We help {self.audience or 'users'} solve {self.problem or 'their problem'} "
            f"without {self.why_current_fails or 'friction'}, by {self.promise or 'our approach'}."
        )


class LockedDecisions(BaseModel):
    must_haves_locked: list[str] = Field(default_factory=list)
    not_now_locked: list[str] = Field(default_factory=list)


class VersionRecord(BaseModel):
    """One entry in a project's append-only history.

    ``sequence`` is assigned by the history store on append: 1, 2, 3, …
    per project, with no gaps.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str
    sequence: int = Field(default=0, ge=0)
    label: str = ""
    timestamp: datetime = Field(default_factory=now_utc)
    data: VersionData | None = None
    locked: LockedDecisions = Field(default_factory=LockedDecisions)
    job_id: str | None = None
    insight: InsightData | None = None
    decisions: list[Decision] = Field(default_factory=list)

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, v: datetime) -> datetime:
        """Naive timestamps (hand-written history files) are read as UTC."""
        return as_utc(v)

    @property
    def display_label(self) -> str:
        return self.label or f"v{self.sequence}"

    def chronological_decisions(self) -> list[Decision]:
        """Decisions sorted by timestamp; ties keep their recorded order."""
        return sorted(self.decisions, key=lambda d: as_utc(d.timestamp))


# Validates / serialises a whole history (a JSON array of VersionRecords)
HistoryAdapter = TypeAdapter(list[VersionRecord])


def decision_count(history: list[VersionRecord]) -> int:
    return sum(len(v.decisions) for v in history)
