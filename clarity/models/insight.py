"""InsightData — the structured result of one research job.

InsightData is built once, atomically, when a job completes and is never
mutated afterwards: every model here is frozen and every sequence is a tuple.

Cross-entity invariants (unique ids, citation references) are not enforced at
construction time; they are checked by ``clarity.research.validation`` so that
the controller can report *every* violation and fail the job cleanly.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Level = Literal["low", "medium", "high"]

LEVELS: tuple[str, ...] = ("low", "medium", "high")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


def _ordered_unique(values: tuple[str, ...]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for v in values:
        seen.setdefault(v, None)
    return tuple(seen)


class Citation(_Frozen):
    id: str
    url: str
    title: str = "Untitled"
    snippet: str = ""
    relevance_score: float = Field(
        default=0.0,
        description="0.0 → 1.0. Range is checked by validate(), not here.",
    )


class PainPoint(_Frozen):
    id: str
    description: str
    severity: Level = "medium"
    frequency: int = Field(default=0, ge=0)
    sources: tuple[str, ...] = ()
    """Citation ids. Set semantics; first-seen order is kept."""

    @field_validator("sources")
    @classmethod
    def dedupe_sources(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _ordered_unique(v)


class Competitor(_Frozen):
    name: str
    url: str = ""
    pricing: str = ""
    features: tuple[str, ...] = ()
    weaknesses: tuple[str, ...] = ()


class Opportunity(_Frozen):
    id: str
    description: str
    market_size: str = ""
    competition_level: Level = "medium"
    sources: tuple[str, ...] = ()

    @field_validator("sources")
    @classmethod
    def dedupe_sources(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _ordered_unique(v)


class Demographics(_Frozen):
    age_range: str = ""
    income: str = ""
    location: str = ""


class Persona(_Frozen):
    id: str
    name: str
    description: str = ""
    pain_points: tuple[str, ...] = ()
    goals: tuple[str, ...] = ()
    demographics: Demographics = Field(default_factory=Demographics)


class InsightData(_Frozen):
    """Structured output of a research job."""

    pain_points: tuple[PainPoint, ...] = ()
    competitors: tuple[Competitor, ...] = ()
    opportunities: tuple[Opportunity, ...] = ()
    MVP_features: tuple[str, ...] = ()
    out_of_scope: tuple[str, ...] = ()
    personas: tuple[Persona, ...] = ()
    citations: tuple[Citation, ...] = ()

    # ── Convenience properties ──────────────────────────────────────────

    @property
    def citation_ids(self) -> set[str]:
        return {c.id for c in self.citations}

    @property
    def is_empty(self) -> bool:
        return not (
            self.pain_points
            or self.competitors
            or self.opportunities
            or self.MVP_features
            or self.personas
        )

    def summary(self) -> dict[str, int]:
        """Entity counts, for log events and document headings."""
        return {
            "pain_points": len(self.pain_points),
            "competitors": len(self.competitors),
            "opportunities": len(self.opportunities),
            "personas": len(self.personas),
            "citations": len(self.citations),
        }
