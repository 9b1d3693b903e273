"""Normalise a collector's raw payload into InsightData.

Raw payload shape (every key optional)::

    {
      "pain_points": [...], "competitors": [...], "opportunities": [...],
      "MVP_features": [...], "out_of_scope": [...], "personas": [...],
      "citations": [...],
      "findings": [{"url": ..., "title": ..., "snippet": ..., "content": ...,
                    "score": 0.8}, ...],
      "artifacts": {...}
    }

When ``citations`` is missing they are derived from ``findings`` — the
search results the collector gathered — keeping at most
``MAX_DERIVED_CITATIONS`` that carry both a URL and some text.

Schema problems (wrong types, unknown severities) surface as
``InsightValidationError`` so the controller fails the job instead of
publishing partial data.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError, to_json

from clarity.errors import InsightValidationError
from clarity.models.insight import InsightData

logger = structlog.get_logger().bind(component="research.normalize")

MAX_DERIVED_CITATIONS = 10

# Snippet fallback length when a finding only has full content
_SNIPPET_CHARS = 200

# Rank-based relevance for findings that carry no score: 1.00, 0.95, 0.90, …
_RANK_STEP = 0.05

_INSIGHT_KEYS = (
    "pain_points",
    "competitors",
    "opportunities",
    "MVP_features",
    "out_of_scope",
    "personas",
    "citations",
)


def derive_citations(findings: list[Any]) -> list[dict[str, Any]]:
    """Build citation dicts from raw search findings."""
    usable = [
        f for f in findings
        if isinstance(f, Mapping)
        and str(f.get("url") or "").startswith("http")
        and (f.get("snippet") or f.get("content"))
    ]
    citations = []
    for i, f in enumerate(usable[:MAX_DERIVED_CITATIONS]):
        snippet = f.get("snippet") or str(f.get("content", ""))[:_SNIPPET_CHARS]
        score = f.get("score")
        citations.append({
            "id": f"citation-{i}",
            "url": f["url"],
            "title": f.get("title") or "Untitled",
            "snippet": snippet,
            "relevance_score": score if score is not None else round(1.0 - _RANK_STEP * i, 2),
        })
    return citations


def _artifacts(raw: Mapping[str, Any]) -> dict[str, Any] | None:
    artifacts = raw.get("artifacts")
    if artifacts is None:
        return None
    if not isinstance(artifacts, Mapping):
        artifacts = {"value": artifacts}
    bad_keys = [k for k in artifacts if not isinstance(k, str)]
    if bad_keys:
        raise InsightValidationError(
            [f"artifacts: keys must be strings, got {', '.join(repr(k) for k in bad_keys)}"]
        )
    # Jobs are stored as JSON
    try:
        to_json(artifacts)
    except PydanticSerializationError as exc:
        raise InsightValidationError([f"artifacts: not JSON-serialisable ({exc})"]) from exc
    return dict(artifacts)


def normalize_findings(raw: Mapping[str, Any]) -> tuple[InsightData, dict[str, Any] | None]:
    """Return ``(insight, artifacts)`` for a collector payload.

    Raises:
        InsightValidationError: if the payload is not a mapping, its
            ``findings`` is not a list, its ``artifacts`` cannot be stored,
            or it does not fit the InsightData schema.
    """
    if not isinstance(raw, Mapping):
        raise InsightValidationError(
            [f"collector returned {type(raw).__name__}, expected a mapping"]
        )

    findings = raw.get("findings")
    if findings is not None and not isinstance(findings, (list, tuple)):
        raise InsightValidationError(
            [f"findings: expected a list, got {type(findings).__name__}"]
        )

    payload = {k: raw[k] for k in _INSIGHT_KEYS if k in raw}
    if "citations" not in payload and findings:
        payload["citations"] = derive_citations(list(findings))
        logger.debug("citations_derived", count=len(payload["citations"]))

    try:
        insight = InsightData.model_validate(payload)
    except ValidationError as exc:
        violations = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        ]
        raise InsightValidationError(violations) from exc

    return insight, _artifacts(raw)
