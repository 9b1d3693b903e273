"""InsightData validation — the gate in front of the ``completed`` state.

``validate()`` is deterministic and side-effect-free. It collects every
violation rather than stopping at the first, so a failed job's error
explains everything that was wrong with the collector's output.

Checks:
    - ids are unique across all id-bearing entities (pain points,
      opportunities, personas, citations)
    - every pain point / opportunity ``sources`` entry names a citation
    - severity and competition_level are one of low | medium | high
    - relevance_score is within [0, 1]
    - frequency is not negative
"""

from __future__ import annotations

import math
from collections import Counter

from clarity.errors import InsightValidationError
from clarity.models.insight import LEVELS, InsightData


def find_violations(data: InsightData) -> list[str]:
    """Return a human-readable list of invariant violations (empty when valid)."""
    violations: list[str] = []

    ids = [
        *(("pain point", p.id) for p in data.pain_points),
        *(("opportunity", o.id) for o in data.opportunities),
        *(("persona", p.id) for p in data.personas),
        *(("citation", c.id) for c in data.citations),
    ]
    counts = Counter(i for _, i in ids)
    reported: set[str] = set()
    for kind, entity_id in ids:
        if counts[entity_id] > 1 and entity_id not in reported:
            reported.add(entity_id)
            violations.append(f"duplicate id {entity_id!r} ({counts[entity_id]} entities)")
        if not entity_id:
            violations.append(f"{kind} has an empty id")

    citation_ids = data.citation_ids
    for p in data.pain_points:
        for src in p.sources:
            if src not in citation_ids:
                violations.append(f"pain point {p.id!r} cites unknown citation {src!r}")
        if p.severity not in LEVELS:
            violations.append(f"pain point {p.id!r} has invalid severity {p.severity!r}")
        if p.frequency < 0:
            violations.append(f"pain point {p.id!r} has negative frequency {p.frequency}")

    for o in data.opportunities:
        for src in o.sources:
            if src not in citation_ids:
                violations.append(f"opportunity {o.id!r} cites unknown citation {src!r}")
        if o.competition_level not in LEVELS:
            violations.append(
                f"opportunity {o.id!r} has invalid competition_level {o.competition_level!r}"
            )

    for c in data.citations:
        score = c.relevance_score
        if math.isnan(score) or not 0.0 <= score <= 1.0:
            violations.append(f"citation {c.id!r} relevance_score {score} outside [0, 1]")

    return violations


def validate(data: InsightData) -> None:
    """Raise ``InsightValidationError`` listing every violation, if any."""
    violations = find_violations(data)
    if violations:
        raise InsightValidationError(violations)


def is_valid(data: InsightData) -> bool:
    return not find_violations(data)
