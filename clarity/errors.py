"""Clarity error taxonomy.

Every error carries a stable ``code`` plus a human message and optional
details, and renders to the same payload shape used by the API layer::

    {"error": {"code": "invalid_input", "message": "...", "details": {...}}}

Errors raised by the research work itself are never propagated out of
``ResearchJobController.await_completion``; they are recorded on the job as a
``JobError`` (see ``ClarityError.to_job_error``).
"""

from __future__ import annotations

from typing import Any


def build_error_payload(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return payload


class ClarityError(Exception):
    """Base class for all Clarity errors."""

    code = "clarity_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def to_payload(self) -> dict[str, Any]:
        return build_error_payload(self.code, self.message, self.details)

    def to_job_error(self):
        """Convert to the ``JobError`` record stored on a failed job."""
        from clarity.models.job import JobError

        return JobError(code=self.code, message=self.message, details=self.details)


class InvalidInput(ClarityError):
    """Bad submission parameters (empty or over-long query, missing ids)."""

    code = "invalid_input"


class InvalidTransition(ClarityError):
    """Illegal state change — the job is already terminal."""

    code = "invalid_transition"


class InsightValidationError(ClarityError):
    """InsightData broke one or more invariants.

    ``violations`` lists every problem found, not just the first.
    """

    code = "validation_error"

    def __init__(self, violations: list[str], message: str | None = None) -> None:
        self.violations = list(violations)
        super().__init__(
            message or f"insight data failed validation: {'; '.join(self.violations)}",
            {"violations": self.violations},
        )


class CollaboratorFailure(ClarityError):
    """The content-collection collaborator errored or timed out."""

    code = "collaborator_failure"


class CancellationError(ClarityError):
    """The job was cancelled before it reached a result."""

    code = "cancelled"


class UnsupportedFormat(ClarityError):
    """Requested export format is not json, csv or document."""

    code = "unsupported_format"


class JobNotFound(ClarityError):
    code = "job_not_found"
