"""ResearchJob — one tracked unit of asynchronous research work.

State machine::

    running ──► completed   (insight_data attached)
        └─────► failed      (error recorded)

Both right-hand states are terminal. Records are never edited in place:
``complete()``, ``fail()`` and ``record_step()`` return a new, validated
copy, and all three refuse to touch a terminal job.

Progress::

    submitted → collecting → validating → completed
                          └──────────────→ failed

``progress_steps`` is an append-only log of the steps a job went through;
its last entry is the job's current step. The terminal transitions append
the final status themselves.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from clarity.errors import InvalidInput, InvalidTransition
from clarity.models.insight import InsightData
from clarity.utils.clock import as_utc, now_utc


class JobStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.RUNNING


STEP_SUBMITTED = "submitted"
STEP_COLLECTING = "collecting"
STEP_VALIDATING = "validating"

# Steps of a successful job, in order
PROGRESS_STEPS: tuple[str, ...] = (
    STEP_SUBMITTED,
    STEP_COLLECTING,
    STEP_VALIDATING,
    JobStatus.COMPLETED.value,
)


class JobError(BaseModel):
    """Error recorded on a failed job (see ``ClarityError.to_job_error``)."""

    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ResearchJob(BaseModel):
    """A research task for one (user, project, query).

    Stored as JSON at ``clarity:job:{id}`` by ``RedisJobStore``.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    project_id: str
    query: str
    status: JobStatus = JobStatus.RUNNING
    insight_data: InsightData | None = None
    artifacts: dict[str, Any] | None = None
    error: JobError | None = None
    created_at: datetime = Field(default_factory=now_utc)
    completed_at: datetime | None = None
    progress_steps: list[str] = Field(default_factory=lambda: [STEP_SUBMITTED])
    """Append-only step log; see ``record_step()``."""

    @field_validator("created_at", "completed_at")
    @classmethod
    def timestamps_as_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else None

    @model_validator(mode="after")
    def _check_status_fields(self) -> "ResearchJob":
        completed = self.status is JobStatus.COMPLETED
        if completed != (self.insight_data is not None):
            raise ValueError("insight_data must be present iff status is 'completed'")
        if self.artifacts is not None and not completed:
            raise ValueError("artifacts are only attached to completed jobs")
        if (self.status is JobStatus.FAILED) != (self.error is not None):
            raise ValueError("error must be present iff status is 'failed'")
        if self.status.is_terminal != (self.completed_at is not None):
            raise ValueError("completed_at must be set iff the job is terminal")
        return self

    # ── Convenience properties ──────────────────────────────────────────

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def duration_s(self) -> float | None:
        """Seconds from creation to the terminal transition."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.created_at).total_seconds()

    @property
    def current_step(self) -> str:
        return self.progress_steps[-1] if self.progress_steps else ""

    @property
    def progress(self) -> float:
        """0.0 → 1.0, from the steps recorded so far. Terminal jobs are at 1.0."""
        if self.is_terminal:
            return 1.0
        return min(len(self.progress_steps) / len(PROGRESS_STEPS), 1.0)

    # ── State machine ───────────────────────────────────────────────────

    def complete(
        self,
        insight_data: InsightData,
        artifacts: dict[str, Any] | None = None,
        at: datetime | None = None,
    ) -> "ResearchJob":
        return self._transition(
            status=JobStatus.COMPLETED,
            insight_data=insight_data,
            artifacts=artifacts,
            completed_at=at or now_utc(),
        )

    def fail(self, error: JobError, at: datetime | None = None) -> "ResearchJob":
        return self._transition(
            status=JobStatus.FAILED,
            error=error,
            completed_at=at or now_utc(),
        )

    def record_step(self, step: str) -> "ResearchJob":
        """Append *step* to the progress log of a running job.

        Repeating the current step is a no-op.

        Raises:
            InvalidTransition: the job is already terminal.
            InvalidInput: *step* is blank.
        """
        step = step.strip()
        if not step:
            raise InvalidInput("progress step must not be empty", {"job_id": self.id})
        if self.is_terminal:
            raise InvalidTransition(
                f"job {self.id} is already {self.status.value}; cannot record step {step!r}",
                {"job_id": self.id, "status": self.status.value, "attempted": step},
            )
        if step == self.current_step:
            return self
        return self.model_copy(update={"progress_steps": [*self.progress_steps, step]})

    def _transition(self, **update: Any) -> "ResearchJob":
        if self.is_terminal:
            raise InvalidTransition(
                f"job {self.id} is already {self.status.value}",
                {"job_id": self.id, "status": self.status.value,
                 "attempted": update["status"].value},
            )
        data = {**dict(self), **update}
        data["progress_steps"] = [*self.progress_steps, update["status"].value]
        return ResearchJob.model_validate(data)
