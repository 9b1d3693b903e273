"""ResearchJobController — drives one research job from submission to a terminal state.

Lifecycle::

    submit()            → job persisted as ``running``; collector task started
    await_completion()  → the single suspension point; waits for the
                          collector, normalises + validates its payload, then
                          commits exactly one terminal transition
    cancel()            → ``running`` → ``failed`` (CancellationError)

Guarantees:
    - A job reaches a terminal state at most once. Every transition is built
      from the freshly loaded record, and ``ResearchJob`` itself refuses to
      leave a terminal state (InvalidTransition), so a refused transition
      never touches the stored record.
    - Fail-closed publishing: a payload that breaks an InsightData invariant
      fails the job; partial insight data is never attached.
    - Research errors (timeout, collector exception, cancellation, unusable
      payload) are recorded on the job, not raised from ``await_completion``.
    - Cancellation is cooperative. In-flight collector work is not pre-empted;
      if its result arrives after the job turned terminal it is discarded.

Progress:
    Each job records ``submitted`` and ``collecting`` on submit, and
    ``validating`` once the collector's payload is in. The terminal
    transition appends ``completed`` or ``failed``.

Concurrency:
    Callers serialise operations per job id (one worker per job). Jobs share
    no mutable state. Per controller there is a registry of in-flight
    collector tasks and of outcomes being committed in the background: a
    collector that finishes while nobody is awaiting its job has its outcome
    committed right away, so finished tasks are never kept around.

Terminal hooks:
    Callables (sync or async) run with the committed terminal job — history
    snapshots, telemetry. A failing hook is logged and never alters the job.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import structlog

from clarity.errors import (
    CancellationError,
    ClarityError,
    CollaboratorFailure,
    InsightValidationError,
    InvalidInput,
    JobNotFound,
)
from clarity.models.job import STEP_COLLECTING, STEP_VALIDATING, ResearchJob
from clarity.research.collector import CollectionRequest, Collector
from clarity.research.normalize import normalize_findings
from clarity.research.store import InMemoryJobStore, JobStore
from clarity.research.validation import validate

logger = structlog.get_logger().bind(component="research.controller")

TerminalHook = Callable[[ResearchJob], "Awaitable[None] | None"]


def _consume_outcome(task: asyncio.Future) -> None:
    """Retrieve a finished collector task's exception so asyncio doesn't warn
    about it when nobody awaits the task (cancelled or timed-out jobs)."""
    if not task.cancelled():
        task.exception()


def _collector_failure(exc: BaseException) -> CollaboratorFailure:
    return CollaboratorFailure(
        f"collector failed: {exc}",
        {"exception": type(exc).__name__},
    )


class ResearchJobController:
    """Owns the state machine of research jobs.

    Args:
        collector:        Content-collection collaborator (see ``Collector``).
        store:            Job record store (defaults to ``InMemoryJobStore``).
        max_query_length: Longest accepted query (defaults to settings).
        timeout_s:        Upper bound on the collector wait (defaults to settings).
        on_terminal:      Hooks run after each terminal transition is stored.
    """

    def __init__(
        self,
        collector: Collector,
        store: JobStore | None = None,
        *,
        max_query_length: int | None = None,
        timeout_s: float | None = None,
        on_terminal: Iterable[TerminalHook] = (),
    ) -> None:
        from clarity.config import settings

        self._collector = collector
        self._store: JobStore = store if store is not None else InMemoryJobStore()
        self.max_query_length = (
            max_query_length if max_query_length is not None else settings.max_query_length
        )
        self.timeout_s = timeout_s if timeout_s is not None else settings.research_timeout_seconds
        self._hooks: list[TerminalHook] = list(on_terminal)
        # job_id → collector task still owned by this controller
        self._tasks: dict[str, asyncio.Future] = {}
        # job ids with an await_completion() suspended on their collector
        self._waiting: set[str] = set()
        # job_id → background commit of an outcome nobody was waiting for
        self._settling: dict[str, asyncio.Future] = {}

    @property
    def store(self) -> JobStore:
        return self._store

    @property
    def in_flight(self) -> int:
        """Collector tasks started by this controller that have not been consumed."""
        return len(self._tasks)

    def add_terminal_hook(self, hook: TerminalHook) -> None:
        self._hooks.append(hook)

    # ── Operations ────────────────────────────────────────────────────────

    async def submit(self, user_id: str, project_id: str, query: str) -> ResearchJob:
        """Create a ``running`` job and start its research.

        Raises:
            InvalidInput: empty ids, empty query, or query over the length limit.
        """
        query = (query or "").strip()
        if not user_id or not project_id:
            raise InvalidInput(
                "user_id and project_id are required",
                {"user_id": user_id, "project_id": project_id},
            )
        if not query:
            raise InvalidInput("query must not be empty")
        if len(query) > self.max_query_length:
            raise InvalidInput(
                f"query is {len(query)} characters; the limit is {self.max_query_length}",
                {"length": len(query), "max_length": self.max_query_length},
            )

        job = ResearchJob(user_id=user_id, project_id=project_id, query=query)
        job = job.record_step(STEP_COLLECTING)
        await self._store.put(job)
        self._start(job)
        logger.info(
            "job_submitted",
            job_id=job.id,
            user_id=user_id,
            project_id=project_id,
            query=query[:100],
        )
        return job

    async def await_completion(self, job: ResearchJob) -> ResearchJob:
        """Wait for the job's research and commit its terminal state.

        Idempotent: a job that is already terminal is returned as stored,
        without running anything again.
        """
        current = await self._load(job.id)
        if current.is_terminal:
            return current

        settling = self._settling.get(current.id)
        if settling is not None:
            # The collector already finished; its outcome is being committed.
            return await asyncio.shield(settling)

        task = self._tasks.get(current.id)
        if task is None:
            # Submitted elsewhere (or by a previous process) — collect again.
            logger.info("collection_restarted", job_id=current.id)
            task = self._start(current)

        self._waiting.add(current.id)
        try:
            raw, error = await self._wait_for(current.id, task)
        finally:
            self._waiting.discard(current.id)
        return await self._settle(current.id, raw, error)

    async def cancel(self, job: ResearchJob) -> ResearchJob:
        """Mark a running job ``failed`` with a CancellationError.

        Raises:
            InvalidTransition: the job is already terminal (store untouched).
            JobNotFound: unknown job id.
        """
        current = await self._load(job.id)
        failed = current.fail(CancellationError("job cancelled by caller").to_job_error())
        task = self._tasks.pop(current.id, None)
        logger.info(
            "job_cancel_requested",
            job_id=current.id,
            collector_in_flight=task is not None and not task.done(),
        )
        return await self._commit(failed)

    async def get(self, job_id: str) -> ResearchJob:
        return await self._load(job_id)

    async def shutdown(self) -> None:
        """Cancel collector tasks nobody is waiting on any more and let
        background commits finish."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        pending = [*tasks, *self._settling.values()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ── Internals ─────────────────────────────────────────────────────────

    def _start(self, job: ResearchJob) -> asyncio.Future:
        request = CollectionRequest(
            job_id=job.id,
            user_id=job.user_id,
            project_id=job.project_id,
            query=job.query,
        )
        task = asyncio.ensure_future(self._collector.collect(request))
        task.add_done_callback(_consume_outcome)
        task.add_done_callback(functools.partial(self._on_collected, job.id))
        self._tasks[job.id] = task
        return task

    def _on_collected(self, job_id: str, task: asyncio.Future) -> None:
        """Commit the outcome of a collector nobody is waiting on."""
        if job_id in self._waiting or self._tasks.get(job_id) is not task:
            return
        del self._tasks[job_id]
        if task.cancelled():
            raw, error = None, CancellationError("research task was cancelled before it finished")
        elif task.exception() is not None:
            raw, error = None, _collector_failure(task.exception())
        else:
            raw, error = task.result(), None
        settler = asyncio.ensure_future(self._settle(job_id, raw, error))
        self._settling[job_id] = settler
        settler.add_done_callback(functools.partial(self._on_settled, job_id))
        logger.debug("collection_finished_unclaimed", job_id=job_id)

    def _on_settled(self, job_id: str, settler: asyncio.Future) -> None:
        if self._settling.get(job_id) is settler:
            del self._settling[job_id]
        if not settler.cancelled() and settler.exception() is not None:
            logger.warning(
                "background_commit_failed",
                job_id=job_id,
                error=str(settler.exception()),
            )

    async def _wait_for(
        self, job_id: str, task: asyncio.Future,
    ) -> tuple[Any, ClarityError | None]:
        """Wait (bounded) for the collector; return ``(raw, error)``."""
        raw: Any = None
        error: ClarityError | None = None
        try:
            raw = await asyncio.wait_for(asyncio.shield(task), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            task.cancel()
            error = CollaboratorFailure(
                f"research timed out after {self.timeout_s:g}s",
                {"timeout_s": self.timeout_s},
            )
        except asyncio.CancelledError:
            if not task.cancelled():
                # Our caller was cancelled, not the research; the job stays running.
                raise
            error = CancellationError("research task was cancelled before it finished")
        except Exception as exc:
            error = _collector_failure(exc)
        finally:
            # A timed-out task is cancelled but not done yet; it is still ours to drop.
            if (task.done() or error is not None) and self._tasks.get(job_id) is task:
                del self._tasks[job_id]
        return raw, error

    async def _settle(
        self, job_id: str, raw: Any, error: ClarityError | None,
    ) -> ResearchJob:
        """Turn a collector outcome into the job's terminal state."""
        latest = await self._load(job_id)
        if latest.is_terminal:
            logger.info(
                "late_result_discarded",
                job_id=latest.id,
                status=latest.status.value,
                had_error=error is not None,
            )
            return latest

        finished: ResearchJob | None = None
        if error is None:
            latest = latest.record_step(STEP_VALIDATING)
            await self._store.put(latest)
            try:
                insight, artifacts = normalize_findings(raw)
                validate(insight)
                finished = latest.complete(insight, artifacts)
            except InsightValidationError as exc:
                error = exc
            except Exception as exc:
                error = CollaboratorFailure(
                    f"collector returned an unusable payload: {exc}",
                    {"exception": type(exc).__name__},
                )

        if error is not None:
            finished = latest.fail(error.to_job_error())
        return await self._commit(finished)

    async def _load(self, job_id: str) -> ResearchJob:
        job = await self._store.get(job_id)
        if job is None:
            raise JobNotFound(f"no research job with id {job_id!r}", {"job_id": job_id})
        return job

    async def _commit(self, job: ResearchJob) -> ResearchJob:
        await self._store.put(job)
        if job.error is None:
            logger.info(
                "job_completed",
                job_id=job.id,
                duration_s=round(job.duration_s or 0.0, 3),
                **job.insight_data.summary(),
            )
        else:
            logger.warning(
                "job_failed",
                job_id=job.id,
                code=job.error.code,
                error=job.error.message[:200],
            )
        await self._run_hooks(job)
        return job

    async def _run_hooks(self, job: ResearchJob) -> None:
        for hook in self._hooks:
            try:
                result = hook(job)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.warning(
                    "terminal_hook_failed",
                    job_id=job.id,
                    hook=getattr(hook, "__name__", repr(hook)),
                    error=str(exc),
                )
