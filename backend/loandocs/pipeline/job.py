"""
Job — the state object for one end-to-end pipeline execution.

A Job is created by the orchestrator, mutated only by the flow that owns
it, and appended to the orchestrator's history.  Steps are kept in an
insertion-ordered dict keyed by step name, so re-announcing a step
updates it in place instead of appending a duplicate.

JobSlot — the single "current job" reference, claimed and released
atomically.
"""

from __future__ import annotations

import copy
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from loandocs.core.constants import (
    STEP_ORDER,
    TERMINAL_JOB_STATUSES,
    JobMode,
    JobStatus,
    StepName,
    StepStatus,
)
from loandocs.pipeline.errors import PipelineError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ═══════════════════════════════════════════════════════════
#  Step
# ═══════════════════════════════════════════════════════════

@dataclass
class Step:
    """Progress record for one stage within a job."""

    name: StepName
    status: StepStatus
    message: str
    started_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": str(self.name),
            "status": str(self.status),
            "message": self.message,
            "started_at": _iso(self.started_at),
            "updated_at": _iso(self.updated_at),
        }


# ═══════════════════════════════════════════════════════════
#  Job
# ═══════════════════════════════════════════════════════════

@dataclass
class Job:
    """
    One execution of the authenticate → receive → process → return flow.

    `status` mirrors the step currently active, or a terminal value.
    `completed_at` stays None until the job reaches a terminal status.
    """

    loan_number: str
    mode: JobMode
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: JobStatus = JobStatus.STARTING
    steps: dict[StepName, Step] = field(default_factory=dict)

    documents_received: int = 0
    documents_processed: int = 0
    documents_returned: int = 0

    started_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None
    error: str | None = None

    # ─── Document-upload extras ───────────────────────
    uploaded_files: list[dict[str, Any]] | None = None
    processing_results: list[dict[str, Any]] | None = None

    # ─── State helpers ─────────────────────────────────

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES

    @property
    def duration_ms(self) -> int | None:
        """completed_at - started_at in milliseconds; None until terminal."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at) // timedelta(milliseconds=1)

    @property
    def active_step(self) -> Step | None:
        """The step currently in progress, if any."""
        for step in self.steps.values():
            if step.status == StepStatus.IN_PROGRESS:
                return step
        return None

    def update_step(self, name: StepName, status: StepStatus, message: str) -> Step:
        """
        Announce a step transition (upsert by name).

        Creating a step sets started_at; every call refreshes updated_at
        and overwrites the message.  Steps must be announced in pipeline
        order and only one may be in progress at a time.
        """
        if self.is_terminal:
            raise PipelineError(
                f"Job {self.id} is already {self.status}",
                job_id=self.id,
                step_name=str(name),
            )

        now = _utcnow()
        existing = self.steps.get(name)

        if existing is None:
            self._check_can_open(name)
            step = Step(name=name, status=status, message=message, started_at=now, updated_at=now)
            self.steps[name] = step
        else:
            step = existing
            step.status = status
            step.message = message
            step.updated_at = now

        self.status = JobStatus(str(name))
        return step

    def _check_can_open(self, name: StepName) -> None:
        active = self.active_step
        if active is not None:
            raise PipelineError(
                f"Cannot start step '{name}' while '{active.name}' is in progress",
                job_id=self.id,
                step_name=str(name),
            )
        expected = STEP_ORDER[len(self.steps)] if len(self.steps) < len(STEP_ORDER) else None
        if name != expected:
            raise PipelineError(
                f"Step '{name}' announced out of order (expected '{expected}')",
                job_id=self.id,
                step_name=str(name),
            )

    def complete(self) -> None:
        self.status = JobStatus.COMPLETED
        self.completed_at = _utcnow()

    def fail(self, error: str) -> None:
        """Mark the in-progress step (if any) and the job as failed."""
        now = _utcnow()
        active = self.active_step
        if active is not None:
            active.status = StepStatus.FAILED
            active.message = error
            active.updated_at = now
        self.status = JobStatus.FAILED
        self.error = error
        self.completed_at = now

    # ─── Serialisation ─────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """Read-only snapshot for status polling and history."""
        data: dict[str, Any] = {
            "id": self.id,
            "loan_number": self.loan_number,
            "mode": str(self.mode),
            "status": str(self.status),
            "steps": [s.to_dict() for s in self.steps.values()],
            "documents_received": self.documents_received,
            "documents_processed": self.documents_processed,
            "documents_returned": self.documents_returned,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "duration_ms": self.duration_ms,
            "error": self.error,
        }
        if self.uploaded_files is not None:
            data["uploaded_files"] = copy.deepcopy(self.uploaded_files)
        if self.processing_results is not None:
            data["processing_results"] = copy.deepcopy(self.processing_results)
        return data


# ═══════════════════════════════════════════════════════════
#  JobSlot
# ═══════════════════════════════════════════════════════════

class JobSlot:
    """
    Holds at most one in-flight job.

    claim() is a single check-and-set under a lock: either the new job is
    installed or the job already holding the slot is returned.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Job | None = None

    @property
    def current(self) -> Job | None:
        return self._current

    def claim(self, job: Job) -> Job | None:
        """Install `job` if the slot is free.  Returns the blocking job otherwise."""
        with self._lock:
            if self._current is not None:
                return self._current
            self._current = job
            return None

    def release(self, job: Job) -> None:
        """Free the slot if `job` still holds it."""
        with self._lock:
            if self._current is job:
                self._current = None
