"""
Orchestrator — drives one job at a time through the four pipeline steps.

Responsibilities:
    - Admit a job: validate the loan number and claim the single job slot
      (rejecting with ConflictError while another job is in flight)
    - Execute authenticate → receive → process → return in strict order,
      announcing each step in_progress before and completed after its work
    - Turn any failure into a failed job: the in-progress step is marked
      failed, no further steps run, and the job is returned, not raised
    - Keep the append-only job history for status polling

Usage::

    orchestrator = Orchestrator(client=SimulatedClient(), processor=DocumentProcessor())
    job = await orchestrator.run("TEST-001")

    # Background launch (returns as soon as the job is admitted)
    job = orchestrator.start_with_credential("TEST-001", ticket_xml)
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict
from typing import Any, Coroutine

from loandocs.clients.base import AuthClient, Document
from loandocs.core.constants import JobMode, StepStatus
from loandocs.core.logging import get_logger
from loandocs.pipeline.context import JobContext
from loandocs.pipeline.errors import ConflictError, ValidationError
from loandocs.pipeline.job import Job, JobSlot
from loandocs.pipeline.step import PipelineStep
from loandocs.pipeline.steps import fetch_flow, upload_flow
from loandocs.processing.document_processor import DocumentProcessor

logger = get_logger(__name__)


class Orchestrator:
    def __init__(self, client: AuthClient, processor: DocumentProcessor) -> None:
        self.client = client
        self.processor = processor
        self._slot = JobSlot()
        self._history: list[Job] = []
        self._tasks: set[asyncio.Task] = set()

    # ─── Pipeline entry points ─────────────────────────

    async def run(self, loan_number: str) -> Job:
        """Fetch, process and return the loan's documents.  Returns the terminal job."""
        job = self._admit(loan_number, self.client.mode)
        return await self._drive(job, fetch_flow())

    async def run_with_documents(self, loan_number: str, documents: list[Document]) -> Job:
        """Same pipeline, but receive acknowledges `documents` instead of fetching."""
        self._require_documents(documents)
        job = self._admit(loan_number, JobMode.DOCUMENT_UPLOAD)
        return await self._drive(job, upload_flow(), supplied_documents=documents)

    async def run_with_credential(self, loan_number: str, credential: str | None) -> Job:
        """
        Run with a pre-issued ticket in place of the client's default
        credentials.  The override is always cleared afterwards.  Without a
        credential this is a plain run().
        """
        if not credential:
            return await self.run(loan_number)
        job = self._admit(loan_number, JobMode.TICKET_LAUNCHED)
        return await self._drive_with_override(job, credential)

    # ─── Background variants ───────────────────────────
    # Admission happens synchronously so the caller still sees ConflictError;
    # the steps then run as a tracked task.

    def start(self, loan_number: str) -> Job:
        job = self._admit(loan_number, self.client.mode)
        self._spawn(job, self._drive(job, fetch_flow()))
        return job

    def start_with_documents(self, loan_number: str, documents: list[Document]) -> Job:
        self._require_documents(documents)
        job = self._admit(loan_number, JobMode.DOCUMENT_UPLOAD)
        self._spawn(job, self._drive(job, upload_flow(), supplied_documents=documents))
        return job

    def start_with_credential(self, loan_number: str, credential: str | None) -> Job:
        if not credential:
            return self.start(loan_number)
        job = self._admit(loan_number, JobMode.TICKET_LAUNCHED)
        self._spawn(job, self._drive_with_override(job, credential))
        return job

    async def drain(self) -> None:
        """Wait for every background job to reach a terminal state."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ─── Polling ───────────────────────────────────────

    @property
    def current_job(self) -> Job | None:
        return self._slot.current

    def status(self) -> dict[str, Any]:
        """The in-flight job if there is one, else the most recent job."""
        current = self._slot.current
        if current is not None:
            return {"running": True, "job": current.to_dict()}
        last = self._history[-1] if self._history else None
        return {"running": False, "job": last.to_dict() if last else None}

    def history(self) -> list[dict[str, Any]]:
        """All jobs, most recent first."""
        return [job.to_dict() for job in reversed(self._history)]

    # ─── Diagnostics ───────────────────────────────────

    async def test_auth(self) -> dict[str, Any]:
        try:
            result = await self.client.authenticate()
        except Exception as exc:
            logger.warning("Authentication test failed", error=str(exc))
            return {"success": False, "error": str(exc)}
        return {**result, "success": True}

    async def list_documents(self, loan_number: str) -> list[dict[str, Any]]:
        refs = await self.client.list_documents(loan_number)
        return [asdict(ref) for ref in refs]

    async def aclose(self) -> None:
        await self.drain()
        await self.client.aclose()

    # ─── Internals ─────────────────────────────────────

    def _admit(self, loan_number: str, mode: JobMode) -> Job:
        """Validate, create and install a job as current, atomically."""
        loan_number = (loan_number or "").strip()
        if not loan_number:
            raise ValidationError("Missing required field: loan_number")

        job = Job(loan_number=loan_number, mode=mode)
        blocking = self._slot.claim(job)
        if blocking is not None:
            logger.warning(
                "Job rejected, another job is running",
                loan_number=loan_number,
                blocking_job_id=blocking.id,
            )
            raise ConflictError("An integration job is already running", job_id=blocking.id)

        self._history.append(job)
        return job

    @staticmethod
    def _require_documents(documents: list[Document]) -> None:
        if not documents:
            raise ValidationError("No documents supplied")

    def _spawn(self, job: Job, coro: Coroutine[Any, Any, Job]) -> None:
        task = asyncio.create_task(coro, name=f"job-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _drive_with_override(self, job: Job, credential: str) -> Job:
        self.client.set_credential_override(credential)
        try:
            return await self._drive(job)
        finally:
            self.client.clear_credential_override()

    async def _drive(
        self,
        job: Job,
        steps: list[PipelineStep] | None = None,
        supplied_documents: list[Document] | None = None,
    ) -> Job:
        """Execute `steps` against `job`.  Never raises (except on cancellation)."""
        steps = steps if steps is not None else fetch_flow()
        log = logger.bind(job_id=job.id, loan_number=job.loan_number, mode=str(job.mode))
        ctx = JobContext(
            job=job,
            client=self.client,
            processor=self.processor,
            log=log,
            supplied_documents=supplied_documents,
        )

        log.info("Job started", total_steps=len(steps), credentials=self.client.credentials.kind)

        try:
            for step in steps:
                log.debug("Step starting", step=str(step.name), description=step.description)
                ctx.announce(step.name, StepStatus.IN_PROGRESS, step.start_message(ctx))
                outcome = await step.execute(ctx)
                ctx.announce(step.name, StepStatus.COMPLETED, outcome.message)
                if outcome.metadata:
                    log.debug("Step metadata", step=str(step.name), **outcome.metadata)

            job.complete()
            log.info(
                "Job completed",
                duration_ms=job.duration_ms,
                received=job.documents_received,
                processed=job.documents_processed,
                returned=job.documents_returned,
            )

        except asyncio.CancelledError:
            job.fail("Job cancelled")
            log.warning("Job cancelled")
            raise

        except Exception as exc:
            failed_step = job.active_step
            job.fail(str(exc) or exc.__class__.__name__)
            log.error(
                "Job failed",
                step=str(failed_step.name) if failed_step else None,
                error=job.error,
                error_type=exc.__class__.__name__,
                duration_ms=job.duration_ms,
            )

        finally:
            self._slot.release(job)

        return job
