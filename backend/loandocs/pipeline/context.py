"""
JobContext — mutable state carried through the four steps of one job.

Steps read their collaborators (client, processor) from the context and
hand documents to the next step through it.  `progress()` lets a step
overwrite its own in-progress message (e.g. "Found 5 documents.
Downloading...") without changing its status.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from loandocs.clients.base import AuthClient, Document, UploadResult
from loandocs.core.constants import StepName, StepStatus
from loandocs.pipeline.job import Job
from loandocs.processing.document_processor import DocumentProcessor, ProcessedDocument


@dataclass
class JobContext:
    job: Job
    client: AuthClient
    processor: DocumentProcessor
    log: structlog.stdlib.BoundLogger

    # ─── Documents flowing between steps ──────────────
    # Pre-supplied batch (document-upload mode); None means fetch from the service.
    supplied_documents: list[Document] | None = None
    documents: list[Document] = field(default_factory=list)
    processed: list[ProcessedDocument] = field(default_factory=list)
    upload_results: list[UploadResult] = field(default_factory=list)

    @property
    def loan_number(self) -> str:
        return self.job.loan_number

    def announce(self, step: StepName, status: StepStatus, message: str) -> None:
        self.job.update_step(step, status, message)
        self.log.info("Step update", step=str(step), status=str(status), message=message)

    def progress(self, step: StepName, message: str) -> None:
        self.announce(step, StepStatus.IN_PROGRESS, message)
