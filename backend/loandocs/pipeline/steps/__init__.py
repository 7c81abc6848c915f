"""
Step sequences for each kind of job.

    fetch_flow()   — authenticate → receive (fetch) → process → return
    upload_flow()  — authenticate → receive (acknowledge batch) → process → return
"""

from __future__ import annotations

from loandocs.pipeline.step import PipelineStep
from loandocs.pipeline.steps.authenticate import AuthenticateStep
from loandocs.pipeline.steps.process import ProcessStep
from loandocs.pipeline.steps.receive import AcknowledgeUploadStep, FetchDocumentsStep
from loandocs.pipeline.steps.return_documents import ReturnStep


def fetch_flow() -> list[PipelineStep]:
    return [AuthenticateStep(), FetchDocumentsStep(), ProcessStep(), ReturnStep()]


def upload_flow() -> list[PipelineStep]:
    return [AuthenticateStep(), AcknowledgeUploadStep(), ProcessStep(), ReturnStep()]


__all__ = [
    "AcknowledgeUploadStep",
    "AuthenticateStep",
    "FetchDocumentsStep",
    "ProcessStep",
    "ReturnStep",
    "fetch_flow",
    "upload_flow",
]
