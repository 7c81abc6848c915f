"""
Integration pipeline — orchestrates authenticate → receive → process →
return for one loan at a time, with per-step progress tracking.
"""

from loandocs.pipeline.errors import (
    ConflictError,
    CredentialError,
    PipelineError,
    SessionExpiredError,
    SessionNotFoundError,
    UpstreamError,
    ValidationError,
)
from loandocs.pipeline.job import Job, JobSlot, Step

__all__ = [
    "ConflictError",
    "CredentialError",
    "Job",
    "JobSlot",
    "PipelineError",
    "SessionExpiredError",
    "SessionNotFoundError",
    "Step",
    "UpstreamError",
    "ValidationError",
]
