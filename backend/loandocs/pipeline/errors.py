"""
Domain-specific exception hierarchy for the integration pipeline.

All exceptions inherit from PipelineError so callers can catch broadly
or narrowly as needed.  Each exception carries structured context
(job ID, step name, etc.) for logging/debugging.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        job_id: str | None = None,
        step_name: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.job_id = job_id
        self.step_name = step_name
        self.details = details or {}
        super().__init__(message)


class ValidationError(PipelineError):
    """Caller input was rejected (missing loan number, malformed handshake)."""
    pass


class ConflictError(PipelineError):
    """A job is already in flight.  `job_id` names the blocking job."""

    def __init__(self, message: str, *, job_id: str, **kwargs) -> None:
        super().__init__(message, job_id=job_id, **kwargs)


class CredentialError(PipelineError):
    """Missing OAuth configuration, or a ticket/token that cannot be used."""
    pass


class UpstreamError(PipelineError):
    """Network or parse failure talking to the external document service."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
        **kwargs,
    ) -> None:
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message, **kwargs)


class SessionError(PipelineError):
    """Base for handshake session lookups."""

    def __init__(self, message: str, *, session_id: str, **kwargs) -> None:
        self.session_id = session_id
        super().__init__(message, **kwargs)


class SessionNotFoundError(SessionError):
    """The session id was never issued, or has already been swept."""
    pass


class SessionExpiredError(SessionError):
    """The session existed but its TTL has elapsed."""
    pass
