"""Integration request/response schemas."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field


class RunRequest(BaseModel):
    """Request payload for /integration/run.  Emptiness is checked by the orchestrator."""

    loan_number: str = Field(
        default="",
        max_length=64,
        validation_alias=AliasChoices("loan_number", "loanNumber"),
    )


class StartedResponse(BaseModel):
    """Acknowledgement returned when a session starts a background job."""

    loan_number: str
    status: str = "started"
    mode: str
    job_id: str


class HealthResponse(BaseModel):
    status: str = "ok"
    mode: str
    vendor: str
    env: str
    uptime_seconds: float
