"""API schema package."""

from loandocs.api.schemas.integration import HealthResponse, RunRequest, StartedResponse

__all__ = ["HealthResponse", "RunRequest", "StartedResponse"]
