"""AuthenticateStep — obtain a credential from the active credential source."""

from __future__ import annotations

from loandocs.core.constants import JobMode, StepName
from loandocs.pipeline.context import JobContext
from loandocs.pipeline.step import PipelineStep, StepOutcome


class AuthenticateStep(PipelineStep):
    name = StepName.AUTHENTICATE
    description = "Authenticate with the document service"

    def start_message(self, ctx: JobContext) -> str:
        if ctx.job.mode == JobMode.DOCUMENT_UPLOAD:
            return "Authenticating (document upload mode)..."
        return "Authenticating with MeridianLink..."

    async def execute(self, ctx: JobContext) -> StepOutcome:
        result = await ctx.client.authenticate()
        token_type = result.get("token_type")

        if ctx.job.mode == JobMode.DOCUMENT_UPLOAD:
            message = "Authenticated (document upload mode)"
        elif token_type == "GenericFrameworkTicket":
            message = "Authenticated with Generic Framework ticket"
        else:
            message = "Authenticated, ticket obtained"

        return self._done(message, token_type=token_type, expires_in=result.get("expires_in"))
