"""ReturnStep — upload processed documents back to the loan file."""

from __future__ import annotations

from loandocs.core.constants import StepName
from loandocs.pipeline.context import JobContext
from loandocs.pipeline.step import PipelineStep, StepOutcome


class ReturnStep(PipelineStep):
    name = StepName.RETURN
    description = "Return processed documents to the document service"

    def start_message(self, ctx: JobContext) -> str:
        return f"Uploading {len(ctx.processed)} processed documents..."

    async def execute(self, ctx: JobContext) -> StepOutcome:
        for doc in ctx.processed:
            result = await ctx.client.upload_document(
                ctx.loan_number,
                f"Processed - {doc.type}",
                doc.content,
                f"Processed by ProductA at {doc.processed_at.isoformat()}",
            )
            ctx.upload_results.append(result)

        ctx.job.documents_returned = len(ctx.upload_results)
        return self._done(
            f"Returned {len(ctx.upload_results)} processed documents to MeridianLink",
            returned=len(ctx.upload_results),
        )
