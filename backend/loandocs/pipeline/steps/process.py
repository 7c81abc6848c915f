"""ProcessStep — run every received document through the processor."""

from __future__ import annotations

from loandocs.core.constants import JobMode, StepName
from loandocs.pipeline.context import JobContext
from loandocs.pipeline.step import PipelineStep, StepOutcome


class ProcessStep(PipelineStep):
    name = StepName.PROCESS
    description = "Process received documents"

    def start_message(self, ctx: JobContext) -> str:
        return f"Processing {len(ctx.documents)} documents..."

    async def execute(self, ctx: JobContext) -> StepOutcome:
        ctx.processed = await ctx.processor.process_all(ctx.documents)
        ctx.job.documents_processed = len(ctx.processed)

        if ctx.job.mode == JobMode.DOCUMENT_UPLOAD:
            ctx.job.processing_results = [doc.summary() for doc in ctx.processed]

        return self._done(
            f"Processed {len(ctx.processed)} documents successfully",
            processed=len(ctx.processed),
        )
