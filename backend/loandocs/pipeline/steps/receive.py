"""
Receive steps.

FetchDocumentsStep     — list and download the loan's documents from the
                         document service.
AcknowledgeUploadStep  — accept a pre-supplied batch (document-upload
                         mode); no network fetch.
"""

from __future__ import annotations

from loandocs.core.constants import StepName
from loandocs.pipeline.context import JobContext
from loandocs.pipeline.step import PipelineStep, StepOutcome


class FetchDocumentsStep(PipelineStep):
    name = StepName.RECEIVE
    description = "Fetch documents from the document service"

    def start_message(self, ctx: JobContext) -> str:
        return f"Fetching documents for loan {ctx.loan_number}..."

    async def execute(self, ctx: JobContext) -> StepOutcome:
        refs = await ctx.client.list_documents(ctx.loan_number)

        # An empty listing is a successful receive of zero documents.
        if not refs:
            ctx.log.warning("No documents found for loan")
            ctx.job.documents_received = 0
            return self._done("No documents found for this loan", received=0)

        ctx.progress(self.name, f"Found {len(refs)} documents. Downloading...")

        for ref in refs:
            ctx.documents.append(await ctx.client.download_document(ref))

        ctx.job.documents_received = len(ctx.documents)
        return self._done(
            f"Received {len(ctx.documents)} documents from MeridianLink",
            received=len(ctx.documents),
        )


class AcknowledgeUploadStep(PipelineStep):
    name = StepName.RECEIVE
    description = "Acknowledge an uploaded document batch"

    def start_message(self, ctx: JobContext) -> str:
        return f"Receiving {len(ctx.supplied_documents or [])} uploaded document(s)..."

    async def execute(self, ctx: JobContext) -> StepOutcome:
        documents = list(ctx.supplied_documents or [])
        ctx.documents = documents

        ctx.job.documents_received = len(documents)
        ctx.job.uploaded_files = [
            {"name": d.name, "type": d.type, "size": d.size, "format": d.format}
            for d in documents
        ]

        names = ", ".join(d.name for d in documents)
        return self._done(
            f"Received {len(documents)} document(s): {names}",
            received=len(documents),
        )
