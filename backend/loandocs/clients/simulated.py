"""
SimulatedClient — drop-in replacement for the live EDocs client.

Returns realistic sample mortgage documents so the full
receive → process → return flow can be demonstrated without vendor
API access.  Uploads are kept in memory for inspection.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any

from loandocs.clients.base import AuthClient, Document, DocumentRef, UploadResult
from loandocs.clients.credentials import SimulatedCredentials
from loandocs.core.constants import JobMode
from loandocs.core.logging import get_logger

logger = get_logger(__name__)

SAMPLE_DOCUMENTS: tuple[tuple[str, str, int], ...] = (
    ("1003_Uniform_Residential_Loan_Application.pdf", "Loan Application", 245760),
    ("Property_Appraisal_Report.pdf", "Appraisal", 1048576),
    ("Borrower_Credit_Report.pdf", "Credit Report", 153600),
    ("Title_Insurance_Commitment.pdf", "Title", 204800),
    ("Employment_Verification_Letter.pdf", "VOE", 102400),
)

# Truncated single-page PDF, base64
SAMPLE_PDF_BASE64 = (
    "JVBERi0xLjQKMSAwIG9iago8PCAvVHlwZSAvQ2F0YWxvZyAvUGFnZXMgMiAwIFIgPj4KZW5k"
    "b2JqCjIgMCBvYmoKPDwgL1R5cGUgL1BhZ2VzIC9LaWRzIFszIDAgUl0gL0NvdW50IDEgPj4K"
    "ZW5kb2JqCjMgMCBvYmoKPDwgL1R5cGUgL1BhZ2UgL1BhcmVudCAyIDAgUiAvTWVkaWFCb3gg"
    "WzAgMCA2MTIgNzkyXSA+PgplbmRvYmoKeHJlZgowIDQKMDAwMDAwMDAwMCA2NTUzNSBmIAow"
)


class SimulatedClient(AuthClient):
    """In-memory document service.  Latencies scale from `latency_ms`."""

    def __init__(
        self,
        latency_ms: int = 300,
        credentials: SimulatedCredentials | None = None,
    ) -> None:
        super().__init__(credentials or SimulatedCredentials(latency_ms))
        self._latency_ms = latency_ms
        self.uploaded: list[dict[str, Any]] = []

    @property
    def mode(self) -> JobMode:
        return JobMode.SIMULATED

    async def list_documents(self, loan_number: str) -> list[DocumentRef]:
        await self.ensure_credential()
        await self._delay(5 / 3)
        now = datetime.now(timezone.utc).isoformat()
        refs = [
            DocumentRef(guid=str(uuid.uuid4()), name=name, type=doc_type, date_modified=now, size=size)
            for name, doc_type, size in SAMPLE_DOCUMENTS
        ]
        logger.info("Listed simulated documents", loan_number=loan_number, count=len(refs))
        return refs

    async def download_document(self, ref: DocumentRef) -> Document:
        await self.ensure_credential()
        await self._delay(4 / 3)
        logger.info("Downloaded simulated document", doc_id=ref.guid)
        return Document.from_ref(ref, content=SAMPLE_PDF_BASE64, format="pdf")

    async def upload_document(
        self,
        loan_number: str,
        document_type: str,
        content: str,
        notes: str = "",
    ) -> UploadResult:
        await self.ensure_credential()
        await self._delay(2)
        record = {
            "id": str(uuid.uuid4()),
            "loan_number": loan_number,
            "document_type": document_type,
            "notes": notes,
            "content_length": len(content),
            "uploaded_at": datetime.now(timezone.utc).isoformat(),
        }
        self.uploaded.append(record)
        logger.info("Uploaded simulated document", loan_number=loan_number, document_type=document_type)
        return UploadResult(
            loan_number=loan_number,
            document_type=document_type,
            result=record["id"],
            details=record,
        )

    async def _delay(self, factor: float) -> None:
        if self._latency_ms:
            await asyncio.sleep(self._latency_ms * factor / 1000)
