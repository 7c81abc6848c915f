"""
DocumentProcessor — stamps received documents before they are returned.

Real processing (OCR, extraction, compliance) is out of scope: each
document gets a new identity, a PROCESSED_ label, a stamp prepended to
its content and a fixed block of check results.  The per-document delay
stands in for real processing cost.
"""

from __future__ import annotations

import asyncio
import base64
import json
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from loandocs.clients.base import Document
from loandocs.core.logging import get_logger

logger = get_logger(__name__)

PROCESSOR_NAME = "ProductA-DocumentEngine"
PROCESSOR_VERSION = "1.0.0"
STAMP_LABEL = "ProductA-Processed"

STATIC_CHECKS = {
    "format_validation": "PASS",
    "content_integrity": "PASS",
    "compliance_flag": "CLEAR",
}


@dataclass
class ProcessedDocument:
    original_guid: str
    processed_id: str
    name: str
    type: str
    content: str
    processed_at: datetime
    processing_time_ms: int
    checks: dict[str, str] = field(default_factory=lambda: dict(STATIC_CHECKS))
    status: str = "processed"

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            "processor": PROCESSOR_NAME,
            "version": PROCESSOR_VERSION,
            "processed_at": self.processed_at.isoformat(),
            "processing_time_ms": self.processing_time_ms,
            "checks": dict(self.checks),
        }

    def summary(self) -> dict[str, Any]:
        """Compact record kept on upload-mode jobs."""
        return {
            "name": self.name,
            "type": self.type,
            "original_guid": self.original_guid,
            "processed_id": self.processed_id,
            "checks": dict(self.checks),
            "processing_time_ms": self.processing_time_ms,
        }


def stamp_content(content: str, processed_at: datetime) -> str:
    """Prepend a base64 processing marker to base64 `content`."""
    marker = json.dumps(
        {
            "stamp": STAMP_LABEL,
            "timestamp": processed_at.isoformat(),
            "engine": f"v{PROCESSOR_VERSION}",
        },
        separators=(",", ":"),
    )
    return base64.b64encode(marker.encode("utf-8")).decode("ascii") + (content or "")


class DocumentProcessor:
    """Processes documents one at a time, preserving input order."""

    def __init__(self, delay_ms: int = 2000) -> None:
        self.delay_ms = delay_ms

    async def process_document(self, document: Document) -> ProcessedDocument:
        started = time.perf_counter()
        logger.info("Processing document", name=document.name or document.guid)

        if self.delay_ms:
            await asyncio.sleep(self.delay_ms / 1000)

        processed_at = datetime.now(timezone.utc)
        processed = ProcessedDocument(
            original_guid=document.guid,
            processed_id=str(uuid.uuid4()),
            name=f"PROCESSED_{document.name or 'document.pdf'}",
            type=document.type or "Unknown",
            content=stamp_content(document.content, processed_at),
            processed_at=processed_at,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
        )

        logger.info(
            "Document processed",
            name=processed.name,
            duration_ms=processed.processing_time_ms,
        )
        return processed

    async def process_all(self, documents: list[Document]) -> list[ProcessedDocument]:
        results = []
        for document in documents:
            results.append(await self.process_document(document))
        return results
