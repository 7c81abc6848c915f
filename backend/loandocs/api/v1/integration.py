"""
Integration endpoints — trigger runs, upload a document, poll status.
"""

from __future__ import annotations

import base64
import os
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from loandocs.api.deps import get_orchestrator, get_settings
from loandocs.api.schemas.integration import HealthResponse, RunRequest
from loandocs.clients.base import Document
from loandocs.core.config import Settings
from loandocs.core.constants import ALLOWED_UPLOAD_EXTENSIONS
from loandocs.core.logging import get_logger
from loandocs.pipeline.errors import ConflictError, CredentialError, UpstreamError, ValidationError
from loandocs.pipeline.orchestrator import Orchestrator
from loandocs.processing.categorize import categorize_document

logger = get_logger(__name__)

router = APIRouter(tags=["Integration"])

_STARTED = time.monotonic()


def conflict(exc: ConflictError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"error": str(exc), "job_id": exc.job_id},
    )


def bad_request(exc: ValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(exc)})


# ─── Health ───────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def health(
    settings: Settings = Depends(get_settings),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> HealthResponse:
    return HealthResponse(
        mode=str(orchestrator.client.mode),
        vendor=settings.VENDOR_NAME,
        env=settings.APP_ENV,
        uptime_seconds=round(time.monotonic() - _STARTED, 3),
    )


# ─── Auth test ────────────────────────────────────────────
@router.post("/auth/test")
async def test_auth(orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    """Authenticate with the configured credentials and report the outcome."""
    return await orchestrator.test_auth()


# ─── Run ──────────────────────────────────────────────────
@router.post("/integration/run")
async def run_integration(
    payload: RunRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Run the full pipeline for a loan and return the terminal job."""
    try:
        job = await orchestrator.run(payload.loan_number)
    except ValidationError as exc:
        raise bad_request(exc) from None
    except ConflictError as exc:
        raise conflict(exc) from None
    return job.to_dict()


@router.post("/integration/run-with-document")
async def run_with_document(
    document: UploadFile | None = File(None),
    loan_number: str = Form("UPLOAD-TEST"),
    settings: Settings = Depends(get_settings),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Run process → return on one uploaded file instead of fetching documents."""
    if document is None or not document.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": 'No document uploaded. Send a PDF file as "document" field.'},
        )

    extension = os.path.splitext(document.filename)[1].lower()
    if extension not in ALLOWED_UPLOAD_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": f"File type {extension or '(none)'} not supported. "
                f"Allowed: {', '.join(ALLOWED_UPLOAD_EXTENSIONS)}",
            },
        )

    data = await document.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={"error": f"File exceeds {settings.MAX_UPLOAD_BYTES} bytes"},
        )

    uploaded = Document(
        guid=f"upload-{uuid.uuid4()}",
        name=document.filename,
        type=categorize_document(document.filename),
        content=base64.b64encode(data).decode("ascii"),
        format=extension.lstrip("."),
        size=len(data),
        date_modified=datetime.now(timezone.utc).isoformat(),
    )
    logger.info("Received uploaded document", filename=document.filename, size=len(data))

    try:
        job = await orchestrator.run_with_documents(loan_number, [uploaded])
    except ValidationError as exc:
        raise bad_request(exc) from None
    except ConflictError as exc:
        raise conflict(exc) from None
    return job.to_dict()


# ─── Polling ──────────────────────────────────────────────
@router.get("/integration/status")
async def integration_status(orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    return orchestrator.status()


@router.get("/integration/history")
async def integration_history(
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> list[dict[str, Any]]:
    return orchestrator.history()


# ─── Documents (quick check) ──────────────────────────────
@router.get("/documents/{loan_number}")
async def list_documents(
    loan_number: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    try:
        documents = await orchestrator.list_documents(loan_number)
    except (CredentialError, UpstreamError) as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail={"error": str(exc)}) from None
    return {"loan_number": loan_number, "documents": documents}
