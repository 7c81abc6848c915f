"""
Generic Framework endpoints — XML launch handshake and pop-up sessions.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from loandocs.api.deps import get_handshake
from loandocs.api.schemas.integration import StartedResponse
from loandocs.api.v1.integration import conflict
from loandocs.handshake.protocol import HandshakeProtocol
from loandocs.pipeline.errors import ConflictError, SessionExpiredError, SessionNotFoundError

router = APIRouter(prefix="/generic-framework", tags=["Generic Framework"])


def _session_error(exc: SessionNotFoundError | SessionExpiredError) -> HTTPException:
    if isinstance(exc, SessionExpiredError):
        return HTTPException(
            status_code=status.HTTP_410_GONE,
            detail={
                "error": "Session has expired",
                "hint": "The MeridianLink ticket is only valid for 30 minutes",
            },
        )
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": "Session not found or expired",
            "hint": "Sessions expire after 30 minutes",
        },
    )


@router.post("/launch")
async def launch(
    request: Request,
    handshake: HandshakeProtocol = Depends(get_handshake),
) -> Response:
    """Accept an LQBGenericFrameworkRequest and answer with a pop-up Window."""
    body = await request.body()
    reply = handshake.handle_launch(body)
    return Response(content=reply.body, status_code=reply.status_code, media_type=reply.media_type)


@router.get("/session/{session_id}")
async def get_session(
    session_id: str,
    handshake: HandshakeProtocol = Depends(get_handshake),
) -> dict[str, Any]:
    try:
        return handshake.resolve_session(session_id)
    except (SessionNotFoundError, SessionExpiredError) as exc:
        raise _session_error(exc) from None


@router.get("/session/{session_id}/start", response_model=StartedResponse)
async def start_session(
    session_id: str,
    handshake: HandshakeProtocol = Depends(get_handshake),
) -> StartedResponse:
    """Start the pipeline for the session and return immediately; poll /integration/status."""
    try:
        ack = handshake.start_session(session_id)
    except (SessionNotFoundError, SessionExpiredError) as exc:
        raise _session_error(exc) from None
    except ConflictError as exc:
        raise conflict(exc) from None
    return StartedResponse(**ack)
