"""
HandshakeProtocol — the Generic Framework launch exchange.

1. The LOS POSTs an LQBGenericFrameworkRequest carrying LoanNumber,
   UserLogin, the vendor credentials and an EncryptedTicket.
2. We validate it, store a Session, and answer with an
   LQBGenericFrameworkResponse whose Window element points at the pop-up.
3. The pop-up resolves the session and starts the pipeline, using the
   ticket when one was supplied and OAuth otherwise.

handle_launch() always answers with a well-formed XML document; failures
become an <Error> element with a non-2xx status, never an exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from loandocs.core.logging import get_logger
from loandocs.core.xmldoc import (
    Node,
    XmlParseError,
    find_path,
    local_name,
    parse_document,
    render,
    text_of,
    value_of,
)
from loandocs.handshake.sessions import SessionStore
from loandocs.pipeline.errors import ValidationError
from loandocs.pipeline.orchestrator import Orchestrator

logger = get_logger(__name__)

REQUEST_ROOT = "LQBGenericFrameworkRequest"
RESPONSE_ROOT = "LQBGenericFrameworkResponse"
TICKET_ELEMENT = "GENERIC_FRAMEWORK_USER_TICKET"

WINDOW_HEIGHT = "850"
WINDOW_WIDTH = "650"


@dataclass(frozen=True)
class LaunchRequest:
    loan_number: str
    user_login: str = ""
    encrypted_ticket: str = ""
    vendor_username: str = ""
    vendor_account_id: str = ""


@dataclass(frozen=True)
class HandshakeReply:
    status_code: int
    body: str
    session_id: str | None = None

    media_type = "application/xml"


# ═══════════════════════════════════════════════════════════
#  Documents
# ═══════════════════════════════════════════════════════════

def parse_launch_request(xml_body: str | bytes | None) -> LaunchRequest:
    """Parse and validate the inbound launch document.  Raises ValidationError."""
    if not xml_body:
        raise ValidationError("No XML body received")

    try:
        root = parse_document(xml_body)
    except XmlParseError as exc:
        raise ValidationError(f"Invalid XML: {exc}") from exc

    if local_name(root.tag) != REQUEST_ROOT:
        raise ValidationError(f"Invalid XML, expected {REQUEST_ROOT}")

    loan_number = text_of(find_path(root, "LoanNumber"))
    if not loan_number:
        raise ValidationError("Missing LoanNumber in request")

    ticket_node = find_path(root, "LendingQBLoanCredential", TICKET_ELEMENT)
    credentials = find_path(root, "CredentialXML", "credentials")

    return LaunchRequest(
        loan_number=loan_number,
        user_login=text_of(find_path(root, "UserLogin")),
        encrypted_ticket=value_of(ticket_node, "EncryptedTicket"),
        vendor_username=value_of(credentials, "username"),
        vendor_account_id=value_of(credentials, "accountID"),
    )


def build_success_response(popup_url: str) -> str:
    root = Node(RESPONSE_ROOT)
    root.add(
        "Window",
        url=popup_url,
        height=WINDOW_HEIGHT,
        width=WINDOW_WIDTH,
        modalIndicator="Y",
    )
    return render(root)


def build_error_response(message: str) -> str:
    root = Node(RESPONSE_ROOT)
    root.add("Error", message)
    return render(root)


def ticket_credential_xml(encrypted_ticket: str) -> str:
    """The ticket element the document service expects as sTicket."""
    return render(Node(TICKET_ELEMENT, attrs={"EncryptedTicket": encrypted_ticket}), declaration=False)


def _ticket_preview(ticket: str) -> str:
    return f"{ticket[:30]}..." if ticket else "(none)"


# ═══════════════════════════════════════════════════════════
#  Protocol
# ═══════════════════════════════════════════════════════════

class HandshakeProtocol:
    def __init__(
        self,
        sessions: SessionStore,
        orchestrator: Orchestrator,
        public_base_url: str,
    ) -> None:
        self.sessions = sessions
        self.orchestrator = orchestrator
        self.public_base_url = public_base_url.rstrip("/")

    def popup_url(self, session_id: str, loan_number: str) -> str:
        return (
            f"{self.public_base_url}/launch"
            f"?sessionId={quote(session_id, safe='')}"
            f"&loanNumber={quote(loan_number, safe='')}"
        )

    def handle_launch(self, xml_body: str | bytes | None) -> HandshakeReply:
        """Turn a launch request into a session and a pop-up Window response."""
        try:
            request = parse_launch_request(xml_body)
        except ValidationError as exc:
            logger.warning("Launch request rejected", error=str(exc))
            return HandshakeReply(400, build_error_response(str(exc)))
        except Exception as exc:
            logger.exception("Error processing launch request")
            return HandshakeReply(500, build_error_response(f"Server error: {exc}"))

        logger.info(
            "Launch request parsed",
            loan_number=request.loan_number,
            user_login=request.user_login,
            vendor_username=request.vendor_username,
            vendor_account_id=request.vendor_account_id,
            ticket=_ticket_preview(request.encrypted_ticket),
        )

        try:
            session_id = self.sessions.create(
                loan_number=request.loan_number,
                user_login=request.user_login,
                vendor_username=request.vendor_username,
                vendor_account_id=request.vendor_account_id,
                encrypted_ticket=request.encrypted_ticket,
            )
            url = self.popup_url(session_id, request.loan_number)
            body = build_success_response(url)
        except Exception as exc:
            logger.exception("Error building launch response")
            return HandshakeReply(500, build_error_response(f"Server error: {exc}"))

        logger.info("Launch accepted", session_id=session_id, popup_url=url)
        return HandshakeReply(200, body, session_id=session_id)

    def resolve_session(self, session_id: str) -> dict[str, Any]:
        """Public view of a live session.  Raises SessionNotFoundError / SessionExpiredError."""
        return self.sessions.get(session_id).to_public_dict()

    def start_session(self, session_id: str) -> dict[str, Any]:
        """
        Admit a pipeline run for the session's loan and return at once; the
        job runs in the background and is observed via the orchestrator's
        status.  Raises the session errors and ConflictError.
        """
        session = self.sessions.get(session_id)
        credential = ticket_credential_xml(session.encrypted_ticket) if session.has_ticket else None

        job = self.orchestrator.start_with_credential(session.loan_number, credential)

        logger.info(
            "Pipeline started from session",
            session_id=session_id,
            job_id=job.id,
            mode="ticket" if session.has_ticket else "oauth",
        )
        return {
            "loan_number": session.loan_number,
            "status": "started",
            "mode": "ticket" if session.has_ticket else "oauth",
            "job_id": job.id,
        }
