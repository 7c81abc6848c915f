import xml.etree.ElementTree as ET
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from loandocs.clients.credentials import OAuthCredentials
from loandocs.clients.edocs import EDocsClient
from loandocs.core.constants import EDOCS_NAMESPACE, SOAP_NAMESPACE
from loandocs.handshake.protocol import (
    HandshakeProtocol,
    build_error_response,
    parse_launch_request,
    ticket_credential_xml,
)
from loandocs.pipeline.errors import ConflictError, ValidationError
from loandocs.pipeline.orchestrator import Orchestrator
from loandocs.processing.document_processor import DocumentProcessor

PUBLIC_URL = "https://vendor.example.com"


def launch_xml(loan_number="TEST-001", ticket="tkt-123"):
    ticket_block = (
        f'<LendingQBLoanCredential><GENERIC_FRAMEWORK_USER_TICKET EncryptedTicket="{ticket}" />'
        "</LendingQBLoanCredential>"
        if ticket is not None
        else ""
    )
    loan_block = f"<LoanNumber>{loan_number}</LoanNumber>" if loan_number is not None else ""
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        "<LQBGenericFrameworkRequest>"
        f"{loan_block}"
        "<UserLogin>loan.officer</UserLogin>"
        '<CredentialXML><credentials username="vendor-user" accountID="ACC-42" /></CredentialXML>'
        f"{ticket_block}"
        "</LQBGenericFrameworkRequest>"
    )


@pytest.fixture
def handshake(sessions, orchestrator):
    return HandshakeProtocol(sessions, orchestrator, PUBLIC_URL)


# ─── Parsing ──────────────────────────────────────────────

def test_parse_launch_request_fields():
    request = parse_launch_request(launch_xml().encode("utf-8"))

    assert request.loan_number == "TEST-001"
    assert request.user_login == "loan.officer"
    assert request.vendor_username == "vendor-user"
    assert request.vendor_account_id == "ACC-42"
    assert request.encrypted_ticket == "tkt-123"


@pytest.mark.parametrize(
    "body, message",
    [
        ("", "No XML body received"),
        ("<LQBGenericFrameworkRequest><LoanNumber>", "Invalid XML"),
        ("<SomethingElse />", "Invalid XML, expected LQBGenericFrameworkRequest"),
        (launch_xml(loan_number=None), "Missing LoanNumber in request"),
        (launch_xml(loan_number="   "), "Missing LoanNumber in request"),
    ],
)
def test_parse_launch_request_rejects(body, message):
    with pytest.raises(ValidationError, match=message):
        parse_launch_request(body)


def test_parse_rejects_dtd():
    body = (
        '<?xml version="1.0"?><!DOCTYPE r [<!ENTITY x "boom">]>'
        "<LQBGenericFrameworkRequest><LoanNumber>&x;</LoanNumber></LQBGenericFrameworkRequest>"
    )
    with pytest.raises(ValidationError, match="Invalid XML"):
        parse_launch_request(body)


def test_error_response_is_escaped():
    body = build_error_response('bad <tag> & "quote"')

    assert "&lt;tag&gt; &amp; &quot;quote&quot;" in body
    root = ET.fromstring(body.encode("utf-8"))
    assert root.find("Error").text == 'bad <tag> & "quote"'


def test_ticket_credential_xml_escapes_ticket():
    xml = ticket_credential_xml('a"b&c')

    assert xml == '<GENERIC_FRAMEWORK_USER_TICKET EncryptedTicket="a&quot;b&amp;c" />'
    assert ET.fromstring(xml).get("EncryptedTicket") == 'a"b&c'


# ─── Launch ───────────────────────────────────────────────

def test_launch_success_returns_window(handshake, sessions):
    reply = handshake.handle_launch(launch_xml())

    assert reply.status_code == 200
    assert reply.media_type == "application/xml"
    assert reply.session_id in sessions

    root = ET.fromstring(reply.body.encode("utf-8"))
    assert root.tag == "LQBGenericFrameworkResponse"
    window = root.find("Window")
    assert window.get("height") == "850"
    assert window.get("width") == "650"
    assert window.get("modalIndicator") == "Y"

    url = urlsplit(window.get("url"))
    assert f"{url.scheme}://{url.netloc}{url.path}" == f"{PUBLIC_URL}/launch"
    query = parse_qs(url.query)
    assert query == {"sessionId": [reply.session_id], "loanNumber": ["TEST-001"]}


def test_launch_session_records_request(handshake):
    reply = handshake.handle_launch(launch_xml())
    view = handshake.resolve_session(reply.session_id)

    assert view["loan_number"] == "TEST-001"
    assert view["user_login"] == "loan.officer"
    assert view["has_ticket"] is True


def test_launch_without_ticket_has_no_ticket(handshake):
    reply = handshake.handle_launch(launch_xml(ticket=None))
    assert handshake.resolve_session(reply.session_id)["has_ticket"] is False


def test_launch_missing_loan_number_creates_no_session(handshake, sessions):
    reply = handshake.handle_launch(launch_xml(loan_number=None))

    assert reply.status_code == 400
    assert reply.session_id is None
    assert len(sessions) == 0
    root = ET.fromstring(reply.body.encode("utf-8"))
    assert root.find("Error").text == "Missing LoanNumber in request"
    assert root.find("Window") is None


def test_launch_malformed_xml_is_400(handshake, sessions):
    reply = handshake.handle_launch(b"<not-closed>")

    assert reply.status_code == 400
    assert ET.fromstring(reply.body.encode("utf-8")).find("Error").text.startswith("Invalid XML")
    assert len(sessions) == 0


def test_loan_number_with_special_characters(handshake):
    reply = handshake.handle_launch(launch_xml(loan_number="LN 1&amp;2"))

    assert reply.status_code == 200
    window = ET.fromstring(reply.body.encode("utf-8")).find("Window")
    assert "loanNumber=LN%201%262" in window.get("url")
    assert parse_qs(urlsplit(window.get("url")).query)["loanNumber"] == ["LN 1&2"]


# ─── Start ────────────────────────────────────────────────

@pytest.mark.anyio
async def test_start_session_with_ticket(handshake, orchestrator, client):
    session_id = handshake.handle_launch(launch_xml()).session_id

    ack = handshake.start_session(session_id)
    await orchestrator.drain()

    assert ack["status"] == "started"
    assert ack["mode"] == "ticket"
    assert ack["loan_number"] == "TEST-001"

    job = orchestrator.history()[0]
    assert job["id"] == ack["job_id"]
    assert job["mode"] == "ticket-launched"
    assert job["status"] == "completed"
    assert set(client.seen_credentials) == {
        '<GENERIC_FRAMEWORK_USER_TICKET EncryptedTicket="tkt-123" />'
    }
    assert client.has_override is False


@pytest.mark.anyio
async def test_start_session_conflict(sessions, make_orchestrator, gated_client):
    blocking = make_orchestrator(gated_client)
    protocol = HandshakeProtocol(sessions, blocking, PUBLIC_URL)
    first = protocol.handle_launch(launch_xml()).session_id
    second = protocol.handle_launch(launch_xml(loan_number="TEST-002")).session_id

    ack = protocol.start_session(first)
    with pytest.raises(ConflictError) as exc_info:
        protocol.start_session(second)
    assert exc_info.value.job_id == ack["job_id"]

    gated_client.gate.set()
    await blocking.drain()


def _live_service(calls):
    """Token endpoint plus an EDocs endpoint with no documents."""

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path.endswith("/oauth/token"):
            return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})
        action = request.headers["SOAPAction"].strip('"').rsplit("/", 1)[-1]
        body = (
            f'<soap:Envelope xmlns:soap="{SOAP_NAMESPACE}"><soap:Body>'
            f'<{action}Response xmlns="{EDOCS_NAMESPACE}"><{action}Result />'
            f"</{action}Response></soap:Body></soap:Envelope>"
        )
        return httpx.Response(200, text=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _sent_ticket(request: httpx.Request) -> str:
    root = ET.fromstring(request.content)
    return root.find(f".//{{{EDOCS_NAMESPACE}}}sTicket").text


@pytest.mark.anyio
@pytest.mark.parametrize("ticket, expected_mode", [(None, "oauth"), ("tkt-123", "ticket")])
async def test_start_session_against_live_client(sessions, clock, ticket, expected_mode):
    calls = []
    http = _live_service(calls)
    credentials = OAuthCredentials(http, "https://auth.example.com/oauth/token", "id", "secret", clock=clock)
    client = EDocsClient(credentials, http, "https://lender.example.com")
    orchestrator = Orchestrator(client=client, processor=DocumentProcessor(delay_ms=0))
    protocol = HandshakeProtocol(sessions, orchestrator, PUBLIC_URL)

    session_id = protocol.handle_launch(launch_xml(ticket=ticket)).session_id
    ack = protocol.start_session(session_id)
    await orchestrator.drain()

    assert ack["mode"] == expected_mode
    job = orchestrator.history()[0]
    assert job["status"] == "completed"
    assert job["documents_received"] == 0

    token_calls = [c for c in calls if c.url.path.endswith("/oauth/token")]
    soap_calls = [c for c in calls if not c.url.path.endswith("/oauth/token")]
    assert len(soap_calls) == 1

    if ticket is None:
        assert job["mode"] == "live"
        assert len(token_calls) == 1
        assert _sent_ticket(soap_calls[0]) == "Bearer tok-1"
    else:
        assert job["mode"] == "ticket-launched"
        assert token_calls == []
        assert _sent_ticket(soap_calls[0]) == ticket_credential_xml(ticket)
