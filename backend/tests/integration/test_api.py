import asyncio
import xml.etree.ElementTree as ET
from urllib.parse import parse_qs, urlsplit

import pytest
from httpx import ASGITransport, AsyncClient

from loandocs.main import create_app

LAUNCH_XML = (
    '<?xml version="1.0" encoding="utf-8"?>'
    "<LQBGenericFrameworkRequest>"
    "<LoanNumber>TEST-001</LoanNumber>"
    "<UserLogin>loan.officer</UserLogin>"
    '<CredentialXML><credentials username="vendor-user" accountID="ACC-42" /></CredentialXML>'
    "<LendingQBLoanCredential>"
    '<GENERIC_FRAMEWORK_USER_TICKET EncryptedTicket="tkt-123" />'
    "</LendingQBLoanCredential>"
    "</LQBGenericFrameworkRequest>"
)


async def _launch(async_client) -> str:
    response = await async_client.post(
        "/api/generic-framework/launch",
        content=LAUNCH_XML,
        headers={"Content-Type": "application/xml"},
    )
    assert response.status_code == 200
    window = ET.fromstring(response.content).find("Window")
    return parse_qs(urlsplit(window.get("url")).query)["sessionId"][0]


# ─── Health ───────────────────────────────────────────────

@pytest.mark.anyio
@pytest.mark.parametrize("path", ["/health", "/api/health"])
async def test_health(async_client, path):
    response = await async_client.get(path)
    assert response.status_code == 200

    body = response.json()
    assert set(body) == {"status", "mode", "vendor", "env", "uptime_seconds"}
    assert body["status"] == "ok"
    assert body["mode"] == "simulated"
    assert body["vendor"] == "Ocrolus"
    assert body["env"] == "test"
    assert body["uptime_seconds"] >= 0


@pytest.mark.anyio
async def test_auth_test(async_client):
    response = await async_client.post("/api/auth/test")
    assert response.status_code == 200
    assert response.json()["success"] is True


# ─── Run ──────────────────────────────────────────────────

@pytest.mark.anyio
async def test_run_integration(async_client):
    response = await async_client.post("/api/integration/run", json={"loanNumber": "TEST-001"})

    assert response.status_code == 200
    job = response.json()
    assert job["status"] == "completed"
    assert job["loan_number"] == "TEST-001"
    assert [step["name"] for step in job["steps"]] == ["authenticate", "receive", "process", "return"]
    assert job["documents_received"] == job["documents_returned"] == 5

    history = (await async_client.get("/api/integration/history")).json()
    assert [entry["id"] for entry in history] == [job["id"]]


@pytest.mark.anyio
async def test_run_requires_loan_number(async_client):
    response = await async_client.post("/api/integration/run", json={})

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Missing required field: loan_number"


@pytest.mark.anyio
async def test_run_conflict(settings, sessions, make_orchestrator, gated_client):
    orchestrator = make_orchestrator(gated_client)
    app = create_app(settings=settings, orchestrator=orchestrator, sessions=sessions)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        running = orchestrator.start("TEST-001")
        await asyncio.sleep(0)

        response = await ac.post("/api/integration/run", json={"loan_number": "TEST-002"})
        assert response.status_code == 409
        assert response.json()["detail"] == {
            "error": "An integration job is already running",
            "job_id": running.id,
        }

        status = (await ac.get("/api/integration/status")).json()
        assert status["running"] is True
        assert status["job"]["id"] == running.id

        gated_client.gate.set()
        await orchestrator.drain()

        status = (await ac.get("/api/integration/status")).json()
        assert status["running"] is False
        assert status["job"]["status"] == "completed"


# ─── Upload ───────────────────────────────────────────────

@pytest.mark.anyio
async def test_run_with_document(async_client, client):
    response = await async_client.post(
        "/api/integration/run-with-document",
        files={"document": ("w2_2023.pdf", b"%PDF-1.4 test", "application/pdf")},
        data={"loan_number": "UP-1"},
    )

    assert response.status_code == 200
    job = response.json()
    assert job["status"] == "completed"
    assert job["mode"] == "document-upload"
    assert job["uploaded_files"] == [{"name": "w2_2023.pdf", "type": "W-2", "size": 13, "format": "pdf"}]
    assert job["processing_results"][0]["name"] == "PROCESSED_w2_2023.pdf"
    assert client.uploaded[0]["document_type"] == "Processed - W-2"


@pytest.mark.anyio
async def test_run_with_document_rejects_unsupported_type(async_client):
    response = await async_client.post(
        "/api/integration/run-with-document",
        files={"document": ("payload.exe", b"MZ", "application/octet-stream")},
    )
    assert response.status_code == 400
    assert "not supported" in response.json()["detail"]["error"]


@pytest.mark.anyio
async def test_run_with_document_requires_file(async_client):
    response = await async_client.post("/api/integration/run-with-document", data={"loan_number": "UP-1"})
    assert response.status_code == 400


@pytest.mark.anyio
async def test_run_with_document_too_large(sessions, orchestrator):
    from loandocs.core.config import Settings

    small = Settings(_env_file=None, APP_ENV="test", MAX_UPLOAD_BYTES=10)
    app = create_app(settings=small, orchestrator=orchestrator, sessions=sessions)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.post(
            "/api/integration/run-with-document",
            files={"document": ("statement.pdf", b"x" * 11, "application/pdf")},
        )
    assert response.status_code == 413
    assert orchestrator.history() == []


# ─── Documents ────────────────────────────────────────────

@pytest.mark.anyio
async def test_list_documents(async_client):
    response = await async_client.get("/api/documents/TEST-001")

    assert response.status_code == 200
    body = response.json()
    assert body["loan_number"] == "TEST-001"
    assert len(body["documents"]) == 5


@pytest.mark.anyio
async def test_list_documents_upstream_failure(settings, sessions, make_orchestrator, failing_client):
    orchestrator = make_orchestrator(failing_client("list", "ListEdocsByLoanNumber timed out after 15.0s"))
    app = create_app(settings=settings, orchestrator=orchestrator, sessions=sessions)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.get("/api/documents/TEST-001")

    assert response.status_code == 502
    assert response.json()["detail"]["error"] == "ListEdocsByLoanNumber timed out after 15.0s"


# ─── Generic Framework ────────────────────────────────────

@pytest.mark.anyio
async def test_launch_returns_xml_window(async_client):
    response = await async_client.post("/api/generic-framework/launch", content=LAUNCH_XML)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    window = ET.fromstring(response.content).find("Window")
    assert window.get("url").startswith("https://vendor.example.com/launch?sessionId=")


@pytest.mark.anyio
async def test_launch_rejects_bad_request_with_xml_error(async_client, sessions):
    response = await async_client.post(
        "/api/generic-framework/launch",
        content="<LQBGenericFrameworkRequest />",
    )

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("application/xml")
    assert ET.fromstring(response.content).find("Error").text == "Missing LoanNumber in request"
    assert len(sessions) == 0


@pytest.mark.anyio
async def test_launch_empty_body(async_client):
    response = await async_client.post("/api/generic-framework/launch", content=b"")

    assert response.status_code == 400
    assert ET.fromstring(response.content).find("Error").text == "No XML body received"


@pytest.mark.anyio
async def test_session_lookup(async_client, clock):
    session_id = await _launch(async_client)

    response = await async_client.get(f"/api/generic-framework/session/{session_id}")
    assert response.status_code == 200
    assert response.json()["has_ticket"] is True
    assert "encrypted_ticket" not in response.json()

    missing = await async_client.get("/api/generic-framework/session/unknown")
    assert missing.status_code == 404

    clock.advance(30 * 60)
    expired = await async_client.get(f"/api/generic-framework/session/{session_id}")
    assert expired.status_code == 410
    assert expired.json()["detail"]["error"] == "Session has expired"


@pytest.mark.anyio
async def test_session_start_runs_pipeline_in_background(async_client, orchestrator, client):
    session_id = await _launch(async_client)

    response = await async_client.get(f"/api/generic-framework/session/{session_id}/start")

    assert response.status_code == 200
    ack = response.json()
    assert ack["status"] == "started"
    assert ack["mode"] == "ticket"

    await orchestrator.drain()
    status = (await async_client.get("/api/integration/status")).json()
    assert status["job"]["id"] == ack["job_id"]
    assert status["job"]["mode"] == "ticket-launched"
    assert status["job"]["status"] == "completed"
    assert client.has_override is False


@pytest.mark.anyio
async def test_session_start_unknown_session(async_client):
    response = await async_client.get("/api/generic-framework/session/unknown/start")
    assert response.status_code == 404
