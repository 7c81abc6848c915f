#!/usr/bin/env python3
"""
Demo script — run the orchestrator locally against the simulated client.

Shows a fetch run, a document-upload run, a ticket-launched run started
from a Generic Framework handshake, and a rejected concurrent start.

Usage:
    cd backend
    python -m scripts.demo_pipeline
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

LAUNCH_XML = """<?xml version="1.0" encoding="utf-8"?>
<LQBGenericFrameworkRequest>
  <LoanNumber>DEMO-003</LoanNumber>
  <UserLogin>loan.officer</UserLogin>
  <CredentialXML><credentials username="vendor-user" accountID="ACC-42" /></CredentialXML>
  <LendingQBLoanCredential>
    <GENERIC_FRAMEWORK_USER_TICKET EncryptedTicket="demo-ticket-0123456789" />
  </LendingQBLoanCredential>
</LQBGenericFrameworkRequest>
"""


def _build():
    from loandocs.clients.simulated import SimulatedClient
    from loandocs.pipeline.orchestrator import Orchestrator
    from loandocs.processing.document_processor import DocumentProcessor

    return Orchestrator(client=SimulatedClient(latency_ms=20), processor=DocumentProcessor(delay_ms=50))


async def run_fetch_flow(orchestrator):
    """DEMO 1: authenticate → fetch → process → return."""
    print("\n" + "=" * 70)
    print("  DEMO 1: Fetch Flow (simulated client)")
    print("=" * 70)

    job = await orchestrator.run("DEMO-001")
    _print_job(job.to_dict())


async def run_upload_flow(orchestrator):
    """DEMO 2: pre-supplied document instead of a fetch."""
    from loandocs.clients.base import Document
    from loandocs.clients.simulated import SAMPLE_PDF_BASE64

    print("\n" + "=" * 70)
    print("  DEMO 2: Document Upload Flow")
    print("=" * 70)

    document = Document(
        guid="upload-demo",
        name="bank_statement_march.pdf",
        type="Bank Statement",
        content=SAMPLE_PDF_BASE64,
        size=len(SAMPLE_PDF_BASE64),
    )
    job = await orchestrator.run_with_documents("DEMO-002", [document])
    _print_job(job.to_dict())


async def run_handshake_flow(orchestrator):
    """DEMO 3: launch handshake → session → background ticket run."""
    from loandocs.handshake.protocol import HandshakeProtocol
    from loandocs.handshake.sessions import SessionStore

    print("\n" + "=" * 70)
    print("  DEMO 3: Generic Framework Launch (ticket)")
    print("=" * 70)

    handshake = HandshakeProtocol(SessionStore(), orchestrator, "http://localhost:3000")
    reply = handshake.handle_launch(LAUNCH_XML)
    print(f"\n  Launch status : {reply.status_code}")
    print("  Response      :")
    for line in reply.body.splitlines():
        print(f"    {line}")

    print(f"\n  Session       : {handshake.resolve_session(reply.session_id)}")
    ack = handshake.start_session(reply.session_id)
    print(f"  Started       : {ack}")

    await orchestrator.drain()
    _print_job(orchestrator.status()["job"])


async def run_conflict(orchestrator):
    """DEMO 4: a second start while a job is in flight is rejected."""
    from loandocs.pipeline.errors import ConflictError

    print("\n" + "=" * 70)
    print("  DEMO 4: Concurrent Start")
    print("=" * 70)

    first = orchestrator.start("DEMO-004")
    try:
        orchestrator.start("DEMO-005")
    except ConflictError as exc:
        print(f"\n  Rejected      : {exc} (blocking job {exc.job_id[:12]}...)")
        print(f"  Matches first : {exc.job_id == first.id}")
    await orchestrator.drain()


def _print_job(job):
    """Pretty-print a job snapshot."""
    print(f"\n{'─' * 50}")
    print(f"  Job ID       : {job['id'][:12]}...")
    print(f"  Loan         : {job['loan_number']}")
    print(f"  Mode         : {job['mode']}")
    print(f"  Status       : {job['status']}")
    print(f"  Duration     : {job['duration_ms']}ms")
    print(
        f"  Documents    : received={job['documents_received']} "
        f"processed={job['documents_processed']} returned={job['documents_returned']}"
    )
    if job["error"]:
        print(f"  Error        : {job['error']}")

    print(f"\n  Steps:")
    for step in job["steps"]:
        icon = {"completed": "✓", "failed": "✗"}.get(step["status"], "…")
        print(f"    {icon} {step['name']:<13} {step['message']}")
    print(f"{'─' * 50}\n")


async def main():
    from loandocs.core.logging import setup_logging
    setup_logging("WARNING")     # quiet logs, show formatted output only

    print("\n╔" + "═" * 68 + "╗")
    print("║        LOAN DOCUMENT INTEGRATION — ORCHESTRATOR DEMO               ║")
    print("╚" + "═" * 68 + "╝")

    orchestrator = _build()
    await run_fetch_flow(orchestrator)
    await run_upload_flow(orchestrator)
    await run_handshake_flow(orchestrator)
    await run_conflict(orchestrator)

    print(f"\n✅ All demos completed. {len(orchestrator.history())} jobs in history.\n")


if __name__ == "__main__":
    asyncio.run(main())
