"""Shared fixtures: fake clock, scripted clients, orchestrator and ASGI client."""

from __future__ import annotations

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from loandocs.clients.simulated import SimulatedClient
from loandocs.core.config import Settings
from loandocs.handshake.sessions import SessionStore
from loandocs.main import create_app
from loandocs.pipeline.errors import UpstreamError
from loandocs.pipeline.orchestrator import Orchestrator
from loandocs.processing.document_processor import DocumentProcessor


class FakeClock:
    """Manually advanced time source for TTL and token-expiry tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingClient(SimulatedClient):
    """Simulated client that records the credential sent with every call."""

    def __init__(self, **kwargs) -> None:
        super().__init__(latency_ms=0, **kwargs)
        self.seen_credentials: list[str] = []

    async def ensure_credential(self) -> str:
        credential = await super().ensure_credential()
        self.seen_credentials.append(credential)
        return credential


class GatedClient(RecordingClient):
    """Blocks list_documents until `gate` is set, holding the job in receive."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()

    async def list_documents(self, loan_number):
        await self.gate.wait()
        return await super().list_documents(loan_number)


class FailingClient(RecordingClient):
    """Raises UpstreamError from the named operation."""

    def __init__(self, fail_on: str, message: str = "DownloadEdocsPdfById timed out after 30.0s") -> None:
        super().__init__()
        self.fail_on = fail_on
        self.message = message

    async def list_documents(self, loan_number):
        if self.fail_on == "list":
            await self.ensure_credential()
            raise UpstreamError(self.message)
        return await super().list_documents(loan_number)

    async def download_document(self, ref):
        if self.fail_on == "download":
            raise UpstreamError(self.message)
        return await super().download_document(ref)

    async def upload_document(self, loan_number, document_type, content, notes=""):
        if self.fail_on == "upload":
            raise UpstreamError(self.message)
        return await super().upload_document(loan_number, document_type, content, notes)


class EmptyClient(RecordingClient):
    """The loan exists but has no documents."""

    async def list_documents(self, loan_number):
        await self.ensure_credential()
        return []


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def processor() -> DocumentProcessor:
    return DocumentProcessor(delay_ms=0)


@pytest.fixture
def client() -> RecordingClient:
    return RecordingClient()


@pytest.fixture
def gated_client() -> GatedClient:
    return GatedClient()


@pytest.fixture
def orchestrator(client, processor) -> Orchestrator:
    return Orchestrator(client=client, processor=processor)


@pytest.fixture
def make_orchestrator(processor):
    def _make(client) -> Orchestrator:
        return Orchestrator(client=client, processor=processor)

    return _make


@pytest.fixture
def sessions(clock) -> SessionStore:
    return SessionStore(ttl_seconds=1800, clock=clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, APP_ENV="test", PUBLIC_URL="https://vendor.example.com")


@pytest.fixture
def app(settings, orchestrator, sessions):
    return create_app(settings=settings, orchestrator=orchestrator, sessions=sessions)


@pytest.fixture
async def async_client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def empty_client() -> EmptyClient:
    return EmptyClient()


@pytest.fixture
def failing_client():
    """Factory: failing_client("download") fails every download."""
    return FailingClient
