"""
Document-service clients.

create_client() picks the implementation from settings:
USE_MOCK=true → SimulatedClient, otherwise EDocsClient with OAuth.
"""

from __future__ import annotations

import httpx

from loandocs.clients.base import AuthClient, Document, DocumentRef, UploadResult
from loandocs.clients.credentials import OAuthCredentials, SimulatedCredentials, TicketCredentials
from loandocs.clients.edocs import EDocsClient
from loandocs.clients.simulated import SimulatedClient
from loandocs.core.config import Settings


def create_client(settings: Settings, http: httpx.AsyncClient | None = None) -> AuthClient:
    """Build the client configured by `settings`."""
    if settings.USE_MOCK:
        return SimulatedClient(latency_ms=settings.SIMULATED_LATENCY_MS)

    http = http or httpx.AsyncClient()
    credentials = OAuthCredentials(
        http,
        settings.ML_OAUTH_URL,
        settings.ML_CLIENT_ID,
        settings.ML_CLIENT_SECRET,
        timeout=settings.ML_METADATA_TIMEOUT_SECONDS,
        refresh_margin_seconds=settings.TOKEN_REFRESH_MARGIN_SECONDS,
    )
    return EDocsClient(
        credentials,
        http,
        settings.ML_BASE_DOMAIN,
        metadata_timeout=settings.ML_METADATA_TIMEOUT_SECONDS,
        transfer_timeout=settings.ML_TRANSFER_TIMEOUT_SECONDS,
    )


__all__ = [
    "AuthClient",
    "Document",
    "DocumentRef",
    "EDocsClient",
    "OAuthCredentials",
    "SimulatedClient",
    "SimulatedCredentials",
    "TicketCredentials",
    "UploadResult",
    "create_client",
]
