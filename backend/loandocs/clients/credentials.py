"""
Credential sources for document-service calls.

    OAuthCredentials      — client-credentials grant, token cached until
                            TOKEN_REFRESH_MARGIN_SECONDS before expiry
    TicketCredentials     — pre-issued Generic Framework ticket, used verbatim
    SimulatedCredentials  — fake tickets for the simulated client
"""

from __future__ import annotations

import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable

import httpx

from loandocs.core.logging import get_logger
from loandocs.pipeline.errors import CredentialError, UpstreamError

logger = get_logger(__name__)

# Validity of a Generic Framework ticket, as reported by authenticate()
TICKET_VALIDITY_SECONDS = 30 * 60
SIMULATED_TICKET_SECONDS = 25 * 60
DEFAULT_TOKEN_TTL_SECONDS = 3600


class CredentialSource(ABC):
    """Produces the `sTicket` value sent with every document-service call."""

    kind: str = "unknown"

    @abstractmethod
    async def authenticate(self) -> dict[str, Any]:
        """Obtain (or validate) a credential.  Returns a summary dict."""
        ...

    @abstractmethod
    async def ensure_credential(self) -> str:
        """Return a usable credential string, re-authenticating if needed."""
        ...


class TicketCredentials(CredentialSource):
    """
    A pre-issued ticket.  Never refreshed: its 30-minute window is tracked
    by the handshake session, not here.
    """

    kind = "ticket"

    def __init__(self, ticket: str) -> None:
        self._ticket = ticket

    def _require_ticket(self) -> str:
        if not self._ticket:
            raise CredentialError("Generic Framework ticket is empty")
        return self._ticket

    async def authenticate(self) -> dict[str, Any]:
        self._require_ticket()
        logger.info("Using Generic Framework ticket (OAuth skipped)")
        return {
            "success": True,
            "token_type": "GenericFrameworkTicket",
            "expires_in": TICKET_VALIDITY_SECONDS,
        }

    async def ensure_credential(self) -> str:
        return self._require_ticket()


class OAuthCredentials(CredentialSource):
    """OAuth 2.0 client-credentials grant against the vendor token endpoint."""

    kind = "oauth"

    def __init__(
        self,
        http: httpx.AsyncClient,
        token_url: str,
        client_id: str,
        client_secret: str,
        *,
        timeout: float = 15.0,
        refresh_margin_seconds: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._http = http
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout
        self._refresh_margin = refresh_margin_seconds
        self._clock = clock

        self._access_token: str | None = None
        self._refresh_at: float = 0.0

    @property
    def has_valid_token(self) -> bool:
        return self._access_token is not None and self._clock() < self._refresh_at

    async def authenticate(self) -> dict[str, Any]:
        if not self._client_id or not self._client_secret:
            raise CredentialError(
                "Missing ML_CLIENT_ID or ML_CLIENT_SECRET. "
                "Generate these from the MeridianLink Vendor Portal."
            )

        logger.info("Requesting OAuth token", token_url=self._token_url)

        try:
            response = await self._http.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                },
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"OAuth token request timed out after {self._timeout}s") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"OAuth token request failed: {exc}") from exc

        if response.status_code in (400, 401, 403):
            raise CredentialError(
                f"OAuth authentication rejected ({response.status_code})",
                details={"response_body": response.text[:500]},
            )
        if response.status_code >= 300:
            raise UpstreamError(
                f"OAuth token endpoint returned {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(
                "OAuth token endpoint returned invalid JSON",
                status_code=response.status_code,
                response_body=response.text,
            ) from exc

        access_token = payload.get("access_token")
        if not access_token:
            logger.error("OAuth response missing access_token", keys=sorted(payload))
            raise CredentialError("OAuth authentication failed: no access_token returned")

        expires_in = int(payload.get("expires_in") or DEFAULT_TOKEN_TTL_SECONDS)
        self._access_token = access_token
        self._refresh_at = self._clock() + max(expires_in - self._refresh_margin, 0)

        logger.info("OAuth token obtained", expires_in=expires_in)
        return {
            "success": True,
            "token_type": payload.get("token_type", "Bearer"),
            "expires_in": expires_in,
        }

    async def ensure_credential(self) -> str:
        if not self.has_valid_token:
            await self.authenticate()
        return f"Bearer {self._access_token}"


class SimulatedCredentials(CredentialSource):
    """Issues MOCK-TICKET values for the simulated client."""

    kind = "simulated"

    def __init__(
        self,
        latency_ms: int = 300,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._latency = latency_ms / 1000
        self._clock = clock
        self.ticket: str | None = None
        self._expires_at: float = 0.0

    async def authenticate(self) -> dict[str, Any]:
        if self._latency:
            await asyncio.sleep(self._latency)
        self.ticket = f"MOCK-TICKET-{uuid.uuid4().hex[:8]}"
        self._expires_at = self._clock() + SIMULATED_TICKET_SECONDS
        logger.info("Simulated authentication", ticket=self.ticket)
        return {"success": True, "ticket": self.ticket}

    async def ensure_credential(self) -> str:
        if self.ticket is None or self._clock() > self._expires_at:
            await self.authenticate()
        return self.ticket
