"""
AuthClient — the capability set the orchestrator depends on.

Every document-service client (live EDocs, simulated) exposes the same
five operations.  Which credential is sent with each call is decided by
a CredentialSource: the client's default source (OAuth or simulated), or
a ticket installed as a one-run override.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any

from loandocs.clients.credentials import CredentialSource, TicketCredentials
from loandocs.core.constants import JobMode
from loandocs.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DocumentRef:
    """A document as listed by the document service (no content)."""

    guid: str
    name: str = ""
    type: str = ""
    folder: str = ""
    date_modified: str = ""
    size: int = 0


@dataclass
class Document:
    """A document with its base64 content, ready for processing."""

    guid: str
    name: str = ""
    type: str = ""
    content: str = ""
    format: str = "pdf"
    size: int = 0
    folder: str = ""
    date_modified: str = ""

    @classmethod
    def from_ref(cls, ref: DocumentRef, content: str, format: str = "pdf") -> "Document":
        return cls(
            guid=ref.guid,
            name=ref.name,
            type=ref.type,
            content=content,
            format=format,
            size=ref.size,
            folder=ref.folder,
            date_modified=ref.date_modified,
        )


@dataclass
class UploadResult:
    """Acknowledgement for one uploaded document."""

    loan_number: str
    document_type: str
    success: bool = True
    result: str = "uploaded"
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AuthClient(ABC):
    """
    Base class for document-service clients.

    Subclasses MUST implement:
        - mode                       — JobMode reported for default-credential runs
        - list_documents(loan)
        - download_document(ref)
        - upload_document(loan, type, content, notes)

    authenticate() / ensure_credential() delegate to the active
    CredentialSource, so subclasses never branch on ticket vs OAuth.
    """

    def __init__(self, credentials: CredentialSource) -> None:
        self._default_credentials = credentials
        self._override: TicketCredentials | None = None

    @property
    @abstractmethod
    def mode(self) -> JobMode:
        ...

    # ─── Credential source ─────────────────────────────

    @property
    def credentials(self) -> CredentialSource:
        """The source used for the next call: override first, default otherwise."""
        return self._override or self._default_credentials

    @property
    def has_override(self) -> bool:
        return self._override is not None

    def set_credential_override(self, ticket: str) -> None:
        """Use a pre-issued ticket instead of the default source until cleared."""
        self._override = TicketCredentials(ticket)
        logger.info("Using Generic Framework ticket for document service calls", credentials=self._override.kind)

    def clear_credential_override(self) -> None:
        if self._override is not None:
            logger.info(
                "Cleared ticket override, reverting to default credentials",
                credentials=self._default_credentials.kind,
            )
        self._override = None

    async def authenticate(self) -> dict[str, Any]:
        return await self.credentials.authenticate()

    async def ensure_credential(self) -> str:
        return await self.credentials.ensure_credential()

    # ─── Document operations ───────────────────────────

    @abstractmethod
    async def list_documents(self, loan_number: str) -> list[DocumentRef]:
        ...

    @abstractmethod
    async def download_document(self, ref: DocumentRef) -> Document:
        ...

    @abstractmethod
    async def upload_document(
        self,
        loan_number: str,
        document_type: str,
        content: str,
        notes: str = "",
    ) -> UploadResult:
        ...

    async def aclose(self) -> None:
        """Release network resources.  Default: nothing to release."""
        pass
