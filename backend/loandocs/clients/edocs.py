"""
EDocsClient — live client for the MeridianLink EDocs SOAP service.

Every call carries the current credential as `sTicket`:
    - "Bearer {token}" from OAuth (default), or
    - the Generic Framework ticket element when a launch installed one.

Envelopes are built with loandocs.core.xmldoc, so every field (ticket,
loan number, notes, document content) is escaped.  Metadata calls use the
short timeout, transfers the long one; a timeout fails the call with
UpstreamError instead of hanging the job.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

import httpx

from loandocs.clients.base import AuthClient, Document, DocumentRef, UploadResult
from loandocs.clients.credentials import CredentialSource
from loandocs.core.constants import EDOCS_NAMESPACE, SOAP_NAMESPACE, JobMode
from loandocs.core.logging import get_logger
from loandocs.core.xmldoc import (
    Node,
    XmlParseError,
    find_path,
    iter_named,
    parse_document,
    render,
    text_of,
    value_of,
)
from loandocs.pipeline.errors import UpstreamError

logger = get_logger(__name__)

WS_PATH = "/los/webservice/EDocsService.asmx"
DOCUMENT_ELEMENTS = ("EDoc", "edoc", "Document")


def build_envelope(action: str, params: list[tuple[str, str]]) -> str:
    """Render a SOAP 1.1 envelope for `action` with ordered parameters."""
    envelope = Node(
        "soap:Envelope",
        attrs={"xmlns:soap": SOAP_NAMESPACE, "xmlns:los": EDOCS_NAMESPACE},
    )
    operation = envelope.add("soap:Body").add(f"los:{action}")
    for name, value in params:
        operation.add(f"los:{name}", value or "")
    return render(envelope)


def parse_document_list(result: ET.Element | None) -> list[DocumentRef]:
    """
    Extract document refs from a ListEdocsByLoanNumber result.

    The result is either nested elements or an XML string embedded as
    text.  An empty result is an empty list.
    """
    if result is None:
        return []

    root: ET.Element = result
    if len(result) == 0:
        inner = text_of(result)
        if not inner:
            return []
        try:
            root = parse_document(inner)
        except XmlParseError as exc:
            raise UpstreamError(f"Could not parse document list: {exc}") from exc

    refs = []
    for node in iter_named(root, DOCUMENT_ELEMENTS):
        size = value_of(node, "Size", "size")
        refs.append(DocumentRef(
            guid=value_of(node, "docid", "GUID", "guid"),
            name=value_of(node, "Name", "DocumentName", "name", "doc_type"),
            type=value_of(node, "Type", "DocumentType", "doc_type", "type"),
            folder=value_of(node, "folder_name", "Folder"),
            date_modified=value_of(node, "DateModified", "date_modified"),
            size=int(size) if size.isdigit() else 0,
        ))
    return refs


class EDocsClient(AuthClient):
    """Document service client for live (non-simulated) runs."""

    def __init__(
        self,
        credentials: CredentialSource,
        http: httpx.AsyncClient,
        base_domain: str,
        *,
        metadata_timeout: float = 15.0,
        transfer_timeout: float = 30.0,
    ) -> None:
        super().__init__(credentials)
        self._http = http
        self._endpoint = f"{base_domain.rstrip('/')}{WS_PATH}"
        self._metadata_timeout = metadata_timeout
        self._transfer_timeout = transfer_timeout

    @property
    def mode(self) -> JobMode:
        return JobMode.LIVE

    # ─── Document operations ───────────────────────────

    async def list_documents(self, loan_number: str) -> list[DocumentRef]:
        logger.info("Listing eDocs", loan_number=loan_number)
        result = await self._call(
            "ListEdocsByLoanNumber",
            [("sLNm", loan_number)],
            timeout=self._metadata_timeout,
        )
        return parse_document_list(result)

    async def download_document(self, ref: DocumentRef) -> Document:
        logger.info("Downloading document", doc_id=ref.guid)
        result = await self._call(
            "DownloadEdocsPdfById",
            [("docId", ref.guid)],
            timeout=self._transfer_timeout,
        )
        return Document.from_ref(ref, content=text_of(result), format="pdf")

    async def upload_document(
        self,
        loan_number: str,
        document_type: str,
        content: str,
        notes: str = "",
    ) -> UploadResult:
        logger.info("Uploading document", loan_number=loan_number, document_type=document_type)
        result = await self._call(
            "UploadPDFDocument",
            [
                ("sLNm", loan_number),
                ("documentType", document_type),
                ("notes", notes),
                ("sDataContent", content),
            ],
            timeout=self._transfer_timeout,
        )
        return UploadResult(
            loan_number=loan_number,
            document_type=document_type,
            result=text_of(result) or "uploaded",
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    # ─── SOAP transport ────────────────────────────────

    async def _call(
        self,
        action: str,
        params: list[tuple[str, str]],
        *,
        timeout: float,
    ) -> ET.Element | None:
        """POST one SOAP action and return its `{action}Result` element."""
        ticket = await self.ensure_credential()
        envelope = build_envelope(action, [("sTicket", ticket), *params])

        try:
            response = await self._http.post(
                self._endpoint,
                content=envelope.encode("utf-8"),
                headers={
                    "Content-Type": "text/xml; charset=utf-8",
                    "SOAPAction": f'"{EDOCS_NAMESPACE}{action}"',
                },
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"{action} timed out after {timeout}s") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"{action} request failed: {exc}") from exc

        if response.status_code >= 300:
            raise UpstreamError(
                f"{action} returned {response.status_code}: {self._fault_message(response.text)}",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            root = parse_document(response.text)
        except XmlParseError as exc:
            raise UpstreamError(
                f"{action} returned an unreadable response: {exc}",
                status_code=response.status_code,
                response_body=response.text,
            ) from exc

        return find_path(root, "Body", f"{action}Response", f"{action}Result")

    @staticmethod
    def _fault_message(body: str) -> str:
        """Best-effort faultstring from a SOAP fault body."""
        try:
            root = parse_document(body)
        except XmlParseError:
            return body[:200]
        fault = find_path(root, "Body", "Fault")
        return value_of(fault, "faultstring") or body[:200]
