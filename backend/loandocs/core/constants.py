"""Shared constants and enums used across the application."""

from enum import StrEnum


class JobMode(StrEnum):
    """How a job was launched (fixed at creation)."""

    SIMULATED = "simulated"
    LIVE = "live"
    TICKET_LAUNCHED = "ticket-launched"
    DOCUMENT_UPLOAD = "document-upload"


class JobStatus(StrEnum):
    """Overall status of a job: the active step name or a terminal value."""

    STARTING = "starting"
    AUTHENTICATE = "authenticate"
    RECEIVE = "receive"
    PROCESS = "process"
    RETURN = "return"
    COMPLETED = "completed"
    FAILED = "failed"


class StepName(StrEnum):
    """The four pipeline stages, in execution order."""

    AUTHENTICATE = "authenticate"
    RECEIVE = "receive"
    PROCESS = "process"
    RETURN = "return"


STEP_ORDER: tuple[StepName, ...] = (
    StepName.AUTHENTICATE,
    StepName.RECEIVE,
    StepName.PROCESS,
    StepName.RETURN,
)


class StepStatus(StrEnum):
    """Status of an individual pipeline step."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_JOB_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})

# Vendor XML namespace for the EDocs SOAP service
EDOCS_NAMESPACE = "http://www.lendersoffice.com/los/webservices/"
SOAP_NAMESPACE = "http://schemas.xmlsoap.org/soap/envelope/"

ALLOWED_UPLOAD_EXTENSIONS = (".pdf", ".png", ".jpg", ".jpeg", ".tiff", ".tif")
