"""
Artifact: syllabus_service/syllabus_ingest/core/errors.py
Purpose: Defines the stage-scoped error taxonomy of the ingestion pipeline and maps opaque collaborator failures to user-facing categories.
Preconditions:
- None.
Inputs:
- Acceptable: Error messages and underlying exceptions raised by stages or collaborators.
- Unacceptable: N/A.
Postconditions:
- Every failure that stops a run carries a `user_message` suitable for display.
Returns:
- Exception classes plus `classify_transport_failure`.
Errors/Exceptions:
- N/A.
"""

from enum import Enum
from typing import Optional


class IngestionError(Exception):
    """Base error for all ingestion pipeline failures."""

    stage: Optional[str] = None

    @property
    def user_message(self) -> str:
        return str(self)


class ValidationError(IngestionError):
    """Raised when a document that failed the validation gate is pushed forward."""

    stage = "validate"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Validation failed")


class ExtractionError(IngestionError):
    """Raised when no usable text could be read from the document."""

    stage = "upload"
    EMPTY_OR_UNREADABLE = "empty_or_unreadable"

    def __init__(self, message: str, reason: str = EMPTY_OR_UNREADABLE):
        self.reason = reason
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return (
            "Could not read the PDF. Please ensure it contains readable text "
            "(not a scanned image) and try again."
        )


class AugmentationError(IngestionError):
    """Raised when the AI/semantic service is unreachable or errored."""

    stage = "generate"


class MaterializationError(IngestionError):
    """Raised when a single candidate task could not be persisted."""

    stage = "generate"

    def __init__(self, task_title: str, cause: Exception):
        self.task_title = task_title
        self.cause = cause
        super().__init__(f'Could not create task "{task_title}": {cause}')


class TransportCategory(str, Enum):
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    QUOTA = "quota"
    UNKNOWN = "unknown"


_CATEGORY_MARKERS = (
    (
        TransportCategory.AUTHENTICATION,
        (
            "jwt expired",
            "session expired",
            "not authenticated",
            "unauthorized",
            "unauthenticated",
            "invalid login credentials",
            "permission denied",
            "forbidden",
            "user not found",
        ),
    ),
    (
        TransportCategory.QUOTA,
        ("quota", "storage full", "rate limit", "too many requests", "limit exceeded"),
    ),
    (
        TransportCategory.NETWORK,
        (
            "network",
            "fetch failed",
            "timeout",
            "timed out",
            "connection",
            "unreachable",
            "service unavailable",
            "cors",
        ),
    ),
)

TRANSPORT_USER_MESSAGES = {
    TransportCategory.NETWORK: "Network error. Please check your connection and try again.",
    TransportCategory.AUTHENTICATION: "Your session has expired. Please sign in again and retry the upload.",
    TransportCategory.QUOTA: "Storage quota exceeded. Please free up space and try again.",
}


def classify_transport_failure(message: str) -> TransportCategory:
    """Pick a user-facing category from an opaque failure message."""
    lowered = (message or "").lower()
    for category, markers in _CATEGORY_MARKERS:
        if any(marker in lowered for marker in markers):
            return category
    return TransportCategory.UNKNOWN


class TransportError(IngestionError):
    """Raised when an external collaborator could not be reached or refused the call."""

    def __init__(self, message: str, category: Optional[TransportCategory] = None):
        self.category = category or classify_transport_failure(message)
        super().__init__(message)

    @classmethod
    def from_exception(cls, exc: Exception) -> "TransportError":
        if isinstance(exc, TransportError):
            return exc
        message = str(exc) or type(exc).__name__
        if isinstance(exc, TimeoutError):
            return cls(message, TransportCategory.NETWORK)
        return cls(message)

    @property
    def user_message(self) -> str:
        known = TRANSPORT_USER_MESSAGES.get(self.category)
        if known:
            return known
        first_line = str(self).split("\n", 1)[0]
        if len(first_line) > 150:
            first_line = first_line[:147] + "..."
        return f"Upload failed: {first_line}"


class PipelineStateError(IngestionError):
    """Raised when an operation is not legal in the current pipeline state."""
