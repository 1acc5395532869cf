"""Exception hierarchy for the statement extraction pipeline.

Every pipeline exception carries an ``error_code`` from the catalog below
and a human-readable ``message`` that is safe to show to the uploader.
"""

from __future__ import annotations

from enum import Enum

ERROR_MESSAGES: dict[str, str] = {
    "PDF_PASSWORD_REQUIRED": "This PDF is password protected. Please enter the password below.",
    "PDF_PASSWORD_INCORRECT": "Incorrect password. Please try again.",
    "PDF_CORRUPT": "The PDF file appears to be corrupted.",
    "PDF_DECODE_FAILED": "Failed to read the PDF.",
    "AI_BACKEND_UNCONFIGURED": "The AI backend is not configured.",
    "AI_BACKEND_TRANSPORT": "Could not reach the AI backend.",
    "AI_BACKEND_HTTP": "The AI backend returned an error.",
    "PIPELINE_ERROR": "Failed to parse PDF",
}


class CredentialErrorKind(str, Enum):
    REQUIRED = "PDF_PASSWORD_REQUIRED"
    INCORRECT = "PDF_PASSWORD_INCORRECT"


class DecodeErrorKind(str, Enum):
    CORRUPT = "PDF_CORRUPT"
    OTHER = "PDF_DECODE_FAILED"


class BackendErrorKind(str, Enum):
    UNCONFIGURED = "AI_BACKEND_UNCONFIGURED"
    TRANSPORT = "AI_BACKEND_TRANSPORT"
    HTTP_STATUS = "AI_BACKEND_HTTP"


class StatementPipelineError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        error_code: Code from ``ERROR_MESSAGES``.
        message: Text shown to the user; defaults to the catalog entry.
    """

    def __init__(self, error_code: str, message: str | None = None):
        self.error_code = error_code
        self.message = message or ERROR_MESSAGES.get(error_code, error_code)
        super().__init__(self.message)


class CredentialError(StatementPipelineError):
    """The document needs a (different) password. Recoverable."""

    def __init__(self, kind: CredentialErrorKind, message: str | None = None):
        self.kind = kind
        super().__init__(kind.value, message)


class DecodeError(StatementPipelineError):
    """The document could not be turned into text. Terminal for the attempt."""

    def __init__(self, kind: DecodeErrorKind, message: str | None = None):
        self.kind = kind
        super().__init__(kind.value, message)


class BackendError(StatementPipelineError):
    """The language-model backend is missing, unreachable or refused the call."""

    def __init__(
        self,
        kind: BackendErrorKind,
        message: str | None = None,
        *,
        status_code: int | None = None,
    ):
        self.kind = kind
        self.status_code = status_code
        super().__init__(kind.value, message)


class InvalidTransitionError(Exception):
    """Raised when a controller operation is not valid in the current state."""
