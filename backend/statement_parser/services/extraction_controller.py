"""Single-document extraction pipeline as an explicit state machine.

    IDLE ──submit──▶ EXTRACTING ──▶ SUCCEEDED
                       │    ▲  └──▶ FAILED
                       ▼    │retry
              AWAITING_CREDENTIAL

Any state accepts a fresh ``submit``. Each submit/retry starts a new attempt;
a run only publishes while its attempt is still the current one, so a
superseded run finishing late never overwrites newer state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from statement_parser.core.exceptions import (
    ERROR_MESSAGES,
    BackendError,
    CredentialError,
    DecodeError,
    InvalidTransitionError,
)
from statement_parser.services.ai.common.router import ResolvedConfig
from statement_parser.services.ai.statement_extract.contracts import (
    ExtractionRequest,
    StatementRecord,
)
from statement_parser.services.ai.statement_extract.service import (
    extract_statement_fields,
    resolve_backend,
)
from statement_parser.services.documents.pdf_text import DocumentTextExtractor, PdfTextExtractor

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "IDLE"
    EXTRACTING = "EXTRACTING"
    AWAITING_CREDENTIAL = "AWAITING_CREDENTIAL"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


ALLOWED_TRANSITIONS = {
    PipelineState.IDLE: [PipelineState.EXTRACTING],
    PipelineState.EXTRACTING: [
        PipelineState.EXTRACTING,
        PipelineState.AWAITING_CREDENTIAL,
        PipelineState.SUCCEEDED,
        PipelineState.FAILED,
    ],
    PipelineState.AWAITING_CREDENTIAL: [PipelineState.EXTRACTING],
    PipelineState.SUCCEEDED: [PipelineState.EXTRACTING],
    PipelineState.FAILED: [PipelineState.EXTRACTING],
}


@dataclass(frozen=True)
class PipelineSnapshot:
    """The current state together with the payload that belongs to it."""

    state: PipelineState
    record: Optional[StatementRecord] = None
    message: str = ""
    error_code: Optional[str] = None


class ExtractionController:
    """Owns the pipeline state for one document at a time.

    Args:
        extractor: Document text extractor; defaults to ``PdfTextExtractor``.
        backend_factory: Returns the resolved model backend. Called once per
            run so configuration errors surface as ``FAILED``.
        on_change: Called with every published snapshot.
    """

    def __init__(
        self,
        *,
        extractor: DocumentTextExtractor | None = None,
        backend_factory: Callable[[], ResolvedConfig] | None = None,
        on_change: Callable[[PipelineSnapshot], None] | None = None,
    ) -> None:
        self._extractor = extractor or PdfTextExtractor()
        self._backend_factory = backend_factory or resolve_backend
        self._on_change = on_change
        self._snapshot = PipelineSnapshot(state=PipelineState.IDLE)
        self._attempt = 0
        self._pending_document: bytes | None = None

    @property
    def state(self) -> PipelineState:
        return self._snapshot.state

    @property
    def snapshot(self) -> PipelineSnapshot:
        return self._snapshot

    @property
    def has_pending_document(self) -> bool:
        return self._pending_document is not None

    async def submit(self, document: bytes) -> PipelineSnapshot:
        """Start a fresh pipeline for *document*, discarding any previous one."""
        self._pending_document = None
        request = ExtractionRequest(document=document)
        attempt = self._begin()
        logger.info("Pipeline attempt %d: extracting %d bytes", attempt, len(document))
        await self._run(request, attempt)
        return self._snapshot

    async def retry(self, credential: str) -> PipelineSnapshot:
        """Retry the retained document with *credential*."""
        if self.state != PipelineState.AWAITING_CREDENTIAL or self._pending_document is None:
            raise InvalidTransitionError(f"Cannot retry with a password while {self.state.value}")
        if not credential or not credential.strip():
            raise ValueError("Password must not be empty")

        request = ExtractionRequest(document=self._pending_document, credential=credential)
        attempt = self._begin()
        logger.info("Pipeline attempt %d: retrying with password", attempt)
        await self._run(request, attempt)
        return self._snapshot

    def _begin(self) -> int:
        self._attempt += 1
        self._publish(self._attempt, PipelineSnapshot(state=PipelineState.EXTRACTING))
        return self._attempt

    async def _run(self, request: ExtractionRequest, attempt: int) -> None:
        try:
            text = await self._extractor.extract(request.document, request.credential)
        except CredentialError as exc:
            if self._is_current(attempt):
                self._pending_document = request.document
            self._publish(
                attempt,
                PipelineSnapshot(
                    state=PipelineState.AWAITING_CREDENTIAL,
                    message=exc.message,
                    error_code=exc.error_code,
                ),
            )
            return
        except DecodeError as exc:
            self._fail(attempt, exc.message, exc.error_code)
            return
        except Exception:
            logger.exception("Pipeline attempt %d: extractor crashed", attempt)
            self._fail(attempt, ERROR_MESSAGES["PIPELINE_ERROR"], "PIPELINE_ERROR")
            return

        if not self._is_current(attempt):
            logger.debug("Pipeline attempt %d superseded after extraction", attempt)
            return

        if not text.strip():
            logger.info("Pipeline attempt %d: document has no text layer", attempt)

        try:
            backend = self._backend_factory()
            record = await extract_statement_fields(text, backend=backend)
        except BackendError as exc:
            self._fail(attempt, exc.message, exc.error_code)
            return
        except Exception:
            logger.exception("Pipeline attempt %d: model call crashed", attempt)
            self._fail(attempt, ERROR_MESSAGES["PIPELINE_ERROR"], "PIPELINE_ERROR")
            return

        if self._is_current(attempt):
            self._pending_document = None
        self._publish(attempt, PipelineSnapshot(state=PipelineState.SUCCEEDED, record=record))

    def _fail(self, attempt: int, message: str, error_code: str) -> None:
        if self._is_current(attempt):
            self._pending_document = None
        self._publish(
            attempt,
            PipelineSnapshot(state=PipelineState.FAILED, message=message, error_code=error_code),
        )

    def _is_current(self, attempt: int) -> bool:
        return attempt == self._attempt

    def _publish(self, attempt: int, snapshot: PipelineSnapshot) -> None:
        if not self._is_current(attempt):
            logger.debug(
                "Dropping %s from superseded attempt %d (current %d)",
                snapshot.state.value,
                attempt,
                self._attempt,
            )
            return

        current = self._snapshot.state
        if snapshot.state not in ALLOWED_TRANSITIONS.get(current, []):
            raise InvalidTransitionError(f"Transition not allowed: {current.value} -> {snapshot.state.value}")

        self._snapshot = snapshot
        if snapshot.state in (PipelineState.FAILED, PipelineState.AWAITING_CREDENTIAL):
            logger.info(
                "Pipeline attempt %d: %s -> %s (%s)",
                attempt,
                current.value,
                snapshot.state.value,
                snapshot.error_code,
            )
        else:
            logger.info("Pipeline attempt %d: %s -> %s", attempt, current.value, snapshot.state.value)

        if self._on_change is not None:
            try:
                self._on_change(snapshot)
            except Exception:
                logger.exception("on_change callback failed for state=%s", snapshot.state.value)
