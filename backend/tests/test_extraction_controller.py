"""
Unit tests for extraction_controller: state machine, password flow, stale attempts.

Covers:
  - submit: happy path, empty text, decode failures, backend failures, crashes
  - password flow: required → retry(correct) / retry(wrong) without re-upload
  - retry guards: wrong state, blank password
  - superseded attempts: a late result never overwrites a newer submit
  - on_change notifications
"""

from __future__ import annotations

import asyncio

import pytest

from statement_parser.core.exceptions import (
    BackendError,
    BackendErrorKind,
    CredentialError,
    CredentialErrorKind,
    DecodeError,
    DecodeErrorKind,
    InvalidTransitionError,
)
from statement_parser.services.ai.common.providers.base import BaseProvider, ProviderResult
from statement_parser.services.ai.common.router import ResolvedConfig
from statement_parser.services.documents.pdf_text import DocumentTextExtractor
from statement_parser.services.extraction_controller import (
    ExtractionController,
    PipelineState,
)

CHASE_JSON = (
    '{"issuer": "Chase", "cardLast4": "1234", "statementPeriod": "05/01/24 - 05/31/24", '
    '"dueDate": "06/25/24", "totalBalance": "$1,520.75", "minimumPayment": "$40.00"}'
)

# ── fakes ────────────────────────────────────────────────────────────


class FakeExtractor(DocumentTextExtractor):
    """Maps document bytes to text; documents in ``locked`` need the mapped password."""

    def __init__(self, texts=None, locked=None, errors=None):
        self.texts = texts or {}
        self.locked = locked or {}
        self.errors = errors or {}
        self.calls = []

    async def extract(self, document, credential=None):
        self.calls.append((document, credential))
        if document in self.errors:
            raise self.errors[document]
        if document in self.locked:
            expected = self.locked[document]
            if credential is None:
                raise CredentialError(CredentialErrorKind.REQUIRED)
            if credential != expected:
                raise CredentialError(CredentialErrorKind.INCORRECT)
        return self.texts.get(document, "")


class FakeProvider(BaseProvider):
    name = "fake"

    def __init__(self, responses=None, error=None):
        super().__init__()
        self.responses = responses or {}
        self.error = error
        self.prompts = []

    async def generate(self, prompt, *, model="", temperature=0.0, max_tokens=512, timeout_seconds=60.0):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        raw = next((value for key, value in self.responses.items() if key in prompt), "Not Found")
        return ProviderResult(raw_text=raw, model=model or "fake-1", provider=self.name)


def _backend(provider):
    return lambda: ResolvedConfig(
        provider=provider,
        model="fake-1",
        temperature=0.0,
        max_tokens=512,
        timeout_seconds=5.0,
    )


def _controller(extractor, provider, **kwargs):
    return ExtractionController(extractor=extractor, backend_factory=_backend(provider), **kwargs)


# ── happy path ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_initial_state_is_idle():
    controller = _controller(FakeExtractor(), FakeProvider())
    assert controller.state == PipelineState.IDLE
    assert controller.snapshot.record is None


@pytest.mark.asyncio
async def test_submit_reaches_succeeded_with_record():
    extractor = FakeExtractor(texts={b"doc": "CHASE statement"})
    provider = FakeProvider(responses={"CHASE statement": CHASE_JSON})
    controller = _controller(extractor, provider)

    snapshot = await controller.submit(b"doc")

    assert snapshot.state == PipelineState.SUCCEEDED
    assert snapshot.record.issuer == "Chase"
    assert snapshot.record.card_last4 == "1234"
    assert snapshot.error_code is None
    assert extractor.calls == [(b"doc", None)]


@pytest.mark.asyncio
async def test_empty_text_is_forwarded_and_succeeds_with_not_found():
    extractor = FakeExtractor(texts={b"scan": ""})
    provider = FakeProvider()
    controller = _controller(extractor, provider)

    snapshot = await controller.submit(b"scan")

    assert snapshot.state == PipelineState.SUCCEEDED
    assert snapshot.record.to_export_dict()["issuer"] == "Not Found"
    assert len(provider.prompts) == 1


@pytest.mark.asyncio
async def test_malformed_model_output_still_succeeds():
    extractor = FakeExtractor(texts={b"doc": "statement"})
    provider = FakeProvider(responses={"statement": "I could not find any statement data, sorry."})
    controller = _controller(extractor, provider)

    snapshot = await controller.submit(b"doc")

    assert snapshot.state == PipelineState.SUCCEEDED
    assert set(snapshot.record.to_export_dict().values()) == {"Not Found"}


# ── failures ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_decode_error_fails():
    extractor = FakeExtractor(errors={b"junk": DecodeError(DecodeErrorKind.CORRUPT)})
    provider = FakeProvider()
    controller = _controller(extractor, provider)

    snapshot = await controller.submit(b"junk")

    assert snapshot.state == PipelineState.FAILED
    assert snapshot.error_code == "PDF_CORRUPT"
    assert snapshot.message
    assert provider.prompts == []
    assert not controller.has_pending_document


@pytest.mark.asyncio
async def test_backend_http_error_fails_with_backend_message():
    extractor = FakeExtractor(texts={b"doc": "text"})
    provider = FakeProvider(
        error=BackendError(BackendErrorKind.HTTP_STATUS, "Rate limit reached", status_code=429)
    )
    controller = _controller(extractor, provider)

    snapshot = await controller.submit(b"doc")

    assert snapshot.state == PipelineState.FAILED
    assert snapshot.error_code == "AI_BACKEND_HTTP"
    assert snapshot.message == "Rate limit reached"


@pytest.mark.asyncio
async def test_unconfigured_backend_fails():
    def unconfigured():
        raise BackendError(BackendErrorKind.UNCONFIGURED, "openai API key is not configured.")

    controller = ExtractionController(
        extractor=FakeExtractor(texts={b"doc": "text"}),
        backend_factory=unconfigured,
    )

    snapshot = await controller.submit(b"doc")

    assert snapshot.state == PipelineState.FAILED
    assert snapshot.error_code == "AI_BACKEND_UNCONFIGURED"


@pytest.mark.asyncio
async def test_unexpected_extractor_crash_fails_cleanly():
    extractor = FakeExtractor(errors={b"doc": RuntimeError("boom")})
    controller = _controller(extractor, FakeProvider())

    snapshot = await controller.submit(b"doc")

    assert snapshot.state == PipelineState.FAILED
    assert snapshot.error_code == "PIPELINE_ERROR"
    assert "boom" not in snapshot.message


@pytest.mark.asyncio
async def test_resubmit_after_failure_starts_fresh():
    extractor = FakeExtractor(
        texts={b"good": "CHASE statement"},
        errors={b"bad": DecodeError(DecodeErrorKind.OTHER, "Failed to read the PDF.")},
    )
    provider = FakeProvider(responses={"CHASE statement": CHASE_JSON})
    controller = _controller(extractor, provider)

    assert (await controller.submit(b"bad")).state == PipelineState.FAILED
    snapshot = await controller.submit(b"good")

    assert snapshot.state == PipelineState.SUCCEEDED
    assert snapshot.message == ""
    assert snapshot.error_code is None


# ── password flow ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_locked_document_awaits_credential_then_succeeds_on_retry():
    extractor = FakeExtractor(texts={b"locked": "CHASE statement"}, locked={b"locked": "s3cret"})
    provider = FakeProvider(responses={"CHASE statement": CHASE_JSON})
    controller = _controller(extractor, provider)

    snapshot = await controller.submit(b"locked")

    assert snapshot.state == PipelineState.AWAITING_CREDENTIAL
    assert snapshot.error_code == "PDF_PASSWORD_REQUIRED"
    assert "password protected" in snapshot.message
    assert controller.has_pending_document
    assert provider.prompts == []

    snapshot = await controller.retry("s3cret")

    assert snapshot.state == PipelineState.SUCCEEDED
    assert snapshot.record.issuer == "Chase"
    assert extractor.calls == [(b"locked", None), (b"locked", "s3cret")]
    assert not controller.has_pending_document


@pytest.mark.asyncio
async def test_wrong_password_keeps_awaiting_with_incorrect_message():
    extractor = FakeExtractor(texts={b"locked": "CHASE statement"}, locked={b"locked": "s3cret"})
    provider = FakeProvider(responses={"CHASE statement": CHASE_JSON})
    controller = _controller(extractor, provider)

    await controller.submit(b"locked")
    snapshot = await controller.retry("guess")

    assert snapshot.state == PipelineState.AWAITING_CREDENTIAL
    assert snapshot.error_code == "PDF_PASSWORD_INCORRECT"
    assert "Incorrect password" in snapshot.message

    snapshot = await controller.retry("s3cret")
    assert snapshot.state == PipelineState.SUCCEEDED


@pytest.mark.asyncio
async def test_retry_outside_awaiting_credential_raises():
    controller = _controller(FakeExtractor(texts={b"doc": "x"}), FakeProvider())

    with pytest.raises(InvalidTransitionError):
        await controller.retry("s3cret")

    await controller.submit(b"doc")
    with pytest.raises(InvalidTransitionError):
        await controller.retry("s3cret")


@pytest.mark.asyncio
async def test_blank_password_is_rejected_without_state_change():
    extractor = FakeExtractor(locked={b"locked": "s3cret"})
    controller = _controller(extractor, FakeProvider())
    await controller.submit(b"locked")

    with pytest.raises(ValueError):
        await controller.retry("   ")

    assert controller.state == PipelineState.AWAITING_CREDENTIAL
    assert len(extractor.calls) == 1


@pytest.mark.asyncio
async def test_new_submit_while_awaiting_credential_drops_pending_document():
    extractor = FakeExtractor(texts={b"other": "other"}, locked={b"locked": "s3cret"})
    controller = _controller(extractor, FakeProvider())
    await controller.submit(b"locked")

    snapshot = await controller.submit(b"other")

    assert snapshot.state == PipelineState.SUCCEEDED
    assert not controller.has_pending_document
    with pytest.raises(InvalidTransitionError):
        await controller.retry("s3cret")


# ── superseded attempts ──────────────────────────────────────────────


class GatedProvider(FakeProvider):
    """Blocks generation for prompts containing a gated marker until released."""

    def __init__(self, responses, gates):
        super().__init__(responses=responses)
        self.gates = gates
        self.started = []

    async def generate(self, prompt, **kwargs):
        self.started.append(prompt)
        for marker, gate in self.gates.items():
            if marker in prompt:
                await gate.wait()
        return await super().generate(prompt, **kwargs)


@pytest.mark.asyncio
async def test_late_result_from_first_submit_is_not_published():
    first_gate = asyncio.Event()
    extractor = FakeExtractor(texts={b"first": "FIRST statement", b"second": "SECOND statement"})
    provider = GatedProvider(
        responses={
            "FIRST statement": '{"issuer": "First Bank"}',
            "SECOND statement": '{"issuer": "Second Bank"}',
        },
        gates={"FIRST statement": first_gate},
    )
    controller = _controller(extractor, provider)

    first = asyncio.create_task(controller.submit(b"first"))
    while not provider.started:
        await asyncio.sleep(0)

    second = await controller.submit(b"second")
    assert second.state == PipelineState.SUCCEEDED
    assert second.record.issuer == "Second Bank"

    first_gate.set()
    await first

    assert controller.state == PipelineState.SUCCEEDED
    assert controller.snapshot.record.issuer == "Second Bank"


@pytest.mark.asyncio
async def test_late_credential_error_does_not_hijack_newer_attempt():
    release = asyncio.Event()

    class SlowLockedExtractor(FakeExtractor):
        async def extract(self, document, credential=None):
            if document == b"locked":
                await release.wait()
            return await super().extract(document, credential)

    extractor = SlowLockedExtractor(texts={b"open": "open statement"}, locked={b"locked": "pw"})
    controller = _controller(extractor, FakeProvider())

    first = asyncio.create_task(controller.submit(b"locked"))
    await asyncio.sleep(0)
    assert controller.state == PipelineState.EXTRACTING

    await controller.submit(b"open")
    release.set()
    await first

    assert controller.state == PipelineState.SUCCEEDED
    assert not controller.has_pending_document


# ── notifications ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_on_change_receives_every_transition():
    seen = []
    extractor = FakeExtractor(texts={b"locked": "CHASE statement"}, locked={b"locked": "pw"})
    provider = FakeProvider(responses={"CHASE statement": CHASE_JSON})
    controller = _controller(extractor, provider, on_change=lambda snap: seen.append(snap.state))

    await controller.submit(b"locked")
    await controller.retry("pw")

    assert seen == [
        PipelineState.EXTRACTING,
        PipelineState.AWAITING_CREDENTIAL,
        PipelineState.EXTRACTING,
        PipelineState.SUCCEEDED,
    ]


@pytest.mark.asyncio
async def test_failing_on_change_does_not_break_pipeline():
    def explode(_snapshot):
        raise RuntimeError("listener broke")

    controller = _controller(FakeExtractor(texts={b"doc": "x"}), FakeProvider(), on_change=explode)

    snapshot = await controller.submit(b"doc")

    assert snapshot.state == PipelineState.SUCCEEDED
