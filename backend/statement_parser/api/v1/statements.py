"""Statement upload, password retry, status and export endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from statement_parser.core.config import get_settings
from statement_parser.core.exceptions import BackendError, InvalidTransitionError
from statement_parser.schemas.statement import ParseTextRequest, StatementSessionOut
from statement_parser.services.ai.statement_extract.contracts import export_filename
from statement_parser.services.ai.statement_extract.service import extract_statement_fields
from statement_parser.services.extraction_controller import ExtractionController, PipelineState
from statement_parser.services.statement_sessions import StatementSessionStore, get_session_store

logger = logging.getLogger(__name__)

router = APIRouter()

PDF_CONTENT_TYPES = {"application/pdf", "application/x-pdf"}


def _looks_like_pdf(file: UploadFile, content: bytes) -> bool:
    if file.content_type in PDF_CONTENT_TYPES:
        return True
    if file.filename and file.filename.lower().endswith(".pdf"):
        return True
    return content.startswith(b"%PDF")


def _get_controller(store: StatementSessionStore, session_id: str) -> ExtractionController:
    controller = store.get(session_id)
    if controller is None:
        raise HTTPException(404, "Statement session not found")
    return controller


@router.post("/statements", response_model=StatementSessionOut)
async def upload_statement(
    file: UploadFile = File(...),
    store: StatementSessionStore = Depends(get_session_store),
):
    settings = get_settings()

    content = await file.read()
    if not content:
        raise HTTPException(400, "Empty file")
    if not _looks_like_pdf(file, content):
        raise HTTPException(400, "Please upload a PDF file")
    if len(content) > settings.pdf_max_bytes:
        raise HTTPException(413, f"File is larger than {settings.pdf_max_size_mb} MB")

    session_id, controller = store.create()
    logger.info("Statement session %s created for %s", session_id, file.filename or "upload")
    snapshot = await controller.submit(content)
    return StatementSessionOut.from_snapshot(session_id, snapshot)


@router.post("/statements/{session_id}/password", response_model=StatementSessionOut)
async def submit_statement_password(
    session_id: str,
    password: str = Form(""),
    store: StatementSessionStore = Depends(get_session_store),
):
    controller = _get_controller(store, session_id)
    try:
        snapshot = await controller.retry(password)
    except InvalidTransitionError as exc:
        raise HTTPException(409, str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    return StatementSessionOut.from_snapshot(session_id, snapshot)


@router.get("/statements/{session_id}", response_model=StatementSessionOut)
async def get_statement(
    session_id: str,
    store: StatementSessionStore = Depends(get_session_store),
):
    controller = _get_controller(store, session_id)
    return StatementSessionOut.from_snapshot(session_id, controller.snapshot)


@router.get("/statements/{session_id}/export")
async def export_statement(
    session_id: str,
    store: StatementSessionStore = Depends(get_session_store),
):
    controller = _get_controller(store, session_id)
    snapshot = controller.snapshot
    if snapshot.state != PipelineState.SUCCEEDED or snapshot.record is None:
        raise HTTPException(409, "No extracted data to export yet")

    return JSONResponse(
        content=snapshot.record.to_export_dict(),
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.post("/statements/parse-text")
async def parse_statement_text(payload: ParseTextRequest):
    if not payload.pdf_text.strip():
        raise HTTPException(400, "Missing PDF text")

    try:
        record = await extract_statement_fields(payload.pdf_text)
    except BackendError as exc:
        logger.warning("parse-text backend failure: %s", exc.error_code)
        raise HTTPException(502, exc.message) from exc
    return record.to_export_dict()
