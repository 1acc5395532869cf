"""Recover a StatementRecord from whatever text the model returned."""

from __future__ import annotations

import logging

from ..common.json_tools import extract_json_object
from .contracts import NOT_FOUND, StatementRecord

logger = logging.getLogger(__name__)


def parse_statement_response(raw_text: str) -> StatementRecord:
    """Parse *raw_text* into a ``StatementRecord``. Never raises.

    Falls back to the all-``"Not Found"`` record when the text is empty,
    is the bare sentinel, or holds no recoverable JSON object.
    """
    stripped = (raw_text or "").strip()
    if not stripped or stripped == NOT_FOUND:
        logger.info("Model reported nothing found")
        return StatementRecord.not_found()

    basis = extract_json_object(stripped)
    if basis is None:
        logger.warning("No JSON object in model response: %s", stripped[:200])
        return StatementRecord.not_found()

    return StatementRecord.from_basis(basis)
