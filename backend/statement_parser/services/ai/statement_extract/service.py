"""Statement field extraction from already-decoded text."""

from __future__ import annotations

import logging

from statement_parser.services.ai.common import router as ai_router
from statement_parser.services.ai.common.router import ResolvedConfig

from .contracts import StatementRecord
from .parser import parse_statement_response
from .prompt import build_prompt

logger = logging.getLogger(__name__)

SCOPE = "statement_extract"


def resolve_backend(
    *,
    override_provider: str | None = None,
    override_model: str | None = None,
) -> ResolvedConfig:
    return ai_router.resolve(
        SCOPE,
        override_provider=override_provider,
        override_model=override_model,
    )


async def extract_statement_fields(
    document_text: str,
    *,
    backend: ResolvedConfig | None = None,
) -> StatementRecord:
    """Run prompt → model → parser on *document_text*.

    ``BackendError`` propagates; malformed model output does not.
    """
    config = backend or resolve_backend()
    prompt = build_prompt(document_text)

    result = await config.generate(prompt)
    logger.info(
        "Statement extraction via %s:%s took %.0fms (%d completion tokens)",
        result.provider,
        result.model,
        result.latency_ms,
        result.completion_tokens,
    )

    record = parse_statement_response(result.raw_text)
    logger.info("Extracted %d/6 statement fields", len(record.found_fields()))
    return record
