"""Field-extraction prompt for credit card statements."""

from __future__ import annotations

import json

from .contracts import NOT_FOUND, STATEMENT_FIELDS

FIELD_TEMPLATE = json.dumps({key: "" for key in STATEMENT_FIELDS}, indent=2)

STATEMENT_EXTRACT_PROMPT = """You are an expert at extracting credit card statement data.
Extract the following fields from the statement text and return them in strict JSON format:

{template}

Rules:
- Respond ONLY with a single JSON object using exactly these keys.
- Do not add markdown, code fences or any explanation.
- If a field cannot be found in the text, use "{not_found}".

Here is the statement text:
<<<
{content}
>>>"""


def build_prompt(document_text: str) -> str:
    """Return the extraction prompt with *document_text* embedded verbatim."""
    return STATEMENT_EXTRACT_PROMPT.format(
        template=FIELD_TEMPLATE,
        not_found=NOT_FOUND,
        content=document_text,
    )
