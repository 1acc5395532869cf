"""JSON recovery from LLM responses that wrap their payload in prose or code fences."""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Try to recover a JSON object from *text*.

    Strategy:
    1. Attempt ``json.loads`` on the full trimmed text (fast path).
    2. Attempt ``json.loads`` on the span from the first ``{`` to the
       last ``}`` inclusive.
    3. Return ``None`` if neither yields an object.
    """
    if not text or not text.strip():
        return None

    stripped = text.strip()

    # Fast path: whole text is a JSON object
    parsed = _loads(stripped)
    if isinstance(parsed, dict):
        return parsed

    # Outermost brace span
    start = stripped.find("{")
    end = stripped.rfind("}")
    if start == -1 or end <= start:
        return None

    parsed = _loads(stripped[start : end + 1])
    if isinstance(parsed, dict):
        return parsed

    return None


def _loads(candidate: str) -> Any:
    # Deeply nested input exhausts the decoder's recursion limit.
    try:
        return json.loads(candidate)
    except (ValueError, RecursionError):
        return None
