"""Extract a JSON object from free-form model output.

Models often wrap JSON in markdown fences or surround it with prose. The
parser applies a fixed fallback order:

1. Strip a fenced code block (```json ... ``` or ``` ... ```).
2. Keep the text from the first ``{`` to the last ``}``.
3. Parse strictly with ``json.loads``.

Anything that still fails to parse, or parses to something other than an
object, raises ``AIGenerationError`` with reason ``invalid_response``.
"""

import json
import re
from typing import Any

from article_manager.core.exceptions import AIGenerationError, AIGenerationReason

_FENCE_RE = re.compile(r"```[a-zA-Z0-9_-]*\s*\n?([\s\S]*?)\n?\s*```")


def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced block, or the text unchanged."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1)
    return text


def outermost_object(text: str) -> str:
    """Return the slice from the first ``{`` to the last ``}`` (inclusive)."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return text
    return text[start : end + 1]


def extract_json(text: str | None) -> dict[str, Any]:
    """Parse the JSON object embedded in ``text``.

    Raises:
        AIGenerationError: With reason ``invalid_response`` if no object
            can be parsed
    """
    if not text or not text.strip():
        raise AIGenerationError(
            AIGenerationReason.INVALID_RESPONSE, message="empty response from AI"
        )

    candidate = outermost_object(strip_code_fence(text.strip())).strip()
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise AIGenerationError(
            AIGenerationReason.INVALID_RESPONSE,
            message="failed to parse AI response as JSON",
            details={"error": str(e)},
        ) from e

    if not isinstance(data, dict):
        raise AIGenerationError(
            AIGenerationReason.INVALID_RESPONSE,
            message="AI response is not a JSON object",
        )
    return data
