"""Generator line parser — one stdout line → one candidate event mapping.

Only the framing is checked here (is it a JSON object?). Field-level
validation belongs to the ingestion pipeline, so a generator event and an
HTTP submission are judged by exactly the same rules.
"""

import json
from typing import Any

from houseboard.errors import GeneratorParseError


def parse_line(line: str) -> dict[str, Any]:
    """Parse a line of generator output. Raises GeneratorParseError."""
    text = line.strip()
    if not text:
        raise GeneratorParseError(line, "empty line")
    try:
        candidate = json.loads(text)
    except json.JSONDecodeError as e:
        raise GeneratorParseError(line, f"invalid JSON: {e.msg}") from None
    if not isinstance(candidate, dict):
        raise GeneratorParseError(line, f"expected a JSON object, got {type(candidate).__name__}")
    return candidate
