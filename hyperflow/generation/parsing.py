"""Turn provider text into typed generation results."""

from __future__ import annotations

import json
import logging
from typing import Any, Literal, Optional, Tuple

from pydantic import BaseModel

logger = logging.getLogger(__name__)

OutputFormat = Literal["markdown", "json", "text"]

_decoder = json.JSONDecoder()


class GenerationResult(BaseModel):
    """Outcome of one generation call.

    ``data`` holds what is written into a run's variable bag: the raw text for
    ``markdown``/``text``, the parsed value for ``json``, or ``{"raw": text}``
    when JSON could not be extracted. ``degraded`` tells the two JSON shapes
    apart.
    """

    text: str
    output_format: OutputFormat = "text"
    data: Any = None
    degraded: bool = False


def extract_json(text: str) -> Tuple[bool, Any]:
    """Find and parse the first JSON object or array in ``text``.

    Surrounding prose and code fences are tolerated. Returns ``(found, value)``.
    """
    stripped = text.strip()
    try:
        value = json.loads(stripped)
    except ValueError:
        pass
    else:
        if isinstance(value, (dict, list)):
            return True, value

    for index, char in enumerate(text):
        if char not in "{[":
            continue
        try:
            value, _ = _decoder.raw_decode(text, index)
        except ValueError:
            continue
        return True, value
    return False, None


def parse_response(text: str, output_format: Optional[OutputFormat] = "text") -> GenerationResult:
    """Apply the parsing policy for ``output_format`` to provider ``text``."""
    output_format = output_format or "text"
    if output_format != "json":
        return GenerationResult(text=text, output_format=output_format, data=text)

    found, value = extract_json(text)
    if found:
        return GenerationResult(text=text, output_format="json", data=value)

    logger.warning("Generation response is not valid JSON, falling back to raw text")
    return GenerationResult(
        text=text, output_format="json", data={"raw": text}, degraded=True
    )
