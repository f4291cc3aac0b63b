"""Placeholder substitution for templates, prompts and automation scripts.

``bind`` replaces every ``{{name}}`` token in a single pass. Substituted text
is never rescanned, so values that themselves contain braces are inserted
verbatim. Unknown names resolve to the empty string; the binder never raises
on template content.
"""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import date, datetime
from typing import Any, List, Literal, Mapping, Optional

from pydantic import BaseModel

from .constants import LOGO_FRAGMENT, PLACEHOLDER_PATTERN, RECIPIENT_FALLBACK
from .contracts import is_presentational

logger = logging.getLogger(__name__)

RenderMode = Literal["human_readable", "code_literal"]

RESERVED_TOKENS = ("logo", "recipient_name")


class BindContext(BaseModel):
    """Run context used to resolve reserved tokens."""

    logo_url: Optional[str] = None
    recipient_name: Optional[str] = None

    def resolve(self, token: str) -> str:
        if token == "logo":
            return LOGO_FRAGMENT.format(url=self.logo_url) if self.logo_url else ""
        if token == "recipient_name":
            name = (self.recipient_name or "").strip()
            return name or RECIPIENT_FALLBACK
        raise KeyError(token)


def _json_default(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return str(value)


def _to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=_json_default)


def _number(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_structured(value: Any) -> bool:
    return isinstance(value, (dict, list, tuple, BaseModel))


def render_value(value: Any, mode: RenderMode = "human_readable") -> str:
    """Render one bound value as text for the given mode."""
    if mode == "code_literal":
        return _render_code(value)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _number(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        if any(_is_structured(item) for item in value):
            return _to_json(list(value))
        return ", ".join(render_value(item) for item in value)
    if isinstance(value, (dict, BaseModel)):
        return _to_json(value)
    return str(value)


def _render_code(value: Any) -> str:
    if value is None or (isinstance(value, float) and not math.isfinite(value)):
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _number(value)
    if isinstance(value, (date, datetime)):
        return _to_json(value.isoformat())
    if isinstance(value, tuple):
        value = list(value)
    if isinstance(value, (str, list, dict, BaseModel)):
        return _to_json(value)
    return _to_json(str(value))


def find_placeholders(template: str) -> List[str]:
    """Return placeholder names in first-occurrence order, without duplicates."""
    seen: List[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(template):
        name = match.group(1)
        if name not in seen:
            seen.append(name)
    return seen


def bind(
    template: str,
    values: Mapping[str, Any],
    mode: RenderMode = "human_readable",
    context: Optional[BindContext] = None,
) -> str:
    """Substitute every ``{{name}}`` in ``template`` from ``values``.

    Args:
        template: Text containing placeholders.
        values: Variable bag. Keys starting with ``_`` are ignored.
        mode: ``human_readable`` for prompts and documents, ``code_literal``
            for script fragments.
        context: Resolves reserved tokens such as ``{{logo}}``.
    """
    context = context or BindContext()

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name in RESERVED_TOKENS:
            return context.resolve(name)
        if is_presentational(name) or name not in values:
            logger.debug(f"Unbound placeholder {{{{{name}}}}} resolved to empty string")
            return ""
        return render_value(values[name], mode)

    return PLACEHOLDER_PATTERN.sub(_replace, template)
