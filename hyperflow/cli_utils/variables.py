"""Helpers for turning command line options into variable bags."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable

import typer


def _parse_value(raw: str) -> Any:
    """Decode JSON-looking values, leaving plain text unchanged."""
    text = raw.strip()
    if text[:1] in ("[", "{", '"'):
        try:
            return json.loads(text)
        except ValueError:
            return raw
    return raw


def parse_var_options(options: Iterable[str]) -> Dict[str, Any]:
    """Parse repeated ``--var name=value`` options.

    Later occurrences of a name override earlier ones.
    """
    variables: Dict[str, Any] = {}
    for option in options:
        name, sep, value = option.partition("=")
        name = name.strip()
        if not sep or not name:
            raise typer.BadParameter(f"Expected name=value, got {option!r}", param_hint="--var")
        variables[name] = _parse_value(value)
    return variables


def format_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)
