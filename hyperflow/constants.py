"""Shared constants for hyperflow."""

from __future__ import annotations

import re

# {{identifier}} with no whitespace inside the braces.
PLACEHOLDER_PATTERN = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_]*)\}\}")
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# stateKeys with this prefix are presentational only.
PRESENTATIONAL_PREFIX = "_"

OUTPUT_TAGS = ("table", "markdown", "json", "csv")
FALLBACK_OUTPUT_TAG = "json"
OUTPUT_LINE_PREFIX = "OUTPUT:"

GENERATION_FORMATS = ("markdown", "json", "text")
JSON_ONLY_INSTRUCTION = "Respond with valid JSON only, no markdown code blocks."

DEFAULT_MODEL = "openrouter:google/gemini-3-flash-preview"
DEFAULT_MAX_TOKENS = 8192
DEFAULT_GENERATION_TIMEOUT = 60.0
DEFAULT_CHAT_SYSTEM_PROMPT = (
    "You are a helpful research assistant. When appropriate, format your "
    "responses with structured data that can be rendered as interactive components."
)

SOURCE_SEPARATOR = "\n\n---\n\n"

RECIPIENT_FALLBACK = "[Recipient]"
LOGO_FRAGMENT = (
    '<img src="{url}" alt="Logo" style="max-height: 60px; margin-bottom: 10px;" />'
)
