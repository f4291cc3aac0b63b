"""AI generation: provider interface, orchestration and parsing."""

from .base import ChatOptions, GenerationClient
from .content import ContentGenerator
from .orchestrator import GenerationOrchestrator, compose_system_prompt, compute_backoff
from .pydantic_ai_client import PydanticAIClient
from .parsing import GenerationResult, OutputFormat, extract_json, parse_response

__all__ = [
    "ChatOptions",
    "ContentGenerator",
    "GenerationClient",
    "GenerationOrchestrator",
    "GenerationResult",
    "OutputFormat",
    "PydanticAIClient",
    "compose_system_prompt",
    "compute_backoff",
    "extract_json",
    "parse_response",
]
