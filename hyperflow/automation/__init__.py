"""Browser-automation templates: script binding and typed execution output."""

from .base import AutomationEvent, AutomationFailed, AutomationPayload, BaseAutomation
from .inmemory import ScriptedAutomation
from .service import (
    ExecutionService,
    normalize_output,
    parse_output_line,
    prepare_execution,
    resolve_variables,
)

__all__ = [
    "AutomationEvent",
    "AutomationFailed",
    "AutomationPayload",
    "BaseAutomation",
    "ExecutionService",
    "ScriptedAutomation",
    "normalize_output",
    "parse_output_line",
    "prepare_execution",
    "resolve_variables",
]
