"""Exceptions and failure shapes used across hyperflow."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field


class HyperflowError(Exception):
    """Base class for hyperflow errors."""


class TemplateDefinitionError(HyperflowError):
    """A template definition is malformed. Raised at load time only."""


class TemplateNotFoundError(HyperflowError, KeyError):
    """No template with the requested id exists in the catalog."""

    def __init__(self, template_id: str) -> None:
        super().__init__(template_id)
        self.template_id = template_id

    def __str__(self) -> str:
        return f"Template not found: {self.template_id}"


class GenerationFailure(HyperflowError):
    """The generation provider failed, timed out or returned a broken stream."""

    def __init__(self, message: str, model: str | None = None) -> None:
        super().__init__(message)
        self.model = model


class VariableValidationError(HyperflowError):
    """Automation variables are missing or do not match their declared type."""

    def __init__(self, message: str, fields: List[str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or []


RunErrorKind = Literal[
    "validation", "generation", "invalid_transition", "generation_pending"
]


class RunError(BaseModel):
    """Failure reported by a run transition. Never raised."""

    kind: RunErrorKind
    message: str
    fields: List[str] = Field(default_factory=list)
