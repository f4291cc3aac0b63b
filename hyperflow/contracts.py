"""Core data contracts for hyperflow templates, runs and executions."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .constants import IDENTIFIER_PATTERN, PRESENTATIONAL_PREFIX

logger = logging.getLogger(__name__)

Scalar = Union[str, int, float, bool, date, datetime, None]
Value = Union[Scalar, List[Scalar], List[Dict[str, Any]], Dict[str, Any]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_presentational(state_key: str) -> bool:
    """Return ``True`` for keys that never reach interpolation or output."""
    return state_key.startswith(PRESENTATIONAL_PREFIX)


def has_value(value: Any) -> bool:
    """Return ``True`` when ``value`` counts as filled in for a required field."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    return True


class _Definition(BaseModel):
    """Base for immutable template definitions, accepting camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, extra="forbid"
    )


class Condition(_Definition):
    """Show a step or component only when another field matches."""

    field: str
    operator: Literal[
        "equals",
        "notEquals",
        "contains",
        "greaterThan",
        "lessThan",
        "isEmpty",
        "isNotEmpty",
    ]
    value: Any = None

    def evaluate(self, values: Dict[str, Any]) -> bool:
        actual = values.get(self.field)
        op = self.operator
        if op == "equals":
            return actual == self.value
        if op == "notEquals":
            return actual != self.value
        if op == "contains":
            if isinstance(actual, list):
                return self.value in actual
            return actual is not None and str(self.value) in str(actual)
        if op in ("greaterThan", "lessThan"):
            try:
                left, right = float(actual), float(self.value)
            except (TypeError, ValueError):
                return False
            return left > right if op == "greaterThan" else left < right
        if op == "isEmpty":
            return not has_value(actual)
        return has_value(actual)


class OptionItem(_Definition):
    id: str
    label: str
    description: Optional[str] = None
    icon: Optional[str] = None


class _ComponentBase(_Definition):
    state_key: str
    label: Optional[str] = None
    description: Optional[str] = None
    required: bool = False
    condition: Optional[Condition] = None

    #: Whether the component collects a value from the user.
    collects_input: ClassVar[bool] = True

    @property
    def presentational(self) -> bool:
        return is_presentational(self.state_key)

    def is_visible(self, values: Dict[str, Any]) -> bool:
        return self.condition is None or self.condition.evaluate(values)


class TextComponent(_ComponentBase):
    type: Literal["text_input", "textarea", "url_input", "date_picker"]
    placeholder: Optional[str] = None
    default: Optional[str] = None


class NumberInputComponent(_ComponentBase):
    type: Literal["number_input"]
    min: Optional[float] = None
    max: Optional[float] = None
    default: Optional[float] = None


class SliderComponent(_ComponentBase):
    type: Literal["slider"]
    min: float = 0
    max: float = 100
    step: float = 1
    default: Optional[float] = None
    left_label: Optional[str] = None
    right_label: Optional[str] = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "SliderComponent":
        if self.min > self.max:
            raise ValueError(f"slider {self.state_key}: min must not exceed max")
        return self


class SelectionComponent(_ComponentBase):
    type: Literal["dropdown", "card_selector", "checkbox_list", "button_group"]
    options: List[OptionItem]
    multi_select: bool = False
    default: Optional[Union[str, List[str]]] = None

    @field_validator("options")
    @classmethod
    def _require_options(cls, v: List[OptionItem]) -> List[OptionItem]:
        if not v:
            raise ValueError("selection components need at least one option")
        return v


class TagInputComponent(_ComponentBase):
    type: Literal["tag_input"]
    placeholder: Optional[str] = None
    default: Optional[List[str]] = None


class FileUploadComponent(_ComponentBase):
    type: Literal["file_upload"]
    accepted_types: List[str] = Field(default_factory=list)
    max_files: int = 10
    default: None = None


class AIGenerateComponent(_ComponentBase):
    type: Literal["ai_generate"]
    prompt: str
    output_format: Literal["markdown", "json", "text"] = "text"
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    auto_trigger: bool = False
    loading_text: Optional[str] = None
    default: None = None

    collects_input: ClassVar[bool] = False

    @field_validator("prompt")
    @classmethod
    def _require_prompt(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("ai_generate components need a prompt")
        return v


class AISummaryComponent(_ComponentBase):
    type: Literal["ai_summary"]
    source_key: str
    default: None = None

    collects_input: ClassVar[bool] = False


class DisplayComponent(_ComponentBase):
    type: Literal["info_card", "hero_card", "celebration"]
    title: Optional[str] = None
    content: Optional[str] = None
    variant: Optional[str] = None
    default: None = None

    collects_input: ClassVar[bool] = False


FieldComponent = Annotated[
    Union[
        TextComponent,
        NumberInputComponent,
        SliderComponent,
        SelectionComponent,
        TagInputComponent,
        FileUploadComponent,
        AIGenerateComponent,
        AISummaryComponent,
        DisplayComponent,
    ],
    Field(discriminator="type"),
]


class Step(_Definition):
    """One page of a guided form."""

    id: str
    title: str
    description: Optional[str] = None
    skippable: bool = False
    ai_enhanced: bool = False
    condition: Optional[Condition] = None
    components: List[FieldComponent] = Field(default_factory=list)

    @field_validator("components")
    @classmethod
    def _unique_state_keys(cls, v: List[FieldComponent]) -> List[FieldComponent]:
        seen = set()
        for component in v:
            if component.state_key in seen:
                raise ValueError(f"duplicate stateKey in step: {component.state_key}")
            seen.add(component.state_key)
        return v

    def component(self, state_key: str) -> Optional[FieldComponent]:
        return next((c for c in self.components if c.state_key == state_key), None)

    def is_visible(self, values: Dict[str, Any]) -> bool:
        return self.condition is None or self.condition.evaluate(values)

    def generators(self) -> List[AIGenerateComponent]:
        """``ai_generate`` components in declaration order."""
        return [c for c in self.components if isinstance(c, AIGenerateComponent)]


class OutputSpec(_Definition):
    type: Literal["profile", "source", "report"]
    title: str
    template: str


class VariableSpec(_Definition):
    """Typed input declared by an automation template."""

    name: str
    type: Literal["string", "number", "array", "boolean", "enum", "csv-column"] = (
        "string"
    )
    required: bool = False
    default: Any = None
    values: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    placeholder: Optional[str] = None

    @model_validator(mode="after")
    def _check(self) -> "VariableSpec":
        if not IDENTIFIER_PATTERN.match(self.name):
            raise ValueError(f"variable name is not a valid identifier: {self.name}")
        if self.type == "enum" and not self.values:
            raise ValueError(f"enum variable {self.name} must declare values")
        return self


class Template(_Definition):
    """Immutable definition of a guided form, prompt or automation script."""

    id: str
    name: str
    kind: Literal["guided", "chat", "content", "automation"] = "guided"
    description: str = ""
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    difficulty: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    estimated_minutes: Optional[int] = None

    steps: List[Step] = Field(default_factory=list)
    output: Optional[OutputSpec] = None
    initial_state: Dict[str, Any] = Field(default_factory=dict)

    body: Optional[str] = None
    trigger: Optional[str] = None
    output_format: Literal["markdown", "json", "text"] = "text"
    variables: List[VariableSpec] = Field(default_factory=list)
    outputs: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_kind(self) -> "Template":
        if self.kind == "guided":
            if not self.steps:
                raise ValueError(f"guided template {self.id} has no steps")
            if self.output is None:
                raise ValueError(f"guided template {self.id} has no output spec")
            ids = [s.id for s in self.steps]
            if len(ids) != len(set(ids)):
                raise ValueError(f"guided template {self.id} has duplicate step ids")
        else:
            if not self.body:
                raise ValueError(f"{self.kind} template {self.id} has no body")
            if self.steps:
                raise ValueError(f"{self.kind} template {self.id} cannot declare steps")
        if self.kind == "chat" and not self.trigger:
            raise ValueError(f"chat template {self.id} has no trigger")
        names = [v.name for v in self.variables]
        if len(names) != len(set(names)):
            raise ValueError(f"template {self.id} declares a variable twice")
        return self

    def variable(self, name: str) -> Optional[VariableSpec]:
        return next((v for v in self.variables if v.name == name), None)


class Artifact(BaseModel):
    """Completed output handed to the storage collaborator."""

    title: str
    content_type: str
    body: str


class RunState(BaseModel):
    """Mutable instance of a guided template in progress."""

    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    template_id: str
    current_step_index: int = 0
    values: Dict[str, Any] = Field(default_factory=dict)
    drafts: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    generated: List[str] = Field(default_factory=list)
    completed_steps: List[str] = Field(default_factory=list)
    status: Literal["in_progress", "completed", "abandoned"] = "in_progress"
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    artifact: Optional[Artifact] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != "in_progress"

    def output_values(self) -> Dict[str, Any]:
        """Bound values without presentational keys."""
        return {k: v for k, v in self.values.items() if not is_presentational(k)}


class ExecutionOutput(BaseModel):
    """Typed payload produced by an automation run."""

    type: Literal["table", "markdown", "json", "csv"]
    title: str = ""
    data: Any = None
    columns: Optional[List[str]] = None


class ExecutionRecord(BaseModel):
    """Log and outcome of one automation run.

    Terminal fields are written once; afterwards every mutator is a no-op
    returning ``False``.
    """

    id: str = Field(default_factory=lambda: f"exec_{uuid.uuid4().hex[:12]}")
    workflow_id: str
    status: Literal["pending", "running", "completed", "failed"] = "pending"
    variables: Dict[str, Any] = Field(default_factory=dict)
    logs: List[str] = Field(default_factory=list)
    output: Optional[ExecutionOutput] = None
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed")

    def mark_running(self) -> bool:
        if self.status != "pending":
            return False
        self.status = "running"
        return True

    def append_log(self, line: str) -> bool:
        if self.is_terminal:
            logger.warning(f"Dropping log line for finished execution {self.id}")
            return False
        self.logs.append(line)
        return True

    def complete(self, output: ExecutionOutput) -> bool:
        if self.is_terminal:
            logger.warning(f"Ignoring late output for execution {self.id}")
            return False
        self.output = output
        self.status = "completed"
        self.completed_at = utcnow()
        return True

    def fail(self, error: str) -> bool:
        if self.is_terminal:
            logger.warning(f"Ignoring late error for execution {self.id}: {error}")
            return False
        self.error = error
        self.status = "failed"
        self.completed_at = utcnow()
        return True


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str
