"""hyperflow: declarative workflow and templating engine for AI notebooks."""

from .automation import ExecutionService, ScriptedAutomation, prepare_execution
from .binder import BindContext, bind, render_value
from .catalog import TemplateCatalog, get_catalog, load_catalog
from .chat import ChatAssembler, ChatRequest
from .config import HyperflowConfig, load_config
from .contracts import (
    Artifact,
    ExecutionOutput,
    ExecutionRecord,
    RunState,
    Step,
    Template,
)
from .errors import (
    GenerationFailure,
    HyperflowError,
    RunError,
    TemplateDefinitionError,
    TemplateNotFoundError,
    VariableValidationError,
)
from .generation import (
    ContentGenerator,
    GenerationOrchestrator,
    GenerationResult,
    PydanticAIClient,
)
from .persistence import get_repository
from .runs import StepResult, WorkflowRun

__version__ = "0.1.0"
__all__ = [
    "Artifact",
    "BindContext",
    "ChatAssembler",
    "ChatRequest",
    "ContentGenerator",
    "ExecutionOutput",
    "ExecutionRecord",
    "ExecutionService",
    "GenerationFailure",
    "GenerationOrchestrator",
    "GenerationResult",
    "HyperflowConfig",
    "HyperflowError",
    "PydanticAIClient",
    "RunError",
    "RunState",
    "ScriptedAutomation",
    "Step",
    "StepResult",
    "Template",
    "TemplateCatalog",
    "TemplateDefinitionError",
    "TemplateNotFoundError",
    "VariableValidationError",
    "WorkflowRun",
    "bind",
    "get_catalog",
    "get_repository",
    "load_catalog",
    "load_config",
    "prepare_execution",
    "render_value",
]
