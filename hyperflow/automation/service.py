"""Execution/Output Typing Layer for automation templates."""

from __future__ import annotations

import json
import logging
import math
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from pydantic import ValidationError

from ..binder import bind
from ..catalog import TemplateCatalog
from ..constants import FALLBACK_OUTPUT_TAG, OUTPUT_LINE_PREFIX, OUTPUT_TAGS
from ..contracts import (
    ExecutionOutput,
    ExecutionRecord,
    Template,
    VariableSpec,
    has_value,
)
from ..errors import HyperflowError, VariableValidationError
from ..persistence import RunRepository
from .base import AutomationFailed, AutomationPayload, BaseAutomation

logger = logging.getLogger(__name__)

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def _coerce(spec: VariableSpec, value: Any) -> Any:
    """Convert ``value`` to the declared type or raise ``ValueError``."""
    if spec.type == "number":
        if isinstance(value, bool):
            raise ValueError("expected a number")
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError("expected a finite number")
        if isinstance(value, (int, float)):
            return value
        number = float(str(value).strip())
        if not math.isfinite(number):
            raise ValueError("expected a finite number")
        return int(number) if number.is_integer() else number
    if spec.type == "boolean":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError("expected true or false")
    if spec.type == "array":
        if isinstance(value, (list, tuple)):
            return list(value)
        text = str(value).strip()
        if text.startswith("["):
            parsed = json.loads(text)
            if not isinstance(parsed, list):
                raise ValueError("expected a list")
            return parsed
        return [item.strip() for item in text.replace("\n", ",").split(",") if item.strip()]
    if spec.type == "enum":
        text = str(value)
        if text not in spec.values:
            raise ValueError(f"expected one of {', '.join(spec.values)}")
        return text
    if isinstance(value, (dict, list)):
        raise ValueError("expected text")
    return str(value)


def resolve_variables(template: Template, variables: Mapping[str, Any]) -> Dict[str, Any]:
    """Apply defaults, check required variables and coerce declared types.

    Declared variables without a value or default resolve to ``None``.
    Undeclared variables are passed through unchanged.

    Raises:
        VariableValidationError: listing every offending variable.
    """
    resolved: Dict[str, Any] = dict(variables)
    problems: List[str] = []
    fields: List[str] = []
    for spec in template.variables:
        value = variables.get(spec.name)
        if not has_value(value):
            value = spec.default
        if not has_value(value):
            if spec.required:
                problems.append(f"{spec.name} is required")
                fields.append(spec.name)
            resolved[spec.name] = None
            continue
        try:
            resolved[spec.name] = _coerce(spec, value)
        except ValueError as exc:
            problems.append(f"{spec.name}: {exc}")
            fields.append(spec.name)
    if problems:
        raise VariableValidationError(
            f"Invalid variables for {template.id}: {'; '.join(problems)}", fields
        )
    return resolved


def prepare_execution(template: Template, variables: Mapping[str, Any]) -> str:
    """Bind an automation template into standalone script code."""
    if template.kind != "automation":
        raise HyperflowError(f"Template {template.id} is not an automation template")
    resolved = resolve_variables(template, variables)
    return bind(template.body or "", resolved, mode="code_literal")


def normalize_output(payload: AutomationPayload) -> ExecutionOutput:
    """Map a raw payload onto the closed set of output shapes."""
    tag = payload.type
    columns = payload.columns
    if tag not in OUTPUT_TAGS:
        logger.warning(f"Unknown output type {tag!r}, treating it as {FALLBACK_OUTPUT_TAG}")
        tag = FALLBACK_OUTPUT_TAG
    if tag == "table" and not columns:
        rows = payload.data
        if isinstance(rows, list) and rows and isinstance(rows[0], dict):
            columns = list(rows[0].keys())
        else:
            logger.warning("Table output has no columns, treating it as json")
            tag = FALLBACK_OUTPUT_TAG
    if tag != "table":
        columns = None
    return ExecutionOutput(type=tag, title=payload.title, data=payload.data, columns=columns)


def parse_output_line(line: str) -> Optional[AutomationPayload]:
    """Return the payload carried by an ``OUTPUT:`` log line, if any."""
    if not line.startswith(OUTPUT_LINE_PREFIX):
        return None
    raw = line[len(OUTPUT_LINE_PREFIX):].strip()
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring OUTPUT line that is not valid JSON")
        return None
    if not isinstance(data, dict):
        return AutomationPayload(type=FALLBACK_OUTPUT_TAG, data=data)
    try:
        return AutomationPayload.model_validate(data)
    except ValidationError:
        logger.warning("Ignoring malformed OUTPUT payload")
        return None


class ExecutionService:
    """Run automation templates and keep their execution records.

    Each record is owned by the task streaming it. ``cancel_execution`` may be
    called from elsewhere; events that arrive afterwards are dropped.
    """

    def __init__(
        self,
        catalog: TemplateCatalog,
        automation: BaseAutomation,
        repository: Optional[RunRepository] = None,
    ) -> None:
        self.catalog = catalog
        self.automation = automation
        self.repository = repository
        self._records: Dict[str, ExecutionRecord] = {}
        self._code: Dict[str, str] = {}

    async def _persist(self, record: ExecutionRecord) -> None:
        if self.repository is not None:
            await self.repository.save_execution(record)

    def _template(self, template: Template | str) -> Template:
        return self.catalog[template] if isinstance(template, str) else template

    def prepare_execution(
        self, template: Template | str, variables: Mapping[str, Any]
    ) -> str:
        return prepare_execution(self._template(template), variables)

    async def start_execution(
        self, template: Template | str, variables: Mapping[str, Any]
    ) -> ExecutionRecord:
        """Bind the script and create a pending record for it."""
        template = self._template(template)
        code = prepare_execution(template, variables)
        record = ExecutionRecord(
            workflow_id=template.id, variables=resolve_variables(template, variables)
        )
        self._records[record.id] = record
        self._code[record.id] = code
        await self._persist(record)
        logger.info(f"Execution {record.id} of {template.id} created")
        return record

    async def stream_execution(self, execution_id: str) -> AsyncIterator[str]:
        """Run a pending execution, yielding log lines in arrival order."""
        record = self._records.get(execution_id)
        if record is None:
            raise HyperflowError(f"Unknown execution: {execution_id}")
        if not record.mark_running():
            raise HyperflowError(f"Execution {execution_id} is already {record.status}")
        await self._persist(record)

        events = self.automation.execute(self._code.pop(execution_id))
        interrupted = True
        try:
            async for event in events:
                if record.is_terminal:
                    logger.warning(f"Dropping event for finished execution {record.id}")
                    break
                if isinstance(event, str):
                    payload = parse_output_line(event)
                    if payload is None:
                        record.append_log(event)
                        yield event
                        continue
                    event = payload
                if isinstance(event, AutomationPayload):
                    record.complete(normalize_output(event))
                elif isinstance(event, AutomationFailed):
                    record.fail(event.message)
            interrupted = False
        except Exception as exc:
            logger.error(f"Automation failed for execution {record.id}: {exc}")
            record.fail(str(exc) or exc.__class__.__name__)
            interrupted = False
        finally:
            # Consumer cancelled or closed the stream early.
            if interrupted and record.fail("cancelled"):
                logger.warning(f"Execution {record.id} interrupted before finishing")
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()
            if interrupted:
                await self._persist(record)

        if not record.is_terminal:
            record.fail("Automation finished without output")
        if record.status == "completed":
            logger.info(f"Execution {record.id} completed with {record.output.type} output")
        else:
            logger.info(f"Execution {record.id} failed: {record.error}")
        await self._persist(record)

    async def run_execution(
        self, template: Template | str, variables: Mapping[str, Any]
    ) -> ExecutionRecord:
        """Create an execution, drain its log stream and return the final record."""
        record = await self.start_execution(template, variables)
        async for _ in self.stream_execution(record.id):
            pass
        return record

    async def cancel_execution(self, execution_id: str) -> bool:
        """Fail a running execution. Late collaborator events are ignored."""
        record = self._records.get(execution_id)
        if record is None or not record.fail("cancelled"):
            return False
        self._code.pop(execution_id, None)
        logger.info(f"Execution {execution_id} cancelled")
        await self._persist(record)
        return True

    async def record_execution(self, execution_id: str) -> ExecutionRecord | None:
        """Return the execution record, from memory or the repository."""
        record = self._records.get(execution_id)
        if record is not None:
            return record
        if self.repository is not None:
            return await self.repository.get_execution(execution_id)
        return None
