"""Step State Machine driving guided templates to completion.

Every transition returns a :class:`StepResult`. Failures are reported as
:class:`RunError` data and never mutate the run. Generated values are written
into ``values`` only after the provider call succeeds, and only while the run
is still in progress.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from pydantic import BaseModel, Field

from .binder import BindContext, bind
from .contracts import (
    AIGenerateComponent,
    AISummaryComponent,
    Artifact,
    RunState,
    Step,
    Template,
    has_value,
    utcnow,
)
from .errors import GenerationFailure, HyperflowError, RunError, RunErrorKind
from .generation import GenerationOrchestrator, GenerationResult, parse_response
from .persistence import RunRepository

logger = logging.getLogger(__name__)


class StepResult(BaseModel):
    """Outcome of a run transition."""

    ok: bool
    status: str
    step_index: int
    error: Optional[RunError] = None
    generation_errors: Dict[str, str] = Field(default_factory=dict)


class WorkflowRun:
    """One run of a ``guided`` template.

    Args:
        template: The guided template to run.
        orchestrator: Used for ``ai_generate`` components.
        state: Resume an existing run instead of starting a new one.
        repository: Receives a snapshot after every transition.
        context: Resolves reserved tokens while binding.
    """

    def __init__(
        self,
        template: Template,
        orchestrator: GenerationOrchestrator,
        state: Optional[RunState] = None,
        repository: Optional[RunRepository] = None,
        context: Optional[BindContext] = None,
    ) -> None:
        if template.kind != "guided":
            raise HyperflowError(f"Template {template.id} is not a guided template")
        if state is not None and state.template_id != template.id:
            raise HyperflowError(
                f"Run {state.run_id} belongs to template {state.template_id}, not {template.id}"
            )
        self.template = template
        self.orchestrator = orchestrator
        self.repository = repository
        self.context = context or BindContext()
        self._started = state is not None
        self.state = state or RunState(
            template_id=template.id, values=copy.deepcopy(template.initial_state)
        )

    # ------------------------------------------------------------------
    # Introspection
    @property
    def run_id(self) -> str:
        return self.state.run_id

    @property
    def status(self) -> str:
        return self.state.status

    @property
    def values(self) -> Dict[str, Any]:
        return self.state.values

    @property
    def current_step(self) -> Step:
        return self.template.steps[self.state.current_step_index]

    def draft(self, step: Optional[Step] = None) -> Dict[str, Any]:
        step = step or self.current_step
        return self.state.drafts.setdefault(step.id, {})

    def staged_values(self) -> Dict[str, Any]:
        """Bound values overlaid with the current step's draft."""
        return {**self.state.values, **self.state.drafts.get(self.current_step.id, {})}

    def visible_components(self, step: Optional[Step] = None) -> list:
        step = step or self.current_step
        staged = self.staged_values()
        return [c for c in step.components if c.is_visible(staged)]

    def missing_required(self) -> List[str]:
        staged = self.staged_values()
        return [
            c.state_key
            for c in self.visible_components()
            if c.required and not has_value(staged.get(c.state_key))
        ]

    def pending_generations(self) -> List[str]:
        """Auto-triggered generators of the current step that have not succeeded."""
        return [
            c.state_key
            for c in self.visible_components()
            if isinstance(c, AIGenerateComponent)
            and c.auto_trigger
            and c.state_key not in self.state.generated
        ]

    # ------------------------------------------------------------------
    # Helpers
    def _result(
        self,
        ok: bool = True,
        kind: Optional[RunErrorKind] = None,
        message: str = "",
        fields: Optional[List[str]] = None,
        generation_errors: Optional[Dict[str, str]] = None,
    ) -> StepResult:
        error = None
        if kind is not None:
            error = RunError(kind=kind, message=message, fields=fields or [])
        return StepResult(
            ok=ok,
            status=self.state.status,
            step_index=self.state.current_step_index,
            error=error,
            generation_errors=generation_errors or {},
        )

    def _fail(
        self, kind: RunErrorKind, message: str, fields: Optional[List[str]] = None
    ) -> StepResult:
        logger.debug(f"Run {self.run_id}: {kind}: {message}")
        return self._result(ok=False, kind=kind, message=message, fields=fields)

    def _terminal_error(self) -> Optional[StepResult]:
        if self.state.is_terminal:
            return self._fail("invalid_transition", f"Run is already {self.state.status}")
        return None

    def _visible_index(self, start: int, direction: int) -> Optional[int]:
        index = start
        while 0 <= index < len(self.template.steps):
            if self.template.steps[index].is_visible(self.state.values):
                return index
            index += direction
        return None

    async def _persist(self) -> None:
        if self.repository is not None:
            await self.repository.save_run(self.state)

    def _seed_defaults(self, step: Step) -> None:
        draft = self.draft(step)
        for component in step.components:
            if not component.collects_input or component.default is None:
                continue
            key = component.state_key
            if key not in draft and key not in self.state.values:
                draft[key] = copy.deepcopy(component.default)

    def _commit_draft(self, only_filled: bool = False) -> None:
        draft = self.draft()
        for key, value in draft.items():
            if only_filled and not has_value(value):
                continue
            self.state.values[key] = value

    def _store_generated(self, component: AIGenerateComponent, result: GenerationResult) -> None:
        key = component.state_key
        self.state.values[key] = result.data
        if key not in self.state.generated:
            self.state.generated.append(key)
        for other in self.current_step.components:
            if isinstance(other, AISummaryComponent) and other.source_key == key:
                self.state.values[other.state_key] = result.data

    async def _enter_step(self, index: int) -> Dict[str, str]:
        self.state.current_step_index = index
        step = self.current_step
        self._seed_defaults(step)
        logger.debug(f"Run {self.run_id} entered step {step.id}")

        errors: Dict[str, str] = {}
        for key in self.pending_generations():
            component = step.component(key)
            try:
                await self._generate(component)
            except GenerationFailure as exc:
                logger.warning(f"Auto generation of {key} failed in run {self.run_id}: {exc}")
                errors[key] = str(exc)
                # later generators read earlier outputs
                break
            if self.state.is_terminal:
                break
        return errors

    def _complete(self) -> None:
        output = self.template.output
        values = self.state.output_values()
        self.state.artifact = Artifact(
            title=bind(output.title, values, context=self.context),
            content_type=output.type,
            body=bind(output.template, values, context=self.context),
        )
        self.state.status = "completed"
        self.state.completed_at = utcnow()
        logger.info(f"Run {self.run_id} of {self.template.id} completed")

    async def _move_forward(self) -> StepResult:
        step = self.current_step
        if step.id not in self.state.completed_steps:
            self.state.completed_steps.append(step.id)

        next_index = self._visible_index(self.state.current_step_index + 1, 1)
        errors: Dict[str, str] = {}
        if next_index is None:
            self._complete()
        else:
            errors = await self._enter_step(next_index)
        await self._persist()
        return self._result(generation_errors=errors)

    # ------------------------------------------------------------------
    # Transitions
    async def start(self) -> StepResult:
        """Enter the first visible step and run its auto-triggered generators."""
        if self._started:
            return self._result()
        self._started = True
        logger.info(f"Run {self.run_id} of {self.template.id} started")

        first = self._visible_index(0, 1)
        if first is None:
            self._complete()
            await self._persist()
            return self._result()
        errors = await self._enter_step(first)
        await self._persist()
        return self._result(generation_errors=errors)

    def set_value(self, state_key: str, value: Any) -> StepResult:
        """Stage user input for a component of the current step."""
        failure = self._terminal_error()
        if failure:
            return failure
        component = self.current_step.component(state_key)
        if component is None or not component.collects_input:
            return self._fail(
                "invalid_transition",
                f"Step {self.current_step.id} has no input named {state_key}",
                [state_key],
            )
        self.draft()[state_key] = value
        return self._result()

    async def advance(self) -> StepResult:
        """Validate the current step, bind its values and move to the next step."""
        failure = self._terminal_error()
        if failure:
            return failure

        pending = self.pending_generations()
        if pending:
            return self._fail(
                "generation_pending",
                f"Waiting for generated values: {', '.join(pending)}",
                pending,
            )
        missing = self.missing_required()
        if missing:
            return self._fail(
                "validation", f"Required fields missing: {', '.join(missing)}", missing
            )

        self._commit_draft()
        return await self._move_forward()

    async def skip(self) -> StepResult:
        """Leave a skippable step without validation."""
        failure = self._terminal_error()
        if failure:
            return failure
        if not self.current_step.skippable:
            return self._fail(
                "invalid_transition", f"Step {self.current_step.id} cannot be skipped"
            )
        self._commit_draft(only_filled=True)
        return await self._move_forward()

    async def back(self) -> StepResult:
        """Return to the previous visible step, keeping everything bound so far."""
        failure = self._terminal_error()
        if failure:
            return failure
        previous = self._visible_index(self.state.current_step_index - 1, -1)
        if previous is None:
            return self._fail("invalid_transition", "Already at the first step")
        errors = await self._enter_step(previous)
        await self._persist()
        return self._result(generation_errors=errors)

    async def abandon(self) -> StepResult:
        """Discard the run. No output is produced."""
        failure = self._terminal_error()
        if failure:
            return failure
        self.state.status = "abandoned"
        self.state.completed_at = utcnow()
        logger.info(f"Run {self.run_id} of {self.template.id} abandoned")
        await self._persist()
        return self._result()

    # ------------------------------------------------------------------
    # Generation
    def _generator(self, state_key: str) -> AIGenerateComponent | StepResult:
        failure = self._terminal_error()
        if failure:
            return failure
        component = self.current_step.component(state_key)
        if not isinstance(component, AIGenerateComponent):
            return self._fail(
                "invalid_transition",
                f"Step {self.current_step.id} has no generator named {state_key}",
                [state_key],
            )
        if not component.is_visible(self.staged_values()):
            return self._fail(
                "invalid_transition", f"Generator {state_key} is hidden", [state_key]
            )
        return component

    def _accept(self, component: AIGenerateComponent, result: GenerationResult) -> bool:
        if self.state.is_terminal:
            logger.warning(
                f"Ignoring generated {component.state_key} for {self.state.status} run {self.run_id}"
            )
            return False
        self._store_generated(component, result)
        return True

    async def _generate(self, component: AIGenerateComponent) -> bool:
        result = await self.orchestrator.generate(
            component.prompt,
            self.staged_values(),
            output_format=component.output_format,
            system_prompt=component.system_prompt,
            model=component.model,
            context=self.context,
        )
        return self._accept(component, result)

    async def generate(self, state_key: str) -> StepResult:
        """Run, or retry, one ``ai_generate`` component of the current step."""
        component = self._generator(state_key)
        if isinstance(component, StepResult):
            return component
        try:
            accepted = await self._generate(component)
        except GenerationFailure as exc:
            logger.warning(f"Generation of {state_key} failed in run {self.run_id}: {exc}")
            return self._fail("generation", str(exc), [state_key])
        if not accepted:
            return self._fail("invalid_transition", f"Run is already {self.state.status}")
        await self._persist()
        return self._result()

    async def stream_generate(self, state_key: str) -> AsyncIterator[str]:
        """Yield generated chunks, committing the joined text once the stream ends.

        Raises:
            GenerationFailure: The provider failed mid-stream. Nothing is stored.
            HyperflowError: The transition is not allowed.
        """
        component = self._generator(state_key)
        if isinstance(component, StepResult):
            raise HyperflowError(component.error.message)

        chunks: List[str] = []
        async for chunk in self.orchestrator.stream(
            component.prompt,
            self.staged_values(),
            output_format=component.output_format,
            system_prompt=component.system_prompt,
            model=component.model,
            context=self.context,
        ):
            chunks.append(chunk)
            yield chunk

        if self._accept(component, parse_response("".join(chunks), component.output_format)):
            await self._persist()
