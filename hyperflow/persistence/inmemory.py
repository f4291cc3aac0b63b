"""In-memory implementation of the run repository."""

from __future__ import annotations

from typing import Dict, Optional

from ..contracts import ExecutionRecord, RunState
from .repository import RunRepository


class InMemoryRunRepository(RunRepository):
    """Keep run and execution snapshots in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._runs: Dict[str, RunState] = {}
        self._executions: Dict[str, ExecutionRecord] = {}

    # ------------------------------------------------------------------
    async def save_run(self, state: RunState) -> None:
        self._runs[state.run_id] = state.model_copy(deep=True)

    async def get_run(self, run_id: str) -> RunState | None:
        state = self._runs.get(run_id)
        return state.model_copy(deep=True) if state else None

    async def list_runs(self, template_id: Optional[str] = None) -> list[RunState]:
        return [
            s.model_copy(deep=True)
            for s in self._runs.values()
            if template_id is None or s.template_id == template_id
        ]

    async def save_execution(self, record: ExecutionRecord) -> None:
        self._executions[record.id] = record.model_copy(deep=True)

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        record = self._executions.get(execution_id)
        return record.model_copy(deep=True) if record else None

    async def list_executions(
        self, workflow_id: Optional[str] = None
    ) -> list[ExecutionRecord]:
        return [
            r.model_copy(deep=True)
            for r in self._executions.values()
            if workflow_id is None or r.workflow_id == workflow_id
        ]
