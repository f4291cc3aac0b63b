"""Repository abstraction for run and execution snapshots."""

from __future__ import annotations

from typing import Optional, Protocol

from ..contracts import ExecutionRecord, RunState


class RunRepository(Protocol):
    """Protocol for run persistence backends.

    Backends store snapshots: later mutation of a saved object must not
    change what was stored.
    """

    async def save_run(self, state: RunState) -> None:
        """Insert or replace the snapshot of a run."""

    async def get_run(self, run_id: str) -> RunState | None:
        """Retrieve a run by id."""

    async def list_runs(self, template_id: Optional[str] = None) -> list[RunState]:
        """Return persisted runs, oldest first."""

    async def save_execution(self, record: ExecutionRecord) -> None:
        """Insert or replace the snapshot of an execution."""

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        """Retrieve an execution by id."""

    async def list_executions(
        self, workflow_id: Optional[str] = None
    ) -> list[ExecutionRecord]:
        """Return persisted executions, oldest first."""
