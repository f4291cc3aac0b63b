"""SQLite implementation of the run repository."""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Any, Optional

from ..contracts import ExecutionRecord, RunState
from .repository import RunRepository


class SQLiteRunRepository(RunRepository):
    """Persist run and execution snapshots as JSON documents in SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS runs (
                run_id TEXT PRIMARY KEY,
                template_id TEXT NOT NULL,
                status TEXT NOT NULL,
                started_at TEXT NOT NULL,
                data TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS executions (
                id TEXT PRIMARY KEY,
                workflow_id TEXT NOT NULL,
                status TEXT NOT NULL,
                started_at TEXT NOT NULL,
                data TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    # ------------------------------------------------------------------
    # Repository API
    async def save_run(self, state: RunState) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO runs (run_id, template_id, status, started_at, data)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(run_id) DO UPDATE SET status = excluded.status, data = excluded.data
            """,
            state.run_id,
            state.template_id,
            state.status,
            state.started_at.isoformat(),
            state.model_dump_json(),
        )

    async def get_run(self, run_id: str) -> RunState | None:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT data FROM runs WHERE run_id = ?", run_id
        )
        if not row:
            return None
        return RunState.model_validate_json(row["data"])

    async def list_runs(self, template_id: Optional[str] = None) -> list[RunState]:
        if template_id is None:
            rows = await asyncio.to_thread(
                self._fetchall, "SELECT data FROM runs ORDER BY started_at, rowid"
            )
        else:
            rows = await asyncio.to_thread(
                self._fetchall,
                "SELECT data FROM runs WHERE template_id = ? ORDER BY started_at, rowid",
                template_id,
            )
        return [RunState.model_validate_json(r["data"]) for r in rows]

    async def save_execution(self, record: ExecutionRecord) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO executions (id, workflow_id, status, started_at, data)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET status = excluded.status, data = excluded.data
            """,
            record.id,
            record.workflow_id,
            record.status,
            record.started_at.isoformat(),
            record.model_dump_json(),
        )

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT data FROM executions WHERE id = ?", execution_id
        )
        if not row:
            return None
        return ExecutionRecord.model_validate_json(row["data"])

    async def list_executions(
        self, workflow_id: Optional[str] = None
    ) -> list[ExecutionRecord]:
        if workflow_id is None:
            rows = await asyncio.to_thread(
                self._fetchall, "SELECT data FROM executions ORDER BY started_at, rowid"
            )
        else:
            rows = await asyncio.to_thread(
                self._fetchall,
                "SELECT data FROM executions WHERE workflow_id = ? ORDER BY started_at, rowid",
                workflow_id,
            )
        return [ExecutionRecord.model_validate_json(r["data"]) for r in rows]
