"""SQLite implementation of the memory repository."""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..contracts import ExecutionContext
from .repository import MemoryRepository


class SQLiteMemoryRepository(MemoryRepository):
    """Persist execution contexts using SQLite."""

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
            CREATE TABLE IF NOT EXISTS execution_contexts (
                project_path TEXT NOT NULL,
                git_branch TEXT NOT NULL,
                execution_id TEXT NOT NULL,
                data TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (project_path, git_branch)
            )
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_contexts_execution_id "
            "ON execution_contexts (execution_id)"
        )
        self._conn.commit()

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
    async def save(self, context: ExecutionContext) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT OR REPLACE INTO execution_contexts
                (project_path, git_branch, execution_id, data, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            context.project_path,
            context.git_branch,
            context.execution_id,
            context.model_dump_json(),
            datetime.now(timezone.utc).isoformat(),
        )

    async def load(self, project_path: str, git_branch: str) -> ExecutionContext | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT data FROM execution_contexts WHERE project_path = ? AND git_branch = ?",
            project_path,
            git_branch,
        )
        return ExecutionContext.model_validate_json(row["data"]) if row else None

    async def find_by_execution_id(self, execution_id: str) -> ExecutionContext | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT data FROM execution_contexts WHERE execution_id = ?",
            execution_id,
        )
        return ExecutionContext.model_validate_json(row["data"]) if row else None

    async def delete(self, execution_id: str) -> None:
        await asyncio.to_thread(
            self._execute,
            "DELETE FROM execution_contexts WHERE execution_id = ?",
            execution_id,
        )

    async def list_contexts(self) -> list[ExecutionContext]:
        rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT data FROM execution_contexts ORDER BY updated_at",
        )
        return [ExecutionContext.model_validate_json(r["data"]) for r in rows]
