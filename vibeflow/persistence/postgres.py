"""PostgreSQL implementation of the memory repository."""

from __future__ import annotations

import asyncpg

from ..contracts import ExecutionContext
from .repository import MemoryRepository


class PostgresMemoryRepository(MemoryRepository):
    """Persist execution contexts using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS execution_contexts (
                project_path TEXT NOT NULL,
                git_branch TEXT NOT NULL,
                execution_id TEXT NOT NULL,
                data JSONB NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                PRIMARY KEY (project_path, git_branch)
            )
            """
        )
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_contexts_execution_id "
            "ON execution_contexts (execution_id)"
        )

    # ------------------------------------------------------------------
    async def save(self, context: ExecutionContext) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO execution_contexts (project_path, git_branch, execution_id, data)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (project_path, git_branch)
                DO UPDATE SET execution_id = EXCLUDED.execution_id,
                              data = EXCLUDED.data,
                              updated_at = now()
                """,
                context.project_path,
                context.git_branch,
                context.execution_id,
                context.model_dump_json(),
            )
        finally:
            await conn.close()

    async def load(self, project_path: str, git_branch: str) -> ExecutionContext | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT data FROM execution_contexts WHERE project_path = $1 AND git_branch = $2",
                project_path,
                git_branch,
            )
        finally:
            await conn.close()
        return ExecutionContext.model_validate_json(row["data"]) if row else None

    async def find_by_execution_id(self, execution_id: str) -> ExecutionContext | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT data FROM execution_contexts WHERE execution_id = $1",
                execution_id,
            )
        finally:
            await conn.close()
        return ExecutionContext.model_validate_json(row["data"]) if row else None

    async def delete(self, execution_id: str) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                "DELETE FROM execution_contexts WHERE execution_id = $1", execution_id
            )
        finally:
            await conn.close()

    async def list_contexts(self) -> list[ExecutionContext]:
        conn = await self._connect()
        try:
            rows = await conn.fetch("SELECT data FROM execution_contexts ORDER BY updated_at")
        finally:
            await conn.close()
        return [ExecutionContext.model_validate_json(r["data"]) for r in rows]
