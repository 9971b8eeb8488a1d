"""In-memory implementation of the memory repository."""

from __future__ import annotations

from typing import Dict, Tuple

from ..contracts import ExecutionContext
from .repository import MemoryRepository


class InMemoryMemoryRepository(MemoryRepository):
    """Store execution contexts in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._contexts: Dict[Tuple[str, str], ExecutionContext] = {}

    async def save(self, context: ExecutionContext) -> None:
        self._contexts[(context.project_path, context.git_branch)] = context

    async def load(self, project_path: str, git_branch: str) -> ExecutionContext | None:
        return self._contexts.get((project_path, git_branch))

    async def find_by_execution_id(self, execution_id: str) -> ExecutionContext | None:
        for context in self._contexts.values():
            if context.execution_id == execution_id:
                return context
        return None

    async def delete(self, execution_id: str) -> None:
        self._contexts = {
            key: ctx
            for key, ctx in self._contexts.items()
            if ctx.execution_id != execution_id
        }

    async def list_contexts(self) -> list[ExecutionContext]:
        return list(self._contexts.values())
