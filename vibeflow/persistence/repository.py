"""Repository abstraction for execution context persistence."""

from __future__ import annotations

from typing import Protocol

from ..contracts import ExecutionContext


class MemoryRepository(Protocol):
    """Protocol for long-term memory backends.

    A backend keeps at most one context per project path and branch; saving
    a context for a pair that already has one replaces it.
    """

    async def save(self, context: ExecutionContext) -> None:
        """Persist ``context``."""

    async def load(self, project_path: str, git_branch: str) -> ExecutionContext | None:
        """Return the context stored for the project/branch pair."""

    async def find_by_execution_id(self, execution_id: str) -> ExecutionContext | None:
        """Return the context whose execution id matches."""

    async def delete(self, execution_id: str) -> None:
        """Remove the context with the given execution id."""

    async def list_contexts(self) -> list[ExecutionContext]:
        """Return all persisted contexts."""
