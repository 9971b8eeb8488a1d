"""Run-scoped state: variables, checkpoints and run results."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..contracts import Decision, InteractionRequest, InteractionResponse, RunStatus
from .models import WorkflowTemplate

_PLACEHOLDER = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionState(BaseModel):
    """Variable map owned by exactly one workflow run."""

    variables: Dict[str, Any] = Field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.variables.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.variables[key] = value

    def has(self, key: str) -> bool:
        return key in self.variables

    def interpolate(self, text: str, context_fields: Optional[Dict[str, str]] = None) -> str:
        """Substitute ``{{var}}`` and ``{{context.field}}`` placeholders.

        Placeholders without a value are left untouched.
        """
        fields = context_fields or {}

        def _replace(match: re.Match) -> str:
            key = match.group(1)
            if key.startswith("context."):
                value = fields.get(key[len("context."):])
            else:
                value = self.variables.get(key)
            return match.group(0) if value is None else str(value)

        return _PLACEHOLDER.sub(_replace, text)


class WorkflowCheckpoint(BaseModel):
    """Everything needed to re-enter a suspended run at ``node_id``."""

    run_id: str
    template: WorkflowTemplate
    project_path: str
    git_branch: str
    node_id: str
    variables: Dict[str, Any] = Field(default_factory=dict)
    decisions: List[Decision] = Field(default_factory=list)
    visits: int = 0
    attempts: Dict[str, int] = Field(default_factory=dict)
    last_llm_response: Optional[str] = None
    history: List[InteractionResponse] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=_utcnow)

    @property
    def context_fields(self) -> Dict[str, str]:
        return {"project_path": self.project_path, "git_branch": self.git_branch}


class WorkflowRunResult(BaseModel):
    """Outcome of ``WorkflowEngine.start`` or ``WorkflowEngine.resume``."""

    run_id: str
    status: RunStatus
    success: bool = False
    summary: str = ""
    decisions: List[Decision] = Field(default_factory=list)
    variables: Dict[str, Any] = Field(default_factory=dict)
    interaction_request: Optional[InteractionRequest] = None
    error: Optional[str] = None
    failed_node_id: Optional[str] = None
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    @property
    def awaiting_input(self) -> bool:
        return self.status == RunStatus.AWAITING_INPUT
