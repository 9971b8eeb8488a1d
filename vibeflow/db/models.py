from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowRun(SQLModel, table=True):
    """One run of a workflow template.

    ``correlation_id`` is the engine run id, which the orchestrator sets to the
    execution id; every phase of an execution gets its own row.
    """

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    correlation_id: str = Field(index=True)
    template_name: str
    status: str = Field(default="RUNNING")
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None


class NodeStep(SQLModel, table=True):
    """A node executed as part of a run."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    workflow_run_id: UUID = Field(foreign_key="workflowrun.id", index=True)
    node_id: str
    node_type: str
    status: str = Field(default="completed")
    error_message: Optional[str] = None
    finished_at: datetime = Field(default_factory=_utcnow)


class RunVariable(SQLModel, table=True):
    """Last known value of a run variable."""

    workflow_run_id: UUID = Field(foreign_key="workflowrun.id", primary_key=True)
    key: str = Field(primary_key=True)
    value: dict = Field(sa_column=Column(JSON))
