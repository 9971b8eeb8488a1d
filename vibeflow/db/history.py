from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlmodel import SQLModel, select

from ..contracts import RunStatus
from .models import NodeStep, RunVariable, WorkflowRun

logger = logging.getLogger(__name__)

_TERMINAL = {RunStatus.COMPLETED, RunStatus.FAILED}


class WorkflowHistoryDB:
    """Async run history store; plugs into the engine as its recorder.

    The engine reports by its run id. Each ``run_started`` opens a new
    ``WorkflowRun`` row, and later hooks for that run id go to the newest row.
    """

    def __init__(self, database_url: str) -> None:
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_async_engine(
            database_url, echo=False, future=True, connect_args=connect_args
        )
        self._open_runs: Dict[str, UUID] = {}

    async def init_db(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with AsyncSession(self.engine, expire_on_commit=False) as session:
            yield session

    async def _current_run(
        self, session: AsyncSession, correlation_id: str
    ) -> Optional[WorkflowRun]:
        run_pk = self._open_runs.get(correlation_id)
        if run_pk is not None:
            return await session.get(WorkflowRun, run_pk)
        result = await session.execute(
            select(WorkflowRun)
            .where(WorkflowRun.correlation_id == correlation_id)
            .order_by(WorkflowRun.started_at.desc())
        )
        return result.scalars().first()

    # ------------------------------------------------------------------
    # Recorder hooks
    async def run_started(self, run_id: str, template_name: str) -> None:
        run = WorkflowRun(correlation_id=run_id, template_name=template_name)
        async with self.session() as session:
            session.add(run)
            await session.commit()
        self._open_runs[run_id] = run.id

    async def node_finished(
        self,
        run_id: str,
        node_id: str,
        node_type: str,
        status: str,
        error: Optional[str] = None,
    ) -> None:
        async with self.session() as session:
            run = await self._current_run(session, run_id)
            if run is None:
                logger.warning(f"History has no run {run_id}, skipping node {node_id}")
                return
            session.add(
                NodeStep(
                    workflow_run_id=run.id,
                    node_id=node_id,
                    node_type=node_type,
                    status=status,
                    error_message=error,
                )
            )
            await session.commit()

    async def run_updated(
        self, run_id: str, status: RunStatus, variables: Dict[str, Any]
    ) -> None:
        async with self.session() as session:
            run = await self._current_run(session, run_id)
            if run is None:
                logger.warning(f"History has no run {run_id}, skipping update")
                return
            run.status = status.value
            if status in _TERMINAL:
                run.finished_at = datetime.now(timezone.utc)
            for key, value in variables.items():
                await session.merge(
                    RunVariable(workflow_run_id=run.id, key=key, value={"value": value})
                )
            session.add(run)
            await session.commit()
        if status in _TERMINAL:
            self._open_runs.pop(run_id, None)

    # ------------------------------------------------------------------
    # Queries
    async def get_run(self, run_pk: UUID) -> WorkflowRun | None:
        async with self.session() as session:
            return await session.get(WorkflowRun, run_pk)

    async def latest_run(self, run_id: str) -> WorkflowRun | None:
        """Newest history row recorded for the engine run id ``run_id``."""
        async with self.session() as session:
            return await self._current_run(session, run_id)

    async def list_runs(self, run_id: Optional[str] = None) -> List[WorkflowRun]:
        statement = select(WorkflowRun).order_by(WorkflowRun.started_at)
        if run_id is not None:
            statement = statement.where(WorkflowRun.correlation_id == run_id)
        async with self.session() as session:
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def get_steps(self, run_pk: UUID) -> List[NodeStep]:
        async with self.session() as session:
            result = await session.execute(
                select(NodeStep)
                .where(NodeStep.workflow_run_id == run_pk)
                .order_by(NodeStep.finished_at)
            )
            return list(result.scalars().all())

    async def get_variables(self, run_pk: UUID) -> Dict[str, Any]:
        async with self.session() as session:
            result = await session.execute(
                select(RunVariable).where(RunVariable.workflow_run_id == run_pk)
            )
            return {row.key: row.value.get("value") for row in result.scalars().all()}
