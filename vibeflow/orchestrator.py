"""Process orchestration: phase execution, quality gates and persistence."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .contracts import (
    ExecutionContext,
    ExecutionStatus,
    PhaseResult,
    ProcessExecution,
    ProcessPhase,
)
from .errors import (
    ExecutionNotFoundError,
    InvalidExecutionStateError,
    InvalidStateTransitionError,
)
from .persistence import MemoryRepository, get_repository
from .process import ProcessRepository, TemplateRepository
from .vibe import VibeCheckEvaluator, failed_required_checks
from .workflow import WorkflowEngine, WorkflowRunResult

logger = logging.getLogger(__name__)


class ProcessOrchestrator:
    """Drive engineering process executions phase by phase.

    A phase is executed with ``execute_current_phase``. When the workflow
    needs a human answer the returned ``PhaseResult`` is paused and the
    answer goes to ``resume_phase`` (or ``provide_answer``). A finished
    phase result is handed to ``complete_phase``, which advances the
    execution when the phase passed its required vibe checks and marks it
    ``FAILED`` otherwise. The context is saved after every transition.
    """

    def __init__(
        self,
        engine: WorkflowEngine,
        processes: ProcessRepository,
        templates: TemplateRepository,
        evaluator: VibeCheckEvaluator,
        repository: Optional[MemoryRepository] = None,
    ) -> None:
        self.engine = engine
        self.processes = processes
        self.templates = templates
        self.evaluator = evaluator
        self.repository = repository or get_repository()

    # ------------------------------------------------------------------
    # Loading helpers
    async def _load(self, execution_id: str) -> Tuple[ExecutionContext, ProcessExecution]:
        context = await self.repository.find_by_execution_id(execution_id)
        if context is None or context.current_execution is None:
            raise ExecutionNotFoundError(execution_id)
        return context, context.current_execution

    async def _save(
        self, context: ExecutionContext, execution: ProcessExecution
    ) -> ExecutionContext:
        context = context.with_execution(execution)
        await self.repository.save(context)
        return context

    # ------------------------------------------------------------------
    # Public API
    async def start_execution(
        self, process_id: str, project_path: str, git_branch: str
    ) -> ProcessExecution:
        """Start ``process_id`` for a project/branch, reusing its stored memory."""
        process = self.processes.get(process_id)
        logger.info(
            f"Starting process '{process.id}' for {project_path} on branch {git_branch}"
        )

        context = await self.repository.load(project_path, git_branch)
        if context is None:
            context = ExecutionContext(project_path=project_path, git_branch=git_branch)
        elif context.current_execution is not None:
            self.engine.abort(context.current_execution.id)

        execution = ProcessExecution(id=context.execution_id, process=process).start()
        await self._save(context, execution)
        logger.info(
            f"Execution {execution.id} initialized at phase '{execution.current_phase().name}'"
        )
        return execution

    async def execute_phase(
        self, phase: ProcessPhase, context: ExecutionContext
    ) -> PhaseResult:
        """Run the workflow of ``phase`` and evaluate its vibe checks.

        The returned result may be paused; nothing is persisted here.
        """
        _, result = await self._run_phase(phase, context)
        return result

    async def _run_phase(
        self, phase: ProcessPhase, context: ExecutionContext
    ) -> Tuple[WorkflowRunResult, PhaseResult]:
        template = self.templates.get(phase.workflow_template)
        run_id = (
            context.current_execution.id
            if context.current_execution is not None
            else context.execution_id
        )
        logger.info(f"Executing phase '{phase.name}' with workflow '{template.name}'")
        run_result = await self.engine.start(template, context, run_id)
        return run_result, await self._phase_result(phase, context, run_result)

    async def execute_current_phase(self, execution_id: str) -> PhaseResult:
        """Run the current phase from its start node.

        A paused execution whose checkpoint is gone, because the process was
        restarted since it paused, runs its phase again from the top.
        """
        context, execution = await self._load(execution_id)
        if execution.status != ExecutionStatus.IN_PROGRESS:
            raise InvalidStateTransitionError("execute phase", execution.status.value)
        if execution.is_awaiting_input():
            if self.engine.registry.has_pending(execution.id):
                raise InvalidStateTransitionError("execute phase", execution.run_status.value)
            logger.warning(
                f"No checkpoint for paused execution {execution_id}, restarting phase "
                f"'{execution.current_phase().name}'"
            )
            execution = execution.restart_run()

        run_result, result = await self._run_phase(execution.current_phase(), context)
        await self._record_run(context, execution, run_result)
        return result

    async def resume_phase(self, execution_id: str, answer: str) -> PhaseResult:
        """Answer the pending interaction and continue the phase's workflow."""
        context, execution = await self._load(execution_id)
        resumed = execution.resume_with_answer(answer)

        run_result = await self.engine.resume(execution.id, answer)
        logger.info(f"Execution {execution_id} resumed with answer")

        context = context.add_interaction(resumed.interaction_history[-1])
        phase = resumed.current_phase()
        result = await self._phase_result(phase, context, run_result)
        await self._record_run(context, resumed, run_result)
        return result

    async def provide_answer(self, execution_id: str, answer: str) -> ProcessExecution:
        await self.resume_phase(execution_id, answer)
        return await self.get_execution(execution_id)

    async def complete_phase(
        self, execution_id: str, phase_result: PhaseResult
    ) -> ProcessExecution:
        """Apply the quality gate to a finished phase result."""
        context, execution = await self._load(execution_id)
        if phase_result.awaiting_input:
            raise InvalidStateTransitionError("complete phase", "AWAITING_INPUT")
        current = execution.current_phase().name
        if phase_result.phase_name != current:
            raise InvalidExecutionStateError(
                f"Phase result for '{phase_result.phase_name}' does not match "
                f"current phase '{current}'"
            )

        context = context.add_phase_result(phase_result)
        if phase_result.succeeded:
            execution = execution.complete_phase()
            logger.info(f"Phase '{current}' completed for execution {execution_id}")
            execution = execution.advance()
            if execution.status == ExecutionStatus.COMPLETED:
                logger.info(f"Execution {execution_id} completed all phases")
            else:
                logger.info(f"Moving to phase '{execution.current_phase().name}'")
        else:
            if execution.is_awaiting_input():
                self.engine.abort(execution.id)
            execution = execution.fail_phase()
            logger.warning(
                f"Phase '{current}' failed for execution {execution_id}: {phase_result.error}"
            )

        await self._save(context, execution)
        return execution

    async def retry_phase(self, execution_id: str) -> ProcessExecution:
        context, execution = await self._load(execution_id)
        execution = execution.retry_phase()
        logger.info(f"Retrying phase '{execution.current_phase().name}' of {execution_id}")
        await self._save(context, execution)
        return execution

    async def fail_execution(self, execution_id: str) -> ProcessExecution:
        """Abort the whole execution and release any pending interaction."""
        context, execution = await self._load(execution_id)
        self.engine.abort(execution.id)
        execution = execution.fail()
        logger.warning(f"Execution {execution_id} aborted")
        await self._save(context, execution)
        return execution

    async def get_execution(self, execution_id: str) -> ProcessExecution:
        _, execution = await self._load(execution_id)
        return execution

    async def get_context(self, execution_id: str) -> ExecutionContext:
        context, _ = await self._load(execution_id)
        return context

    async def list_executions(self) -> List[ProcessExecution]:
        contexts = await self.repository.list_contexts()
        return [c.current_execution for c in contexts if c.current_execution is not None]

    # ------------------------------------------------------------------
    # Internals
    async def _record_run(
        self, context: ExecutionContext, execution: ProcessExecution, run: WorkflowRunResult
    ) -> None:
        if run.awaiting_input:
            execution = execution.pause_for_interaction(run.interaction_request)
        else:
            execution = execution.finish_run(run.success)
        await self._save(context, execution)

    async def _phase_result(
        self, phase: ProcessPhase, context: ExecutionContext, run: WorkflowRunResult
    ) -> PhaseResult:
        base = dict(
            phase_name=phase.name,
            summary=run.summary,
            decisions=run.decisions,
            variables=run.variables,
            started_at=run.started_at,
        )
        if run.awaiting_input:
            return PhaseResult(
                status=ExecutionStatus.IN_PROGRESS,
                awaiting_input=True,
                interaction_request=run.interaction_request,
                **base,
            )
        if not run.success:
            return PhaseResult(
                status=ExecutionStatus.FAILED,
                error=run.error,
                failed_node_id=run.failed_node_id,
                completed_at=run.completed_at,
                **base,
            )

        review_context = context
        for decision in run.decisions:
            review_context = review_context.add_decision(decision)
        results = await self.evaluator.evaluate_batch(phase.vibe_checks, review_context)
        failed = failed_required_checks(results)
        if failed:
            questions = "; ".join(r.check.question for r in failed)
            logger.warning(f"Phase '{phase.name}' failed required vibe checks: {questions}")
            return PhaseResult(
                status=ExecutionStatus.FAILED,
                vibe_check_results=results,
                error=f"Required vibe checks failed: {questions}",
                completed_at=datetime.now(timezone.utc),
                **base,
            )
        return PhaseResult(
            status=ExecutionStatus.PHASE_COMPLETED,
            vibe_check_results=results,
            completed_at=datetime.now(timezone.utc),
            **base,
        )
