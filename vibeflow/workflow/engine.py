"""Graph traversal engine for workflow templates."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from ..catalog import QuestionCatalog, validate_answer
from ..commands import CommandRunner, SubprocessCommandRunner
from ..constants import DEFAULT_MAX_NODE_VISITS, SUMMARY_RESPONSE_LIMIT
from ..contracts import (
    Decision,
    ExecutionContext,
    InteractionRequest,
    InteractionResponse,
    RunStatus,
)
from ..errors import (
    InfiniteLoopError,
    InteractionAlreadyPendingError,
    InvalidExecutionStateError,
    NodeExecutionError,
    NodeNotFoundError,
    NoOutgoingEdgeError,
    TemplateValidationError,
    TraversalError,
)
from ..interaction import PendingInteractionRegistry, SuspendingInteractionPort
from ..llm import LanguageModel
from .conditions import ConditionEvaluator, ExpressionConditionEvaluator
from .models import (
    AggregationNode,
    AskCatalogQuestionNode,
    ConditionalNode,
    GetQuestionNode,
    HumanInteractionNode,
    LLMNode,
    NodeType,
    SystemCommandNode,
    ValidateAnswerNode,
    WorkflowTemplate,
)
from .state import ExecutionState, WorkflowCheckpoint, WorkflowRunResult
from .validation import validate_template

logger = logging.getLogger(__name__)


class RunRecorder(Protocol):
    """Optional sink for run history."""

    async def run_started(self, run_id: str, template_name: str) -> None:
        ...

    async def node_finished(
        self,
        run_id: str,
        node_id: str,
        node_type: str,
        status: str,
        error: Optional[str] = None,
    ) -> None:
        ...

    async def run_updated(
        self, run_id: str, status: RunStatus, variables: Dict[str, Any]
    ) -> None:
        ...


class _Outcome:
    """What a node asks the engine to do next.

    ``next_node`` overrides edge routing; ``ask`` suspends the run.
    """

    __slots__ = ("next_node", "ask")

    def __init__(
        self,
        next_node: Optional[str] = None,
        ask: Optional[Callable[..., InteractionRequest]] = None,
    ) -> None:
        self.next_node = next_node
        self.ask = ask


class _Run:
    """Mutable in-flight state of one run, rebuilt from a checkpoint on resume."""

    def __init__(
        self,
        run_id: str,
        template: WorkflowTemplate,
        project_path: str,
        git_branch: str,
        node_id: str,
    ) -> None:
        self.run_id = run_id
        self.template = template
        self.project_path = project_path
        self.git_branch = git_branch
        self.node_id = node_id
        self.state = ExecutionState()
        self.decisions: List[Decision] = []
        self.visits = 0
        self.attempts: Dict[str, int] = {}
        self.last_llm_response: Optional[str] = None
        self.history: List[InteractionResponse] = []
        self.started_at = datetime.now(timezone.utc)
        self.pending_answer: Optional[str] = None

    @property
    def context_fields(self) -> Dict[str, str]:
        return {"project_path": self.project_path, "git_branch": self.git_branch}

    def take_answer(self) -> str:
        answer, self.pending_answer = self.pending_answer, None
        return answer

    def to_checkpoint(self) -> WorkflowCheckpoint:
        return WorkflowCheckpoint(
            run_id=self.run_id,
            template=self.template,
            project_path=self.project_path,
            git_branch=self.git_branch,
            node_id=self.node_id,
            variables=dict(self.state.variables),
            decisions=list(self.decisions),
            visits=self.visits,
            attempts=dict(self.attempts),
            last_llm_response=self.last_llm_response,
            history=list(self.history),
            started_at=self.started_at,
        )

    @classmethod
    def from_checkpoint(cls, checkpoint: WorkflowCheckpoint, answer: str) -> "_Run":
        run = cls(
            checkpoint.run_id,
            checkpoint.template,
            checkpoint.project_path,
            checkpoint.git_branch,
            checkpoint.node_id,
        )
        run.state = ExecutionState(variables=dict(checkpoint.variables))
        run.decisions = list(checkpoint.decisions)
        run.visits = checkpoint.visits
        run.attempts = dict(checkpoint.attempts)
        run.last_llm_response = checkpoint.last_llm_response
        run.history = list(checkpoint.history)
        run.started_at = checkpoint.started_at
        run.pending_answer = answer
        return run


class WorkflowEngine:
    """Walk a workflow template node by node.

    A run ends in one of three ways, always reported as a
    ``WorkflowRunResult``: it reaches the end node, it fails on a template or
    traversal error, or it pauses on a node that needs a human answer. A paused
    run keeps its checkpoint in the interaction registry until ``resume`` or
    ``abort`` is called for its run id.
    """

    def __init__(
        self,
        llm: LanguageModel,
        catalog: Optional[QuestionCatalog] = None,
        command_runner: Optional[CommandRunner] = None,
        condition_evaluator: Optional[ConditionEvaluator] = None,
        interactions: Optional[SuspendingInteractionPort] = None,
        *,
        max_node_visits: int = DEFAULT_MAX_NODE_VISITS,
        recorder: Optional[RunRecorder] = None,
    ) -> None:
        if max_node_visits <= 0:
            raise ValueError("max_node_visits must be positive")
        self.llm = llm
        self.catalog = catalog or QuestionCatalog()
        self.commands = command_runner or SubprocessCommandRunner()
        self.conditions = condition_evaluator or ExpressionConditionEvaluator()
        self.interactions = interactions or SuspendingInteractionPort(
            PendingInteractionRegistry()
        )
        self.max_node_visits = max_node_visits
        self.recorder = recorder
        self._handlers: Dict[NodeType, Callable[[Any, _Run], Awaitable[_Outcome]]] = {
            NodeType.LLM: self._run_llm,
            NodeType.CONDITIONAL: self._run_conditional,
            NodeType.HUMAN_INTERACTION: self._run_human,
            NodeType.AGGREGATION: self._run_aggregation,
            NodeType.SYSTEM_COMMAND: self._run_system_command,
            NodeType.GET_QUESTION: self._run_get_question,
            NodeType.ASK_CATALOG_QUESTION: self._run_ask_catalog,
            NodeType.VALIDATE_ANSWER: self._run_validate_answer,
        }
        missing = set(NodeType) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for node types: {sorted(t.value for t in missing)}")

    @property
    def registry(self) -> PendingInteractionRegistry:
        return self.interactions.registry

    # ------------------------------------------------------------------
    # Public API
    async def start(
        self,
        template: WorkflowTemplate,
        context: ExecutionContext,
        run_id: Optional[str] = None,
    ) -> WorkflowRunResult:
        """Run ``template`` from its start node."""
        run_id = run_id or str(uuid.uuid4())
        if self.registry.has_pending(run_id):
            raise InteractionAlreadyPendingError(run_id)

        run = _Run(
            run_id, template, context.project_path, context.git_branch, template.graph.start
        )
        logger.info(f"Starting workflow '{template.name}' as run {run_id}")
        if self.recorder is not None:
            await self.recorder.run_started(run_id, template.name)

        try:
            validate_template(template)
        except TemplateValidationError as e:
            logger.error(str(e))
            return await self._fail(run, str(e), None)

        return await self._drive(run)

    async def resume(self, run_id: str, answer: str) -> WorkflowRunResult:
        """Continue a paused run with the operator's ``answer``.

        Raises ``InvalidExecutionStateError`` if ``run_id`` is not paused.
        """
        checkpoint, _ = self.interactions.resume(run_id, answer)
        logger.info(f"Resuming run {run_id} at node {checkpoint.node_id}")
        return await self._drive(_Run.from_checkpoint(checkpoint, answer))

    def abort(self, run_id: str) -> bool:
        """Release the pending interaction of ``run_id``, if any."""
        released = self.registry.release(run_id)
        if released:
            logger.info(f"Aborted run {run_id}")
        return released

    # ------------------------------------------------------------------
    # Traversal
    async def _drive(self, run: _Run) -> WorkflowRunResult:
        graph = run.template.graph
        node = None
        try:
            while True:
                node = run.template.get_node(run.node_id)
                if node is None:
                    raise NodeNotFoundError(run.node_id)

                # re-entering a suspended node is not a new visit
                if run.pending_answer is None:
                    run.visits += 1
                    if run.visits > self.max_node_visits:
                        raise InfiniteLoopError(node.id, self.max_node_visits)

                logger.debug(f"Run {run.run_id}: executing {node.type} node '{node.id}'")
                outcome = await self._execute(node, run)
                if outcome.ask is not None:
                    return await self._suspend(run, outcome.ask)

                if self.recorder is not None:
                    await self.recorder.node_finished(run.run_id, node.id, node.type, "completed")

                if node.id == graph.end:
                    return await self._complete(run)
                run.node_id = outcome.next_node or self._follow_edges(node.id, run)
        except TraversalError as e:
            if self.recorder is not None and node is not None:
                await self.recorder.node_finished(
                    run.run_id, node.id, node.type, "failed", str(e)
                )
            logger.error(f"Run {run.run_id} failed: {e}")
            return await self._fail(run, str(e), e.node_id)

    async def _execute(self, node, run: _Run) -> _Outcome:
        handler = self._handlers[node.node_type]
        try:
            return await handler(node, run)
        except (TraversalError, InvalidExecutionStateError):
            raise
        except Exception as e:
            raise NodeExecutionError(node.id, str(e)) from e

    def _follow_edges(self, node_id: str, run: _Run) -> str:
        for edge in run.template.outgoing_edges(node_id):
            if edge.condition is None or self.conditions.evaluate(
                edge.condition, run.state.variables
            ):
                return edge.to
        raise NoOutgoingEdgeError(node_id)

    # ------------------------------------------------------------------
    # Node handlers
    async def _run_llm(self, node: LLMNode, run: _Run) -> _Outcome:
        prompt = run.state.interpolate(node.prompt or "", run.context_fields)
        response = await self.llm.complete(prompt, node.tools)
        run.state.set(node.output or node.id, response)
        run.last_llm_response = response
        run.decisions.append(
            Decision(
                phase=run.template.name,
                decision=f"Completed {node.id}",
                reasoning=(node.description or "").strip() or "LLM analysis",
            )
        )
        return _Outcome()

    async def _run_conditional(self, node: ConditionalNode, run: _Run) -> _Outcome:
        result = self.conditions.evaluate(node.condition, run.state.variables)
        logger.debug(f"Condition '{node.condition}' on node '{node.id}' is {result}")
        return _Outcome(next_node=node.if_true if result else node.if_false)

    async def _run_human(self, node: HumanInteractionNode, run: _Run) -> _Outcome:
        if run.pending_answer is not None:
            run.state.set(node.output or node.id, run.take_answer())
            return _Outcome()

        question = run.state.interpolate(node.prompt, run.context_fields)
        context = {key: str(run.state.get(key)) for key in node.inputs if run.state.has(key)}
        context["node_id"] = node.id
        ask = self.interactions.request_approval if node.approval else self.interactions.ask_user
        return _Outcome(ask=partial(ask, run.run_id, question, context=context))

    async def _run_aggregation(self, node: AggregationNode, run: _Run) -> _Outcome:
        values = []
        for key in node.inputs:
            if run.state.has(key):
                values.append(run.state.get(key))
            else:
                logger.debug(f"Aggregation '{node.id}' skipping missing input '{key}'")
        run.state.set(node.output, values)
        return _Outcome()

    async def _run_system_command(self, node: SystemCommandNode, run: _Run) -> _Outcome:
        command = run.state.interpolate(node.command, run.context_fields)
        try:
            result = await self.commands.run(command)
        except Exception as e:
            logger.warning(f"Command for node '{node.id}' raised: {e}")
            succeeded, output = False, str(e)
        else:
            output = result.output
            succeeded = result.exit_success and (
                node.expected_output is None or node.expected_output in output
            )

        if node.output:
            run.state.set(node.output, output)
        if not succeeded:
            logger.warning(f"System command node '{node.id}' failed")
            if node.on_failure:
                return _Outcome(next_node=node.on_failure)
        return _Outcome()

    async def _run_get_question(self, node: GetQuestionNode, run: _Run) -> _Outcome:
        question = self.catalog.get_question(node.question_id)
        run.state.set(node.output or f"{node.question_id}_question", question.text)
        return _Outcome()

    async def _run_ask_catalog(self, node: AskCatalogQuestionNode, run: _Run) -> _Outcome:
        question = self.catalog.get_question(node.question_id)
        context = {"node_id": node.id, "category": question.category}

        if run.pending_answer is None:
            run.attempts[node.id] = 1
            context["attempt"] = "1"
            return _Outcome(
                ask=partial(
                    self.interactions.ask_catalog_question,
                    run.run_id,
                    question.id,
                    question.text,
                    context=context,
                )
            )

        answer = run.take_answer()
        errors = validate_answer(answer, question.validation_rules)
        if not errors:
            run.attempts.pop(node.id, None)
            run.state.set(node.output or node.question_id, answer)
            return _Outcome()

        attempt = run.attempts.get(node.id, 1)
        max_attempts = node.max_retries if node.retry_on_invalid else 1
        logger.info(
            f"Answer to {question.id} rejected (attempt {attempt}/{max_attempts}): {'; '.join(errors)}"
        )
        if attempt < max_attempts:
            run.attempts[node.id] = attempt + 1
            context["attempt"] = str(attempt + 1)
            context["validation_errors"] = "; ".join(errors)
            return _Outcome(
                ask=partial(
                    self.interactions.ask_catalog_question,
                    run.run_id,
                    question.id,
                    question.text,
                    context=context,
                )
            )

        run.attempts.pop(node.id, None)
        if node.on_failure:
            logger.warning(f"Retries exhausted for {question.id}, following on_failure")
            return _Outcome(next_node=node.on_failure)
        raise NodeExecutionError(
            node.id, f"no valid answer to {question.id} after {attempt} attempt(s)"
        )

    async def _run_validate_answer(self, node: ValidateAnswerNode, run: _Run) -> _Outcome:
        question = self.catalog.get_question(node.question_id)
        answer = run.state.get(node.answer_key or node.question_id)
        rules = [*question.validation_rules, *node.validation_rules]
        errors = validate_answer(None if answer is None else str(answer), rules)
        run.state.set(f"{node.id}_errors", errors)
        if not errors:
            return _Outcome()
        if node.on_failure:
            return _Outcome(next_node=node.on_failure)
        raise NodeExecutionError(node.id, "; ".join(errors))

    # ------------------------------------------------------------------
    # Results
    async def _suspend(
        self, run: _Run, ask: Callable[..., InteractionRequest]
    ) -> WorkflowRunResult:
        request = ask(checkpoint=run.to_checkpoint())
        if self.recorder is not None:
            await self.recorder.run_updated(
                run.run_id, RunStatus.AWAITING_INPUT, run.state.variables
            )
        return WorkflowRunResult(
            run_id=run.run_id,
            status=RunStatus.AWAITING_INPUT,
            summary=self._summarize(run, "is waiting for input"),
            decisions=list(run.decisions),
            variables=dict(run.state.variables),
            interaction_request=request,
            started_at=run.started_at,
        )

    async def _complete(self, run: _Run) -> WorkflowRunResult:
        logger.info(f"Run {run.run_id} completed after {run.visits} node(s)")
        if self.recorder is not None:
            await self.recorder.run_updated(run.run_id, RunStatus.COMPLETED, run.state.variables)
        return WorkflowRunResult(
            run_id=run.run_id,
            status=RunStatus.COMPLETED,
            success=True,
            summary=self._summarize(run, "completed"),
            decisions=list(run.decisions),
            variables=dict(run.state.variables),
            started_at=run.started_at,
            completed_at=datetime.now(timezone.utc),
        )

    async def _fail(
        self, run: _Run, error: str, node_id: Optional[str]
    ) -> WorkflowRunResult:
        if self.recorder is not None:
            await self.recorder.run_updated(run.run_id, RunStatus.FAILED, run.state.variables)
        return WorkflowRunResult(
            run_id=run.run_id,
            status=RunStatus.FAILED,
            summary=self._summarize(run, "failed"),
            decisions=list(run.decisions),
            variables=dict(run.state.variables),
            error=error,
            failed_node_id=node_id,
            started_at=run.started_at,
            completed_at=datetime.now(timezone.utc),
        )

    def _summarize(self, run: _Run, outcome: str) -> str:
        lines = [
            f"Workflow '{run.template.name}' {outcome} for {run.project_path} "
            f"on branch {run.git_branch}.",
            f"Executed {run.visits} node(s), recorded {len(run.decisions)} decision(s).",
        ]
        if run.history:
            lines.append("Answers:")
            lines.extend(f"- {r.request.question} -> {r.answer}" for r in run.history)
        if run.last_llm_response:
            lines.append(f"Last response: {run.last_llm_response[:SUMMARY_RESPONSE_LIMIT]}")
        return "\n".join(lines)
