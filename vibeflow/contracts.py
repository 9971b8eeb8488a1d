"""Core domain contracts for vibeflow processes and executions."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import InteractionAlreadyPendingError, InvalidStateTransitionError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_text(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field_name} must not be blank")
    return value


class _Value(BaseModel):
    """Immutable value object; transitions build a modified copy."""

    model_config = ConfigDict(frozen=True)

    def _evolve(self, **changes: Any):
        data = dict(self)
        data.update(changes)
        return type(self)(**data)


# ---------------------------------------------------------------------------
# Interactions


class InteractionType(str, Enum):
    ASK_USER = "ask_user"
    ASK_CATALOG_QUESTION = "ask_catalog_question"
    APPROVAL = "approval"


class InteractionRequest(_Value):
    """A pending question to the human operator."""

    type: InteractionType
    question: str
    question_id: Optional[str] = None
    context: Dict[str, str] = Field(default_factory=dict)
    requested_at: datetime = Field(default_factory=_utcnow)

    @field_validator("question")
    @classmethod
    def _question_not_blank(cls, v: str) -> str:
        return _require_text(v, "question")

    @model_validator(mode="after")
    def _catalog_needs_question_id(self) -> "InteractionRequest":
        if self.type == InteractionType.ASK_CATALOG_QUESTION and not self.question_id:
            raise ValueError("question_id is required for ask_catalog_question requests")
        return self

    @classmethod
    def ask_user(
        cls, question: str, context: Optional[Dict[str, str]] = None
    ) -> "InteractionRequest":
        return cls(type=InteractionType.ASK_USER, question=question, context=context or {})

    @classmethod
    def ask_catalog_question(
        cls, question_id: str, question: str, context: Optional[Dict[str, str]] = None
    ) -> "InteractionRequest":
        return cls(
            type=InteractionType.ASK_CATALOG_QUESTION,
            question=question,
            question_id=question_id,
            context=context or {},
        )

    @classmethod
    def request_approval(
        cls, question: str, context: Optional[Dict[str, str]] = None
    ) -> "InteractionRequest":
        return cls(type=InteractionType.APPROVAL, question=question, context=context or {})


class InteractionResponse(_Value):
    """The human's answer to an ``InteractionRequest``."""

    request: InteractionRequest
    answer: str
    responded_at: datetime = Field(default_factory=_utcnow)

    @field_validator("answer")
    @classmethod
    def _answer_not_blank(cls, v: str) -> str:
        return _require_text(v, "answer")

    @model_validator(mode="after")
    def _not_before_request(self) -> "InteractionResponse":
        if self.responded_at < self.request.requested_at:
            raise ValueError("responded_at must not precede the request")
        return self

    def response_time(self) -> timedelta:
        """Time elapsed between request and response."""
        return self.responded_at - self.request.requested_at


# ---------------------------------------------------------------------------
# Decisions and vibe checks


class Decision(_Value):
    """A decision recorded while running a workflow."""

    phase: str
    decision: str
    reasoning: str
    recorded_on: date = Field(default_factory=date.today)

    @field_validator("phase", "decision", "reasoning")
    @classmethod
    def _not_blank(cls, v: str, info) -> str:
        return _require_text(v, info.field_name)


class VibeCheckCategory(str, Enum):
    REQUIREMENTS = "requirements"
    ARCHITECTURE = "architecture"
    QUALITY = "quality"
    TESTING = "testing"


_CATEGORY_ALIASES = {
    "design": VibeCheckCategory.ARCHITECTURE,
    "completeness": VibeCheckCategory.QUALITY,
}


class VibeCheck(_Value):
    """A quality-gate question evaluated after a phase's workflow completes."""

    question: str
    category: VibeCheckCategory = VibeCheckCategory.QUALITY
    required: bool = True
    validation_criteria: List[str] = Field(default_factory=list)

    @field_validator("question")
    @classmethod
    def _question_not_blank(cls, v: str) -> str:
        return _require_text(v, "question")

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, v: Any) -> Any:
        if isinstance(v, str):
            key = v.strip().lower()
            if key in _CATEGORY_ALIASES:
                return _CATEGORY_ALIASES[key]
            if key not in {c.value for c in VibeCheckCategory}:
                logger.warning(f"Unknown vibe check category '{v}', using 'quality'")
                return VibeCheckCategory.QUALITY
            return key
        return v


class VibeCheckResult(_Value):
    check: VibeCheck
    passed: bool
    findings: str = ""
    evaluated_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Processes


class ExecutionStatus(str, Enum):
    CREATED = "CREATED"
    IN_PROGRESS = "IN_PROGRESS"
    PHASE_COMPLETED = "PHASE_COMPLETED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class RunStatus(str, Enum):
    """State of the workflow run in flight for the current phase."""

    RUNNING = "RUNNING"
    AWAITING_INPUT = "AWAITING_INPUT"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ProcessPhase(_Value):
    """One ordered stage of an engineering process."""

    name: str
    description: str
    workflow_template: str
    vibe_checks: List[VibeCheck] = Field(default_factory=list)
    order: int = Field(ge=0)

    @field_validator("name", "description", "workflow_template")
    @classmethod
    def _not_blank(cls, v: str, info) -> str:
        return _require_text(v, info.field_name)


class EngineeringProcess(_Value):
    """Ordered set of phases, e.g. Feature Development."""

    id: str
    name: str
    description: str = ""
    phases: List[ProcessPhase]

    @field_validator("id", "name")
    @classmethod
    def _not_blank(cls, v: str, info) -> str:
        return _require_text(v, info.field_name)

    @model_validator(mode="after")
    def _sequential_phases(self) -> "EngineeringProcess":
        if not self.phases:
            raise ValueError("Process must have at least one phase")
        if [p.order for p in self.phases] != list(range(len(self.phases))):
            raise ValueError("Phase order must be sequential starting from 0")
        return self

    def get_phase(self, index: int) -> Optional[ProcessPhase]:
        if 0 <= index < len(self.phases):
            return self.phases[index]
        return None

    def has_next_phase(self, current_index: int) -> bool:
        return current_index < len(self.phases) - 1

    def total_phases(self) -> int:
        return len(self.phases)


class ProcessExecution(_Value):
    """One run of a process against a project/branch.

    Every transition returns a new ``ProcessExecution``; an operation that the
    current state does not allow raises ``InvalidStateTransitionError``.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    process: EngineeringProcess
    status: ExecutionStatus = ExecutionStatus.CREATED
    run_status: RunStatus = RunStatus.RUNNING
    current_phase_index: int = 0
    pending_interaction: Optional[InteractionRequest] = None
    interaction_history: List[InteractionResponse] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_invariants(self) -> "ProcessExecution":
        if not 0 <= self.current_phase_index < self.process.total_phases():
            raise ValueError("Current phase index must be within process phases")
        if self.status == ExecutionStatus.COMPLETED and self.completed_at is None:
            raise ValueError("Completed execution must have completion timestamp")
        if self.run_status == RunStatus.AWAITING_INPUT and self.pending_interaction is None:
            raise ValueError("Awaiting input requires a pending interaction")
        return self

    # -- queries ---------------------------------------------------------
    def current_phase(self) -> ProcessPhase:
        return self.process.phases[self.current_phase_index]

    def is_awaiting_input(self) -> bool:
        return self.run_status == RunStatus.AWAITING_INPUT

    def is_aborted(self) -> bool:
        return self.status == ExecutionStatus.FAILED and self.completed_at is not None

    def is_finished(self) -> bool:
        return self.status == ExecutionStatus.COMPLETED or self.is_aborted()

    def _require(self, operation: str, *allowed: ExecutionStatus) -> None:
        if self.status not in allowed:
            raise InvalidStateTransitionError(operation, self.status.value)

    # -- phase state machine ---------------------------------------------
    def start(self) -> "ProcessExecution":
        self._require("start", ExecutionStatus.CREATED)
        return self._evolve(status=ExecutionStatus.IN_PROGRESS, run_status=RunStatus.RUNNING)

    def complete_phase(self) -> "ProcessExecution":
        self._require("complete phase", ExecutionStatus.IN_PROGRESS)
        if self.is_awaiting_input():
            raise InvalidStateTransitionError("complete phase", self.run_status.value)
        return self._evolve(status=ExecutionStatus.PHASE_COMPLETED)

    def fail_phase(self) -> "ProcessExecution":
        self._require("fail phase", ExecutionStatus.IN_PROGRESS)
        return self._evolve(
            status=ExecutionStatus.FAILED,
            run_status=RunStatus.FAILED if self.is_awaiting_input() else self.run_status,
            pending_interaction=None,
        )

    def advance(self) -> "ProcessExecution":
        self._require("advance", ExecutionStatus.PHASE_COMPLETED)
        if self.process.has_next_phase(self.current_phase_index):
            return self._evolve(
                status=ExecutionStatus.IN_PROGRESS,
                run_status=RunStatus.RUNNING,
                current_phase_index=self.current_phase_index + 1,
            )
        return self._evolve(status=ExecutionStatus.COMPLETED, completed_at=_utcnow())

    def retry_phase(self) -> "ProcessExecution":
        self._require("retry phase", ExecutionStatus.FAILED)
        if self.is_aborted():
            raise InvalidStateTransitionError("retry phase", "ABORTED")
        return self._evolve(status=ExecutionStatus.IN_PROGRESS, run_status=RunStatus.RUNNING)

    def fail(self) -> "ProcessExecution":
        if self.is_finished():
            raise InvalidStateTransitionError("fail", self.status.value)
        run_status = self.run_status
        if run_status in (RunStatus.RUNNING, RunStatus.AWAITING_INPUT):
            run_status = RunStatus.FAILED
        return self._evolve(
            status=ExecutionStatus.FAILED,
            run_status=run_status,
            pending_interaction=None,
            completed_at=_utcnow(),
        )

    # -- nested run state --------------------------------------------------
    def pause_for_interaction(self, request: InteractionRequest) -> "ProcessExecution":
        self._require("pause for interaction", ExecutionStatus.IN_PROGRESS)
        if self.is_awaiting_input():
            raise InteractionAlreadyPendingError(self.id)
        return self._evolve(run_status=RunStatus.AWAITING_INPUT, pending_interaction=request)

    def restart_run(self) -> "ProcessExecution":
        """Drop a pending interaction whose run can no longer be resumed."""
        self._require("restart run", ExecutionStatus.IN_PROGRESS)
        return self._evolve(run_status=RunStatus.RUNNING, pending_interaction=None)

    def resume_with_answer(self, answer: str) -> "ProcessExecution":
        if not self.is_awaiting_input() or self.pending_interaction is None:
            raise InvalidStateTransitionError("resume", self.run_status.value)
        response = InteractionResponse(request=self.pending_interaction, answer=answer)
        return self._evolve(
            run_status=RunStatus.RUNNING,
            pending_interaction=None,
            interaction_history=[*self.interaction_history, response],
        )

    def finish_run(self, success: bool) -> "ProcessExecution":
        if self.is_awaiting_input():
            raise InvalidStateTransitionError("finish run", self.run_status.value)
        return self._evolve(run_status=RunStatus.COMPLETED if success else RunStatus.FAILED)


class PhaseResult(_Value):
    """Outcome of executing one phase (possibly paused for input)."""

    phase_name: str
    status: ExecutionStatus
    summary: str = ""
    vibe_check_results: List[VibeCheckResult] = Field(default_factory=list)
    decisions: List[Decision] = Field(default_factory=list)
    variables: Dict[str, Any] = Field(default_factory=dict)
    awaiting_input: bool = False
    interaction_request: Optional[InteractionRequest] = None
    error: Optional[str] = None
    failed_node_id: Optional[str] = None
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    @field_validator("phase_name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        return _require_text(v, "phase_name")

    @model_validator(mode="after")
    def _paused_carries_request(self) -> "PhaseResult":
        if self.awaiting_input and self.interaction_request is None:
            raise ValueError("A paused phase result must carry an interaction request")
        return self

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.PHASE_COMPLETED


class ExecutionContext(_Value):
    """Long-term memory for one project/branch pair."""

    execution_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_path: str
    git_branch: str
    process_id: Optional[str] = None
    current_phase_index: int = 0
    current_execution: Optional[ProcessExecution] = None
    phase_results: Dict[str, PhaseResult] = Field(default_factory=dict)
    architectural_decisions: List[Decision] = Field(default_factory=list)
    interactions: List[InteractionResponse] = Field(default_factory=list)

    @field_validator("project_path", "git_branch")
    @classmethod
    def _not_blank(cls, v: str, info) -> str:
        return _require_text(v, info.field_name)

    @property
    def phase_history(self) -> List[PhaseResult]:
        return list(self.phase_results.values())

    def add_phase_result(self, result: PhaseResult) -> "ExecutionContext":
        return self._evolve(
            phase_results={**self.phase_results, result.phase_name: result},
            architectural_decisions=[*self.architectural_decisions, *result.decisions],
        )

    def add_decision(self, decision: Decision) -> "ExecutionContext":
        return self._evolve(architectural_decisions=[*self.architectural_decisions, decision])

    def add_interaction(self, response: InteractionResponse) -> "ExecutionContext":
        return self._evolve(interactions=[*self.interactions, response])

    def with_execution(self, execution: ProcessExecution) -> "ExecutionContext":
        return self._evolve(
            current_execution=execution,
            current_phase_index=execution.current_phase_index,
            process_id=execution.process.id,
        )

    def get_phase_result(self, phase_name: str) -> Optional[PhaseResult]:
        return self.phase_results.get(phase_name)

    def has_completed_phase(self, phase_name: str) -> bool:
        result = self.phase_results.get(phase_name)
        return result is not None and result.succeeded

    def decisions_for_phase(self, phase_name: str) -> List[Decision]:
        return [d for d in self.architectural_decisions if d.phase == phase_name]
