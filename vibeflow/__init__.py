"""vibeflow: Phase-gated engineering processes driven by workflow graphs."""

from .contracts import (
    Decision,
    EngineeringProcess,
    ExecutionContext,
    ExecutionStatus,
    InteractionRequest,
    InteractionResponse,
    PhaseResult,
    ProcessExecution,
    ProcessPhase,
    RunStatus,
    VibeCheck,
    VibeCheckResult,
)
from .interaction import PendingInteractionRegistry, SuspendingInteractionPort
from .jobs import AsyncJobRegistry
from .orchestrator import ProcessOrchestrator
from .persistence import get_repository
from .workflow import WorkflowEngine, WorkflowTemplate, validate_template

__version__ = "0.1.0"
__all__ = [
    "AsyncJobRegistry",
    "Decision",
    "EngineeringProcess",
    "ExecutionContext",
    "ExecutionStatus",
    "InteractionRequest",
    "InteractionResponse",
    "PendingInteractionRegistry",
    "PhaseResult",
    "ProcessExecution",
    "ProcessOrchestrator",
    "ProcessPhase",
    "RunStatus",
    "SuspendingInteractionPort",
    "VibeCheck",
    "VibeCheckResult",
    "WorkflowEngine",
    "WorkflowTemplate",
    "get_repository",
    "validate_template",
]
