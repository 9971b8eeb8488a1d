"""Exception hierarchy for vibeflow."""

from __future__ import annotations

from typing import List, Optional


class VibeflowError(Exception):
    """Base class for all vibeflow errors."""


class TemplateValidationError(VibeflowError):
    """A workflow template is structurally invalid and cannot run."""

    def __init__(self, template_name: str, problems: List[str]) -> None:
        self.template_name = template_name
        self.problems = list(problems)
        joined = "; ".join(self.problems)
        super().__init__(f"Invalid workflow template '{template_name}': {joined}")


class TraversalError(VibeflowError):
    """Fatal error raised while walking a workflow graph."""

    def __init__(self, message: str, node_id: Optional[str] = None) -> None:
        self.node_id = node_id
        super().__init__(message)


class NodeNotFoundError(TraversalError):
    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node not found: {node_id}", node_id)


class NoOutgoingEdgeError(TraversalError):
    def __init__(self, node_id: str) -> None:
        super().__init__(f"No outgoing edge from node: {node_id}", node_id)


class InfiniteLoopError(TraversalError):
    def __init__(self, node_id: str, budget: int) -> None:
        self.budget = budget
        super().__init__(
            f"Infinite loop suspected: visited more than {budget} nodes "
            f"without reaching the end node (last node: {node_id})",
            node_id,
        )


class NodeExecutionError(TraversalError):
    """A node could not complete and declares no failure path."""

    def __init__(self, node_id: str, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Node '{node_id}' failed: {reason}", node_id)


class InvalidExecutionStateError(VibeflowError):
    """An operation was requested in a state that does not allow it."""


class ExecutionNotFoundError(InvalidExecutionStateError):
    def __init__(self, execution_id: str) -> None:
        self.execution_id = execution_id
        super().__init__(f"Execution not found: {execution_id}")


class InvalidStateTransitionError(InvalidExecutionStateError):
    def __init__(self, operation: str, state: str) -> None:
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while in state {state}")


class InteractionAlreadyPendingError(InvalidExecutionStateError):
    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"Run {run_id} already has a pending interaction")


class QuestionNotFoundError(VibeflowError):
    def __init__(self, question_id: str) -> None:
        self.question_id = question_id
        super().__init__(f"Question {question_id} not found in catalog")


class ProcessNotFoundError(VibeflowError):
    def __init__(self, process_id: str) -> None:
        self.process_id = process_id
        super().__init__(f"Process not found: {process_id}")


class TemplateNotFoundError(VibeflowError):
    def __init__(self, template_name: str) -> None:
        self.template_name = template_name
        super().__init__(f"Workflow template not found: {template_name}")
