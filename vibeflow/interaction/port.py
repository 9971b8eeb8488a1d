"""Interaction port that suspends a run instead of blocking on the answer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional, Tuple

if TYPE_CHECKING:
    from vibeflow.workflow.state import WorkflowCheckpoint

from ..contracts import InteractionRequest, InteractionResponse
from ..errors import InvalidExecutionStateError
from .registry import PendingInteractionRegistry


class SuspendingInteractionPort:
    """Build interaction requests and park them with the run's checkpoint."""

    def __init__(self, registry: PendingInteractionRegistry) -> None:
        self.registry = registry

    def _suspend(
        self, run_id: str, request: InteractionRequest, checkpoint: WorkflowCheckpoint
    ) -> InteractionRequest:
        self.registry.register(run_id, request, checkpoint)
        return request

    def ask_user(
        self,
        run_id: str,
        question: str,
        checkpoint: WorkflowCheckpoint,
        context: Optional[Dict[str, str]] = None,
    ) -> InteractionRequest:
        return self._suspend(run_id, InteractionRequest.ask_user(question, context), checkpoint)

    def ask_catalog_question(
        self,
        run_id: str,
        question_id: str,
        question: str,
        checkpoint: WorkflowCheckpoint,
        context: Optional[Dict[str, str]] = None,
    ) -> InteractionRequest:
        request = InteractionRequest.ask_catalog_question(question_id, question, context)
        return self._suspend(run_id, request, checkpoint)

    def request_approval(
        self,
        run_id: str,
        question: str,
        checkpoint: WorkflowCheckpoint,
        context: Optional[Dict[str, str]] = None,
    ) -> InteractionRequest:
        request = InteractionRequest.request_approval(question, context)
        return self._suspend(run_id, request, checkpoint)

    def resume(
        self, run_id: str, answer: str
    ) -> Tuple[WorkflowCheckpoint, InteractionResponse]:
        """Consume the pending interaction and record ``answer`` against it.

        Raises ``InvalidExecutionStateError`` when nothing is pending for the run.
        """
        pending = self.registry.get(run_id)
        if pending is None:
            raise InvalidExecutionStateError(f"No pending interaction for run {run_id}")
        # built before taking the entry so a rejected answer leaves the run resumable
        response = InteractionResponse(request=pending.request, answer=answer)
        entry = self.registry.take(run_id)
        checkpoint = entry.checkpoint.model_copy(
            update={"history": [*entry.checkpoint.history, response]}
        )
        return checkpoint, response
