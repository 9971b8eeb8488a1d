"""Thread-safe store of interactions waiting for a human answer."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from vibeflow.workflow.state import WorkflowCheckpoint

from ..contracts import InteractionRequest
from ..errors import InteractionAlreadyPendingError, InvalidExecutionStateError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingInteraction:
    """A suspended run: the question asked and where to pick up again."""

    run_id: str
    request: InteractionRequest
    checkpoint: WorkflowCheckpoint
    registered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PendingInteractionRegistry:
    """At most one pending interaction per run id.

    Instances are passed to the engine and orchestrator explicitly; nothing
    here is process-global.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, PendingInteraction] = {}
        self._lock = threading.Lock()

    def register(
        self, run_id: str, request: InteractionRequest, checkpoint: WorkflowCheckpoint
    ) -> PendingInteraction:
        entry = PendingInteraction(run_id=run_id, request=request, checkpoint=checkpoint)
        with self._lock:
            if run_id in self._pending:
                raise InteractionAlreadyPendingError(run_id)
            self._pending[run_id] = entry
        logger.info(f"Run {run_id} waiting for input ({request.type.value})")
        return entry

    def get(self, run_id: str) -> Optional[PendingInteraction]:
        with self._lock:
            return self._pending.get(run_id)

    def has_pending(self, run_id: str) -> bool:
        with self._lock:
            return run_id in self._pending

    def take(self, run_id: str) -> PendingInteraction:
        """Remove and return the pending entry for ``run_id``."""
        with self._lock:
            entry = self._pending.pop(run_id, None)
        if entry is None:
            raise InvalidExecutionStateError(f"No pending interaction for run {run_id}")
        return entry

    def release(self, run_id: str) -> bool:
        """Drop the pending entry so the run can no longer be resumed."""
        with self._lock:
            entry = self._pending.pop(run_id, None)
        if entry is not None:
            logger.info(f"Released pending interaction for run {run_id}")
        return entry is not None

    def pending_run_ids(self) -> List[str]:
        with self._lock:
            return list(self._pending)
