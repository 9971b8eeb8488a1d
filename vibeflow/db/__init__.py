from .history import WorkflowHistoryDB
from .models import NodeStep, RunVariable, WorkflowRun

__all__ = ["WorkflowHistoryDB", "WorkflowRun", "NodeStep", "RunVariable"]
