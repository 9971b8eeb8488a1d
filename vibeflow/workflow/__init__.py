"""Workflow templates and the engine that runs them."""

from .conditions import (
    CallableConditionEvaluator,
    ConditionEvaluator,
    ExpressionConditionEvaluator,
)
from .engine import RunRecorder, WorkflowEngine
from .loader import load_template, parse_template
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
    VibeCheckDefinition,
    WorkflowEdge,
    WorkflowGraph,
    WorkflowNode,
    WorkflowTemplate,
)
from .state import ExecutionState, WorkflowCheckpoint, WorkflowRunResult
from .validation import collect_problems, is_valid, validate_template

__all__ = [
    "AggregationNode",
    "AskCatalogQuestionNode",
    "CallableConditionEvaluator",
    "ConditionEvaluator",
    "ConditionalNode",
    "ExecutionState",
    "ExpressionConditionEvaluator",
    "GetQuestionNode",
    "HumanInteractionNode",
    "LLMNode",
    "NodeType",
    "RunRecorder",
    "SystemCommandNode",
    "ValidateAnswerNode",
    "VibeCheckDefinition",
    "WorkflowCheckpoint",
    "WorkflowEdge",
    "WorkflowEngine",
    "WorkflowGraph",
    "WorkflowNode",
    "WorkflowRunResult",
    "WorkflowTemplate",
    "collect_problems",
    "is_valid",
    "load_template",
    "parse_template",
    "validate_template",
]
