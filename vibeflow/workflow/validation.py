"""Structural validation of workflow templates before execution."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Callable, Dict, List, Set

from ..errors import TemplateValidationError
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

logger = logging.getLogger(__name__)

NodeCheck = Callable[[object, Set[str]], List[str]]


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _check_llm(node: LLMNode, ids: Set[str]) -> List[str]:
    if _blank(node.prompt):
        return [f"LLM node '{node.id}' must have a prompt"]
    return []


def _check_conditional(node: ConditionalNode, ids: Set[str]) -> List[str]:
    problems: List[str] = []
    if _blank(node.condition):
        problems.append(f"Conditional node '{node.id}' must have a condition")
    for branch in ("if_true", "if_false"):
        target = getattr(node, branch)
        if _blank(target):
            problems.append(f"Conditional node '{node.id}' must define {branch}")
        elif target not in ids:
            problems.append(
                f"Conditional node '{node.id}' {branch} references unknown node '{target}'"
            )
    return problems


def _check_human(node: HumanInteractionNode, ids: Set[str]) -> List[str]:
    if _blank(node.prompt):
        return [f"Human interaction node '{node.id}' must have a prompt"]
    return []


def _check_aggregation(node: AggregationNode, ids: Set[str]) -> List[str]:
    if _blank(node.output):
        return [f"Aggregation node '{node.id}' must have an output key"]
    return []


def _check_on_failure(node, ids: Set[str]) -> List[str]:
    if node.on_failure is not None and node.on_failure not in ids:
        return [
            f"Node '{node.id}' on_failure references unknown node '{node.on_failure}'"
        ]
    return []


def _check_system_command(node: SystemCommandNode, ids: Set[str]) -> List[str]:
    problems = _check_on_failure(node, ids)
    if _blank(node.command):
        problems.insert(0, f"System command node '{node.id}' must have a command")
    return problems


def _check_question_id(node, ids: Set[str]) -> List[str]:
    if _blank(node.question_id):
        return [f"Catalog node '{node.id}' must have a question_id"]
    return []


def _check_get_question(node: GetQuestionNode, ids: Set[str]) -> List[str]:
    return _check_question_id(node, ids)


def _check_ask_catalog(node: AskCatalogQuestionNode, ids: Set[str]) -> List[str]:
    problems = _check_question_id(node, ids)
    if node.max_retries <= 0:
        problems.append(f"Catalog node '{node.id}' must allow at least one attempt")
    return problems + _check_on_failure(node, ids)


def _check_validate_answer(node: ValidateAnswerNode, ids: Set[str]) -> List[str]:
    return _check_question_id(node, ids) + _check_on_failure(node, ids)


_NODE_CHECKS: Dict[NodeType, NodeCheck] = {
    NodeType.LLM: _check_llm,
    NodeType.CONDITIONAL: _check_conditional,
    NodeType.HUMAN_INTERACTION: _check_human,
    NodeType.AGGREGATION: _check_aggregation,
    NodeType.SYSTEM_COMMAND: _check_system_command,
    NodeType.GET_QUESTION: _check_get_question,
    NodeType.ASK_CATALOG_QUESTION: _check_ask_catalog,
    NodeType.VALIDATE_ANSWER: _check_validate_answer,
}

if set(_NODE_CHECKS) != set(NodeType):
    raise RuntimeError("every node type needs a validation rule")


def collect_problems(template: WorkflowTemplate) -> List[str]:
    """Return every structural problem found in ``template``."""
    problems: List[str] = []
    ids = template.node_ids()

    if not template.nodes:
        problems.append("Workflow must contain at least one node")

    duplicates = sorted(i for i, n in Counter(n.id for n in template.nodes).items() if n > 1)
    for node_id in duplicates:
        problems.append(f"Duplicate node id '{node_id}'")

    if template.graph.start not in ids:
        problems.append(f"Start node '{template.graph.start}' not found in nodes")
    if template.graph.end not in ids:
        problems.append(f"End node '{template.graph.end}' not found in nodes")

    for edge in template.graph.edges:
        if edge.from_node not in ids:
            problems.append(
                f"Edge {edge.from_node} -> {edge.to} references unknown source node '{edge.from_node}'"
            )
        if edge.to not in ids:
            problems.append(
                f"Edge {edge.from_node} -> {edge.to} references unknown target node '{edge.to}'"
            )

    for node in template.nodes:
        problems.extend(_NODE_CHECKS[node.node_type](node, ids))

    return problems


def validate_template(template: WorkflowTemplate) -> None:
    """Raise ``TemplateValidationError`` if ``template`` cannot be executed."""
    problems = collect_problems(template)
    if problems:
        logger.warning(
            f"Workflow template '{template.name}' failed validation with {len(problems)} problem(s)"
        )
        raise TemplateValidationError(template.name, problems)
    logger.debug(f"Workflow template '{template.name}' is valid")


def is_valid(template: WorkflowTemplate) -> bool:
    return not collect_problems(template)
