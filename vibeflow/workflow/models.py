"""Pydantic models describing parsed workflow templates."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..catalog.models import ValidationRule
from ..constants import DEFAULT_MAX_RETRIES
from ..contracts import VibeCheck, VibeCheckCategory


class NodeType(str, Enum):
    """Closed set of node kinds a workflow may contain."""

    LLM = "llm"
    CONDITIONAL = "conditional"
    HUMAN_INTERACTION = "human_interaction"
    AGGREGATION = "aggregation"
    SYSTEM_COMMAND = "system_command"
    GET_QUESTION = "get_question"
    ASK_CATALOG_QUESTION = "ask_catalog_question"
    VALIDATE_ANSWER = "validate_answer"


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    description: Optional[str] = None

    @property
    def node_type(self) -> NodeType:
        return NodeType(self.type)  # type: ignore[attr-defined]


class LLMNode(_Node):
    """Calls the language model and stores the response."""

    type: Literal["llm"] = "llm"
    prompt: Optional[str] = None
    tools: List[str] = Field(default_factory=list)
    output: Optional[str] = None


class ConditionalNode(_Node):
    """Branches on a condition evaluated against the run's variables."""

    type: Literal["conditional"] = "conditional"
    condition: str = ""
    if_true: Optional[str] = None
    if_false: Optional[str] = None


class HumanInteractionNode(_Node):
    """Asks the operator a free-form question (or an approval)."""

    type: Literal["human_interaction"] = "human_interaction"
    prompt: str = ""
    inputs: List[str] = Field(default_factory=list)
    output: Optional[str] = None
    approval: bool = False


class AggregationNode(_Node):
    """Collects earlier outputs into a single list."""

    type: Literal["aggregation"] = "aggregation"
    inputs: List[str] = Field(default_factory=list)
    output: str


class SystemCommandNode(_Node):
    """Runs an external command, optionally checking its output."""

    type: Literal["system_command"] = "system_command"
    command: str
    expected_output: Optional[str] = None
    on_failure: Optional[str] = None
    output: Optional[str] = None


class GetQuestionNode(_Node):
    """Loads canonical question text from the catalog."""

    type: Literal["get_question"] = "get_question"
    question_id: str = ""
    output: Optional[str] = None


class AskCatalogQuestionNode(_Node):
    """Asks a catalog question and validates the answer, re-asking on failure."""

    type: Literal["ask_catalog_question"] = "ask_catalog_question"
    question_id: str = ""
    output: Optional[str] = None
    retry_on_invalid: bool = True
    max_retries: int = DEFAULT_MAX_RETRIES
    on_failure: Optional[str] = None


class ValidateAnswerNode(_Node):
    """Validates a previously recorded answer against its catalog rules."""

    type: Literal["validate_answer"] = "validate_answer"
    question_id: str = ""
    answer_key: Optional[str] = None
    validation_rules: List[ValidationRule] = Field(default_factory=list)
    on_failure: Optional[str] = None


WorkflowNode = Annotated[
    Union[
        LLMNode,
        ConditionalNode,
        HumanInteractionNode,
        AggregationNode,
        SystemCommandNode,
        GetQuestionNode,
        AskCatalogQuestionNode,
        ValidateAnswerNode,
    ],
    Field(discriminator="type"),
]

CATALOG_NODE_TYPES = frozenset(
    {NodeType.GET_QUESTION, NodeType.ASK_CATALOG_QUESTION, NodeType.VALIDATE_ANSWER}
)


class WorkflowEdge(BaseModel):
    """Directed transition, optionally guarded by a condition."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_node: str = Field(alias="from")
    to: str
    condition: Optional[str] = None


class WorkflowGraph(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: str
    end: str
    edges: List[WorkflowEdge] = Field(default_factory=list)


class VibeCheckDefinition(BaseModel):
    """Vibe check declared inside a workflow template."""

    model_config = ConfigDict(frozen=True)

    question: str
    type: str = VibeCheckCategory.QUALITY.value
    required: bool = True

    def to_vibe_check(self) -> VibeCheck:
        return VibeCheck(question=self.question, category=self.type, required=self.required)


class WorkflowTemplate(BaseModel):
    """One parsed workflow definition. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    nodes: List[WorkflowNode] = Field(default_factory=list)
    graph: WorkflowGraph
    vibe_checks: List[VibeCheckDefinition] = Field(default_factory=list)

    @field_validator("nodes", mode="before")
    @classmethod
    def _normalize_node_types(cls, v):
        # type tags are accepted in any case
        if isinstance(v, list):
            return [
                {**item, "type": item["type"].lower()}
                if isinstance(item, dict) and isinstance(item.get("type"), str)
                else item
                for item in v
            ]
        return v

    def get_node(self, node_id: str) -> Optional[_Node]:
        return next((n for n in self.nodes if n.id == node_id), None)

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def outgoing_edges(self, node_id: str) -> List[WorkflowEdge]:
        return [e for e in self.graph.edges if e.from_node == node_id]

    def nodes_of_type(self, node_type: NodeType) -> List[_Node]:
        return [n for n in self.nodes if n.node_type == node_type]

    def uses_catalog(self) -> bool:
        return any(n.node_type in CATALOG_NODE_TYPES for n in self.nodes)
