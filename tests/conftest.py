"""Shared fakes and fixtures for vibeflow tests."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pytest

from vibeflow.catalog import default_catalog
from vibeflow.commands import CommandResult
from vibeflow.contracts import ExecutionContext, VibeCheck, VibeCheckResult
from vibeflow.interaction import PendingInteractionRegistry, SuspendingInteractionPort
from vibeflow.vibe import VibeCheckEvaluator
from vibeflow.workflow import WorkflowEngine, WorkflowTemplate


class FakeLLM:
    """Returns queued responses, then ``default``; records every prompt."""

    def __init__(self) -> None:
        self.responses: List[str] = []
        self.default = "LLM response"
        self.error: Optional[Exception] = None
        self.prompts: List[str] = []
        self.tools: List[Sequence[str]] = []

    async def complete(self, prompt: str, tools: Sequence[str] = ()) -> str:
        self.prompts.append(prompt)
        self.tools.append(tuple(tools))
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return self.default


class FakeCommandRunner:
    def __init__(self) -> None:
        self.results: Dict[str, Any] = {}
        self.commands: List[str] = []

    async def run(self, command: str) -> CommandResult:
        self.commands.append(command)
        result = self.results.get(command, CommandResult(exit_success=True, output=""))
        if isinstance(result, Exception):
            raise result
        return result


class ScriptedEvaluator(VibeCheckEvaluator):
    """Fails the checks whose question is listed in ``failing``."""

    def __init__(self) -> None:
        self.failing: set[str] = set()
        self.seen: List[str] = []

    async def evaluate(self, check: VibeCheck, context: ExecutionContext) -> VibeCheckResult:
        self.seen.append(check.question)
        passed = check.question not in self.failing
        return VibeCheckResult(check=check, passed=passed, findings="" if passed else "nope")


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_commands() -> FakeCommandRunner:
    return FakeCommandRunner()


@pytest.fixture
def evaluator() -> ScriptedEvaluator:
    return ScriptedEvaluator()


@pytest.fixture
def registry() -> PendingInteractionRegistry:
    return PendingInteractionRegistry()


@pytest.fixture
def engine(fake_llm, fake_commands, registry) -> WorkflowEngine:
    return WorkflowEngine(
        fake_llm,
        default_catalog(),
        fake_commands,
        interactions=SuspendingInteractionPort(registry),
        max_node_visits=20,
    )


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(project_path="/work/shop", git_branch="feature/cart")


@pytest.fixture
def make_template():
    """Build a template from node dicts and ``(from, to[, condition])`` edges."""

    def _make(nodes, edges, start=None, end=None, name="test-workflow", vibe_checks=()):
        return WorkflowTemplate.model_validate(
            {
                "name": name,
                "description": "test",
                "nodes": nodes,
                "graph": {
                    "start": start or nodes[0]["id"],
                    "end": end or nodes[-1]["id"],
                    "edges": [
                        {"from": e[0], "to": e[1], "condition": e[2] if len(e) > 2 else None}
                        for e in edges
                    ],
                },
                "vibe_checks": list(vibe_checks),
            }
        )

    return _make
