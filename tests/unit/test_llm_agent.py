import pytest
from pydantic_ai.models.test import TestModel as ScriptedModel

from vibeflow.config import LLMConfig
from vibeflow.llm import PydanticAILanguageModel, get_language_model


@pytest.mark.asyncio
async def test_complete_returns_agent_output():
    llm = PydanticAILanguageModel(ScriptedModel(custom_output_text="Use an event bus"))

    assert await llm.complete("How should services talk?") == "Use an event bus"


@pytest.mark.asyncio
async def test_only_requested_tools_are_given_to_the_agent():
    calls = []

    def read_file(path: str) -> str:
        """Read a project file."""
        calls.append(("read_file", path))
        return "contents"

    def run_tests(target: str) -> str:
        """Run the test suite."""
        calls.append(("run_tests", target))
        return "ok"

    llm = PydanticAILanguageModel(
        ScriptedModel(custom_output_text="done"),
        system_prompt="You are a reviewer",
        tools={"read_file": read_file},
    )
    llm.register_tool("run_tests", run_tests)

    assert await llm.complete("Review", tools=["read_file", "unknown"]) == "done"
    assert [name for name, _ in calls] == ["read_file"]


def test_get_language_model_from_config():
    llm = get_language_model(LLMConfig(model="test", system_prompt="Be brief"))

    assert llm.model == "test"
    assert llm.system_prompt == "Be brief"
    assert llm.tools == {}
