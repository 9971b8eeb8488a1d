import json

import pytest
from pydantic_ai import ModelRetry
from pydantic_ai.models.test import TestModel as ScriptedModel

from vibeflow.catalog import default_catalog
from vibeflow.config import LLMConfig
from vibeflow.llm import (
    PydanticAILanguageModel,
    create_file_tool,
    get_language_model,
    project_tools,
    question_catalog_tool,
)


def test_create_file_writes_below_project(tmp_path):
    create_file = create_file_tool(tmp_path)

    result = json.loads(create_file("docs/requirements.md", "# Cart", "text/markdown"))

    target = tmp_path / "docs" / "requirements.md"
    assert target.read_text() == "# Cart"
    assert result == {
        "path": "docs/requirements.md",
        "absolute_path": str(target.resolve()),
        "size": 6,
        "mime_type": "text/markdown",
    }


def test_create_file_rejects_path_traversal(tmp_path):
    project = tmp_path / "project"
    project.mkdir()
    create_file = create_file_tool(project)

    with pytest.raises(ModelRetry, match="Path traversal detected"):
        create_file("../outside.txt", "nope")
    with pytest.raises(ModelRetry):
        create_file(str(tmp_path / "absolute.txt"), "nope")

    assert not (tmp_path / "outside.txt").exists()
    assert not (tmp_path / "absolute.txt").exists()


def test_get_question_returns_catalog_text():
    get_question = question_catalog_tool(default_catalog())

    plain = json.loads(get_question("Q001"))
    detailed = json.loads(get_question("Q002", include_metadata=True))

    assert plain["question_text"] == "What is the ISIN of the instrument?"
    assert plain["category"] == "instrument_identification"
    assert plain["validation_rules"] == []
    assert detailed["validation_rules"][0]["type"] == "enum"
    assert detailed["validation_rules"][0]["values"] == ["BOND", "STOCK", "OPTION", "FUTURE"]


def test_get_question_unknown_id_asks_model_to_retry():
    get_question = question_catalog_tool(default_catalog())

    with pytest.raises(ModelRetry, match="Known ids: Q001, Q002, Q003, Q004"):
        get_question("Q999")


def test_project_tools_registered_with_language_model(tmp_path):
    llm = get_language_model(
        LLMConfig(model="test"), project_tools(tmp_path, default_catalog())
    )

    assert sorted(llm.tools) == ["create_file", "get_question"]


@pytest.mark.asyncio
async def test_agent_can_create_files_through_tool(tmp_path):
    llm = PydanticAILanguageModel(
        ScriptedModel(call_tools=["create_file"], custom_output_text="saved"),
        tools=project_tools(tmp_path, default_catalog()),
    )

    assert await llm.complete("Write the requirements", tools=["create_file"]) == "saved"

    created = [p for p in tmp_path.rglob("*") if p.is_file()]
    assert len(created) == 1
