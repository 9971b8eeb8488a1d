import pytest

from vibeflow.errors import TemplateValidationError
from vibeflow.workflow import NodeType, collect_problems, is_valid, validate_template
from vibeflow.workflow.validation import _NODE_CHECKS


def _llm(node_id, prompt="Do the thing"):
    return {"id": node_id, "type": "llm", "prompt": prompt}


def test_valid_template_passes(make_template):
    template = make_template([_llm("a"), _llm("b")], [("a", "b")])
    validate_template(template)
    assert is_valid(template)


def test_dangling_edge_is_rejected_consistently(make_template):
    template = make_template([_llm("a"), _llm("b")], [("a", "b"), ("b", "ghost")])

    with pytest.raises(TemplateValidationError) as first:
        validate_template(template)
    with pytest.raises(TemplateValidationError) as second:
        validate_template(template)

    assert first.value.problems == second.value.problems
    assert any("ghost" in p for p in first.value.problems)


def test_missing_start_and_end(make_template):
    template = make_template([_llm("a")], [], start="nope", end="gone")
    problems = collect_problems(template)
    assert any("Start node 'nope'" in p for p in problems)
    assert any("End node 'gone'" in p for p in problems)


def test_all_problems_are_reported(make_template):
    nodes = [
        _llm("a", prompt="  "),
        {"id": "c", "type": "conditional", "condition": "true", "if_true": "a"},
        {"id": "h", "type": "human_interaction", "prompt": ""},
        {"id": "q", "type": "ask_catalog_question", "question_id": "Q001", "max_retries": 0},
        {"id": "s", "type": "system_command", "command": "make", "on_failure": "missing"},
        _llm("a"),
    ]
    template = make_template(nodes, [("a", "c")], start="a", end="h")

    with pytest.raises(TemplateValidationError) as excinfo:
        validate_template(template)

    problems = excinfo.value.problems
    assert "Duplicate node id 'a'" in problems
    assert "LLM node 'a' must have a prompt" in problems
    assert "Conditional node 'c' must define if_false" in problems
    assert "Human interaction node 'h' must have a prompt" in problems
    assert "Catalog node 'q' must allow at least one attempt" in problems
    assert any("on_failure references unknown node 'missing'" in p for p in problems)
    assert "test-workflow" in str(excinfo.value)


def test_conditional_branch_must_exist(make_template):
    nodes = [
        {"id": "c", "type": "conditional", "condition": "true", "if_true": "x", "if_false": "y"},
        _llm("y"),
    ]
    problems = collect_problems(make_template(nodes, []))
    assert problems == ["Conditional node 'c' if_true references unknown node 'x'"]


def test_catalog_nodes_need_question_id(make_template):
    nodes = [
        {"id": "g", "type": "get_question"},
        {"id": "v", "type": "validate_answer", "question_id": " "},
    ]
    problems = collect_problems(make_template(nodes, [("g", "v")]))
    assert "Catalog node 'g' must have a question_id" in problems
    assert "Catalog node 'v' must have a question_id" in problems


def test_node_type_tags_are_case_insensitive(make_template):
    template = make_template([{"id": "a", "type": "LLM", "prompt": "hi"}], [])
    assert template.nodes[0].type == "llm"
    assert is_valid(template)


def test_every_node_type_has_a_validation_rule():
    assert set(_NODE_CHECKS) == set(NodeType)
