import pytest

from vibeflow.contracts import VibeCheckCategory
from vibeflow.errors import ProcessNotFoundError, TemplateNotFoundError
from vibeflow.process import (
    BUILTIN_TEMPLATE_DIR,
    ProcessRepository,
    TemplateRepository,
    feature_development_process,
    load_process,
    load_process_directory,
    parse_process,
)
from vibeflow.workflow import collect_problems, load_template, parse_template


def test_builtin_templates_are_valid():
    templates = TemplateRepository.with_builtin_templates()

    assert templates.names() == [
        "architecture-design",
        "implementation",
        "requirements-analysis",
    ]
    for name in templates.names():
        assert collect_problems(templates.get(name)) == []


def test_template_lookup_by_file_name_or_stem():
    templates = TemplateRepository.with_builtin_templates()

    assert templates.get("implementation.yml") is templates.get("implementation")
    with pytest.raises(TemplateNotFoundError):
        templates.get("deployment.yml")


def test_load_template_reads_vibe_checks():
    template = load_template(BUILTIN_TEMPLATE_DIR / "architecture-design.yml")

    assert template.graph.start == "propose"
    check = template.vibe_checks[0].to_vibe_check()
    assert check.category == VibeCheckCategory.ARCHITECTURE
    assert check.required


def test_feature_development_process_references_builtin_templates():
    process = feature_development_process()
    templates = TemplateRepository.with_builtin_templates()

    assert [p.name for p in process.phases] == [
        "Requirements Analysis",
        "Architecture Design",
        "Implementation",
    ]
    for phase in process.phases:
        templates.get(phase.workflow_template)


def test_parse_process_defaults_order_and_inherits_checks():
    templates = TemplateRepository()
    templates.register(
        parse_template(
            {
                "name": "Hotfix",
                "nodes": [{"id": "fix", "type": "llm", "prompt": "Fix it"}],
                "graph": {"start": "fix", "end": "fix"},
                "vibe_checks": [{"question": "Is there a regression test?", "type": "testing"}],
            }
        ),
        "hotfix",
    )
    data = {
        "id": "hotfix",
        "name": "Hotfix",
        "phases": [
            {"name": "Fix", "description": "Patch the bug", "workflow_template": "hotfix.yml"},
            {
                "name": "Release",
                "description": "Ship it",
                "workflow_template": "hotfix.yml",
                "vibe_checks": [
                    {"question": "Changelog updated?", "category": "quality", "required": False}
                ],
            },
        ],
    }

    process = parse_process(data, templates)

    assert [p.order for p in process.phases] == [0, 1]
    assert process.phases[0].vibe_checks[0].question == "Is there a regression test?"
    assert process.phases[0].vibe_checks[0].category == VibeCheckCategory.TESTING
    assert not process.phases[1].vibe_checks[0].required


def test_load_process_directory(tmp_path):
    (tmp_path / "bugfix.yml").write_text(
        """
id: bugfix
name: Bug Fix
phases:
  - name: Reproduce
    description: Reproduce the bug
    workflow_template: implementation.yml
    vibe_checks:
      - question: Is the bug reproduced by a test?
        type: testing
"""
    )
    (tmp_path / "notes.txt").write_text("ignored")

    processes = load_process_directory(tmp_path)

    assert [p.id for p in processes] == ["bugfix"]
    assert load_process(tmp_path / "bugfix.yml").phases[0].vibe_checks[0].category == (
        VibeCheckCategory.TESTING
    )


def test_process_repository():
    repo = ProcessRepository([feature_development_process()])

    assert repo.get("feature-development").total_phases() == 3
    assert repo.find_by_id("missing") is None
    with pytest.raises(ProcessNotFoundError):
        repo.get("missing")
