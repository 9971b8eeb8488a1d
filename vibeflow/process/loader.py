"""Engineering process definitions, built in and from YAML."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..contracts import EngineeringProcess, ProcessPhase, VibeCheck, VibeCheckCategory
from .templates import TemplateRepository

logger = logging.getLogger(__name__)


def feature_development_process() -> EngineeringProcess:
    """The three-phase Feature Development process."""
    return EngineeringProcess(
        id="feature-development",
        name="Feature Development",
        description="Structured process for building a new feature",
        phases=[
            ProcessPhase(
                name="Requirements Analysis",
                description="Gather and document the requirements",
                workflow_template="requirements-analysis.yml",
                vibe_checks=[
                    VibeCheck(
                        question="Are the requirements clear?",
                        category=VibeCheckCategory.REQUIREMENTS,
                    )
                ],
                order=0,
            ),
            ProcessPhase(
                name="Architecture Design",
                description="Design the architecture",
                workflow_template="architecture-design.yml",
                vibe_checks=[
                    VibeCheck(
                        question="Does the design fit the existing architecture?",
                        category=VibeCheckCategory.ARCHITECTURE,
                    )
                ],
                order=1,
            ),
            ProcessPhase(
                name="Implementation",
                description="Implement the feature",
                workflow_template="implementation.yml",
                vibe_checks=[
                    VibeCheck(
                        question="Are there tests?",
                        category=VibeCheckCategory.QUALITY,
                    )
                ],
                order=2,
            ),
        ],
    )


def parse_process(
    data: Dict[str, Any], templates: Optional[TemplateRepository] = None
) -> EngineeringProcess:
    """Build a process from its YAML mapping.

    Phase ``order`` defaults to the phase's position. A phase without its own
    vibe checks inherits the ones declared by its workflow template when
    ``templates`` is given.
    """
    phases: List[ProcessPhase] = []
    for index, raw in enumerate(data.get("phases", [])):
        phase = dict(raw)
        phase.setdefault("order", index)
        checks = phase.pop("vibe_checks", None) or []
        if not checks and templates is not None:
            template = templates.get(phase["workflow_template"])
            vibe_checks = [c.to_vibe_check() for c in template.vibe_checks]
        else:
            vibe_checks = [
                VibeCheck(
                    question=c["question"],
                    category=c.get("category", c.get("type", VibeCheckCategory.QUALITY.value)),
                    required=c.get("required", True),
                    validation_criteria=c.get("validation_criteria", []),
                )
                for c in checks
            ]
        phases.append(ProcessPhase(vibe_checks=vibe_checks, **phase))

    return EngineeringProcess(
        id=data["id"],
        name=data["name"],
        description=data.get("description", ""),
        phases=phases,
    )


def load_process(
    path: str | Path, templates: Optional[TemplateRepository] = None
) -> EngineeringProcess:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    process = parse_process(data, templates)
    logger.info(f"Loaded process '{process.id}' with {process.total_phases()} phases from {path}")
    return process


def load_process_directory(
    directory: str | Path, templates: Optional[TemplateRepository] = None
) -> List[EngineeringProcess]:
    return [
        load_process(path, templates)
        for path in sorted(Path(directory).iterdir())
        if path.suffix in (".yml", ".yaml")
    ]
