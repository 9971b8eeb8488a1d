"""Read workflow templates from YAML."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from .models import WorkflowTemplate

logger = logging.getLogger(__name__)


def parse_template(data: Dict[str, Any]) -> WorkflowTemplate:
    return WorkflowTemplate.model_validate(data)


def load_template(path: str | Path) -> WorkflowTemplate:
    """Parse the workflow template stored at ``path``.

    The template is not validated here; see ``validate_template``.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    template = parse_template(data)
    logger.debug(f"Loaded workflow template '{template.name}' from {path}")
    return template
