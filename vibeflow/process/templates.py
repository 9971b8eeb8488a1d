"""Registry of workflow templates referenced by process phases."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import TemplateNotFoundError
from ..workflow import WorkflowTemplate, load_template

logger = logging.getLogger(__name__)

BUILTIN_TEMPLATE_DIR = Path(__file__).parent / "templates"
_SUFFIXES = (".yml", ".yaml")


def _key(name: str) -> str:
    for suffix in _SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


class TemplateRepository:
    """Workflow templates by name.

    Phases reference templates either by file name (``implementation.yml``)
    or by stem (``implementation``); both resolve to the same entry.
    """

    def __init__(self) -> None:
        self._templates: Dict[str, WorkflowTemplate] = {}

    def register(self, template: WorkflowTemplate, name: Optional[str] = None) -> None:
        self._templates[_key(name or template.name)] = template

    def get(self, name: str) -> WorkflowTemplate:
        template = self._templates.get(_key(name))
        if template is None:
            raise TemplateNotFoundError(name)
        return template

    def names(self) -> List[str]:
        return sorted(self._templates)

    def load_directory(self, directory: str | Path) -> int:
        """Register every YAML template in ``directory`` under its file stem."""
        count = 0
        for path in sorted(Path(directory).iterdir()):
            if path.suffix in _SUFFIXES:
                self.register(load_template(path), path.stem)
                count += 1
        logger.info(f"Loaded {count} workflow templates from {directory}")
        return count

    @classmethod
    def with_builtin_templates(cls) -> "TemplateRepository":
        repo = cls()
        repo.load_directory(BUILTIN_TEMPLATE_DIR)
        return repo
