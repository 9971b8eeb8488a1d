"""Tools LLM nodes may call while answering a prompt."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List

from pydantic import BaseModel
from pydantic_ai import ModelRetry

from ..catalog import QuestionCatalog, ValidationRule
from ..errors import QuestionNotFoundError

logger = logging.getLogger(__name__)


class CreatedFile(BaseModel):
    path: str
    absolute_path: str
    size: int
    mime_type: str


class CatalogQuestion(BaseModel):
    question_id: str
    question_text: str
    category: str
    validation_rules: List[ValidationRule] = []
    metadata: Dict[str, str] = {}


def create_file_tool(project_path: str | Path) -> Callable[..., str]:
    """Build a ``create_file`` tool that only writes below ``project_path``."""
    root = Path(project_path).resolve()

    def create_file(path: str, content: str, mime_type: str = "text/plain") -> str:
        """Create a file in the project directory.

        Args:
            path: Relative path from the project root, e.g. docs/feature.md.
            content: Complete file content.
            mime_type: MIME type such as text/markdown or application/json.
        """
        target = (root / path).resolve()
        if not target.is_relative_to(root):
            raise ModelRetry(f"Path traversal detected: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        logger.info(f"File created: {path} ({len(content)} bytes)")
        return CreatedFile(
            path=path, absolute_path=str(target), size=len(content), mime_type=mime_type
        ).model_dump_json()

    return create_file


def question_catalog_tool(catalog: QuestionCatalog) -> Callable[..., str]:
    """Build a ``get_question`` tool backed by ``catalog``."""

    def get_question(question_id: str, include_metadata: bool = False) -> str:
        """Fetch the canonical text of a question from the approved catalog.

        Call this before asking the user anything and ask the returned text verbatim.

        Args:
            question_id: Catalog id of the question, e.g. Q001.
            include_metadata: Also return the validation rules and metadata.
        """
        try:
            question = catalog.get_question(question_id)
        except QuestionNotFoundError as e:
            raise ModelRetry(f"{e}. Known ids: {', '.join(catalog.question_ids())}") from e
        result = CatalogQuestion(
            question_id=question.id,
            question_text=question.text,
            category=question.category,
        )
        if include_metadata:
            result = result.model_copy(
                update={
                    "validation_rules": list(question.validation_rules),
                    "metadata": dict(question.metadata),
                }
            )
        return result.model_dump_json()

    return get_question


def project_tools(project_path: str | Path, catalog: QuestionCatalog) -> Dict[str, Callable]:
    """Tools available to LLM nodes working on ``project_path``, keyed by name."""
    return {
        "create_file": create_file_tool(project_path),
        "get_question": question_catalog_tool(catalog),
    }
