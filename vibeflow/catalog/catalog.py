"""In-memory question catalog with YAML loading."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List

import yaml

from ..errors import QuestionNotFoundError
from .models import EnumRule, Question, RegexRule, RequiredRule

logger = logging.getLogger(__name__)


class QuestionCatalog:
    """Lookup of canonical questions by id.

    The catalog is kept out of prompts; nodes fetch a question only when
    they are about to ask it.
    """

    def __init__(self, questions: Iterable[Question] = ()) -> None:
        self._questions: Dict[str, Question] = {q.id: q for q in questions}

    def get_question(self, question_id: str) -> Question:
        question = self._questions.get(question_id)
        if question is None:
            raise QuestionNotFoundError(question_id)
        return question

    def add(self, question: Question) -> None:
        self._questions[question.id] = question

    def question_ids(self) -> List[str]:
        return list(self._questions)

    def questions_by_category(self, category: str) -> List[Question]:
        return [q for q in self._questions.values() if q.category == category]

    @classmethod
    def from_yaml(cls, path: str | Path) -> "QuestionCatalog":
        """Load a catalog from a YAML file.

        The file holds either a list of questions or a mapping with a
        ``questions`` key.
        """
        with open(path) as f:
            data = yaml.safe_load(f) or []
        if isinstance(data, dict):
            data = data.get("questions", [])
        questions = [Question.model_validate(item) for item in data]
        logger.info(f"Loaded {len(questions)} catalog questions from {path}")
        return cls(questions)


def default_catalog() -> QuestionCatalog:
    """Catalog for instrument data collection used by the bundled workflows."""
    return QuestionCatalog(
        [
            Question(
                id="Q001",
                text="What is the ISIN of the instrument?",
                category="instrument_identification",
                validation_rules=[
                    RequiredRule(),
                    RegexRule(pattern="^[A-Z]{2}[A-Z0-9]{9}[0-9]$"),
                ],
            ),
            Question(
                id="Q002",
                text="What is the instrument type (BOND, STOCK, OPTION, FUTURE)?",
                category="instrument_identification",
                validation_rules=[EnumRule(values=["BOND", "STOCK", "OPTION", "FUTURE"])],
                follow_up_questions=["Q003"],
            ),
            Question(
                id="Q003",
                text="What is the currency of the instrument?",
                category="instrument_details",
                validation_rules=[RegexRule(pattern="^[A-Z]{3}$")],
            ),
            Question(
                id="Q004",
                text="What is the current market price?",
                category="pricing",
                validation_rules=[RequiredRule(required=False)],
            ),
        ]
    )
