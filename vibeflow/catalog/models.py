"""Question catalog entities and answer validation rules."""

from __future__ import annotations

import re
from typing import Annotated, Dict, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field


class _Rule(BaseModel):
    model_config = ConfigDict(frozen=True)

    def check(self, answer: str) -> Optional[str]:
        """Return an error message, or ``None`` when the answer satisfies the rule."""
        raise NotImplementedError


class RequiredRule(_Rule):
    type: Literal["required"] = "required"
    required: bool = True

    def check(self, answer: str) -> Optional[str]:
        if self.required and not answer.strip():
            return "An answer is required"
        return None


class RegexRule(_Rule):
    type: Literal["regex"] = "regex"
    pattern: str

    def check(self, answer: str) -> Optional[str]:
        if re.fullmatch(self.pattern, answer.strip()) is None:
            return f"Answer must match pattern {self.pattern}"
        return None


class EnumRule(_Rule):
    type: Literal["enum"] = "enum"
    values: List[str]

    def check(self, answer: str) -> Optional[str]:
        allowed = {v.upper() for v in self.values}
        if answer.strip().upper() not in allowed:
            return f"Answer must be one of: {', '.join(self.values)}"
        return None


class MinLengthRule(_Rule):
    type: Literal["min_length"] = "min_length"
    length: int = Field(ge=0)

    def check(self, answer: str) -> Optional[str]:
        if len(answer.strip()) < self.length:
            return f"Answer must be at least {self.length} characters"
        return None


class MaxLengthRule(_Rule):
    type: Literal["max_length"] = "max_length"
    length: int = Field(ge=0)

    def check(self, answer: str) -> Optional[str]:
        if len(answer.strip()) > self.length:
            return f"Answer must be at most {self.length} characters"
        return None


ValidationRule = Annotated[
    Union[RequiredRule, RegexRule, EnumRule, MinLengthRule, MaxLengthRule],
    Field(discriminator="type"),
]


class Question(BaseModel):
    """A canonical, pre-approved question."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    category: str = "general"
    validation_rules: List[ValidationRule] = Field(default_factory=list)
    follow_up_questions: List[str] = Field(default_factory=list)
    metadata: Dict[str, str] = Field(default_factory=dict)


def validate_answer(answer: Optional[str], rules: Sequence[_Rule]) -> List[str]:
    """Validate ``answer`` against ``rules`` and return all violations.

    A blank answer is accepted when no rule makes it required; the remaining
    rules only apply to non-blank answers.
    """
    text = answer or ""
    if not text.strip():
        return [err for rule in rules if isinstance(rule, RequiredRule) if (err := rule.check(text))]
    errors: List[str] = []
    for rule in rules:
        error = rule.check(text)
        if error:
            errors.append(error)
    return errors
