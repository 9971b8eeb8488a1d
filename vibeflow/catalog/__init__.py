"""Question catalog collaborator."""

from __future__ import annotations

from .catalog import QuestionCatalog, default_catalog
from .models import (
    EnumRule,
    MaxLengthRule,
    MinLengthRule,
    Question,
    RegexRule,
    RequiredRule,
    ValidationRule,
    validate_answer,
)

__all__ = [
    "QuestionCatalog",
    "default_catalog",
    "Question",
    "ValidationRule",
    "RequiredRule",
    "RegexRule",
    "EnumRule",
    "MinLengthRule",
    "MaxLengthRule",
    "validate_answer",
]
