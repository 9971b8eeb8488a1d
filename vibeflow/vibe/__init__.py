"""Vibe check evaluation."""

from .base import VibeCheckEvaluator, failed_required_checks, required_checks_passed
from .evaluators import (
    AutoPassVibeCheckEvaluator,
    ConsoleVibeCheckEvaluator,
    LLMVibeCheckEvaluator,
    get_vibe_evaluator,
)

__all__ = [
    "AutoPassVibeCheckEvaluator",
    "ConsoleVibeCheckEvaluator",
    "LLMVibeCheckEvaluator",
    "VibeCheckEvaluator",
    "failed_required_checks",
    "get_vibe_evaluator",
    "required_checks_passed",
]
