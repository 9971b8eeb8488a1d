"""Vibe check evaluation contract and the phase quality gate."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

from ..contracts import ExecutionContext, VibeCheck, VibeCheckResult


class VibeCheckEvaluator(ABC):
    """Decides whether a phase passes each of its vibe checks."""

    @abstractmethod
    async def evaluate(self, check: VibeCheck, context: ExecutionContext) -> VibeCheckResult:
        """Evaluate a single ``check`` against the accumulated ``context``."""

    async def evaluate_batch(
        self, checks: Sequence[VibeCheck], context: ExecutionContext
    ) -> List[VibeCheckResult]:
        """Evaluate ``checks`` one after another; results keep the input order."""
        results = []
        for check in checks:
            results.append(await self.evaluate(check, context))
        return results


def failed_required_checks(results: Sequence[VibeCheckResult]) -> List[VibeCheckResult]:
    return [r for r in results if r.check.required and not r.passed]


def required_checks_passed(results: Sequence[VibeCheckResult]) -> bool:
    """True when every required check passed. Optional checks never block."""
    return not failed_required_checks(results)
