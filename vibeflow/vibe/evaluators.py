"""Built-in vibe check evaluators."""

from __future__ import annotations

import logging
from typing import Optional

import typer

from ..config import VibeConfig
from ..contracts import ExecutionContext, VibeCheck, VibeCheckResult
from ..llm import LanguageModel
from .base import VibeCheckEvaluator

logger = logging.getLogger(__name__)


class AutoPassVibeCheckEvaluator(VibeCheckEvaluator):
    """Passes every check; for non-interactive runs."""

    async def evaluate(self, check: VibeCheck, context: ExecutionContext) -> VibeCheckResult:
        return VibeCheckResult(check=check, passed=True, findings="Auto-passed")


class ConsoleVibeCheckEvaluator(VibeCheckEvaluator):
    """Ask the operator on the terminal whether each check passes."""

    async def evaluate(self, check: VibeCheck, context: ExecutionContext) -> VibeCheckResult:
        typer.echo("\n=== Vibe Check ===")
        typer.echo(f"Question: {check.question}")
        typer.echo(f"Category: {check.category.value}")
        typer.echo(f"Required: {'yes' if check.required else 'no'}")
        for criterion in check.validation_criteria:
            typer.echo(f"  * {criterion}")

        if context.phase_history:
            typer.echo("\nCompleted phases:")
            for result in context.phase_history:
                headline = result.summary.splitlines()[0] if result.summary else ""
                typer.echo(f"  - {result.phase_name}: {headline}")

        passed = typer.confirm("Does the check pass?", default=True)
        findings = ""
        if not passed:
            findings = typer.prompt("Findings", default="", show_default=False)
        return VibeCheckResult(
            check=check, passed=passed, findings=findings.strip() or "No remarks"
        )


_LLM_PROMPT = """You are reviewing the outcome of an engineering process phase.

Project: {project}
Branch: {branch}

Completed phases:
{history}

Quality check ({category}): {question}
{criteria}
Answer with PASS or FAIL on the first line, followed by your findings."""


class LLMVibeCheckEvaluator(VibeCheckEvaluator):
    """Let the language model judge each check.

    The first line of the response must start with ``PASS`` or ``FAIL``;
    anything else counts as a failure.
    """

    def __init__(self, llm: LanguageModel) -> None:
        self.llm = llm

    def _build_prompt(self, check: VibeCheck, context: ExecutionContext) -> str:
        history = "\n".join(
            f"- {r.phase_name}: {r.summary}" for r in context.phase_history
        ) or "- none"
        criteria = "\n".join(f"- {c}" for c in check.validation_criteria)
        return _LLM_PROMPT.format(
            project=context.project_path,
            branch=context.git_branch,
            history=history,
            category=check.category.value,
            question=check.question,
            criteria=f"Criteria:\n{criteria}\n" if criteria else "",
        )

    async def evaluate(self, check: VibeCheck, context: ExecutionContext) -> VibeCheckResult:
        response = await self.llm.complete(self._build_prompt(check, context))
        first, _, rest = response.strip().partition("\n")
        verdict = first.strip().upper()
        passed = verdict.startswith("PASS")
        if not passed and not verdict.startswith("FAIL"):
            logger.warning(f"Unexpected vibe check verdict '{first}', treating as FAIL")
        return VibeCheckResult(check=check, passed=passed, findings=rest.strip() or first.strip())


def get_vibe_evaluator(
    backend: Optional[str] = None,
    config: Optional[VibeConfig] = None,
    llm: Optional[LanguageModel] = None,
) -> VibeCheckEvaluator:
    """Return the evaluator named by ``backend`` or by the configuration."""
    backend = backend or (config or VibeConfig()).evaluator
    if backend == "auto":
        return AutoPassVibeCheckEvaluator()
    if backend == "console":
        return ConsoleVibeCheckEvaluator()
    if backend == "llm":
        if llm is None:
            raise ValueError("The llm vibe evaluator needs a language model")
        return LLMVibeCheckEvaluator(llm)
    raise ValueError(f"Unsupported vibe evaluator: {backend}")
