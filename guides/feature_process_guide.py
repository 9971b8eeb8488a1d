"""Run the Feature Development process from code, answering prompts inline."""

import asyncio
import tempfile
from pathlib import Path

from vibeflow import PendingInteractionRegistry, ProcessOrchestrator, SuspendingInteractionPort
from vibeflow.catalog import default_catalog
from vibeflow.config import LLMConfig
from vibeflow.llm import get_language_model, project_tools
from vibeflow.persistence import InMemoryMemoryRepository
from vibeflow.process import ProcessRepository, TemplateRepository, feature_development_process
from vibeflow.vibe import get_vibe_evaluator
from vibeflow.workflow import WorkflowEngine

ANSWERS = {
    "Which feature": "A shopping cart with saved items",
    "Do you approve": "Approved",
    "Anything to add": "Cover checkout with an integration test",
}


def _answer_for(question: str) -> str:
    for prefix, answer in ANSWERS.items():
        if question.startswith(prefix):
            return answer
    return "yes"


async def main(project: str):
    """Walk every phase with the pydantic-ai test model."""
    print("🚀 Feature Development with vibeflow\n")

    catalog = default_catalog()
    llm = get_language_model(LLMConfig(model="test"), project_tools(project, catalog))
    engine = WorkflowEngine(
        llm,
        catalog,
        interactions=SuspendingInteractionPort(PendingInteractionRegistry()),
    )
    orchestrator = ProcessOrchestrator(
        engine,
        ProcessRepository([feature_development_process()]),
        TemplateRepository.with_builtin_templates(),
        get_vibe_evaluator("auto"),
        InMemoryMemoryRepository(),
    )

    execution = await orchestrator.start_execution("feature-development", project, "feature/cart")
    while not execution.is_finished():
        phase = execution.current_phase()
        print(f"📋 {phase.name}")
        result = await orchestrator.execute_current_phase(execution.id)
        while result.awaiting_input:
            question = result.interaction_request.question
            answer = _answer_for(question)
            print(f"   ❓ {question.splitlines()[0]}\n   💬 {answer}")
            result = await orchestrator.resume_phase(execution.id, answer)
        execution = await orchestrator.complete_phase(execution.id, result)
        print(f"   ✅ {result.status.value}")

    context = await orchestrator.get_context(execution.id)
    print(f"\n🎉 {execution.status.value}: {len(context.architectural_decisions)} decisions recorded")
    for path in sorted(Path(project).rglob("*")):
        if path.is_file():
            print(f"   📄 {path.relative_to(project)}")


if __name__ == "__main__":
    with tempfile.TemporaryDirectory() as project_dir:
        asyncio.run(main(project_dir))
