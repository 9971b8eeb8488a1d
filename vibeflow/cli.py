"""Command line interface for running vibeflow processes."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from .catalog import QuestionCatalog, default_catalog
from .commands import SubprocessCommandRunner
from .config import VibeflowConfig, load_config
from .contracts import ExecutionStatus, ProcessExecution
from .db import WorkflowHistoryDB
from .errors import VibeflowError
from .interaction import PendingInteractionRegistry, SuspendingInteractionPort
from .llm import get_language_model, project_tools
from .orchestrator import ProcessOrchestrator
from .persistence import get_repository
from .process import (
    ProcessRepository,
    TemplateRepository,
    feature_development_process,
    load_process_directory,
)
from .vibe import get_vibe_evaluator
from .workflow import WorkflowEngine, collect_problems, load_template

app = typer.Typer(help="CLI for vibeflow engineering processes")

workflow_app = typer.Typer(help="Commands for workflow templates")
process_app = typer.Typer(help="Commands for engineering processes")
execution_app = typer.Typer(help="Commands for process executions")

app.add_typer(workflow_app, name="workflow")
app.add_typer(process_app, name="process")
app.add_typer(execution_app, name="execution")


@app.callback()
def main() -> None:
    """vibeflow CLI entry point."""
    pass


def _load_definitions(config: VibeflowConfig) -> tuple[ProcessRepository, TemplateRepository]:
    templates = TemplateRepository.with_builtin_templates()
    processes = ProcessRepository([feature_development_process()])
    if config.process_dir:
        process_dir = Path(config.process_dir)
        if (process_dir / "templates").is_dir():
            templates.load_directory(process_dir / "templates")
        for process in load_process_directory(process_dir, templates):
            processes.save(process)
    return processes, templates


def build_orchestrator(
    config: VibeflowConfig,
    project_path: Optional[str] = None,
    evaluator: Optional[str] = None,
    recorder: Optional[WorkflowHistoryDB] = None,
) -> ProcessOrchestrator:
    """Wire an orchestrator from configuration."""
    catalog = (
        QuestionCatalog.from_yaml(config.catalog_path)
        if config.catalog_path
        else default_catalog()
    )
    llm = get_language_model(config.llm, project_tools(project_path or ".", catalog))
    engine = WorkflowEngine(
        llm,
        catalog,
        SubprocessCommandRunner(timeout=config.engine.command_timeout, cwd=project_path),
        interactions=SuspendingInteractionPort(PendingInteractionRegistry()),
        max_node_visits=config.engine.max_node_visits,
        recorder=recorder,
    )
    processes, templates = _load_definitions(config)
    return ProcessOrchestrator(
        engine,
        processes,
        templates,
        get_vibe_evaluator(evaluator, config.vibe, llm),
        get_repository(config=config),
    )


@workflow_app.command("validate")
def workflow_validate(path: Path) -> None:
    """Check a workflow template file for structural problems."""
    if not path.exists():
        typer.secho(f"File not found: {path}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        template = load_template(path)
    except ValidationError as e:
        typer.secho(f"Workflow file '{path.name}' is invalid:", fg=typer.colors.RED)
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            typer.echo(f"  - {location}: {error['msg']}")
        raise typer.Exit(code=1)

    problems = collect_problems(template)
    if problems:
        typer.secho(f"Workflow '{template.name}' is invalid:", fg=typer.colors.RED)
        for problem in problems:
            typer.echo(f"  - {problem}")
        raise typer.Exit(code=1)
    typer.echo(f"Workflow '{template.name}' is valid ({len(template.nodes)} nodes)")


@workflow_app.command("list")
def workflow_list() -> None:
    """List the workflow templates available to processes."""
    _, templates = _load_definitions(load_config())
    for name in templates.names():
        typer.echo(f"{name}\t{templates.get(name).name}")


@process_app.command("list")
def process_list() -> None:
    """List known engineering processes and their phases."""
    processes, _ = _load_definitions(load_config())
    for process in processes.list_processes():
        typer.echo(f"{process.id}\t{process.name}")
        for phase in process.phases:
            typer.echo(f"  {phase.order + 1}. {phase.name} ({phase.workflow_template})")


async def _run_process(
    orchestrator: ProcessOrchestrator, process_id: str, project: str, branch: str
) -> ProcessExecution:
    execution = await orchestrator.start_execution(process_id, project, branch)
    typer.echo(f"Execution {execution.id} started")
    total = execution.process.total_phases()

    while not execution.is_finished():
        phase = execution.current_phase()
        typer.echo(f"\nPhase {execution.current_phase_index + 1}/{total}: {phase.name}")
        result = await orchestrator.execute_current_phase(execution.id)

        while result.awaiting_input:
            request = result.interaction_request
            errors = request.context.get("validation_errors")
            if errors:
                typer.secho(f"Invalid answer: {errors}", fg=typer.colors.YELLOW)
            answer = typer.prompt(request.question)
            result = await orchestrator.resume_phase(execution.id, answer)

        typer.echo(result.summary)
        execution = await orchestrator.complete_phase(execution.id, result)
        if execution.status == ExecutionStatus.FAILED:
            typer.secho(f"Phase failed: {result.error}", fg=typer.colors.RED)
            if typer.confirm("Retry the phase?", default=True):
                execution = await orchestrator.retry_phase(execution.id)
            else:
                execution = await orchestrator.fail_execution(execution.id)

    return execution


@process_app.command("run")
def process_run(
    process_id: str,
    project: Path = typer.Option(Path.cwd(), help="Project directory"),
    branch: str = typer.Option("main", help="Git branch"),
    evaluator: Optional[str] = typer.Option(
        None, help="Vibe check evaluator: auto, console or llm"
    ),
) -> None:
    """Run an engineering process interactively, phase by phase."""
    config = load_config()
    project_path = str(project.expanduser().resolve())

    async def _main() -> ProcessExecution:
        recorder = None
        if config.history_url:
            recorder = WorkflowHistoryDB(config.history_url)
            await recorder.init_db()
        orchestrator = build_orchestrator(config, project_path, evaluator, recorder)
        return await _run_process(orchestrator, process_id, project_path, branch)

    try:
        execution = asyncio.run(_main())
    except VibeflowError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if execution.status == ExecutionStatus.COMPLETED:
        typer.secho("All phases completed", fg=typer.colors.GREEN)
    else:
        typer.secho("Execution aborted", fg=typer.colors.RED)
        raise typer.Exit(code=1)


@execution_app.command("list")
def execution_list() -> None:
    """List stored executions with their status."""
    repo = get_repository()
    contexts = asyncio.run(repo.list_contexts())
    executions = [c for c in contexts if c.current_execution is not None]
    if not executions:
        typer.echo("No executions found")
        return
    for ctx in executions:
        execution = ctx.current_execution
        typer.echo(
            f"{execution.id}\t{execution.status.value}\t{execution.process.id}\t"
            f"{ctx.project_path}@{ctx.git_branch}"
        )


@execution_app.command("show")
def execution_show(execution_id: str) -> None:
    """Show the state, phase results and decisions of one execution."""
    repo = get_repository()
    ctx = asyncio.run(repo.find_by_execution_id(execution_id))
    if ctx is None or ctx.current_execution is None:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)

    execution = ctx.current_execution
    typer.echo(f"Execution: {execution.id}")
    typer.echo(f"Process: {execution.process.name}")
    typer.echo(f"Project: {ctx.project_path} ({ctx.git_branch})")
    typer.echo(f"Status: {execution.status.value} / run {execution.run_status.value}")
    typer.echo(f"Phase: {execution.current_phase().name}")
    if execution.pending_interaction is not None:
        typer.echo(f"Waiting for: {execution.pending_interaction.question}")
    if ctx.phase_results:
        typer.echo("Phase results:")
        for result in ctx.phase_history:
            typer.echo(f"  {result.phase_name}: {result.status.value}")
    if ctx.architectural_decisions:
        typer.echo("Decisions:")
        for decision in ctx.architectural_decisions:
            typer.echo(f"  [{decision.phase}] {decision.decision}")


if __name__ == "__main__":
    app()
