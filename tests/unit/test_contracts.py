from datetime import timedelta

import pytest
from pydantic import ValidationError

from vibeflow.contracts import (
    Decision,
    EngineeringProcess,
    ExecutionContext,
    ExecutionStatus,
    InteractionRequest,
    InteractionResponse,
    InteractionType,
    PhaseResult,
    ProcessExecution,
    ProcessPhase,
    RunStatus,
    VibeCheck,
    VibeCheckCategory,
)
from vibeflow.errors import InteractionAlreadyPendingError, InvalidStateTransitionError


def _process(phases=2):
    return EngineeringProcess(
        id="proc",
        name="Proc",
        phases=[
            ProcessPhase(
                name=f"Phase {i}",
                description="desc",
                workflow_template="t.yml",
                order=i,
            )
            for i in range(phases)
        ],
    )


def test_process_requires_sequential_phases():
    phase = ProcessPhase(name="P", description="d", workflow_template="t.yml", order=1)
    with pytest.raises(ValidationError):
        EngineeringProcess(id="p", name="P", phases=[phase])
    with pytest.raises(ValidationError):
        EngineeringProcess(id="p", name="P", phases=[])


def test_process_navigation():
    process = _process(3)
    assert process.total_phases() == 3
    assert process.get_phase(2).name == "Phase 2"
    assert process.get_phase(3) is None
    assert process.has_next_phase(1)
    assert not process.has_next_phase(2)


def test_execution_walks_through_phases():
    execution = ProcessExecution(process=_process(2))
    assert execution.status == ExecutionStatus.CREATED

    execution = execution.start()
    assert execution.status == ExecutionStatus.IN_PROGRESS

    execution = execution.complete_phase().advance()
    assert execution.current_phase_index == 1
    assert execution.status == ExecutionStatus.IN_PROGRESS

    execution = execution.complete_phase().advance()
    assert execution.status == ExecutionStatus.COMPLETED
    assert execution.completed_at is not None
    assert execution.is_finished()


def test_failed_phase_can_be_retried():
    execution = ProcessExecution(process=_process()).start().fail_phase()
    assert execution.status == ExecutionStatus.FAILED
    assert not execution.is_finished()

    execution = execution.retry_phase()
    assert execution.status == ExecutionStatus.IN_PROGRESS
    assert execution.current_phase_index == 0


def test_aborted_execution_is_terminal():
    execution = ProcessExecution(process=_process()).start().fail()
    assert execution.is_aborted()
    assert execution.run_status == RunStatus.FAILED

    with pytest.raises(InvalidStateTransitionError):
        execution.retry_phase()
    with pytest.raises(InvalidStateTransitionError):
        execution.fail()


@pytest.mark.parametrize(
    "operation",
    ["complete_phase", "fail_phase", "advance", "retry_phase"],
)
def test_transitions_rejected_before_start(operation):
    execution = ProcessExecution(process=_process())
    with pytest.raises(InvalidStateTransitionError):
        getattr(execution, operation)()


def test_transitions_return_new_objects():
    execution = ProcessExecution(process=_process())
    started = execution.start()
    assert execution.status == ExecutionStatus.CREATED
    assert started.id == execution.id
    with pytest.raises(ValidationError):
        started.status = ExecutionStatus.FAILED


def test_pause_and_resume():
    execution = ProcessExecution(process=_process()).start()
    request = InteractionRequest.ask_user("Which queue?")

    paused = execution.pause_for_interaction(request)
    assert paused.is_awaiting_input()
    assert paused.pending_interaction == request
    with pytest.raises(InteractionAlreadyPendingError):
        paused.pause_for_interaction(request)
    with pytest.raises(InvalidStateTransitionError):
        paused.complete_phase()

    resumed = paused.resume_with_answer("SQS")
    assert resumed.run_status == RunStatus.RUNNING
    assert resumed.pending_interaction is None
    assert resumed.interaction_history[0].answer == "SQS"

    with pytest.raises(InvalidStateTransitionError):
        resumed.resume_with_answer("again")


def test_awaiting_input_requires_request():
    with pytest.raises(ValidationError):
        ProcessExecution(process=_process(), run_status=RunStatus.AWAITING_INPUT)


def test_fail_phase_while_paused_drops_request():
    execution = (
        ProcessExecution(process=_process())
        .start()
        .pause_for_interaction(InteractionRequest.ask_user("?"))
        .fail_phase()
    )
    assert execution.pending_interaction is None
    assert execution.run_status == RunStatus.FAILED


def test_interaction_request_validation():
    with pytest.raises(ValidationError):
        InteractionRequest.ask_user("  ")
    with pytest.raises(ValidationError):
        InteractionRequest(type=InteractionType.ASK_CATALOG_QUESTION, question="ISIN?")

    request = InteractionRequest.ask_catalog_question("Q001", "ISIN?", {"attempt": "1"})
    assert request.question_id == "Q001"


def test_response_time_is_never_negative():
    request = InteractionRequest.request_approval("Ship it?")
    response = InteractionResponse(request=request, answer="yes")
    assert response.response_time() >= timedelta(0)

    with pytest.raises(ValidationError):
        InteractionResponse(
            request=request, answer="yes", responded_at=request.requested_at - timedelta(seconds=1)
        )
    with pytest.raises(ValidationError):
        InteractionResponse(request=request, answer="")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("design", VibeCheckCategory.ARCHITECTURE),
        ("Requirements", VibeCheckCategory.REQUIREMENTS),
        ("completeness", VibeCheckCategory.QUALITY),
        ("vibes", VibeCheckCategory.QUALITY),
    ],
)
def test_vibe_check_category_normalization(raw, expected):
    assert VibeCheck(question="Is it good?", category=raw).category == expected


def test_decision_fields_must_not_be_blank():
    with pytest.raises(ValidationError):
        Decision(phase="Design", decision=" ", reasoning="because")


def test_context_accumulates_results_and_decisions():
    context = ExecutionContext(project_path="/p", git_branch="main")
    decision = Decision(phase="Design", decision="Use Postgres", reasoning="Relational data")
    result = PhaseResult(
        phase_name="Design",
        status=ExecutionStatus.PHASE_COMPLETED,
        decisions=[decision],
    )

    updated = context.add_phase_result(result)

    assert context.phase_results == {}
    assert updated.has_completed_phase("Design")
    assert not updated.has_completed_phase("Implementation")
    assert updated.decisions_for_phase("Design") == [decision]
    assert updated.get_phase_result("Design") == result

    execution = ProcessExecution(process=_process()).start()
    bound = updated.with_execution(execution)
    assert bound.process_id == "proc"
    assert bound.current_execution == execution


def test_paused_phase_result_needs_request():
    with pytest.raises(ValidationError):
        PhaseResult(phase_name="P", status=ExecutionStatus.IN_PROGRESS, awaiting_input=True)
