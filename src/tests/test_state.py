"""Tests for run state and outcome derivation."""

from datetime import datetime, timedelta

import pytest
from py_trees.common import Status

from crate_release.bht.state import RunState, StepState, normalize_exit_code
from crate_release.models import OutcomeStatus, ReleaseEvent, StepName


def finished(status: Status, exit_code: int = 0, message: str = "") -> StepState:
    now = datetime.now()
    return StepState(
        status=status,
        exit_code=exit_code,
        message=message or None,
        started_at=now - timedelta(seconds=3),
        finished_at=now,
    )


def state_after(*statuses: Status) -> RunState:
    """RunState with an accepted gate and the given step results in order."""
    state = RunState(event=ReleaseEvent(merged=True), gate=Status.SUCCESS)
    for name, status in zip(StepName, statuses):
        exit_code = 0 if status == Status.SUCCESS else 101
        state.steps[name] = finished(status, exit_code, f"{name.value} result")
    return state


class TestRunStateOutcome:
    def test_rejected_gate_is_skipped(self) -> None:
        state = RunState(gate=Status.FAILURE, gate_reason="pull request was not merged")

        outcome = state.outcome()

        assert outcome.status == OutcomeStatus.SKIPPED
        assert outcome.exit_code == 0
        assert outcome.message == "pull request was not merged"
        assert outcome.failed_step is None

    def test_unevaluated_gate_is_a_failure(self) -> None:
        outcome = RunState().outcome()

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.exit_code == 1

    def test_all_steps_succeeded(self) -> None:
        state = state_after(*[Status.SUCCESS] * 4)

        outcome = state.outcome()

        assert outcome.status == OutcomeStatus.PUBLISHED
        assert outcome.exit_code == 0
        assert outcome.message == "published"

    def test_dry_run_outcome_message(self) -> None:
        state = state_after(*[Status.SUCCESS] * 4)
        state.dry_run = True

        assert state.outcome().message == "published (dry run)"

    def test_first_failed_step_is_reported(self) -> None:
        state = state_after(Status.SUCCESS, Status.FAILURE)

        outcome = state.outcome()

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.failed_step == StepName.DOC
        assert outcome.exit_code == 101
        assert outcome.message == "doc result"

    def test_unstarted_step_after_success_is_a_failure(self) -> None:
        state = state_after(Status.SUCCESS, Status.SUCCESS)

        outcome = state.outcome()

        assert outcome.failed_step == StepName.PUBLISH
        assert outcome.message == "step was not started"
        assert outcome.exit_code == 1

    def test_running_step_is_a_failure(self) -> None:
        state = state_after(Status.SUCCESS)
        state.step(StepName.DOC).status = Status.RUNNING

        outcome = state.outcome()

        assert outcome.failed_step == StepName.DOC
        assert outcome.message == "step did not complete"


class TestNormalizeExitCode:
    @pytest.mark.parametrize(
        "exit_code, expected",
        [
            (None, 1),
            (0, 1),
            (1, 1),
            (101, 101),
            (124, 124),
            (-9, 137),
            (-15, 143),
        ],
    )
    def test_normalize_exit_code(self, exit_code: int, expected: int) -> None:
        assert normalize_exit_code(exit_code) == expected


class TestStepState:
    def test_duration(self) -> None:
        step = finished(Status.SUCCESS)

        assert step.duration == pytest.approx(3.0)

    def test_duration_unknown_until_finished(self) -> None:
        step = StepState(started_at=datetime.now())

        assert step.duration is None
