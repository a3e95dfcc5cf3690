import logging
from datetime import datetime
from typing import Dict, Optional

from py_trees import common
from py_trees.common import Status
from pydantic import BaseModel, Field

from ..models import OutcomeStatus, ReleaseEvent, RunOutcome, StepName

logger = logging.getLogger(__name__)


class StepState(BaseModel):
    """State of one release runner step.

    `status` is the run-once flag maintained by StatusFlagGuard:
    - `None` (default): step has not been attempted
    - `common.Status.RUNNING`: step is currently running
    - `common.Status.FAILURE`: step has been attempted and failed
    - `common.Status.SUCCESS`: step has been attempted and succeeded

    `exit_code` and `finished_at` are set when the step completes, whatever
    the result.
    """

    status: Optional[common.Status] = None
    message: Optional[str] = None
    exit_code: Optional[int] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


def _default_steps() -> Dict[StepName, StepState]:
    return {step: StepState() for step in StepName}


class RunState(BaseModel):
    """State of a single release run. Nothing here outlives the process."""

    event: ReleaseEvent = Field(default_factory=ReleaseEvent)
    dry_run: bool = False
    gate: Optional[common.Status] = None
    gate_reason: Optional[str] = None
    steps: Dict[StepName, StepState] = Field(default_factory=_default_steps)

    def step(self, name: StepName) -> StepState:
        return self.steps[name]

    def outcome(self) -> RunOutcome:
        """Derive the terminal result of the run.

        A rejected gate is a no-op. Otherwise the first step that did not
        succeed is the failed step; its exit code is propagated.
        """
        if self.gate == Status.FAILURE:
            return RunOutcome(
                status=OutcomeStatus.SKIPPED,
                exit_code=0,
                message=self.gate_reason or "release not requested",
            )
        if self.gate != Status.SUCCESS:
            return RunOutcome(
                status=OutcomeStatus.FAILED,
                exit_code=1,
                message="trigger was not evaluated",
            )

        for name in StepName:
            step = self.steps[name]
            if step.status == Status.SUCCESS:
                continue
            if step.status is None:
                message = "step was not started"
            elif step.status == Status.RUNNING:
                message = "step did not complete"
            else:
                message = step.message or "step failed"
            return RunOutcome(
                status=OutcomeStatus.FAILED,
                failed_step=name,
                exit_code=normalize_exit_code(step.exit_code),
                message=message,
            )

        return RunOutcome(
            status=OutcomeStatus.PUBLISHED,
            exit_code=0,
            message="published" if not self.dry_run else "published (dry run)",
        )


def normalize_exit_code(exit_code: Optional[int]) -> int:
    """Map a step exit code to a non-zero process exit code.

    Negative codes (killed by signal N) follow the shell's 128 + N convention.
    """
    if exit_code is None or exit_code == 0:
        return 1
    if exit_code < 0:
        return 128 - exit_code
    return exit_code
