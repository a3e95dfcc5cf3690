"""Errors raised for release runs that did not complete."""

from typing import Dict, Optional, Type


class ReleaseError(Exception):
    """Base class for release run errors.

    Args:
        message: Human readable reason
        exit_code: Process exit code to report for this error
    """

    step: Optional[str] = None
    summary: str = "release failed"

    def __init__(self, message: str = "", exit_code: int = 1) -> None:
        self.message = message
        self.exit_code = exit_code
        super().__init__(self.describe())

    def describe(self) -> str:
        if self.message:
            return f"{self.summary}: {self.message}"
        return self.summary


class GateRejected(ReleaseError):
    """The event did not match the trigger condition. Not a failure of the run."""

    summary = "release not requested"

    def __init__(self, message: str = "", exit_code: int = 0) -> None:
        super().__init__(message, exit_code)


class BuildFailed(ReleaseError):
    step = "build"
    summary = "build failed"


class DocFailed(ReleaseError):
    step = "doc"
    summary = "doc generation failed"


class PublishFailed(ReleaseError):
    step = "publish"
    summary = "publish failed"


class NotifyFailed(ReleaseError):
    step = "notify"
    summary = "notify failed"


STEP_ERRORS: Dict[str, Type[ReleaseError]] = {
    cls.step: cls
    for cls in (BuildFailed, DocFailed, PublishFailed, NotifyFailed)
    if cls.step is not None
}


def error_for_step(
    step: Optional[str], message: str = "", exit_code: int = 1
) -> ReleaseError:
    """Create the error matching a failed step.

    Args:
        step: Step name value (e.g. "build"); None for a run that failed
            before any step was attempted
        message: Failure details
        exit_code: Exit code to propagate, never 0

    Returns:
        ReleaseError subclass instance
    """
    error_class = STEP_ERRORS.get(step or "", ReleaseError)
    return error_class(message, exit_code or 1)
