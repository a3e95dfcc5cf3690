"""Data models for crate release automation."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, StrictBool, StrictInt, StrictStr

from .errors import GateRejected, error_for_step


class StepName(str, Enum):
    """Release runner step enumeration, in execution order."""

    BUILD = "build"
    DOC = "doc"
    PUBLISH = "publish"
    NOTIFY = "notify"


class OutcomeStatus(str, Enum):
    """Terminal result of a release run."""

    SKIPPED = "skipped"
    PUBLISHED = "published"
    FAILED = "failed"


class ReleaseEvent(BaseModel):
    """A closed pull request that may trigger a release.

    Every field is optional: the trigger gate treats a missing field as
    "do not proceed" instead of failing.
    """

    merged: Optional[StrictBool] = None
    title: Optional[StrictStr] = None
    base_ref: Optional[StrictStr] = None
    number: Optional[StrictInt] = None
    owner: Optional[StrictStr] = None
    repo: Optional[StrictStr] = None

    @property
    def repository(self) -> Optional[str]:
        if self.owner and self.repo:
            return f"{self.owner}/{self.repo}"
        return None

    @classmethod
    def from_pull_request(
        cls, pull_request: Dict[str, Any], repository: Optional[Dict[str, Any]] = None
    ) -> "ReleaseEvent":
        """Build an event from a GitHub pull request object.

        Args:
            pull_request: Pull request object as returned by the REST API
                or embedded in a ``pull_request`` webhook payload
            repository: Optional repository object; falls back to
                ``pull_request.base.repo``

        Returns:
            ReleaseEvent with every wrongly typed field left unset
        """
        base = _as_dict(pull_request.get("base"))
        if repository is None:
            repository = _as_dict(base.get("repo"))
        owner = _as_dict(repository.get("owner"))

        candidates = {
            "merged": (pull_request.get("merged"), bool),
            "title": (pull_request.get("title"), str),
            "base_ref": (base.get("ref"), str),
            "number": (pull_request.get("number"), int),
            "owner": (owner.get("login"), str),
            "repo": (repository.get("name"), str),
        }
        fields: Dict[str, Any] = {}
        for name, (value, expected) in candidates.items():
            # bool is an int subclass, a boolean number is still malformed
            if expected is int and isinstance(value, bool):
                continue
            if isinstance(value, expected):
                fields[name] = value
        return cls(**fields)

    @classmethod
    def from_github_payload(cls, payload: Dict[str, Any]) -> "ReleaseEvent":
        """Build an event from a ``pull_request`` webhook payload."""
        pull_request = _as_dict(payload.get("pull_request"))
        repository = payload.get("repository")
        event = cls.from_pull_request(
            pull_request, _as_dict(repository) if repository is not None else None
        )
        number = payload.get("number")
        if event.number is None and isinstance(number, int) and not isinstance(
            number, bool
        ):
            event.number = number
        return event

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ReleaseEvent":
        """Load an event payload file such as the one at ``GITHUB_EVENT_PATH``."""
        event_path = Path(path)
        if not event_path.exists():
            raise FileNotFoundError(f"Event file not found: {event_path}")

        with open(event_path, "r") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Event payload must be a JSON object: {event_path}")
        return cls.from_github_payload(data)


class CommandResult(BaseModel):
    """Result of one external command invocation."""

    command: str
    exit_code: int
    output: str = ""
    timed_out: bool = False
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class RunOutcome(BaseModel):
    """Terminal result of the release runner."""

    status: OutcomeStatus
    failed_step: Optional[StepName] = None
    exit_code: int = 0
    message: str = ""

    def raise_for_status(self) -> None:
        """Raise the matching ReleaseError if the run failed."""
        if self.status != OutcomeStatus.FAILED:
            return

        step = self.failed_step.value if self.failed_step is not None else None
        raise error_for_step(step, self.message, self.exit_code)


class GateDecision(BaseModel):
    """Result of evaluating the trigger gate."""

    proceed: bool
    reason: str = Field(default="")

    def raise_if_rejected(self) -> None:
        if not self.proceed:
            raise GateRejected(self.reason)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}
