"""
Guarded composites for the Release Tree

Each composite wraps one atomic action from `behaviours.py` in a
StatusFlagGuard bound to the matching RunState field. A guarded step runs to
completion at most once per run: re-ticking a finished step returns its
recorded status, which is what keeps a failed step from being retried and a
successful comment from being posted twice.
"""

from pathlib import Path
from typing import Optional

from pydantic import SecretStr

from ..command_runner import CommandRunner
from ..config import CommandConfig, PublishConfig, TriggerConfig
from ..github_client_async import GitHubClientAsync
from ..models import ReleaseEvent
from .behaviours import EvaluateTrigger, PostComment, PublishPackages, RunCommand
from .decorators import StatusFlagGuard
from .state import RunState, StepState


class EvaluateTriggerGuarded(StatusFlagGuard):
    def __init__(
        self,
        name: str,
        state: RunState,
        trigger: TriggerConfig,
        log_prefix: str = "",
    ) -> None:
        super().__init__(
            None if name == "" else name,
            EvaluateTrigger(
                "Release Requested?", state, trigger, log_prefix=log_prefix
            ),
            state,
            "gate",
            "gate_reason",
            guard_status=None,
            log_prefix=log_prefix,
        )


class RunCommandGuarded(StatusFlagGuard):
    def __init__(
        self,
        name: str,
        step: StepState,
        command: CommandConfig,
        runner: CommandRunner,
        workdir: Optional[Path] = None,
        log_prefix: str = "",
    ) -> None:
        super().__init__(
            None if name == "" else name,
            RunCommand(
                "Run Command", step, command, runner, workdir, log_prefix=log_prefix
            ),
            step,
            "status",
            "message",
            guard_status=None,
            log_prefix=log_prefix,
        )


class PublishPackagesGuarded(StatusFlagGuard):
    def __init__(
        self,
        name: str,
        step: StepState,
        publish: PublishConfig,
        runner: CommandRunner,
        token: Optional[SecretStr],
        workdir: Optional[Path] = None,
        dry_run: bool = False,
        log_prefix: str = "",
    ) -> None:
        super().__init__(
            None if name == "" else name,
            PublishPackages(
                "Publish Packages",
                step,
                publish,
                runner,
                token,
                workdir,
                dry_run=dry_run,
                log_prefix=log_prefix,
            ),
            step,
            "status",
            "message",
            guard_status=None,
            log_prefix=log_prefix,
        )


class PostCommentGuarded(StatusFlagGuard):
    def __init__(
        self,
        name: str,
        step: StepState,
        event: ReleaseEvent,
        body: str,
        github_client: Optional[GitHubClientAsync],
        log_prefix: str = "",
    ) -> None:
        super().__init__(
            None if name == "" else name,
            PostComment(
                "Post Comment", step, event, body, github_client, log_prefix=log_prefix
            ),
            step,
            "status",
            "message",
            guard_status=None,
            log_prefix=log_prefix,
        )
