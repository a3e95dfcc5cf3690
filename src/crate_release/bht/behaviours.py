"""
Actions and Conditions for the Release Tree

Here we define only simple atomic actions. Guarded composites are defined
in `composites.py` and the tree layout in `tree.py`.

The guiding principles are:

* Actions should be atomic and represent a single task.
* Actions unconditionally perform their job; run-once and ordering are
  applied by the guards and the sequence around them.
* Actions never raise: failures are logged and reported as Status.FAILURE.
"""

import asyncio
import logging
import shlex
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from py_trees.behaviour import Behaviour
from py_trees.common import Status
from pydantic import SecretStr
from rich.markup import escape

from ..command_runner import CommandRunner
from ..config import CommandConfig, PublishConfig, TriggerConfig
from ..github_client_async import GitHubClientAsync
from ..models import CommandResult, ReleaseEvent
from ..trigger import evaluate_trigger
from .logging_wrapper import PyTreesLoggerWrapper
from .state import RunState, StepState

logger = logging.getLogger(__name__)

TOKEN_PLACEHOLDER = "{token}"
PACKAGE_PLACEHOLDER = "{package}"


class LoggingAction(Behaviour):
    logger: PyTreesLoggerWrapper

    def __init__(self, name: str, log_prefix: str = "") -> None:
        if name == "":
            name = f"{self.__class__.__name__}"
        super().__init__(name=name)
        if log_prefix != "":
            log_prefix = f"{log_prefix}."
        self.logger = PyTreesLoggerWrapper(
            logging.getLogger(f"{log_prefix}{self.name}")
        )

    def log_exception_and_return_failure(self, e: Exception) -> Status:
        self.logger.error(f"[red]failed with exception:[/red] {type(e).__name__}: {e}")
        self.logger.exception("[red]Full traceback:[/red]")
        return Status.FAILURE


class ReleaseAction(LoggingAction):
    """An action backed by an asyncio task that records into a StepState."""

    task: Optional["asyncio.Task[Any]"] = None

    def __init__(self, name: str, step: StepState, log_prefix: str = "") -> None:
        self.step = step
        super().__init__(name=name, log_prefix=log_prefix)

    def start(self) -> None:
        self.step.started_at = datetime.now()
        self.step.finished_at = None
        self.step.exit_code = None

    def finish(self, status: Status, message: str, exit_code: int) -> Status:
        self.step.finished_at = datetime.now()
        self.step.exit_code = exit_code
        self.feedback_message = message
        return status

    def fail(self, message: str, exit_code: int = 1) -> Status:
        self.logger.error(f"[red]{message}[/red]")
        return self.finish(Status.FAILURE, message, exit_code)

    def fail_with_exception(self, e: Exception) -> Status:
        self.finish(Status.FAILURE, f"{type(e).__name__}: {e}", 1)
        return self.log_exception_and_return_failure(e)

    def finish_command(self, result: CommandResult, what: str) -> Status:
        if result.ok:
            return self.finish(Status.SUCCESS, f"{what} succeeded", 0)
        if result.timed_out:
            message = f"{what} timed out"
        else:
            message = f"{what} exited with code {result.exit_code}"
        return self.finish(Status.FAILURE, message, result.exit_code)

    def terminate(self, new_status: Status) -> None:
        """Cancel the current task if it's running."""
        if self.task is not None and not self.task.done():
            self.task.cancel()
            self.logger.debug(
                f"Cancelled task during terminate with status: {new_status}"
            )


### Actions ###


class EvaluateTrigger(LoggingAction):
    """Succeeds when the event requests a release."""

    def __init__(
        self,
        name: str,
        state: RunState,
        trigger: TriggerConfig,
        log_prefix: str = "",
    ) -> None:
        self.state = state
        self.trigger = trigger
        super().__init__(name=name, log_prefix=log_prefix)

    def update(self) -> Status:
        decision = evaluate_trigger(self.state.event, self.trigger)
        self.state.gate_reason = decision.reason
        self.feedback_message = decision.reason
        if decision.proceed:
            self.logger.info(
                f"[green]Release requested:[/green] {escape(self.state.event.title or '')}"
            )
            return Status.SUCCESS

        self.logger.info(
            f"[yellow]Release not requested:[/yellow] {escape(decision.reason)}"
        )
        return Status.FAILURE


class RunCommand(ReleaseAction):
    """Run one configured command (build, doc) in the workspace."""

    def __init__(
        self,
        name: str,
        step: StepState,
        command: CommandConfig,
        runner: CommandRunner,
        workdir: Optional[Path] = None,
        log_prefix: str = "",
    ) -> None:
        self.command = command
        self.runner = runner
        self.workdir = workdir
        self.task: Optional["asyncio.Task[CommandResult]"] = None
        super().__init__(name=name, step=step, log_prefix=log_prefix)

    def initialise(self) -> None:
        self.start()
        self.task = asyncio.create_task(
            self.runner.run(
                self.command.command,
                cwd=self.workdir,
                timeout=self.command.timeout_seconds,
                log=self.logger.std_logger,
            )
        )

    def update(self) -> Status:
        try:
            assert self.task is not None

            if not self.task.done():
                return Status.RUNNING

            return self.finish_command(
                self.task.result(), shlex.join(self.command.command)
            )
        except Exception as e:
            return self.fail_with_exception(e)


class PublishPackages(ReleaseAction):
    """Publish the workspace, or each configured package in order.

    Stops at the first failing publish; packages already uploaded stay
    published.
    """

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
        self.publish = publish
        self.runner = runner
        self.token = token
        self.dry_run = dry_run
        self.workdir = workdir
        self.task: Optional["asyncio.Task[CommandResult]"] = None
        super().__init__(name=name, step=step, log_prefix=log_prefix)

    def initialise(self) -> None:
        self.start()
        self.task = None
        token = self.credential()
        if token is None:
            return
        self.task = asyncio.create_task(self._publish_all(token))

    def credential(self) -> Optional[str]:
        """Value substituted for {token}, the placeholder itself in dry run."""
        if self.token is not None and self.token.get_secret_value():
            return self.token.get_secret_value()
        if self.dry_run:
            return TOKEN_PLACEHOLDER
        return None

    def invocations(self) -> List[List[str]]:
        """Command templates to run, one per package (or one for the workspace)."""
        if not self.publish.packages:
            return [list(self.publish.command)]
        return [
            self.publish.command
            + [
                arg.replace(PACKAGE_PLACEHOLDER, package)
                for arg in self.publish.package_args
            ]
            for package in self.publish.packages
        ]

    async def _publish_all(self, token: str) -> CommandResult:
        templates = self.invocations()
        result: Optional[CommandResult] = None
        for index, template in enumerate(templates, start=1):
            if len(templates) > 1:
                self.logger.info(f"Publishing {index}/{len(templates)}")
            argv = [arg.replace(TOKEN_PLACEHOLDER, token) for arg in template]
            result = await self.runner.run(
                argv,
                cwd=self.workdir,
                timeout=self.publish.timeout_seconds,
                display=shlex.join(template),
                log=self.logger.std_logger,
            )
            if not result.ok:
                break
        assert result is not None
        return result

    def update(self) -> Status:
        if self.task is None:
            return self.fail(
                f"Publish credential is not set ({self.publish.token_env})"
            )

        try:
            if not self.task.done():
                return Status.RUNNING

            return self.finish_command(self.task.result(), "publish")
        except Exception as e:
            return self.fail_with_exception(e)


class PostComment(ReleaseAction):
    """Post the success comment on the pull request that requested the release."""

    def __init__(
        self,
        name: str,
        step: StepState,
        event: ReleaseEvent,
        body: str,
        github_client: Optional[GitHubClientAsync],
        log_prefix: str = "",
    ) -> None:
        self.event = event
        self.body = body
        self.github_client = github_client
        self.task: Optional["asyncio.Task[Dict[str, Any]]"] = None
        super().__init__(name=name, step=step, log_prefix=log_prefix)

    def initialise(self) -> None:
        self.start()
        self.task = None
        if self.missing_requirement() is not None:
            return
        assert self.github_client is not None
        assert self.event.repository is not None
        assert self.event.number is not None
        self.task = asyncio.create_task(
            self.github_client.create_issue_comment(
                self.event.repository, self.event.number, self.body
            )
        )

    def missing_requirement(self) -> Optional[str]:
        if self.github_client is None:
            return "GitHub token is not set"
        if self.event.repository is None:
            return "event has no repository"
        if self.event.number is None:
            return "event has no pull request number"
        return None

    def update(self) -> Status:
        if self.task is None:
            return self.fail(
                f"Cannot comment: {self.missing_requirement() or 'not initialised'}"
            )

        try:
            if not self.task.done():
                return Status.RUNNING

            self.task.result()
            return self.finish(
                Status.SUCCESS,
                f"commented on {self.event.repository}#{self.event.number}",
                0,
            )
        except Exception as e:
            return self.fail_with_exception(e)
