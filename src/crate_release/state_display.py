"""Console display utilities for release run state."""

from enum import Enum
from typing import Optional

from py_trees.common import Status
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .bht.state import RunState, StepState
from .models import OutcomeStatus, StepName


class StepStatus(str, Enum):
    """Display status of a runner step."""

    NOT_STARTED = "not_started"
    RUNNING = "in_progress"
    FAILED = "failed"
    SUCCEEDED = "succeeded"
    INCORRECT = "incorrect"


# Decision table: status flag -> whether the step has finished -> display status
_STEP_STATUS_MAPPING = {
    None: {False: StepStatus.NOT_STARTED},
    Status.RUNNING: {False: StepStatus.RUNNING},
    Status.FAILURE: {True: StepStatus.FAILED},
    Status.SUCCESS: {True: StepStatus.SUCCEEDED},
}

_STEP_TITLES = {
    StepName.BUILD: "Build",
    StepName.DOC: "Document",
    StepName.PUBLISH: "Publish",
    StepName.NOTIFY: "Notify",
}


class DisplayModel:
    """Model for computing display status from step state."""

    @staticmethod
    def get_step_status(step: StepState) -> StepStatus:
        finished = step.finished_at is not None
        mapping = _STEP_STATUS_MAPPING.get(step.status, {})
        return mapping.get(finished, StepStatus.INCORRECT)


class ConsoleStatePrinter:
    """Handles printing of run state to console using Rich tables."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_state_table(self, state: RunState) -> None:
        """Print table showing the state of every step.

        Args:
            state: The RunState to display
        """
        event = state.event
        target = event.repository or "unknown repository"
        if event.number is not None:
            target = f"{target}#{event.number}"
        table = Table(
            title=f"[bold cyan]Crate Release: {escape(target)}[/bold cyan]",
            caption=self.get_outcome_display(state),
            show_header=True,
            show_lines=True,
            header_style="bold magenta",
            border_style="bright_blue",
            title_style="bold cyan",
        )

        table.add_column("Step", style="cyan", no_wrap=True, min_width=12)
        table.add_column("Status", justify="center", no_wrap=True, min_width=16)
        table.add_column("Exit", justify="right", no_wrap=True)
        table.add_column("Duration", justify="right", no_wrap=True)
        table.add_column("Details", style="yellow")

        for name in StepName:
            step = state.step(name)
            duration = step.duration
            table.add_row(
                _STEP_TITLES[name],
                self.get_step_status_display(step),
                "" if step.exit_code is None else str(step.exit_code),
                "" if duration is None else f"{duration:.1f}s",
                escape(step.message or ""),
            )

        self.console.print()
        self.console.print(table)
        self.console.print()

    def get_step_status_display(self, step: StepState) -> str:
        status = DisplayModel.get_step_status(step)
        if status == StepStatus.SUCCEEDED:
            return "[bold green]✓ Success[/bold green]"
        elif status == StepStatus.RUNNING:
            return "[bold yellow]⏳ In Progress[/bold yellow]"
        elif status == StepStatus.NOT_STARTED:
            return "[dim]Not Started[/dim]"
        elif status == StepStatus.INCORRECT:
            return "[bold red]✗ Invalid state![/bold red]"

        return "[bold red]✗ Failed[/bold red]"

    def get_outcome_display(self, state: RunState) -> str:
        outcome = state.outcome()
        if outcome.status == OutcomeStatus.PUBLISHED:
            return f"[bold green]{escape(outcome.message)}[/bold green]"
        if outcome.status == OutcomeStatus.SKIPPED:
            return f"[dim]skipped: {escape(outcome.message)}[/dim]"
        step = outcome.failed_step.value if outcome.failed_step else "run"
        return f"[bold red]failed at {step}: {escape(outcome.message)}[/bold red]"


def print_state_table(state: RunState, console: Optional[Console] = None) -> None:
    """Print table showing the run state.

    This is a convenience function that creates a ConsoleStatePrinter and prints the state.

    Args:
        state: The RunState to display
        console: Optional Rich Console instance (creates new one if not provided)
    """
    printer = ConsoleStatePrinter(console)
    printer.print_state_table(state)
