"""Crate release automation CLI."""

import logging
from pathlib import Path
from typing import Optional

import typer
from py_trees.display import unicode_tree
from rich.markup import escape

from .bht.args import RunArgs
from .bht.tree import initialize_tree_and_state, run_release
from .cli_util import load_config_or_exit, load_event_or_exit, read_secret
from .errors import GateRejected, ReleaseError
from .logging_config import setup_logging
from .models import OutcomeStatus
from .trigger import evaluate_trigger

app = typer.Typer(
    name="crate-release",
    help="Build, document and publish a crate when a release pull request is merged",
    add_completion=False,
)

logger = logging.getLogger(__name__)

EVENT_HELP = "Path to the pull_request event payload (default: $GITHUB_EVENT_PATH)"
PULL_REQUEST_HELP = "Fetch this pull request from the GitHub API instead of reading an event file"
REPO_HELP = "Repository as 'owner/name', overrides the one in the event"
CONFIG_HELP = "Path to config file (default: release.yaml, built-in defaults if absent)"


@app.command()
def run(
    event_path: Optional[Path] = typer.Option(None, "--event", "-e", help=EVENT_HELP),
    pull_request: Optional[int] = typer.Option(
        None, "--pull-request", help=PULL_REQUEST_HELP
    ),
    repo: Optional[str] = typer.Option(None, "--repo", help=REPO_HELP),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help=CONFIG_HELP
    ),
    workdir: Optional[Path] = typer.Option(
        None,
        "--workdir",
        "-w",
        exists=True,
        file_okay=False,
        help="Workspace to build and publish (default: current directory)",
    ),
    publish_token: Optional[str] = typer.Option(
        None,
        "--publish-token",
        help="Registry token (if not provided, uses the env var named by publish.token_env, CRATES_IO_TOKEN by default)",
    ),
    github_token: Optional[str] = typer.Option(
        None,
        "--github-token",
        help="GitHub token for the pull request comment (if not provided, uses the env var named by notify.token_env, GITHUB_TOKEN by default)",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Log commands and the comment without running them"
    ),
    tree_cutoff: int = typer.Option(
        5000, "--tree-cutoff", "-m", help="Max number of ticks to run the tree for"
    ),
) -> None:
    """Run the release if the event is a merged release pull request."""
    setup_logging()
    config = load_config_or_exit(config_file)

    # Secrets are read once, here, and passed down explicitly
    publish_secret = read_secret(publish_token, config.publish.token_env)
    github_secret = read_secret(github_token, config.notify.token_env)

    event = load_event_or_exit(event_path, pull_request, repo, github_secret)
    args = RunArgs(
        event=event,
        workdir=workdir,
        dry_run=dry_run,
        publish_token=publish_secret,
        github_token=github_secret,
    )

    outcome = run_release(config, args, cutoff=tree_cutoff)
    try:
        outcome.raise_for_status()
    except ReleaseError as e:
        logger.error(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(e.exit_code)

    if outcome.status == OutcomeStatus.SKIPPED:
        logger.info(f"Nothing to do: {escape(outcome.message)}")
    else:
        logger.info(f"[green]Release {escape(outcome.message)}[/green]")


@app.command()
def check(
    event_path: Optional[Path] = typer.Option(None, "--event", "-e", help=EVENT_HELP),
    pull_request: Optional[int] = typer.Option(
        None, "--pull-request", help=PULL_REQUEST_HELP
    ),
    repo: Optional[str] = typer.Option(None, "--repo", help=REPO_HELP),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help=CONFIG_HELP
    ),
    github_token: Optional[str] = typer.Option(
        None,
        "--github-token",
        help="GitHub token used with --pull-request (if not provided, uses GITHUB_TOKEN)",
    ),
) -> None:
    """Evaluate the trigger only. Exits 0 when a release would run, 1 otherwise."""
    setup_logging()
    config = load_config_or_exit(config_file)
    github_secret = read_secret(github_token, config.notify.token_env)
    event = load_event_or_exit(event_path, pull_request, repo, github_secret)

    decision = evaluate_trigger(event, config.trigger)
    try:
        decision.raise_if_rejected()
    except GateRejected as e:
        logger.info(f"[yellow]{escape(str(e))}[/yellow]")
        raise typer.Exit(1)

    logger.info(f"[green]Release would run:[/green] {escape(decision.reason)}")


@app.command()
def print_tree(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help=CONFIG_HELP
    ),
) -> None:
    """Print the release behaviour tree."""
    setup_logging()
    config = load_config_or_exit(config_file)
    with initialize_tree_and_state(config, RunArgs(), print_summary=False) as (
        tree,
        _,
    ):
        print(unicode_tree(tree.root))


if __name__ == "__main__":
    app()
