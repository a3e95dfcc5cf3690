import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Set, Tuple

from py_trees.behaviour import Behaviour
from py_trees.common import Status
from py_trees.composites import Selector, Sequence
from py_trees.decorators import Inverter
from py_trees.display import unicode_tree
from py_trees.trees import BehaviourTree
from py_trees.visitors import SnapshotVisitor
from rich.text import Text

from ..command_runner import CommandRunner
from ..config import Config
from ..github_client_async import GitHubClientAsync
from ..models import RunOutcome, StepName
from ..state_display import print_state_table
from .args import RunArgs
from .composites import (
    EvaluateTriggerGuarded,
    PostCommentGuarded,
    PublishPackagesGuarded,
    RunCommandGuarded,
)
from .state import RunState

logger = logging.getLogger(__name__)


async def async_tick_tock(tree: BehaviourTree, cutoff: int = 100) -> None:
    """Drive the behaviour tree with the asyncio event loop.

    The tree is ticked once, then again each time one of the pending step
    tasks completes, until no task is pending and the root is no longer
    RUNNING. When the cutoff is hit the pending tasks are cancelled, which
    kills any command still running.
    """
    while True:
        tree.tick()
        pending = asyncio.all_tasks() - {asyncio.current_task()}

        if tree.count > cutoff:
            logger.error(f"The Tree has not converged, hit cutoff limit {cutoff}")
            await _cancel_tasks(pending)
            break

        if pending:
            _debug_log_active_tasks(pending)
            await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            continue

        if tree.root.status != Status.RUNNING:
            color = "green" if tree.root.status == Status.SUCCESS else "red"
            logger.info(
                f"[bold][white]The Tree has converged to [/white][{color}]{tree.root.status}[/{color}][/bold]"
            )
            break


async def _cancel_tasks(tasks: Set["asyncio.Task[Any]"]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


def _debug_log_active_tasks(tasks: Set["asyncio.Task[Any]"]) -> None:
    for task in tasks:
        coro_name = getattr(task.get_coro(), "__name__", task.get_coro())
        logger.debug(f"Active task: {task.get_name()} - {coro_name}")


def create_github_client(config: Config, args: RunArgs) -> Optional[GitHubClientAsync]:
    """GitHub client for the notify step, None when no token is available."""
    token = args.github_token.get_secret_value() if args.github_token else ""
    if not token and not args.dry_run:
        return None
    return GitHubClientAsync(
        token=token, api_url=config.notify.api_url, dry_run=args.dry_run
    )


@contextmanager
def initialize_tree_and_state(
    config: Config,
    args: RunArgs,
    runner: Optional[CommandRunner] = None,
    github_client: Optional[GitHubClientAsync] = None,
    print_summary: bool = True,
) -> Iterator[Tuple[BehaviourTree, RunState]]:
    if runner is None:
        runner = CommandRunner(dry_run=args.dry_run)
    if github_client is None:
        github_client = create_github_client(config, args)

    state = RunState(event=args.event, dry_run=args.dry_run)
    root = create_root_node(state, config, args, runner, github_client)
    tree = BehaviourTree(root)

    snapshot_visitor = SnapshotVisitor()
    tree.visitors.append(snapshot_visitor)
    tree.add_post_tick_handler(log_tree_state_with_markup)

    yield (tree, state)
    if print_summary:
        print_state_table(state)


def run_release(
    config: Config,
    args: RunArgs,
    runner: Optional[CommandRunner] = None,
    github_client: Optional[GitHubClientAsync] = None,
    cutoff: int = 5000,
) -> RunOutcome:
    """Evaluate the trigger and run the release to completion or first failure."""
    with initialize_tree_and_state(config, args, runner, github_client) as (
        tree,
        state,
    ):
        asyncio.run(async_tick_tock(tree, cutoff=cutoff))
    return state.outcome()


def log_tree_state_with_markup(tree: BehaviourTree) -> None:
    snapshot_visitor = None
    for visitor in tree.visitors:
        if isinstance(visitor, SnapshotVisitor):
            snapshot_visitor = visitor
            break

    visited = snapshot_visitor.visited if snapshot_visitor else {}
    previously_visited = snapshot_visitor.previously_visited if snapshot_visitor else {}

    rich_markup = Text.from_ansi(
        unicode_tree(
            tree.root,
            show_status=True,
            show_only_visited=True,
            visited=visited,
            previously_visited=previously_visited,
        )
    ).markup
    logger.debug(f"\n{rich_markup}")


def create_root_node(
    state: RunState,
    config: Config,
    args: RunArgs,
    runner: CommandRunner,
    github_client: Optional[GitHubClientAsync],
) -> Behaviour:
    """Release tree: a no-op unless the trigger matches, then the steps in order.

    Crate Release (Selector)
      Not -> Release Requested?   succeeds (no-op) when the trigger rejects
      Release Runner (Sequence)   Build, Document, Publish, Notify
    """
    not_requested = Inverter(
        "Not",
        EvaluateTriggerGuarded("", state, config.trigger, log_prefix="trigger"),
    )
    release_runner = create_runner_branch(state, config, args, runner, github_client)
    return Selector(
        "Crate Release",
        memory=False,
        children=[not_requested, release_runner],
    )


def create_runner_branch(
    state: RunState,
    config: Config,
    args: RunArgs,
    runner: CommandRunner,
    github_client: Optional[GitHubClientAsync],
) -> Sequence:
    build = RunCommandGuarded(
        "Build",
        state.step(StepName.BUILD),
        config.build,
        runner,
        args.workdir,
        log_prefix=StepName.BUILD.value,
    )
    document = RunCommandGuarded(
        "Document",
        state.step(StepName.DOC),
        config.doc,
        runner,
        args.workdir,
        log_prefix=StepName.DOC.value,
    )
    publish = PublishPackagesGuarded(
        "Publish",
        state.step(StepName.PUBLISH),
        config.publish,
        runner,
        args.publish_token,
        args.workdir,
        dry_run=args.dry_run,
        log_prefix=StepName.PUBLISH.value,
    )
    notify = PostCommentGuarded(
        "Notify",
        state.step(StepName.NOTIFY),
        state.event,
        config.comment_body(),
        github_client,
        log_prefix=StepName.NOTIFY.value,
    )
    return Sequence(
        "Release Runner",
        memory=True,
        children=[build, document, publish, notify],
    )
