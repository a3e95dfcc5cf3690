"""Trigger gate: decides whether a closed pull request requests a release."""

from .config import TriggerConfig
from .models import GateDecision, ReleaseEvent


def evaluate_trigger(event: ReleaseEvent, trigger: TriggerConfig) -> GateDecision:
    """Evaluate the release gate for an event.

    Proceeds only if the pull request was merged and its title ends with the
    configured suffix (exact, case-sensitive match). When base branches are
    configured and the event carries a base ref, the ref must be listed.

    Args:
        event: The closed pull request event
        trigger: Trigger configuration

    Returns:
        GateDecision with the reason for the decision
    """
    if event.merged is None:
        return GateDecision(proceed=False, reason="event has no merged flag")
    if event.merged is not True:
        return GateDecision(proceed=False, reason="pull request was not merged")
    if event.title is None:
        return GateDecision(proceed=False, reason="event has no title")
    if not event.title.endswith(trigger.title_suffix):
        return GateDecision(
            proceed=False,
            reason=f"title does not end with '{trigger.title_suffix}'",
        )
    if (
        trigger.base_branches
        and event.base_ref is not None
        and event.base_ref not in trigger.base_branches
    ):
        return GateDecision(
            proceed=False,
            reason=f"base branch '{event.base_ref}' is not a release branch",
        )

    return GateDecision(proceed=True, reason="merged release pull request")
