"""Tests for the release trigger gate."""

import pytest

from crate_release.config import TriggerConfig
from crate_release.errors import GateRejected
from crate_release.models import ReleaseEvent
from crate_release.trigger import evaluate_trigger


class TestEvaluateTrigger:
    def test_merged_release_title_proceeds(self) -> None:
        event = ReleaseEvent(merged=True, title="Release 1.2.0 /workflows/publish")

        decision = evaluate_trigger(event, TriggerConfig())

        assert decision.proceed is True

    def test_suffix_must_be_exact(self) -> None:
        event = ReleaseEvent(
            merged=True, title="Release 1.2.0 /workflows/publish-extra"
        )

        decision = evaluate_trigger(event, TriggerConfig())

        assert decision.proceed is False
        assert "/workflows/publish" in decision.reason

    @pytest.mark.parametrize(
        "title",
        [
            "Release 1.2.0 /workflows/publish",
            "/workflows/publish",
            "Release 1.2.0",
        ],
    )
    def test_unmerged_never_proceeds(self, title: str) -> None:
        event = ReleaseEvent(merged=False, title=title)

        assert evaluate_trigger(event, TriggerConfig()).proceed is False

    @pytest.mark.parametrize(
        "title",
        [
            "Release 1.2.0 /Workflows/Publish",
            "Release 1.2.0 /workflows/publish ",
            "Release 1.2.0 /workflows/publish\n",
            "/workflows/publish Release 1.2.0",
            "",
        ],
    )
    def test_suffix_is_case_sensitive_and_not_trimmed(self, title: str) -> None:
        event = ReleaseEvent(merged=True, title=title)

        assert evaluate_trigger(event, TriggerConfig()).proceed is False

    def test_missing_merged_flag_does_not_proceed(self) -> None:
        event = ReleaseEvent(title="Release 1.2.0 /workflows/publish")

        decision = evaluate_trigger(event, TriggerConfig())

        assert decision.proceed is False
        assert decision.reason == "event has no merged flag"

    def test_missing_title_does_not_proceed(self) -> None:
        event = ReleaseEvent(merged=True)

        decision = evaluate_trigger(event, TriggerConfig())

        assert decision.proceed is False
        assert decision.reason == "event has no title"

    def test_custom_suffix(self) -> None:
        event = ReleaseEvent(merged=True, title="chore: release [publish]")

        decision = evaluate_trigger(event, TriggerConfig(title_suffix="[publish]"))

        assert decision.proceed is True


class TestBaseBranches:
    def test_no_base_branches_accepts_any_ref(self) -> None:
        event = ReleaseEvent(
            merged=True, title="x /workflows/publish", base_ref="feature"
        )

        assert evaluate_trigger(event, TriggerConfig()).proceed is True

    def test_listed_base_branch_proceeds(self) -> None:
        event = ReleaseEvent(merged=True, title="x /workflows/publish", base_ref="main")
        trigger = TriggerConfig(base_branches=["main"])

        assert evaluate_trigger(event, trigger).proceed is True

    def test_unlisted_base_branch_does_not_proceed(self) -> None:
        event = ReleaseEvent(merged=True, title="x /workflows/publish", base_ref="dev")
        trigger = TriggerConfig(base_branches=["main"])

        decision = evaluate_trigger(event, trigger)

        assert decision.proceed is False
        assert "dev" in decision.reason

    def test_event_without_base_ref_is_not_filtered(self) -> None:
        event = ReleaseEvent(merged=True, title="x /workflows/publish")
        trigger = TriggerConfig(base_branches=["main"])

        assert evaluate_trigger(event, trigger).proceed is True


class TestGateDecision:
    def test_raise_if_rejected(self) -> None:
        decision = evaluate_trigger(ReleaseEvent(merged=False), TriggerConfig())

        with pytest.raises(GateRejected, match="pull request was not merged") as exc:
            decision.raise_if_rejected()
        assert exc.value.exit_code == 0

    def test_accepted_decision_does_not_raise(self) -> None:
        event = ReleaseEvent(merged=True, title="Release /workflows/publish")

        evaluate_trigger(event, TriggerConfig()).raise_if_rejected()
