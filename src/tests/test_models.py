"""Tests for release event parsing and run outcome models."""

import json
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

from crate_release.errors import (
    BuildFailed,
    DocFailed,
    NotifyFailed,
    PublishFailed,
    ReleaseError,
)
from crate_release.models import OutcomeStatus, ReleaseEvent, RunOutcome, StepName

PayloadFactory = Callable[..., Dict[str, Any]]


class TestReleaseEventFromPayload:
    def test_reads_all_fields(self, payload_factory: PayloadFactory) -> None:
        event = ReleaseEvent.from_github_payload(payload_factory())

        assert event.merged is True
        assert event.title == "Release 1.2.0 /workflows/publish"
        assert event.base_ref == "main"
        assert event.number == 42
        assert event.owner == "polywrap"
        assert event.repo == "rust-msgpack-serde"
        assert event.repository == "polywrap/rust-msgpack-serde"

    def test_empty_payload_gives_empty_event(self) -> None:
        event = ReleaseEvent.from_github_payload({})

        assert event == ReleaseEvent()
        assert event.repository is None

    @pytest.mark.parametrize("merged", ["true", 1, None, [True]])
    def test_malformed_merged_flag_is_dropped(
        self, payload_factory: PayloadFactory, merged: Any
    ) -> None:
        event = ReleaseEvent.from_github_payload(payload_factory(merged=merged))

        assert event.merged is None

    def test_non_string_title_is_dropped(self, payload_factory: PayloadFactory) -> None:
        event = ReleaseEvent.from_github_payload(payload_factory(title=123))

        assert event.title is None

    def test_boolean_number_is_dropped(self, payload_factory: PayloadFactory) -> None:
        event = ReleaseEvent.from_github_payload(payload_factory(number=True))

        assert event.number is None

    def test_number_falls_back_to_payload_number(
        self, payload_factory: PayloadFactory
    ) -> None:
        payload = payload_factory(number=7)
        del payload["pull_request"]["number"]

        event = ReleaseEvent.from_github_payload(payload)

        assert event.number == 7

    def test_pull_request_not_an_object(self) -> None:
        event = ReleaseEvent.from_github_payload({"pull_request": "oops", "number": 3})

        assert event.merged is None
        assert event.title is None
        assert event.number == 3


class TestReleaseEventFromPullRequest:
    def test_repository_taken_from_base_repo(self) -> None:
        pull_request = {
            "number": 9,
            "merged": True,
            "title": "Release /workflows/publish",
            "base": {
                "ref": "main",
                "repo": {"name": "rust-msgpack-serde", "owner": {"login": "polywrap"}},
            },
        }

        event = ReleaseEvent.from_pull_request(pull_request)

        assert event.repository == "polywrap/rust-msgpack-serde"
        assert event.number == 9
        assert event.base_ref == "main"


class TestReleaseEventFromFile:
    def test_from_file(self, tmp_path: Path, payload_factory: PayloadFactory) -> None:
        path = tmp_path / "event.json"
        path.write_text(json.dumps(payload_factory(merged=False)))

        event = ReleaseEvent.from_file(path)

        assert event.merged is False
        assert event.number == 42

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Event file not found"):
            ReleaseEvent.from_file(tmp_path / "missing.json")

    def test_payload_must_be_object(self, tmp_path: Path) -> None:
        path = tmp_path / "event.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(ValueError, match="must be a JSON object"):
            ReleaseEvent.from_file(path)

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "event.json"
        path.write_text("{not json")

        with pytest.raises(ValueError):
            ReleaseEvent.from_file(path)


class TestRunOutcome:
    @pytest.mark.parametrize(
        "step, error_class",
        [
            (StepName.BUILD, BuildFailed),
            (StepName.DOC, DocFailed),
            (StepName.PUBLISH, PublishFailed),
            (StepName.NOTIFY, NotifyFailed),
        ],
    )
    def test_raise_for_status_maps_step_to_error(
        self, step: StepName, error_class: type
    ) -> None:
        outcome = RunOutcome(
            status=OutcomeStatus.FAILED,
            failed_step=step,
            exit_code=101,
            message="exited with code 101",
        )

        with pytest.raises(error_class) as exc:
            outcome.raise_for_status()
        assert exc.value.exit_code == 101
        assert exc.value.step == step.value

    def test_failure_without_step_raises_base_error(self) -> None:
        outcome = RunOutcome(status=OutcomeStatus.FAILED, exit_code=1)

        with pytest.raises(ReleaseError) as exc:
            outcome.raise_for_status()
        assert type(exc.value) is ReleaseError

    @pytest.mark.parametrize(
        "status", [OutcomeStatus.PUBLISHED, OutcomeStatus.SKIPPED]
    )
    def test_successful_outcomes_do_not_raise(self, status: OutcomeStatus) -> None:
        RunOutcome(status=status).raise_for_status()

    def test_zero_exit_code_is_never_propagated_for_failure(self) -> None:
        outcome = RunOutcome(
            status=OutcomeStatus.FAILED, failed_step=StepName.NOTIFY, exit_code=0
        )

        with pytest.raises(NotifyFailed) as exc:
            outcome.raise_for_status()
        assert exc.value.exit_code == 1
