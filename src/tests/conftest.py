"""Shared fixtures for crate release tests."""

from typing import Any, Callable, Dict, Iterator, Optional

import pytest

from crate_release.logging_config import clear_secrets


def make_payload(
    merged: Any = True,
    title: Any = "Release 1.2.0 /workflows/publish",
    base_ref: Any = "main",
    number: Any = 42,
    owner: Any = "polywrap",
    repo: Any = "rust-msgpack-serde",
) -> Dict[str, Any]:
    """A pull_request closed webhook payload, trimmed to the fields we read."""
    return {
        "action": "closed",
        "number": number,
        "pull_request": {
            "number": number,
            "merged": merged,
            "title": title,
            "base": {"ref": base_ref},
        },
        "repository": {"name": repo, "owner": {"login": owner}},
    }


@pytest.fixture
def payload_factory() -> Callable[..., Dict[str, Any]]:
    return make_payload


@pytest.fixture(autouse=True)
def reset_secrets() -> Iterator[None]:
    clear_secrets()
    yield
    clear_secrets()
