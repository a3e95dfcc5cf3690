import asyncio
import logging
import os
from pathlib import Path
from typing import Optional, Tuple, Union

import aiohttp
import yaml
from pydantic import SecretStr, ValidationError
from typer import BadParameter, Exit

from .config import Config, load_config
from .github_client_async import GitHubClientAsync
from .logging_config import register_secret
from .models import ReleaseEvent

logger = logging.getLogger(__name__)

USAGE_EXIT_CODE = 2


def parse_repo(repo: str) -> Tuple[str, str]:
    """Parse a repository given as 'owner/name'.

    Raises:
        BadParameter: If the format is invalid
    """
    owner, _, name = repo.partition("/")
    if not owner or not name or "/" in name:
        raise BadParameter(
            f"Invalid repository '{repo}'. Expected 'owner/name' (e.g., 'polywrap/rust-msgpack-serde')"
        )
    return owner, name


def load_config_or_exit(config_file: Optional[Union[str, Path]]) -> Config:
    try:
        return load_config(config_file)
    except FileNotFoundError as e:
        logger.error(f"[red]{e}[/red]")
    except (yaml.YAMLError, ValidationError, TypeError) as e:
        logger.error(f"[red]Invalid config {config_file or ''}:[/red] {e}")
    raise Exit(USAGE_EXIT_CODE)


def read_secret(value: Optional[str], env_var: str) -> Optional[SecretStr]:
    """Take a secret from the command line or the environment.

    The raw value is registered for log masking before it is wrapped.
    """
    raw = value or os.getenv(env_var)
    if not raw:
        return None
    register_secret(raw)
    return SecretStr(raw)


def load_event_or_exit(
    event_path: Optional[Path],
    pull_request: Optional[int],
    repo: Optional[str],
    github_token: Optional[SecretStr],
) -> ReleaseEvent:
    """Load the release event from a payload file or from the GitHub API.

    Precedence: --pull-request (fetched from the API), --event, then
    GITHUB_EVENT_PATH. --repo overrides the event's repository.
    """
    owner_name = parse_repo(repo) if repo else None

    try:
        if pull_request is not None:
            if owner_name is None:
                raise BadParameter("--repo is required with --pull-request")
            client = GitHubClientAsync(
                token=github_token.get_secret_value() if github_token else ""
            )
            data = asyncio.run(client.get_pull_request(repo or "", pull_request))
            event = ReleaseEvent.from_pull_request(data)
        else:
            path = event_path or os.getenv("GITHUB_EVENT_PATH")
            if not path:
                raise BadParameter(
                    "No event given: use --event, --pull-request or set GITHUB_EVENT_PATH"
                )
            event = ReleaseEvent.from_file(path)
    except (FileNotFoundError, ValueError, aiohttp.ClientError) as e:
        # BadParameter is not a ValueError, it reaches typer untouched
        logger.error(f"[red]Failed to load event:[/red] {e}")
        raise Exit(USAGE_EXIT_CODE)

    if owner_name is not None:
        event.owner, event.repo = owner_name
    return event
