"""Arguments for a release run."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, SecretStr

from ..models import ReleaseEvent


class RunArgs(BaseModel):
    """Arguments for release execution.

    Tokens are read once at process start and only unwrapped where they are
    handed to the publish command or the GitHub client.
    """

    event: ReleaseEvent = Field(default_factory=ReleaseEvent)
    workdir: Optional[Path] = None
    dry_run: bool = False
    publish_token: Optional[SecretStr] = None
    github_token: Optional[SecretStr] = None
