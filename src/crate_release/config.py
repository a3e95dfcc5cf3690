"""Configuration management for crate release automation."""

import logging
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "release.yaml"


class TriggerConfig(BaseModel):
    """Condition a closed pull request must meet to start a release."""

    title_suffix: str = "/workflows/publish"
    base_branches: List[str] = Field(default_factory=list)


class CommandConfig(BaseModel):
    """An external command run by a release step."""

    command: List[str]
    timeout_minutes: Optional[float] = Field(default=None, gt=0)

    @property
    def timeout_seconds(self) -> Optional[float]:
        if self.timeout_minutes is None:
            return None
        return self.timeout_minutes * 60


class PublishConfig(CommandConfig):
    """Registry publish command.

    ``{token}`` in the command is replaced with the publish credential and
    ``{package}`` in package_args with each entry of packages.
    """

    command: List[str] = Field(
        default_factory=lambda: ["cargo", "publish", "--token", "{token}"]
    )
    token_env: str = "CRATES_IO_TOKEN"
    packages: List[str] = Field(default_factory=list)
    package_args: List[str] = Field(
        default_factory=lambda: ["--package", "{package}"]
    )


class NotifyConfig(BaseModel):
    """Pull request comment posted after a successful publish."""

    token_env: str = "GITHUB_TOKEN"
    api_url: str = "https://api.github.com"
    body: str = "**[Crates.io Release Published]({versions_url})** 🎉"


class RegistryConfig(BaseModel):
    crate: str = "polywrap_msgpack_serde"
    versions_url: str = "https://crates.io/crates/{crate}/versions"

    @property
    def crate_versions_url(self) -> str:
        return self.versions_url.format(crate=self.crate)


class Config(BaseModel):
    """Root configuration model."""

    version: int = 1
    trigger: TriggerConfig = Field(default_factory=TriggerConfig)
    build: CommandConfig = Field(
        default_factory=lambda: CommandConfig(command=["cargo", "build", "--release"])
    )
    doc: CommandConfig = Field(
        default_factory=lambda: CommandConfig(command=["cargo", "doc", "--no-deps"])
    )
    publish: PublishConfig = Field(default_factory=PublishConfig)
    notify: NotifyConfig = Field(default_factory=NotifyConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)

    def comment_body(self) -> str:
        return self.notify.body.format(
            versions_url=self.registry.crate_versions_url,
            crate=self.registry.crate,
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r") as f:
            data = yaml.safe_load(f)

        # An empty file means "all defaults"
        return cls(**(data or {}))


def load_config(path: Optional[Union[str, Path]] = None) -> Config:
    """Load configuration from YAML file.

    Args:
        path: Path to config file. When None, release.yaml in the current
            directory is used if present, otherwise built-in defaults.

    Returns:
        Loaded configuration object
    """
    if path is None:
        if not Path(DEFAULT_CONFIG_PATH).exists():
            logger.debug(f"No {DEFAULT_CONFIG_PATH} found, using default config")
            return Config()
        path = DEFAULT_CONFIG_PATH
    return Config.from_yaml(path)
