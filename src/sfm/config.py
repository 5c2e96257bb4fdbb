"""
Configuration for sfm.

Settings come from command line flags first, then environment variables,
then an optional YAML file (`$SFM_CONFIG` or `~/.sfm.yaml`), then defaults.
"""

import os
import platform
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import boto3
import yaml
from botocore.config import Config

from .errors import ConfigError

CONFIG_ENV = "SFM_CONFIG"
DEFAULT_CONFIG_FILE = Path.home() / ".sfm.yaml"


@dataclass
class SfmConfig:
    """Resolved settings for one invocation."""

    region: Optional[str] = None
    profile: Optional[str] = None
    debug: bool = False
    color: bool = True

    # Polling
    poll_interval: float = 2.0
    max_iterations: int = 30 * 60

    # Client retries, handled by botocore
    max_attempts: int = 10

    capabilities: List[str] = field(
        default_factory=lambda: ["CAPABILITY_NAMED_IAM", "CAPABILITY_AUTO_EXPAND"]
    )

    def client_config(self) -> Config:
        """botocore config with the retry policy."""
        return Config(retries={"max_attempts": self.max_attempts, "mode": "standard"})

    def create_session(self) -> boto3.Session:
        """Create a boto3 session for the configured region and profile."""
        if not self.region:
            raise ConfigError("no region set - as flag or envar")
        session_args = {"region_name": self.region}
        if self.profile:
            session_args["profile_name"] = self.profile
        return boto3.Session(**session_args)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SfmConfig":
        """Create config from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(unknown)}")
        return cls(**data)


def load_config_file(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load settings from a YAML file.

    An explicit path must exist; the default location is optional.
    """
    explicit = path or os.environ.get(CONFIG_ENV)
    config_file = Path(explicit) if explicit else DEFAULT_CONFIG_FILE
    if not config_file.exists():
        if explicit:
            raise ConfigError(f"config file not found: {config_file}")
        return {}

    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cant load config file {config_file}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {config_file} must hold a mapping")
    return data


def env_flag(name: str) -> bool:
    """Check if an environment variable is set to a non-empty value."""
    return bool(os.environ.get(name))


def color_supported() -> bool:
    """Check if the platform and environment allow ANSI colors."""
    return platform.system() != "Windows" and not env_flag("NO_COLOR")


def resolve_config(
    region: Optional[str] = None,
    profile: Optional[str] = None,
    debug: bool = False,
    color: Optional[bool] = None,
    config_file: Optional[Union[str, Path]] = None,
) -> SfmConfig:
    """Resolve settings from flags, environment, config file and defaults."""
    data = load_config_file(config_file)
    config = SfmConfig.from_dict(data)

    config.region = (
        region
        or os.environ.get("AWS_REGION")
        or os.environ.get("AWS_DEFAULT_REGION")
        or config.region
    )
    config.profile = profile or os.environ.get("AWS_PROFILE") or config.profile
    config.debug = debug or env_flag("DEBUG") or config.debug

    if color is not None:
        config.color = color
    else:
        config.color = config.color and color_supported()

    return config
