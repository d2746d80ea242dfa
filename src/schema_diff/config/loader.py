"""Configuration loading for schema-diff."""

import os
import tomllib
from pathlib import Path

from schema_diff.config.models import AppConfig, CompareOptions, ConnectionProfile

DEFAULT_CONFIG_NAME = "schema-diff.toml"


def default_config_path() -> Path:
    """``$SCHEMA_DIFF_CONFIG`` if set, else ``./schema-diff.toml``."""
    env_path = os.environ.get("SCHEMA_DIFF_CONFIG")
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_NAME


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load profiles and compare options from a TOML file.

    Args:
        config_path: Path to the config file (default: ``default_config_path()``)

    Returns:
        AppConfig with all profiles and compare options

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = default_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config not found: {config_path}\n"
            f"Create {DEFAULT_CONFIG_NAME} with one [profiles.<name>] table per connection."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Parse profiles
    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = ConnectionProfile(**profile_data)

    return AppConfig(
        profiles=profiles,
        compare=CompareOptions(**data.get("compare", {})),
    )


def get_profile(config: AppConfig, name: str) -> ConnectionProfile:
    """Return profile *name*.

    Raises:
        KeyError: If the profile is not configured.
    """
    if name not in config.profiles:
        raise KeyError(
            f"Profile '{name}' not found.\n"
            f"Available profiles: {', '.join(config.profiles.keys()) or '(none)'}"
        )
    return config.profiles[name]
