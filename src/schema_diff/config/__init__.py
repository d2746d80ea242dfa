"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from schema_diff.config import load_config, ConnectionProfile, CompareOptions
"""

from schema_diff.config.loader import get_profile, load_config
from schema_diff.config.models import AppConfig, CompareOptions, ConnectionProfile

__all__ = ["load_config", "get_profile", "AppConfig", "CompareOptions", "ConnectionProfile"]
