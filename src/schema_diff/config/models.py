"""Pydantic models for connection profiles and comparison options."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class ConnectionProfile(BaseModel):
    """Database connection profile from schema-diff.toml."""

    url: str
    provider: str = "postgres"  # postgres, mysql or mariadb
    database: str | None = None  # Default database (schema for postgres)
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    excluded_tables: list[str] = []  # Tables left out of every comparison


class CompareOptions(BaseModel):
    """Knobs for one comparison run.

    Index and foreign-key differences are always computed for display.
    They only become part of the generated SQL when the matching
    ``include_*_changes`` flag is on.

    Example:
        >>> CompareOptions().include_index_changes
        False
    """

    include_index_changes: bool = False
    include_foreign_key_changes: bool = False
    include_views: bool = True
    include_identical: bool = False
    quote_identifiers: bool = False
    case_sensitive: bool | None = None  # None -> engine default
    max_concurrency: int = Field(default=4, ge=1)


class AppConfig(BaseModel):
    """Complete configuration from schema-diff.toml."""

    profiles: dict[str, ConnectionProfile]
    compare: CompareOptions = Field(default_factory=CompareOptions)
