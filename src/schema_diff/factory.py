"""Introspector and executor factory.

Builds engine-specific collaborators from ``schema-diff.toml`` profiles.

Usage:
    from schema_diff.config import load_config, get_profile
    from schema_diff.factory import get_introspector, get_executor

    profile = get_profile(load_config(), "dev")
    async with get_introspector(profile) as introspector:
        tables = await introspector.list_tables(profile.database)
"""

from urllib.parse import quote, urlsplit, urlunsplit

from schema_diff.adapters.engine import AsyncSqlExecutor
from schema_diff.config.models import ConnectionProfile
from schema_diff.schema.introspector import PostgresIntrospector, SchemaIntrospector
from schema_diff.schema.models import Engine
from schema_diff.schema.mysql import MySQLIntrospector


def resolve_url(profile: ConnectionProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Connection profile from config

    Returns:
        Connection URL with ``[YOUR-PASSWORD]`` replaced by the URL-quoted
        ``db_password``

    Example:
        >>> p = ConnectionProfile(url="mysql://root:[YOUR-PASSWORD]@h/db", db_password="p@ss")
        >>> resolve_url(p)
        'mysql://root:p%40ss@h/db'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def profile_engine(profile: ConnectionProfile) -> Engine:
    """Engine for a profile's ``provider``."""
    return Engine.from_provider(profile.provider)


def get_introspector(
    profile: ConnectionProfile,
    connect_timeout: int = 10,
) -> SchemaIntrospector:
    """Create an (unopened) introspector for *profile*.

    Use the result as an async context manager to connect.

    Raises:
        ValueError: If the profile's provider is not supported.
    """
    url = resolve_url(profile)
    engine = profile_engine(profile)
    if engine is Engine.POSTGRES:
        return PostgresIntrospector(
            url, excluded_tables=profile.excluded_tables, connect_timeout=connect_timeout
        )
    return MySQLIntrospector(
        url, excluded_tables=profile.excluded_tables, connect_timeout=connect_timeout
    )


def get_executor(profile: ConnectionProfile, database: str | None = None) -> AsyncSqlExecutor:
    """Create a SQL executor for *profile* bound to *database*.

    Created-table DDL is unqualified, so the executor's session must
    default to the target database: for MySQL the URL path is replaced,
    for PostgreSQL the schema becomes the ``search_path``.

    Args:
        profile: Connection profile from config
        database: Target database (schema for PostgreSQL); defaults to
            ``profile.database``
    """
    url = resolve_url(profile)
    database = database or profile.database
    if not database:
        return AsyncSqlExecutor(url)

    if profile_engine(profile) is Engine.MYSQL:
        parts = urlsplit(url)
        return AsyncSqlExecutor(urlunsplit(parts._replace(path=f"/{database}")))

    return AsyncSqlExecutor(
        url,
        connect_args={"timeout": 5, "server_settings": {"search_path": database}},
    )
