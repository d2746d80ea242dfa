"""MySQL / MariaDB schema introspection via information_schema.

Uses an aiomysql connection pool.  Table DDL comes from
``SHOW CREATE TABLE`` and is used verbatim when a table has to be created.
"""

import logging
import re
from collections.abc import Iterable
from urllib.parse import unquote, urlparse

import aiomysql

from schema_diff.schema.models import (
    ColumnDescriptor,
    ColumnKey,
    Engine,
    ForeignKeyDescriptor,
    IndexDescriptor,
)

logger = logging.getLogger(__name__)

SYSTEM_DATABASES = {"information_schema", "mysql", "performance_schema", "sys"}

# Defaults that are expressions, not literals, and must stay unquoted
_EXPRESSION_DEFAULT = re.compile(
    r"^(NULL|CURRENT_TIMESTAMP(\(\d*\))?|NOW\(\)|b'[01]*'|-?\d+(\.\d+)?)$",
    re.IGNORECASE,
)


def quote_default(default: str | None, extra: str = "") -> str | None:
    """Render an ``information_schema.COLUMNS.COLUMN_DEFAULT`` value as SQL.

    MySQL reports literal string defaults without quotes; they are quoted
    here so ``DEFAULT <v>`` is valid SQL.  Numbers, ``CURRENT_TIMESTAMP``
    and expression defaults (``DEFAULT_GENERATED``) are kept as-is.

    Examples:
        >>> quote_default("active")
        "'active'"
        >>> quote_default("0"), quote_default("CURRENT_TIMESTAMP")
        ('0', 'CURRENT_TIMESTAMP')
        >>> quote_default(None) is None
        True
    """
    if default is None:
        return None
    if "DEFAULT_GENERATED" in extra.upper() or _EXPRESSION_DEFAULT.match(default):
        return default
    if default.startswith("'") and default.endswith("'") and len(default) >= 2:
        return default  # MariaDB already quotes literals
    return "'" + default.replace("'", "''") + "'"


def _clean_extra(extra: str | None) -> str:
    # DEFAULT_GENERATED is metadata, not valid column syntax
    return re.sub(r"\bDEFAULT_GENERATED\b", "", extra or "", flags=re.IGNORECASE).strip()


class MySQLIntrospector:
    """Introspects MySQL / MariaDB databases.

    Usage:
        async with MySQLIntrospector("mysql://root:pw@localhost:3306") as introspector:
            databases = await introspector.list_databases()
            columns = await introspector.get_table_columns("shop", "users")
    """

    engine = Engine.MYSQL

    def __init__(
        self,
        database_url: str,
        excluded_tables: Iterable[str] | None = None,
        connect_timeout: int = 10,
        pool_size: int = 5,
    ):
        parsed = urlparse(database_url)
        self._host = parsed.hostname or "localhost"
        self._port = parsed.port or 3306
        self._user = unquote(parsed.username or "")
        self._password = unquote(parsed.password or "")
        self._db_name = parsed.path.lstrip("/") or None
        self._excluded_tables = set(excluded_tables or ())
        self._connect_timeout = connect_timeout
        self._pool_size = pool_size
        self._pool: aiomysql.Pool | None = None

    async def __aenter__(self) -> "MySQLIntrospector":
        """Async context manager entry - creates the connection pool."""
        kwargs = dict(
            host=self._host,
            port=self._port,
            user=self._user,
            password=self._password,
            autocommit=True,
            connect_timeout=self._connect_timeout,
            maxsize=self._pool_size,
        )
        if self._db_name:
            kwargs["db"] = self._db_name
        self._pool = await aiomysql.create_pool(**kwargs)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - closes the pool."""
        if self._pool is not None:
            self._pool.close()
            await self._pool.wait_closed()
            self._pool = None

    async def _fetchall(self, query: str, params: tuple | None = None) -> list[tuple]:
        if self._pool is None:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        async with self._pool.acquire() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return list(await cur.fetchall())

    # ------------------------------------------------------------------
    # Object lists
    # ------------------------------------------------------------------

    async def list_databases(self) -> list[str]:
        """List non-system databases."""
        rows = await self._fetchall(
            "SELECT SCHEMA_NAME FROM information_schema.SCHEMATA ORDER BY SCHEMA_NAME"
        )
        return [row[0] for row in rows if row[0].lower() not in SYSTEM_DATABASES]

    async def list_tables(self, database: str) -> list[str]:
        query = """
            SELECT TABLE_NAME
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = %s
              AND TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_NAME
        """
        rows = await self._fetchall(query, (database,))
        return [row[0] for row in rows if row[0] not in self._excluded_tables]

    async def list_views(self, database: str) -> list[str]:
        query = """
            SELECT TABLE_NAME
            FROM information_schema.VIEWS
            WHERE TABLE_SCHEMA = %s
            ORDER BY TABLE_NAME
        """
        rows = await self._fetchall(query, (database,))
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Table metadata
    # ------------------------------------------------------------------

    async def get_table_columns(self, database: str, table: str) -> list[ColumnDescriptor]:
        query = """
            SELECT COLUMN_NAME, COLUMN_TYPE, IS_NULLABLE, COLUMN_DEFAULT, EXTRA, COLUMN_KEY
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = %s
              AND TABLE_NAME = %s
            ORDER BY ORDINAL_POSITION
        """
        rows = await self._fetchall(query, (database, table))
        return [
            ColumnDescriptor(
                name=name,
                column_type=column_type,
                is_nullable=(is_nullable == "YES"),
                default_value=quote_default(default, extra or ""),
                extra=_clean_extra(extra),
                column_key=ColumnKey.from_mysql(key),
            )
            for name, column_type, is_nullable, default, extra, key in rows
        ]

    async def get_table_indexes(self, database: str, table: str) -> list[IndexDescriptor]:
        """Get secondary indexes; multi-column indexes are aggregated."""
        query = """
            SELECT INDEX_NAME, COLUMN_NAME, NON_UNIQUE, INDEX_TYPE
            FROM information_schema.STATISTICS
            WHERE TABLE_SCHEMA = %s
              AND TABLE_NAME = %s
              AND INDEX_NAME <> 'PRIMARY'
            ORDER BY INDEX_NAME, SEQ_IN_INDEX
        """
        rows = await self._fetchall(query, (database, table))

        grouped: dict[str, dict] = {}
        for name, column, non_unique, index_type in rows:
            entry = grouped.setdefault(
                name,
                {"columns": [], "unique": int(non_unique) == 0, "index_type": index_type.lower()},
            )
            entry["columns"].append(column)

        return [
            IndexDescriptor(
                name=name,
                columns=tuple(entry["columns"]),
                unique=entry["unique"],
                index_type=entry["index_type"],
            )
            for name, entry in grouped.items()
        ]

    async def get_table_foreign_keys(
        self, database: str, table: str
    ) -> list[ForeignKeyDescriptor]:
        query = """
            SELECT
                kcu.CONSTRAINT_NAME,
                kcu.COLUMN_NAME,
                kcu.REFERENCED_TABLE_NAME,
                kcu.REFERENCED_COLUMN_NAME,
                rc.UPDATE_RULE,
                rc.DELETE_RULE
            FROM information_schema.KEY_COLUMN_USAGE kcu
            JOIN information_schema.REFERENTIAL_CONSTRAINTS rc
                ON rc.CONSTRAINT_SCHEMA = kcu.CONSTRAINT_SCHEMA
                AND rc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
            WHERE kcu.TABLE_SCHEMA = %s
              AND kcu.TABLE_NAME = %s
              AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
            ORDER BY kcu.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
        """
        rows = await self._fetchall(query, (database, table))

        grouped: dict[str, list] = {}
        for name, column, ref_table, ref_column, update_rule, delete_rule in rows:
            entry = grouped.setdefault(name, [[], ref_table, [], update_rule, delete_rule])
            entry[0].append(column)
            entry[2].append(ref_column)

        return [
            ForeignKeyDescriptor(
                constraint_name=name,
                column_name=", ".join(cols),
                referenced_table=ref_table,
                referenced_column=", ".join(ref_cols),
                on_update=on_update,
                on_delete=on_delete,
            )
            for name, (cols, ref_table, ref_cols, on_update, on_delete) in grouped.items()
        ]

    async def get_table_ddl(self, database: str, table: str) -> str:
        """Return ``SHOW CREATE TABLE`` output.

        Raises:
            LookupError: If the server returns no row.
        """
        db = database.replace("`", "``")
        name = table.replace("`", "``")
        rows = await self._fetchall(f"SHOW CREATE TABLE `{db}`.`{name}`")
        if not rows:
            raise LookupError(f"Table {database}.{table} not found")
        return rows[0][1]

    async def get_view_definition(self, database: str, view: str) -> str:
        query = """
            SELECT VIEW_DEFINITION
            FROM information_schema.VIEWS
            WHERE TABLE_SCHEMA = %s
              AND TABLE_NAME = %s
        """
        rows = await self._fetchall(query, (database, view))
        if not rows:
            raise LookupError(f"View {database}.{view} not found")
        return (rows[0][0] or "").strip()
