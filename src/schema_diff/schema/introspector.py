"""Schema introspection protocol and PostgreSQL implementation.

The diff engine consumes metadata through the ``SchemaIntrospector``
Protocol and does not care how it was obtained.  This module provides the
PostgreSQL implementation, which queries ``pg_catalog`` and
``information_schema``:
- Schemas, tables and views
- Columns (type, nullability, default, identity, key participation)
- Indexes (name, columns, uniqueness, access method)
- Foreign keys (columns, referenced table/column, update/delete rules)
- Table DDL assembled from catalog data

For PostgreSQL a "database" in the Protocol means a schema inside the
connected database.

Uses psycopg (v3) ``AsyncConnection`` for PostgreSQL connections.
"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Protocol

import psycopg
from psycopg import AsyncConnection

from schema_diff.diff.dialects import quote_identifier
from schema_diff.schema.models import (
    ColumnDescriptor,
    ColumnKey,
    Engine,
    ForeignKeyDescriptor,
    IndexDescriptor,
)

logger = logging.getLogger(__name__)


class SchemaIntrospector(Protocol):
    """Metadata source for one connection.

    Implementations are async context managers: entering opens the
    connection, exiting closes it.
    """

    engine: Engine

    async def __aenter__(self) -> "SchemaIntrospector": ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...

    async def list_databases(self) -> list[str]: ...

    async def list_tables(self, database: str) -> list[str]: ...

    async def list_views(self, database: str) -> list[str]: ...

    async def get_table_columns(self, database: str, table: str) -> list[ColumnDescriptor]: ...

    async def get_table_indexes(self, database: str, table: str) -> list[IndexDescriptor]: ...

    async def get_table_foreign_keys(
        self, database: str, table: str
    ) -> list[ForeignKeyDescriptor]: ...

    async def get_table_ddl(self, database: str, table: str) -> str: ...

    async def get_view_definition(self, database: str, view: str) -> str: ...


class PostgresIntrospector:
    """Introspects PostgreSQL schemas.

    Works with any PostgreSQL database (RDS, Supabase, local).  All queries
    share one autocommit ``AsyncConnection`` and run one at a time.  Queries
    whose output depends on name visibility (column defaults, constraint
    and view definitions, type names) run in a transaction whose
    ``search_path`` is the inspected schema, so objects of that schema come
    back unqualified.

    Usage:
        async with PostgresIntrospector(database_url) as introspector:
            tables = await introspector.list_tables("public")
            columns = await introspector.get_table_columns("public", "users")
    """

    engine = Engine.POSTGRES

    def __init__(
        self,
        database_url: str,
        excluded_tables: Iterable[str] | None = None,
        connect_timeout: int = 10,
    ):
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL.
            excluded_tables: Table names list_tables() leaves out.
            connect_timeout: Connection timeout in seconds.
        """
        self._database_url = database_url
        self._excluded_tables = set(excluded_tables or ())
        self._connect_timeout = connect_timeout
        self._conn: AsyncConnection | None = None
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> "PostgresIntrospector":
        """Async context manager entry - opens connection."""
        self._conn = await psycopg.AsyncConnection.connect(
            self._database_url,
            connect_timeout=self._connect_timeout,
            autocommit=True,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - closes connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_connection(self) -> AsyncConnection:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        return self._conn

    async def _fetchall(
        self, query: str, params: tuple | None = None, schema: str | None = None
    ) -> list[tuple]:
        """Run *query*; with *schema*, inside a transaction scoped to that search_path."""
        conn = self._require_connection()
        async with self._lock:
            if schema is None:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    return await cur.fetchall()
            async with conn.transaction():
                async with conn.cursor() as cur:
                    await cur.execute(
                        "SELECT set_config('search_path', %s, true)",
                        (quote_identifier(Engine.POSTGRES, schema),),
                    )
                    await cur.execute(query, params)
                    return await cur.fetchall()

    async def test_connection(self) -> bool:
        """Run ``SELECT 1``.

        Raises:
            RuntimeError: If not connected.
            ConnectionError: If the query fails.
        """
        conn = self._require_connection()
        try:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
                await cur.fetchone()
            return True
        except psycopg.Error as e:
            raise ConnectionError(f"Connection test failed: {e}") from e

    # ------------------------------------------------------------------
    # Object lists
    # ------------------------------------------------------------------

    async def list_databases(self) -> list[str]:
        """List user schemas in the connected database."""
        query = """
            SELECT nspname
            FROM pg_namespace
            WHERE nspname <> 'information_schema'
              AND nspname !~ '^pg_'
            ORDER BY nspname
        """
        rows = await self._fetchall(query)
        return [row[0] for row in rows]

    async def list_tables(self, database: str) -> list[str]:
        """Get all base table names in schema *database*."""
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        rows = await self._fetchall(query, (database,))
        return [row[0] for row in rows if row[0] not in self._excluded_tables]

    async def list_views(self, database: str) -> list[str]:
        """Get all view names in schema *database*."""
        query = """
            SELECT table_name
            FROM information_schema.views
            WHERE table_schema = %s
            ORDER BY table_name
        """
        rows = await self._fetchall(query, (database,))
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Table metadata
    # ------------------------------------------------------------------

    async def get_table_columns(self, database: str, table: str) -> list[ColumnDescriptor]:
        """Get columns for a table, in ordinal order."""
        query = """
            SELECT
                a.attname,
                format_type(a.atttypid, a.atttypmod),
                NOT a.attnotnull,
                pg_get_expr(d.adbin, d.adrelid),
                a.attidentity,
                CASE
                    WHEN bool_or(i.indisprimary) THEN 'primary'
                    WHEN bool_or(i.indisunique) THEN 'unique'
                    WHEN count(i.indexrelid) > 0 THEN 'index'
                    ELSE 'none'
                END
            FROM pg_attribute a
            JOIN pg_class c ON c.oid = a.attrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
            LEFT JOIN pg_index i ON i.indrelid = c.oid AND a.attnum = ANY(i.indkey)
            WHERE n.nspname = %s
              AND c.relname = %s
              AND a.attnum > 0
              AND NOT a.attisdropped
            GROUP BY a.attnum, a.attname, a.atttypid, a.atttypmod, a.attnotnull,
                     d.adbin, d.adrelid, a.attidentity
            ORDER BY a.attnum
        """
        rows = await self._fetchall(query, (database, table), schema=database)
        columns = []
        for name, data_type, is_nullable, default, identity, key in rows:
            extra = ""
            if identity == "a":
                extra = "GENERATED ALWAYS AS IDENTITY"
            elif identity == "d":
                extra = "GENERATED BY DEFAULT AS IDENTITY"
            columns.append(
                ColumnDescriptor(
                    name=name,
                    column_type=self._normalize_data_type(data_type),
                    is_nullable=bool(is_nullable),
                    default_value=default,
                    extra=extra,
                    column_key=ColumnKey(key),
                )
            )
        return columns

    def _normalize_data_type(self, data_type: str) -> str:
        """Normalize PostgreSQL data type names.

        Maps verbose catalog types to standard names, keeping any
        length/precision suffix (``character varying(50)`` -> ``varchar(50)``).
        """
        type_map = {
            "character varying": "varchar",
            "character": "char",
            "timestamp with time zone": "timestamptz",
            "timestamp without time zone": "timestamp",
            "integer": "int",
            "boolean": "bool",
        }
        lowered = data_type.lower()
        base, paren, suffix = lowered.partition("(")
        base = base.strip()
        if base in type_map:
            return type_map[base] + (paren + suffix if paren else "")
        return lowered

    async def get_table_indexes(self, database: str, table: str) -> list[IndexDescriptor]:
        """Get standalone indexes for a table.

        Indexes owned by a primary key, unique or exclusion constraint are
        left out; they belong to the constraint and are part of the table DDL.
        """
        query = """
            SELECT
                i.relname AS index_name,
                array_agg(a.attname ORDER BY x.ordinality) AS columns,
                ix.indisunique AS is_unique,
                am.amname AS index_type
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_am am ON am.oid = i.relam
            JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS x(attnum, ordinality) ON TRUE
            JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = x.attnum
            WHERE n.nspname = %s
              AND t.relname = %s
              AND NOT ix.indisprimary
              AND NOT EXISTS (
                  SELECT 1 FROM pg_constraint con
                  WHERE con.conrelid = t.oid
                    AND con.conindid = ix.indexrelid
                    AND con.contype IN ('p', 'u', 'x')
              )
            GROUP BY i.relname, ix.indisunique, am.amname
            ORDER BY i.relname
        """
        rows = await self._fetchall(query, (database, table))
        return [
            IndexDescriptor(
                name=name,
                columns=tuple(columns),
                unique=bool(is_unique),
                index_type=idx_type,
            )
            for name, columns, is_unique, idx_type in rows
        ]

    async def get_table_foreign_keys(
        self, database: str, table: str
    ) -> list[ForeignKeyDescriptor]:
        """Get foreign keys for a table.

        Composite keys are collapsed into one descriptor with comma-joined
        column lists.
        """
        query = """
            SELECT
                tc.constraint_name,
                kcu.column_name,
                ccu.table_name AS references_table,
                ccu.column_name AS references_column,
                rc.update_rule,
                rc.delete_rule
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
            JOIN information_schema.referential_constraints rc
                ON tc.constraint_name = rc.constraint_name
                AND tc.table_schema = rc.constraint_schema
            JOIN information_schema.constraint_column_usage ccu
                ON tc.constraint_name = ccu.constraint_name
                AND tc.table_schema = ccu.constraint_schema
            WHERE tc.constraint_type = 'FOREIGN KEY'
              AND tc.table_schema = %s
              AND tc.table_name = %s
            ORDER BY tc.constraint_name, kcu.ordinal_position
        """
        rows = await self._fetchall(query, (database, table))

        # name -> [columns, ref_table, ref_columns, on_update, on_delete]
        grouped: dict[str, list] = {}
        for name, col_name, ref_table, ref_col, update_rule, delete_rule in rows:
            if name not in grouped:
                grouped[name] = [[], ref_table, [], update_rule, delete_rule]
            entry = grouped[name]
            if col_name not in entry[0]:
                entry[0].append(col_name)
            if ref_col not in entry[2]:
                entry[2].append(ref_col)

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
        """Assemble a ``CREATE TABLE`` statement from catalog data.

        The table name is left unqualified so the statement runs in the
        target's search path.  Identifiers are always quoted because the
        statement is used verbatim.  Secondary indexes are not included.

        Raises:
            LookupError: If the table does not exist.
        """
        columns = await self.get_table_columns(database, table)
        if not columns:
            raise LookupError(f"Table {database}.{table} not found")

        query = """
            SELECT con.conname, pg_get_constraintdef(con.oid)
            FROM pg_constraint con
            JOIN pg_class c ON c.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = %s
              AND c.relname = %s
            ORDER BY
                CASE con.contype
                    WHEN 'p' THEN 0
                    WHEN 'u' THEN 1
                    WHEN 'c' THEN 2
                    ELSE 3
                END,
                con.conname
        """
        constraints = await self._fetchall(query, (database, table), schema=database)

        def q(name: str) -> str:
            return quote_identifier(Engine.POSTGRES, name)

        lines = []
        for col in columns:
            line = f"{q(col.name)} {col.column_type}"
            if col.extra:
                line += f" {col.extra}"
            if not col.is_nullable:
                line += " NOT NULL"
            if col.default_value is not None:
                line += f" DEFAULT {col.default_value}"
            lines.append(line)
        for name, definition in constraints:
            lines.append(f"CONSTRAINT {q(name)} {definition}")

        return f"CREATE TABLE {q(table)} (\n  " + ",\n  ".join(lines) + "\n)"

    async def get_view_definition(self, database: str, view: str) -> str:
        """Return the SELECT body of a view.

        Raises:
            LookupError: If the view does not exist.
        """
        query = """
            SELECT pg_get_viewdef(c.oid, true)
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = %s
              AND c.relname = %s
              AND c.relkind IN ('v', 'm')
        """
        rows = await self._fetchall(query, (database, view), schema=database)
        if not rows:
            raise LookupError(f"View {database}.{view} not found")
        return rows[0][0].strip()
