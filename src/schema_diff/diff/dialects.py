"""Engine-specific SQL rendering rules.

Identifier quoting, qualified names, identifier case rules, and the
column/index/foreign-key fragments used to build ``ALTER TABLE``
statements.  Pure string building -- no I/O.
"""

from schema_diff.schema.models import (
    ColumnDescriptor,
    Engine,
    ForeignKeyDescriptor,
    IndexDescriptor,
)


def quote_identifier(engine: Engine, name: str) -> str:
    """Quote *name* for *engine*.

    Examples:
        >>> quote_identifier(Engine.MYSQL, "order")
        '`order`'
        >>> quote_identifier(Engine.POSTGRES, 'a"b')
        '"a""b"'
    """
    if engine is Engine.MYSQL:
        return "`" + name.replace("`", "``") + "`"
    return '"' + name.replace('"', '""') + '"'


def qualified_name(engine: Engine, database: str, name: str, quote: bool = False) -> str:
    """Return ``database.name`` (quoted when *quote* is set).

    Example:
        >>> qualified_name(Engine.MYSQL, "shop", "users")
        'shop.users'
    """
    if quote:
        return f"{quote_identifier(engine, database)}.{quote_identifier(engine, name)}"
    return f"{database}.{name}"


def identifiers_case_sensitive(engine: Engine) -> bool:
    """Default identifier case rule for *engine*.

    MySQL column names are case-insensitive everywhere and table names are
    on the default macOS/Windows installs; PostgreSQL folds unquoted names
    at parse time, so catalog names compare exactly.
    """
    return engine is Engine.POSTGRES


class Dialect:
    """Renders SQL fragments for one engine.

    Args:
        engine: Target engine.
        quote: Quote identifiers in rendered SQL.
    """

    def __init__(self, engine: Engine, quote: bool = False) -> None:
        self.engine = engine
        self.quote = quote

    def ident(self, name: str) -> str:
        return quote_identifier(self.engine, name) if self.quote else name

    def qualified(self, database: str, name: str) -> str:
        return qualified_name(self.engine, database, name, quote=self.quote)

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def column_definition(self, col: ColumnDescriptor) -> str:
        """``<type> NULL|NOT NULL [DEFAULT v] [extra]``."""
        parts = [col.column_type, "NULL" if col.is_nullable else "NOT NULL"]
        if col.default_value is not None:
            parts.append(f"DEFAULT {col.default_value}")
        if col.extra.strip():
            parts.append(col.extra.strip())
        return " ".join(parts)

    def add_column(self, col: ColumnDescriptor) -> list[str]:
        return [f"ADD COLUMN {self.ident(col.name)} {self.column_definition(col)}"]

    def modify_column(self, col: ColumnDescriptor) -> list[str]:
        """Full redeclaration of *col* (target attributes are overwritten)."""
        if self.engine is Engine.POSTGRES:
            name = self.ident(col.name)
            fragments = [
                f"ALTER COLUMN {name} TYPE {col.column_type}",
                f"ALTER COLUMN {name} {'DROP' if col.is_nullable else 'SET'} NOT NULL",
            ]
            if col.default_value is None:
                fragments.append(f"ALTER COLUMN {name} DROP DEFAULT")
            else:
                fragments.append(f"ALTER COLUMN {name} SET DEFAULT {col.default_value}")
            return fragments
        return [f"MODIFY COLUMN {self.ident(col.name)} {self.column_definition(col)}"]

    def drop_column(self, name: str) -> list[str]:
        return [f"DROP COLUMN {self.ident(name)}"]

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def _index_columns(self, idx: IndexDescriptor) -> str:
        return ", ".join(self.ident(c) for c in idx.columns)

    def add_index_fragment(self, idx: IndexDescriptor) -> str | None:
        """ALTER TABLE fragment for MySQL; ``None`` where indexes are separate statements."""
        if self.engine is Engine.POSTGRES:
            return None
        unique = "UNIQUE " if idx.unique else ""
        return f"ADD {unique}INDEX {self.ident(idx.name)} ({self._index_columns(idx)})"

    def drop_index_fragment(self, name: str) -> str | None:
        if self.engine is Engine.POSTGRES:
            return None
        return f"DROP INDEX {self.ident(name)}"

    def create_index_statement(self, database: str, table: str, idx: IndexDescriptor) -> str:
        unique = "UNIQUE " if idx.unique else ""
        return (
            f"CREATE {unique}INDEX {self.ident(idx.name)} "
            f"ON {self.qualified(database, table)} ({self._index_columns(idx)})"
        )

    def drop_index_statement(self, database: str, name: str) -> str:
        return f"DROP INDEX {self.qualified(database, name)}"

    # ------------------------------------------------------------------
    # Foreign keys
    # ------------------------------------------------------------------

    def add_foreign_key(self, fk: ForeignKeyDescriptor) -> str:
        return (
            f"ADD CONSTRAINT {self.ident(fk.constraint_name)} "
            f"FOREIGN KEY ({self.ident(fk.column_name)}) "
            f"REFERENCES {self.ident(fk.referenced_table)} ({self.ident(fk.referenced_column)}) "
            f"ON UPDATE {fk.on_update} ON DELETE {fk.on_delete}"
        )

    def drop_foreign_key(self, name: str) -> str:
        if self.engine is Engine.POSTGRES:
            return f"DROP CONSTRAINT {self.ident(name)}"
        return f"DROP FOREIGN KEY {self.ident(name)}"

    # ------------------------------------------------------------------
    # Whole statements
    # ------------------------------------------------------------------

    def alter_table(self, database: str, table: str, fragments: list[str]) -> str:
        return f"ALTER TABLE {self.qualified(database, table)}\n  " + ",\n  ".join(fragments)

    def drop_table(self, database: str, table: str) -> str:
        return f"DROP TABLE {self.qualified(database, table)}"

    def create_view(self, database: str, view: str, definition: str) -> str:
        return f"CREATE VIEW {self.qualified(database, view)} AS {definition.strip().rstrip(';')}"

    def drop_view(self, database: str, view: str, if_exists: bool = False) -> str:
        guard = "IF EXISTS " if if_exists else ""
        return f"DROP VIEW {guard}{self.qualified(database, view)}"
