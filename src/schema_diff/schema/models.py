"""Pydantic models describing a point-in-time schema snapshot.

This module contains the descriptor models consumed by the diff engine:
- Object descriptors: ColumnDescriptor, IndexDescriptor,
  ForeignKeyDescriptor, TableDescriptor, ViewDescriptor
- The snapshot container: SchemaSnapshot
- Enums: Engine, ColumnKey

All models are frozen and hold their collections as tuples -- a snapshot is
immutable once constructed.  A new comparison run always fetches a fresh
pair of snapshots.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Engine(str, Enum):
    """Database engine a snapshot was taken from."""

    MYSQL = "mysql"
    POSTGRES = "postgres"

    @classmethod
    def from_provider(cls, provider: str) -> "Engine":
        """Map a configured provider name to an engine.

        Example:
            >>> Engine.from_provider("mariadb")
            <Engine.MYSQL: 'mysql'>
        """
        normalized = provider.strip().lower()
        aliases = {
            "mysql": cls.MYSQL,
            "mariadb": cls.MYSQL,
            "postgres": cls.POSTGRES,
            "postgresql": cls.POSTGRES,
        }
        if normalized not in aliases:
            raise ValueError(
                f"Unsupported provider '{provider}'. "
                f"Supported: {', '.join(sorted(aliases))}"
            )
        return aliases[normalized]


class ColumnKey(str, Enum):
    """Key participation of a column."""

    NONE = "none"
    PRIMARY = "primary"
    UNIQUE = "unique"
    INDEX = "index"

    @classmethod
    def from_mysql(cls, value: str | None) -> "ColumnKey":
        """Map MySQL ``information_schema.COLUMNS.COLUMN_KEY`` values."""
        return {
            "PRI": cls.PRIMARY,
            "UNI": cls.UNIQUE,
            "MUL": cls.INDEX,
        }.get((value or "").upper(), cls.NONE)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ============================================================================
# Object Descriptors
# ============================================================================


class ColumnDescriptor(_Frozen):
    """Schema for a table column.

    ``column_type`` is the raw, engine-specific type string (e.g.
    ``VARCHAR(50)``); ``extra`` holds engine-specific modifiers such as
    ``auto_increment``.

    Example:
        >>> col = ColumnDescriptor(name="id", column_type="int")
        >>> col.is_nullable
        True
    """

    name: str
    column_type: str
    is_nullable: bool = True
    default_value: str | None = None
    extra: str = ""
    column_key: ColumnKey = ColumnKey.NONE


class IndexDescriptor(_Frozen):
    """Schema for a (non-primary) index."""

    name: str
    columns: tuple[str, ...] = ()
    index_type: str = "btree"
    unique: bool = False

    @property
    def column_name(self) -> str:
        """Indexed column(s), comma-joined for composite indexes."""
        return ", ".join(self.columns)


class ForeignKeyDescriptor(_Frozen):
    """Schema for a foreign key constraint."""

    constraint_name: str
    column_name: str
    referenced_table: str
    referenced_column: str
    on_update: str = "NO ACTION"
    on_delete: str = "NO ACTION"


class TableDescriptor(_Frozen):
    """Schema for a table.

    ``ddl`` is the full CREATE statement, used verbatim when the table has
    to be created on the target.
    """

    name: str
    columns: tuple[ColumnDescriptor, ...] = ()
    indexes: tuple[IndexDescriptor, ...] = ()
    foreign_keys: tuple[ForeignKeyDescriptor, ...] = ()
    ddl: str = ""

    def column(self, name: str) -> ColumnDescriptor | None:
        """Return the column called *name*, or ``None``."""
        for col in self.columns:
            if col.name == name:
                return col
        return None


class ViewDescriptor(_Frozen):
    """Schema for a view; ``definition`` is the body of its SELECT."""

    name: str
    definition: str = ""


# ============================================================================
# Snapshot
# ============================================================================


class SchemaSnapshot(_Frozen):
    """Immutable description of one database (or PostgreSQL schema).

    Example:
        >>> snap = SchemaSnapshot(engine=Engine.MYSQL, database="shop")
        >>> snap.table_names
        ()
    """

    engine: Engine
    database: str
    tables: tuple[TableDescriptor, ...] = ()
    views: tuple[ViewDescriptor, ...] = ()

    @property
    def table_names(self) -> tuple[str, ...]:
        """Table names in snapshot order."""
        return tuple(t.name for t in self.tables)

    @property
    def view_names(self) -> tuple[str, ...]:
        """View names in snapshot order."""
        return tuple(v.name for v in self.views)

    def table(self, name: str) -> TableDescriptor | None:
        """Return the table called *name*, or ``None``."""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def view(self, name: str) -> ViewDescriptor | None:
        """Return the view called *name*, or ``None``."""
        for view in self.views:
            if view.name == name:
                return view
        return None
