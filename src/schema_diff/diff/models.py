"""Pydantic models for classified schema differences.

- Change records: ColumnChange, ObjectChange
- Diff records: Diff, DiffSet, DiffCounts
- Enums: DiffKind, ObjectType, ChangeKind

A ``DiffSet`` is the sole contract between the engine and whatever renders
or applies it.  Its ``counts`` are always derived from ``diffs``.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, computed_field

from schema_diff.schema.models import Engine


class DiffKind(str, Enum):
    """DDL action required to reconcile one object."""

    CREATE = "create"
    ALTER = "alter"
    DROP = "drop"
    IDENTICAL = "identical"


class ObjectType(str, Enum):
    TABLE = "table"
    VIEW = "view"


class ChangeKind(str, Enum):
    ADD = "add"
    MODIFY = "modify"
    DROP = "drop"


# ============================================================================
# Change Records
# ============================================================================


class ColumnChange(BaseModel):
    """A single column-level change inside an ``alter`` diff.

    Example:
        >>> ColumnChange(kind=ChangeKind.ADD, column_name="email",
        ...              detail="added: varchar(255) NOT NULL").kind.value
        'add'
    """

    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    column_name: str
    detail: str = ""


class ObjectChange(BaseModel):
    """An index or foreign key present on only one side of a table pair."""

    model_config = ConfigDict(frozen=True)

    kind: ChangeKind  # ADD or DROP only
    object_type: str  # "index" or "foreign_key"
    name: str
    detail: str = ""


# ============================================================================
# Diff Records
# ============================================================================


class Diff(BaseModel):
    """One classified structural difference.

    ``statements`` holds the SQL needed to apply the diff, without statement
    terminators; ``generated_sql`` joins them for display.  Identical diffs
    carry no statements.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    object_type: ObjectType
    diff_kind: DiffKind
    name: str
    source_ref: str | None = None
    target_ref: str | None = None
    reason: str = ""
    change_list: tuple[ColumnChange, ...] = ()
    index_changes: tuple[ObjectChange, ...] = ()
    foreign_key_changes: tuple[ObjectChange, ...] = ()
    statements: tuple[str, ...] = ()

    @computed_field
    @property
    def generated_sql(self) -> str | None:
        """SQL text for this diff, or ``None`` when nothing is to be run."""
        if self.diff_kind is DiffKind.IDENTICAL or not self.statements:
            return None
        return ";\n".join(self.statements)

    @property
    def is_actionable(self) -> bool:
        """True for create/alter/drop diffs."""
        return self.diff_kind is not DiffKind.IDENTICAL


class DiffCounts(BaseModel):
    """Per-kind counts of actionable diffs (identical diffs never count)."""

    create: int = 0
    alter: int = 0
    drop: int = 0
    total: int = 0


class DiffSet(BaseModel):
    """Result of one comparison run.

    Example:
        >>> ds = DiffSet(source_label="a", target_label="b", engine=Engine.MYSQL)
        >>> ds.counts.total
        0
    """

    model_config = ConfigDict(frozen=True)

    source_label: str
    target_label: str
    engine: Engine
    diffs: tuple[Diff, ...] = ()

    @computed_field
    @property
    def counts(self) -> DiffCounts:
        """Counts recomputed from ``diffs`` on every access."""
        create = sum(1 for d in self.diffs if d.diff_kind is DiffKind.CREATE)
        alter = sum(1 for d in self.diffs if d.diff_kind is DiffKind.ALTER)
        drop = sum(1 for d in self.diffs if d.diff_kind is DiffKind.DROP)
        return DiffCounts(create=create, alter=alter, drop=drop, total=create + alter + drop)

    @property
    def ids(self) -> tuple[str, ...]:
        """Diff ids in DiffSet order."""
        return tuple(d.id for d in self.diffs)

    def get(self, diff_id: str) -> Diff | None:
        """Return the diff with *diff_id*, or ``None``."""
        for diff in self.diffs:
            if diff.id == diff_id:
                return diff
        return None
