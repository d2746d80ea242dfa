"""Structural comparison of two table descriptors.

Compares columns, indexes and foreign keys of a source/target table pair
and renders the ``ALTER TABLE`` statement that brings the target in line.
Pure logic -- no I/O, no database connections.

Usage:
    from schema_diff.diff.comparator import compare_tables
    from schema_diff.config.models import CompareOptions

    result = compare_tables(src_table, tgt_table, Engine.MYSQL, "shop", CompareOptions())
    if not result.is_identical:
        print(";\\n".join(result.statements))
"""

from collections.abc import Callable
from dataclasses import dataclass

from schema_diff.config.models import CompareOptions
from schema_diff.diff.dialects import Dialect, identifiers_case_sensitive
from schema_diff.diff.models import ChangeKind, ColumnChange, ObjectChange
from schema_diff.diff.reconciler import reconcile_objects
from schema_diff.schema.models import ColumnDescriptor, Engine, TableDescriptor


@dataclass(frozen=True)
class TableComparison:
    """Result of comparing one table pair."""

    column_changes: tuple[ColumnChange, ...]
    index_changes: tuple[ObjectChange, ...]
    foreign_key_changes: tuple[ObjectChange, ...]
    statements: tuple[str, ...]
    is_identical: bool
    change_count: int = 0  # changes that contribute SQL


def identity_key(engine: Engine, options: CompareOptions) -> Callable[[str], str]:
    """Return the identifier folding function for *engine* under *options*."""
    case_sensitive = options.case_sensitive
    if case_sensitive is None:
        case_sensitive = identifiers_case_sensitive(engine)
    if case_sensitive:
        return lambda name: name
    return lambda name: name.lower()


def describe_column(col: ColumnDescriptor) -> str:
    """Human-readable ``type NULL|NOT NULL [DEFAULT v]`` summary."""
    text = f"{col.column_type} {'NULL' if col.is_nullable else 'NOT NULL'}"
    if col.default_value is not None:
        text += f" DEFAULT {col.default_value}"
    return text


def columns_differ(source: ColumnDescriptor, target: ColumnDescriptor) -> bool:
    """True when type, nullability or default differ (exact comparison)."""
    return (
        source.column_type != target.column_type
        or source.is_nullable != target.is_nullable
        or source.default_value != target.default_value
    )


def compare_tables(
    source: TableDescriptor,
    target: TableDescriptor,
    engine: Engine,
    target_database: str,
    options: CompareOptions,
) -> TableComparison:
    """Compare a source table against a target table.

    The two tables are matched by the caller; their names need not be
    equal.  SQL is addressed to the *target* table.

    Column changes are emitted in source-declared order for adds and
    modifies, then target order for drops.  Column order itself is not a
    tracked attribute.  Index and foreign-key changes are existence-based
    and always returned for display; they only reach ``statements`` (and
    only affect ``is_identical``) when ``include_index_changes`` /
    ``include_foreign_key_changes`` are set.

    Args:
        source: Table as it should look.
        target: Table as it currently looks.
        engine: Engine of the target, selects the SQL dialect.
        target_database: Database (or schema) used to qualify the target.
        options: Comparison options.

    Returns:
        ``TableComparison`` with change lists and rendered statements.

    Examples:
        >>> from schema_diff.schema.models import ColumnDescriptor, TableDescriptor
        >>> src = TableDescriptor(name="users", columns=(
        ...     ColumnDescriptor(name="id", column_type="INT", is_nullable=False),
        ...     ColumnDescriptor(name="name", column_type="VARCHAR(50)", is_nullable=False),
        ... ))
        >>> tgt = TableDescriptor(name="users", columns=(
        ...     ColumnDescriptor(name="id", column_type="INT", is_nullable=False),
        ... ))
        >>> result = compare_tables(src, tgt, Engine.MYSQL, "shop", CompareOptions())
        >>> result.statements[0]
        'ALTER TABLE shop.users\\n  ADD COLUMN name VARCHAR(50) NOT NULL'
    """
    dialect = Dialect(engine, quote=options.quote_identifiers)
    fold = identity_key(engine, options)

    column_changes: list[ColumnChange] = []
    fragments: list[str] = []

    # Columns
    cols = reconcile_objects(source.columns, target.columns, key=lambda c: fold(c.name))
    added = {fold(c.name) for c in cols.only_in_source}
    modified = {
        fold(s.name): s for s, t in cols.common if columns_differ(s, t)
    }
    target_by_key = {fold(t.name): t for _, t in cols.common}

    for col in source.columns:
        key = fold(col.name)
        if key in added:
            added.discard(key)
            column_changes.append(
                ColumnChange(
                    kind=ChangeKind.ADD,
                    column_name=col.name,
                    detail=f"added: {describe_column(col)}",
                )
            )
            fragments.extend(dialect.add_column(col))
        elif key in modified and modified[key] is col:
            before = target_by_key[key]
            column_changes.append(
                ColumnChange(
                    kind=ChangeKind.MODIFY,
                    column_name=col.name,
                    detail=f"{describe_column(before)} -> {describe_column(col)}",
                )
            )
            # Redeclare under the target's spelling of the name
            fragments.extend(dialect.modify_column(col.model_copy(update={"name": before.name})))

    for col in cols.only_in_target:
        column_changes.append(
            ColumnChange(
                kind=ChangeKind.DROP,
                column_name=col.name,
                detail=f"removed: {describe_column(col)}",
            )
        )
        fragments.extend(dialect.drop_column(col.name))

    extra_statements: list[str] = []

    # Indexes
    idx = reconcile_objects(source.indexes, target.indexes, key=lambda i: fold(i.name))
    index_changes: list[ObjectChange] = []
    for index in idx.only_in_source:
        index_changes.append(
            ObjectChange(
                kind=ChangeKind.ADD,
                object_type="index",
                name=index.name,
                detail=f"{'unique ' if index.unique else ''}{index.index_type} ({index.column_name})",
            )
        )
    for index in idx.only_in_target:
        index_changes.append(
            ObjectChange(
                kind=ChangeKind.DROP,
                object_type="index",
                name=index.name,
                detail=f"{'unique ' if index.unique else ''}{index.index_type} ({index.column_name})",
            )
        )

    if options.include_index_changes:
        for index in idx.only_in_target:
            fragment = dialect.drop_index_fragment(index.name)
            if fragment is None:
                extra_statements.append(dialect.drop_index_statement(target_database, index.name))
            else:
                fragments.append(fragment)
        for index in idx.only_in_source:
            fragment = dialect.add_index_fragment(index)
            if fragment is None:
                extra_statements.append(
                    dialect.create_index_statement(target_database, target.name, index)
                )
            else:
                fragments.append(fragment)

    # Foreign keys
    fks = reconcile_objects(
        source.foreign_keys, target.foreign_keys, key=lambda f: fold(f.constraint_name)
    )
    foreign_key_changes: list[ObjectChange] = []
    for fk in fks.only_in_source:
        foreign_key_changes.append(
            ObjectChange(
                kind=ChangeKind.ADD,
                object_type="foreign_key",
                name=fk.constraint_name,
                detail=f"{fk.column_name} -> {fk.referenced_table}.{fk.referenced_column}",
            )
        )
    for fk in fks.only_in_target:
        foreign_key_changes.append(
            ObjectChange(
                kind=ChangeKind.DROP,
                object_type="foreign_key",
                name=fk.constraint_name,
                detail=f"{fk.column_name} -> {fk.referenced_table}.{fk.referenced_column}",
            )
        )

    if options.include_foreign_key_changes:
        fragments.extend(dialect.drop_foreign_key(fk.constraint_name) for fk in fks.only_in_target)
        fragments.extend(dialect.add_foreign_key(fk) for fk in fks.only_in_source)

    statements: list[str] = []
    if fragments:
        statements.append(dialect.alter_table(target_database, target.name, fragments))
    statements.extend(extra_statements)

    actionable = len(column_changes)
    if options.include_index_changes:
        actionable += len(index_changes)
    if options.include_foreign_key_changes:
        actionable += len(foreign_key_changes)

    return TableComparison(
        column_changes=tuple(column_changes),
        index_changes=tuple(index_changes),
        foreign_key_changes=tuple(foreign_key_changes),
        statements=tuple(statements),
        is_identical=actionable == 0,
        change_count=actionable,
    )
