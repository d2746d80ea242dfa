"""Build classified diff sets from two schema snapshots.

Wraps the reconciler and the structural comparator into typed ``Diff``
records.  Pure logic -- no I/O.

Two modes:
- Full-database: ``classify_snapshots(source, target, options)``
- Single-table: ``classify_table_pair(source_table, target_table, ...)``

Diff order within a ``DiffSet`` (tables first, then views):
creates in source order, drops in target order, alters (and optional
identical diffs) in source order.
"""

import logging
import re
from collections.abc import Callable

from schema_diff.config.models import CompareOptions
from schema_diff.diff.comparator import compare_tables, identity_key
from schema_diff.diff.dialects import Dialect
from schema_diff.diff.models import Diff, DiffKind, DiffSet, ObjectType
from schema_diff.diff.reconciler import reconcile_objects
from schema_diff.errors import InvalidSelectionError
from schema_diff.schema.models import Engine, SchemaSnapshot, TableDescriptor, ViewDescriptor

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_definition(definition: str) -> str:
    """Collapse whitespace and case-fold a view definition for comparison.

    Example:
        >>> normalize_definition("SELECT  id\\n FROM users;")
        'select id from users'
    """
    return _WHITESPACE.sub(" ", definition).strip().rstrip(";").strip().lower()


def diff_id(object_type: ObjectType, key: str) -> str:
    """Stable id for a diff: ``"<object_type>:<identity key>"``."""
    return f"{object_type.value}:{key}"


def _change_reason(count: int) -> str:
    return f"{count} changes"


def _ensure_same_engine(source: Engine, target: Engine) -> None:
    if source is not target:
        raise InvalidSelectionError(
            f"Cannot compare across engines: source is {source.value}, "
            f"target is {target.value}"
        )


def _table_diffs(
    source: SchemaSnapshot,
    target: SchemaSnapshot,
    options: CompareOptions,
) -> list[Diff]:
    engine = target.engine
    dialect = Dialect(engine, quote=options.quote_identifiers)
    fold = identity_key(engine, options)

    part = reconcile_objects(source.tables, target.tables, key=lambda t: fold(t.name))

    creates = [
        Diff(
            id=diff_id(ObjectType.TABLE, fold(table.name)),
            object_type=ObjectType.TABLE,
            diff_kind=DiffKind.CREATE,
            name=table.name,
            source_ref=table.name,
            reason="Table missing in target",
            statements=(table.ddl,),
        )
        for table in part.only_in_source
    ]

    drops = [
        Diff(
            id=diff_id(ObjectType.TABLE, fold(table.name)),
            object_type=ObjectType.TABLE,
            diff_kind=DiffKind.DROP,
            name=table.name,
            target_ref=table.name,
            reason="Table extra in target",
            statements=(dialect.drop_table(target.database, table.name),),
        )
        for table in part.only_in_target
    ]

    alters: list[Diff] = []
    for src_table, tgt_table in part.common:
        diff = _pair_diff(
            src_table,
            tgt_table,
            diff_id(ObjectType.TABLE, fold(src_table.name)),
            engine,
            target.database,
            options,
        )
        if diff.diff_kind is DiffKind.ALTER or options.include_identical:
            alters.append(diff)

    return creates + drops + alters


def _view_diffs(
    source: SchemaSnapshot,
    target: SchemaSnapshot,
    options: CompareOptions,
) -> list[Diff]:
    engine = target.engine
    dialect = Dialect(engine, quote=options.quote_identifiers)
    fold = identity_key(engine, options)

    part = reconcile_objects(source.views, target.views, key=lambda v: fold(v.name))

    creates = [
        Diff(
            id=diff_id(ObjectType.VIEW, fold(view.name)),
            object_type=ObjectType.VIEW,
            diff_kind=DiffKind.CREATE,
            name=view.name,
            source_ref=view.name,
            reason="View missing in target",
            statements=(dialect.create_view(target.database, view.name, view.definition),),
        )
        for view in part.only_in_source
    ]

    drops = [
        Diff(
            id=diff_id(ObjectType.VIEW, fold(view.name)),
            object_type=ObjectType.VIEW,
            diff_kind=DiffKind.DROP,
            name=view.name,
            target_ref=view.name,
            reason="View extra in target",
            statements=(dialect.drop_view(target.database, view.name),),
        )
        for view in part.only_in_target
    ]

    alters: list[Diff] = []
    for src_view, tgt_view in part.common:
        alters.extend(_view_pair_diff(src_view, tgt_view, dialect, fold, target.database, options))

    return creates + drops + alters


def _view_pair_diff(
    source: ViewDescriptor,
    target: ViewDescriptor,
    dialect: Dialect,
    fold: Callable[[str], str],
    target_database: str,
    options: CompareOptions,
) -> list[Diff]:
    base = dict(
        id=diff_id(ObjectType.VIEW, fold(source.name)),
        object_type=ObjectType.VIEW,
        name=source.name,
        source_ref=source.name,
        target_ref=target.name,
    )
    if normalize_definition(source.definition) != normalize_definition(target.definition):
        return [
            Diff(
                diff_kind=DiffKind.ALTER,
                reason="View definition differs",
                statements=(
                    dialect.drop_view(target_database, target.name, if_exists=True),
                    dialect.create_view(target_database, target.name, source.definition),
                ),
                **base,
            )
        ]
    if options.include_identical:
        return [Diff(diff_kind=DiffKind.IDENTICAL, reason="Identical", **base)]
    return []


def _pair_diff(
    source: TableDescriptor,
    target: TableDescriptor,
    id_: str,
    engine: Engine,
    target_database: str,
    options: CompareOptions,
) -> Diff:
    result = compare_tables(source, target, engine, target_database, options)
    common = dict(
        id=id_,
        object_type=ObjectType.TABLE,
        name=target.name,
        source_ref=source.name,
        target_ref=target.name,
        change_list=result.column_changes,
        index_changes=result.index_changes,
        foreign_key_changes=result.foreign_key_changes,
    )
    if result.is_identical:
        return Diff(diff_kind=DiffKind.IDENTICAL, reason="Identical", **common)
    return Diff(
        diff_kind=DiffKind.ALTER,
        reason=_change_reason(result.change_count),
        statements=result.statements,
        **common,
    )


def classify_snapshots(
    source: SchemaSnapshot,
    target: SchemaSnapshot,
    options: CompareOptions | None = None,
) -> DiffSet:
    """Classify every table (and view) difference between two snapshots.

    Every table name on either side lands in exactly one of: a create diff,
    a drop diff, or a common-table alter/identical diff.  Identical tables
    produce no diff unless ``options.include_identical`` is set.

    Args:
        source: Snapshot the target should be brought in line with.
        target: Snapshot of the database that would be changed.
        options: Comparison options (defaults when ``None``).

    Returns:
        ``DiffSet`` labelled ``source.database`` / ``target.database``.

    Raises:
        InvalidSelectionError: If the snapshots come from different engines.
    """
    options = options or CompareOptions()
    _ensure_same_engine(source.engine, target.engine)

    diffs = _table_diffs(source, target, options)
    if options.include_views:
        diffs.extend(_view_diffs(source, target, options))

    diff_set = DiffSet(
        source_label=source.database,
        target_label=target.database,
        engine=target.engine,
        diffs=tuple(diffs),
    )
    counts = diff_set.counts
    logger.debug(
        "Classified %s -> %s: %d create, %d alter, %d drop",
        source.database,
        target.database,
        counts.create,
        counts.alter,
        counts.drop,
    )
    return diff_set


def classify_table_pair(
    source_table: TableDescriptor,
    target_table: TableDescriptor,
    engine: Engine,
    source_database: str,
    target_database: str,
    options: CompareOptions | None = None,
) -> DiffSet:
    """Classify one explicitly matched table pair (single-table mode).

    Always produces exactly one diff: ``alter`` when the pair differs,
    otherwise ``identical`` (shown, never counted or scripted).

    Example:
        >>> from schema_diff.schema.models import TableDescriptor
        >>> ds = classify_table_pair(
        ...     TableDescriptor(name="users"), TableDescriptor(name="users_v2"),
        ...     Engine.MYSQL, "shop", "shop",
        ... )
        >>> ds.diffs[0].id, ds.diffs[0].diff_kind.value
        ('table:users->users_v2', 'identical')
    """
    options = options or CompareOptions()
    fold = identity_key(engine, options)

    source_key = fold(source_table.name)
    target_key = fold(target_table.name)
    if source_key == target_key:
        id_ = diff_id(ObjectType.TABLE, source_key)
    else:
        id_ = diff_id(ObjectType.TABLE, f"{source_key}->{target_key}")

    diff = _pair_diff(source_table, target_table, id_, engine, target_database, options)
    return DiffSet(
        source_label=f"{source_database}.{source_table.name}",
        target_label=f"{target_database}.{target_table.name}",
        engine=engine,
        diffs=(diff,),
    )
