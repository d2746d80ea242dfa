"""Schema diff engine: reconcile, compare, classify, render, select, apply.

Everything here except ``apply_diffs`` is pure and synchronous.

Usage:
    from schema_diff.diff import classify_snapshots, generate_sync_script
    from schema_diff.diff import SelectionModel, SyncSession, apply_diffs
"""

from schema_diff.diff.apply import ApplyResult, apply_diffs
from schema_diff.diff.classifier import classify_snapshots, classify_table_pair
from schema_diff.diff.comparator import TableComparison, compare_tables
from schema_diff.diff.models import (
    ChangeKind,
    ColumnChange,
    Diff,
    DiffCounts,
    DiffKind,
    DiffSet,
    ObjectChange,
    ObjectType,
)
from schema_diff.diff.reconciler import KeyPartition, ObjectPartition, reconcile, reconcile_objects
from schema_diff.diff.script import generate_sync_script
from schema_diff.diff.selection import SelectionModel, SyncSession

__all__ = [
    "reconcile",
    "reconcile_objects",
    "KeyPartition",
    "ObjectPartition",
    "compare_tables",
    "TableComparison",
    "classify_snapshots",
    "classify_table_pair",
    "generate_sync_script",
    "SelectionModel",
    "SyncSession",
    "apply_diffs",
    "ApplyResult",
    "Diff",
    "DiffSet",
    "DiffCounts",
    "DiffKind",
    "ObjectType",
    "ChangeKind",
    "ColumnChange",
    "ObjectChange",
]
