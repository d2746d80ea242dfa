"""Tests for sync script rendering."""

from datetime import datetime, timezone

import pytest

from schema_diff.diff.models import Diff, DiffKind, DiffSet, ObjectType
from schema_diff.diff.script import generate_sync_script, terminate
from schema_diff.diff.selection import SelectionModel
from schema_diff.errors import ScriptGenerationError
from schema_diff.schema.models import Engine

WHEN = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _diff_set() -> DiffSet:
    return DiffSet(
        source_label="shop_dev",
        target_label="shop_prod",
        engine=Engine.MYSQL,
        diffs=(
            Diff(
                id="table:orders",
                object_type=ObjectType.TABLE,
                diff_kind=DiffKind.CREATE,
                name="orders",
                statements=("CREATE TABLE orders (id int);",),
            ),
            Diff(
                id="table:legacy_logs",
                object_type=ObjectType.TABLE,
                diff_kind=DiffKind.DROP,
                name="legacy_logs",
                statements=("DROP TABLE shop_prod.legacy_logs",),
            ),
            Diff(
                id="table:products",
                object_type=ObjectType.TABLE,
                diff_kind=DiffKind.IDENTICAL,
                name="products",
            ),
            Diff(
                id="view:totals",
                object_type=ObjectType.VIEW,
                diff_kind=DiffKind.ALTER,
                name="totals",
                statements=(
                    "DROP VIEW IF EXISTS shop_prod.totals",
                    "CREATE VIEW shop_prod.totals AS SELECT 1",
                ),
            ),
        ),
    )


class TestTerminate:
    def test_adds_terminator(self) -> None:
        assert terminate("DROP TABLE x") == "DROP TABLE x;"

    def test_keeps_existing_terminator(self) -> None:
        assert terminate("DROP TABLE x;  \n") == "DROP TABLE x;"


class TestGenerateSyncScript:
    """Script layout and selection handling."""

    def test_full_script(self) -> None:
        """Header, one block per actionable diff, footer."""
        script = generate_sync_script(_diff_set(), generated_at=WHEN)
        assert script == (
            "-- Schema Sync Script\n"
            "-- Source: shop_dev | Target: shop_prod\n"
            "-- Generated: 2024-01-02T03:04:05+00:00\n"
            "\n"
            "-- Syncing table: orders\n"
            "CREATE TABLE orders (id int);\n"
            "\n"
            "-- Syncing table: legacy_logs\n"
            "DROP TABLE shop_prod.legacy_logs;\n"
            "\n"
            "-- Syncing view: totals\n"
            "DROP VIEW IF EXISTS shop_prod.totals;\n"
            "CREATE VIEW shop_prod.totals AS SELECT 1;\n"
            "\n"
            "-- End of sync script\n"
        )

    def test_no_double_terminators(self) -> None:
        script = generate_sync_script(_diff_set(), generated_at=WHEN)
        assert ";;" not in script

    def test_identical_diffs_leave_no_trace(self) -> None:
        script = generate_sync_script(_diff_set(), generated_at=WHEN)
        assert "products" not in script

    def test_excluded_diffs_are_omitted(self) -> None:
        """Excluded diffs contribute neither SQL nor a comment line."""
        ds = _diff_set()
        selection = SelectionModel(ds)
        selection.toggle("table:legacy_logs")
        script = generate_sync_script(ds, selection, generated_at=WHEN)
        assert "legacy_logs" not in script
        assert "-- Syncing table: orders" in script
        assert "-- Syncing view: totals" in script

    def test_everything_excluded(self) -> None:
        """With every diff excluded only the header and footer remain."""
        ds = _diff_set()
        selection = SelectionModel(ds)
        selection.deselect_all()
        script = generate_sync_script(ds, selection, generated_at=WHEN)
        assert script.splitlines() == [
            "-- Schema Sync Script",
            "-- Source: shop_dev | Target: shop_prod",
            "-- Generated: 2024-01-02T03:04:05+00:00",
            "",
            "-- End of sync script",
        ]

    def test_deterministic(self) -> None:
        ds = _diff_set()
        assert generate_sync_script(ds, generated_at=WHEN) == generate_sync_script(ds, generated_at=WHEN)

    def test_empty_diff_set(self) -> None:
        ds = DiffSet(source_label="a", target_label="b", engine=Engine.POSTGRES)
        script = generate_sync_script(ds, generated_at=WHEN)
        assert script.endswith("\n-- End of sync script\n")
        assert "Syncing" not in script

    def test_actionable_diff_without_sql_raises(self) -> None:
        ds = DiffSet(
            source_label="a",
            target_label="b",
            engine=Engine.MYSQL,
            diffs=(
                Diff(
                    id="table:t",
                    object_type=ObjectType.TABLE,
                    diff_kind=DiffKind.CREATE,
                    name="t",
                    statements=("  ",),
                ),
            ),
        )
        with pytest.raises(ScriptGenerationError, match="table:t"):
            generate_sync_script(ds, generated_at=WHEN)

    def test_selection_from_another_result_raises(self) -> None:
        """Exclusions must refer to diffs of the rendered result."""
        other = DiffSet(
            source_label="x",
            target_label="y",
            engine=Engine.MYSQL,
            diffs=(
                Diff(
                    id="table:elsewhere",
                    object_type=ObjectType.TABLE,
                    diff_kind=DiffKind.DROP,
                    name="elsewhere",
                    statements=("DROP TABLE y.elsewhere",),
                ),
            ),
        )
        selection = SelectionModel(other)
        selection.toggle("table:elsewhere")
        with pytest.raises(ScriptGenerationError, match="table:elsewhere"):
            generate_sync_script(_diff_set(), selection, generated_at=WHEN)
