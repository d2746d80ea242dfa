"""Tests for applying diff SQL through an executor."""

from unittest.mock import AsyncMock

import pytest

from schema_diff.diff.apply import ApplyResult, apply_diffs
from schema_diff.diff.models import Diff, DiffKind, DiffSet, ObjectType
from schema_diff.diff.selection import SelectionModel
from schema_diff.schema.models import Engine


def _diff_set() -> DiffSet:
    return DiffSet(
        source_label="dev",
        target_label="prod",
        engine=Engine.MYSQL,
        diffs=(
            Diff(
                id="table:orders",
                object_type=ObjectType.TABLE,
                diff_kind=DiffKind.CREATE,
                name="orders",
                statements=("CREATE TABLE orders (id int)",),
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
                statements=("DROP VIEW IF EXISTS prod.totals", "CREATE VIEW prod.totals AS SELECT 1"),
            ),
            Diff(
                id="table:legacy_logs",
                object_type=ObjectType.TABLE,
                diff_kind=DiffKind.DROP,
                name="legacy_logs",
                statements=("DROP TABLE prod.legacy_logs",),
            ),
        ),
    )


class TestApplyDiffs:
    """apply_diffs() guards and execution order."""

    @pytest.mark.asyncio
    async def test_dry_run_reports_without_executing(self) -> None:
        executor = AsyncMock()
        result = await apply_diffs(executor, _diff_set())
        assert result.success is True
        assert result.statements_executed == 4
        assert result.applied_ids == ["table:orders", "view:totals", "table:legacy_logs"]
        executor.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_confirm(self) -> None:
        executor = AsyncMock()
        result = await apply_diffs(executor, _diff_set(), dry_run=False)
        assert result.success is False
        assert result.error == "Apply requires confirm=True"
        executor.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_executes_in_order(self) -> None:
        executor = AsyncMock()
        result = await apply_diffs(executor, _diff_set(), dry_run=False, confirm=True)
        assert result.success is True
        assert result.statements_executed == 4
        executed = [call.args[0] for call in executor.execute.await_args_list]
        assert executed == [
            "CREATE TABLE orders (id int)",
            "DROP VIEW IF EXISTS prod.totals",
            "CREATE VIEW prod.totals AS SELECT 1",
            "DROP TABLE prod.legacy_logs",
        ]

    @pytest.mark.asyncio
    async def test_honours_selection(self) -> None:
        ds = _diff_set()
        selection = SelectionModel(ds)
        selection.toggle("table:legacy_logs")
        executor = AsyncMock()
        result = await apply_diffs(executor, ds, selection, dry_run=False, confirm=True)
        assert result.applied_ids == ["table:orders", "view:totals"]
        assert executor.execute.await_count == 3

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self) -> None:
        """Later statements never run once one fails."""
        executor = AsyncMock()
        executor.execute.side_effect = [None, RuntimeError("view locked"), None, None]
        result = await apply_diffs(executor, _diff_set(), dry_run=False, confirm=True)
        assert result.success is False
        assert result.failed_diff_id == "view:totals"
        assert result.error == "Failed to apply view:totals: view locked"
        assert result.applied_ids == ["table:orders"]
        assert result.statements_executed == 1
        assert executor.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_unsupported_executor(self) -> None:
        executor = AsyncMock()
        executor.execute.side_effect = NotImplementedError()
        with pytest.raises(RuntimeError, match="not supported"):
            await apply_diffs(executor, _diff_set(), dry_run=False, confirm=True)

    @pytest.mark.asyncio
    async def test_nothing_to_apply(self) -> None:
        ds = DiffSet(source_label="a", target_label="b", engine=Engine.MYSQL)
        result = await apply_diffs(AsyncMock(), ds, dry_run=False)
        assert result == ApplyResult(success=True)
