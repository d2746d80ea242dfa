"""Apply a diff set's SQL to a target database.

Executes the statements of every included diff via the
``SqlExecutor.execute()`` Protocol method, one statement at a time, in
DiffSet order.  Stops at the first failure; statements already executed
are not rolled back.

Usage:
    from schema_diff.diff.apply import apply_diffs
    from schema_diff.adapters.engine import AsyncSqlExecutor

    executor = AsyncSqlExecutor(target_url)
    result = await apply_diffs(executor, diff_set, selection, dry_run=False, confirm=True)
    if not result.success:
        print(result.failed_diff_id, result.error)
"""

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel

from schema_diff.diff.models import Diff, DiffSet

if TYPE_CHECKING:
    from schema_diff.adapters.base import SqlExecutor
    from schema_diff.diff.selection import SelectionModel

logger = logging.getLogger(__name__)


class ApplyResult(BaseModel):
    """Result of applying a diff set.

    Attributes:
        success: True if every included statement ran.
        statements_executed: Statements run (or, on a dry run, that would run).
        applied_ids: Diffs whose statements all ran, in order.
        failed_diff_id: Diff whose statement failed, if any.
        error: Error message if application failed or was refused.
    """

    success: bool = False
    statements_executed: int = 0
    applied_ids: list[str] = []
    failed_diff_id: str | None = None
    error: str | None = None


def _included(diff_set: DiffSet, selection: "SelectionModel | None") -> list[Diff]:
    excluded = selection.excluded_ids if selection is not None else frozenset()
    return [d for d in diff_set.diffs if d.is_actionable and d.id not in excluded]


async def apply_diffs(
    executor: "SqlExecutor",
    diff_set: DiffSet,
    selection: "SelectionModel | None" = None,
    dry_run: bool = True,
    confirm: bool = False,
) -> ApplyResult:
    """Apply the included diffs of *diff_set* through *executor*.

    Args:
        executor: Target executor implementing ``SqlExecutor``.
        diff_set: Comparison result.
        selection: Exclusions to honour (``None`` = apply everything).
        dry_run: If True, only report what would be done without executing.
        confirm: Must be True to actually execute (safety guard).

    Returns:
        ``ApplyResult`` with outcome.

    Raises:
        RuntimeError: If the executor does not support DDL
            (raises ``NotImplementedError`` on ``execute()``).
    """
    result = ApplyResult()
    diffs = _included(diff_set, selection)

    if not diffs:
        result.success = True
        return result

    if dry_run:
        result.success = True
        result.statements_executed = sum(len(d.statements) for d in diffs)
        result.applied_ids = [d.id for d in diffs]
        return result

    if not confirm:
        result.error = "Apply requires confirm=True"
        return result

    for diff in diffs:
        for statement in diff.statements:
            try:
                await executor.execute(statement)
            except NotImplementedError:
                raise RuntimeError("DDL operations not supported for this executor type")
            except Exception as e:
                logger.warning("Failed to apply %s: %s", diff.id, e)
                result.failed_diff_id = diff.id
                result.error = f"Failed to apply {diff.id}: {e}"
                return result
            result.statements_executed += 1
        result.applied_ids.append(diff.id)
        logger.info("Applied %s (%d statements)", diff.id, len(diff.statements))

    result.success = True
    return result
