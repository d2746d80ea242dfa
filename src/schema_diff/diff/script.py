"""Render a sync script from a ``DiffSet``.

Output is deterministic: for the same diff set, selection and
``generated_at`` the script is byte-identical.

Example output::

    -- Schema Sync Script
    -- Source: shop_dev | Target: shop_prod
    -- Generated: 2024-01-01T00:00:00+00:00

    -- Syncing table: orders
    CREATE TABLE orders (...);

    -- End of sync script
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from schema_diff.diff.models import DiffSet
from schema_diff.errors import ScriptGenerationError

if TYPE_CHECKING:
    from schema_diff.diff.selection import SelectionModel


def terminate(statement: str) -> str:
    """Append ``;`` unless the statement already ends with one.

    Example:
        >>> terminate("DROP TABLE shop.t"), terminate("DROP TABLE shop.t;")
        ('DROP TABLE shop.t;', 'DROP TABLE shop.t;')
    """
    text = statement.rstrip()
    return text if text.endswith(";") else text + ";"


def generate_sync_script(
    diff_set: DiffSet,
    selection: "SelectionModel | None" = None,
    generated_at: datetime | None = None,
) -> str:
    """Render the SQL script for every non-excluded, actionable diff.

    Diffs are emitted in ``diff_set`` order.  Identical diffs and excluded
    diffs contribute nothing, not even a comment.

    Args:
        diff_set: Comparison result.
        selection: Exclusions to honour (``None`` = include everything).
        generated_at: Timestamp written in the header (defaults to now, UTC).

    Returns:
        Script text ending with a newline.

    Raises:
        ScriptGenerationError: If an actionable diff carries no SQL, or the
            selection excludes ids that are not in *diff_set*.
    """
    excluded = selection.excluded_ids if selection is not None else frozenset()
    unknown = excluded - set(diff_set.ids)
    if unknown:
        raise ScriptGenerationError(
            f"Selection references diffs not in this result: {', '.join(sorted(unknown))}"
        )

    timestamp = (generated_at or datetime.now(timezone.utc)).isoformat()
    lines = [
        "-- Schema Sync Script",
        f"-- Source: {diff_set.source_label} | Target: {diff_set.target_label}",
        f"-- Generated: {timestamp}",
        "",
    ]

    for diff in diff_set.diffs:
        if not diff.is_actionable or diff.id in excluded:
            continue
        statements = [s for s in diff.statements if s.strip()]
        if not statements:
            raise ScriptGenerationError(f"Diff {diff.id} ({diff.diff_kind.value}) has no SQL")
        lines.append(f"-- Syncing {diff.object_type.value}: {diff.name}")
        lines.extend(terminate(s) for s in statements)
        lines.append("")

    lines.append("-- End of sync script")
    return "\n".join(lines) + "\n"
