"""Selection state over a ``DiffSet``.

Tracks which diffs the operator excluded from the sync script.  The model
holds no script of its own; subscribers re-render after every mutation.

Usage:
    from schema_diff.diff.selection import SelectionModel, SyncSession

    session = SyncSession(diff_set)
    session.selection.toggle("table:legacy_logs")
    print(session.script)   # re-rendered without the excluded diff
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from schema_diff.diff.models import Diff, DiffSet
from schema_diff.diff.script import generate_sync_script
from schema_diff.errors import UnknownDiffError

logger = logging.getLogger(__name__)

SelectionListener = Callable[["SelectionModel"], None]


class SelectionModel:
    """Excluded-diff set for one comparison result.

    Invariant: ``excluded_ids`` is always a subset of the diff set's ids.
    A new comparison result (``reset``) clears all exclusions.

    Example:
        >>> from schema_diff.schema.models import Engine
        >>> model = SelectionModel(DiffSet(source_label="a", target_label="b",
        ...                                engine=Engine.MYSQL))
        >>> model.excluded_ids
        frozenset()
    """

    def __init__(self, diff_set: DiffSet) -> None:
        self._diff_set = diff_set
        self._excluded: set[str] = set()
        self._listeners: list[SelectionListener] = []

    @property
    def diff_set(self) -> DiffSet:
        return self._diff_set

    @property
    def excluded_ids(self) -> frozenset[str]:
        return frozenset(self._excluded)

    def is_excluded(self, diff_id: str) -> bool:
        return diff_id in self._excluded

    def included_diffs(self) -> tuple[Diff, ...]:
        """Diffs not excluded, in DiffSet order."""
        return tuple(d for d in self._diff_set.diffs if d.id not in self._excluded)

    def subscribe(self, listener: SelectionListener) -> Callable[[], None]:
        """Register *listener*; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def toggle(self, diff_id: str) -> bool:
        """Flip exclusion of *diff_id*.

        Returns:
            ``True`` if the diff is now excluded.

        Raises:
            UnknownDiffError: If *diff_id* is not in the current diff set.
        """
        if self._diff_set.get(diff_id) is None:
            raise UnknownDiffError(f"Unknown diff id: {diff_id}")
        if diff_id in self._excluded:
            self._excluded.remove(diff_id)
            excluded = False
        else:
            self._excluded.add(diff_id)
            excluded = True
        logger.debug("Diff %s %s", diff_id, "excluded" if excluded else "included")
        self._notify()
        return excluded

    def select_all(self) -> None:
        """Include every diff."""
        self._excluded.clear()
        self._notify()

    def deselect_all(self) -> None:
        """Exclude every diff."""
        self._excluded = set(self._diff_set.ids)
        self._notify()

    def reset(self, diff_set: DiffSet) -> None:
        """Swap in a fresh comparison result; exclusions are cleared."""
        self._diff_set = diff_set
        self._excluded = set()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)


class SyncSession:
    """Owns a diff set, its selection and the rendered sync script.

    The script is re-rendered in full whenever the selection changes.
    ``generated_at`` is fixed for the session so toggling back and forth
    reproduces byte-identical output.
    """

    def __init__(self, diff_set: DiffSet, generated_at: datetime | None = None) -> None:
        self.generated_at = generated_at or datetime.now(timezone.utc)
        self.selection = SelectionModel(diff_set)
        self.script = ""
        self.selection.subscribe(self._on_change)
        self._on_change(self.selection)

    @property
    def diff_set(self) -> DiffSet:
        return self.selection.diff_set

    def replace(self, diff_set: DiffSet, generated_at: datetime | None = None) -> None:
        """Start over with a new comparison result."""
        self.generated_at = generated_at or datetime.now(timezone.utc)
        self.selection.reset(diff_set)

    def _on_change(self, selection: SelectionModel) -> None:
        self.script = generate_sync_script(
            selection.diff_set,
            selection=selection,
            generated_at=self.generated_at,
        )
