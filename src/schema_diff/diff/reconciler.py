"""Set reconciliation of two keyed object collections.

Partitions two collections into "only in source", "only in target" and
"in both".  Pure logic -- no I/O.

Ordering is deterministic: ``only_in_source`` and ``common`` follow source
iteration order, ``only_in_target`` follows target iteration order.
Unordered inputs (``set``/``frozenset``) are sorted first, so results never
depend on hash iteration order.

Usage:
    from schema_diff.diff.reconciler import reconcile, reconcile_objects

    part = reconcile(["users", "orders"], ["users", "legacy_logs"])
    part.only_in_source   # ('orders',)
    part.only_in_target   # ('legacy_logs',)
    part.common           # ('users',)

    cols = reconcile_objects(src.columns, tgt.columns, key=lambda c: c.name)
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class KeyPartition:
    """Partition of two key sets."""

    only_in_source: tuple[str, ...]
    only_in_target: tuple[str, ...]
    common: tuple[str, ...]

    @property
    def size(self) -> int:
        """Number of distinct keys across both sides."""
        return len(self.only_in_source) + len(self.only_in_target) + len(self.common)


@dataclass(frozen=True)
class ObjectPartition(Generic[T]):
    """Partition of two object collections; ``common`` holds (source, target) pairs."""

    only_in_source: tuple[T, ...]
    only_in_target: tuple[T, ...]
    common: tuple[tuple[T, T], ...]


def _ordered(items: Iterable[T]) -> list[T]:
    if isinstance(items, (set, frozenset)):
        return sorted(items)  # type: ignore[type-var]
    return list(items)


def reconcile_objects(
    source_items: Iterable[T],
    target_items: Iterable[T],
    key: Callable[[T], str],
) -> ObjectPartition[T]:
    """Partition two object collections by identity key.

    Args:
        source_items: Objects on the source side.
        target_items: Objects on the target side.
        key: Identity key function.  Fold case here (e.g.
            ``lambda c: c.name.lower()``) for case-insensitive engines.

    Returns:
        ``ObjectPartition`` whose three buckets are pairwise disjoint by key
        and together cover every key on either side.  When a key repeats on
        one side, the first occurrence wins.
    """
    source_map: dict[str, T] = {}
    for item in _ordered(source_items):
        source_map.setdefault(key(item), item)

    target_map: dict[str, T] = {}
    for item in _ordered(target_items):
        target_map.setdefault(key(item), item)

    only_in_source = tuple(obj for k, obj in source_map.items() if k not in target_map)
    only_in_target = tuple(obj for k, obj in target_map.items() if k not in source_map)
    common = tuple((obj, target_map[k]) for k, obj in source_map.items() if k in target_map)

    return ObjectPartition(
        only_in_source=only_in_source,
        only_in_target=only_in_target,
        common=common,
    )


def reconcile(
    source_keys: Iterable[str],
    target_keys: Iterable[str],
) -> KeyPartition:
    """Partition two key sets.

    Examples:
        >>> p = reconcile({"a", "b"}, {"b", "c"})
        >>> p.only_in_source, p.only_in_target, p.common
        (('a',), ('c',), ('b',))

        >>> reconcile([], []).size
        0
    """
    part = reconcile_objects(source_keys, target_keys, key=lambda k: k)
    return KeyPartition(
        only_in_source=part.only_in_source,
        only_in_target=part.only_in_target,
        common=tuple(s for s, _ in part.common),
    )
