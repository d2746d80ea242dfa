"""Comparison orchestration over live introspectors.

Fetches metadata for two endpoints, builds snapshots and classifies them.
Independent reads are issued concurrently, bounded per endpoint by an
``asyncio.Semaphore``.  Any fetch failure cancels the remaining fetches
and aborts the run with ``MetadataFetchError``; a ``DiffSet`` is either
returned whole or not at all.

Usage:
    from schema_diff.service import Endpoint, SchemaComparer

    comparer = SchemaComparer(max_concurrency=4)
    async with get_introspector(src_profile) as src, get_introspector(tgt_profile) as tgt:
        diff_set = await comparer.compare_databases(
            Endpoint(src, "shop_dev", connection_id="dev"),
            Endpoint(tgt, "shop_prod", connection_id="prod"),
        )
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from schema_diff.config.models import CompareOptions
from schema_diff.diff.classifier import classify_snapshots, classify_table_pair
from schema_diff.diff.comparator import identity_key
from schema_diff.diff.models import DiffSet
from schema_diff.diff.reconciler import reconcile_objects
from schema_diff.errors import (
    ComparisonInProgressError,
    InvalidSelectionError,
    MetadataFetchError,
)
from schema_diff.schema.introspector import SchemaIntrospector
from schema_diff.schema.models import Engine, SchemaSnapshot, TableDescriptor, ViewDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Endpoint:
    """One side of a comparison.

    Attributes:
        introspector: Opened introspector for the connection.
        database: Database (schema for PostgreSQL) to compare.
        connection_id: Identity of the connection (e.g. profile name); two
            endpoints with the same id and database are the same object.
        engine: Engine of the connection; defaults to ``introspector.engine``.
    """

    introspector: SchemaIntrospector
    database: str
    connection_id: str = ""
    engine: Engine = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.engine is None:
            object.__setattr__(self, "engine", self.introspector.engine)


async def gather_or_cancel(aws: Sequence[Awaitable[Any]]) -> list[Any]:
    """Run awaitables concurrently; on the first failure cancel the rest.

    The first exception propagates once every sibling has finished or been
    cancelled, so nothing keeps running against the connection afterwards.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def _tagged(side: str, fetch: Callable[[], Awaitable[Any]]) -> tuple[str, Any]:
    return side, await fetch()


class _Fetcher:
    """Bounded, error-wrapping access to one endpoint's introspector."""

    def __init__(self, endpoint: Endpoint, side: str, max_concurrency: int) -> None:
        self.endpoint = endpoint
        self.side = side
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def call(self, operation: str, *args: str) -> Any:
        identity = f"{self.side}:{'.'.join((self.endpoint.database, *args))}"
        method: Callable[..., Awaitable[Any]] = getattr(self.endpoint.introspector, operation)
        async with self._semaphore:
            logger.debug("Fetching %s %s", operation, identity)
            try:
                return await method(self.endpoint.database, *args)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                raise MetadataFetchError(identity, operation, e) from e

    async def table(self, name: str, with_ddl: bool) -> TableDescriptor:
        calls = [
            self.call("get_table_columns", name),
            self.call("get_table_indexes", name),
            self.call("get_table_foreign_keys", name),
        ]
        if with_ddl:
            calls.append(self.call("get_table_ddl", name))
        results = await gather_or_cancel(calls)
        return TableDescriptor(
            name=name,
            columns=tuple(results[0]),
            indexes=tuple(results[1]),
            foreign_keys=tuple(results[2]),
            ddl=results[3] if with_ddl else "",
        )

    async def existing_table(self, name: str) -> TableDescriptor:
        """Fetch a table chosen by name; a table with no columns does not exist."""
        table = await self.table(name, with_ddl=False)
        if not table.columns:
            raise MetadataFetchError(
                f"{self.side}:{self.endpoint.database}.{name}",
                "get_table_columns",
                LookupError(f"Table {name} not found in {self.endpoint.database}"),
            )
        return table

    async def view(self, name: str) -> ViewDescriptor:
        definition = await self.call("get_view_definition", name)
        return ViewDescriptor(name=name, definition=definition)


class SchemaComparer:
    """Runs comparisons, one at a time.

    Args:
        max_concurrency: Maximum in-flight introspector calls per endpoint.
        options: Comparison options; ``options.max_concurrency`` is used when
            *max_concurrency* is not given.
    """

    def __init__(
        self,
        max_concurrency: int | None = None,
        options: CompareOptions | None = None,
    ) -> None:
        self.options = options or CompareOptions()
        self.max_concurrency = max_concurrency or self.options.max_concurrency
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._is_comparing = False

    @property
    def is_comparing(self) -> bool:
        """True while a comparison is in flight."""
        return self._is_comparing

    def _acquire(self) -> None:
        if self._is_comparing:
            raise ComparisonInProgressError("A comparison is already running")
        self._is_comparing = True

    @staticmethod
    def _check_engines(source: Endpoint, target: Endpoint) -> Engine:
        if source.engine is not target.engine:
            raise InvalidSelectionError(
                f"Cannot compare across engines: source is {source.engine.value}, "
                f"target is {target.engine.value}"
            )
        return target.engine

    # ------------------------------------------------------------------
    # Full-database mode
    # ------------------------------------------------------------------

    async def compare_databases(self, source: Endpoint, target: Endpoint) -> DiffSet:
        """Compare every table (and view) of two databases.

        Raises:
            InvalidSelectionError: Missing database, identical endpoints or
                mismatched engines (before any fetch).
            ComparisonInProgressError: Another comparison is running.
            MetadataFetchError: An introspector call failed.
        """
        if not source.database or not target.database:
            raise InvalidSelectionError("Both a source and a target database must be selected")
        engine = self._check_engines(source, target)
        fold = identity_key(engine, self.options)
        if (source.connection_id, fold(source.database)) == (
            target.connection_id,
            fold(target.database),
        ):
            raise InvalidSelectionError("Source and target databases cannot be the same")

        self._acquire()
        try:
            logger.info("Comparing %s -> %s", source.database, target.database)
            diff_set = await self._run_databases(source, target, engine)
            logger.info(
                "Comparison %s -> %s finished: %d differences",
                source.database,
                target.database,
                diff_set.counts.total,
            )
            return diff_set
        finally:
            self._is_comparing = False

    async def _run_databases(self, source: Endpoint, target: Endpoint, engine: Engine) -> DiffSet:
        options = self.options
        fold = identity_key(engine, options)
        src = _Fetcher(source, "source", self.max_concurrency)
        tgt = _Fetcher(target, "target", self.max_concurrency)

        listings = [src.call("list_tables"), tgt.call("list_tables")]
        if options.include_views:
            listings += [src.call("list_views"), tgt.call("list_views")]
        names = await gather_or_cancel(listings)
        src_tables, tgt_tables = names[0], names[1]
        src_views, tgt_views = (names[2], names[3]) if options.include_views else ([], [])

        tables = reconcile_objects(src_tables, tgt_tables, key=fold)
        views = reconcile_objects(src_views, tgt_views, key=fold)
        create_keys = {fold(n) for n in tables.only_in_source}
        common_tables = {fold(t): t for _, t in tables.common}
        common_views = {fold(t): t for _, t in views.common}

        # Only-in-target objects need no detail: dropping them takes a name
        fetches: list[Awaitable[tuple[str, Any]]] = []
        for name in src_tables:
            with_ddl = fold(name) in create_keys
            fetches.append(_tagged("source", partial(src.table, name, with_ddl=with_ddl)))
        for name in tgt_tables:
            if fold(name) in common_tables:
                fetches.append(_tagged("target", partial(tgt.table, name, with_ddl=False)))
        fetches += [_tagged("source", partial(src.view, name)) for name in src_views]
        fetches += [
            _tagged("target", partial(tgt.view, name))
            for name in tgt_views
            if fold(name) in common_views
        ]

        fetched: dict[tuple[str, str, str], Any] = {}
        for side, obj in await gather_or_cancel(fetches):
            kind = "table" if isinstance(obj, TableDescriptor) else "view"
            fetched[(side, kind, fold(obj.name))] = obj

        source_snapshot = SchemaSnapshot(
            engine=engine,
            database=source.database,
            tables=tuple(fetched[("source", "table", fold(n))] for n in src_tables),
            views=tuple(fetched[("source", "view", fold(n))] for n in src_views),
        )
        target_snapshot = SchemaSnapshot(
            engine=engine,
            database=target.database,
            tables=tuple(
                fetched.get(("target", "table", fold(n)), TableDescriptor(name=n))
                for n in tgt_tables
            ),
            views=tuple(
                fetched.get(("target", "view", fold(n)), ViewDescriptor(name=n))
                for n in tgt_views
            ),
        )
        return classify_snapshots(source_snapshot, target_snapshot, options)

    # ------------------------------------------------------------------
    # Single-table mode
    # ------------------------------------------------------------------

    async def compare_table_pair(
        self,
        source: Endpoint,
        source_table: str,
        target: Endpoint,
        target_table: str,
    ) -> DiffSet:
        """Compare one explicitly matched table pair.

        Raises:
            InvalidSelectionError: Missing table/database, the same table on
                both sides, or mismatched engines (before any fetch).
            ComparisonInProgressError: Another comparison is running.
            MetadataFetchError: An introspector call failed.
        """
        if not (source.database and target.database and source_table and target_table):
            raise InvalidSelectionError("Both a source and a target table must be selected")
        engine = self._check_engines(source, target)
        fold = identity_key(engine, self.options)
        if (source.connection_id, fold(source.database), fold(source_table)) == (
            target.connection_id,
            fold(target.database),
            fold(target_table),
        ):
            raise InvalidSelectionError("Source and target tables cannot be the same")

        self._acquire()
        try:
            logger.info(
                "Comparing table %s.%s -> %s.%s",
                source.database,
                source_table,
                target.database,
                target_table,
            )
            src = _Fetcher(source, "source", self.max_concurrency)
            tgt = _Fetcher(target, "target", self.max_concurrency)
            src_desc, tgt_desc = await gather_or_cancel(
                [src.existing_table(source_table), tgt.existing_table(target_table)]
            )
            return classify_table_pair(
                src_desc,
                tgt_desc,
                engine,
                source.database,
                target.database,
                self.options,
            )
        finally:
            self._is_comparing = False
