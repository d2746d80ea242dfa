"""Tests for snapshot classification into DiffSets.

Exercises the end-to-end pure pipeline: snapshot pair -> reconciler ->
comparator -> classified, ordered diffs with rendered SQL.
"""

import pytest

from schema_diff.config.models import CompareOptions
from schema_diff.diff.classifier import (
    classify_snapshots,
    classify_table_pair,
    diff_id,
    normalize_definition,
)
from schema_diff.diff.models import ChangeKind, DiffKind, ObjectType
from schema_diff.errors import InvalidSelectionError
from schema_diff.schema.models import (
    ColumnDescriptor,
    ColumnKey,
    Engine,
    SchemaSnapshot,
    TableDescriptor,
    ViewDescriptor,
)

ORDERS_DDL = (
    "CREATE TABLE `orders` (\n"
    "  `id` int NOT NULL AUTO_INCREMENT,\n"
    "  PRIMARY KEY (`id`)\n"
    ") ENGINE=InnoDB"
)


def _col(name: str, column_type: str = "int", nullable: bool = True, **kwargs) -> ColumnDescriptor:
    return ColumnDescriptor(name=name, column_type=column_type, is_nullable=nullable, **kwargs)


def _snapshot(
    database: str,
    tables: tuple[TableDescriptor, ...] = (),
    views: tuple[ViewDescriptor, ...] = (),
    engine: Engine = Engine.MYSQL,
) -> SchemaSnapshot:
    return SchemaSnapshot(engine=engine, database=database, tables=tables, views=views)


USERS_SRC = TableDescriptor(
    name="users",
    columns=(
        _col("id", "INT", nullable=False, column_key=ColumnKey.PRIMARY),
        _col("name", "VARCHAR(50)", nullable=False),
    ),
)
USERS_TGT = TableDescriptor(
    name="users",
    columns=(_col("id", "INT", nullable=False, column_key=ColumnKey.PRIMARY),),
)


class TestScenarios:
    """Canonical comparison scenarios."""

    def test_added_column_alters_table(self) -> None:
        """A column missing in the target yields one alter diff with ADD COLUMN."""
        ds = classify_snapshots(_snapshot("dev", (USERS_SRC,)), _snapshot("prod", (USERS_TGT,)))

        assert len(ds.diffs) == 1
        diff = ds.diffs[0]
        assert diff.diff_kind is DiffKind.ALTER
        assert diff.id == "table:users"
        assert [(c.kind, c.column_name) for c in diff.change_list] == [(ChangeKind.ADD, "name")]
        assert "ADD COLUMN name VARCHAR(50) NOT NULL" in diff.generated_sql
        assert diff.reason == "1 changes"

    def test_missing_table_uses_source_ddl_verbatim(self) -> None:
        """A table only in the source is created from its DDL unchanged."""
        orders = TableDescriptor(name="orders", columns=(_col("id"),), ddl=ORDERS_DDL)
        ds = classify_snapshots(_snapshot("dev", (orders,)), _snapshot("prod"))

        assert len(ds.diffs) == 1
        diff = ds.diffs[0]
        assert diff.diff_kind is DiffKind.CREATE
        assert diff.generated_sql == ORDERS_DDL
        assert diff.reason == "Table missing in target"
        assert diff.source_ref == "orders" and diff.target_ref is None

    def test_extra_table_is_dropped(self) -> None:
        """A table only in the target is dropped, qualified by the target database."""
        legacy = TableDescriptor(name="legacy_logs")
        ds = classify_snapshots(_snapshot("dev"), _snapshot("prod", (legacy,)))

        assert len(ds.diffs) == 1
        diff = ds.diffs[0]
        assert diff.diff_kind is DiffKind.DROP
        assert diff.generated_sql == "DROP TABLE prod.legacy_logs"

    def test_postgres_drop_is_schema_qualified(self) -> None:
        legacy = TableDescriptor(name="legacy_logs")
        ds = classify_snapshots(
            _snapshot("public", engine=Engine.POSTGRES),
            _snapshot("archive", (legacy,), engine=Engine.POSTGRES),
        )
        assert ds.diffs[0].generated_sql == "DROP TABLE archive.legacy_logs"

    def test_column_order_is_ignored(self) -> None:
        """Same columns in a different order produce no diff."""
        cols = (_col("id", nullable=False), _col("sku", "varchar(32)"), _col("price", "decimal(10,2)"))
        src = TableDescriptor(name="products", columns=cols)
        tgt = TableDescriptor(name="products", columns=(cols[2], cols[0], cols[1]))
        ds = classify_snapshots(_snapshot("dev", (src,)), _snapshot("prod", (tgt,)))
        assert ds.diffs == ()
        assert ds.counts.total == 0


class TestClassificationProperties:
    """Structural guarantees of classify_snapshots."""

    def _pair(self) -> tuple[SchemaSnapshot, SchemaSnapshot]:
        source = _snapshot(
            "dev",
            (
                USERS_SRC,
                TableDescriptor(name="orders", ddl=ORDERS_DDL),
                TableDescriptor(name="products", columns=(_col("id"),)),
                TableDescriptor(name="audit", ddl="CREATE TABLE audit (id int)"),
            ),
        )
        target = _snapshot(
            "prod",
            (
                TableDescriptor(name="sessions"),
                USERS_TGT,
                TableDescriptor(name="products", columns=(_col("id"),)),
                TableDescriptor(name="legacy_logs"),
            ),
        )
        return source, target

    def test_self_comparison_is_empty(self) -> None:
        """Comparing a snapshot with itself yields no differences."""
        source, _ = self._pair()
        ds = classify_snapshots(source, source.model_copy(update={"database": "copy"}))
        assert ds.counts.total == 0
        assert ds.diffs == ()

    def test_every_table_classified_once(self) -> None:
        """Each table on either side appears in at most one diff."""
        source, target = self._pair()
        ds = classify_snapshots(source, target, CompareOptions(include_identical=True))
        names = [d.id for d in ds.diffs]
        assert len(names) == len(set(names))
        assert set(names) == {
            "table:users",
            "table:orders",
            "table:products",
            "table:audit",
            "table:sessions",
            "table:legacy_logs",
        }

    def test_order_creates_drops_alters(self) -> None:
        """Creates in source order, drops in target order, then alters."""
        source, target = self._pair()
        ds = classify_snapshots(source, target)
        assert [(d.diff_kind.value, d.name) for d in ds.diffs] == [
            ("create", "orders"),
            ("create", "audit"),
            ("drop", "sessions"),
            ("drop", "legacy_logs"),
            ("alter", "users"),
        ]
        assert (ds.counts.create, ds.counts.drop, ds.counts.alter) == (2, 2, 1)

    def test_deterministic(self) -> None:
        """Two runs over the same snapshots give equal results."""
        source, target = self._pair()
        assert classify_snapshots(source, target) == classify_snapshots(source, target)

    def test_include_identical(self) -> None:
        """Identical tables are listed on request but never counted."""
        source, target = self._pair()
        ds = classify_snapshots(source, target, CompareOptions(include_identical=True))
        identical = [d for d in ds.diffs if d.diff_kind is DiffKind.IDENTICAL]
        assert [d.name for d in identical] == ["products"]
        assert identical[0].generated_sql is None
        assert ds.counts.total == 5

    def test_labels(self) -> None:
        source, target = self._pair()
        ds = classify_snapshots(source, target)
        assert (ds.source_label, ds.target_label, ds.engine) == ("dev", "prod", Engine.MYSQL)

    def test_mysql_names_match_case_insensitively(self) -> None:
        src = _snapshot("dev", (TableDescriptor(name="Users", columns=(_col("id"),)),))
        tgt = _snapshot("prod", (TableDescriptor(name="users", columns=(_col("id"),)),))
        assert classify_snapshots(src, tgt).diffs == ()

    def test_postgres_names_are_case_sensitive(self) -> None:
        src = _snapshot(
            "a", (TableDescriptor(name="Users", ddl="CREATE TABLE \"Users\" ()"),), engine=Engine.POSTGRES
        )
        tgt = _snapshot("b", (TableDescriptor(name="users"),), engine=Engine.POSTGRES)
        ds = classify_snapshots(src, tgt)
        assert [(d.diff_kind.value, d.id) for d in ds.diffs] == [
            ("create", "table:Users"),
            ("drop", "table:users"),
        ]

    def test_engine_mismatch_rejected(self) -> None:
        with pytest.raises(InvalidSelectionError, match="across engines"):
            classify_snapshots(_snapshot("a"), _snapshot("b", engine=Engine.POSTGRES))


class TestViews:
    """View create/drop/redefine handling."""

    def test_view_diffs_follow_tables(self) -> None:
        source = _snapshot(
            "dev",
            (TableDescriptor(name="orders", ddl=ORDERS_DDL),),
            views=(
                ViewDescriptor(name="active_users", definition="SELECT id FROM users WHERE active = 1"),
                ViewDescriptor(name="totals", definition="select sum(x) from t"),
                ViewDescriptor(name="same", definition="SELECT 1"),
            ),
        )
        target = _snapshot(
            "prod",
            views=(
                ViewDescriptor(name="totals", definition="select count(x) from t"),
                ViewDescriptor(name="same", definition="select   1;"),
                ViewDescriptor(name="old_view", definition="SELECT 2"),
            ),
        )
        ds = classify_snapshots(source, target)
        assert [(d.object_type, d.diff_kind.value, d.name) for d in ds.diffs] == [
            (ObjectType.TABLE, "create", "orders"),
            (ObjectType.VIEW, "create", "active_users"),
            (ObjectType.VIEW, "drop", "old_view"),
            (ObjectType.VIEW, "alter", "totals"),
        ]
        by_id = {d.id: d for d in ds.diffs}
        assert by_id["view:active_users"].generated_sql == (
            "CREATE VIEW prod.active_users AS SELECT id FROM users WHERE active = 1"
        )
        assert by_id["view:old_view"].generated_sql == "DROP VIEW prod.old_view"
        assert by_id["view:totals"].statements == (
            "DROP VIEW IF EXISTS prod.totals",
            "CREATE VIEW prod.totals AS select sum(x) from t",
        )

    def test_views_can_be_disabled(self) -> None:
        source = _snapshot("dev", views=(ViewDescriptor(name="v", definition="SELECT 1"),))
        ds = classify_snapshots(source, _snapshot("prod"), CompareOptions(include_views=False))
        assert ds.diffs == ()

    def test_normalize_definition(self) -> None:
        assert normalize_definition("SELECT  id\n  FROM users;") == "select id from users"
        assert normalize_definition("select id from users") == "select id from users"


class TestTablePair:
    """Single-table mode."""

    def test_same_name_pair(self) -> None:
        ds = classify_table_pair(USERS_SRC, USERS_TGT, Engine.MYSQL, "dev", "prod")
        assert ds.ids == ("table:users",)
        assert ds.diffs[0].diff_kind is DiffKind.ALTER
        assert (ds.source_label, ds.target_label) == ("dev.users", "prod.users")

    def test_renamed_pair_id_and_target_sql(self) -> None:
        """Differently named tables get a composite id; SQL targets the target table."""
        renamed = USERS_TGT.model_copy(update={"name": "Members"})
        ds = classify_table_pair(USERS_SRC, renamed, Engine.MYSQL, "dev", "prod")
        diff = ds.diffs[0]
        assert diff.id == "table:users->members"
        assert diff.name == "Members"
        assert diff.generated_sql.startswith("ALTER TABLE prod.Members")

    def test_identical_pair_is_shown_not_counted(self) -> None:
        ds = classify_table_pair(USERS_SRC, USERS_SRC, Engine.MYSQL, "dev", "prod")
        assert ds.diffs[0].diff_kind is DiffKind.IDENTICAL
        assert ds.diffs[0].reason == "Identical"
        assert ds.counts.total == 0


def test_diff_id() -> None:
    assert diff_id(ObjectType.VIEW, "totals") == "view:totals"
