"""Tests for engine-specific SQL rendering."""

import pytest

from schema_diff.diff.dialects import (
    Dialect,
    identifiers_case_sensitive,
    qualified_name,
    quote_identifier,
)
from schema_diff.schema.models import (
    ColumnDescriptor,
    Engine,
    ForeignKeyDescriptor,
    IndexDescriptor,
)


class TestQuoting:
    """Identifier quoting and qualification."""

    def test_mysql_backticks(self) -> None:
        assert quote_identifier(Engine.MYSQL, "order") == "`order`"
        assert quote_identifier(Engine.MYSQL, "we`ird") == "`we``ird`"

    def test_postgres_double_quotes(self) -> None:
        assert quote_identifier(Engine.POSTGRES, "order") == '"order"'
        assert quote_identifier(Engine.POSTGRES, 'a"b') == '"a""b"'

    def test_qualified_unquoted_by_default(self) -> None:
        assert qualified_name(Engine.MYSQL, "shop", "users") == "shop.users"

    def test_qualified_quoted(self) -> None:
        assert qualified_name(Engine.MYSQL, "shop", "users", quote=True) == "`shop`.`users`"
        assert qualified_name(Engine.POSTGRES, "public", "users", quote=True) == '"public"."users"'

    def test_case_rules(self) -> None:
        """MySQL identifiers fold case; PostgreSQL catalog names do not."""
        assert identifiers_case_sensitive(Engine.MYSQL) is False
        assert identifiers_case_sensitive(Engine.POSTGRES) is True


class TestColumnFragments:
    """Column add/modify/drop rendering."""

    def test_column_definition_full(self) -> None:
        """Type, nullability, default and extra appear in that order."""
        col = ColumnDescriptor(
            name="id",
            column_type="int",
            is_nullable=False,
            default_value=None,
            extra="auto_increment",
        )
        assert Dialect(Engine.MYSQL).column_definition(col) == "int NOT NULL auto_increment"

    def test_column_definition_with_default(self) -> None:
        col = ColumnDescriptor(name="status", column_type="varchar(20)", default_value="'active'")
        assert Dialect(Engine.MYSQL).column_definition(col) == "varchar(20) NULL DEFAULT 'active'"

    def test_add_column(self) -> None:
        col = ColumnDescriptor(name="name", column_type="VARCHAR(50)", is_nullable=False)
        assert Dialect(Engine.MYSQL).add_column(col) == ["ADD COLUMN name VARCHAR(50) NOT NULL"]

    def test_add_column_quoted(self) -> None:
        col = ColumnDescriptor(name="order", column_type="int")
        assert Dialect(Engine.MYSQL, quote=True).add_column(col) == ["ADD COLUMN `order` int NULL"]

    def test_mysql_modify_is_single_redeclaration(self) -> None:
        col = ColumnDescriptor(name="email", column_type="varchar(255)", is_nullable=False)
        assert Dialect(Engine.MYSQL).modify_column(col) == [
            "MODIFY COLUMN email varchar(255) NOT NULL"
        ]

    def test_postgres_modify_expands_to_alter_column(self) -> None:
        """PostgreSQL redeclares type, nullability and default separately."""
        col = ColumnDescriptor(
            name="email",
            column_type="varchar(255)",
            is_nullable=False,
            default_value="''::character varying",
        )
        assert Dialect(Engine.POSTGRES).modify_column(col) == [
            "ALTER COLUMN email TYPE varchar(255)",
            "ALTER COLUMN email SET NOT NULL",
            "ALTER COLUMN email SET DEFAULT ''::character varying",
        ]

    def test_postgres_modify_drops_missing_default(self) -> None:
        col = ColumnDescriptor(name="note", column_type="text", is_nullable=True)
        fragments = Dialect(Engine.POSTGRES).modify_column(col)
        assert "ALTER COLUMN note DROP NOT NULL" in fragments
        assert "ALTER COLUMN note DROP DEFAULT" in fragments

    def test_drop_column(self) -> None:
        assert Dialect(Engine.POSTGRES).drop_column("legacy") == ["DROP COLUMN legacy"]


class TestIndexAndForeignKeyFragments:
    """Index and foreign key rendering."""

    def test_mysql_index_fragments(self) -> None:
        idx = IndexDescriptor(name="idx_email", columns=("email",), unique=True)
        dialect = Dialect(Engine.MYSQL)
        assert dialect.add_index_fragment(idx) == "ADD UNIQUE INDEX idx_email (email)"
        assert dialect.drop_index_fragment("idx_email") == "DROP INDEX idx_email"

    def test_postgres_indexes_are_statements(self) -> None:
        """PostgreSQL has no ALTER TABLE index fragments."""
        idx = IndexDescriptor(name="idx_ab", columns=("a", "b"))
        dialect = Dialect(Engine.POSTGRES)
        assert dialect.add_index_fragment(idx) is None
        assert dialect.drop_index_fragment("idx_ab") is None
        assert dialect.create_index_statement("public", "t", idx) == "CREATE INDEX idx_ab ON public.t (a, b)"
        assert dialect.drop_index_statement("public", "idx_ab") == "DROP INDEX public.idx_ab"

    def test_add_foreign_key(self) -> None:
        fk = ForeignKeyDescriptor(
            constraint_name="fk_orders_user",
            column_name="user_id",
            referenced_table="users",
            referenced_column="id",
            on_delete="CASCADE",
        )
        assert Dialect(Engine.MYSQL).add_foreign_key(fk) == (
            "ADD CONSTRAINT fk_orders_user FOREIGN KEY (user_id) "
            "REFERENCES users (id) ON UPDATE NO ACTION ON DELETE CASCADE"
        )

    @pytest.mark.parametrize(
        "engine,expected",
        [
            (Engine.MYSQL, "DROP FOREIGN KEY fk_x"),
            (Engine.POSTGRES, "DROP CONSTRAINT fk_x"),
        ],
    )
    def test_drop_foreign_key(self, engine: Engine, expected: str) -> None:
        assert Dialect(engine).drop_foreign_key("fk_x") == expected


class TestStatements:
    """Whole-statement rendering."""

    def test_alter_table_joins_fragments(self) -> None:
        sql = Dialect(Engine.MYSQL).alter_table("shop", "users", ["DROP COLUMN a", "DROP COLUMN b"])
        assert sql == "ALTER TABLE shop.users\n  DROP COLUMN a,\n  DROP COLUMN b"

    def test_drop_table(self) -> None:
        assert Dialect(Engine.MYSQL).drop_table("shop", "legacy_logs") == "DROP TABLE shop.legacy_logs"

    def test_create_view_strips_terminator(self) -> None:
        sql = Dialect(Engine.POSTGRES).create_view("public", "v", "  SELECT 1;  ")
        assert sql == "CREATE VIEW public.v AS SELECT 1"

    def test_drop_view_if_exists(self) -> None:
        dialect = Dialect(Engine.MYSQL)
        assert dialect.drop_view("shop", "v") == "DROP VIEW shop.v"
        assert dialect.drop_view("shop", "v", if_exists=True) == "DROP VIEW IF EXISTS shop.v"
