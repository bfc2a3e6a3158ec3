"""Tests for the schema model types."""

import pytest

from schema_forge.database.models import (
    ColumnDescriptor,
    ConnectionDescriptor,
    DatabaseKind,
    RowSet,
    SchemaModel,
    TableDescriptor,
)


class TestSchemaModelInvariants:
    def test_duplicate_column_rejected(self):
        with pytest.raises(ValueError):
            TableDescriptor(
                name="users",
                columns=(ColumnDescriptor("id", "INTEGER"), ColumnDescriptor("id", "TEXT")),
            )

    def test_duplicate_table_rejected(self):
        table = TableDescriptor(name="users", columns=(ColumnDescriptor("id", "INTEGER"),))
        with pytest.raises(ValueError):
            SchemaModel(db_kind=DatabaseKind.SQLITE, tables=(table, table))

    def test_unknown_table_kind_rejected(self):
        with pytest.raises(ValueError):
            TableDescriptor(name="users", kind="index")

    def test_equality_ignores_indexed_at(self, shop_schema):
        again = SchemaModel(
            db_kind=shop_schema.db_kind,
            tables=shop_schema.tables,
            database_name=shop_schema.database_name,
        )
        assert again == shop_schema


class TestSchemaModelQueries:
    def test_get_table_falls_back_to_case_insensitive(self, shop_schema):
        assert shop_schema.get_table("users").name == "users"
        assert shop_schema.get_table("USERS").name == "users"
        assert shop_schema.get_table("missing") is None

    def test_relationships_from_foreign_keys(self, shop_schema):
        assert shop_schema.relationships == [{
            'from_table': 'orders',
            'from_column': 'user_id',
            'to_table': 'users',
            'to_column': 'id',
            'type': 'foreign_key',
        }]

    def test_column_count(self, shop_schema):
        assert shop_schema.column_count == 6

    def test_prompt_context_lists_every_table(self, shop_schema):
        context = shop_schema.to_prompt_context()
        assert "Database Type: SQLite" in context
        assert "Table: users" in context
        assert "Table: orders" in context
        assert "id: INTEGER PRIMARY KEY NOT NULL" in context
        assert "user_id -> users.id" in context

    def test_empty_schema_prompt_context(self):
        context = SchemaModel(db_kind=DatabaseKind.POSTGRESQL).to_prompt_context()
        assert "(no tables)" in context


class TestConnectionDescriptor:
    def test_safe_url_masks_password(self):
        descriptor = ConnectionDescriptor(
            kind=DatabaseKind.POSTGRESQL,
            url="postgresql://app:s3cret@db/shop",
            database="shop",
            password="s3cret",
        )
        assert descriptor.safe_url == "postgresql://app:***@db/shop"
        assert "s3cret" not in repr(descriptor)


class TestRowSet:
    def test_result_set(self):
        rows = RowSet(columns=["n"], rows=[(1,), (2,)])
        assert rows.has_result_set
        assert rows.row_count == 2

    def test_statement_without_rows(self):
        rows = RowSet(affected_rows=3)
        assert not rows.has_result_set
        assert rows.row_count == 0
