"""Tests for pulling SQL out of model responses."""

import pytest

from schema_forge.errors import NoSqlExtracted
from schema_forge.utils.sql_extractor import extract_sql


class TestFencedBlocks:
    def test_sql_fence_with_explanation(self):
        text = (
            "```sql\nSELECT COUNT(*) FROM users\nWHERE signup_date >= date('now', '-7 days');\n```\n"
            "This counts users who signed up in the last seven days."
        )
        result = extract_sql(text)
        assert result.sql == "SELECT COUNT(*) FROM users\nWHERE signup_date >= date('now', '-7 days');"
        assert result.explanation == "This counts users who signed up in the last seven days."

    def test_untagged_fence(self):
        result = extract_sql("Here you go:\n```\nSELECT name FROM users\n```")
        assert result.sql == "SELECT name FROM users;"
        assert result.explanation == "Here you go:"

    def test_skips_non_sql_fence(self):
        text = "```python\nprint('hi')\n```\n```sql\nSELECT 1 AS one\n```"
        assert extract_sql(text).sql == "SELECT 1 AS one;"

    def test_cte(self):
        text = "```sql\nWITH recent AS (SELECT * FROM orders)\nSELECT COUNT(*) FROM recent;\n```"
        assert extract_sql(text).sql.startswith("WITH recent AS")

    @pytest.mark.parametrize("sql", [
        "SELECT a FROM t;",
        "WITH a AS (SELECT id FROM users) SELECT COUNT(*) FROM a;",
        "UPDATE a SET x = 1;",
        "SELECT this FROM that;",
    ])
    def test_short_identifiers_after_the_verb(self, sql):
        assert extract_sql(f"```sql\n{sql}\n```").sql == sql


class TestInlineStatements:
    def test_bare_statement(self):
        assert extract_sql("SELECT name FROM users;").sql == "SELECT name FROM users;"

    def test_statement_after_prose(self):
        text = "The query is:\n\nSELECT id, name\nFROM users\nORDER BY id;\n\nIt lists every user."
        result = extract_sql(text)
        assert result.sql == "SELECT id, name\nFROM users\nORDER BY id;"

    def test_lowercase_statement(self):
        assert extract_sql("select * from orders").sql == "select * from orders;"

    @pytest.mark.parametrize("sql", [
        "SELECT a FROM t;",
        "UPDATE a SET x = 1;",
        "INSERT INTO a VALUES (1);",
    ])
    def test_short_identifiers_without_fence(self, sql):
        assert extract_sql(f"Here it is:\n\n{sql}").sql == sql


class TestNoSql:
    @pytest.mark.parametrize("text", [
        "",
        "   ",
        "I'm sorry, I cannot answer that question with the given schema.",
        "Select the table you want to query first.",
        "SELECT",
    ])
    def test_raises(self, text):
        with pytest.raises(NoSqlExtracted):
            extract_sql(text)

    def test_keeps_raw_response(self):
        text = "There is no table about weather in this database."
        with pytest.raises(NoSqlExtracted) as exc:
            extract_sql(text)
        assert exc.value.raw_response == text
