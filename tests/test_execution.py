"""Tests for the execution guard and the execution agent."""

import pytest

from schema_forge.agents.execution_agent import Accepted, ExecutionAgent, ExecutionGuard, Rejected
from schema_forge.database.factory import DatabaseFactory


class TestExecutionGuard:
    @pytest.fixture()
    def guard(self):
        return ExecutionGuard()

    @pytest.mark.parametrize("sql", [
        "SELECT COUNT(*) FROM users;",
        "select name from users where id = 1",
        "WITH recent AS (SELECT * FROM orders) SELECT COUNT(*) FROM recent;",
        "INSERT INTO users (name) VALUES ('Dave');",
        "EXPLAIN SELECT * FROM users",
    ])
    def test_accepts_non_destructive(self, guard, sql):
        verdict = guard.validate(sql)
        assert isinstance(verdict, Accepted)
        assert verdict.accepted
        assert verdict.sql == sql

    @pytest.mark.parametrize("sql,verb", [
        ("DROP TABLE users;", "DROP"),
        ("truncate table orders", "TRUNCATE"),
        ("DELETE FROM users WHERE id = 1;", "DELETE"),
        ("UPDATE users SET name = 'x';", "UPDATE"),
        ("ALTER TABLE users ADD COLUMN age INTEGER;", "ALTER"),
        ("-- tidy up\nDROP TABLE orders;", "DROP"),
    ])
    def test_rejects_destructive(self, guard, sql, verb):
        verdict = guard.validate(sql)
        assert isinstance(verdict, Rejected)
        assert not verdict.accepted
        assert verb in verdict.reason
        assert "/sql" in verdict.reason
        assert verdict.sql == sql

    def test_rejects_destructive_statement_hidden_after_select(self, guard):
        verdict = guard.validate("SELECT 1; DROP TABLE users;")
        assert not verdict.accepted

    def test_rejects_data_modifying_cte(self, guard):
        verdict = guard.validate("WITH gone AS (DELETE FROM orders RETURNING *) SELECT COUNT(*) FROM gone;")
        assert not verdict.accepted

    def test_confirmed_statement_passes(self, guard):
        verdict = guard.validate("DROP TABLE users;", confirmed=True)
        assert verdict.accepted
        assert verdict.sql == "DROP TABLE users;"

    @pytest.mark.parametrize("sql", ["", "   ", ";"])
    def test_rejects_empty(self, guard, sql):
        assert not guard.validate(sql).accepted

    def test_custom_verbs(self):
        guard = ExecutionGuard(destructive_verbs={"DROP"})
        assert guard.validate("DELETE FROM users;").accepted
        assert not guard.validate("DROP TABLE users;").accepted


class TestExecutionAgent:
    @pytest.fixture()
    def adapter(self, sqlite_url):
        adapter = DatabaseFactory.from_url(sqlite_url)
        adapter.connect()
        yield adapter
        adapter.close()

    def test_success_recorded(self, adapter):
        agent = ExecutionAgent()
        result, error = agent.execute_query("SELECT name FROM users", adapter)

        assert error is None
        assert result.row_count == 3
        assert agent.get_recent_executions()[-1]['result_summary'] == "Retrieved 3 rows"

    def test_failure_returned_not_raised(self, adapter):
        agent = ExecutionAgent()
        result, error = agent.execute_query("SELECT * FROM nowhere", adapter)

        assert result is None
        assert "nowhere" in error
        stats = agent.get_execution_stats()
        assert stats['failed_executions'] == 1
        assert stats['success_rate'] == 0

    def test_history_is_bounded(self, adapter):
        agent = ExecutionAgent(max_history=2)
        for _ in range(3):
            agent.execute_query("SELECT 1", adapter)
        assert len(agent.execution_history) == 2
        agent.clear_history()
        assert agent.get_execution_stats()['total_executions'] == 0
