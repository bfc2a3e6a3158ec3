"""Tests for command parsing and the REPL."""

import pytest

from schema_forge.cli import main_cli
from schema_forge.cli.commands import Command, help_text, parse_command
from schema_forge.database.models import RowSet
from schema_forge.errors import CommandError, NoSqlExtracted, NotConnected, TranslationError


class TestParseCommand:
    def test_plain_text_is_a_question(self):
        assert parse_command("  How many users signed up last week? ") == Command(
            "ask", ("How many users signed up last week?",)
        )

    def test_connect(self):
        assert parse_command("/connect sqlite:///shop.db") == Command("connect", ("sqlite:///shop.db",))

    def test_config_with_and_without_model(self):
        assert parse_command("/config openai sk-1").args == ("openai", "sk-1")
        assert parse_command("/config openai sk-1 gpt-4o-mini").args == ("openai", "sk-1", "gpt-4o-mini")

    def test_sql_keeps_the_whole_statement(self):
        command = parse_command("/sql DELETE FROM users WHERE name = 'Bob Smith'")
        assert command == Command("sql", ("DELETE FROM users WHERE name = 'Bob Smith'",))

    def test_schema_optional_table(self):
        assert parse_command("/schema").args == ()
        assert parse_command("/schema users").arg(0) == "users"

    @pytest.mark.parametrize("text", ["/quit", "/exit", "/QUIT"])
    def test_quit_aliases(self, text):
        assert parse_command(text).name == "quit"

    @pytest.mark.parametrize("text", [
        "",
        "/frobnicate",
        "/connect",
        "/config openai",
        "/config openai sk-1 gpt-4o extra",
        "/index now",
        "/sql",
        "/use",
    ])
    def test_errors(self, text):
        with pytest.raises(CommandError):
            parse_command(text)

    def test_help_mentions_every_command(self):
        text = help_text()
        for name in ("/connect", "/index", "/config", "/providers", "/model", "/use",
                     "/sql", "/schema", "/history", "/stats", "/clear", "/help", "/quit"):
            assert name in text


class TestRendering:
    def test_format_table(self):
        table = main_cli.format_table(RowSet(columns=["id", "name"], rows=[(1, "Alice"), (2, None)]))
        lines = table.splitlines()
        assert lines[1] == "| id | name  |"
        assert lines[3] == "| 1  | Alice |"
        assert lines[4] == "| 2  | NULL  |"
        assert lines[-1] == "2 row(s)"

    def test_format_table_truncates_rows(self):
        table = main_cli.format_table(RowSet(columns=["n"], rows=[(i,) for i in range(5)]), max_rows=2)
        assert table.splitlines()[-1] == "5 row(s), showing first 2"

    def test_format_affected_rows(self):
        assert main_cli.format_table(RowSet(affected_rows=3)) == "3 row(s) affected"

    def test_render_no_sql_error_shows_response(self):
        text = main_cli.render_error(NoSqlExtracted("I don't know."))
        assert text.startswith("Error: ")
        assert "I don't know." in text

    def test_internal_error_points_at_debug_logging(self):
        text = main_cli.render_error(TranslationError("LLM request failed: openai: bad gateway"))
        assert text.startswith("Error: LLM request failed")
        assert "SCHEMA_FORGE_LOG_LEVEL=DEBUG" in text

    def test_user_facing_error_is_shown_as_is(self):
        assert main_cli.render_error(NotConnected()) == "Error: Not connected to any database. Use /connect first."

    def test_stats_before_any_statement(self, session, capsys):
        main_cli.dispatch(session, parse_command("/stats"))
        assert "No statements run yet" in capsys.readouterr().out


class TestRepl:
    def feed(self, monkeypatch, lines):
        inputs = iter(lines)

        def fake_input(prompt=""):
            try:
                return next(inputs)
            except StopIteration:
                raise EOFError

        monkeypatch.setattr("builtins.input", fake_input)

    def test_full_flow(self, session, sqlite_url, monkeypatch, capsys):
        self.feed(monkeypatch, [
            f"/connect {sqlite_url}",
            "/index",
            "/config openai sk-test",
            "How many users?",
            "/history",
            "/schema users",
            "/sql SELECT name FROM users WHERE id = 1",
            "/stats",
            "/quit",
        ])

        main_cli.run(session)

        out = capsys.readouterr().out
        assert "Connected to SQLite" in out
        assert "Indexed 2 tables, 1 views" in out
        assert "openai configured" in out
        assert "SELECT COUNT(*) FROM users;" in out
        assert "| 3        |" in out
        assert "Table: users" in out
        assert "| Alice |" in out
        assert "2 statements, 2 succeeded (100%)" in out
        assert "Retrieved 1 rows" in out
        assert "Goodbye" in out
        assert not session.is_connected

    def test_errors_do_not_end_the_session(self, session, monkeypatch, capsys):
        self.feed(monkeypatch, ["/index", "/bogus", "How many users?", "/help"])

        main_cli.run(session)

        out = capsys.readouterr().out
        assert "Error: Not connected to any database" in out
        assert "Error: Unknown command: /bogus" in out
        assert "Error: No schema indexed" in out
        assert "Commands:" in out

    def test_interrupt_during_request_returns_to_prompt(self, session, sqlite_url, monkeypatch, capsys,
                                                        fake_provider):
        fake_provider.responses = [KeyboardInterrupt()]
        self.feed(monkeypatch, [
            f"/connect {sqlite_url}",
            "/index",
            "/config openai sk-test",
            "How many users?",
            "/history",
        ])

        main_cli.run(session)

        out = capsys.readouterr().out
        assert "Request cancelled" in out
        assert "No conversation yet" in out
