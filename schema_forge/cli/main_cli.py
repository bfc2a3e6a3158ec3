"""
Main CLI interface for Schema Forge
"""

import logging
from typing import Any, List, Optional

from .. import __version__
from ..agents.main_agent import QueryAnswer, Session
from ..config import ConfigStore, load_settings, mask_key
from ..database.factory import DatabaseFactory
from ..database.models import RowSet
from ..errors import NoSqlExtracted, SchemaForgeError
from ..llm.providers import DEFAULT_MODELS
from ..utils.logger import setup_logger
from .commands import Command, help_text, parse_command

logger = logging.getLogger(__name__)

MAX_DISPLAY_ROWS = 100
MAX_CELL_WIDTH = 40

BANNER = f"""
    ╔══════════════════════════════════════════════════════════╗
    ║        🛠️  Schema Forge: natural language to SQL          ║
    ╚══════════════════════════════════════════════════════════╝
    v{__version__}
"""


def _cell(value: Any) -> str:
    text = "NULL" if value is None else str(value)
    text = text.replace("\n", " ")
    if len(text) > MAX_CELL_WIDTH:
        text = text[:MAX_CELL_WIDTH - 3] + "..."
    return text


def format_table(result: RowSet, max_rows: int = MAX_DISPLAY_ROWS) -> str:
    """Render a RowSet as a plain text table"""
    if not result.has_result_set:
        if result.affected_rows is not None and result.affected_rows >= 0:
            return f"{result.affected_rows} row(s) affected"
        return "Statement executed"

    headers = [_cell(c) for c in result.columns]
    rows = [[_cell(v) for v in row] for row in result.rows[:max_rows]]
    widths = [len(h) for h in headers]
    for row in rows:
        for i, value in enumerate(row):
            widths[i] = max(widths[i], len(value))

    separator = "+-" + "-+-".join("-" * w for w in widths) + "-+"
    lines = [
        separator,
        "| " + " | ".join(h.ljust(w) for h, w in zip(headers, widths)) + " |",
        separator,
    ]
    for row in rows:
        lines.append("| " + " | ".join(v.ljust(w) for v, w in zip(row, widths)) + " |")
    lines.append(separator)

    footer = f"{result.row_count} row(s)"
    if result.row_count > max_rows:
        footer += f", showing first {max_rows}"
    lines.append(footer)
    return "\n".join(lines)


def render_answer(answer: QueryAnswer) -> str:
    lines: List[str] = []
    if answer.translation is not None:
        lines.append("✨ Generated SQL:")
        lines.append(answer.translation.sql)
        if answer.translation.explanation:
            lines.append("")
            lines.append(answer.translation.explanation)
        lines.append("")

    if not answer.verdict.accepted:
        lines.append(f"⚠️ Not executed: {answer.verdict.reason}")
    elif answer.error:
        lines.append(f"Error: {answer.error}")
    elif answer.rows is not None:
        lines.append(format_table(answer.rows))
    return "\n".join(lines)


def render_error(error: Exception) -> str:
    message = f"Error: {error}"
    if isinstance(error, NoSqlExtracted) and error.raw_response:
        message += "\n\nModel response:\n" + error.raw_response.strip()
    elif isinstance(error, SchemaForgeError) and not error.is_user_facing():
        logger.debug("Request failed", exc_info=error)
        message += "\n(set SCHEMA_FORGE_LOG_LEVEL=DEBUG for details)"
    return message


def _show_schema(session: Session, table_name: Optional[str]):
    schema = session.cache.get()
    if table_name:
        table = session.describe_table(table_name)
        if table is None:
            print(f"Table '{table_name}' not found")
            return
        print(f"\n📋 {table.format_schema()}")
        return

    print(f"\n📊 {len(schema.tables_only())} tables, {len(schema.views())} views, "
          f"{schema.column_count} columns")
    for table in schema.tables:
        kind = " (view)" if table.is_view else ""
        print(f"  - {table.name}{kind}: {len(table.columns)} columns")
    if schema.relationships:
        print("\n🔗 Relationships:")
        for rel in schema.relationships:
            print(f"  {rel['from_table']}.{rel['from_column']} -> {rel['to_table']}.{rel['to_column']}")


def _show_stats(session: Session):
    stats = session.execution_stats()
    if not stats['total_executions']:
        print("No statements run yet")
        return
    print(f"\n📈 {stats['total_executions']} statements, {stats['successful_executions']} succeeded "
          f"({stats['success_rate']:.0f}%), average {stats['average_execution_time']:.3f}s")
    for record in session.recent_executions():
        mark = "✅" if record['success'] else "❌"
        detail = record['result_summary'] if record['success'] else record['error']
        print(f"  {mark} {_cell(record['sql'])} ({record['execution_time']:.3f}s) {detail}")


def _show_providers(session: Session):
    configs = session.providers()
    if not configs:
        print("No providers configured. Use /config <provider> <api-key> [model]")
        return
    current = session.current_provider
    for config in configs:
        marker = "*" if current is not None and config.provider == current.provider else " "
        print(f" {marker} {config.provider.value:<10} {config.effective_model:<32} {mask_key(config.api_key)}")
    print(f"\nAvailable: {', '.join(kind.value for kind in DEFAULT_MODELS)}")


def dispatch(session: Session, command: Command) -> bool:
    """Run one command; returns False when the REPL should stop"""
    name = command.name

    if name == 'quit':
        return False

    if name == 'help':
        print(help_text())
    elif name == 'connect':
        descriptor = session.connect(command.arg(0))
        print(f"✅ Connected to {descriptor.kind.display_name}: {descriptor.safe_url}")
        print("Run /index to read the schema")
    elif name == 'index':
        print("🔍 Analyzing database schema...")
        schema = session.index()
        print(f"✅ Indexed {len(schema.tables_only())} tables, {len(schema.views())} views "
              f"and {len(schema.relationships)} relationships")
    elif name == 'config':
        config = session.configure(command.arg(0), command.arg(1), command.arg(2))
        print(f"✅ {config.provider.value} configured (model: {config.effective_model})")
    elif name == 'providers':
        _show_providers(session)
    elif name == 'model':
        config = session.set_model(command.arg(0), command.arg(1))
        print(f"✅ {config.provider.value} now uses {config.effective_model}")
    elif name == 'use':
        config = session.use_provider(command.arg(0))
        print(f"✅ Using {config.provider.value} ({config.effective_model})")
    elif name == 'sql':
        print(render_answer(session.run_sql(command.arg(0))))
    elif name == 'schema':
        _show_schema(session, command.arg(0))
    elif name == 'history':
        turns = session.history()
        if not turns:
            print("No conversation yet")
        for i, turn in enumerate(turns, 1):
            print(f"{i}. {turn.question}\n   {turn.answer}")
    elif name == 'stats':
        _show_stats(session)
    elif name == 'clear':
        session.clear()
        print("🗑️ Conversation cleared")
    elif name == 'ask':
        print(render_answer(session.ask(command.arg(0))))
    return True


def run(session: Session):
    print(BANNER)
    print(f"Supported databases: {', '.join(DatabaseFactory.get_supported_types())}")
    current = session.current_provider
    if current is None:
        print("No LLM provider configured yet. Use /config <provider> <api-key> [model]")
    else:
        print(f"Provider: {current.provider.value} ({current.effective_model})")
    print("Type /help for commands.")

    while True:
        try:
            user_input = input("\n💬 schema-forge> ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n👋 Goodbye!")
            break

        if not user_input:
            continue

        try:
            if not dispatch(session, parse_command(user_input)):
                print("👋 Goodbye!")
                break
        except KeyboardInterrupt:
            print("\n⏹️ Request cancelled")
        except SchemaForgeError as e:
            print(render_error(e))
        except Exception as e:
            logger.debug("Unhandled error", exc_info=True)
            print(f"Error: {e}")

    session.disconnect()


def main():
    """Entry point for the schema-forge command"""
    settings = load_settings()
    setup_logger(level=settings.log_level)
    store = ConfigStore.load(settings.config_path)
    session = Session(config_store=store, settings=settings)
    run(session)


if __name__ == "__main__":
    main()
