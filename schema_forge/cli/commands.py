"""
Parsing of REPL input into commands
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..errors import CommandError


@dataclass(frozen=True)
class CommandInfo:
    usage: str
    help: str
    min_args: int = 0
    max_args: int = 0
    # the whole remainder of the line is one argument
    raw: bool = False


COMMANDS = {
    'connect': CommandInfo('/connect <url>', 'Connect to a database', 1, 1),
    'index': CommandInfo('/index', 'Read (or re-read) the database schema'),
    'config': CommandInfo('/config <provider> <api-key> [model]', 'Set the API key (and model) for a provider', 2, 3),
    'providers': CommandInfo('/providers', 'List configured providers'),
    'model': CommandInfo('/model <provider> <model>', 'Change the model used for a provider', 2, 2),
    'use': CommandInfo('/use <provider>', 'Switch the current provider', 1, 1),
    'sql': CommandInfo('/sql <statement>', 'Run SQL directly (destructive statements allowed)', 1, 1, raw=True),
    'schema': CommandInfo('/schema [table]', 'Show the indexed schema or one table', 0, 1),
    'history': CommandInfo('/history', 'Show the conversation so far'),
    'stats': CommandInfo('/stats', 'Show statistics for the statements run so far'),
    'clear': CommandInfo('/clear', 'Forget the conversation'),
    'help': CommandInfo('/help', 'Show this help'),
    'quit': CommandInfo('/quit', 'Exit (also /exit)'),
}

ALIASES = {'exit': 'quit', 'q': 'quit'}


@dataclass(frozen=True)
class Command:
    """A parsed line of input; ``name == 'ask'`` for plain questions"""
    name: str
    args: Tuple[str, ...] = ()

    def arg(self, index: int) -> Optional[str]:
        return self.args[index] if index < len(self.args) else None


def parse_command(text: str) -> Command:
    text = (text or '').strip()
    if not text:
        raise CommandError("Empty input")

    if not text.startswith('/'):
        return Command('ask', (text,))

    head, _, rest = text[1:].partition(' ')
    name = ALIASES.get(head.lower(), head.lower())
    info = COMMANDS.get(name)
    if info is None:
        raise CommandError(f"Unknown command: /{head}. Type /help for the list of commands.")

    rest = rest.strip()
    if info.raw:
        args = (rest,) if rest else ()
    else:
        args = tuple(rest.split())

    if not info.min_args <= len(args) <= info.max_args:
        raise CommandError(f"Usage: {info.usage}")
    return Command(name, args)


def help_text() -> str:
    width = max(len(info.usage) for info in COMMANDS.values())
    lines = ["Commands:"]
    for info in COMMANDS.values():
        lines.append(f"  {info.usage.ljust(width)}  {info.help}")
    lines.append("  Anything else is sent as a question about the database.")
    return "\n".join(lines)
