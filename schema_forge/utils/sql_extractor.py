"""
Pull a SQL statement out of free-form model output
"""

import re
from dataclasses import dataclass
from typing import Optional

from ..errors import NoSqlExtracted

SQL_VERBS = (
    'SELECT', 'WITH', 'INSERT', 'UPDATE', 'DELETE', 'CREATE', 'DROP', 'ALTER',
    'TRUNCATE', 'MERGE', 'REPLACE', 'EXPLAIN', 'SHOW', 'DESCRIBE', 'PRAGMA', 'VALUES',
)

_VERB_PATTERN = r'(?:' + '|'.join(SQL_VERBS) + r')\b'

SQL_FENCE = re.compile(r'```[ \t]*(?:sql|postgresql|mysql|sqlite|tsql|mssql)[ \t]*\n(.*?)```', re.IGNORECASE | re.DOTALL)
ANY_FENCE = re.compile(r'```[^\n`]*\n(.*?)```', re.DOTALL)
STARTS_WITH_VERB = re.compile(r'^\s*(?:--[^\n]*\n\s*)*' + _VERB_PATTERN, re.IGNORECASE)
INLINE_STATEMENT = re.compile(r'^[ \t]*(' + _VERB_PATTERN + r'.*?)(?:;|\n[ \t]*\n|\Z)',
                              re.IGNORECASE | re.DOTALL | re.MULTILINE)
# "SELECT" also opens plenty of English sentences
SENTENCE_LIKE = re.compile(r'^(?:SELECT|WITH|SHOW|DESCRIBE|EXPLAIN|REPLACE|UPDATE|CREATE|DELETE|DROP)\s+(?:the|a|an|all of|your|this|that|these|those|which)\s',
                           re.IGNORECASE)
CLAUSE_KEYWORD = re.compile(r'\b(?:FROM|SET|INTO|VALUES)\b|\bAS\s*\(', re.IGNORECASE)


@dataclass(frozen=True)
class ExtractedSQL:
    sql: str
    explanation: Optional[str] = None


def _clean(statement: str) -> str:
    statement = statement.strip()
    if statement and not statement.endswith(';'):
        statement += ';'
    return statement


def _plausible(statement: str, tagged: bool = False) -> bool:
    body = statement.strip().rstrip(';').strip()
    if not STARTS_WITH_VERB.match(body):
        return False
    # a ```sql block is SQL even when it reads like English
    if not tagged and SENTENCE_LIKE.match(body) and not CLAUSE_KEYWORD.search(body):
        return False
    # a bare verb is not a statement
    return len(body.split()) >= 2


def _explanation(text: str, start: int, end: int) -> Optional[str]:
    prose = (text[:start] + "\n" + text[end:]).strip()
    prose = re.sub(r'\n{3,}', '\n\n', prose)
    return prose or None


def extract_sql(text: str) -> ExtractedSQL:
    """Find the SQL statement in a model response.

    Tried in order: a ```sql fenced block, any fenced block whose body
    starts with a SQL verb, then an unfenced statement starting at a SQL
    verb at the beginning of a line and running to the first semicolon or
    blank line. Raises NoSqlExtracted when none of these match.
    """
    if not text or not text.strip():
        raise NoSqlExtracted(text or "")

    for pattern in (SQL_FENCE, ANY_FENCE):
        for match in pattern.finditer(text):
            body = match.group(1)
            if _plausible(body, tagged=pattern is SQL_FENCE):
                return ExtractedSQL(_clean(body), _explanation(text, match.start(), match.end()))

    for match in INLINE_STATEMENT.finditer(text):
        statement = match.group(1)
        if _plausible(statement):
            return ExtractedSQL(_clean(statement), _explanation(text, match.start(), match.end()))

    raise NoSqlExtracted(text)
