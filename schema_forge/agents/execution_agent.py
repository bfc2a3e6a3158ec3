"""
Execution guard and execution agent for generated SQL
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Deque, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

import sqlparse
from sqlparse import tokens as T

from ..config import DEFAULT_DESTRUCTIVE_VERBS
from ..database.adapters import DatabaseAdapter
from ..database.models import RowSet
from ..errors import SchemaForgeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Accepted:
    sql: str
    accepted = True


@dataclass(frozen=True)
class Rejected:
    reason: str
    sql: str = ""
    accepted = False


Verdict = Union[Accepted, Rejected]


class ExecutionGuard:
    """Blocks destructive statements that the user has not explicitly confirmed.

    The guard never rewrites SQL: accepted text is passed on unchanged.
    """

    def __init__(self, destructive_verbs: Iterable[str] = DEFAULT_DESTRUCTIVE_VERBS):
        self.destructive_verbs: FrozenSet[str] = frozenset(v.lower() for v in destructive_verbs)

    def _verbs(self, statement) -> List[str]:
        verbs = []
        first = statement.token_first(skip_ws=True, skip_cm=True)
        if first is not None and first.value.strip():
            verbs.append(first.value.split()[0].lower())

        stmt_type = statement.get_type()
        if stmt_type and stmt_type != 'UNKNOWN':
            verbs.append(stmt_type.lower())

        if verbs and verbs[0] == 'with':
            # data-modifying CTEs hide the verb inside the WITH clause
            for token in statement.flatten():
                if token.ttype in (T.DML, T.DDL):
                    verbs.append(token.value.lower())
        return verbs

    def validate(self, sql: str, confirmed: bool = False) -> Verdict:
        if not sql or not sql.strip():
            return Rejected("Empty statement", sql or "")

        statements = [s for s in sqlparse.parse(sql) if s.value.strip().strip(';').strip()]
        if not statements:
            return Rejected("No SQL statement found", sql)

        for statement in statements:
            destructive = [v for v in self._verbs(statement) if v in self.destructive_verbs]
            if destructive and not confirmed:
                verb = destructive[0].upper()
                reason = (f"{verb} statement blocked: destructive statements are not run automatically. "
                          f"Re-issue it with /sql if you really want to run it.")
                logger.warning(f"Rejected {verb} statement")
                return Rejected(reason, sql)

        return Accepted(sql)


class ExecutionAgent:
    """Runs accepted SQL and keeps a bounded log of what ran"""

    def __init__(self, max_history: int = 100):
        self.execution_history: Deque[Dict[str, Any]] = deque(maxlen=max_history)

    def execute_query(self, sql: str, adapter: DatabaseAdapter) -> Tuple[Optional[RowSet], Optional[str]]:
        """Execute query using the provided adapter; failures come back as the error string"""
        timestamp = datetime.now()
        started = time.perf_counter()

        try:
            result = adapter.execute_query(sql)
            error = None
        except SchemaForgeError as e:
            result, error = None, str(e)

        summary = self._create_result_summary(result) if error is None else 'Execution failed'
        self.execution_history.append({
            'timestamp': timestamp,
            'sql': sql,
            'execution_time': time.perf_counter() - started,
            'success': error is None,
            'error': error,
            'result_summary': summary,
        })
        if error:
            logger.warning(f"Query failed: {error}")
        else:
            logger.info(f"Query executed: {summary}")
        return result, error

    def _create_result_summary(self, result: RowSet) -> str:
        if result.has_result_set:
            return f"Retrieved {result.row_count} rows"
        if result.affected_rows is not None and result.affected_rows >= 0:
            return f"Affected {result.affected_rows} rows"
        return "Operation completed"

    def get_execution_stats(self) -> Dict[str, Any]:
        records = list(self.execution_history)
        total = len(records)
        successful = sum(1 for record in records if record['success'])
        total_time = sum(record['execution_time'] for record in records)
        return {
            'total_executions': total,
            'successful_executions': successful,
            'failed_executions': total - successful,
            'total_execution_time': total_time,
            'average_execution_time': total_time / total if total else 0.0,
            'success_rate': successful / total * 100 if total else 0.0,
        }

    def get_recent_executions(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recent records last"""
        return list(self.execution_history)[-limit:] if limit > 0 else []

    def clear_history(self):
        self.execution_history.clear()
