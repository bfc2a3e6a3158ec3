"""
SQL generation agent: natural language question -> SQL statement via an LLM
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from ..config import ProviderConfig
from ..database.models import DatabaseKind, SchemaModel
from ..errors import AuthError, FinalError, NoSchemaIndexed, ProviderError, ProviderNotConfigured, TranslationError
from ..llm.providers import LLMProvider, ProviderKind, get_provider
from ..utils.retry import RetryExecutor
from ..utils.schema_analyzer import SchemaAnalyzer
from ..utils.sql_extractor import extract_sql
from .context_agent import ConversationContext, ConversationTurn

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_TURNS = 5

DIALECT_HINTS = {
    DatabaseKind.POSTGRESQL: "Use PostgreSQL syntax (LIMIT, ILIKE, :: casts, double-quoted identifiers).",
    DatabaseKind.MYSQL: "Use MySQL syntax (LIMIT, backtick-quoted identifiers, CAST for conversions).",
    DatabaseKind.SQLITE: "Use SQLite syntax (LIMIT, date() and strftime() for dates, CAST for conversions).",
    DatabaseKind.MSSQL: "Use T-SQL syntax (TOP instead of LIMIT, square-bracket identifiers, CAST for conversions).",
}

SYSTEM_PROMPT = """You are an expert SQL developer. Convert the user's question into a single SQL query for a {dialect} database, using only the schema provided.

Rules:
1. Only use tables and columns that exist in the schema
2. Handle NULL values appropriately
3. Use proper JOIN syntax following the listed relationships
4. Add appropriate WHERE clauses for filtering
5. Prefer read-only SELECT statements unless the user explicitly asks to change data
6. {dialect_hint}

Answer with the SQL query in one ```sql code block, optionally followed by one or two sentences of explanation."""


@dataclass(frozen=True)
class TranslationRequest:
    question: str
    schema: SchemaModel
    history: Tuple[ConversationTurn, ...]
    db_kind: DatabaseKind


@dataclass(frozen=True)
class TranslationResult:
    raw_response: str
    sql: Optional[str] = None
    explanation: Optional[str] = None
    attempts: int = 1
    provider: Optional[str] = None
    model: Optional[str] = None


class QueryTranslator:
    """Builds the prompt, calls the provider through the retry executor and extracts SQL"""

    def __init__(self, executor: Optional[RetryExecutor] = None,
                 provider_factory: Callable[..., LLMProvider] = get_provider,
                 history_turns: int = DEFAULT_HISTORY_TURNS):
        self.executor = executor or RetryExecutor()
        self.provider_factory = provider_factory
        self.history_turns = history_turns
        self._providers: Dict[ProviderKind, LLMProvider] = {}

    def provider(self, kind: ProviderKind) -> LLMProvider:
        """One provider per kind, reused across questions"""
        provider = self._providers.get(kind)
        if provider is None:
            provider = self.provider_factory(kind)
            self._providers[kind] = provider
        return provider

    def close(self) -> None:
        for provider in self._providers.values():
            provider.close()
        self._providers.clear()

    def build_prompt(self, request: TranslationRequest) -> Tuple[str, str]:
        """Return (system prompt, user prompt)"""
        dialect = request.db_kind.display_name
        system = SYSTEM_PROMPT.format(dialect=dialect, dialect_hint=DIALECT_HINTS[request.db_kind])

        sections = [
            "Database Schema:",
            request.schema.to_prompt_context(),
            "",
            "Table Relationships:",
            self._relationship_context(request.schema),
        ]

        if request.history:
            sections += ["", "Previous conversation (oldest first):"]
            for i, turn in enumerate(request.history, 1):
                sections.append(f"Q{i}: {turn.question}")
                sections.append(f"A{i}: {turn.answer}")

        sections += ["", f"Question: {request.question}"]
        return system, "\n".join(sections)

    def _relationship_context(self, schema: SchemaModel) -> str:
        analyzer = SchemaAnalyzer(schema)
        lines = [f"  - {path}" for path in analyzer.join_paths()]
        for rel in analyzer.detect_implicit_relationships():
            lines.append(f"  - {rel['from_table']}.{rel['from_column']} -> "
                         f"{rel['to_table']}.{rel['to_column']} (implicit)")
        if not lines:
            return "No relationships found"
        return "Join paths:\n" + "\n".join(lines)

    def translate(self, question: str, schema: Optional[SchemaModel], context: ConversationContext,
                  provider_config: Optional[ProviderConfig],
                  db_kind: Optional[DatabaseKind] = None) -> TranslationResult:
        """Translate a question into SQL.

        Checks that need no network (schema indexed, provider configured)
        run first. The (question, SQL) turn is appended to ``context`` only
        after a statement was extracted.
        """
        if schema is None:
            raise NoSchemaIndexed()
        if provider_config is None:
            raise ProviderNotConfigured()

        question = question.strip()
        request = TranslationRequest(
            question=question,
            schema=schema,
            history=context.window(self.history_turns),
            db_kind=db_kind or schema.db_kind,
        )
        system, prompt = self.build_prompt(request)

        provider = self.provider(provider_config.provider)
        model = provider_config.effective_model
        logger.info(f"Translating with {provider_config.provider.value} ({model})")

        try:
            outcome = self.executor.execute(
                lambda: provider.generate(prompt, model, provider_config.api_key, system=system)
            )
        except (AuthError, ProviderNotConfigured):
            raise
        except FinalError as e:
            raise TranslationError(f"LLM request failed: {e}", cause=e) from e
        except ProviderError as e:
            raise TranslationError(f"LLM request failed: {e}", cause=e) from e

        raw = outcome.value
        extracted = extract_sql(raw)

        context.append(question, extracted.sql)
        return TranslationResult(
            raw_response=raw,
            sql=extracted.sql,
            explanation=extracted.explanation,
            attempts=outcome.attempts,
            provider=provider_config.provider.value,
            model=model,
        )
