"""
Session: ties the connection, schema cache, conversation context and
provider configuration together for one user
"""

import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..config import ConfigStore, ProviderConfig, Settings
from ..database.adapters import DatabaseAdapter
from ..database.cache import SchemaCache
from ..database.factory import DatabaseFactory, parse_connection_url
from ..database.models import ConnectionDescriptor, RowSet, SchemaModel, TableDescriptor
from ..errors import NoSchemaIndexed, NotConnected
from ..llm.providers import LLMProvider, get_provider
from ..utils.retry import RetryExecutor
from .context_agent import ConversationContext, ConversationTurn
from .execution_agent import ExecutionAgent, ExecutionGuard, Verdict
from .sql_generation_agent import QueryTranslator, TranslationResult

logger = logging.getLogger(__name__)


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    INDEXED = "indexed"
    TRANSLATING = "translating"


@dataclass
class QueryAnswer:
    """Everything produced for one question"""
    translation: Optional[TranslationResult]
    verdict: Verdict
    rows: Optional[RowSet] = None
    error: Optional[str] = None

    @property
    def sql(self) -> Optional[str]:
        return self.translation.sql if self.translation else self.verdict.sql

    @property
    def executed(self) -> bool:
        return self.verdict.accepted and self.error is None


class Session:
    """One user's connection, schema cache and conversation.

    The ConfigStore may be shared between sessions; everything else is
    owned by the session. Errors are raised to the caller and never leave
    the session half-updated.
    """

    def __init__(self, config_store: Optional[ConfigStore] = None, settings: Optional[Settings] = None,
                 provider_factory: Optional[Callable[..., LLMProvider]] = None,
                 executor: Optional[RetryExecutor] = None,
                 adapter_factory: Callable[[ConnectionDescriptor], DatabaseAdapter] = DatabaseFactory.create_connector):
        self.settings = settings or Settings()
        self.config_store = config_store if config_store is not None else ConfigStore()

        if provider_factory is None:
            provider_factory = functools.partial(get_provider, timeout=self.settings.request_timeout)
        if executor is None:
            executor = RetryExecutor(
                max_attempts=self.settings.max_attempts,
                base_delay=self.settings.base_delay,
                max_delay=self.settings.max_delay,
                jitter=self.settings.jitter,
            )

        self.adapter_factory = adapter_factory
        self.cache = SchemaCache()
        self.context = ConversationContext(max_turns=self.settings.max_turns)
        self.translator = QueryTranslator(executor=executor, provider_factory=provider_factory)
        self.guard = ExecutionGuard(self.settings.destructive_verbs)
        self.execution_agent = ExecutionAgent()

        self.adapter: Optional[DatabaseAdapter] = None
        self.descriptor: Optional[ConnectionDescriptor] = None
        self.state = SessionState.DISCONNECTED

    # Connection

    def connect(self, url: str) -> ConnectionDescriptor:
        """Connect to a database URL, replacing any existing connection"""
        adapter = None
        try:
            descriptor = parse_connection_url(url)
            adapter = self.adapter_factory(descriptor)
            adapter.connect()
        except Exception:
            if adapter is not None:
                adapter.close()
            self._drop_connection()
            raise

        self._drop_connection()
        self.adapter = adapter
        self.descriptor = descriptor
        self.cache.bind(descriptor.url)
        self.context.clear()
        self.state = SessionState.CONNECTED
        logger.info(f"Connected to {descriptor.kind.display_name}: {descriptor.safe_url}")
        return descriptor

    def _drop_connection(self):
        if self.adapter is not None:
            self.adapter.close()
        self.adapter = None
        self.descriptor = None
        self.cache.bind(None)
        self.context.clear()
        self.state = SessionState.DISCONNECTED

    def disconnect(self) -> None:
        if self.adapter is not None:
            logger.info(f"Disconnected from {self.descriptor.safe_url}")
        self._drop_connection()
        self.translator.close()

    @property
    def is_connected(self) -> bool:
        return self.adapter is not None and self.adapter.is_connected

    def _require_adapter(self) -> DatabaseAdapter:
        if self.adapter is None:
            raise NotConnected()
        return self.adapter

    # Schema

    def index(self) -> SchemaModel:
        """Introspect the connected database and cache the result"""
        adapter = self._require_adapter()
        model = adapter.analyze_schema()
        self.cache.set(model)
        self.state = SessionState.INDEXED
        logger.info(f"Indexed {len(model.tables_only())} tables, {len(model.views())} views, "
                    f"{model.column_count} columns")
        return model

    @property
    def schema(self) -> Optional[SchemaModel]:
        return self.cache.peek()

    def describe_table(self, name: str) -> Optional[TableDescriptor]:
        return self.cache.get().get_table(name)

    # Questions

    def ask(self, question: str) -> QueryAnswer:
        """Translate a question, check it with the guard and run it if accepted"""
        if self.state not in (SessionState.INDEXED, SessionState.TRANSLATING) or not self.cache.is_indexed:
            raise NoSchemaIndexed()
        schema = self.cache.get()
        provider_config = self.config_store.require_current()

        self.state = SessionState.TRANSLATING
        try:
            translation = self.translator.translate(
                question, schema, self.context, provider_config, db_kind=self.descriptor.kind
            )
        finally:
            self.state = SessionState.INDEXED

        verdict = self.guard.validate(translation.sql)
        if not verdict.accepted:
            return QueryAnswer(translation=translation, verdict=verdict)

        rows, error = self.execution_agent.execute_query(translation.sql, self.adapter)
        return QueryAnswer(translation=translation, verdict=verdict, rows=rows, error=error)

    def run_sql(self, sql: str) -> QueryAnswer:
        """Raw SQL typed by the user; counts as explicit confirmation"""
        adapter = self._require_adapter()
        verdict = self.guard.validate(sql, confirmed=True)
        if not verdict.accepted:
            return QueryAnswer(translation=None, verdict=verdict)
        rows, error = self.execution_agent.execute_query(sql.strip(), adapter)
        return QueryAnswer(translation=None, verdict=verdict, rows=rows, error=error)

    def clear(self) -> None:
        """Forget the conversation; connection and schema stay"""
        self.context.clear()

    def history(self) -> Tuple[ConversationTurn, ...]:
        return self.context.snapshot()

    def execution_stats(self) -> Dict[str, Any]:
        return self.execution_agent.get_execution_stats()

    def recent_executions(self, limit: int = 5) -> List[Dict[str, Any]]:
        return self.execution_agent.get_recent_executions(limit)

    # Providers

    def configure(self, provider, api_key: str, model: Optional[str] = None) -> ProviderConfig:
        config = self.config_store.configure(provider, api_key, model)
        self.config_store.save()
        return config

    def set_model(self, provider, model: str) -> ProviderConfig:
        config = self.config_store.set_model(provider, model)
        self.config_store.save()
        return config

    def use_provider(self, provider) -> ProviderConfig:
        config = self.config_store.use(provider)
        self.config_store.save()
        return config

    def providers(self) -> List[ProviderConfig]:
        return self.config_store.providers()

    @property
    def current_provider(self) -> Optional[ProviderConfig]:
        return self.config_store.current()
