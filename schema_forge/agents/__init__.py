"""
Agents that turn questions into executed SQL
"""

from .context_agent import ConversationContext, ConversationTurn
from .sql_generation_agent import QueryTranslator, TranslationRequest, TranslationResult
from .execution_agent import Accepted, ExecutionAgent, ExecutionGuard, Rejected, Verdict
from .main_agent import QueryAnswer, Session, SessionState

__all__ = [
    'ConversationContext',
    'ConversationTurn',
    'QueryTranslator',
    'TranslationRequest',
    'TranslationResult',
    'Accepted',
    'Rejected',
    'Verdict',
    'ExecutionGuard',
    'ExecutionAgent',
    'QueryAnswer',
    'Session',
    'SessionState',
]
