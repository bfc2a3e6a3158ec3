"""
LLM provider abstraction
"""

from .providers import (
    DEFAULT_MODELS,
    PROVIDERS,
    AnthropicProvider,
    CohereProvider,
    GroqProvider,
    LLMProvider,
    MinimaxProvider,
    OpenAIProvider,
    ProviderKind,
    QwenProvider,
    XAIProvider,
    ZAIProvider,
    get_provider,
)

__all__ = [
    'DEFAULT_MODELS',
    'PROVIDERS',
    'LLMProvider',
    'ProviderKind',
    'AnthropicProvider',
    'OpenAIProvider',
    'GroqProvider',
    'CohereProvider',
    'XAIProvider',
    'MinimaxProvider',
    'QwenProvider',
    'ZAIProvider',
    'get_provider',
]
