"""LLM module - provider interface and the completion client used by the session core."""

from .base import (
    LLMProvider, LLMMessage, LLMResponse,
    LLMProviderError, TransientProviderError, ProviderRejectedError, EmptyCompletionError,
)
from .openai_compatible import OpenAICompatibleProvider, GroqProvider, OpenAIProvider
from .factory import create_llm_provider
from .completion_client import (
    CompletionClient, CompletionResult, CHAT_FALLBACK_TEXT, SUMMARY_FALLBACK_TEXT,
)

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'LLMResponse',
    'LLMProviderError',
    'TransientProviderError',
    'ProviderRejectedError',
    'EmptyCompletionError',
    'OpenAICompatibleProvider',
    'GroqProvider',
    'OpenAIProvider',
    'create_llm_provider',
    'CompletionClient',
    'CompletionResult',
    'CHAT_FALLBACK_TEXT',
    'SUMMARY_FALLBACK_TEXT',
]
