"""
LLM Provider Base - Abstract base for chat completion providers.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field


@dataclass
class LLMMessage:
    """A role-tagged turn sent to the provider."""
    role: str  # "system", "user", "assistant"
    content: str

    @staticmethod
    def system(text: str) -> "LLMMessage":
        return LLMMessage(role="system", content=text)

    @staticmethod
    def user(text: str) -> "LLMMessage":
        return LLMMessage(role="user", content=text)


@dataclass
class LLMResponse:
    """Response from an LLM API call."""
    content: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)
    raw: Optional[Dict[str, Any]] = None


class LLMProviderError(Exception):
    """Provider call failed."""

    kind = "error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientProviderError(LLMProviderError):
    """Network fault, timeout, rate limit or 5xx. Worth retrying."""

    kind = "transient"


class ProviderRejectedError(LLMProviderError):
    """Request refused for a reason retrying will not fix (bad key, bad model, ...)."""

    kind = "rejected"


class EmptyCompletionError(LLMProviderError):
    """Provider answered but returned no text."""

    kind = "empty"


class LLMProvider(ABC):
    """
    Abstract base class for LLM API providers.
    Implementations raise ``LLMProviderError`` subclasses on failure.
    """

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None,
                 default_temperature: float = 0.7, default_max_tokens: int = 150):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: Conversation turns
            temperature: Sampling temperature override
            max_tokens: Response token budget override
            model: Model override

        Returns:
            LLMResponse with the generated content
        """
        pass

    def _format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, Any]]:
        """Convert LLMMessage list to API-compatible format."""
        return [{"role": m.role, "content": m.content} for m in messages]
