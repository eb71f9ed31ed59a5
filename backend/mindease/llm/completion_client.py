"""
Completion Client - the two call shapes the session core makes against the
LLM provider: a short chat reply and a session summary.

Provider failures never reach the conversation. They are turned into a
fixed fallback text, and the returned ``CompletionResult`` says so.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .base import LLMProvider, LLMMessage, LLMProviderError, TransientProviderError

logger = logging.getLogger(__name__)

CHAT_FALLBACK_TEXT = "I couldn't generate a response."
SUMMARY_FALLBACK_TEXT = "No summary generated."


@dataclass
class CompletionResult:
    """Generated text plus whether it is the fallback."""
    text: str
    fallback: bool = False
    error_kind: Optional[str] = None  # transient, rejected, empty, not_configured
    error: Optional[str] = None
    attempts: int = 0
    model: str = ""

    @property
    def ok(self) -> bool:
        return not self.fallback


class CompletionClient:
    """
    Single-turn chat completion with fixed per-call-type parameters.

    Transient provider errors are retried with exponential backoff up to
    ``max_attempts`` calls in total; rejected requests and empty completions
    fail on the first attempt.
    """

    def __init__(
        self,
        provider: Optional[LLMProvider],
        chat_model: str,
        summary_model: str,
        chat_temperature: float = 0.7,
        chat_max_tokens: int = 150,
        summary_temperature: float = 0.7,
        summary_max_tokens: int = 400,
        max_attempts: int = 3,
        retry_initial_wait: float = 0.5,
        retry_max_wait: float = 8.0,
    ):
        self.provider = provider
        self.chat_model = chat_model
        self.summary_model = summary_model
        self.chat_temperature = chat_temperature
        self.chat_max_tokens = chat_max_tokens
        self.summary_temperature = summary_temperature
        self.summary_max_tokens = summary_max_tokens
        self.max_attempts = max(1, max_attempts)
        self.retry_initial_wait = retry_initial_wait
        self.retry_max_wait = retry_max_wait

    @classmethod
    def from_settings(cls, provider: Optional[LLMProvider], config: Any) -> "CompletionClient":
        return cls(
            provider,
            chat_model=config.chat_model,
            summary_model=config.summary_model,
            chat_temperature=config.chat_temperature,
            chat_max_tokens=config.chat_max_tokens,
            summary_temperature=config.summary_temperature,
            summary_max_tokens=config.summary_max_tokens,
            max_attempts=config.llm_max_attempts,
            retry_max_wait=config.llm_retry_max_wait_seconds,
        )

    async def chat_reply(self, messages: List[LLMMessage]) -> CompletionResult:
        """
        Generate the bot reply for an assembled prompt.

        Args:
            messages: System turn with persona and context, then the user turn

        Returns:
            CompletionResult; on failure the text is CHAT_FALLBACK_TEXT
        """
        return await self._complete(
            "chat",
            messages,
            model=self.chat_model,
            temperature=self.chat_temperature,
            max_tokens=self.chat_max_tokens,
            fallback_text=CHAT_FALLBACK_TEXT,
        )

    async def summarize(
        self,
        system_prompt: str,
        content: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> CompletionResult:
        """
        Generate a summary.

        Args:
            system_prompt: Summary instructions (and any prior-session recap)
            content: Transcript to summarize
            temperature: Override for this call site
            max_tokens: Override for this call site

        Returns:
            CompletionResult; on failure the text is SUMMARY_FALLBACK_TEXT
        """
        return await self._complete(
            "summary",
            [LLMMessage.system(system_prompt), LLMMessage.user(content)],
            model=self.summary_model,
            temperature=self.summary_temperature if temperature is None else temperature,
            max_tokens=max_tokens or self.summary_max_tokens,
            fallback_text=SUMMARY_FALLBACK_TEXT,
        )

    def _retrying(self, call_type: str) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(TransientProviderError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(
                multiplier=self.retry_initial_wait,
                max=self.retry_max_wait,
                jitter=self.retry_initial_wait,
            ),
            before_sleep=lambda retry_state: logger.warning(
                f"{call_type} completion retry {retry_state.attempt_number}/{self.max_attempts} "
                f"after transient provider error"
            ),
            reraise=True,
        )

    async def _complete(
        self,
        call_type: str,
        messages: List[LLMMessage],
        model: str,
        temperature: float,
        max_tokens: int,
        fallback_text: str,
    ) -> CompletionResult:
        if self.provider is None:
            logger.warning(f"{call_type} completion skipped: no LLM provider configured")
            return CompletionResult(
                text=fallback_text,
                fallback=True,
                error_kind="not_configured",
                error="LLM provider not configured",
                model=model,
            )

        attempts = 0
        try:
            async for attempt in self._retrying(call_type):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    response = await self.provider.chat_completion(
                        messages,
                        temperature=temperature,
                        max_tokens=max_tokens,
                        model=model,
                    )
        except LLMProviderError as e:
            logger.error(
                f"{call_type} completion failed, using fallback text: {e}",
                extra={"extra_fields": {
                    "call_type": call_type,
                    "model": model,
                    "error_kind": e.kind,
                    "status_code": e.status_code,
                    "attempts": attempts,
                }}
            )
            return CompletionResult(
                text=fallback_text,
                fallback=True,
                error_kind=e.kind,
                error=str(e),
                attempts=attempts,
                model=model,
            )

        return CompletionResult(
            text=response.content.strip(),
            attempts=attempts,
            model=response.model or model,
        )
