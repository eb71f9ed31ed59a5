"""
OpenAI-compatible chat completion providers (Groq, OpenAI).
Both speak the ``/chat/completions`` wire format with bearer-token auth.
"""

import httpx
import logging
import time
from typing import Optional, List, Dict, Any

from .base import (
    LLMProvider, LLMMessage, LLMResponse,
    TransientProviderError, ProviderRejectedError, EmptyCompletionError,
)

logger = logging.getLogger(__name__)


def classify_status(status_code: int) -> type:
    """Map an HTTP error status to the provider error type."""
    if status_code == 429 or status_code == 408 or status_code >= 500:
        return TransientProviderError
    return ProviderRejectedError


def _extract_content(data: Dict[str, Any]) -> str:
    """
    Text of the first choice; "" when the provider sent no choices.

    Raises:
        TypeError: A choice, its message or its content has the wrong shape
    """
    choices = data.get("choices") or []
    if not isinstance(choices, list):
        raise TypeError(f"choices is {type(choices).__name__}")
    if not choices:
        return ""

    choice = choices[0]
    if not isinstance(choice, dict):
        raise TypeError(f"choice is {type(choice).__name__}")
    message = choice.get("message") or {}
    if not isinstance(message, dict):
        raise TypeError(f"message is {type(message).__name__}")
    content = message.get("content") or ""
    if not isinstance(content, str):
        raise TypeError(f"content is {type(content).__name__}")
    return content


class OpenAICompatibleProvider(LLMProvider):
    """Provider for any endpoint implementing the OpenAI chat/completions API."""

    provider_name = "openai-compatible"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        default_temperature: float = 0.7,
        default_max_tokens: int = 150,
        timeout: float = 30.0,
    ):
        super().__init__(api_key, model, base_url.rstrip("/"), default_temperature, default_max_tokens)
        self.timeout = timeout

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float],
        max_tokens: Optional[int],
        model: Optional[str],
    ) -> Dict[str, Any]:
        return {
            "model": model or self.model,
            "messages": self._format_messages(messages),
            "temperature": temperature if temperature is not None else self.default_temperature,
            "max_tokens": max_tokens or self.default_max_tokens,
            "stream": False,
        }

    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
    ) -> LLMResponse:
        """Send request to the Chat Completions endpoint."""
        start_time = time.time()
        url = f"{self.base_url}/chat/completions"
        payload = self._build_payload(messages, temperature, max_tokens, model)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"LLM API call starting: provider={self.provider_name}, model={payload['model']}, "
                f"temperature={payload['temperature']}, max_tokens={payload['max_tokens']}, "
                f"{len(messages)} messages"
            )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload, headers=self._get_headers())
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            error_cls = classify_status(status_code)
            self._log_failure(payload, start_time, f"HTTP {status_code}")
            raise error_cls(f"Provider returned HTTP {status_code}", status_code=status_code) from e
        except (httpx.TimeoutException, httpx.TransportError) as e:
            self._log_failure(payload, start_time, f"{type(e).__name__}: {e}")
            raise TransientProviderError(f"Provider unreachable: {type(e).__name__}") from e
        except ValueError as e:
            self._log_failure(payload, start_time, f"invalid JSON: {e}")
            raise TransientProviderError("Provider returned an unreadable body") from e

        if not isinstance(data, dict):
            self._log_failure(payload, start_time, f"unexpected body type {type(data).__name__}")
            raise TransientProviderError("Provider returned a malformed body")

        try:
            content = _extract_content(data)
        except TypeError as e:
            self._log_failure(payload, start_time, f"malformed completion: {e}")
            raise TransientProviderError("Provider returned a malformed completion") from e

        if not content.strip():
            self._log_failure(payload, start_time, "empty completion")
            raise EmptyCompletionError("Provider returned an empty completion")

        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        duration_ms = (time.time() - start_time) * 1000

        logger.info(
            "LLM API call completed",
            extra={"extra_fields": {
                "provider": self.provider_name,
                "model": data.get("model", payload["model"]),
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
                "duration_ms": round(duration_ms, 2),
            }}
        )

        return LLMResponse(
            content=content,
            model=data.get("model", payload["model"]),
            usage=usage,
            raw=data,
        )

    def _log_failure(self, payload: Dict[str, Any], start_time: float, error: str) -> None:
        duration_ms = (time.time() - start_time) * 1000
        logger.warning(
            f"LLM API call failed: {error}",
            extra={"extra_fields": {
                "provider": self.provider_name,
                "model": payload.get("model"),
                "duration_ms": round(duration_ms, 2),
                "error": error,
            }}
        )


class GroqProvider(OpenAICompatibleProvider):
    """Groq's OpenAI-compatible endpoint."""

    provider_name = "groq"

    def __init__(
        self,
        api_key: str,
        model: str = "llama3-70b-8192",
        base_url: str = "https://api.groq.com/openai/v1",
        **kwargs,
    ):
        super().__init__(api_key, model, base_url, **kwargs)


class OpenAIProvider(OpenAICompatibleProvider):
    """OpenAI's chat/completions endpoint."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        **kwargs,
    ):
        super().__init__(api_key, model, base_url, **kwargs)
