"""
Dependency wiring for the API routers.

The session lifecycle is built once at startup (see ``main.lifespan``) and
kept on ``app.state``; routers receive it through ``get_lifecycle``.
"""

import asyncio
import logging
from typing import Any, Awaitable, Optional, TypeVar

from fastapi import Request

from ..core import (
    ContextAssembler, SessionLifecycle, SummarizationService, TriggerDetector,
)
from ..llm import CompletionClient, LLMProvider, create_llm_provider
from ..storage import SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ClientDisconnected(Exception):
    """The caller went away before the work finished."""


def build_llm_provider(config: Any) -> Optional[LLMProvider]:
    """Configured LLM provider, or None when no API key is set."""
    return create_llm_provider(
        provider=config.llm_provider,
        api_key=config.resolved_llm_api_key(),
        model=config.chat_model,
        base_url=config.llm_base_url,
        timeout=config.llm_timeout_seconds,
        default_temperature=config.chat_temperature,
        default_max_tokens=config.chat_max_tokens,
    )


def build_lifecycle(config: Any, store: SessionStore, provider: Optional[LLMProvider]) -> SessionLifecycle:
    """Compose the session core from settings, a store and a provider."""
    assembler = ContextAssembler(
        store,
        window_size=config.context_window_size,
        history_limit=config.history_session_limit,
        history_message_count=config.history_message_count,
    )
    completion_client = CompletionClient.from_settings(provider, config)
    summarizer = SummarizationService(
        completion_client,
        assembler,
        quick_temperature=config.quick_summary_temperature,
        quick_max_tokens=config.quick_summary_max_tokens,
    )
    return SessionLifecycle(
        store=store,
        detector=TriggerDetector(extra_phrases=config.recall_trigger_phrases),
        assembler=assembler,
        completion_client=completion_client,
        summarizer=summarizer,
    )


def get_lifecycle(request: Request) -> SessionLifecycle:
    return request.app.state.lifecycle


async def run_bound_to_request(request: Request, work: Awaitable[T], poll_interval: float = 0.25) -> T:
    """
    Await ``work`` but cancel it if the client disconnects first.

    Raises:
        ClientDisconnected: The request was aborted and the work cancelled
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                logger.info(f"Client disconnected, cancelled {request.method} {request.url.path}")
                raise ClientDisconnected()
    except asyncio.CancelledError:
        task.cancel()
        raise
