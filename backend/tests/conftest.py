"""
Shared test fixtures and configuration.
"""

import pytest
import os
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from unittest.mock import AsyncMock

# Set test environment variables before importing app modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/mindease_test_data")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_API_REQUESTS", "false")
os.environ["LLM_API_KEY"] = ""
os.environ["GROQ_API_KEY"] = ""

from mindease.core import (  # noqa: E402
    ContextAssembler, SessionLifecycle, SummarizationService, TriggerDetector,
)
from mindease.llm import CompletionClient, LLMProvider, LLMResponse  # noqa: E402
from mindease.models import Message, Session  # noqa: E402
from mindease.storage import LocalSessionStore  # noqa: E402

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_completion_client(provider, max_attempts: int = 3) -> CompletionClient:
    """Completion client with the production parameters and no backoff delay."""
    return CompletionClient(
        provider,
        chat_model="chat-model",
        summary_model="summary-model",
        max_attempts=max_attempts,
        retry_initial_wait=0,
        retry_max_wait=0,
    )


def make_lifecycle(store, provider, max_attempts: int = 3) -> SessionLifecycle:
    assembler = ContextAssembler(store)
    client = make_completion_client(provider, max_attempts=max_attempts)
    return SessionLifecycle(
        store=store,
        detector=TriggerDetector(),
        assembler=assembler,
        completion_client=client,
        summarizer=SummarizationService(client, assembler),
    )


def make_ended_session(
    user_id: str,
    ended_at: datetime,
    summary: str = "Talked about stress",
    texts: Optional[List[str]] = None,
) -> Session:
    texts = texts if texts is not None else ["hello", "hi there"]
    messages = [
        Message(
            text=text,
            sender="user" if i % 2 == 0 else "bot",
            timestamp=ended_at - timedelta(minutes=len(texts) - i),
        )
        for i, text in enumerate(texts)
    ]
    return Session(
        user_id=user_id,
        messages=messages,
        status="ended",
        summary=summary,
        ended_at=ended_at,
        created_at=ended_at - timedelta(hours=1),
    )


@pytest.fixture
def store(tmp_path):
    return LocalSessionStore(str(tmp_path / "data"), timeout=5.0)


@pytest.fixture
def mock_provider():
    provider = AsyncMock(spec=LLMProvider)
    provider.chat_completion.return_value = LLMResponse(content="That sounds hard. Want to try a breathing exercise?", model="test")
    return provider


@pytest.fixture
def lifecycle(store, mock_provider):
    return make_lifecycle(store, mock_provider)
