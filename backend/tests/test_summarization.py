"""
Tests for session and on-demand summaries.
"""

import pytest
from datetime import timedelta

from mindease.core import SummarizationService, ContextAssembler, ValidationError
from mindease.core.summarization import (
    QUICK_SUMMARY_PROMPT, build_transcript, format_previous_insights,
)
from mindease.llm import SUMMARY_FALLBACK_TEXT, LLMResponse, ProviderRejectedError
from mindease.models import Message, Session

from conftest import BASE_TIME, make_completion_client, make_ended_session


@pytest.fixture
def summarizer(store, mock_provider):
    mock_provider.chat_completion.return_value = LLMResponse(content="- Discussed exam stress", model="test")
    return SummarizationService(make_completion_client(mock_provider), ContextAssembler(store))


def _sent_messages(provider):
    return provider.chat_completion.call_args.args[0]


class TestHelpers:
    """Tests for transcript and recap formatting."""

    def test_build_transcript(self):
        messages = [
            Message(text="I feel tired", sender="user", timestamp=BASE_TIME),
            Message(text="Tell me more", sender="bot", timestamp=BASE_TIME),
        ]
        assert build_transcript(messages) == "User: I feel tired\n\nMindEase: Tell me more"
        assert build_transcript(messages, bot_label="Bot", separator="\n") == "User: I feel tired\nBot: Tell me more"

    def test_previous_insights_empty_without_sessions(self):
        assert format_previous_insights([]) == ""

    def test_previous_insights_lists_summaries(self):
        text = format_previous_insights([make_ended_session("u1", BASE_TIME, summary="Slept badly")])
        assert text.startswith("Previous Insights:\n")
        assert "Session on 3/1/2025:\nSlept badly" in text


class TestSummarizeSession:
    """Tests for end-of-session summaries."""

    @pytest.mark.asyncio
    async def test_empty_session_skips_provider(self, summarizer, mock_provider):
        result = await summarizer.summarize_session(Session(user_id="u1"))

        assert result.text == SUMMARY_FALLBACK_TEXT
        assert result.fallback is True
        mock_provider.chat_completion.assert_not_called()

    @pytest.mark.asyncio
    async def test_summary_without_previous_sessions(self, summarizer, mock_provider):
        session = Session(user_id="u1", messages=[Message(text="Exams are coming", sender="user")])
        result = await summarizer.summarize_session(session)

        assert result.text == "- Discussed exam stress"
        assert result.fallback is False
        assert result.past_sessions == []
        system, user = _sent_messages(mock_provider)
        assert "Previous Insights" not in system.content
        assert user.content == "Session Transcript:\nUser: Exams are coming"
        assert mock_provider.chat_completion.call_args.kwargs["max_tokens"] == 400

    @pytest.mark.asyncio
    async def test_summary_includes_previous_insights(self, store, summarizer, mock_provider):
        for day in range(4):
            await store.create(make_ended_session(
                "u1", BASE_TIME + timedelta(days=day), summary=f"summary {day}"
            ))
        await store.create(make_ended_session("u2", BASE_TIME, summary="someone else"))

        session = Session(user_id="u1", messages=[Message(text="Still anxious", sender="user")])
        result = await summarizer.summarize_session(session)

        assert len(result.past_sessions) == 3
        system, _ = _sent_messages(mock_provider)
        assert "summary 3" in system.content and "summary 1" in system.content
        assert "summary 0" not in system.content
        assert "someone else" not in system.content

    @pytest.mark.asyncio
    async def test_provider_failure_gives_fallback(self, summarizer, mock_provider):
        mock_provider.chat_completion.side_effect = ProviderRejectedError("bad key", status_code=401)
        session = Session(user_id="u1", messages=[Message(text="hello", sender="user")])

        result = await summarizer.summarize_session(session)

        assert result.text == SUMMARY_FALLBACK_TEXT
        assert result.fallback is True
        assert result.completion.error_kind == "rejected"


class TestSummarizeMessages:
    """Tests for the stateless summary of client-supplied messages."""

    @pytest.mark.asyncio
    async def test_quick_summary(self, summarizer, mock_provider):
        result = await summarizer.summarize_messages([
            {"text": "I can't sleep", "sender": "user", "id": 1},
            {"text": "That sounds exhausting", "sender": "bot"},
        ])

        assert result.text == "- Discussed exam stress"
        system, user = _sent_messages(mock_provider)
        assert system.content == QUICK_SUMMARY_PROMPT
        assert user.content == "User: I can't sleep\nBot: That sounds exhausting"
        kwargs = mock_provider.chat_completion.call_args.kwargs
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 200

    @pytest.mark.asyncio
    async def test_empty_list_gives_fallback(self, summarizer, mock_provider):
        result = await summarizer.summarize_messages([])
        assert result.text == SUMMARY_FALLBACK_TEXT
        mock_provider.chat_completion.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        None,
        "hello",
        {"text": "hi", "sender": "user"},
        ["hi"],
        [{"text": "hi"}],
        [{"text": "hi", "sender": "robot"}],
    ])
    async def test_invalid_payload(self, summarizer, mock_provider, payload):
        with pytest.raises(ValidationError):
            await summarizer.summarize_messages(payload)
        mock_provider.chat_completion.assert_not_called()
