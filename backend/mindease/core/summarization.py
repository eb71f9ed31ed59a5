"""
Summarization Service - condenses a session transcript into a summary that
later sessions can recall.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence

from pydantic import ValidationError as PydanticValidationError

from ..llm.completion_client import CompletionClient, CompletionResult, SUMMARY_FALLBACK_TEXT
from ..models.session import Message, Session
from .context_assembler import ContextAssembler, format_session_date
from .exceptions import ValidationError

logger = logging.getLogger(__name__)

SESSION_SUMMARY_PROMPT = """You are a mental health assistant analyzing a support session.
{previous_insights}Summarize this session in 3-5 short points covering:
1. Key themes and progress
2. Emotional tone
3. Patterns worth noticing (compared with previous sessions when available)
4. Suggested follow-up actions"""

MESSAGE_FIELDS = ("text", "sender", "timestamp")

QUICK_SUMMARY_PROMPT = (
    "Provide a concise, sensitive summary of the mental health conversation. "
    "Focus on key themes and emotional context without revealing specific details."
)


@dataclass
class SummaryResult:
    """Summary text, the completion outcome and the sessions it drew on."""
    text: str
    fallback: bool
    completion: CompletionResult
    past_sessions: List[Session] = field(default_factory=list)


def build_transcript(messages: Sequence[Message], bot_label: str = "MindEase", separator: str = "\n\n") -> str:
    lines = []
    for msg in messages:
        speaker = "User" if msg.sender == "user" else bot_label
        lines.append(f"{speaker}: {msg.text}")
    return separator.join(lines)


def format_previous_insights(sessions: Sequence[Session]) -> str:
    """Recap of earlier summaries; empty when no earlier session has one."""
    entries = [
        f"Session on {format_session_date(s.ended_at)}:\n{s.summary}"
        for s in sessions
        if s.summary
    ]
    if not entries:
        return ""
    return "Previous Insights:\n" + "\n\n".join(entries) + "\n\n"


class SummarizationService:
    """Produces end-of-session and on-demand summaries."""

    def __init__(
        self,
        completion_client: CompletionClient,
        assembler: ContextAssembler,
        quick_temperature: float = 0.3,
        quick_max_tokens: int = 200,
    ):
        self.completion_client = completion_client
        self.assembler = assembler
        self.quick_temperature = quick_temperature
        self.quick_max_tokens = quick_max_tokens

    async def summarize_session(self, session: Session) -> SummaryResult:
        """
        Summarize a session, grounded on the user's most recent ended sessions.

        An empty session yields the fallback text without calling the provider.
        The past sessions are returned so the caller can link them.
        """
        past_sessions = await self.assembler.fetch_past_sessions(session.user_id, exclude_session_id=session.id)

        if not session.messages:
            logger.info(f"Session {session.id} has no messages, storing fallback summary")
            return SummaryResult(
                text=SUMMARY_FALLBACK_TEXT,
                fallback=True,
                completion=CompletionResult(text=SUMMARY_FALLBACK_TEXT, fallback=True, error_kind="empty"),
                past_sessions=past_sessions,
            )

        system_prompt = SESSION_SUMMARY_PROMPT.format(
            previous_insights=format_previous_insights(past_sessions)
        )
        transcript = build_transcript(session.messages)
        completion = await self.completion_client.summarize(system_prompt, f"Session Transcript:\n{transcript}")

        return SummaryResult(
            text=completion.text,
            fallback=completion.fallback,
            completion=completion,
            past_sessions=past_sessions,
        )

    async def summarize_messages(self, raw_messages: Any) -> SummaryResult:
        """
        Summarize a client-supplied message list without persisting anything.

        Args:
            raw_messages: List of {"text", "sender"[, "timestamp"]} records

        Raises:
            ValidationError: When the payload is not a list of messages
        """
        if not isinstance(raw_messages, list):
            raise ValidationError("messages must be an array")

        if not all(isinstance(m, dict) for m in raw_messages):
            raise ValidationError("messages must be objects with text and sender")

        try:
            # Chat clients send extra keys such as ids; only the message fields matter here
            messages = [
                Message.model_validate({k: m[k] for k in MESSAGE_FIELDS if k in m})
                for m in raw_messages
            ]
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid message record: {e.errors()[0].get('msg', 'invalid')}") from e

        if not messages:
            return SummaryResult(
                text=SUMMARY_FALLBACK_TEXT,
                fallback=True,
                completion=CompletionResult(text=SUMMARY_FALLBACK_TEXT, fallback=True, error_kind="empty"),
            )

        completion = await self.completion_client.summarize(
            QUICK_SUMMARY_PROMPT,
            build_transcript(messages, bot_label="Bot", separator="\n"),
            temperature=self.quick_temperature,
            max_tokens=self.quick_max_tokens,
        )
        return SummaryResult(text=completion.text, fallback=completion.fallback, completion=completion)
