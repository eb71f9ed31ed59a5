"""
Context Assembler - builds the bounded prompt for a chat reply.

The system turn is the persona instructions, then the recap of earlier
sessions (only when asked for and only when there is one), then the tail of
the current session. The new user message follows as the user turn.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from ..llm.base import LLMMessage
from ..models.session import Message, Session
from ..storage import SessionStore

logger = logging.getLogger(__name__)

NO_CURRENT_CONTEXT = "No current context"
HISTORY_LABEL = "Previous Sessions Recap"
CURRENT_LABEL = "Current Session Context"

PERSONA_PROMPT = """You are MindEase, an AI mental health companion for the MindEase wellness platform. Respond in 2-3 sentences max (30 words or less) unless more detail is requested.

Platform Features to Reference:
1. Mental Playlists: Curated music for anxiety (calm piano), focus (binaural beats), sleep (nature sounds)
2. Mood Tools: Daily check-ins, emotion tracker, journal prompts
3. Guided Sessions: 5-min breathing exercises, body scans
4. Resources: Articles on CBT techniques, stress management
5. Professional Network: Therapist matching service (when needed)

Response Rules:
- EMPATHY FIRST: "That sounds hard" before solutions
- CRISIS: Immediately suggest the "/crisis" command for hotlines
- PLAYLISTS: Recommend by mood: anxiety -> "Calm Waters", sadness -> "Gentle Uplift", anger -> "Release & Relax"
- MEMORY: When a previous sessions recap is provided, use it to answer questions about earlier conversations. Never invent details that are not in it.

Safety Note: Always end crisis messages with:
"Please call [24/7 helpline: 1-800-XXX-XXXX] for immediate support.\""""


def format_session_date(value: Optional[datetime]) -> str:
    """Short US-style date, e.g. 3/7/2025."""
    if value is None:
        return "unknown date"
    return f"{value.month}/{value.day}/{value.year}"


@dataclass
class AssembledPrompt:
    """Prompt blocks for one chat reply."""
    system_prompt: str
    user_message: str
    current_context: str
    history: str = ""
    past_session_ids: Sequence[str] = ()

    @property
    def includes_history(self) -> bool:
        return bool(self.history)

    def to_llm_messages(self) -> List[LLMMessage]:
        return [LLMMessage.system(self.system_prompt), LLMMessage.user(self.user_message)]


class ContextAssembler:
    """Builds prompts from the session store."""

    def __init__(
        self,
        store: SessionStore,
        persona_prompt: str = PERSONA_PROMPT,
        window_size: int = 10,
        history_limit: int = 3,
        history_message_count: int = 3,
    ):
        self.store = store
        self.persona_prompt = persona_prompt
        self.window_size = window_size
        self.history_limit = history_limit
        self.history_message_count = history_message_count

    def format_current_context(self, messages: Sequence[Message]) -> str:
        """Last ``window_size`` messages as "sender: text" lines, oldest first."""
        tail = list(messages)[-self.window_size:] if self.window_size > 0 else []
        if not tail:
            return NO_CURRENT_CONTEXT
        return "\n".join(f"{m.sender}: {m.text}" for m in tail)

    async def fetch_past_sessions(self, user_id: str, exclude_session_id: Optional[str] = None) -> List[Session]:
        """Most recently ended sessions of the user, newest first."""
        sessions = await self.store.list_ended_for_user(
            user_id,
            exclude_session_id=exclude_session_id,
            limit=self.history_limit,
        )
        return sessions[:self.history_limit]

    def format_history(self, sessions: Sequence[Session]) -> str:
        """Recap lines for earlier sessions; empty string when there are none."""
        blocks = []
        for session in list(sessions)[:self.history_limit]:
            recent = session.messages[-self.history_message_count:] if self.history_message_count > 0 else []
            last_messages = ", ".join(m.text for m in recent)
            blocks.append(
                f"Session on {format_session_date(session.ended_at)}: "
                f"Summary: {session.summary or ''}. "
                f"Last messages: {last_messages}"
            )
        return "\n\n".join(blocks)

    def compose_system_prompt(self, current_context: str, history: str = "") -> str:
        parts = [self.persona_prompt]
        if history:
            parts.append(f"{HISTORY_LABEL}:\n{history}")
        parts.append(f"{CURRENT_LABEL}:\n{current_context}")
        return "\n\n".join(parts)

    async def build(
        self,
        session: Session,
        user_message: str,
        include_history: bool,
        prior_messages: Optional[Sequence[Message]] = None,
    ) -> AssembledPrompt:
        """
        Assemble the prompt for a reply to ``user_message``.

        Args:
            session: Current session
            user_message: The new user message, sent as the user turn
            include_history: Whether to add the recap of earlier sessions
            prior_messages: Messages to window over; defaults to the session's messages

        Returns:
            AssembledPrompt
        """
        messages = session.messages if prior_messages is None else prior_messages
        current_context = self.format_current_context(messages)

        history = ""
        past_ids: List[str] = []
        if include_history:
            past_sessions = await self.fetch_past_sessions(session.user_id, exclude_session_id=session.id)
            history = self.format_history(past_sessions)
            past_ids = [s.id for s in past_sessions]
            logger.debug(f"Recall requested for session {session.id}: {len(past_sessions)} past sessions found")

        return AssembledPrompt(
            system_prompt=self.compose_system_prompt(current_context, history),
            user_message=user_message,
            current_context=current_context,
            history=history,
            past_session_ids=past_ids,
        )
