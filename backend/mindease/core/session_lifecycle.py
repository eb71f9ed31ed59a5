"""
Session Lifecycle - create, exchange messages, end and delete sessions.

Mutations of one session are serialized with a per-session lock so a
user message and its bot reply are always stored next to each other.
Appending is two separate writes: the user message first, the bot reply
second. If the second write fails the user message stays behind as a
"pending" message (see ``Session.pending_message``); it is kept in the
history and shown to the next exchange as part of the current context.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..llm.completion_client import CompletionClient
from ..models.session import Message, Session, utc_now
from ..storage import SessionStore
from .context_assembler import ContextAssembler
from .exceptions import NotFoundError, PersistenceError, SessionEndedError, ValidationError
from .locks import SessionLockRegistry
from .logging_config import SessionLoggerAdapter
from .summarization import SummarizationService
from .trigger_detector import TriggerDetector

logger = logging.getLogger(__name__)


@dataclass
class ExchangeResult:
    """Outcome of one user message and its reply."""
    session_id: str
    reply: str
    user_message: Message
    bot_message: Message
    fallback: bool = False
    error_kind: Optional[str] = None
    included_history: bool = False


@dataclass
class EndSessionResult:
    """Outcome of ending a session."""
    session: Session
    summary: str
    related_session_ids: List[str]
    fallback: bool = False


def _require(value: Optional[str], name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    return value.strip()


class SessionLifecycle:
    """Orchestrates the session store, detector, assembler and completion client."""

    def __init__(
        self,
        store: SessionStore,
        detector: TriggerDetector,
        assembler: ContextAssembler,
        completion_client: CompletionClient,
        summarizer: SummarizationService,
        locks: Optional[SessionLockRegistry] = None,
    ):
        self.store = store
        self.detector = detector
        self.assembler = assembler
        self.completion_client = completion_client
        self.summarizer = summarizer
        self.locks = locks or SessionLockRegistry()

    async def _load(self, session_id: str) -> Session:
        session = await self.store.get(session_id)
        if session is None:
            raise NotFoundError()
        return session

    async def create_session(self, user_id: str) -> Session:
        user_id = _require(user_id, "userId")
        session = await self.store.create(Session(user_id=user_id))
        logger.info(
            f"Session created: {session.id}",
            extra={"extra_fields": {"session_id": session.id, "user_id": user_id}}
        )
        return session

    async def get_session(self, session_id: str) -> Session:
        return await self._load(_require(session_id, "sessionId"))

    async def get_summary(self, session_id: str) -> Session:
        return await self.get_session(session_id)

    async def append_exchange(self, session_id: str, user_id: str, text: str) -> ExchangeResult:
        """
        Store a user message, generate the reply and store it.

        Args:
            session_id: Target session
            user_id: Caller's user id; must own the session
            text: User message

        Returns:
            ExchangeResult with the reply text and whether it is the fallback

        Raises:
            ValidationError: Missing session id, user id or message
            NotFoundError: Unknown session or owned by another user
            SessionEndedError: The session has ended
            PersistenceError: A store read or write failed
        """
        session_id = _require(session_id, "sessionId")
        user_id = _require(user_id, "userId")
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("message is required")

        log = SessionLoggerAdapter(logger, {"session_id": session_id, "user_id": user_id})

        async with self.locks.hold(session_id):
            session = await self._load(session_id)
            if session.user_id != user_id:
                raise NotFoundError()
            if session.is_ended:
                raise SessionEndedError()
            if session.pending_message is not None:
                log.info("Previous user message has no reply, keeping it in context")

            prior_messages = list(session.messages)
            user_message = Message(text=text, sender="user", timestamp=session.next_timestamp())
            session = await self.store.append_message(session_id, user_message)

            include_history = self.detector.should_include_history(text)
            prompt = await self.assembler.build(
                session, text, include_history, prior_messages=prior_messages
            )
            completion = await self.completion_client.chat_reply(prompt.to_llm_messages())

            bot_message = Message(text=completion.text, sender="bot", timestamp=session.next_timestamp())
            try:
                await self.store.append_message(session_id, bot_message)
            except PersistenceError:
                log.error("Bot reply not stored, user message left pending", exc_info=True)
                raise

        log.info(
            "Exchange stored",
            extra={"extra_fields": {
                "included_history": prompt.includes_history,
                "fallback": completion.fallback,
                "error_kind": completion.error_kind,
            }}
        )
        return ExchangeResult(
            session_id=session_id,
            reply=completion.text,
            user_message=user_message,
            bot_message=bot_message,
            fallback=completion.fallback,
            error_kind=completion.error_kind,
            included_history=prompt.includes_history,
        )

    async def end_session(self, session_id: str) -> EndSessionResult:
        """
        Summarize a session and mark it ended.

        Ending an already-ended session summarizes it again and overwrites
        summary and ended_at.
        """
        session_id = _require(session_id, "sessionId")

        async with self.locks.hold(session_id):
            session = await self._load(session_id)
            log = SessionLoggerAdapter(logger, {"session_id": session_id, "user_id": session.user_id})
            if session.is_ended:
                log.warning("Session already ended, regenerating its summary")

            result = await self.summarizer.summarize_session(session)
            related_ids = [s.id for s in result.past_sessions]
            updated = await self.store.mark_ended(session_id, result.text, utc_now(), related_ids)

        log.info(
            "Session ended",
            extra={"extra_fields": {
                "related_sessions": len(related_ids),
                "fallback": result.fallback,
                "message_count": len(updated.messages),
            }}
        )
        return EndSessionResult(
            session=updated,
            summary=result.text,
            related_session_ids=related_ids,
            fallback=result.fallback,
        )

    async def delete_all_sessions(self, user_id: str) -> int:
        user_id = _require(user_id, "userId")
        deleted = await self.store.delete_all_for_user(user_id)
        logger.info(
            f"Deleted {deleted} sessions",
            extra={"extra_fields": {"user_id": user_id, "deleted_count": deleted}}
        )
        return deleted
