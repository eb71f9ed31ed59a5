"""
Session Store Interface - Abstract base class for session persistence.
Implementations hold sessions as documents keyed by an opaque id and
queryable by user, status and end time. No business logic lives here.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List

from ..models.session import Message, Session


class SessionStore(ABC):
    """
    Persistence contract for sessions and their messages.

    Read/write failures are raised as ``PersistenceError``; a missing
    session is reported by returning ``None`` from ``get`` and by
    ``NotFoundError`` from the mutating calls.
    """

    @abstractmethod
    async def create(self, session: Session) -> Session:
        """
        Store a new session.

        Args:
            session: Freshly built session (active, no messages)

        Returns:
            Session: The stored record
        """
        pass

    @abstractmethod
    async def get(self, session_id: str) -> Optional[Session]:
        """
        Load a session by id.

        Returns:
            Optional[Session]: The session, or None if it does not exist
        """
        pass

    @abstractmethod
    async def append_message(self, session_id: str, message: Message) -> Session:
        """
        Append one message to the end of a session's message list.

        Args:
            session_id: Target session
            message: Message to append; its timestamp must not precede the last one

        Returns:
            Session: The updated record
        """
        pass

    @abstractmethod
    async def mark_ended(
        self,
        session_id: str,
        summary: str,
        ended_at: datetime,
        related_sessions: List[str]
    ) -> Session:
        """
        Write the end-of-session fields in one update.

        Args:
            session_id: Target session
            summary: Generated summary text
            ended_at: End timestamp
            related_sessions: Ids of related ended sessions

        Returns:
            Session: The updated record (status "ended")
        """
        pass

    @abstractmethod
    async def list_ended_for_user(
        self,
        user_id: str,
        exclude_session_id: Optional[str] = None,
        limit: int = 3
    ) -> List[Session]:
        """
        Most recently ended sessions of a user, newest first.

        Args:
            user_id: Owning user
            exclude_session_id: Session to leave out (usually the current one)
            limit: Maximum number of sessions returned

        Returns:
            List[Session]: Sessions ordered by ended_at descending
        """
        pass

    @abstractmethod
    async def delete_all_for_user(self, user_id: str) -> int:
        """
        Delete every session owned by a user, whatever its status.

        Returns:
            int: Number of sessions removed
        """
        pass

    async def close(self) -> None:
        """Release resources held by the store."""
        return None
