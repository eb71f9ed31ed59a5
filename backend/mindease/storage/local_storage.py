"""
Local Filesystem Session Store.
Stores each session as one JSON document under ``<base_dir>/sessions/``.
"""

import asyncio
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Awaitable, TypeVar

import aiofiles
import aiofiles.os
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import NotFoundError, PersistenceError
from ..core.locks import SessionLockRegistry
from ..models.session import Message, Session
from .interface import SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LocalSessionStore(SessionStore):
    """
    Local filesystem session store.

    Every write replaces the whole document through a temporary file, so a
    crash never leaves a half-written session behind. Every call is bounded
    by ``timeout`` seconds.
    """

    def __init__(self, base_dir: str = "./data", timeout: float = 10.0):
        """
        Initialize the store under a base directory.

        Args:
            base_dir: Base directory for stored documents
            timeout: Seconds allowed for a single store call
        """
        self.base_dir = Path(base_dir).resolve()
        self.sessions_dir = self.base_dir / "sessions"
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout
        # Guards read-modify-write of one document against a concurrent delete
        self._locks = SessionLockRegistry()

    def _get_full_path(self, session_id: str) -> Path:
        """Map a session id to its document path inside the sessions directory."""
        if "\x00" in session_id:
            raise NotFoundError(f"Invalid session id: {session_id!r}")

        try:
            full_path = (self.sessions_dir / f"{session_id}.json").resolve()
        except (ValueError, OSError) as e:
            # Paths the OS cannot resolve never map to a stored document
            raise NotFoundError(f"Invalid session id: {session_id!r}") from e

        if full_path.parent != self.sessions_dir:
            raise NotFoundError(f"Invalid session id: {session_id}")

        return full_path

    async def _bounded(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Session store {operation} timed out after {self.timeout}s")
            raise PersistenceError(f"Session store {operation} timed out") from e
        except OSError as e:
            logger.error(f"Session store {operation} failed: {e}", exc_info=True)
            raise PersistenceError(f"Session store {operation} failed") from e

    async def _read(self, path: Path) -> Optional[Session]:
        if not await aiofiles.os.path.exists(path):
            return None

        async with aiofiles.open(path, 'r', encoding='utf-8') as f:
            raw = await f.read()

        try:
            return Session.model_validate_json(raw)
        except PydanticValidationError as e:
            raise PersistenceError(f"Malformed session record: {path.name}") from e

    async def _write(self, session: Session) -> Session:
        path = self._get_full_path(session.id)
        tmp_path = path.with_name(f".{path.stem}.{uuid.uuid4().hex}.tmp")

        async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
            await f.write(session.model_dump_json(indent=2))
        await aiofiles.os.replace(tmp_path, path)

        return session

    async def _load_existing(self, session_id: str) -> Session:
        session = await self._read(self._get_full_path(session_id))
        if session is None:
            raise NotFoundError()
        return session

    async def _scan(self) -> List[Session]:
        """Load every stored session, skipping records that fail validation."""
        sessions = []
        for path in sorted(self.sessions_dir.glob("*.json")):
            try:
                session = await self._read(path)
            except PersistenceError:
                logger.error(f"Skipping malformed session record {path.name}", exc_info=True)
                continue
            if session is not None:
                sessions.append(session)
        return sessions

    @staticmethod
    def _rebuild(session: Session, **changes) -> Session:
        data = {**dict(session), **changes}
        try:
            return Session(**data)
        except PydanticValidationError as e:
            raise PersistenceError(f"Rejected invalid update to session {session.id}") from e

    async def create(self, session: Session) -> Session:
        return await self._bounded("create", self._write(session))

    async def get(self, session_id: str) -> Optional[Session]:
        return await self._bounded("get", self._read(self._get_full_path(session_id)))

    async def append_message(self, session_id: str, message: Message) -> Session:
        async def _append() -> Session:
            async with self._locks.hold(session_id):
                session = await self._load_existing(session_id)
                return await self._write(self._rebuild(session, messages=[*session.messages, message]))

        return await self._bounded("append_message", _append())

    async def mark_ended(
        self,
        session_id: str,
        summary: str,
        ended_at: datetime,
        related_sessions: List[str]
    ) -> Session:
        async def _mark() -> Session:
            async with self._locks.hold(session_id):
                session = await self._load_existing(session_id)
                return await self._write(self._rebuild(
                    session,
                    status="ended",
                    summary=summary,
                    ended_at=ended_at,
                    related_sessions=list(related_sessions),
                ))

        return await self._bounded("mark_ended", _mark())

    async def list_ended_for_user(
        self,
        user_id: str,
        exclude_session_id: Optional[str] = None,
        limit: int = 3
    ) -> List[Session]:
        async def _list() -> List[Session]:
            ended = [
                s for s in await self._scan()
                if s.user_id == user_id and s.is_ended and s.id != exclude_session_id
            ]
            ended.sort(key=lambda s: s.ended_at, reverse=True)
            return ended[:limit]

        return await self._bounded("list_ended_for_user", _list())

    async def delete_all_for_user(self, user_id: str) -> int:
        async def _delete() -> int:
            deleted = 0
            for session in await self._scan():
                if session.user_id != user_id:
                    continue
                path = self._get_full_path(session.id)
                async with self._locks.hold(session.id):
                    try:
                        await aiofiles.os.remove(path)
                    except FileNotFoundError:
                        continue
                deleted += 1
            return deleted

        return await self._bounded("delete_all_for_user", _delete())

    async def close(self) -> None:
        # Leftover temp files belong to writes that never completed
        for tmp_path in self.sessions_dir.glob(".*.tmp"):
            try:
                os.remove(tmp_path)
            except OSError:
                logger.warning(f"Could not remove stale temp file {tmp_path.name}")
        logger.info("Session store closed")
