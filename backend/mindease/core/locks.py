"""
Per-session asyncio locks.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class SessionLockRegistry:
    """Per-session locks, dropped once nobody holds or waits on them."""

    def __init__(self):
        self._entries: Dict[str, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        entry = self._entries.setdefault(session_id, _LockEntry())
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                self._entries.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._entries)
