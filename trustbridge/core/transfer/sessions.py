"""Per-chat conversation sessions."""

import asyncio
from typing import Dict, Iterator

from .models import ConversationSession


class SessionRegistry:
    """Chat id -> session, created on first use and kept for the process lifetime.

    ``lock(chat_id)`` returns the chat's own lock; holding it while handling a
    message keeps one chat's messages in arrival order without blocking other
    chats.
    """

    def __init__(self):
        self._sessions: Dict[str, ConversationSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, chat_id: str) -> ConversationSession:
        session = self._sessions.get(chat_id)
        if session is None:
            session = ConversationSession(chat_id=chat_id)
            self._sessions[chat_id] = session
        return session

    def lock(self, chat_id: str) -> asyncio.Lock:
        lock = self._locks.get(chat_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[chat_id] = lock
        return lock

    def active_count(self) -> int:
        return sum(1 for session in self._sessions.values() if session.active)

    def clear(self) -> None:
        self._sessions.clear()
        self._locks.clear()

    def __contains__(self, chat_id: str) -> bool:
        return chat_id in self._sessions

    def __iter__(self) -> Iterator[ConversationSession]:
        return iter(list(self._sessions.values()))

    def __len__(self) -> int:
        return len(self._sessions)
