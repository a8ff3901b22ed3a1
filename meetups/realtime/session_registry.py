# meetups/realtime/session_registry.py
import logging
from collections import defaultdict

from meetups.interactors.access_gate import AccessGate
from meetups.realtime.chat_session import ChatSession


class SessionRegistry:
    """Open chat sessions per user, so sign-out can tear all of them down."""

    def __init__(self, access_gate: AccessGate, logger: logging.Logger):
        self.access_gate = access_gate
        self.logger = logger
        self._sessions: dict[str, set[ChatSession]] = defaultdict(set)

    def register(self, session: ChatSession) -> None:
        self._sessions[session.user.id].add(session)

    def unregister(self, session: ChatSession) -> None:
        sessions = self._sessions.get(session.user.id)
        if not sessions:
            return
        sessions.discard(session)
        if not sessions:
            del self._sessions[session.user.id]

    def sessions_for(self, user_id: str) -> list[ChatSession]:
        return list(self._sessions.get(user_id, ()))

    async def reset(self, user_id: str) -> int:
        sessions = self._sessions.pop(user_id, set())
        for session in sessions:
            await session.shutdown()
        self.access_gate.forget_user(user_id)
        if sessions:
            self.logger.info(f"Closed {len(sessions)} chat sessions of {user_id}")
        return len(sessions)

    async def close_all(self) -> None:
        for user_id in list(self._sessions):
            await self.reset(user_id)
