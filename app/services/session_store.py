"""In-memory registry of live generation sessions."""

import threading
from typing import List

from cachetools import TTLCache

from app.services.story_workflow import StoryGenerationSession
from app.utils.exceptions import NotFoundError
from app.utils.logger import get_logger

logger = get_logger(__name__)


class SessionStore:
    """Holds sessions until they expire; each session is visible to its owner only."""

    def __init__(self, ttl_seconds: int = 3600, max_sessions: int = 10000):
        self._sessions: TTLCache = TTLCache(maxsize=max_sessions, ttl=ttl_seconds)
        self._lock = threading.Lock()

    def add(self, session: StoryGenerationSession) -> StoryGenerationSession:
        with self._lock:
            self._sessions[session.id] = session
        logger.debug(f"Session {session.id} opened for user {session.user_id}")
        return session

    def get(self, session_id: str, user_id: str) -> StoryGenerationSession:
        """
        Fetch a session owned by ``user_id``.

        Raises:
            NotFoundError: If the session expired, never existed or belongs to someone else
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None or session.user_id != user_id:
            raise NotFoundError("Generation session not found")
        return session

    def list_for_user(self, user_id: str) -> List[StoryGenerationSession]:
        with self._lock:
            sessions = [s for s in self._sessions.values() if s.user_id == user_id]
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)

    def discard(self, session_id: str, user_id: str) -> None:
        """Drop a session; calls still running for it finish on their own."""
        self.get(session_id, user_id)
        with self._lock:
            self._sessions.pop(session_id, None)
        logger.debug(f"Session {session_id} closed")
