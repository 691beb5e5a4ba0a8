"""
Game Session Registry

Holds the game sessions hosted by one Flask app, keyed by session id.
Owned by the app (app.extensions), so each app and each test gets its own.
"""

import logging
import threading
from collections import OrderedDict
from typing import Optional

from game_session import GameSession

logger = logging.getLogger(__name__)


class GameSessionRegistry:
    """Bounded id -> GameSession map; the oldest session is evicted when full"""

    def __init__(self, max_sessions: int = 500):
        self.max_sessions = max_sessions
        self._sessions = OrderedDict()
        self._lock = threading.Lock()

    def add(self, session: GameSession) -> GameSession:
        evicted = []
        with self._lock:
            self._sessions[session.id] = session
            while len(self._sessions) > self.max_sessions:
                _, old = self._sessions.popitem(last=False)
                evicted.append(old)

        for old in evicted:
            logger.info(f"Evicting game session {old.id}")
            old.close()
        return session

    def get(self, session_id: str) -> Optional[GameSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        return True

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()

    def __len__(self):
        with self._lock:
            return len(self._sessions)
