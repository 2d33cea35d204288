"""
Sessions d'édition ouvertes, en mémoire du process, par utilisateur.

Une session non touchée depuis idle_ttl secondes est considérée comme
abandonnée et retirée au prochain create() ou get().
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from app.core.config import settings
from app.core.errors import SessionNotFoundError
from app.services.edit_session import TaskEditSession

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, idle_ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.idle_ttl = settings.SESSION_IDLE_TTL if idle_ttl is None else idle_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[Tuple[int, str], TaskEditSession] = {}
        self._last_touched: Dict[Tuple[int, str], float] = {}

    def _sweep(self, now: float) -> None:
        # appelé sous self._lock
        expired = [
            key for key, touched in self._last_touched.items()
            if now - touched > self.idle_ttl
            and not (self._sessions[key].committing or self._sessions[key].suggesting)
        ]
        for key in expired:
            self._sessions.pop(key)
            self._last_touched.pop(key)
        if expired:
            logger.info(f"Evicted {len(expired)} idle edit session(s)")

    def create(self, user_id: int) -> TaskEditSession:
        session = TaskEditSession(user_id)
        key = (user_id, session.session_id)
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._sessions[key] = session
            self._last_touched[key] = now
        logger.debug(f"Edit session {session.session_id} created for user {user_id}")
        return session

    def get(self, user_id: int, session_id: str) -> TaskEditSession:
        key = (user_id, session_id)
        with self._lock:
            now = self._clock()
            self._sweep(now)
            session = self._sessions.get(key)
            if session is not None:
                self._last_touched[key] = now
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def discard(self, user_id: int, session_id: str) -> None:
        with self._lock:
            self._sessions.pop((user_id, session_id), None)
            self._last_touched.pop((user_id, session_id), None)

    def list_for_user(self, user_id: int) -> List[TaskEditSession]:
        with self._lock:
            return [s for (uid, _), s in self._sessions.items() if uid == user_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
            self._last_touched.clear()


store = SessionStore()


def get_session_store() -> SessionStore:
    """Dépendance FastAPI (surchargée dans les tests)"""
    return store
