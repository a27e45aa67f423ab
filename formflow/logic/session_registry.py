"""Process-local registry of respondent sessions served over HTTP.

Sessions are transient by definition: they live only in this registry, are
dropped on DELETE, and vanish with the process. One registry is created per
application instance so tests never share sessions.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List

from formflow.logic.errors import NotFoundError
from formflow.logic.respondent_flow import RespondentSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: Dict[str, RespondentSession] = {}
        # FastAPI runs sync handlers in a threadpool; guard the dict itself.
        # Each RespondentSession is single-client and carries no lock of its own.
        self._lock = threading.Lock()

    def add(self, session: RespondentSession) -> RespondentSession:
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info("session_registry.add session_id=%s", session.session_id)
        return session

    def get(self, session_id: str) -> RespondentSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"session {session_id} not found")
        return session

    def discard(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info("session_registry.discard session_id=%s", session_id)
        return removed

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = ["SessionRegistry"]
