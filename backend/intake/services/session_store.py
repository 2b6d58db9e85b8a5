import logging
import time
import uuid
from typing import Callable

from intake.core.config import settings
from intake.core.errors import SessionNotFound
from intake.workflow.session import SubmissionWorkflow

logger = logging.getLogger(__name__)

class SessionStore:
    """Live workflows keyed by an opaque session id.

    A session untouched for `idle_seconds` is closed and forgotten; every
    `add()` and `get()` sweeps expired ones first.
    """

    def __init__(self, idle_seconds: float | None = None, clock: Callable[[], float] = time.monotonic):
        self.idle_seconds = idle_seconds if idle_seconds is not None else settings.session_idle_seconds
        self.clock = clock
        self._sessions: dict[str, SubmissionWorkflow] = {}
        self._last_seen: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, workflow: SubmissionWorkflow) -> str:
        self.sweep()
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = workflow
        self._last_seen[session_id] = self.clock()
        return session_id

    def get(self, session_id: str) -> SubmissionWorkflow:
        self.sweep()
        workflow = self._sessions.get(session_id)
        if workflow is None:
            raise SessionNotFound(f"Session {session_id} not found")
        self._last_seen[session_id] = self.clock()
        return workflow

    def remove(self, session_id: str) -> None:
        workflow = self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)
        if workflow is None:
            raise SessionNotFound(f"Session {session_id} not found")
        workflow.close()

    def sweep(self) -> int:
        now = self.clock()
        expired = [sid for sid, seen in self._last_seen.items() if now - seen >= self.idle_seconds]
        for session_id in expired:
            logger.info("Closing idle session %s", session_id)
            self.remove(session_id)
        return len(expired)

    def close_all(self) -> None:
        for workflow in self._sessions.values():
            workflow.close()
        logger.info("Closed %s workflow session(s)", len(self._sessions))
        self._sessions.clear()
        self._last_seen.clear()

store = SessionStore()
