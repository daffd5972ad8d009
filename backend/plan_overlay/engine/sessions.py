"""In-memory session store, owned by the application (``app.state``)."""

from __future__ import annotations

import logging

from plan_overlay.engine.context import PipelineSession
from plan_overlay.models.plan import PlanDocument

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self) -> None:
        self._sessions: dict[str, PipelineSession] = {}

    def create(self, document: PlanDocument, opacity: float = 0.6) -> PipelineSession:
        session = PipelineSession(document=document, opacity=opacity)
        self._sessions[session.session_id] = session
        logger.info("Session %s created for %s", session.session_id, document.filename)
        return session

    def get(self, session_id: str) -> PipelineSession | None:
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> bool:
        """Remove a session, signalling any running deep refinement to stop."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.request_stop()
        logger.info("Session %s discarded", session_id)
        return True

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
