"""
Session Management
Keeps one SessionContext per browser session so the HTTP surface and the
transfer dialogs share a consistent view of the current user.

Sessions are kept in memory and expire after a period of inactivity.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Dict, Optional

from paydesk.logging_config import get_logger
from paydesk.pin_attempts import PinAttemptStore

from .session_context import SessionContext

logger = get_logger("paydesk.app.sessions")


class SessionManager:
    """
    Registry of live sessions.
    """

    def __init__(self, session_timeout_minutes: int = 30, pin_max_attempts: int = 3):
        self.sessions: Dict[str, SessionContext] = {}
        self.session_timeout = timedelta(minutes=session_timeout_minutes)
        self.pin_max_attempts = pin_max_attempts

    def create_session(self, user_id: int, username: Optional[str] = None) -> SessionContext:
        """
        Create a new session with a generated session_id.
        """
        session_id = str(uuid.uuid4())
        context = SessionContext(
            session_id=session_id,
            user_id=user_id,
            username=username,
            pin_attempts=PinAttemptStore(max_attempts=self.pin_max_attempts),
        )
        self.sessions[session_id] = context
        logger.info("Created session %s for user_id=%s", session_id, user_id)
        return context

    def get_session(self, session_id: str) -> Optional[SessionContext]:
        """
        Get a session, or None if not found/expired.
        """
        context = self.sessions.get(session_id)
        if context is None:
            return None
        if datetime.now() - context.last_activity > self.session_timeout:
            logger.info("Session %s expired", session_id)
            del self.sessions[session_id]
            return None
        context.touch()
        return context

    def end_session(self, session_id: str) -> None:
        context = self.sessions.pop(session_id, None)
        if context is not None:
            context.dialogs.clear()
            context.cache.clear()
