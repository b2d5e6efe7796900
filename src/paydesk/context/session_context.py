"""
Session context

Explicit current-user context threaded into the transfer components
(instead of reading an ambient "current user").
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from paydesk.pin_attempts import PinAttemptStore

from .query_cache import QueryCache


@dataclass
class SessionContext:
    session_id: str
    user_id: int
    username: Optional[str] = None
    cache: QueryCache = field(default_factory=QueryCache)
    # session-lived PIN counters, used when the attempt scope is "session"
    pin_attempts: PinAttemptStore = field(default_factory=PinAttemptStore)
    dialogs: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)

    def touch(self) -> None:
        self.last_activity = datetime.now()
