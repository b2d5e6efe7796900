from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from paydesk.schemas import PaymentMethod

AttemptKey = Tuple[PaymentMethod, str]


@dataclass
class PinAttemptState:
    method: PaymentMethod
    instrument_id: str
    attempts: int = 0
    max_attempts: int = 3
    locked: bool = False
    last_failure_at: Optional[datetime] = None

    @property
    def remaining(self) -> int:
        return max(self.max_attempts - self.attempts, 0)


class PinAttemptStore:
    """
    Failed-PIN counters keyed by instrument.

    A store is either owned by one dialog (counters die with the dialog) or by
    the session context (counters survive reopening the dialog).
    """

    def __init__(self, max_attempts: int = 3) -> None:
        self.max_attempts = max_attempts
        self._states: Dict[AttemptKey, PinAttemptState] = {}

    def get(self, method: PaymentMethod, instrument_id: str) -> PinAttemptState:
        key = (method, instrument_id)
        state = self._states.get(key)
        if state is None:
            state = PinAttemptState(method=method, instrument_id=instrument_id, max_attempts=self.max_attempts)
            self._states[key] = state
        return state

    def peek(self, method: PaymentMethod, instrument_id: str) -> Optional[PinAttemptState]:
        return self._states.get((method, instrument_id))

    def is_locked(self, method: PaymentMethod, instrument_id: str) -> bool:
        state = self._states.get((method, instrument_id))
        return bool(state and state.locked)

    def record_failure(self, method: PaymentMethod, instrument_id: str) -> PinAttemptState:
        state = self.get(method, instrument_id)
        state.attempts += 1
        state.last_failure_at = datetime.now(timezone.utc)
        if state.attempts >= state.max_attempts:
            state.locked = True
        return state

    def set_max_attempts(self, max_attempts: int) -> None:
        """
        Change the limit for this store. Counters already locked stay locked.
        """
        self.max_attempts = max_attempts
        for state in self._states.values():
            if not state.locked:
                state.max_attempts = max_attempts

    def reset(self, method: PaymentMethod, instrument_id: str) -> None:
        """
        Zero the counter of an instrument that is not locked.
        """
        state = self._states.get((method, instrument_id))
        if state and not state.locked:
            self._states.pop((method, instrument_id), None)

    def clear(self) -> None:
        self._states.clear()

    def locked_instruments(self) -> Dict[AttemptKey, PinAttemptState]:
        return {k: v for k, v in self._states.items() if v.locked}
