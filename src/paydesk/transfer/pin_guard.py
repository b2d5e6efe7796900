"""
PIN Guard
Verifies the payer's PIN before a transfer is submitted and locks the
instrument out after repeated failures.

    IDLE -> VERIFYING -> VERIFIED
                      -> IDLE     (failure, attempts kept)
                      -> LOCKED   (failure number max_attempts: instrument deactivated)

Counters live in a PinAttemptStore. A dialog-scoped store dies with the
dialog; a session-scoped store keeps counters across dialog reopenings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from paydesk.clients.instrument_control import InstrumentDeactivator, PinVerifier
from paydesk.errors import PinLockedError
from paydesk.logging_config import get_logger
from paydesk.pin_attempts import PinAttemptStore
from paydesk.schemas import PaymentMethod

logger = get_logger("paydesk.transfer.pin_guard")

RETRY_MESSAGE = "Invalid PIN, try again"
LOCKOUT_MESSAGE = (
    "Too many incorrect PIN attempts. This payment method has been deactivated; "
    "contact your bank to re-enable it."
)

LockoutHook = Callable[[PaymentMethod, str, str], None]


class PinState(str, Enum):
    IDLE = "IDLE"
    VERIFYING = "VERIFYING"
    VERIFIED = "VERIFIED"
    LOCKED = "LOCKED"


@dataclass(frozen=True)
class PinCheckResult:
    verified: bool
    attempts: int
    locked: bool = False
    message: Optional[str] = None


class PinGuard:
    def __init__(
        self,
        verifier: PinVerifier,
        deactivator: InstrumentDeactivator,
        store: PinAttemptStore,
        *,
        reset_on_instrument_change: bool = True,
        on_lockout: Optional[LockoutHook] = None,
    ) -> None:
        self.verifier = verifier
        self.deactivator = deactivator
        self.store = store
        self.reset_on_instrument_change = reset_on_instrument_change
        self.on_lockout = on_lockout
        self.state = PinState.IDLE
        self.current: Optional[Tuple[PaymentMethod, str]] = None

    @property
    def attempts(self) -> int:
        if self.current is None:
            return 0
        state = self.store.peek(*self.current)
        return state.attempts if state else 0

    def is_locked(self, method: PaymentMethod, instrument_id: str) -> bool:
        return self.store.is_locked(method, instrument_id)

    def select_instrument(self, method: PaymentMethod, instrument_id: Optional[str]) -> None:
        """
        Track the instrument the next PIN will be checked against.
        """
        target = (method, instrument_id) if instrument_id else None
        if target == self.current:
            return
        self.current = target
        if target is None:
            self.state = PinState.IDLE
            return
        if self.reset_on_instrument_change:
            self.store.reset(*target)
        self.state = PinState.LOCKED if self.store.is_locked(*target) else PinState.IDLE

    def reset(self) -> None:
        if self.current is not None:
            self.store.reset(*self.current)
        if self.state is not PinState.LOCKED:
            self.state = PinState.IDLE

    async def verify(
        self,
        method: PaymentMethod,
        instrument_id: str,
        pin: str,
        acc_no: Optional[str] = None,
    ) -> PinCheckResult:
        self.select_instrument(method, instrument_id)
        if self.store.is_locked(method, instrument_id):
            self.state = PinState.LOCKED
            raise PinLockedError(method.value, instrument_id)

        self.state = PinState.VERIFYING
        try:
            ok = await self.verifier.verify_pin(method, instrument_id, pin)
        except Exception:
            self.state = PinState.IDLE
            logger.exception("PIN verification call failed for %s %s", method.value, instrument_id)
            raise

        if ok:
            self.store.reset(method, instrument_id)
            self.state = PinState.VERIFIED
            logger.info("PIN verified for %s %s", method.value, instrument_id)
            return PinCheckResult(verified=True, attempts=0)

        return await self.record_failure(method, instrument_id, acc_no=acc_no)

    async def record_failure(
        self,
        method: PaymentMethod,
        instrument_id: str,
        acc_no: Optional[str] = None,
    ) -> PinCheckResult:
        """
        Count one failed PIN check, deactivating the instrument on the last allowed failure.
        """
        self.select_instrument(method, instrument_id)
        if self.store.is_locked(method, instrument_id):
            self.state = PinState.LOCKED
            raise PinLockedError(method.value, instrument_id)

        attempt = self.store.record_failure(method, instrument_id)
        if not attempt.locked:
            self.state = PinState.IDLE
            logger.info(
                "Invalid PIN for %s %s (attempt %d/%d)",
                method.value,
                instrument_id,
                attempt.attempts,
                attempt.max_attempts,
            )
            return PinCheckResult(verified=False, attempts=attempt.attempts, message=RETRY_MESSAGE)

        self.state = PinState.LOCKED
        logger.warning(
            "PIN attempts exhausted for %s %s; deactivating payment method", method.value, instrument_id
        )
        try:
            await self.deactivator.deactivate_payment_method(method, instrument_id, acc_no)
        except Exception as exc:
            # the instrument stays locked locally even if the backend call fails
            logger.exception("Failed to deactivate %s %s: %s", method.value, instrument_id, exc)
        if self.on_lockout is not None:
            self.on_lockout(method, instrument_id, LOCKOUT_MESSAGE)
        return PinCheckResult(verified=False, attempts=attempt.attempts, locked=True, message=LOCKOUT_MESSAGE)
