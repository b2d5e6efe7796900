"""
Transfer Dialog
One open "new transfer" dialog: owns the draft and wires the instrument
selector, beneficiary resolver, PIN guard and submitter together.

    open() -> field changes -> submit()
                                 validate draft    (no network on failure)
                                 verify PIN        (PinGuard)
                                 POST /transfers   (TransferSubmitter)
                                 success -> close(), draft discarded
                                 failure -> draft kept for correction
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, Dict, Optional

from paydesk.clients.bank_client import BankClient
from paydesk.clients.instrument_control import InstrumentDeactivator, PinVerifier
from paydesk.config import PIN_SCOPE_DIALOG, PIN_SCOPE_SESSION
from paydesk.context.session_context import SessionContext
from paydesk.errors import (
    BankApiError,
    DialogClosedError,
    PinLockedError,
    SubmissionInProgressError,
    TransferValidationError,
)
from paydesk.logging_config import get_logger
from paydesk.pin_attempts import PinAttemptStore
from paydesk.schemas import PaymentMethod, Transfer, TransferDraft

from .beneficiary_resolver import BeneficiaryResolver, beneficiary_label
from .error_translation import PIN_FIELD, translate_transfer_error
from .instrument_selector import PAYEE, PAYER, InstrumentSelector
from .notifications import Notifier
from .pin_guard import PinGuard, PinState
from .submitter import FAILURE_TITLE, TransferSubmitter
from .validation import build_payload

logger = get_logger("paydesk.transfer.dialog")


class TransferDialog:
    def __init__(
        self,
        client: BankClient,
        context: SessionContext,
        verifier: PinVerifier,
        deactivator: InstrumentDeactivator,
        *,
        pin_max_attempts: int = 3,
        pin_attempt_scope: str = PIN_SCOPE_DIALOG,
    ):
        self.dialog_id = str(uuid.uuid4())
        self.client = client
        self.context = context
        self.verifier = verifier
        self.deactivator = deactivator
        self.pin_max_attempts = pin_max_attempts
        self.pin_attempt_scope = pin_attempt_scope

        self.notifier = Notifier()
        self.is_open = False
        self.submitting = False
        self.draft: Optional[TransferDraft] = None
        self.selector: Optional[InstrumentSelector] = None
        self.resolver: Optional[BeneficiaryResolver] = None
        self.guard: Optional[PinGuard] = None
        self.submitter: Optional[TransferSubmitter] = None
        self.field_errors: Dict[str, str] = {}
        self.last_transfer: Optional[Transfer] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def open(self) -> None:
        """
        Start from a fresh draft. Any previous draft and, in dialog scope,
        the PIN attempt counters are discarded.
        """
        self.notifier = Notifier()
        self.draft = TransferDraft()
        self.field_errors = {}
        self.last_transfer = None
        self.submitting = False

        if self.pin_attempt_scope == PIN_SCOPE_SESSION:
            store = self.context.pin_attempts
            if store.max_attempts != self.pin_max_attempts:
                logger.warning(
                    "Session %s PIN store allowed %d attempts; using %d",
                    self.context.session_id,
                    store.max_attempts,
                    self.pin_max_attempts,
                )
                store.set_max_attempts(self.pin_max_attempts)
        else:
            store = PinAttemptStore(max_attempts=self.pin_max_attempts)

        self.selector = InstrumentSelector(self.client, self.context, self.draft)
        self.resolver = BeneficiaryResolver(self.client, self.context)
        self.submitter = TransferSubmitter(self.client, self.context, self.notifier)
        self.guard = PinGuard(
            self.verifier,
            self.deactivator,
            store,
            reset_on_instrument_change=self.pin_attempt_scope == PIN_SCOPE_DIALOG,
            on_lockout=self._on_lockout,
        )
        for method, instrument_id in store.locked_instruments():
            self.selector.deactivated.add((method, instrument_id))

        await self.selector.load_accounts()
        await self.resolver.load()
        self.is_open = True
        logger.info(
            "Transfer dialog %s opened for user_id=%s (pin scope=%s)",
            self.dialog_id,
            self.context.user_id,
            self.pin_attempt_scope,
        )

    def close(self) -> None:
        self.is_open = False
        self.draft = None
        self.selector = None
        self.resolver = None
        self.guard = None
        self.submitter = None
        self.field_errors = {}
        logger.info("Transfer dialog %s closed", self.dialog_id)

    def _require_open(self) -> None:
        if not self.is_open or self.draft is None:
            raise DialogClosedError(f"transfer dialog {self.dialog_id} is not open")

    # ------------------------------------------------------------------
    # Payer side
    # ------------------------------------------------------------------
    async def select_account(self, acc_no: str) -> None:
        self._require_open()
        await self.selector.select_account(acc_no)
        self._track_payer_instrument()

    def select_payer_method(self, method: PaymentMethod) -> None:
        self._require_open()
        self.selector.select_method(PAYER, method)
        self._track_payer_instrument()

    async def choose_payer_instrument(self, instrument_id: str) -> None:
        self._require_open()
        if self.draft.payer_method is PaymentMethod.ACCOUNT:
            await self.selector.select_account(instrument_id)
        else:
            self.selector.choose_payer_instrument(instrument_id)
        self._track_payer_instrument()

    def _track_payer_instrument(self) -> None:
        self.guard.select_instrument(self.draft.payer_method, self.draft.payer_instrument_id())

    # ------------------------------------------------------------------
    # Payee side
    # ------------------------------------------------------------------
    def select_payee_method(self, method: PaymentMethod) -> None:
        self._require_open()
        self.selector.select_method(PAYEE, method)

    def set_payee_account(self, acc_no: Optional[str]) -> None:
        # the field written last decides the active payee method
        self._require_open()
        self.draft.payee.acc_no = acc_no or None
        if acc_no:
            self.draft.payee_method = PaymentMethod.ACCOUNT

    def set_payee_upi(self, upi_id: Optional[str]) -> None:
        self._require_open()
        self.draft.payee.upi_id = upi_id or None
        if upi_id:
            self.draft.payee_method = PaymentMethod.UPI

    def choose_beneficiary(self, beneficiary_id: int) -> bool:
        self._require_open()
        return self.resolver.apply(self.draft, beneficiary_id) is not None

    # ------------------------------------------------------------------
    # Other fields
    # ------------------------------------------------------------------
    def set_amount(self, amount: Optional[Decimal]) -> None:
        self._require_open()
        self.draft.amount = amount
        self.field_errors.pop("amount", None)

    def set_description(self, description: Optional[str]) -> None:
        self._require_open()
        self.draft.description = description or ""

    def set_pin(self, pin: Optional[str]) -> None:
        self._require_open()
        self.draft.payer_pin = pin or ""
        self.field_errors.pop(PIN_FIELD, None)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    async def submit(self) -> Optional[Transfer]:
        """
        Validate, verify the PIN and create the transfer.

        Returns the created Transfer (and closes the dialog) or None when the
        attempt failed; failures are reported through ``field_errors`` and
        notifications. Raises TransferValidationError for an invalid draft,
        PinLockedError once the payer instrument is locked out and
        SubmissionInProgressError while a submission is in flight.
        """
        self._require_open()
        if self.submitting:
            raise SubmissionInProgressError("a transfer submission is already in flight")

        self.submitting = True
        try:
            return await self._submit()
        finally:
            self.submitting = False

    async def _submit(self) -> Optional[Transfer]:
        # close() may run while we await; keep our own references
        draft = self.draft
        selector, guard, submitter = self.selector, self.guard, self.submitter
        method = draft.payer_method
        instrument_id = draft.payer_instrument_id()

        if instrument_id and guard.is_locked(method, instrument_id):
            self.field_errors[PIN_FIELD] = selector.terminal_message or "Payment method is locked"
            raise PinLockedError(method.value, instrument_id)

        try:
            payload = build_payload(draft, selector.payer_ref(), selector.payee_ref())
        except TransferValidationError as e:
            self.field_errors = dict(e.field_errors)
            logger.info("Transfer draft rejected: %s", e.field_errors)
            raise
        self.field_errors = {}

        try:
            check = await guard.verify(method, instrument_id, draft.payer_pin, acc_no=draft.payer_account)
        except BankApiError as e:
            if self.is_open:
                self.notifier.error(FAILURE_TITLE, translate_transfer_error(e).reason or None)
            return None
        if not self.is_open:
            logger.info("Transfer dialog %s closed during PIN check; transfer not sent", self.dialog_id)
            return None
        if not check.verified:
            self._report_pin_failure(guard, check.message)
            return None

        result = await submitter.submit(payload)
        if result.ok:
            self.last_transfer = result.transfer
            if self.is_open:
                self.close()
            return result.transfer

        if result.failure is not None and result.failure.invalid_pin:
            check = await guard.record_failure(method, instrument_id, acc_no=draft.payer_account)
            if self.is_open:
                self.field_errors.update(result.field_errors)
                self._report_pin_failure(guard, check.message)
        elif self.is_open:
            self.field_errors.update(result.field_errors)
        return None

    def _report_pin_failure(self, guard: PinGuard, message: Optional[str]) -> None:
        if guard.state is PinState.LOCKED:
            self.field_errors[PIN_FIELD] = message
        else:
            self.field_errors.setdefault(PIN_FIELD, message)
        self.notifier.error(message)

    def _on_lockout(self, method: PaymentMethod, instrument_id: str, message: str) -> None:
        if self.selector is not None:
            self.selector.deactivate(method, instrument_id, message)

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------
    @property
    def pin_state(self) -> str:
        return self.guard.state.value if self.guard else PinState.IDLE.value

    @property
    def pin_attempts(self) -> int:
        return self.guard.attempts if self.guard else 0

    def view(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "dialog_id": self.dialog_id,
            "is_open": self.is_open,
            "pin_state": self.pin_state,
            "pin_attempts": self.pin_attempts,
            "submitting": self.submitting,
            "field_errors": dict(self.field_errors),
            "notifications": [n.to_dict() for n in self.notifier.drain()],
            "terminal_message": self.selector.terminal_message if self.selector else None,
        }
        if self.is_open:
            out["draft"] = self.draft.snapshot()
            out["instruments"] = self.selector.labels()
            out["beneficiaries"] = [
                {"id": b.id, "label": beneficiary_label(b)} for b in self.resolver.beneficiaries
            ]
        if self.last_transfer is not None:
            out["transfer"] = self.last_transfer.model_dump(mode="json", by_alias=True)
        return out
