"""
Transfer Submitter
Sends a validated transfer to the bank and maps failures back onto the form.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from paydesk.clients.bank_client import BankClient
from paydesk.context.session_context import SessionContext
from paydesk.errors import BankApiError, SubmissionInProgressError
from paydesk.logging_config import get_logger
from paydesk.schemas import Transfer, TransferPayload

from .error_translation import INVALID_PIN_FIELD_MESSAGE, PIN_FIELD, TransferFailure, translate_transfer_error
from .notifications import Notifier

logger = get_logger("paydesk.transfer.submitter")

SUCCESS_TITLE = "Transfer created successfully"
FAILURE_TITLE = "Failed to create transfer"


@dataclass
class SubmissionResult:
    transfer: Optional[Transfer] = None
    failure: Optional[TransferFailure] = None
    field_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.transfer is not None


class TransferSubmitter:
    """
    At most one submission is in flight per submitter (one per dialog).
    """

    def __init__(self, client: BankClient, context: SessionContext, notifier: Notifier):
        self.client = client
        self.context = context
        self.notifier = notifier
        self.pending = False

    def transfers_key(self):
        return ("transfers", self.context.user_id)

    async def submit(self, payload: TransferPayload) -> SubmissionResult:
        if self.pending:
            raise SubmissionInProgressError("a transfer submission is already in flight")

        self.pending = True
        try:
            logger.info(
                "Submitting transfer user_id=%s amount=%s payer=%s payee=%s",
                self.context.user_id,
                payload.amount,
                payload.payer_transaction.to_wire(),
                payload.payee_transaction.to_wire(),
            )
            try:
                transfer = await self.client.create_transfer(payload)
            except BankApiError as e:
                return self._handle_failure(e)
        finally:
            self.pending = False

        self.context.cache.invalidate(self.transfers_key())
        self.notifier.notify(SUCCESS_TITLE)
        logger.info("Transfer %s created (status=%s)", transfer.reference_id, transfer.transfer_status.value)
        return SubmissionResult(transfer=transfer)

    def _handle_failure(self, error: BankApiError) -> SubmissionResult:
        failure = translate_transfer_error(error)
        if failure.invalid_pin:
            logger.info("Transfer rejected for invalid PIN")
            return SubmissionResult(failure=failure, field_errors={PIN_FIELD: INVALID_PIN_FIELD_MESSAGE})

        logger.warning("Transfer rejected: %s", failure.reason)
        self.notifier.error(FAILURE_TITLE, failure.reason or None)
        return SubmissionResult(failure=failure)
