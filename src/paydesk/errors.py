"""
Exceptions raised by the PayDesk transfer flow.
"""

from typing import Dict, Optional


class PaydeskError(Exception):
    """Base class for all PayDesk errors."""


class BankApiError(PaydeskError):
    """
    The bank REST API rejected a request.

    ``message`` is the server's structured message (e.g. "Transfer failed: Invalid PIN")
    and ``code`` its optional machine-readable error code.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class BankUnavailableError(BankApiError):
    """The bank REST API could not be reached (network/transport failure)."""


class TransferValidationError(PaydeskError):
    """Client-side schema failure. No network call was made."""

    def __init__(self, field_errors: Dict[str, str]):
        self.field_errors = dict(field_errors)
        summary = "; ".join(f"{k}: {v}" for k, v in self.field_errors.items())
        super().__init__(summary or "invalid transfer")


class PinLockedError(PaydeskError):
    """Too many failed PIN attempts; the instrument is deactivated."""

    def __init__(self, method: str, instrument_id: str):
        super().__init__(f"{method} {instrument_id} is locked after repeated PIN failures")
        self.method = method
        self.instrument_id = instrument_id


class InstrumentUnavailableError(PaydeskError):
    """The chosen instrument is not selectable (unknown, wrong method or deactivated)."""


class SubmissionInProgressError(PaydeskError):
    """A transfer submission is already in flight for this dialog."""


class DialogClosedError(PaydeskError):
    """The transfer dialog is not open."""
