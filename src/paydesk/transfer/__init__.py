"""
Transfer construction and submission flow.
"""

from .beneficiary_resolver import BeneficiaryResolver, beneficiary_label
from .dialog import TransferDialog
from .error_translation import TransferFailure, translate_transfer_error
from .history import list_transfers
from .instrument_selector import PAYEE, PAYER, InstrumentSelector, mask_card
from .notifications import Notification, Notifier
from .pin_guard import PinCheckResult, PinGuard, PinState
from .submitter import SubmissionResult, TransferSubmitter
from .validation import build_payload

__all__ = [
    "BeneficiaryResolver",
    "InstrumentSelector",
    "Notification",
    "Notifier",
    "PAYEE",
    "PAYER",
    "PinCheckResult",
    "PinGuard",
    "PinState",
    "SubmissionResult",
    "TransferDialog",
    "TransferFailure",
    "TransferSubmitter",
    "beneficiary_label",
    "build_payload",
    "list_transfers",
    "mask_card",
    "translate_transfer_error",
]
