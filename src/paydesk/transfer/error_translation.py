"""
Translation of bank errors raised by ``POST /transfers`` into user-facing feedback.

A structured ``code == "INVALID_PIN"`` is an invalid-PIN failure whatever the
message says. Otherwise any message containing "invalid pin" (case-insensitive)
is one. The user-facing reason is the segment after the last colon.
"""

from dataclasses import dataclass

from paydesk.errors import BankApiError, BankUnavailableError

INVALID_PIN_CODE = "INVALID_PIN"
INVALID_PIN_SIGNATURE = "invalid pin"
INVALID_PIN_FIELD_MESSAGE = "Invalid pin"
PIN_FIELD = "payer_pin"


@dataclass(frozen=True)
class TransferFailure:
    reason: str
    invalid_pin: bool = False
    transport: bool = False


def extract_reason(message: str) -> str:
    """
    "Transfer failed: Invalid PIN" -> "Invalid PIN"
    """
    if not message:
        return ""
    return message.rsplit(":", 1)[-1].strip()


def is_invalid_pin_message(message: str) -> bool:
    return INVALID_PIN_SIGNATURE in (message or "").lower()


def translate_transfer_error(error: BankApiError) -> TransferFailure:
    if isinstance(error, BankUnavailableError):
        return TransferFailure(reason=error.message, transport=True)

    message = error.message or ""
    reason = extract_reason(message) or message
    if error.code and error.code.upper() == INVALID_PIN_CODE:
        return TransferFailure(reason=reason, invalid_pin=True)
    return TransferFailure(reason=reason, invalid_pin=is_invalid_pin_message(message))
