"""
Draft validation
Turns a TransferDraft into a TransferPayload or a set of field-level errors.
"""

from typing import Dict, Optional

from pydantic import ValidationError

from paydesk.errors import TransferValidationError
from paydesk.schemas import InstrumentRef, TransferDraft, TransferPayload

PIN_MIN_LENGTH = 4

# pydantic error locations -> draft field names
_FIELD_BY_LOC = {
    "payerTransaction": "payer",
    "payer_transaction": "payer",
    "payeeTransaction": "payee",
    "payee_transaction": "payee",
    "amount": "amount",
    "description": "description",
}


def _field_errors(exc: ValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("__root__",)
        name = _FIELD_BY_LOC.get(str(loc[0]), str(loc[0]))
        msg = err.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors.setdefault(name, msg)
    return errors


def validate_pin(pin: Optional[str]) -> Optional[str]:
    """
    Returns an error message, or None if the PIN is acceptable.
    """
    if not pin:
        return "PIN is required"
    if len(pin) < PIN_MIN_LENGTH:
        return f"PIN must be at least {PIN_MIN_LENGTH} characters"
    return None


def build_payload(draft: TransferDraft, payer: InstrumentRef, payee: InstrumentRef) -> TransferPayload:
    """
    Validate the draft and assemble the outbound payload.

    ``payer`` and ``payee`` are the refs reduced to their active payment method.
    Raises TransferValidationError with every field problem found.
    """
    errors: Dict[str, str] = {}
    payload = None

    if draft.amount is None:
        errors["amount"] = "Amount is required"
    else:
        try:
            payload = TransferPayload(
                payer_transaction=payer.model_copy(),
                payee_transaction=payee.model_copy(),
                amount=draft.amount,
                description=draft.description or "",
            )
        except ValidationError as exc:
            errors.update(_field_errors(exc))

    if draft.amount is None:
        # still report instrument problems alongside the missing amount
        if len(payer.populated()) != 1:
            errors["payer"] = "Select exactly one payer account, UPI id or card"
        if len(payee.populated()) != 1:
            errors["payee"] = "Enter exactly one payee account number or UPI id"

    pin_error = validate_pin(draft.payer_pin)
    if pin_error:
        errors["payer_pin"] = pin_error

    if errors or payload is None:
        raise TransferValidationError(errors)
    return payload
