"""
Transfer draft and outbound payload.

``TransferDraft`` is the mutable form state behind an open transfer dialog.
``TransferPayload`` is what actually goes over the wire to ``POST /transfers``;
it has no beneficiary field, so the beneficiary id never reaches the server.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from .bank_models import PaymentMethod

# Which InstrumentRef attribute carries each payment method
METHOD_FIELDS: Dict[PaymentMethod, str] = {
    PaymentMethod.ACCOUNT: "acc_no",
    PaymentMethod.UPI: "upi_id",
    PaymentMethod.CARD: "card_no",
}

PAYEE_METHODS = (PaymentMethod.ACCOUNT, PaymentMethod.UPI)


class InstrumentRef(BaseModel):
    """
    Tagged choice of exactly one payment instrument.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_assignment=True)

    acc_no: Optional[str] = None
    upi_id: Optional[str] = None
    card_no: Optional[str] = None

    @classmethod
    def for_method(cls, method: PaymentMethod, value: str) -> "InstrumentRef":
        return cls(**{METHOD_FIELDS[method]: value})

    def value_for(self, method: PaymentMethod) -> Optional[str]:
        return getattr(self, METHOD_FIELDS[method])

    def populated(self) -> List[Tuple[PaymentMethod, str]]:
        out = []
        for method, attr in METHOD_FIELDS.items():
            value = getattr(self, attr)
            if value is not None and value.strip():
                out.append((method, value))
        return out

    def clear_except(self, method: Optional[PaymentMethod]) -> None:
        for other, attr in METHOD_FIELDS.items():
            if other is not method:
                setattr(self, attr, None)

    def to_wire(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TransferPayload(BaseModel):
    """
    Body of ``POST /transfers``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    payer_transaction: InstrumentRef
    payee_transaction: InstrumentRef
    amount: Decimal
    description: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def _amount_positive(cls, value: Decimal) -> Decimal:
        if not value.is_finite() or value <= 0:
            raise ValueError("Amount must be positive")
        return value

    @field_validator("payer_transaction")
    @classmethod
    def _one_payer_instrument(cls, value: InstrumentRef) -> InstrumentRef:
        if len(value.populated()) != 1:
            raise ValueError("Select exactly one payer account, UPI id or card")
        return value

    @field_validator("payee_transaction")
    @classmethod
    def _one_payee_instrument(cls, value: InstrumentRef) -> InstrumentRef:
        populated = value.populated()
        if len(populated) != 1:
            raise ValueError("Enter exactly one payee account number or UPI id")
        if populated[0][0] not in PAYEE_METHODS:
            raise ValueError("Payee must be an account number or UPI id")
        return value

    @field_serializer("payer_transaction", "payee_transaction")
    def _serialize_ref(self, value: InstrumentRef) -> Dict[str, str]:
        return value.to_wire()

    @field_serializer("amount")
    def _serialize_amount(self, value: Decimal) -> Any:
        return int(value) if value == value.to_integral_value() else float(value)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass
class TransferDraft:
    """
    In-memory form state of one open transfer dialog.
    """

    payer_account: Optional[str] = None
    payer_method: PaymentMethod = PaymentMethod.ACCOUNT
    payer: InstrumentRef = field(default_factory=InstrumentRef)
    payer_pin: str = ""
    payee_method: PaymentMethod = PaymentMethod.ACCOUNT
    payee: InstrumentRef = field(default_factory=InstrumentRef)
    beneficiary_id: Optional[int] = None
    amount: Optional[Decimal] = None
    description: str = ""

    def payer_instrument_id(self) -> Optional[str]:
        return self.payer.value_for(self.payer_method)

    def snapshot(self) -> Dict[str, Any]:
        """
        Plain-dict view of the draft. The PIN is reported only as set/unset.
        """
        return {
            "payer_account": self.payer_account,
            "payer_method": self.payer_method.value,
            "payer": self.payer.to_wire(),
            "pin_entered": bool(self.payer_pin),
            "payee_method": self.payee_method.value,
            "payee": self.payee.to_wire(),
            "beneficiary_id": self.beneficiary_id,
            "amount": str(self.amount) if self.amount is not None else None,
            "description": self.description,
        }
