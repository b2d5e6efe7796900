from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .bank_models import PaymentMethod


class SessionRequest(BaseModel):
    user_id: int
    username: Optional[str] = None


class SessionResponse(BaseModel):
    session_id: str
    user_id: int


class AccountSelection(BaseModel):
    acc_no: str


class MethodSelection(BaseModel):
    method: PaymentMethod


class InstrumentSelection(BaseModel):
    instrument_id: str


class BeneficiarySelection(BaseModel):
    beneficiary_id: int


class DraftFieldsUpdate(BaseModel):
    # only the fields present in the request body are applied
    payee_acc_no: Optional[str] = None
    payee_upi_id: Optional[str] = None
    amount: Optional[Decimal] = None
    description: Optional[str] = None
    pin: Optional[str] = None


class NotificationOut(BaseModel):
    title: str
    description: Optional[str] = None
    variant: str = "default"


class DialogView(BaseModel):
    dialog_id: str
    is_open: bool
    pin_state: str
    pin_attempts: int
    submitting: bool
    draft: Optional[Dict[str, Any]] = None
    instruments: Dict[str, List[Dict[str, str]]] = {}
    beneficiaries: List[Dict[str, Any]] = []
    field_errors: Dict[str, str] = {}
    notifications: List[NotificationOut] = []
    terminal_message: Optional[str] = None
    transfer: Optional[Dict[str, Any]] = None
