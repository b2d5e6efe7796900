"""
Records returned by the bank REST API.

The API speaks camelCase JSON; models expose snake_case attributes and accept
either spelling on input.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PaymentMethod(str, Enum):
    ACCOUNT = "ACCOUNT"
    UPI = "UPI"
    CARD = "CARD"


class TransferStatus(str, Enum):
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class TransactionType(str, Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"


class TransactionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    PENDING = "PENDING"
    FAILED = "FAILED"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    BLOCKED = "BLOCKED"


class UpiStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    CLOSED = "CLOSED"


class CardStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    BLOCKED = "BLOCKED"
    CLOSED = "CLOSED"


class BankModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Bank(BankModel):
    id: int
    name: str
    code: Optional[str] = None


class BankAccount(BankModel):
    acc_no: str
    user_id: Optional[int] = None
    ifsc: Optional[str] = None
    bank_id: Optional[int] = None
    balance: Optional[Decimal] = None
    account_type: Optional[str] = None
    status: Optional[AccountStatus] = None
    created_at: Optional[int] = None
    bank: Optional[Bank] = None


class Upi(BankModel):
    upi_id: str
    acc_no: Optional[str] = None
    user_id: Optional[int] = None
    status: Optional[UpiStatus] = None
    is_default: bool = False


class Card(BankModel):
    card_no: str
    acc_no: Optional[str] = None
    valid_from: Optional[str] = None
    valid_till: Optional[str] = None
    status: Optional[CardStatus] = None
    card_type: Optional[str] = None
    card_category: Optional[str] = None


class Beneficiary(BankModel):
    id: int
    name: str
    acc_no: Optional[str] = None
    upi_id: Optional[str] = None
    description: Optional[str] = None


class BeneficiaryCreate(BankModel):
    name: str = Field(..., min_length=1)
    acc_no: str = Field(..., min_length=1)
    upi_id: Optional[str] = None
    description: Optional[str] = None


class Transaction(BankModel):
    transaction_id: int
    acc_no: Optional[str] = None
    user_id: Optional[int] = None
    amount: Decimal
    transaction_type: Optional[TransactionType] = None
    transaction_status: Optional[TransactionStatus] = None
    by_card_no: Optional[str] = None
    upi_id: Optional[str] = None
    started_at: Optional[Union[int, str]] = None
    ended_at: Optional[Union[int, str]] = None
    reference_id: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None


class Transfer(BankModel):
    reference_id: str
    amount: Decimal
    transfer_status: TransferStatus
    transfer_type: Optional[PaymentMethod] = None
    started_at: Optional[int] = None
    ended_at: Optional[int] = None
    description: Optional[str] = None
    payer_transaction_id: Optional[int] = None
    payee_transaction_id: Optional[int] = None
    payer_transaction: Optional[Transaction] = None
    payee_transaction: Optional[Transaction] = None
