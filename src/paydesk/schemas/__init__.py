"""
Schemas for PayDesk
"""

from .bank_models import (
    AccountStatus,
    BankAccount,
    Beneficiary,
    BeneficiaryCreate,
    Card,
    CardStatus,
    PaymentMethod,
    Transaction,
    Transfer,
    TransferStatus,
    Upi,
    UpiStatus,
)
from .transfer_models import METHOD_FIELDS, PAYEE_METHODS, InstrumentRef, TransferDraft, TransferPayload

__all__ = [
    "AccountStatus",
    "BankAccount",
    "Beneficiary",
    "BeneficiaryCreate",
    "Card",
    "CardStatus",
    "InstrumentRef",
    "METHOD_FIELDS",
    "PAYEE_METHODS",
    "PaymentMethod",
    "Transaction",
    "Transfer",
    "TransferDraft",
    "TransferPayload",
    "TransferStatus",
    "Upi",
    "UpiStatus",
]
