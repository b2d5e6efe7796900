from .bank_client import BankClient
from .instrument_control import (
    BankInstrumentControl,
    InstrumentDeactivator,
    PinVerifier,
    RemotePinVerifier,
    StaticPinVerifier,
)

__all__ = [
    "BankClient",
    "BankInstrumentControl",
    "InstrumentDeactivator",
    "PinVerifier",
    "RemotePinVerifier",
    "StaticPinVerifier",
]
