"""
Instrument Control
PIN verification and payment-method deactivation collaborators used by the PIN guard.

The bank API has no published PIN-verification route, so verification is
pluggable:
  - RemotePinVerifier posts to a configurable path (PAYDESK_PIN_VERIFY_PATH)
  - StaticPinVerifier checks against an in-memory table (local runs, demos)
Deactivation goes through the existing status/close endpoints.
"""

from typing import Dict, Optional, Tuple

from paydesk.context.session_context import SessionContext
from paydesk.errors import BankApiError, BankUnavailableError
from paydesk.logging_config import get_logger
from paydesk.schemas import CardStatus, PaymentMethod, UpiStatus

from .bank_client import BankClient

logger = get_logger("paydesk.bank_client.instruments")


class PinVerifier:
    """
    Checks a PIN for a payment instrument.
    """

    async def verify_pin(self, method: PaymentMethod, instrument_id: str, pin: str) -> bool:
        raise NotImplementedError


class InstrumentDeactivator:
    """
    Disables a payment instrument after repeated PIN failures.
    """

    async def deactivate_payment_method(
        self,
        method: PaymentMethod,
        instrument_id: str,
        acc_no: Optional[str] = None,
    ) -> None:
        raise NotImplementedError


class StaticPinVerifier(PinVerifier):
    def __init__(self, pins: Optional[Dict[Tuple[PaymentMethod, str], str]] = None):
        self._pins: Dict[Tuple[PaymentMethod, str], str] = dict(pins or {})

    def set_pin(self, method: PaymentMethod, instrument_id: str, pin: str) -> None:
        self._pins[(method, instrument_id)] = pin

    async def verify_pin(self, method: PaymentMethod, instrument_id: str, pin: str) -> bool:
        expected = self._pins.get((method, instrument_id))
        return expected is not None and expected == pin


class RemotePinVerifier(PinVerifier):
    """
    Posts ``{"method", "instrumentId", "pin"}`` to ``path`` and reads ``data.valid``.
    A 4xx rejection counts as a wrong PIN; transport failures propagate.
    """

    def __init__(self, client: BankClient, path: str):
        self.client = client
        self.path = path

    async def verify_pin(self, method: PaymentMethod, instrument_id: str, pin: str) -> bool:
        try:
            data = await self.client.post(
                self.path,
                json={"method": method.value, "instrumentId": instrument_id, "pin": pin},
            )
        except BankUnavailableError:
            raise
        except BankApiError as e:
            if e.status_code is not None and 400 <= e.status_code < 500:
                logger.info("PIN rejected by bank for %s %s (%s)", method.value, instrument_id, e.status_code)
                return False
            raise
        if isinstance(data, dict):
            return bool(data.get("valid"))
        return bool(data)


class BankInstrumentControl(InstrumentDeactivator):
    """
    Deactivates instruments through the bank API:
      UPI     -> PUT /accounts/{accNo}/upi/{upiId}/status  {"status": "INACTIVE"}
      CARD    -> PUT /accounts/{accNo}/card/{cardNo}/status {"status": "BLOCKED"}
      ACCOUNT -> POST /users/{userId}/accounts/{accNo}/close
    The affected instrument list is dropped from the session's query cache.
    """

    def __init__(self, client: BankClient, context: SessionContext):
        self.client = client
        self.context = context

    async def deactivate_payment_method(
        self,
        method: PaymentMethod,
        instrument_id: str,
        acc_no: Optional[str] = None,
    ) -> None:
        logger.warning("Deactivating %s %s (account=%s)", method.value, instrument_id, acc_no)
        if method is PaymentMethod.ACCOUNT:
            await self.client.close_account(self.context.user_id, instrument_id)
            self.context.cache.invalidate(("accounts", self.context.user_id))
            return

        if not acc_no:
            raise ValueError(f"account number required to deactivate {method.value} {instrument_id}")
        if method is PaymentMethod.UPI:
            await self.client.update_upi_status(acc_no, instrument_id, UpiStatus.INACTIVE)
            self.context.cache.invalidate(("upis", acc_no))
        else:
            await self.client.update_card_status(acc_no, instrument_id, CardStatus.BLOCKED)
            self.context.cache.invalidate(("cards", acc_no))
