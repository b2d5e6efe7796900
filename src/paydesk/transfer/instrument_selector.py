"""
Instrument Selector
Tracks which payer instrument (account / UPI id / card) and payee instrument
(account / UPI id) are active in a transfer draft.

Switching the payment method of a side clears the instrument values that
belong to the other methods of that side, so the payload never carries a stale
value next to the active one.
"""

from typing import Dict, List, Optional, Set, Tuple

from paydesk.clients.bank_client import BankClient
from paydesk.context.session_context import SessionContext
from paydesk.errors import InstrumentUnavailableError
from paydesk.logging_config import get_logger
from paydesk.schemas import (
    AccountStatus,
    BankAccount,
    Card,
    CardStatus,
    InstrumentRef,
    METHOD_FIELDS,
    PAYEE_METHODS,
    PaymentMethod,
    TransferDraft,
    Upi,
    UpiStatus,
)

logger = get_logger("paydesk.transfer.selector")

PAYER = "payer"
PAYEE = "payee"


def mask_card(card_no: str) -> str:
    return f"**** **** **** {card_no[-4:]}"


class InstrumentSelector:
    def __init__(self, client: BankClient, context: SessionContext, draft: TransferDraft):
        self.client = client
        self.context = context
        self.draft = draft
        self.accounts: List[BankAccount] = []
        self.upis: List[Upi] = []
        self.cards: List[Card] = []
        self.deactivated: Set[Tuple[PaymentMethod, str]] = set()
        self.terminal_message: Optional[str] = None

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------
    async def load_accounts(self) -> List[BankAccount]:
        user_id = self.context.user_id
        self.accounts = await self.context.cache.get_or_fetch(
            ("accounts", user_id), lambda: self.client.get_accounts(user_id)
        )
        return self.accounts

    async def select_account(self, acc_no: str) -> None:
        """
        Make ``acc_no`` the payer's account and load its UPI ids and cards.
        """
        if self.accounts and acc_no not in {a.acc_no for a in self.accounts}:
            raise InstrumentUnavailableError(f"unknown account {acc_no}")
        if (PaymentMethod.ACCOUNT, acc_no) in self.deactivated:
            raise InstrumentUnavailableError(f"account {acc_no} is deactivated")

        cache = self.context.cache
        self.upis = await cache.get_or_fetch(("upis", acc_no), lambda: self.client.get_upis(acc_no))
        self.cards = await cache.get_or_fetch(("cards", acc_no), lambda: self.client.get_cards(acc_no))

        changed = self.draft.payer_account != acc_no
        self.draft.payer_account = acc_no
        if changed:
            # UPI ids and cards of the previous account are no longer selectable
            self.draft.payer.upi_id = None
            self.draft.payer.card_no = None
        if self.draft.payer_method is PaymentMethod.ACCOUNT:
            self.draft.payer.acc_no = acc_no
        logger.info(
            "Payer account %s selected (upis=%d cards=%d)", acc_no, len(self.upis), len(self.cards)
        )

    def available_instruments(self, method: PaymentMethod) -> List[str]:
        if method is PaymentMethod.ACCOUNT:
            ids = [
                a.acc_no for a in self.accounts
                if a.status in (None, AccountStatus.ACTIVE)
            ]
        elif method is PaymentMethod.UPI:
            ids = [u.upi_id for u in self.upis if u.status in (None, UpiStatus.ACTIVE)]
        else:
            ids = [c.card_no for c in self.cards if c.status in (None, CardStatus.ACTIVE)]
        return [i for i in ids if (method, i) not in self.deactivated]

    def labels(self) -> Dict[str, List[Dict[str, str]]]:
        """
        Selectable instruments per method as ``{"id", "label"}`` options.

        ``id`` is the value ``choose_payer_instrument`` takes; card numbers are
        masked in ``label`` only.
        """
        options: Dict[str, List[Dict[str, str]]] = {}
        for method in PaymentMethod:
            options[method.value] = [
                {"id": i, "label": mask_card(i) if method is PaymentMethod.CARD else i}
                for i in self.available_instruments(method)
            ]
        return options

    # ------------------------------------------------------------------
    # Method switching
    # ------------------------------------------------------------------
    def select_method(self, side: str, method: PaymentMethod) -> None:
        if side == PAYER:
            self.draft.payer_method = method
            self.draft.payer.clear_except(method)
            if method is PaymentMethod.ACCOUNT and self.draft.payer_account:
                self.draft.payer.acc_no = self.draft.payer_account
        elif side == PAYEE:
            if method not in PAYEE_METHODS:
                raise InstrumentUnavailableError(f"payee cannot be paid by {method.value}")
            self.draft.payee_method = method
            self.draft.payee.clear_except(method)
        else:
            raise ValueError(f"unknown side {side!r}")
        logger.debug("%s method -> %s", side, method.value)

    def choose_payer_instrument(self, instrument_id: str) -> bool:
        """
        Pick the payer's UPI id / card for the active method.

        Returns True if the chosen instrument changed.
        """
        method = self.draft.payer_method
        if (method, instrument_id) in self.deactivated:
            raise InstrumentUnavailableError(f"{method.value} {instrument_id} is deactivated")
        if instrument_id not in self.available_instruments(method):
            raise InstrumentUnavailableError(f"{method.value} {instrument_id} is not selectable")

        previous = self.draft.payer_instrument_id()
        if method is PaymentMethod.ACCOUNT:
            self.draft.payer_account = instrument_id
        self.draft.payer.clear_except(method)
        setattr(self.draft.payer, METHOD_FIELDS[method], instrument_id)
        return previous != instrument_id

    # ------------------------------------------------------------------
    # Deactivation
    # ------------------------------------------------------------------
    def deactivate(self, method: PaymentMethod, instrument_id: str, message: str) -> None:
        """
        Remove an instrument from the selectable set for the rest of this dialog.
        """
        self.deactivated.add((method, instrument_id))
        self.terminal_message = message
        if self.draft.payer.value_for(method) == instrument_id:
            setattr(self.draft.payer, METHOD_FIELDS[method], None)
        if method is PaymentMethod.ACCOUNT and self.draft.payer_account == instrument_id:
            self.draft.payer_account = None
        logger.warning("%s %s removed from selectable instruments", method.value, instrument_id)

    # ------------------------------------------------------------------
    # Payload refs
    # ------------------------------------------------------------------
    def payer_ref(self) -> InstrumentRef:
        value = self.draft.payer.value_for(self.draft.payer_method)
        return InstrumentRef.for_method(self.draft.payer_method, value) if value else InstrumentRef()

    def payee_ref(self) -> InstrumentRef:
        value = self.draft.payee.value_for(self.draft.payee_method)
        return InstrumentRef.for_method(self.draft.payee_method, value) if value else InstrumentRef()

