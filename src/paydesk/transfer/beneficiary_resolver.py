"""
Beneficiary Resolver
Maps a chosen beneficiary to a concrete payee instrument using the list
fetched once when the dialog opens. Resolution never touches the network.
"""

from typing import Dict, List, Optional

from paydesk.clients.bank_client import BankClient
from paydesk.context.session_context import SessionContext
from paydesk.logging_config import get_logger
from paydesk.schemas import Beneficiary, InstrumentRef, PaymentMethod, TransferDraft

logger = get_logger("paydesk.transfer.beneficiaries")


def beneficiary_label(beneficiary: Beneficiary) -> str:
    return f"{beneficiary.name} - {beneficiary.acc_no or beneficiary.upi_id}"


class BeneficiaryResolver:
    def __init__(self, client: BankClient, context: SessionContext):
        self.client = client
        self.context = context
        self._by_id: Dict[int, Beneficiary] = {}

    async def load(self) -> List[Beneficiary]:
        user_id = self.context.user_id
        beneficiaries = await self.context.cache.get_or_fetch(
            ("beneficiaries", user_id), lambda: self.client.get_beneficiaries(user_id)
        )
        self._by_id = {b.id: b for b in beneficiaries}
        return beneficiaries

    @property
    def beneficiaries(self) -> List[Beneficiary]:
        return list(self._by_id.values())

    def resolve(self, beneficiary_id: int) -> Optional[InstrumentRef]:
        """
        Account number wins when a beneficiary has both an account and a UPI id.
        Returns None for an unknown id or a beneficiary with neither.
        """
        beneficiary = self._by_id.get(beneficiary_id)
        if beneficiary is None:
            return None
        if beneficiary.acc_no:
            return InstrumentRef(acc_no=beneficiary.acc_no)
        if beneficiary.upi_id:
            return InstrumentRef(upi_id=beneficiary.upi_id)
        return None

    def apply(self, draft: TransferDraft, beneficiary_id: int) -> Optional[InstrumentRef]:
        """
        Copy the beneficiary's instrument into the draft's payee.

        Only the resolved field is written: a manually entered value in the other
        payee field stays available as an override. Unknown ids leave the draft
        untouched.
        """
        ref = self.resolve(beneficiary_id)
        if ref is None:
            logger.info("Beneficiary %s not found in cached list; payee unchanged", beneficiary_id)
            return None

        if ref.acc_no:
            draft.payee.acc_no = ref.acc_no
            draft.payee_method = PaymentMethod.ACCOUNT
        else:
            draft.payee.upi_id = ref.upi_id
            draft.payee_method = PaymentMethod.UPI
        draft.beneficiary_id = beneficiary_id
        logger.info("Beneficiary %s resolved to %s payee", beneficiary_id, draft.payee_method.value)
        return ref
