import unittest

from paydesk.context import SessionContext
from paydesk.schemas import InstrumentRef, PaymentMethod, TransferDraft
from paydesk.transfer import BeneficiaryResolver, beneficiary_label

from .fake_bank import USER_ID, FakeBank


class TestBeneficiaryResolver(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.bank = FakeBank()
        self.client = self.bank.client()
        self.context = SessionContext(session_id="s1", user_id=USER_ID)
        self.resolver = BeneficiaryResolver(self.client, self.context)
        await self.resolver.load()

    async def asyncTearDown(self):
        await self.client.close()

    def test_account_number_wins_over_upi(self):
        self.assertEqual(self.resolver.resolve(7), InstrumentRef(acc_no="9999999999"))

    def test_upi_only_beneficiary(self):
        self.assertEqual(self.resolver.resolve(8), InstrumentRef(upi_id="carol@upi"))

    def test_apply_writes_account_and_leaves_upi_untouched(self):
        draft = TransferDraft(payee_method=PaymentMethod.UPI, payee=InstrumentRef(upi_id="manual@upi"))
        self.resolver.apply(draft, 7)
        self.assertEqual(draft.payee.acc_no, "9999999999")
        self.assertEqual(draft.payee.upi_id, "manual@upi")
        self.assertEqual(draft.payee_method, PaymentMethod.ACCOUNT)
        self.assertEqual(draft.beneficiary_id, 7)

    def test_unknown_beneficiary_is_a_noop(self):
        draft = TransferDraft(payee=InstrumentRef(acc_no="1111"))
        self.assertIsNone(self.resolver.apply(draft, 404))
        self.assertEqual(draft.payee.acc_no, "1111")
        self.assertIsNone(draft.beneficiary_id)

    def test_later_payee_edits_do_not_touch_beneficiary(self):
        draft = TransferDraft()
        self.resolver.apply(draft, 7)
        draft.payee.acc_no = "2222"
        self.assertEqual(self.resolver.resolve(7).acc_no, "9999999999")

    async def test_resolution_does_not_hit_the_network(self):
        before = len(self.bank.requests)
        self.resolver.resolve(7)
        self.resolver.apply(TransferDraft(), 8)
        self.assertEqual(len(self.bank.requests), before)

    def test_label(self):
        labels = [beneficiary_label(b) for b in self.resolver.beneficiaries]
        self.assertEqual(labels, ["Bob - 9999999999", "Carol - carol@upi"])
