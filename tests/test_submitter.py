import unittest
from decimal import Decimal

from paydesk.context import QueryCache, SessionContext
from paydesk.errors import SubmissionInProgressError
from paydesk.schemas import InstrumentRef, TransferPayload
from paydesk.transfer import Notifier, TransferSubmitter
from paydesk.transfer.submitter import FAILURE_TITLE, SUCCESS_TITLE

from .fake_bank import PAYER_ACC, USER_ID, FakeBank


class SpyCache(QueryCache):
    def __init__(self):
        super().__init__()
        self.invalidated = []

    def invalidate(self, key):
        self.invalidated.append(key)
        return super().invalidate(key)


def make_payload(amount="250"):
    return TransferPayload(
        payer_transaction=InstrumentRef(acc_no=PAYER_ACC),
        payee_transaction=InstrumentRef(acc_no="9999999999"),
        amount=Decimal(amount),
        description="rent",
    )


class TestTransferSubmitter(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.bank = FakeBank()
        self.client = self.bank.client()
        self.cache = SpyCache()
        self.context = SessionContext(session_id="s1", user_id=USER_ID, cache=self.cache)
        self.notifier = Notifier()
        self.submitter = TransferSubmitter(self.client, self.context, self.notifier)

    async def asyncTearDown(self):
        await self.client.close()

    async def test_success_invalidates_transfers_once(self):
        self.cache.set(("transfers", USER_ID), [])
        self.cache.set(("accounts", USER_ID), [])

        result = await self.submitter.submit(make_payload())

        self.assertTrue(result.ok)
        self.assertEqual(result.transfer.reference_id, "TRF-1")
        self.assertEqual(self.cache.invalidated, [("transfers", USER_ID)])
        self.assertNotIn(("transfers", USER_ID), self.cache)
        self.assertIn(("accounts", USER_ID), self.cache)
        notes = self.notifier.drain()
        self.assertEqual([n.title for n in notes], [SUCCESS_TITLE])
        self.assertFalse(self.submitter.pending)

    async def test_body_matches_wire_format(self):
        await self.submitter.submit(make_payload("250.50"))
        body = self.bank.calls("POST", "/transfers")[0]
        self.assertEqual(
            body,
            {
                "payerTransaction": {"accNo": PAYER_ACC},
                "payeeTransaction": {"accNo": "9999999999"},
                "amount": 250.5,
                "description": "rent",
            },
        )

    async def test_invalid_pin_becomes_field_error(self):
        self.bank.transfer_error = (400, "Transfer failed: Invalid PIN", None)

        result = await self.submitter.submit(make_payload())

        self.assertFalse(result.ok)
        self.assertTrue(result.failure.invalid_pin)
        self.assertEqual(result.field_errors, {"payer_pin": "Invalid pin"})
        self.assertEqual(self.notifier.drain(), [])
        self.assertEqual(self.cache.invalidated, [])

    async def test_other_failure_shows_destructive_toast(self):
        self.bank.transfer_error = (400, "Transfer failed: Insufficient balance", None)

        result = await self.submitter.submit(make_payload())

        self.assertFalse(result.ok)
        self.assertEqual(result.field_errors, {})
        notes = self.notifier.drain()
        self.assertEqual(len(notes), 1)
        self.assertEqual(notes[0].title, FAILURE_TITLE)
        self.assertEqual(notes[0].description, "Insufficient balance")
        self.assertEqual(notes[0].variant, "destructive")

    async def test_unreachable_bank_clears_pending(self):
        self.bank.unreachable = True

        result = await self.submitter.submit(make_payload())

        self.assertTrue(result.failure.transport)
        self.assertFalse(self.submitter.pending)
        self.assertEqual(self.notifier.drain()[0].variant, "destructive")

    async def test_second_submission_while_pending_rejected(self):
        self.submitter.pending = True
        with self.assertRaises(SubmissionInProgressError):
            await self.submitter.submit(make_payload())
        self.assertEqual(self.bank.calls("POST", "/transfers"), [])
