import asyncio
import unittest
from decimal import Decimal

from paydesk.clients import BankInstrumentControl, PinVerifier, RemotePinVerifier
from paydesk.config import DEFAULT_PIN_VERIFY_PATH, PIN_SCOPE_SESSION
from paydesk.context import SessionContext
from paydesk.errors import (
    DialogClosedError,
    InstrumentUnavailableError,
    SubmissionInProgressError,
    TransferValidationError,
)
from paydesk.schemas import PaymentMethod
from paydesk.transfer import TransferDialog, list_transfers
from paydesk.transfer.pin_guard import LOCKOUT_MESSAGE, RETRY_MESSAGE

from .fake_bank import GOOD_PIN, PAYER_ACC, PAYER_UPI, USER_ID, FakeBank

VERIFY = DEFAULT_PIN_VERIFY_PATH


class DialogTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.bank = FakeBank()
        self.client = self.bank.client()
        self.context = SessionContext(session_id="s1", user_id=USER_ID)

    async def asyncTearDown(self):
        await self.client.close()

    async def open_dialog(self, scope="dialog"):
        dialog = TransferDialog(
            self.client,
            self.context,
            RemotePinVerifier(self.client, VERIFY),
            BankInstrumentControl(self.client, self.context),
            pin_max_attempts=3,
            pin_attempt_scope=scope,
        )
        await dialog.open()
        return dialog

    async def fill(self, dialog, amount="100", pin=GOOD_PIN):
        await dialog.select_account(PAYER_ACC)
        dialog.set_payee_account("9999999999")
        dialog.set_amount(Decimal(amount))
        dialog.set_description("dinner")
        dialog.set_pin(pin)


class TestTransferDialog(DialogTestCase):
    async def test_open_loads_accounts_and_beneficiaries(self):
        dialog = await self.open_dialog()
        view = dialog.view()
        self.assertTrue(view["is_open"])
        self.assertEqual(view["pin_state"], "IDLE")
        self.assertIn(PAYER_ACC, [o["id"] for o in view["instruments"]["ACCOUNT"]])
        self.assertEqual([b["id"] for b in view["beneficiaries"]], [7, 8])
        self.assertFalse(view["draft"]["pin_entered"])

    async def test_beneficiary_payee_goes_out_as_account_only(self):
        dialog = await self.open_dialog()
        await dialog.select_account(PAYER_ACC)
        self.assertTrue(dialog.choose_beneficiary(7))
        dialog.set_amount(Decimal("100"))
        dialog.set_pin(GOOD_PIN)

        transfer = await dialog.submit()

        self.assertIsNotNone(transfer)
        body = self.bank.calls("POST", "/transfers")[0]
        self.assertEqual(body["payeeTransaction"], {"accNo": "9999999999"})
        self.assertEqual(body["payerTransaction"], {"accNo": PAYER_ACC})
        self.assertNotIn("beneficiaryId", body)
        self.assertNotIn("pin", body)
        self.assertNotIn("payerPin", body)

    async def test_server_invalid_pin_keeps_draft(self):
        self.bank.transfer_error = (400, "Transfer failed: Invalid PIN", None)
        dialog = await self.open_dialog()
        await self.fill(dialog)

        transfer = await dialog.submit()

        self.assertIsNone(transfer)
        self.assertTrue(dialog.is_open)
        self.assertEqual(dialog.field_errors["payer_pin"], "Invalid pin")
        self.assertEqual(dialog.draft.amount, Decimal("100"))
        self.assertEqual(dialog.draft.payee.acc_no, "9999999999")
        self.assertEqual(dialog.pin_attempts, 1)
        notes = dialog.view()["notifications"]
        self.assertEqual([n["title"] for n in notes], [RETRY_MESSAGE])

    async def test_generic_failure_keeps_draft_and_toasts(self):
        self.bank.transfer_error = (400, "Transfer failed: Insufficient balance", None)
        dialog = await self.open_dialog()
        await self.fill(dialog)

        self.assertIsNone(await dialog.submit())

        self.assertTrue(dialog.is_open)
        self.assertEqual(dialog.field_errors, {})
        self.assertEqual(dialog.pin_attempts, 0)
        notes = dialog.view()["notifications"]
        self.assertEqual(notes[0]["variant"], "destructive")
        self.assertEqual(notes[0]["description"], "Insufficient balance")

    async def test_non_positive_amount_makes_no_network_call(self):
        dialog = await self.open_dialog()
        for amount in ("0", "-5"):
            await self.fill(dialog, amount=amount)
            before = len(self.bank.requests)
            with self.assertRaises(TransferValidationError):
                await dialog.submit()
            self.assertEqual(dialog.field_errors["amount"], "Amount must be positive")
            self.assertEqual(len(self.bank.requests), before)
        self.assertEqual(self.bank.calls("POST", VERIFY), [])
        self.assertEqual(self.bank.calls("POST", "/transfers"), [])

    async def test_missing_fields_reported_together(self):
        dialog = await self.open_dialog()
        with self.assertRaises(TransferValidationError) as ctx:
            await dialog.submit()
        errors = ctx.exception.field_errors
        self.assertEqual(set(errors), {"amount", "payer", "payee", "payer_pin"})
        self.assertFalse(dialog.submitting)

    async def test_success_closes_dialog_and_refreshes_history(self):
        await list_transfers(self.client, self.context)
        dialog = await self.open_dialog()
        await self.fill(dialog)

        transfer = await dialog.submit()

        self.assertEqual(transfer.reference_id, "TRF-1")
        self.assertFalse(dialog.is_open)
        self.assertIsNone(dialog.draft)
        view = dialog.view()
        self.assertEqual(view["transfer"]["referenceId"], "TRF-1")
        self.assertEqual(view["notifications"][0]["title"], "Transfer created successfully")

        history = await list_transfers(self.client, self.context)
        self.assertEqual(len(self.bank.calls("GET", "/transfers")), 2)
        self.assertEqual(history[0].reference_id, "TRF-1")

    async def test_last_written_payee_field_wins(self):
        dialog = await self.open_dialog()
        await self.fill(dialog)
        dialog.set_payee_upi("bob@upi")

        await dialog.submit()

        body = self.bank.calls("POST", "/transfers")[0]
        self.assertEqual(body["payeeTransaction"], {"upiId": "bob@upi"})

    async def test_upi_payer(self):
        dialog = await self.open_dialog()
        await self.fill(dialog)
        dialog.select_payer_method(PaymentMethod.UPI)
        await dialog.choose_payer_instrument(PAYER_UPI)

        await dialog.submit()

        self.assertEqual(
            self.bank.calls("POST", VERIFY),
            [{"method": "UPI", "instrumentId": PAYER_UPI, "pin": GOOD_PIN}],
        )
        body = self.bank.calls("POST", "/transfers")[0]
        self.assertEqual(body["payerTransaction"], {"upiId": PAYER_UPI})

    async def test_verification_outage_is_reported(self):
        dialog = await self.open_dialog()
        await self.fill(dialog)
        self.bank.unreachable = True

        self.assertIsNone(await dialog.submit())

        self.assertTrue(dialog.is_open)
        self.assertEqual(dialog.pin_attempts, 0)
        self.assertEqual(dialog.view()["notifications"][0]["variant"], "destructive")

    async def test_closed_dialog_rejects_changes(self):
        dialog = await self.open_dialog()
        dialog.close()
        with self.assertRaises(DialogClosedError):
            dialog.set_amount(Decimal("1"))
        with self.assertRaises(DialogClosedError):
            await dialog.submit()

    async def test_submission_in_flight_rejected(self):
        dialog = await self.open_dialog()
        await self.fill(dialog)
        dialog.submitting = True
        with self.assertRaises(SubmissionInProgressError):
            await dialog.submit()
        self.assertEqual(self.bank.calls("POST", "/transfers"), [])


class TestPinLockout(DialogTestCase):
    async def select_upi(self, dialog, pin):
        await self.fill(dialog, pin=pin)
        dialog.select_payer_method(PaymentMethod.UPI)
        await dialog.choose_payer_instrument(PAYER_UPI)

    async def test_third_wrong_pin_deactivates_upi(self):
        dialog = await self.open_dialog()
        await self.select_upi(dialog, "0000")

        for attempt in (1, 2):
            self.assertIsNone(await dialog.submit())
            self.assertEqual(dialog.pin_attempts, attempt)
            self.assertEqual(dialog.field_errors["payer_pin"], RETRY_MESSAGE)

        self.assertIsNone(await dialog.submit())

        status_calls = self.bank.calls("PUT", f"/accounts/{PAYER_ACC}/upi/{PAYER_UPI}/status")
        self.assertEqual(status_calls, [{"status": "INACTIVE"}])
        self.assertEqual(dialog.pin_state, "LOCKED")
        self.assertEqual(dialog.pin_attempts, 3)
        self.assertEqual(dialog.field_errors["payer_pin"], LOCKOUT_MESSAGE)
        self.assertIsNone(dialog.draft.payer.upi_id)
        self.assertEqual(dialog.view()["terminal_message"], LOCKOUT_MESSAGE)
        self.assertEqual(self.bank.calls("POST", "/transfers"), [])
        with self.assertRaises(InstrumentUnavailableError):
            await dialog.choose_payer_instrument(PAYER_UPI)

    async def test_reopen_resets_attempts_in_dialog_scope(self):
        dialog = await self.open_dialog()
        await self.fill(dialog, pin="0000")
        await dialog.submit()
        await dialog.submit()
        self.assertEqual(dialog.pin_attempts, 2)

        dialog.close()
        await dialog.open()
        await self.fill(dialog, pin="0000")
        self.assertEqual(dialog.pin_attempts, 0)

        await dialog.submit()
        self.assertEqual(dialog.pin_attempts, 1)
        self.assertNotEqual(dialog.pin_state, "LOCKED")

    async def test_attempts_persist_in_session_scope(self):
        dialog = await self.open_dialog(PIN_SCOPE_SESSION)
        await self.fill(dialog, pin="0000")
        await dialog.submit()
        await dialog.submit()
        dialog.close()

        reopened = await self.open_dialog(PIN_SCOPE_SESSION)
        await self.fill(reopened, pin="0000")
        self.assertEqual(reopened.pin_attempts, 2)

        await reopened.submit()

        self.assertEqual(reopened.pin_state, "LOCKED")
        self.assertEqual(len(self.bank.calls("POST", f"/users/{USER_ID}/accounts/{PAYER_ACC}/close")), 1)

        third = await self.open_dialog(PIN_SCOPE_SESSION)
        self.assertNotIn(PAYER_ACC, [o["id"] for o in third.view()["instruments"]["ACCOUNT"]])

    async def test_dialog_limit_applies_to_session_store(self):
        # the context's own store was built with the default limit of 3
        self.assertEqual(self.context.pin_attempts.max_attempts, 3)
        dialog = TransferDialog(
            self.client,
            self.context,
            RemotePinVerifier(self.client, VERIFY),
            BankInstrumentControl(self.client, self.context),
            pin_max_attempts=2,
            pin_attempt_scope=PIN_SCOPE_SESSION,
        )
        await dialog.open()
        await self.fill(dialog, pin="0000")

        await dialog.submit()
        self.assertNotEqual(dialog.pin_state, "LOCKED")
        await dialog.submit()

        self.assertEqual(dialog.pin_state, "LOCKED")
        self.assertEqual(dialog.pin_attempts, 2)
        self.assertEqual(self.context.pin_attempts.max_attempts, 2)


class GatedVerifier(PinVerifier):
    """Holds every PIN check until ``release`` is set."""

    def __init__(self, result):
        self.result = result
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def verify_pin(self, method, instrument_id, pin):
        self.started.set()
        await self.release.wait()
        return self.result


class TestCloseDuringSubmit(DialogTestCase):
    async def open_gated(self, result):
        verifier = GatedVerifier(result)
        dialog = TransferDialog(
            self.client,
            self.context,
            verifier,
            BankInstrumentControl(self.client, self.context),
        )
        await dialog.open()
        await self.fill(dialog)
        return dialog, verifier

    async def test_close_while_pin_check_pending_sends_nothing(self):
        dialog, verifier = await self.open_gated(True)
        task = asyncio.create_task(dialog.submit())
        await verifier.started.wait()

        dialog.close()
        verifier.release.set()

        self.assertIsNone(await task)
        self.assertFalse(dialog.submitting)
        self.assertEqual(self.bank.calls("POST", "/transfers"), [])
        self.assertFalse(dialog.view()["is_open"])

    async def test_close_while_wrong_pin_pending_still_counts(self):
        dialog, verifier = await self.open_gated(False)
        guard = dialog.guard
        task = asyncio.create_task(dialog.submit())
        await verifier.started.wait()

        dialog.close()
        verifier.release.set()

        self.assertIsNone(await task)
        self.assertEqual(guard.attempts, 1)
        self.assertEqual(dialog.field_errors, {})
        self.assertEqual(dialog.view()["notifications"], [])
