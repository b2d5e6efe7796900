"""
paydesk/app.py

FastAPI application for the PayDesk transfer dialog.
Thin HTTP surface the UI layer drives: each route maps onto one
TransferDialog operation and answers with a DialogView snapshot.
"""

import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from paydesk.clients import BankClient, BankInstrumentControl, InstrumentDeactivator, PinVerifier, RemotePinVerifier
from paydesk.config import Settings
from paydesk.context import SessionContext, SessionManager
from paydesk.errors import (
    BankApiError,
    BankUnavailableError,
    DialogClosedError,
    InstrumentUnavailableError,
    PinLockedError,
    SubmissionInProgressError,
    TransferValidationError,
)
from paydesk.logging_config import get_logger, setup_logging
from paydesk.schemas import BeneficiaryCreate
from paydesk.schemas.api_models import (
    AccountSelection,
    BeneficiarySelection,
    DialogView,
    DraftFieldsUpdate,
    InstrumentSelection,
    MethodSelection,
    SessionRequest,
    SessionResponse,
)
from paydesk.transfer import TransferDialog, beneficiary_label, list_transfers

logger = get_logger("paydesk.app")


def create_app(
    settings: Optional[Settings] = None,
    bank_client: Optional[BankClient] = None,
    pin_verifier: Optional[PinVerifier] = None,
    deactivator: Optional[InstrumentDeactivator] = None,
) -> FastAPI:
    """
    Build the app. Collaborators that are not passed in are created from
    ``settings`` at startup.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_dir, settings.log_level)

    app = FastAPI(title="PayDesk Transfers", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.bank_client = bank_client
    app.state.pin_verifier = pin_verifier
    app.state.deactivator = deactivator
    app.state.session_manager = SessionManager(
        session_timeout_minutes=settings.session_timeout_minutes,
        pin_max_attempts=settings.pin_max_attempts,
    )

    @app.on_event("startup")
    async def startup_event():
        if app.state.bank_client is None:
            app.state.bank_client = BankClient(settings.api_base_url, timeout=settings.request_timeout)
            app.state.owns_bank_client = True
        if app.state.pin_verifier is None:
            app.state.pin_verifier = RemotePinVerifier(app.state.bank_client, settings.pin_verify_path)
        logger.info(
            "PayDesk started. API base=%s pin scope=%s max attempts=%d",
            settings.api_base_url,
            settings.pin_attempt_scope,
            settings.pin_max_attempts,
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        if getattr(app.state, "owns_bank_client", False) and app.state.bank_client is not None:
            try:
                await app.state.bank_client.close()
            except Exception as e:
                logger.exception("Error closing bank client: %s", e)
        logger.info("PayDesk shutdown complete.")

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        # request bodies carry PINs and are never logged
        response = await call_next(request)
        logger.info("HTTP %s %s -> %s", request.method, request.url.path, response.status_code)
        return response

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------
    @app.exception_handler(SubmissionInProgressError)
    async def in_flight_handler(request: Request, exc: SubmissionInProgressError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(DialogClosedError)
    async def closed_handler(request: Request, exc: DialogClosedError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(InstrumentUnavailableError)
    async def instrument_handler(request: Request, exc: InstrumentUnavailableError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(BankApiError)
    async def bank_error_handler(request: Request, exc: BankApiError):
        status = 502 if isinstance(exc, BankUnavailableError) or not exc.status_code else exc.status_code
        return JSONResponse(status_code=status, content={"detail": exc.message, "code": exc.code})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _session(session_id: str) -> SessionContext:
        context = app.state.session_manager.get_session(session_id)
        if context is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return context

    def _dialog(session_id: str, dialog_id: str) -> TransferDialog:
        context = _session(session_id)
        dialog = context.dialogs.get(dialog_id)
        if dialog is None:
            raise HTTPException(status_code=404, detail="Transfer dialog not found")
        return dialog

    def _deactivator_for(context: SessionContext) -> InstrumentDeactivator:
        if app.state.deactivator is not None:
            return app.state.deactivator
        return BankInstrumentControl(app.state.bank_client, context)

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------
    @app.get("/api/health")
    async def health():
        return {"status": "healthy"}

    @app.post("/api/sessions", response_model=SessionResponse)
    async def create_session(req: SessionRequest):
        context = app.state.session_manager.create_session(req.user_id, req.username)
        return SessionResponse(session_id=context.session_id, user_id=context.user_id)

    @app.delete("/api/sessions/{session_id}")
    async def end_session(session_id: str):
        app.state.session_manager.end_session(session_id)
        return {"status": "ok"}

    @app.get("/api/sessions/{session_id}/beneficiaries")
    async def get_beneficiaries(session_id: str) -> List[Dict[str, Any]]:
        context = _session(session_id)
        client = app.state.bank_client
        beneficiaries = await context.cache.get_or_fetch(
            ("beneficiaries", context.user_id), lambda: client.get_beneficiaries(context.user_id)
        )
        return [
            {**b.model_dump(mode="json", by_alias=True), "label": beneficiary_label(b)} for b in beneficiaries
        ]

    @app.post("/api/sessions/{session_id}/beneficiaries", status_code=201)
    async def add_beneficiary(session_id: str, req: BeneficiaryCreate) -> Dict[str, Any]:
        context = _session(session_id)
        created = await app.state.bank_client.create_beneficiary(context.user_id, req)
        context.cache.invalidate(("beneficiaries", context.user_id))
        logger.info("Beneficiary %s created for user_id=%s", created.id, context.user_id)
        return created.model_dump(mode="json", by_alias=True)

    @app.get("/api/sessions/{session_id}/transfers")
    async def get_transfers(session_id: str) -> List[Dict[str, Any]]:
        context = _session(session_id)
        transfers = await list_transfers(app.state.bank_client, context)
        return [t.model_dump(mode="json", by_alias=True) for t in transfers]

    @app.post("/api/sessions/{session_id}/transfer-dialogs", response_model=DialogView, status_code=201)
    async def open_dialog(session_id: str):
        context = _session(session_id)
        dialog = TransferDialog(
            app.state.bank_client,
            context,
            app.state.pin_verifier,
            _deactivator_for(context),
            pin_max_attempts=settings.pin_max_attempts,
            pin_attempt_scope=settings.pin_attempt_scope,
        )
        await dialog.open()
        context.dialogs[dialog.dialog_id] = dialog
        return dialog.view()

    @app.get("/api/sessions/{session_id}/transfer-dialogs/{dialog_id}", response_model=DialogView)
    async def get_dialog(session_id: str, dialog_id: str):
        return _dialog(session_id, dialog_id).view()

    @app.delete("/api/sessions/{session_id}/transfer-dialogs/{dialog_id}")
    async def close_dialog(session_id: str, dialog_id: str):
        context = _session(session_id)
        dialog = context.dialogs.pop(dialog_id, None)
        if dialog is None:
            raise HTTPException(status_code=404, detail="Transfer dialog not found")
        dialog.close()
        return {"status": "closed"}

    @app.put("/api/sessions/{session_id}/transfer-dialogs/{dialog_id}/payer/account", response_model=DialogView)
    async def select_payer_account(session_id: str, dialog_id: str, req: AccountSelection):
        dialog = _dialog(session_id, dialog_id)
        await dialog.select_account(req.acc_no)
        return dialog.view()

    @app.put("/api/sessions/{session_id}/transfer-dialogs/{dialog_id}/payer/method", response_model=DialogView)
    async def select_payer_method(session_id: str, dialog_id: str, req: MethodSelection):
        dialog = _dialog(session_id, dialog_id)
        dialog.select_payer_method(req.method)
        return dialog.view()

    @app.put("/api/sessions/{session_id}/transfer-dialogs/{dialog_id}/payer/instrument", response_model=DialogView)
    async def select_payer_instrument(session_id: str, dialog_id: str, req: InstrumentSelection):
        dialog = _dialog(session_id, dialog_id)
        await dialog.choose_payer_instrument(req.instrument_id)
        return dialog.view()

    @app.put("/api/sessions/{session_id}/transfer-dialogs/{dialog_id}/payee/method", response_model=DialogView)
    async def select_payee_method(session_id: str, dialog_id: str, req: MethodSelection):
        dialog = _dialog(session_id, dialog_id)
        dialog.select_payee_method(req.method)
        return dialog.view()

    @app.put("/api/sessions/{session_id}/transfer-dialogs/{dialog_id}/payee/beneficiary", response_model=DialogView)
    async def select_beneficiary(session_id: str, dialog_id: str, req: BeneficiarySelection):
        dialog = _dialog(session_id, dialog_id)
        dialog.choose_beneficiary(req.beneficiary_id)
        return dialog.view()

    @app.patch("/api/sessions/{session_id}/transfer-dialogs/{dialog_id}/fields", response_model=DialogView)
    async def update_fields(session_id: str, dialog_id: str, req: DraftFieldsUpdate):
        dialog = _dialog(session_id, dialog_id)
        provided = req.model_fields_set
        if "payee_acc_no" in provided:
            dialog.set_payee_account(req.payee_acc_no)
        if "payee_upi_id" in provided:
            dialog.set_payee_upi(req.payee_upi_id)
        if "amount" in provided:
            dialog.set_amount(req.amount)
        if "description" in provided:
            dialog.set_description(req.description)
        if "pin" in provided:
            dialog.set_pin(req.pin)
        return dialog.view()

    @app.post("/api/sessions/{session_id}/transfer-dialogs/{dialog_id}/submit", response_model=DialogView)
    async def submit_dialog(session_id: str, dialog_id: str):
        context = _session(session_id)
        dialog = _dialog(session_id, dialog_id)
        try:
            transfer = await dialog.submit()
        except TransferValidationError:
            return JSONResponse(status_code=422, content=dialog.view())
        except PinLockedError:
            return JSONResponse(status_code=423, content=dialog.view())
        if transfer is not None:
            # the dialog closed itself; forget it
            context.dialogs.pop(dialog_id, None)
        return dialog.view()

    return app


app = create_app()


def main() -> None:
    import uvicorn

    host = os.getenv("PAYDESK_HOST", "0.0.0.0")
    port = int(os.getenv("PAYDESK_PORT", "8090"))
    uvicorn.run("paydesk.app:app", host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
